import uuid

import numpy as np
import pytest

from semvecdb import (
    DimensionMismatchError,
    MetadataError,
    RecordNotFoundError,
    VectorDatabase,
    ZeroVectorWarning,
)
from semvecdb.implementations.hash_embedder import HashEmbedder


def test_add_vector_assigns_uuid_and_stores_record(db: VectorDatabase):
    rid = db.add_vector("hello", [1.0, 2.0, 3.0], {"source": "doc1"})
    uuid.UUID(rid)
    assert len(db) == 1
    assert rid in db
    rec = db.get(rid)
    assert rec.chunk_text == "hello"
    assert rec.metadata == {"source": "doc1"}
    assert rec.connections == []
    assert db.get_embedding(rid).tolist() == [1.0, 2.0, 3.0]
    assert db.dimension == 3


def test_ids_are_unique_and_not_reused(db: VectorDatabase):
    first = db.add_vector("a", [1.0, 0.0])
    db.delete_vector(first)
    second = db.add_vector("a", [1.0, 0.0])
    assert first != second


def test_add_with_normalize(db: VectorDatabase):
    rid = db.add_vector("x", [3.0, 4.0], normalize=True)
    assert np.allclose(db.get_embedding(rid), [0.6, 0.8])


def test_add_zero_vector_with_normalize_is_kept_and_reported(db: VectorDatabase):
    with pytest.warns(ZeroVectorWarning):
        rid = db.add_vector("zero", [0.0, 0.0], normalize=True)
    assert db.get_embedding(rid).tolist() == [0.0, 0.0]


def test_dimension_guard_leaves_table_unchanged(db: VectorDatabase):
    rid = db.add_vector("a", [1.0, 0.0, 0.0])
    with pytest.raises(DimensionMismatchError):
        db.add_vector("b", [1.0, 0.0])
    with pytest.raises(DimensionMismatchError):
        db.update_vector(rid, new_embedding=[1.0])
    with pytest.raises(DimensionMismatchError):
        db.top_cosine_similarity([1.0, 0.0], 1)
    assert len(db) == 1
    assert db.get_embedding(rid).tolist() == [1.0, 0.0, 0.0]
    assert db.health_check()


def test_empty_embedding_rejected(db: VectorDatabase):
    with pytest.raises(DimensionMismatchError):
        db.add_vector("empty", [])


def test_invalid_metadata_rejected(db: VectorDatabase):
    with pytest.raises(MetadataError):
        db.add_vector("a", [1.0], {"bad": object()})
    assert len(db) == 0


def test_dimension_resets_when_table_empties(db: VectorDatabase):
    rid = db.add_vector("a", [1.0, 0.0])
    db.delete_vector(rid)
    assert db.dimension is None
    db.add_vector("b", [1.0, 0.0, 0.0])
    assert db.dimension == 3


def test_add_batch_appends_in_order(db: VectorDatabase):
    ids = db.add_vectors_batch(
        [
            {"chunk_text": "a", "embedding": [1.0, 0.0], "metadata": {"n": 1}},
            {"text": "b", "embedding": [0.0, 1.0]},
        ]
    )
    assert db.ids() == ids
    assert db.get(ids[0]).metadata == {"n": 1}
    assert db.get(ids[1]).chunk_text == "b"


def test_add_batch_is_validated_before_storing(db: VectorDatabase):
    db.add_vector("seed", [1.0, 0.0])
    with pytest.raises(DimensionMismatchError):
        db.add_vectors_batch([{"embedding": [0.0, 1.0]}, {"embedding": [1.0, 1.0, 1.0]}])
    assert len(db) == 1


def test_add_batch_establishes_dimension_from_first_item(db: VectorDatabase):
    with pytest.raises(DimensionMismatchError):
        db.add_vectors_batch([{"embedding": [1.0, 0.0]}, {"embedding": [1.0]}])
    assert len(db) == 0


def test_add_batch_empty(db: VectorDatabase):
    assert db.add_vectors_batch([]) == []


def test_update_replaces_embedding_and_merges_metadata(db: VectorDatabase):
    rid = db.add_vector("a", [1.0, 0.0], {"keep": 1, "change": "old"})
    db.update_vector(rid, new_embedding=[0.0, 2.0], new_metadata={"change": "new", "added": True})
    assert db.get_embedding(rid).tolist() == [0.0, 2.0]
    assert db.get(rid).metadata == {"keep": 1, "change": "new", "added": True}


def test_update_metadata_only_keeps_embedding(db: VectorDatabase):
    rid = db.add_vector("a", [1.0, 0.0])
    db.update_vector(rid, new_metadata={"x": 1})
    assert db.get_embedding(rid).tolist() == [1.0, 0.0]


def test_update_and_delete_unknown_id(db: VectorDatabase):
    db.add_vector("a", [1.0, 0.0])
    with pytest.raises(RecordNotFoundError):
        db.update_vector("missing", new_metadata={"x": 1})
    with pytest.raises(RecordNotFoundError) as exc:
        db.delete_vector("missing")
    assert exc.value.record_id == "missing"
    with pytest.raises(RecordNotFoundError):
        db.get("missing")


def test_delete_compacts_rows_with_records(db: VectorDatabase):
    ids = [db.add_vector(str(i), [float(i), 1.0]) for i in range(5)]
    db.delete_vector(ids[1])
    assert db.ids() == [ids[0], ids[2], ids[3], ids[4]]
    assert [db.get_embedding(r)[0] for r in db.ids()] == [0.0, 2.0, 3.0, 4.0]
    assert db.health_check()


def test_insert_then_delete_restores_table(db: VectorDatabase, rng):
    for i in range(6):
        db.add_vector(str(i), rng.normal(size=4))
    before_ids = db.ids()
    before = {rid: db.get_embedding(rid) for rid in before_ids}

    rid = db.add_vector("temp", rng.normal(size=4))
    db.delete_vector(rid)

    assert db.ids() == before_ids
    for r in before_ids:
        assert np.array_equal(db.get_embedding(r), before[r])


def test_returned_records_are_snapshots(db: VectorDatabase):
    rid = db.add_vector("a", [1.0, 0.0], {"tags": ["x"]})
    rec = db.get(rid)
    rec.metadata["tags"].append("y")
    assert db.get(rid).metadata == {"tags": ["x"]}


def test_top_cosine_similarity_example(db: VectorDatabase):
    a = db.add_vector("A", [1.0, 0.0])
    b = db.add_vector("B", [0.0, 1.0])
    c = db.add_vector("C", [1.0, 1.0])

    hits = db.top_cosine_similarity([1.0, 0.0], 2)
    assert [h.id for h in hits] == [a, c]
    assert hits[0].similarity == pytest.approx(1.0)
    assert hits[1].similarity == pytest.approx(0.7071, abs=1e-4)

    everything = db.top_cosine_similarity([1.0, 0.0], 3)
    assert everything[-1].id == b
    assert everything[-1].similarity == pytest.approx(0.0)


def test_top_k_is_prefix_of_full_ranking(db: VectorDatabase, rng):
    for i in range(30):
        db.add_vector(str(i), rng.normal(size=8))
    db.add_vector("zero", np.zeros(8))
    q = rng.normal(size=8)

    full = db.top_cosine_similarity(q, len(db))
    assert len(full) == 30
    sims = [h.similarity for h in full]
    assert all(x >= y for x, y in zip(sims, sims[1:]))
    for k in (1, 5, 17, 29):
        assert [h.id for h in db.top_cosine_similarity(q, k)] == [h.id for h in full[:k]]


def test_top_n_clamped_and_empty_cases(db: VectorDatabase):
    assert db.top_cosine_similarity([1.0, 0.0], 5) == []
    db.add_vector("a", [1.0, 0.0])
    assert len(db.top_cosine_similarity([1.0, 0.0], 50)) == 1
    assert db.top_cosine_similarity([1.0, 0.0], 0) == []
    assert db.top_cosine_similarity([0.0, 0.0], 5) == []


def test_self_similarity_through_table(db: VectorDatabase, rng):
    v = rng.normal(size=16)
    rid = db.add_vector("v", v)
    hit = db.top_cosine_similarity(v, 1)[0]
    assert hit.id == rid
    assert hit.similarity == pytest.approx(1.0)


def test_add_text_uses_embedder(db: VectorDatabase):
    embedder = HashEmbedder(dim=64)
    rid = db.add_text("the quick brown fox", embedder, {"lang": "en"})
    assert db.dimension == 64
    assert np.linalg.norm(db.get_embedding(rid)) == pytest.approx(1.0)
    hit = db.top_cosine_similarity(embedder.embed_text("quick brown fox"), 1)[0]
    assert hit.id == rid


def test_scroll_and_clear(db: VectorDatabase):
    db.add_vector("a", [1.0, 0.0])
    db.add_vector("b", [0.0, 1.0])
    items = list(db.scroll())
    assert [i.record.chunk_text for i in items] == ["a", "b"]
    assert items[1].embedding == [0.0, 1.0]
    db.clear()
    assert len(db) == 0
    assert db.count() == 0
    assert db.dimension is None


def test_add_batch_folds_extra_keys_into_metadata(db: VectorDatabase):
    (rid,) = db.add_vectors_batch(
        [
            {
                "chunk_text": "a",
                "embedding": [1.0, 0.0],
                "source": "doc1",
                "page": 3,
                "metadata": {"page": 4},
            }
        ]
    )
    record = db.get(rid)
    assert record.chunk_text == "a"
    assert record.metadata == {"source": "doc1", "page": 4}


def test_add_batch_rejects_non_mapping_items(db: VectorDatabase):
    with pytest.raises(ValueError):
        db.add_vectors_batch([{"embedding": [1.0, 0.0]}, "not an item"])
    assert len(db) == 0


@pytest.mark.parametrize("top_n", [0, -1])
def test_wrong_dimension_query_fails_even_for_empty_request(db: VectorDatabase, top_n):
    db.add_vector("a", [1.0, 0.0])
    with pytest.raises(DimensionMismatchError):
        db.top_cosine_similarity([1.0, 0.0, 0.0], top_n)
    assert db.top_cosine_similarity([1.0, 0.0], top_n) == []


def test_semantic_search_wrong_dimension_with_zero_top_k(connected_db: VectorDatabase):
    connected_db.add_vector("a", [1.0, 0.0])
    with pytest.raises(DimensionMismatchError):
        connected_db.semantic_search([1.0, 0.0, 0.0], 0, 1)
