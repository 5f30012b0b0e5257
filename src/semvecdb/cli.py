import argparse
import json
from typing import Any

from .config import get_settings
from .exceptions import VectorDatabaseError
from .implementations.hash_embedder import HashEmbedder
from .logger import configure_logging
from .serialization import SerializationFormat
from .table import COLLECTION_SUFFIX, VectorDatabase
from .types import Record

MUTATING_COMMANDS = {"add", "add-batch", "update", "delete"}


def parse_vector(text: str) -> list[float]:
    value = json.loads(text)
    if not isinstance(value, list):
        raise ValueError("vector must be a JSON array of numbers")
    return [float(v) for v in value]


def parse_object(text: str | None) -> dict[str, Any]:
    if not text:
        return {}
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError("expected a JSON object")
    return value


def record_out(record: Record) -> dict[str, Any]:
    return record.to_dict()


def load_batch_file(path: str) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        items = json.load(f)
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ValueError("batch file must hold a JSON array of objects")
    return items


def query_vector(args: argparse.Namespace, embedder: HashEmbedder) -> list[float]:
    if args.vector:
        return parse_vector(args.vector)
    if args.query:
        return list(embedder.embed_text(args.query))
    raise ValueError("one of --vector or --query is required")


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="semvec", description="Embedded vector store CLI")
    parser.add_argument("--db-folder", dest="db_folder", default=settings.db_folder)
    parser.add_argument("--collection", default="default")
    parser.add_argument(
        "--format", dest="fmt", default=settings.default_format, choices=["json", "binary"]
    )
    parser.add_argument(
        "--connections",
        action="store_true",
        default=settings.use_semantic_connections,
        help="Maintain semantic connections",
    )
    parser.add_argument("--k", dest="k", type=int, default=settings.connection_k)
    parser.add_argument(
        "--dim", type=int, default=64, help="Dimension of the built-in hash embedder"
    )
    parser.add_argument("--log-level", dest="log_level", default=settings.log_level)
    parser.add_argument(
        "--log-format",
        dest="log_format",
        default="json" if settings.log_json else "console",
        choices=["json", "console"],
        help="Render stderr log events as JSON lines or for a terminal",
    )

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_add = sub.add_parser("add", help="Add a text chunk")
    p_add.add_argument("--text", required=True)
    p_add.add_argument("--embedding", default=None, help="JSON array; hash-embedded if omitted")
    p_add.add_argument("--metadata", default=None, help="JSON object string")
    p_add.add_argument("--no-normalize", dest="normalize", action="store_false")

    p_batch = sub.add_parser("add-batch", help="Add chunks from a JSON file")
    p_batch.add_argument(
        "--file", required=True, help="Path to JSON array of items {text, embedding?, metadata?}"
    )
    p_batch.add_argument("--no-normalize", dest="normalize", action="store_false")

    p_update = sub.add_parser("update", help="Update a record's embedding and/or metadata")
    p_update.add_argument("--id", dest="record_id", required=True)
    p_update.add_argument("--embedding", default=None)
    p_update.add_argument("--metadata", default=None)
    p_update.add_argument("--no-normalize", dest="normalize", action="store_false")

    p_delete = sub.add_parser("delete", help="Delete a record")
    p_delete.add_argument("--id", dest="record_id", required=True)

    p_search = sub.add_parser("search", help="Exact top-k cosine search")
    p_search.add_argument("--vector", default=None, help="JSON array")
    p_search.add_argument("--query", default=None, help="Text to hash-embed")
    p_search.add_argument("--top-k", dest="top_k", type=int, default=5)

    p_sem = sub.add_parser("semantic-search", help="Search expanded through connections")
    p_sem.add_argument("--vector", default=None)
    p_sem.add_argument("--query", default=None)
    p_sem.add_argument("--top-k", dest="top_k", type=int, default=5)
    p_sem.add_argument("--depth", type=int, default=1)

    p_neighbors = sub.add_parser("neighbors", help="Records connected to a record")
    p_neighbors.add_argument("--id", dest="record_id", required=True)
    p_neighbors.add_argument("--depth", type=int, default=1)

    sub.add_parser("stats", help="Show collection stats")

    p_export = sub.add_parser("export-graph", help="Export connection graph to GraphML")
    p_export.add_argument("--path", required=True)

    return parser


def run(args: argparse.Namespace) -> Any:
    fmt = SerializationFormat.parse(args.fmt)
    db = VectorDatabase(args.db_folder, use_semantic_connections=args.connections, connection_k=args.k)
    if db.blob_store.exists(args.collection + COLLECTION_SUFFIX):
        db.load_from_disk(args.collection, fmt)
    embedder = HashEmbedder(dim=db.dimension or args.dim)

    result: Any
    if args.cmd == "add":
        embedding = parse_vector(args.embedding) if args.embedding else embedder.embed_text(args.text)
        rid = db.add_vector(args.text, embedding, parse_object(args.metadata), normalize=args.normalize)
        result = {"id": rid}
    elif args.cmd == "add-batch":
        items = load_batch_file(args.file)
        for item in items:
            if "embedding" not in item:
                item["embedding"] = embedder.embed_text(item.get("chunk_text", item.get("text", "")))
        result = {"ids": db.add_vectors_batch(items, normalize=args.normalize)}
    elif args.cmd == "update":
        embedding = parse_vector(args.embedding) if args.embedding else None
        metadata = parse_object(args.metadata) if args.metadata else None
        db.update_vector(args.record_id, embedding, metadata, normalize=args.normalize)
        result = {"updated": args.record_id}
    elif args.cmd == "delete":
        db.delete_vector(args.record_id)
        result = {"deleted": args.record_id}
    elif args.cmd == "search":
        hits = db.top_cosine_similarity(query_vector(args, embedder), args.top_k)
        result = [{"similarity": h.similarity, **record_out(h.record)} for h in hits]
    elif args.cmd == "semantic-search":
        records = db.semantic_search(query_vector(args, embedder), args.top_k, args.depth)
        result = [record_out(r) for r in records]
    elif args.cmd == "neighbors":
        result = [record_out(r) for r in db.get_connected_chunks(args.record_id, args.depth)]
    elif args.cmd == "stats":
        graph = db.connection_graph()
        result = {
            "collection": args.collection,
            "records": len(db),
            "dimension": db.dimension,
            "connections_enabled": db.use_semantic_connections,
            "connection_k": db.connection_k,
            "edges": graph.graph.number_of_edges(),
            "healthy": db.health_check(),
        }
    elif args.cmd == "export-graph":
        db.export_graph(args.path)
        result = {"exported": args.path}
    else:  # pragma: no cover - argparse rejects unknown commands
        raise ValueError(f"unknown command {args.cmd}")

    if args.cmd in MUTATING_COMMANDS:
        db.save_to_disk(args.collection, fmt)
    return result


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("semvec-cli", level=args.log_level, json=args.log_format == "json")
    try:
        result = run(args)
    except (VectorDatabaseError, ValueError, OSError) as exc:
        print(json.dumps({"error": type(exc).__name__, "message": str(exc)}))
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
