
import numpy as np
import pytest
import structlog

from semvecdb.table import VectorDatabase


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def db(tmp_path) -> VectorDatabase:
    return VectorDatabase(str(tmp_path / "svdb"), use_semantic_connections=False)


@pytest.fixture
def connected_db(tmp_path) -> VectorDatabase:
    return VectorDatabase(str(tmp_path / "svdb"), use_semantic_connections=True, connection_k=5)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)
