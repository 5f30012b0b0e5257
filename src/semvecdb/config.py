"""Pydantic-based settings for semvecdb.

Values are read from ``SEMVEC_``-prefixed environment variables, e.g.
``SEMVEC_DB_FOLDER`` or ``SEMVEC_CONNECTION_K``. Constructor arguments on
:class:`~semvecdb.table.VectorDatabase` take precedence over these defaults.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for an embedded vector table and its CLI."""

    model_config = SettingsConfigDict(env_prefix="SEMVEC_", env_nested_delimiter="__")

    db_folder: str = Field(default="./svdb", description="Root directory for collection files")
    use_semantic_connections: bool = Field(
        default=False,
        description="Maintain the k-nearest-neighbour connection graph on every mutation",
    )
    connection_k: int = Field(
        default=5, ge=1, description="Maximum number of connections kept per record"
    )
    default_format: Literal["json", "binary"] = Field(
        default="json", description="Serialization format used when none is given"
    )
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True, description="Render log events as JSON lines")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
