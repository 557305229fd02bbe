"""Library-wide configuration and settings.

Uses ``pydantic-settings`` so values can be overridden via environment
variables prefixed with ``RECORD_CATALOG_``.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global settings for the record catalog.

    Attributes:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        cache_validity_seconds: How long a built dependency graph is reused
            before ``get_cached_graph`` rebuilds it.
        reserved_field_names: Host bookkeeping fields that are never queryable.
        orphan_excluded_suffixes: Type-name suffixes of container types that
            are expected to be unreferenced (skipped by the ``orphans`` command).
        default_top_n: Result size for popularity rankings.
    """

    log_level: str = "WARNING"
    cache_validity_seconds: float = 30.0
    reserved_field_names: list[str] = [
        "_script",
        "_hide_flags",
        "_instance_id",
        "_meta",
    ]
    orphan_excluded_suffixes: list[str] = ["Database", "Manager", "Config"]
    default_top_n: int = 10

    model_config = {"env_prefix": "RECORD_CATALOG_", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
