"""
Centralized settings for catalog-spine.

:class:`CatalogSettings` is the single validated source of truth for every
tunable the pipeline reads: database URL, schema locations and fetch
timeout, worker pool size and search paging limits.

All fields can be set via ``CATALOG_*`` environment variables (e.g.
``CATALOG_DATABASE_URL=postgresql://...``) or a ``.env`` file.

Tags:
    catalog-spine, configuration, settings, pydantic, caching
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

RC02_SCHEMA_URL = "https://raw.githubusercontent.com/unfoldingWord/rc-schema/master/rc.schema.json"
SB100_SCHEMA_URL = "https://burrito.bible/schema/metadata.schema.json"
SB100_MIRROR_PREFIX = "https://raw.githubusercontent.com/bible-technology/scripture-burrito/v1.0.0/schema/"


class CatalogSettings(BaseSettings):
    """catalog-spine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/catalog.db")
    database_echo: bool = Field(default=False)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or console")
    service_name: str = Field(default="catalog-spine")

    # ── Schemas ──────────────────────────────────────────────────
    schema_remote_enabled: bool = Field(default=True)
    schema_fetch_timeout_seconds: float = Field(default=5.0)
    rc02_schema_url: str = Field(default=RC02_SCHEMA_URL)
    sb100_schema_url: str = Field(default=SB100_SCHEMA_URL)
    sb100_mirror_prefix: str = Field(
        default=SB100_MIRROR_PREFIX,
        description="burrito.bible URLs are fetched from this mirror",
    )
    local_schema_dir: Path | None = Field(
        default=None,
        description="Overrides the bundled fallback schema directory",
    )

    # ── Lookups ──────────────────────────────────────────────────
    langnames_path: Path | None = Field(default=None)

    # ── Git ──────────────────────────────────────────────────────
    repo_root: Path = Field(
        default=Path("data/repositories"),
        description="Directory holding <owner>/<name>.git bare repositories",
    )

    # ── Workers ──────────────────────────────────────────────────
    event_workers: int = Field(default=4)

    # ── Search ───────────────────────────────────────────────────
    search_default_page_size: int = Field(default=0, description="0 returns every row")
    search_max_page_size: int = Field(default=500)

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError(f"log_format must be 'json' or 'console', got {value!r}")
        return value

    @field_validator("event_workers")
    @classmethod
    def _check_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("event_workers must be at least 1")
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, CatalogSettings] = {}


def get_settings(*, env_file: str | None = None, _force_reload: bool = False) -> CatalogSettings:
    """Load, validate, and cache a :class:`CatalogSettings` instance."""
    cache_key = env_file or ""
    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    if env_file:
        settings = CatalogSettings(_env_file=env_file)  # type: ignore[call-arg]
    else:
        settings = CatalogSettings()
    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "CatalogSettings",
    "get_settings",
    "clear_settings_cache",
    "RC02_SCHEMA_URL",
    "SB100_SCHEMA_URL",
    "SB100_MIRROR_PREFIX",
]
