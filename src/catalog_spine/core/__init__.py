"""
Core primitives shared by every catalog-spine module.

- errors:   CatalogError hierarchy with category/retry semantics
- logging:  structlog configuration and scoped LogContext
- settings: CatalogSettings (pydantic-settings, ``CATALOG_*`` env vars)
- events:   in-process event bus for sync outcomes
- orm:      SQLAlchemy base, engine/session factories, tables
"""

from catalog_spine.core.errors import (
    CatalogError,
    ErrorCategory,
    ErrorContext,
    is_retryable,
)
from catalog_spine.core.logging import LogContext, configure_logging, get_logger
from catalog_spine.core.settings import CatalogSettings, get_settings

__all__ = [
    "CatalogError",
    "ErrorCategory",
    "ErrorContext",
    "is_retryable",
    "LogContext",
    "configure_logging",
    "get_logger",
    "CatalogSettings",
    "get_settings",
]
