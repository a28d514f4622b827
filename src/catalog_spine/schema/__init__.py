"""Schema loading, caching and validation for manifest families."""

from catalog_spine.schema.cache import SchemaCache
from catalog_spine.schema.loader import SchemaLoader
from catalog_spine.schema.validator import (
    SchemaValidator,
    ValidationCause,
    ValidationResult,
    render_validation_text,
)

__all__ = [
    "SchemaCache",
    "SchemaLoader",
    "SchemaValidator",
    "ValidationCause",
    "ValidationResult",
    "render_validation_text",
]
