"""Manifest reading: document model, decoding, and schema family detection."""

from catalog_spine.manifest.document import Document, NodeKind, normalize
from catalog_spine.manifest.families import (
    MANIFEST_FILES,
    SchemaFamily,
    detect_schema_family,
)
from catalog_spine.manifest.reader import ManifestReader, decode_document

__all__ = [
    "Document",
    "NodeKind",
    "normalize",
    "MANIFEST_FILES",
    "SchemaFamily",
    "detect_schema_family",
    "ManifestReader",
    "decode_document",
]
