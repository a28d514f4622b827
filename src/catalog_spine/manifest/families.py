"""
Schema family detection.

Every call site that needs to know "what kind of manifest is this" goes
through :func:`detect_schema_family`. The validator uses the answer to pick
a schema and the extractor uses it to pick a projection.

Detection order for a commit follows the manifest files in
:data:`MANIFEST_FILES`: a Scripture Burrito ``metadata.json`` wins over a
translationCore / translationStudio ``manifest.json``, which wins over a
Resource Container ``manifest.yaml``.

============  ==================  =========================================
Family        File                Recognized by
============  ==================  =========================================
``SB100``     ``metadata.json``   file name; shape ``meta`` + ``identification``
``TC``        ``manifest.json``   ``tc_version >= 7``
``TS``        ``manifest.json``   ``package_version >= 3``
``RC02``      ``manifest.yaml``   file name; shape ``dublin_core``
============  ==================  =========================================

A ``manifest.json`` carrying neither version number is not a tC/tS
manifest, and detection returns ``None`` so the next file is tried.
"""

from __future__ import annotations

from enum import Enum

from catalog_spine.manifest.document import Document, NodeKind

TC_MIN_VERSION = 7
TS_MIN_VERSION = 3


class SchemaFamily(str, Enum):
    """Manifest schema families, valued by their stored metadata type."""

    RC02 = "rc0.2"
    SB100 = "sb1.0"
    TC = "tc"
    TS = "ts"

    @property
    def metadata_type(self) -> str:
        return {
            SchemaFamily.RC02: "rc",
            SchemaFamily.SB100: "sb",
            SchemaFamily.TC: "tc",
            SchemaFamily.TS: "ts",
        }[self]

    @property
    def is_legacy(self) -> bool:
        return self in (SchemaFamily.TC, SchemaFamily.TS)


SB_METADATA_FILE = "metadata.json"
TCTS_MANIFEST_FILE = "manifest.json"
RC_MANIFEST_FILE = "manifest.yaml"

MANIFEST_FILES: tuple[str, ...] = (SB_METADATA_FILE, TCTS_MANIFEST_FILE, RC_MANIFEST_FILE)


def _version(document: Document, key: str) -> int | None:
    node = document.get(key)
    if node is None or node.kind is not NodeKind.NUMBER:
        return None
    return node.as_int()


def _legacy_family(document: Document) -> SchemaFamily | None:
    tc_version = _version(document, "tc_version")
    if tc_version is not None and tc_version >= TC_MIN_VERSION:
        return SchemaFamily.TC
    package_version = _version(document, "package_version")
    if package_version is not None and package_version >= TS_MIN_VERSION:
        return SchemaFamily.TS
    return None


def detect_schema_family(document: Document, source: str | None = None) -> SchemaFamily | None:
    """Classify *document*, optionally read from file name *source*.

    With a known file name the name decides, except for ``manifest.json``
    which needs its version fields. Without one the document shape decides,
    falling back to Resource Container.
    """
    name = source.rsplit("/", 1)[-1] if source else None
    if name == SB_METADATA_FILE:
        return SchemaFamily.SB100
    if name in (RC_MANIFEST_FILE, "manifest.yml"):
        return SchemaFamily.RC02
    if document.kind is not NodeKind.MAPPING:
        return None if name == TCTS_MANIFEST_FILE else SchemaFamily.RC02

    legacy = _legacy_family(document)
    if name == TCTS_MANIFEST_FILE or legacy is not None:
        return legacy
    if "meta" in document and ("identification" in document or "type" in document):
        return SchemaFamily.SB100
    return SchemaFamily.RC02


__all__ = [
    "SchemaFamily",
    "detect_schema_family",
    "MANIFEST_FILES",
    "SB_METADATA_FILE",
    "TCTS_MANIFEST_FILE",
    "RC_MANIFEST_FILE",
    "TC_MIN_VERSION",
    "TS_MIN_VERSION",
]
