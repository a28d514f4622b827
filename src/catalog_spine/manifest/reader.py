"""
ManifestReader: decode a manifest file at a commit into a :class:`Document`.

Reading is three steps:

1. Look up the blob. A missing file returns ``None``; many repositories are
   simply not catalog eligible, so absence is not an error.
2. Transcode the bytes to text (``to_text``). Byte-order marks are
   honored, UTF-8 is tried next, and Windows-1252 / Latin-1 are the
   fallbacks for files saved by older desktop editors.
3. Decode by extension (YAML for ``.yaml``/``.yml``, JSON otherwise) and
   normalize keys to strings. Syntax errors raise
   :class:`MalformedDocumentError` with the decoder's line/column.

Scripture Burrito files may be wrapped in an ``{"type", "data"}`` envelope
where ``data`` is the base64 encoded metadata; such envelopes are unwrapped.
"""

from __future__ import annotations

import base64
import binascii
import codecs
import json
from typing import Any

import yaml

from catalog_spine.core.errors import MalformedDocumentError
from catalog_spine.core.logging import get_logger
from catalog_spine.git import Commit
from catalog_spine.manifest.document import Document, normalize

logger = get_logger(__name__)

_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)


def to_text(data: bytes) -> str:
    """Transcode manifest bytes to ``str``."""
    for bom, encoding in _BOMS:
        if data.startswith(bom):
            return data[len(bom):].decode(encoding, errors="replace")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        pass
    try:
        return data.decode("cp1252")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _decode_yaml(text: str, path: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.MarkedYAMLError as e:
        mark = e.problem_mark or e.context_mark
        raise MalformedDocumentError(
            f"{path}: {e.problem or e}",
            line=mark.line + 1 if mark else None,
            column=mark.column + 1 if mark else None,
            cause=e,
        ).with_context(path=path)
    except yaml.YAMLError as e:
        raise MalformedDocumentError(f"{path}: {e}", cause=e).with_context(path=path)


def _decode_json(text: str, path: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(
            f"{path}: {e.msg}",
            line=e.lineno,
            column=e.colno,
            cause=e,
        ).with_context(path=path)


def unwrap_envelope(value: Any, path: str = "metadata.json") -> Any:
    """Return the inner metadata of an ``{"type", "data"}`` envelope."""
    if not (isinstance(value, dict) and set(value) == {"type", "data"}):
        return value
    data = value["data"]
    if isinstance(data, dict):
        return data
    if isinstance(data, str):
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedDocumentError(f"{path}: envelope data is not base64", cause=e).with_context(path=path)
        return _decode_json(to_text(raw), path)
    raise MalformedDocumentError(f"{path}: unsupported envelope data").with_context(path=path)


def decode_document(data: bytes, path: str) -> Document:
    """Decode raw manifest bytes named *path* into a :class:`Document`."""
    text = to_text(data)
    if path.endswith((".yaml", ".yml")):
        value = _decode_yaml(text, path)
    else:
        value = _decode_json(text, path)
        if path.endswith("metadata.json"):
            value = unwrap_envelope(value, path)
    return Document(normalize(value))


class ManifestReader:
    """Reads and decodes manifest files from commits."""

    def read(self, commit: Commit, path: str) -> Document | None:
        """Decoded document, or ``None`` when *path* does not exist at *commit*.

        Raises:
            MalformedDocumentError: the file exists but is not valid YAML/JSON
            GitError: the blob could not be read
        """
        blob = commit.get_blob_by_path(path)
        if blob is None:
            logger.debug("manifest_not_found", commit=commit.id, path=path)
            return None
        document = decode_document(blob.read_all(), path)
        logger.debug("manifest_read", commit=commit.id, path=path, kind=document.kind.value)
        return document


__all__ = ["ManifestReader", "decode_document", "to_text", "unwrap_envelope"]
