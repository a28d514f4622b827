"""
Typed view over a decoded manifest tree.

YAML and JSON decoders hand back nested ``dict``/``list`` values of
whatever scalar types the source happened to use. :class:`Document` wraps
one node of that tree and exposes explicit accessors (``as_str``,
``as_mapping``, ``str_at`` ...) that raise :class:`DocumentTypeError`
naming the dotted path on a type mismatch, instead of failing somewhere
downstream with an ``AttributeError``.

Only the reader and the field extractor work with documents. Everything
after extraction reads :class:`~catalog_spine.extract.fields.NormalizedFields`.

Example:
    >>> doc = Document({"dublin_core": {"language": {"identifier": "en"}}})
    >>> doc.str_at("dublin_core.language.identifier")
    'en'
    >>> doc.str_at("dublin_core.subject", default="Bible")
    'Bible'
"""

from __future__ import annotations

import datetime
from collections.abc import Iterator
from enum import Enum
from typing import Any

from catalog_spine.core.errors import DocumentTypeError

_MISSING = object()


class NodeKind(str, Enum):
    """Kinds of value a document node can hold."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    MAPPING = "mapping"
    SEQUENCE = "sequence"


def kind_of(value: Any) -> NodeKind:
    """Classify a plain decoded value."""
    if value is None:
        return NodeKind.NULL
    # bool before number: bool is an int subclass
    if isinstance(value, bool):
        return NodeKind.BOOL
    if isinstance(value, (int, float)):
        return NodeKind.NUMBER
    if isinstance(value, str):
        return NodeKind.STRING
    if isinstance(value, dict):
        return NodeKind.MAPPING
    if isinstance(value, list):
        return NodeKind.SEQUENCE
    raise TypeError(f"unsupported document value: {type(value).__name__}")


def _key_to_str(key: Any) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    return str(key)


def normalize(value: Any) -> Any:
    """Coerce a decoder's output into the plain JSON data model.

    Mapping keys of any type become strings at every level, tuples become
    lists, and YAML timestamps become ISO-8601 strings.
    """
    if isinstance(value, dict):
        return {_key_to_str(k): normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize(v) for v in value]
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _join(path: str, key: str | int) -> str:
    return f"{path}.{key}" if path else str(key)


class Document:
    """One node of a manifest tree.

    The wrapped value must already be in the plain JSON data model (see
    :func:`normalize`).
    """

    __slots__ = ("_value", "_path")

    def __init__(self, value: Any, path: str = ""):
        self._value = value
        self._path = path

    def __repr__(self) -> str:
        return f"Document(kind={self.kind.value}, path={self._path or '<root>'!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Document):
            return self._value == other._value
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    # ── Introspection ────────────────────────────────────────────────

    @property
    def kind(self) -> NodeKind:
        return kind_of(self._value)

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_null(self) -> bool:
        return self._value is None

    def to_python(self) -> Any:
        """The wrapped plain value (shared, not copied)."""
        return self._value

    def _mismatch(self, expected: NodeKind | str) -> DocumentTypeError:
        expected_name = expected.value if isinstance(expected, NodeKind) else expected
        return DocumentTypeError(self._path, expected_name, self.kind.value)

    # ── Typed accessors ──────────────────────────────────────────────

    def as_str(self) -> str:
        if not isinstance(self._value, str):
            raise self._mismatch(NodeKind.STRING)
        return self._value

    def as_int(self) -> int:
        if isinstance(self._value, bool) or not isinstance(self._value, (int, float)):
            raise self._mismatch(NodeKind.NUMBER)
        if isinstance(self._value, float) and not self._value.is_integer():
            raise self._mismatch("integer")
        return int(self._value)

    def as_bool(self) -> bool:
        if not isinstance(self._value, bool):
            raise self._mismatch(NodeKind.BOOL)
        return self._value

    def as_mapping(self) -> dict[str, Any]:
        if not isinstance(self._value, dict):
            raise self._mismatch(NodeKind.MAPPING)
        return self._value

    def as_sequence(self) -> list[Any]:
        if not isinstance(self._value, list):
            raise self._mismatch(NodeKind.SEQUENCE)
        return self._value

    # ── Navigation ───────────────────────────────────────────────────

    def get(self, key: str) -> Document | None:
        """Child of a mapping node, or ``None`` when the key is absent."""
        mapping = self.as_mapping()
        if key not in mapping:
            return None
        return Document(mapping[key], _join(self._path, key))

    def __getitem__(self, key: str | int) -> Document:
        if isinstance(key, int):
            items = self.as_sequence()
            if not -len(items) <= key < len(items):
                raise IndexError(f"{_join(self._path, key)}: index out of range")
            return Document(items[key], _join(self._path, key))
        child = self.get(key)
        if child is None:
            raise KeyError(_join(self._path, key))
        return child

    def __contains__(self, key: str) -> bool:
        return isinstance(self._value, dict) and key in self._value

    def __bool__(self) -> bool:
        return True

    def __len__(self) -> int:
        if isinstance(self._value, (dict, list)):
            return len(self._value)
        raise self._mismatch("mapping or sequence")

    def keys(self) -> list[str]:
        return list(self.as_mapping().keys())

    def items(self) -> Iterator[tuple[str, Document]]:
        for key, value in self.as_mapping().items():
            yield key, Document(value, _join(self._path, key))

    def __iter__(self) -> Iterator[Document]:
        for index, value in enumerate(self.as_sequence()):
            yield Document(value, _join(self._path, index))

    def find(self, path: str) -> Document | None:
        """Walk a dotted path (``projects.0.identifier``).

        Returns ``None`` when any segment is missing or null. A segment that
        lands on a scalar raises :class:`DocumentTypeError`.
        """
        node: Document = self
        for segment in path.split(".") if path else []:
            if node.is_null:
                return None
            if node.kind is NodeKind.SEQUENCE and segment.lstrip("-").isdigit():
                index = int(segment)
                items = node.as_sequence()
                if not -len(items) <= index < len(items):
                    return None
                node = Document(items[index], _join(node._path, segment))
                continue
            child = node.get(segment)
            if child is None:
                return None
            node = child
        return None if node.is_null else node

    # ── Defaulting lookups used by the extractor ─────────────────────

    def str_at(self, path: str, default: str = "") -> str:
        node = self.find(path)
        return default if node is None else node.as_str()

    def int_at(self, path: str, default: int = 0) -> int:
        node = self.find(path)
        return default if node is None else node.as_int()

    def bool_at(self, path: str, default: bool = False) -> bool:
        node = self.find(path)
        return default if node is None else node.as_bool()

    def mapping_at(self, path: str) -> Document | None:
        node = self.find(path)
        if node is not None and node.kind is not NodeKind.MAPPING:
            raise node._mismatch(NodeKind.MAPPING)
        return node

    def sequence_at(self, path: str) -> list[Document]:
        node = self.find(path)
        if node is None:
            return []
        return list(node)

    def scalar_at(self, path: str, default: Any = _MISSING) -> Any:
        """A scalar of any kind (string, number, bool) at *path*."""
        node = self.find(path)
        if node is None:
            if default is _MISSING:
                raise KeyError(path)
            return default
        if node.kind in (NodeKind.MAPPING, NodeKind.SEQUENCE):
            raise node._mismatch("scalar")
        return node._value


__all__ = ["Document", "NodeKind", "kind_of", "normalize"]
