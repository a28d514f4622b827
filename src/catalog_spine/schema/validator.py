"""
SchemaValidator: validate a manifest document against its schema family.

A failed validation is a tree of :class:`ValidationCause` nodes. The root
node names the family; below it, errors are grouped by the top-level
manifest key they concern, and each leaf carries its full instance
location::

    <root>                              "manifest does not match the rc0.2 schema"
    ├── ""                              "'checking' is a required property"
    └── /dublin_core                    "validation failed"
        ├── /dublin_core/language       "'direction' is a required property"
        └── /dublin_core/subject        "'' is too short"

:func:`render_validation_text` prints the tree as indented bullets with
locations shown as dotted suffixes relative to their parent
(``language: ...``), children sorted by location. ``ValidationResult.to_dict``
is the JSON form stored with diagnostics.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from jsonschema.exceptions import ValidationError
from referencing.exceptions import Unresolvable

from catalog_spine.core.errors import SchemaUnavailableError, SchemaValidationFailed
from catalog_spine.core.logging import get_logger
from catalog_spine.manifest.document import Document
from catalog_spine.manifest.families import SchemaFamily, detect_schema_family
from catalog_spine.schema.cache import SchemaCache

logger = get_logger(__name__)

GROUP_MESSAGE = "validation failed"


@dataclass
class ValidationCause:
    """One node of a validation failure tree."""

    message: str
    instance_location: str = ""
    causes: list[ValidationCause] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "instance_location": self.instance_location,
            "causes": [cause.to_dict() for cause in self.causes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationCause:
        return cls(
            message=data.get("message", ""),
            instance_location=data.get("instance_location", ""),
            causes=[cls.from_dict(c) for c in data.get("causes", [])],
        )

    def leaves(self) -> list[ValidationCause]:
        if not self.causes:
            return [self]
        return [leaf for cause in self.causes for leaf in cause.leaves()]


@dataclass
class ValidationResult:
    """Outcome of validating one document."""

    family: SchemaFamily | None
    root: ValidationCause | None = None

    @property
    def valid(self) -> bool:
        return self.root is None

    @property
    def message(self) -> str:
        return "" if self.root is None else self.root.message

    @property
    def error_count(self) -> int:
        return 0 if self.root is None else len(self.root.leaves())

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "valid": self.valid,
            "family": self.family.value if self.family else None,
        }
        if self.root is not None:
            data.update(self.root.to_dict())
        return data

    @classmethod
    def ok(cls, family: SchemaFamily) -> ValidationResult:
        return cls(family=family)

    @classmethod
    def failed(
        cls, family: SchemaFamily | None, message: str, causes: list[ValidationCause] | None = None
    ) -> ValidationResult:
        return cls(family=family, root=ValidationCause(message=message, causes=causes or []))


# ── Tree building ────────────────────────────────────────────────────────


def _pointer(error: ValidationError) -> str:
    return "".join(f"/{part}" for part in error.absolute_path)


def _to_cause(error: ValidationError) -> ValidationCause:
    children = [_to_cause(sub) for sub in sorted(error.context or (), key=_pointer)]
    return ValidationCause(message=error.message, instance_location=_pointer(error), causes=children)


def build_cause_tree(errors: Iterable[ValidationError]) -> list[ValidationCause]:
    """Group raw ``jsonschema`` errors into per-top-level-key subtrees."""
    top: list[ValidationCause] = []
    groups: dict[str, list[ValidationCause]] = {}
    for error in errors:
        cause = _to_cause(error)
        path = list(error.absolute_path)
        if len(path) <= 1:
            top.append(cause)
        else:
            groups.setdefault(f"/{path[0]}", []).append(cause)
    for location, members in groups.items():
        top.append(ValidationCause(message=GROUP_MESSAGE, instance_location=location, causes=members))
    return top


# ── Rendering ────────────────────────────────────────────────────────────


def _render(cause: ValidationCause, parent: ValidationCause | None, padding: str, lines: list[str]) -> None:
    if parent is None:
        lines.append(f"{padding}Invalid: {cause.message.rstrip('#')}")
        if cause.causes:
            lines.append("* <root>:")
    else:
        loc = ""
        if cause.instance_location:
            suffix = cause.instance_location
            if suffix.startswith(parent.instance_location):
                suffix = suffix[len(parent.instance_location):]
            loc = suffix.strip("/").replace("/", ".")
            if loc:
                loc = f"{loc}: "
        lines.append(f"{padding}* {loc}{cause.message}")
    for child in sorted(cause.causes, key=lambda c: c.instance_location):
        _render(child, cause, padding + "  ", lines)


def render_validation_text(result: ValidationResult) -> str:
    """Indented text rendering of a failed result; empty for a valid one."""
    if result.root is None:
        return ""
    lines: list[str] = []
    _render(result.root, None, "", lines)
    return "\n".join(lines) + "\n"


# ── Validator ────────────────────────────────────────────────────────────


class SchemaValidator:
    """Validates documents with validators from a :class:`SchemaCache`."""

    def __init__(self, cache: SchemaCache):
        self._cache = cache

    @property
    def cache(self) -> SchemaCache:
        return self._cache

    def validate(
        self,
        document: Document,
        family: SchemaFamily | None = None,
        *,
        source: str | None = None,
    ) -> ValidationResult:
        """Validate *document*; the family is detected when not given.

        Raises:
            SchemaUnavailableError: the family's schema could not be loaded
        """
        family = family or detect_schema_family(document, source)
        if family is None:
            return ValidationResult.failed(None, "unrecognized manifest format")
        if document.is_null:
            return ValidationResult.failed(family, "file cannot be empty")

        compiled = self._cache.get(family)
        try:
            errors = sorted(compiled.iter_errors(document.to_python()), key=_pointer)
        except Unresolvable as e:
            raise SchemaUnavailableError(f"schema reference could not be resolved: {e}", cause=e)

        if not errors:
            return ValidationResult.ok(family)
        name = source or "manifest"
        result = ValidationResult.failed(
            family,
            f"{name} does not match the {family.value} schema",
            build_cause_tree(errors),
        )
        logger.debug("manifest_validation_failed", family=family.value, errors=result.error_count)
        return result

    def ensure_valid(
        self, document: Document, family: SchemaFamily | None = None, *, source: str | None = None
    ) -> SchemaFamily:
        """Validate and return the family, raising :class:`SchemaValidationFailed` on failure."""
        result = self.validate(document, family, source=source)
        if not result.valid:
            raise SchemaValidationFailed(result)
        assert result.family is not None
        return result.family


__all__ = [
    "SchemaValidator",
    "ValidationCause",
    "ValidationResult",
    "build_cause_tree",
    "render_validation_text",
]
