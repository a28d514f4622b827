"""
Structured error types for the catalog pipeline.

Every failure the pipeline can produce is a :class:`CatalogError` carrying a
category, an explicit retry flag, structured context and an optional chained
cause. Callers decide what to do with a failure by its *type*, not by parsing
messages.

Manifesto:
    The catalog pipeline has two very different kinds of failure. Some are
    *verdicts* about content (the manifest is missing, unparsable, or does not
    match its schema) and resolve to "no catalog entry". Others are
    *infrastructure* failures (schemas could not be loaded, the store is down)
    and must propagate so the next sweep retries them. Conflating the two
    either leaves stale rows behind or deletes rows on a transient blip.

    - **Typed taxonomy:** One class per outcome the synchronizer distinguishes
    - **Explicit retry semantics:** Each error knows if a re-run can help
    - **Rich context:** repo_id / release_id / ref travel with the error
    - **Error chaining:** The underlying decoder or driver error is preserved

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       CatalogError                              │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                 │
        │  NotCatalogEligible   MalformedDocumentError   StoreError       │
        │  (SOURCE)             (PARSE, line/column)     (DATABASE)       │
        │                                                                 │
        │  SchemaValidationFailed   SchemaUnavailableError                │
        │  (VALIDATION, result)     (SOURCE, retryable)                   │
        │                                                                 │
        │  DocumentTypeError    RequestValidationError   GitError         │
        │  (PARSE, path)        (VALIDATION)             RefNotFoundError │
        └─────────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise NotCatalogEligible for a decode failure
    ✅ DO: Use MalformedDocumentError so the existing entry is removed

    ❌ DON'T: Swallow SchemaUnavailableError as "invalid manifest"
    ✅ DO: Propagate it; no validation verdict was reached

Tags:
    error-handling, exception-hierarchy, retry-logic, catalog-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from catalog_spine.schema.validator import ValidationResult


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Infrastructure errors (usually transient)
    NETWORK = "NETWORK"           # Schema fetch, connection failures
    DATABASE = "DATABASE"         # Catalog store failures

    # Source/data errors
    SOURCE = "SOURCE"             # Git repository, ref or file access
    PARSE = "PARSE"               # YAML/JSON decoding, document shape
    VALIDATION = "VALIDATION"     # Schema verdicts, bad request options

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"

    # Internal errors
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a catalog error.

    Attributes:
        repo_id: Repository the failing operation was working on
        release_id: Release identifier (0 for the default branch)
        ref: Branch or tag name
        path: File path inside the ref (``manifest.yaml``, ...)
        url: Remote URL being accessed (schema fetches)
        metadata: Additional key-value pairs
    """

    repo_id: int | None = None
    release_id: int | None = None
    ref: str | None = None
    path: str | None = None
    url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["repo_id", "release_id", "ref", "path", "url"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CatalogError(Exception):
    """
    Base exception for all catalog pipeline errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that a
    bare ``raise SomeError("...")`` already carries the right semantics.

    Examples:
        >>> error = StoreError("insert failed").with_context(repo_id=5)
        >>> error.context.repo_id
        5
        >>> error.to_dict()["category"]
        'DATABASE'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CatalogError:
        """
        Add context to this error (fluent API).

        Usage:
            raise RefNotFoundError("no such tag").with_context(
                repo_id=repo.id, ref="v1"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging and outcome events."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context = self.context.to_dict()
        if context:
            result["context"] = context
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONTENT VERDICTS
# =============================================================================


class NotCatalogEligible(CatalogError):
    """The ref carries no manifest; a no-op signal, not a failure.

    Raised while the synchronizer looks up the manifest and handled there as
    "remove the entry if one exists"; callers of ``sync`` never see it.
    """

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class MalformedDocumentError(CatalogError):
    """A manifest blob could not be decoded as YAML or JSON."""

    default_category = ErrorCategory.PARSE
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.line = line
        self.column = column

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.line is not None:
            result["line"] = self.line
        if self.column is not None:
            result["column"] = self.column
        return result


class DocumentTypeError(CatalogError):
    """A typed accessor found a value of the wrong kind in a document."""

    default_category = ErrorCategory.PARSE
    default_retryable = False

    def __init__(self, path: str, expected: str, actual: str):
        super().__init__(f"expected {expected} at '{path or '<root>'}', found {actual}")
        self.path = path
        self.expected = expected
        self.actual = actual


class SchemaValidationFailed(CatalogError):
    """A decoded manifest does not satisfy its schema family."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(self, result: ValidationResult, **kwargs: Any):
        super().__init__(result.message or "manifest failed schema validation", **kwargs)
        self.result = result

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["validation"] = self.result.to_dict()
        return result


class RequestValidationError(CatalogError):
    """Search options that cannot be turned into a query."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(self, message: str, *, field_name: str | None = None, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.value = value


# =============================================================================
# INFRASTRUCTURE
# =============================================================================


class SchemaUnavailableError(CatalogError):
    """Neither the remote nor the bundled schema could be loaded or compiled."""

    default_category = ErrorCategory.SOURCE
    default_retryable = True


class GitError(CatalogError):
    """The repository could not be opened or read."""

    default_category = ErrorCategory.SOURCE
    default_retryable = True


class RefNotFoundError(GitError):
    """A branch or tag does not exist in the repository."""

    default_retryable = False


class StoreError(CatalogError):
    """Catalog store read/write failure."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


class ConfigError(CatalogError):
    """Invalid or missing configuration."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check whether re-triggering the operation may succeed."""
    if isinstance(error, CatalogError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError, OSError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, CatalogError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CatalogError",
    # Content verdicts
    "NotCatalogEligible",
    "MalformedDocumentError",
    "DocumentTypeError",
    "SchemaValidationFailed",
    "RequestValidationError",
    # Infrastructure
    "SchemaUnavailableError",
    "GitError",
    "RefNotFoundError",
    "StoreError",
    "ConfigError",
    # Utilities
    "is_retryable",
    "categorize_error",
]
