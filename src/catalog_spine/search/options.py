"""
Search options: facets, keywords, stage ceiling, sort and paging.

:class:`SearchCatalogOptions` is what HTTP handlers and the CLI build from
query parameters. Parsing helpers raise :class:`RequestValidationError` for
anything the caller got wrong (unknown stage or sort key, bad page).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from catalog_spine.core.errors import RequestValidationError
from catalog_spine.stage import Stage, parse_stage

SORT_KEYS: tuple[str, ...] = ("title", "subject", "identifier", "reponame", "tag", "released", "lang", "stage")


@dataclass(frozen=True)
class SortKey:
    name: str
    descending: bool = False

    def __str__(self) -> str:
        return f"{self.name}:{'desc' if self.descending else 'asc'}"


DEFAULT_SORT: tuple[SortKey, ...] = (
    SortKey("lang"),
    SortKey("subject"),
    SortKey("tag", descending=True),
)


def split_keywords(query: str) -> list[str]:
    """Split *query* at commas that are not inside double quotes.

    Quotes are dropped and blank tokens skipped::

        >>> split_keywords('bible, "Open Bible Stories, v2", gen')
        ['bible', 'Open Bible Stories, v2', 'gen']
    """
    tokens: list[str] = []
    current: list[str] = []
    quoted = False
    for char in query:
        if char == '"':
            quoted = not quoted
        elif char == "," and not quoted:
            tokens.append("".join(current))
            current = []
        else:
            current.append(char)
    tokens.append("".join(current))
    return [token.strip() for token in tokens if token.strip()]


def split_values(values: str | Iterable[str] | None) -> list[str]:
    """Facet values from a string or list, splitting comma-joined entries."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    result: list[str] = []
    for value in values:
        result.extend(split_keywords(value))
    return result


def _parse_direction(value: str, key: str) -> bool:
    direction = value.strip().lower()
    if direction not in ("asc", "desc"):
        raise RequestValidationError(
            f"invalid sort order {value!r} for {key!r}; expected asc or desc",
            field_name="order",
            value=value,
        )
    return direction == "desc"


def parse_sort(sort: str | Sequence[str] | None, order: str | Sequence[str] | None = None) -> tuple[SortKey, ...]:
    """Sort keys from ``"title"``, ``"title:desc"`` or ``["lang", "released:desc"]``.

    *order* supplies directions positionally for keys written without one.
    An empty sort yields :data:`DEFAULT_SORT`.
    """
    names = split_values(sort)
    if not names:
        return DEFAULT_SORT
    orders = split_values(order)
    keys: list[SortKey] = []
    for index, item in enumerate(names):
        name, _, direction = item.partition(":")
        name = name.strip().lower()
        if name not in SORT_KEYS:
            raise RequestValidationError(
                f"unknown sort key {name!r}; expected one of {', '.join(SORT_KEYS)}",
                field_name="sort",
                value=item,
            )
        if not direction and index < len(orders):
            direction = orders[index]
        keys.append(SortKey(name, _parse_direction(direction, name) if direction else False))
    return tuple(keys)


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("", "0", "false", "no", "off"):
        return False
    raise RequestValidationError(f"{name} must be a boolean", field_name=name, value=value)


def _parse_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise RequestValidationError(f"{name} must be an integer", field_name=name, value=value) from None


@dataclass(frozen=True)
class SearchCatalogOptions:
    """Catalog search request.

    Facet lists combine with AND across facets and OR within one facet.
    ``partial_match`` switches every text facet from case-insensitive
    equality to substring matching. ``stage`` is a ceiling: ``Production``
    returns only production entries, ``Latest`` returns every stage.
    """

    keywords: tuple[str, ...] = ()
    include_metadata: bool = False
    owners: tuple[str, ...] = ()
    repos: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    subjects: tuple[str, ...] = ()
    books: tuple[str, ...] = ()
    checking_levels: tuple[int, ...] = ()
    metadata_types: tuple[str, ...] = ()
    metadata_versions: tuple[str, ...] = ()
    content_formats: tuple[str, ...] = ()
    partial_match: bool = False
    stage: Stage = Stage.PRODUCTION
    include_history: bool = False
    page: int = 1
    page_size: int = 0
    sort: tuple[SortKey, ...] = field(default=DEFAULT_SORT)

    def __post_init__(self) -> None:
        if self.page < 1:
            raise RequestValidationError("page must be at least 1", field_name="page", value=self.page)
        if self.page_size < 0:
            raise RequestValidationError("page size cannot be negative", field_name="limit", value=self.page_size)
        for level in self.checking_levels:
            if level < 1:
                raise RequestValidationError(
                    "checking level must be at least 1", field_name="checkingLevel", value=level
                )

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> SearchCatalogOptions:
        """Build options from query-string style parameters.

        Recognized keys: ``q``, ``owner``, ``repo``, ``tag``, ``lang``,
        ``subject``, ``book``, ``checkingLevel``, ``metadataType``,
        ``metadataVersion``, ``format``, ``stage``, ``includeHistory``,
        ``includeMetadata``, ``partialMatch``, ``sort``, ``order``,
        ``page``, ``limit``. Values may be strings or lists of strings.
        """

        def values(key: str) -> tuple[str, ...]:
            return tuple(split_values(params.get(key)))

        def scalar(key: str, default: Any) -> Any:
            value = params.get(key, default)
            if isinstance(value, (list, tuple)):
                return value[-1] if value else default
            return value

        return cls(
            keywords=values("q"),
            include_metadata=_parse_bool(scalar("includeMetadata", False), "includeMetadata"),
            owners=values("owner"),
            repos=values("repo"),
            tags=values("tag"),
            languages=values("lang"),
            subjects=values("subject"),
            books=values("book"),
            checking_levels=tuple(_parse_int(v, "checkingLevel") for v in values("checkingLevel")),
            metadata_types=values("metadataType"),
            metadata_versions=values("metadataVersion"),
            content_formats=values("format"),
            partial_match=_parse_bool(scalar("partialMatch", False), "partialMatch"),
            stage=parse_stage(scalar("stage", Stage.PRODUCTION)),
            include_history=_parse_bool(scalar("includeHistory", False), "includeHistory"),
            page=_parse_int(scalar("page", 1), "page"),
            page_size=_parse_int(scalar("limit", 0), "limit"),
            sort=parse_sort(params.get("sort"), params.get("order")),
        )


__all__ = [
    "SearchCatalogOptions",
    "SortKey",
    "SORT_KEYS",
    "DEFAULT_SORT",
    "parse_sort",
    "split_keywords",
    "split_values",
]
