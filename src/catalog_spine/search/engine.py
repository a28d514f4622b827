"""
CatalogSearch: faceted, paged queries over catalog entries.

The query is assembled from three groups of conditions::

    visibility   repository public and not archived, entry valid
    latest       one row per repository under the stage ceiling
                 (skipped when include_history is set)
    facets       AND across facets, OR within a facet, AND across keywords

The "latest" condition is computed over every valid entry of the
repository under the stage ceiling, before facets apply. A facet that
excludes the newest entry therefore excludes the repository rather than
surfacing an older entry.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.orm import sessionmaker

from catalog_spine.core.logging import get_logger
from catalog_spine.core.orm import CatalogEntryTable, RepositoryTable
from catalog_spine.models import CatalogEntry, Repository
from catalog_spine.search.options import SearchCatalogOptions, SortKey
from catalog_spine.store import CatalogStore
from catalog_spine.store.querybuilder import (
    all_of,
    any_of,
    icontains,
    iequals,
    istartswith,
    json_array_contains,
    json_text_contains,
    select_latest_per_group,
)

logger = get_logger(__name__)

SORT_COLUMNS: dict[str, Any] = {
    "title": CatalogEntryTable.title,
    "subject": CatalogEntryTable.subject,
    "identifier": CatalogEntryTable.abbreviation,
    "reponame": RepositoryTable.lower_name,
    "tag": CatalogEntryTable.ref,
    "released": CatalogEntryTable.release_date_unix,
    "lang": CatalogEntryTable.language,
    "stage": CatalogEntryTable.stage,
}


@dataclass
class SearchResult:
    entries: list[CatalogEntry]
    total_count: int
    page: int
    page_size: int
    repositories: dict[int, Repository] = field(default_factory=dict)

    def repository(self, entry: CatalogEntry) -> Repository:
        return self.repositories[entry.repo_id]


def _text_facet(column: Any, values: Iterable[str], partial: bool) -> ColumnElement[bool] | None:
    match: Callable[[Any, str], ColumnElement[bool]] = icontains if partial else iequals
    return any_of(match(column, value) for value in values)


def _language_facet(values: Iterable[str], partial: bool) -> ColumnElement[bool] | None:
    conditions = []
    for lang in values:
        if partial:
            conditions.append(icontains(CatalogEntryTable.language, lang))
        else:
            conditions.append(iequals(CatalogEntryTable.language, lang))
            conditions.append(istartswith(RepositoryTable.lower_name, f"{lang}_"))
    return any_of(conditions)


def _book_facet(values: Iterable[str], partial: bool) -> ColumnElement[bool] | None:
    match = json_text_contains if partial else json_array_contains
    return any_of(match(CatalogEntryTable.books, book) for book in values)


def _keyword(token: str, include_metadata: bool) -> ColumnElement[bool]:
    fields = [
        icontains(CatalogEntryTable.title, token),
        icontains(CatalogEntryTable.subject, token),
        icontains(RepositoryTable.lower_name, token),
        icontains(RepositoryTable.lower_owner_name, token),
    ]
    if include_metadata:
        fields.append(json_text_contains(CatalogEntryTable.manifest, token))
    condition = any_of(fields)
    assert condition is not None
    return condition


def _visible() -> list[ColumnElement[bool]]:
    return [
        RepositoryTable.is_private.is_(False),
        RepositoryTable.is_archived.is_(False),
        CatalogEntryTable.validation_error.is_(None),
    ]


def build_conditions(options: SearchCatalogOptions) -> ColumnElement[bool]:
    """Full WHERE clause for *options* (the statement must join ``repository``)."""
    ceiling = int(options.stage)
    conditions: list[ColumnElement[bool] | None] = [*_visible(), CatalogEntryTable.stage <= ceiling]

    if not options.include_history:
        conditions.append(
            select_latest_per_group(
                CatalogEntryTable,
                group_keys=("repo_id",),
                order_key="release_date_unix",
                scope=lambda t: [t.stage <= ceiling, t.validation_error.is_(None)],
            )
        )

    partial = options.partial_match
    conditions.extend(
        [
            _text_facet(RepositoryTable.lower_owner_name, options.owners, partial),
            _text_facet(RepositoryTable.lower_name, options.repos, partial),
            _text_facet(CatalogEntryTable.ref, options.tags, partial),
            _language_facet(options.languages, partial),
            _text_facet(CatalogEntryTable.subject, options.subjects, partial),
            _book_facet(options.books, partial),
            any_of(CatalogEntryTable.checking_level >= level for level in options.checking_levels),
            _text_facet(CatalogEntryTable.metadata_type, options.metadata_types, partial),
            _text_facet(CatalogEntryTable.metadata_version, options.metadata_versions, partial),
            _text_facet(CatalogEntryTable.content_format, options.content_formats, partial),
        ]
    )
    conditions.extend(_keyword(token, options.include_metadata) for token in options.keywords)
    return all_of(conditions)


def order_by(sort: Iterable[SortKey]) -> list[Any]:
    clauses = []
    for key in sort:
        column = SORT_COLUMNS[key.name]
        clauses.append(column.desc() if key.descending else column.asc())
    clauses.append(CatalogEntryTable.id.asc())
    return clauses


def _joined(stmt: Select[Any]) -> Select[Any]:
    return stmt.join(RepositoryTable, RepositoryTable.id == CatalogEntryTable.repo_id)


class CatalogSearch:
    """Read-only catalog queries; safe to share between threads."""

    def __init__(self, session_factory: sessionmaker[Any], *, default_page_size: int = 0, max_page_size: int = 500):
        self._store = CatalogStore(session_factory)
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    def effective_page_size(self, requested: int) -> int:
        """0 means "all rows"; anything else is capped at the configured maximum."""
        size = requested or self._default_page_size
        if size and self._max_page_size:
            size = min(size, self._max_page_size)
        return size

    def search(self, options: SearchCatalogOptions) -> SearchResult:
        """Run *options*; returns one page and the total match count.

        Raises:
            StoreError: the query failed
        """
        where = build_conditions(options)
        page_size = self.effective_page_size(options.page_size)

        count_stmt = _joined(select(func.count()).select_from(CatalogEntryTable)).where(where)
        rows_stmt = (
            _joined(select(CatalogEntryTable, RepositoryTable).select_from(CatalogEntryTable))
            .where(where)
            .order_by(*order_by(options.sort))
        )
        if page_size:
            rows_stmt = rows_stmt.limit(page_size).offset((options.page - 1) * page_size)

        with self._store.session_scope() as session:
            total = session.scalar(count_stmt) or 0
            entries: list[CatalogEntry] = []
            repositories: dict[int, Repository] = {}
            for entry_row, repo_row in session.execute(rows_stmt):
                entries.append(CatalogEntry.from_row(entry_row))
                repositories.setdefault(repo_row.id, Repository.from_row(repo_row))

        logger.debug(
            "catalog_search",
            total=total,
            returned=len(entries),
            page=options.page,
            page_size=page_size,
            stage=options.stage.label,
            include_history=options.include_history,
        )
        return SearchResult(entries, int(total), options.page, page_size, repositories)


__all__ = ["CatalogSearch", "SearchResult", "build_conditions", "order_by", "SORT_COLUMNS"]
