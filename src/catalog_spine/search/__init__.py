"""Catalog search: options parsing and the query engine."""

from catalog_spine.search.engine import CatalogSearch, SearchResult
from catalog_spine.search.options import (
    DEFAULT_SORT,
    SearchCatalogOptions,
    SortKey,
    parse_sort,
    split_keywords,
)

__all__ = [
    "CatalogSearch",
    "SearchResult",
    "SearchCatalogOptions",
    "SortKey",
    "DEFAULT_SORT",
    "parse_sort",
    "split_keywords",
]
