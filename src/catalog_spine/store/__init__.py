"""Catalog persistence: entry store, hosting providers and condition builders."""

from catalog_spine.store.catalog import CatalogStore
from catalog_spine.store.providers import ReleaseProvider, RepositoryProvider, SqlHostingProvider
from catalog_spine.store.querybuilder import select_latest_per_group

__all__ = [
    "CatalogStore",
    "ReleaseProvider",
    "RepositoryProvider",
    "SqlHostingProvider",
    "select_latest_per_group",
]
