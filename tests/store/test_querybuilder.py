"""Tests for the SQL condition builders."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from catalog_spine.core.orm import CatalogEntryTable
from catalog_spine.stage import Stage
from catalog_spine.store.querybuilder import (
    all_of,
    any_of,
    escape_like,
    icontains,
    iequals,
    istartswith,
    json_array_contains,
    json_text_contains,
    select_latest_per_group,
)
from tests._support.entries import entry_values


def _refs(store, condition) -> list[str]:
    with store.session_scope() as session:
        stmt = select(CatalogEntryTable.ref).where(condition).order_by(CatalogEntryTable.ref)
        return list(session.scalars(stmt))


class TestLatestPerGroup:
    def test_one_row_per_group(self, store):
        store.upsert(1, 1, entry_values(ref="a1", released=100))
        store.upsert(1, 2, entry_values(ref="a2", released=300))
        store.upsert(1, 3, entry_values(ref="a3", released=200))
        store.upsert(2, 1, entry_values(ref="b1", released=50))
        latest = select_latest_per_group(CatalogEntryTable, ("repo_id",), "release_date_unix")
        assert _refs(store, latest) == ["a2", "b1"]

    def test_ties_keep_greatest_tie_breaker(self, store):
        store.upsert(1, 1, entry_values(ref="first", released=100))
        store.upsert(1, 2, entry_values(ref="second", released=100))
        latest = select_latest_per_group(CatalogEntryTable, ("repo_id",), "release_date_unix")
        assert _refs(store, latest) == ["second"]

    def test_scope_limits_competitors(self, store):
        store.upsert(1, 1, entry_values(ref="prod", released=100))
        store.upsert(1, 2, entry_values(ref="pre", released=200, stage=Stage.PRE_PRODUCTION))
        latest = select_latest_per_group(
            CatalogEntryTable,
            ("repo_id",),
            "release_date_unix",
            scope=lambda t: [t.stage <= int(Stage.PRODUCTION)],
        )
        condition = all_of([CatalogEntryTable.stage <= int(Stage.PRODUCTION), latest])
        assert _refs(store, condition) == ["prod"]
        unscoped = select_latest_per_group(CatalogEntryTable, ("repo_id",), "release_date_unix")
        assert _refs(store, all_of([CatalogEntryTable.stage <= int(Stage.PRODUCTION), unscoped])) == []

    def test_needs_group_key(self):
        with pytest.raises(ValueError):
            select_latest_per_group(CatalogEntryTable, (), "release_date_unix")


class TestTextMatching:
    def test_escape_like(self):
        assert escape_like("100%_a\\b") == "100\\%\\_a\\\\b"

    def test_case_insensitive_matchers(self, store):
        store.upsert(1, 1, entry_values(ref="v1", title="Unlocked Literal Bible"))
        store.upsert(2, 1, entry_values(ref="v2", title="Open Bible Stories"))
        assert _refs(store, iequals(CatalogEntryTable.title, "open bible stories")) == ["v2"]
        assert _refs(store, icontains(CatalogEntryTable.title, "BIBLE")) == ["v1", "v2"]
        assert _refs(store, istartswith(CatalogEntryTable.title, "unlocked")) == ["v1"]

    def test_like_wildcards_are_literal(self, store):
        store.upsert(1, 1, entry_values(ref="v1", title="100% done"))
        store.upsert(2, 1, entry_values(ref="v2", title="1000 done"))
        assert _refs(store, icontains(CatalogEntryTable.title, "100%")) == ["v1"]

    def test_json_array_contains_whole_values(self, store):
        store.upsert(1, 1, entry_values(ref="v1", books=("gen", "exo")))
        store.upsert(2, 1, entry_values(ref="v2", books=("1jn",)))
        assert _refs(store, json_array_contains(CatalogEntryTable.books, "GEN")) == ["v1"]
        assert _refs(store, json_array_contains(CatalogEntryTable.books, "jn")) == []
        assert _refs(store, json_text_contains(CatalogEntryTable.books, "jn")) == ["v2"]


class TestCombinators:
    def test_any_of(self):
        assert any_of([]) is None
        single = iequals(CatalogEntryTable.title, "x")
        assert any_of([single]) is single

    def test_all_of_skips_none(self, store):
        store.upsert(1, 1, entry_values(ref="v1"))
        assert _refs(store, all_of([])) == ["v1"]
        assert _refs(store, all_of([None, iequals(CatalogEntryTable.ref, "v1")])) == ["v1"]
