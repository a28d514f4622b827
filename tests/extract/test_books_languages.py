"""Tests for book ordering and the language table."""

import json

import pytest

from catalog_spine.core.errors import ConfigError
from catalog_spine.extract import LanguageTable
from catalog_spine.extract.books import (
    BOOK_NUMBERS,
    book_categories,
    book_sort,
    book_title,
    is_valid_book,
    testament as book_testament,
)


class TestBooks:
    @pytest.mark.parametrize(
        "book, number",
        [("gen", 1), ("mal", 39), ("mat", 41), ("MRK", 42), ("tit", 57), ("rev", 67), ("obs", 0), ("xyz", 0)],
    )
    def test_book_sort(self, book, number):
        assert book_sort(book) == number

    def test_forty_is_unused(self):
        assert 40 not in BOOK_NUMBERS.values()
        assert len(BOOK_NUMBERS) == 66

    @pytest.mark.parametrize("book, expected", [("gen", "ot"), ("mal", "ot"), ("mat", "nt"), ("obs", ""), ("frt", "")])
    def test_testament(self, book, expected):
        assert book_testament(book) == expected

    def test_categories(self):
        assert book_categories("psa") == ["bible-ot"]
        assert book_categories("JHN") == ["bible-nt"]
        assert book_categories("obs") == []

    def test_titles(self):
        assert book_title("gen") == "Genesis"
        assert book_title("1JN") == "1 John"
        assert book_title("obs") == "Open Bible Stories"
        assert book_title("nope") == ""

    def test_valid_books(self):
        assert is_valid_book("GEN")
        assert is_valid_book("frt")
        assert not is_valid_book("abc")


class TestLanguageTable:
    def test_bundled_table(self):
        table = LanguageTable.load()
        assert "en" in table
        assert table.title("es") == "español"
        assert table.direction("ar") == "rtl"
        assert table.is_gateway("fr") is True
        assert table.is_gateway("es") is False

    def test_lookup_is_case_insensitive(self):
        table = LanguageTable([{"lc": "pt-BR", "ln": "Português", "ld": "ltr", "gw": True}])
        assert "PT-br" in table
        assert table.title("pt-br") == "Português"

    def test_unknown_language(self):
        table = LanguageTable([])
        assert table.title("xyz") == ""
        assert table.direction("xyz") == ""
        assert table.is_gateway("xyz") is False

    def test_bad_values_are_ignored(self):
        table = LanguageTable([{"lc": "qq", "ln": 7, "ld": "down", "gw": "yes"}, {"ln": "no code"}])
        assert len(table) == 1
        assert table.title("qq") == ""
        assert table.direction("qq") == ""
        assert table.is_gateway("qq") is False

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "langnames.json"
        path.write_text(json.dumps([{"lc": "yo", "ln": "Yorùbá", "ld": "ltr", "gw": False}]), encoding="utf-8")
        table = LanguageTable.load(path)
        assert len(table) == 1
        assert table.title("yo") == "Yorùbá"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            LanguageTable.load(tmp_path / "missing.json")
        assert exc_info.value.context.path.endswith("missing.json")

    def test_not_an_array(self, tmp_path):
        path = tmp_path / "langnames.json"
        path.write_text('{"lc": "en"}', encoding="utf-8")
        with pytest.raises(ConfigError, match="JSON array"):
            LanguageTable.load(path)
