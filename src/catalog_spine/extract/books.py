"""Canonical USFM book identifiers, names and ordering."""

from __future__ import annotations

BOOK_NAMES: dict[str, str] = {
    "frt": "Front Matter",
    "bak": "Back Matter",
    "gen": "Genesis",
    "exo": "Exodus",
    "lev": "Leviticus",
    "num": "Numbers",
    "deu": "Deuteronomy",
    "jos": "Joshua",
    "jdg": "Judges",
    "rut": "Ruth",
    "1sa": "1 Samuel",
    "2sa": "2 Samuel",
    "1ki": "1 Kings",
    "2ki": "2 Kings",
    "1ch": "1 Chronicles",
    "2ch": "2 Chronicles",
    "ezr": "Ezra",
    "neh": "Nehemiah",
    "est": "Esther",
    "job": "Job",
    "psa": "Psalms",
    "pro": "Proverbs",
    "ecc": "Ecclesiastes",
    "sng": "Song of Solomon",
    "isa": "Isaiah",
    "jer": "Jeremiah",
    "lam": "Lamentations",
    "ezk": "Ezekiel",
    "dan": "Daniel",
    "hos": "Hosea",
    "jol": "Joel",
    "amo": "Amos",
    "oba": "Obadiah",
    "jon": "Jonah",
    "mic": "Micah",
    "nam": "Nahum",
    "hab": "Habakkuk",
    "zep": "Zephaniah",
    "hag": "Haggai",
    "zec": "Zechariah",
    "mal": "Malachi",
    "mat": "Matthew",
    "mrk": "Mark",
    "luk": "Luke",
    "jhn": "John",
    "act": "Acts",
    "rom": "Romans",
    "1co": "1 Corinthians",
    "2co": "2 Corinthians",
    "gal": "Galatians",
    "eph": "Ephesians",
    "php": "Philippians",
    "col": "Colossians",
    "1th": "1 Thessalonians",
    "2th": "2 Thessalonians",
    "1ti": "1 Timothy",
    "2ti": "2 Timothy",
    "tit": "Titus",
    "phm": "Philemon",
    "heb": "Hebrews",
    "jas": "James",
    "1pe": "1 Peter",
    "2pe": "2 Peter",
    "1jn": "1 John",
    "2jn": "2 John",
    "3jn": "3 John",
    "jud": "Jude",
    "rev": "Revelation",
    "obs": "Open Bible Stories",
}

# USFM book numbers; 40 is unused, so the New Testament starts at 41.
_OT_BOOKS = list(BOOK_NAMES)[2:41]
_NT_BOOKS = list(BOOK_NAMES)[41:68]

BOOK_NUMBERS: dict[str, int] = {
    **{book: number for number, book in enumerate(_OT_BOOKS, start=1)},
    **{book: number for number, book in enumerate(_NT_BOOKS, start=41)},
}


def is_valid_book(book: str) -> bool:
    """True for any canonical book identifier, front/back matter or ``obs``."""
    return book.lower() in BOOK_NAMES


def testament(book: str) -> str:
    """``ot``, ``nt`` or ``""`` for non-biblical identifiers."""
    number = BOOK_NUMBERS.get(book.lower(), 0)
    if 0 < number < 40:
        return "ot"
    if number > 40:
        return "nt"
    return ""


def book_categories(book: str) -> list[str]:
    found = testament(book)
    return [f"bible-{found}"] if found else []


def book_sort(book: str) -> int:
    """Canonical order (Genesis = 1, Matthew = 41); 0 when unknown or not a book."""
    return BOOK_NUMBERS.get(book.lower(), 0)


def book_title(book: str) -> str:
    return BOOK_NAMES.get(book.lower(), "")
