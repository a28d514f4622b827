"""
FieldExtractor: project a validated manifest into catalog fields.

Extraction is pure and total over documents that passed validation for
their family: missing optional values get defaults instead of raising.

=====================  ================================================
Field                  Default
=====================  ================================================
``checking_level``     1
``rights``             ``CC BY-SA 4.0``
``language_direction`` ``ltr``
=====================  ================================================

Per family:

Resource Container 0.2
    ``dublin_core`` supplies subject, identifier (abbreviation), title,
    language and rights; ``dublin_core.conformsto`` (``rc0.2``) supplies
    metadata type and version; ``checking.checking_level`` may be a string
    or an integer. Books come from ``projects[].identifier``. Content
    format and flavor follow the subject:

    - Bible subjects: ``usfm``, ``scripture``/``textTranslation``
    - ``TSV ...``: ``tsv``, ``parascriptural``/``x-<Subject>``
    - ``Open Bible Stories``: ``markdown``, ``gloss``/``textStories``
    - otherwise the part of ``dublin_core.format`` after ``/``, else
      ``markdown``, with ``gloss``/``x-<Subject>``

Scripture Burrito 1.0
    Localized strings use ``en`` when present, else the first value.
    Language comes from ``languages[0]``, flavor type and flavor from
    ``type.flavorType``, and the subject is derived from the flavor.
    Ingredients come from scoped ``ingredients`` entries (or, failing that,
    ``localizedNames``).

translationCore / translationStudio
    See :mod:`catalog_spine.extract.legacy`.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from pathlib import PurePosixPath
from typing import Any

from catalog_spine.extract.books import book_categories, book_sort, book_title
from catalog_spine.extract.languages import LanguageTable
from catalog_spine.extract.legacy import describe_legacy_manifest
from catalog_spine.manifest.document import Document, NodeKind
from catalog_spine.manifest.families import SchemaFamily

DEFAULT_CHECKING_LEVEL = 1
DEFAULT_RIGHTS = "CC BY-SA 4.0"
DEFAULT_DIRECTION = "ltr"

BIBLE_SUBJECTS = frozenset({"Bible", "Aligned Bible", "Greek New Testament", "Hebrew Old Testament"})
OBS_SUBJECT = "Open Bible Stories"

_CONFORMS_TO = re.compile(r"^([^0-9]+)(.*)$")


@dataclass(frozen=True)
class Ingredient:
    """One project (book) of a resource."""

    identifier: str
    title: str = ""
    path: str = ""
    sort: int = 0
    categories: tuple[str, ...] = ()
    versification: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["categories"] = list(self.categories)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ingredient:
        return cls(
            identifier=data.get("identifier", ""),
            title=data.get("title", ""),
            path=data.get("path", ""),
            sort=data.get("sort", 0),
            categories=tuple(data.get("categories") or ()),
            versification=data.get("versification"),
        )


@dataclass(frozen=True)
class NormalizedFields:
    """Catalog fields derived from one manifest."""

    metadata_type: str
    metadata_version: str
    language: str = ""
    language_title: str = ""
    language_direction: str = DEFAULT_DIRECTION
    language_is_gl: bool = False
    subject: str = ""
    title: str = ""
    abbreviation: str = ""
    flavor_type: str = ""
    flavor: str = ""
    checking_level: int = DEFAULT_CHECKING_LEVEL
    content_format: str = ""
    rights: str = DEFAULT_RIGHTS
    ingredients: tuple[Ingredient, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def books(self) -> list[str]:
        return [ingredient.identifier for ingredient in self.ingredients]

    def column_values(self) -> dict[str, Any]:
        """Values for the descriptive columns of a catalog entry."""
        return {
            "metadata_type": self.metadata_type,
            "metadata_version": self.metadata_version,
            "language": self.language,
            "language_title": self.language_title,
            "language_direction": self.language_direction,
            "language_is_gl": self.language_is_gl,
            "subject": self.subject,
            "title": self.title,
            "abbreviation": self.abbreviation,
            "flavor_type": self.flavor_type,
            "flavor": self.flavor,
            "checking_level": self.checking_level,
            "content_format": self.content_format,
            "rights": self.rights,
            "books": self.books,
            "ingredients": [i.to_dict() for i in self.ingredients],
            "manifest": self.metadata,
        }


def localized_text(node: Document | None) -> str:
    """English value of a localized-text map, else its first value."""
    if node is None or node.kind is not NodeKind.MAPPING:
        return ""
    if "en" in node:
        return node.str_at("en")
    for _key, value in node.items():
        return value.as_str() if value.kind is NodeKind.STRING else ""
    return ""


def subject_from_flavor(flavor: str) -> str:
    """``textTranslation`` → ``Bible``, ``textStories`` → OBS, ``x-study-notes`` → ``Study Notes``."""
    if flavor == "textTranslation":
        return "Bible"
    if flavor == "textStories":
        return OBS_SUBJECT
    if flavor.startswith("x-"):
        return " ".join(part.capitalize() for part in re.split(r"[-_]", flavor[2:]) if part)
    return flavor


def parse_checking_level(value: Any) -> int:
    """Integer checking level from an int or numeric string; 1 otherwise."""
    if isinstance(value, bool):
        return DEFAULT_CHECKING_LEVEL
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return DEFAULT_CHECKING_LEVEL
    return DEFAULT_CHECKING_LEVEL


class FieldExtractor:
    """Builds :class:`NormalizedFields` from validated documents."""

    def __init__(self, languages: LanguageTable):
        self._languages = languages

    def extract(self, document: Document, family: SchemaFamily, *, repo_name: str | None = None) -> NormalizedFields:
        if family is SchemaFamily.RC02:
            return self._from_rc(document)
        if family is SchemaFamily.SB100:
            return self._from_sb(document)
        return self._from_legacy(document, family, repo_name)

    # ── Language helpers ─────────────────────────────────────────────

    def _language(self, code: str, title: str, direction: str) -> dict[str, Any]:
        return {
            "language": code,
            "language_title": title or self._languages.title(code),
            "language_direction": self._languages.direction(code) or direction or DEFAULT_DIRECTION,
            "language_is_gl": self._languages.is_gateway(code),
        }

    # ── Resource Container ───────────────────────────────────────────

    def _from_rc(self, document: Document) -> NormalizedFields:
        match = _CONFORMS_TO.match(document.str_at("dublin_core.conformsto"))
        if match:
            metadata_type, metadata_version = match.group(1), match.group(2)
        else:
            metadata_type, metadata_version = "rc", "0.2"

        subject = document.str_at("dublin_core.subject")
        abbreviation = document.str_at("dublin_core.identifier")
        dc_format = document.str_at("dublin_core.format")

        ingredients = []
        for project in document.sequence_at("projects"):
            if project.kind is not NodeKind.MAPPING:
                continue
            identifier = project.str_at("identifier")
            ingredients.append(
                Ingredient(
                    identifier=identifier,
                    title=project.str_at("title") or book_title(identifier),
                    path=project.str_at("path"),
                    sort=book_sort(identifier),
                    categories=tuple(book_categories(identifier)),
                    versification=project.str_at("versification") or None,
                )
            )

        if subject in BIBLE_SUBJECTS:
            content_format, flavor_type, flavor = "usfm", "scripture", "textTranslation"
        elif subject.startswith("TSV "):
            content_format = "tsv"
            flavor_type = "parascriptural"
            flavor = "x-" + subject[len("TSV "):].replace(" ", "")
        elif subject == OBS_SUBJECT:
            content_format, flavor_type, flavor = "markdown", "gloss", "textStories"
        else:
            content_format = dc_format.split("/")[1] if "/" in dc_format else "markdown"
            flavor_type = "gloss"
            flavor = "x-" + subject.replace(" ", "")

        return NormalizedFields(
            metadata_type=metadata_type,
            metadata_version=metadata_version,
            subject=subject,
            title=document.str_at("dublin_core.title"),
            abbreviation=abbreviation,
            flavor_type=flavor_type,
            flavor=flavor,
            checking_level=parse_checking_level(document.scalar_at("checking.checking_level", None)),
            content_format=content_format,
            rights=document.str_at("dublin_core.rights") or DEFAULT_RIGHTS,
            ingredients=tuple(ingredients),
            metadata=document.to_python(),
            **self._language(
                document.str_at("dublin_core.language.identifier"),
                document.str_at("dublin_core.language.title"),
                document.str_at("dublin_core.language.direction"),
            ),
        )

    # ── Scripture Burrito ────────────────────────────────────────────

    def _from_sb(self, document: Document) -> NormalizedFields:
        title = localized_text(document.find("identification.name"))
        flavor_type = document.str_at("type.flavorType.name")
        flavor = document.str_at("type.flavorType.flavor.name")
        subject = subject_from_flavor(flavor)
        localized_names = document.mapping_at("localizedNames")

        content_format = ""
        ingredients: list[Ingredient] = []
        if flavor_type == "scripture":
            scoped = document.mapping_at("ingredients")
            if scoped is not None:
                for file_path, ingredient in scoped.items():
                    scope = ingredient.mapping_at("scope") if ingredient.kind is NodeKind.MAPPING else None
                    if scope is None or len(scope) == 0:
                        continue
                    book_id = scope.keys()[0]
                    names = localized_names.get(book_id) if localized_names is not None else None
                    if names is None:
                        continue
                    path = f"./{file_path}"
                    if path.endswith(".usfm"):
                        content_format = "usfm"
                    elif not content_format:
                        content_format = PurePosixPath(path).suffix.lstrip(".")
                    ingredients.append(self._sb_book(book_id, names, path))
            elif localized_names is not None:
                content_format = "usfm"
                for book_id, names in localized_names.items():
                    ingredients.append(self._sb_book(book_id, names, f"./ingredients/{book_id}.usfm"))
        elif flavor_type == "gloss" and flavor == "textStories":
            content_format = "markdown"
            ingredients.append(Ingredient(identifier="obs", title=title, path="./ingredients"))

        ingredients.sort(key=lambda i: (i.sort, i.identifier))
        languages = document.sequence_at("languages")
        first = languages[0] if languages else None
        language = self._language(
            first.str_at("tag") if first is not None else "",
            localized_text(first.find("name")) if first is not None else "",
            first.str_at("scriptDirection") if first is not None else "",
        )
        # Table title wins over the burrito's own language name
        if first is not None and self._languages.title(language["language"]):
            language["language_title"] = self._languages.title(language["language"])

        return NormalizedFields(
            metadata_type="sb",
            metadata_version=document.str_at("meta.version"),
            subject=subject,
            title=title,
            abbreviation=localized_text(document.find("identification.abbreviation")).lower(),
            flavor_type=flavor_type,
            flavor=flavor,
            checking_level=DEFAULT_CHECKING_LEVEL,
            content_format=content_format,
            ingredients=tuple(ingredients),
            metadata=document.to_python(),
            **language,
        )

    @staticmethod
    def _sb_book(book_id: str, names: Document, path: str) -> Ingredient:
        short = names.find("short") if names.kind is NodeKind.MAPPING else None
        return Ingredient(
            identifier=book_id,
            title=localized_text(short) or book_title(book_id),
            path=path,
            sort=book_sort(book_id),
            categories=tuple(book_categories(book_id)),
        )

    # ── translationCore / translationStudio ──────────────────────────

    def _from_legacy(self, document: Document, family: SchemaFamily, repo_name: str | None) -> NormalizedFields:
        descriptor = describe_legacy_manifest(document, family, repo_name)
        ingredient = Ingredient(
            identifier=descriptor.project_id,
            title=descriptor.project_name,
            path=descriptor.book_path,
            sort=book_sort(descriptor.project_id),
            categories=tuple(book_categories(descriptor.project_id)),
            versification=descriptor.versification,
        )
        return NormalizedFields(
            metadata_type=descriptor.metadata_type,
            metadata_version=descriptor.metadata_version,
            subject=descriptor.subject,
            title=descriptor.title,
            abbreviation=descriptor.abbreviation,
            flavor_type=descriptor.flavor_type,
            flavor=descriptor.flavor,
            checking_level=DEFAULT_CHECKING_LEVEL,
            content_format=descriptor.content_format,
            ingredients=(ingredient,),
            metadata=document.to_python(),
            **self._language(
                document.str_at("target_language.id"),
                document.str_at("target_language.name"),
                document.str_at("target_language.direction"),
            ),
        )


__all__ = [
    "FieldExtractor",
    "Ingredient",
    "NormalizedFields",
    "localized_text",
    "parse_checking_level",
    "subject_from_flavor",
    "DEFAULT_CHECKING_LEVEL",
    "DEFAULT_RIGHTS",
]
