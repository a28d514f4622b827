"""
Manifest builders for every schema family.

Each ``*_manifest`` function returns a plain dict that validates against
the bundled schema of its family; keyword arguments override the common
fields. ``*_yaml`` / ``*_json`` encode the dict the way it would sit in a
repository.
"""

from __future__ import annotations

import json
from typing import Any

import yaml


def rc_manifest(
    *,
    language: str = "en",
    language_title: str = "English",
    direction: str = "ltr",
    subject: str = "Bible",
    identifier: str = "ult",
    title: str = "unfoldingWord Literal Text",
    version: str = "42",
    checking_level: Any = "3",
    books: tuple[str, ...] = ("gen", "exo"),
    dc_format: str = "text/usfm3",
    **dublin_core: Any,
) -> dict[str, Any]:
    return {
        "dublin_core": {
            "conformsto": "rc0.2",
            "format": dc_format,
            "identifier": identifier,
            "language": {"identifier": language, "title": language_title, "direction": direction},
            "rights": "CC BY-SA 4.0",
            "subject": subject,
            "title": title,
            "type": "bundle",
            "version": version,
            **dublin_core,
        },
        "checking": {"checking_entity": ["unfoldingWord"], "checking_level": checking_level},
        "projects": [
            {"identifier": book, "path": f"./{index:02d}-{book.upper()}.usfm", "sort": index}
            for index, book in enumerate(books, start=1)
        ],
    }


def rc_yaml(manifest: dict[str, Any] | None = None, **kwargs: Any) -> bytes:
    return yaml.safe_dump(manifest or rc_manifest(**kwargs), allow_unicode=True, sort_keys=False).encode("utf-8")


def sb_metadata(
    *,
    name: str = "Biblia Libre",
    abbreviation: str = "BL",
    language: str = "es",
    language_name: str = "Spanish",
    flavor_type: str = "scripture",
    flavor: str = "textTranslation",
    books: tuple[str, ...] = ("MAT", "MRK"),
) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "format": "scripture burrito",
        "meta": {"version": "1.0.0", "category": "source", "defaultLocale": "en"},
        "identification": {"name": {"en": name}, "abbreviation": {"en": abbreviation}},
        "languages": [{"tag": language, "name": {"en": language_name}}],
        "type": {"flavorType": {"name": flavor_type, "flavor": {"name": flavor}}},
    }
    if flavor_type == "scripture":
        metadata["localizedNames"] = {book: {"short": {"en": book.title()}} for book in books}
        metadata["ingredients"] = {
            f"ingredients/{book}.usfm": {"mimeType": "text/x-usfm", "scope": {book: []}}
            for book in books
        }
    return metadata


def sb_json(metadata: dict[str, Any] | None = None, **kwargs: Any) -> bytes:
    return json.dumps(metadata or sb_metadata(**kwargs)).encode("utf-8")


def tc_manifest(
    *,
    language: str = "hi",
    language_name: str = "Hindi",
    book: str = "tit",
    book_name: str = "Titus",
    resource_id: str = "ult",
    resource_name: str = "unfoldingWord Literal Text",
    tc_version: int = 7,
) -> dict[str, Any]:
    return {
        "tc_version": tc_version,
        "target_language": {"id": language, "name": language_name, "direction": "ltr"},
        "project": {"id": book, "name": book_name},
        "resource": {"id": resource_id, "name": resource_name},
    }


def ts_manifest(
    *,
    language: str = "sw",
    language_name: str = "Kiswahili",
    project: str = "obs",
    project_name: str = "",
    resource_id: str = "obs",
    package_version: int = 6,
) -> dict[str, Any]:
    manifest: dict[str, Any] = {
        "package_version": package_version,
        "format": "markdown",
        "target_language": {"id": language, "name": language_name, "direction": "ltr"},
        "project": {"id": project},
    }
    if project_name:
        manifest["project"]["name"] = project_name
    if package_version < 5:
        manifest["resource_id"] = resource_id
    else:
        manifest["resource"] = {"id": resource_id}
    return manifest


def legacy_json(manifest: dict[str, Any]) -> bytes:
    return json.dumps(manifest).encode("utf-8")
