"""
Descriptor synthesis for translationCore and translationStudio manifests.

tC/tS ``manifest.json`` files describe a single translated book, and they
carry no subject, title or flavor. Those fields are synthesized here and
nowhere else:

translationCore (``tc_version >= 7``)
    Always an aligned Bible book: subject ``Aligned Bible``, format
    ``usfm``, flavor ``scripture``/``textTranslation``, versification
    ``ufw``. The book file is ``<repo name>.usfm``.

translationStudio (``package_version >= 3``)
    The resource id (``resource.id``, or ``resource_id`` in packages older
    than version 5) decides between Open Bible Stories (``obs``:
    ``gloss``/``textStories``) and Bible text (``scripture``/
    ``textTranslation``). Content is plain ``text``; versification is
    ``ufw`` except for OBS. Missing resource and project names default to
    the upper-cased ids.

Title
    The resource name, followed by `` - <project name>`` unless the
    resource is OBS or the name already contains the project name.
"""

from __future__ import annotations

from dataclasses import dataclass

from catalog_spine.manifest.document import Document
from catalog_spine.manifest.families import SchemaFamily

OBS_RESOURCE = "obs"


@dataclass(frozen=True)
class LegacyDescriptor:
    """Fields synthesized from a tC/tS manifest."""

    metadata_type: str
    metadata_version: str
    subject: str
    flavor_type: str
    flavor: str
    content_format: str
    title: str
    abbreviation: str
    project_id: str
    project_name: str
    book_path: str
    versification: str | None


def _title(resource_id: str, resource_name: str, project_name: str) -> str:
    title = resource_name
    if resource_id.lower() != OBS_RESOURCE and project_name and project_name.lower() not in title.lower():
        if title:
            title += " - "
        title += project_name
    return title


def describe_legacy_manifest(
    document: Document, family: SchemaFamily, repo_name: str | None = None
) -> LegacyDescriptor:
    """Synthesize subject, title and flavor for a tC or tS manifest."""
    project_id = document.str_at("project.id")
    project_name = document.str_at("project.name")
    resource_id = document.str_at("resource.id")
    resource_name = document.str_at("resource.name")

    if family is SchemaFamily.TC:
        version = document.int_at("tc_version")
        book_file = repo_name or project_id
        return LegacyDescriptor(
            metadata_type="tc",
            metadata_version=str(version),
            subject="Aligned Bible",
            flavor_type="scripture",
            flavor="textTranslation",
            content_format="usfm",
            title=_title(resource_id, resource_name, project_name),
            abbreviation=resource_id.lower(),
            project_id=project_id,
            project_name=project_name,
            book_path=f"./{book_file}.usfm",
            versification="ufw",
        )

    if family is not SchemaFamily.TS:
        raise ValueError(f"not a legacy manifest family: {family.value}")

    version = document.int_at("package_version")
    resource_id = resource_id or document.str_at("resource_id")
    resource_name = resource_name or resource_id.upper()
    project_name = project_name or project_id.upper()
    is_obs = resource_id == OBS_RESOURCE
    return LegacyDescriptor(
        metadata_type="ts",
        metadata_version=str(version),
        subject="Open Bible Stories" if is_obs else "Bible",
        flavor_type="gloss" if is_obs else "scripture",
        flavor="textStories" if is_obs else "textTranslation",
        content_format="text",
        title=_title(resource_id, resource_name, project_name),
        abbreviation=resource_id.lower(),
        project_id=project_id,
        project_name=project_name,
        book_path=".",
        versification=None if is_obs else "ufw",
    )


__all__ = ["LegacyDescriptor", "describe_legacy_manifest"]
