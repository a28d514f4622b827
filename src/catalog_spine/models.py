"""
Domain records passed between the store, the synchronizer and search.

``Repository`` and ``Release`` are read-only views of hosting-platform rows.
``CatalogEntry`` and ``CatalogDiagnostic`` mirror the catalog tables and are
built from ORM rows with ``from_row`` so that nothing outside the store
holds a live SQLAlchemy object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from catalog_spine.core.orm.tables import (
    CatalogDiagnosticTable,
    CatalogEntryTable,
    ReleaseTable,
    RepositoryTable,
)
from catalog_spine.extract.fields import Ingredient
from catalog_spine.stage import Stage

DEFAULT_BRANCH_RELEASE_ID = 0

REF_TYPE_BRANCH = "branch"
REF_TYPE_TAG = "tag"


@dataclass(frozen=True)
class Repository:
    id: int
    owner_name: str
    name: str
    default_branch: str = "master"
    is_private: bool = False
    is_archived: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.owner_name}/{self.name}"

    @property
    def is_hidden(self) -> bool:
        """Private and archived repositories have no catalog entries."""
        return self.is_private or self.is_archived

    @classmethod
    def from_row(cls, row: RepositoryTable) -> Repository:
        return cls(
            id=row.id,
            owner_name=row.owner_name,
            name=row.name,
            default_branch=row.default_branch,
            is_private=bool(row.is_private),
            is_archived=bool(row.is_archived),
        )


@dataclass(frozen=True)
class Release:
    id: int
    repo_id: int
    tag_name: str
    is_draft: bool = False
    is_prerelease: bool = False
    is_tag: bool = False
    target: str = ""
    created_unix: int = 0

    @classmethod
    def from_row(cls, row: ReleaseTable) -> Release:
        return cls(
            id=row.id,
            repo_id=row.repo_id,
            tag_name=row.tag_name,
            is_draft=bool(row.is_draft),
            is_prerelease=bool(row.is_prerelease),
            is_tag=bool(row.is_tag),
            target=row.target,
            created_unix=row.created_unix,
        )


@dataclass(frozen=True)
class CatalogEntry:
    id: int
    repo_id: int
    release_id: int
    ref: str
    ref_type: str
    commit_sha: str
    stage: Stage
    metadata_type: str
    metadata_version: str
    language: str
    language_title: str
    language_direction: str
    language_is_gl: bool
    subject: str
    title: str
    abbreviation: str
    flavor_type: str
    flavor: str
    checking_level: int
    content_format: str
    rights: str
    books: list[str]
    ingredients: list[Ingredient]
    metadata: dict[str, Any] = field(compare=False)
    release_date_unix: int = 0
    validation_error: dict[str, Any] | None = None
    created_unix: int = 0
    updated_unix: int = 0

    @classmethod
    def from_row(cls, row: CatalogEntryTable) -> CatalogEntry:
        return cls(
            id=row.id,
            repo_id=row.repo_id,
            release_id=row.release_id,
            ref=row.ref,
            ref_type=row.ref_type,
            commit_sha=row.commit_sha,
            stage=Stage(row.stage),
            metadata_type=row.metadata_type,
            metadata_version=row.metadata_version,
            language=row.language,
            language_title=row.language_title,
            language_direction=row.language_direction,
            language_is_gl=bool(row.language_is_gl),
            subject=row.subject,
            title=row.title,
            abbreviation=row.abbreviation,
            flavor_type=row.flavor_type,
            flavor=row.flavor,
            checking_level=row.checking_level,
            content_format=row.content_format,
            rights=row.rights,
            books=list(row.books or []),
            ingredients=[Ingredient.from_dict(i) for i in row.ingredients or []],
            metadata=row.manifest or {},
            release_date_unix=row.release_date_unix,
            validation_error=row.validation_error,
            created_unix=row.created_unix,
            updated_unix=row.updated_unix,
        )


@dataclass(frozen=True)
class CatalogDiagnostic:
    repo_id: int
    release_id: int
    ref: str
    metadata_type: str
    error_type: str
    message: str
    rendered: str
    detail: dict[str, Any] | None
    created_unix: int

    @classmethod
    def from_row(cls, row: CatalogDiagnosticTable) -> CatalogDiagnostic:
        return cls(
            repo_id=row.repo_id,
            release_id=row.release_id,
            ref=row.ref,
            metadata_type=row.metadata_type,
            error_type=row.error_type,
            message=row.message,
            rendered=row.rendered,
            detail=row.detail,
            created_unix=row.created_unix,
        )


__all__ = [
    "Repository",
    "Release",
    "CatalogEntry",
    "CatalogDiagnostic",
    "DEFAULT_BRANCH_RELEASE_ID",
    "REF_TYPE_BRANCH",
    "REF_TYPE_TAG",
]
