"""SQLAlchemy 2.0 ORM table definitions for catalog-spine.

Two groups of tables live here:

* **Catalog tables** owned by the pipeline: ``catalog_entry`` (one row per
  repository + release, ``release_id = 0`` for the default branch) and
  ``catalog_diagnostic`` (the last validation failure per repository +
  release).
* **Hosting tables** read by the pipeline: ``repository`` and ``release``.
  The hosting platform owns these rows; the pipeline only reads them through
  :mod:`catalog_spine.store.providers`. They are declared so that search can
  join on visibility flags and so tests and the CLI can seed them.

Column conventions:

* ``*_unix`` columns -> ``BigInteger`` seconds since the epoch
* ``is_*`` columns -> ``Boolean``
* ``books`` / ``ingredients`` / ``metadata`` -> ``JSON``

Usage::

    from catalog_spine.core.orm import CatalogBase, create_catalog_engine

    engine = create_catalog_engine("sqlite:///catalog.db")
    CatalogBase.metadata.create_all(engine)
"""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Boolean, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from catalog_spine.core.orm.base import CatalogBase, UnixTimestampMixin

# =============================================================================
# Hosting tables (read-only for the pipeline)
# =============================================================================


class RepositoryTable(CatalogBase):
    __tablename__ = "repository"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    owner_name: Mapped[str] = mapped_column(Text, nullable=False)
    lower_owner_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    lower_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    default_branch: Mapped[str] = mapped_column(Text, nullable=False, default="master")
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (UniqueConstraint("lower_owner_name", "lower_name", name="uq_repository_owner_name"),)


class ReleaseTable(CatalogBase):
    __tablename__ = "release"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    repo_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    tag_name: Mapped[str] = mapped_column(Text, nullable=False)
    lower_tag_name: Mapped[str] = mapped_column(Text, nullable=False)
    target: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_draft: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_prerelease: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_tag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_unix: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("repo_id", "lower_tag_name", name="uq_release_repo_tag"),)


# =============================================================================
# Catalog tables
# =============================================================================


class CatalogEntryTable(UnixTimestampMixin, CatalogBase):
    __tablename__ = "catalog_entry"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    repo_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    release_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    ref: Mapped[str] = mapped_column(Text, nullable=False)
    ref_type: Mapped[str] = mapped_column(Text, nullable=False)
    commit_sha: Mapped[str] = mapped_column(Text, nullable=False)
    stage: Mapped[int] = mapped_column(Integer, nullable=False)

    metadata_type: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_version: Mapped[str] = mapped_column(Text, nullable=False)

    language: Mapped[str] = mapped_column(Text, nullable=False, default="")
    language_title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    language_direction: Mapped[str] = mapped_column(Text, nullable=False, default="ltr")
    language_is_gl: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    subject: Mapped[str] = mapped_column(Text, nullable=False, default="")
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    abbreviation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    flavor_type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    flavor: Mapped[str] = mapped_column(Text, nullable=False, default="")
    checking_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    content_format: Mapped[str] = mapped_column(Text, nullable=False, default="")
    rights: Mapped[str] = mapped_column(Text, nullable=False, default="")
    books: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    ingredients: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # ``metadata`` is reserved on declarative classes
    manifest: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    release_date_unix: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    validation_error: Mapped[dict | None] = mapped_column(JSON(none_as_null=True), nullable=True, default=None)

    __table_args__ = (
        UniqueConstraint("repo_id", "release_id", name="uq_catalog_entry_repo_release"),
        Index("ix_catalog_entry_repo_stage_date", "repo_id", "stage", "release_date_unix"),
        Index("ix_catalog_entry_language", "language"),
        Index("ix_catalog_entry_subject", "subject"),
    )


class CatalogDiagnosticTable(CatalogBase):
    __tablename__ = "catalog_diagnostic"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    repo_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    release_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    ref: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    error_type: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    rendered: Mapped[str] = mapped_column(Text, nullable=False, default="")
    detail: Mapped[dict | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    created_unix: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (UniqueConstraint("repo_id", "release_id", name="uq_catalog_diagnostic_repo_release"),)
