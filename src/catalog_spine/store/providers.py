"""
Repository and release providers.

The hosting platform owns repositories and releases; the pipeline reads
them through these two protocols. :class:`SqlHostingProvider` implements
both over the ``repository`` and ``release`` tables and also offers the
write helpers used by the CLI and tests to register hosting rows.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from catalog_spine.core.orm import ReleaseTable, RepositoryTable, unix_now
from catalog_spine.models import Release, Repository
from catalog_spine.store.catalog import CatalogStore


@runtime_checkable
class RepositoryProvider(Protocol):
    def get_repository(self, repo_id: int) -> Repository | None: ...

    def get_repository_by_name(self, owner_name: str, name: str) -> Repository | None: ...


@runtime_checkable
class ReleaseProvider(Protocol):
    def get_release(self, release_id: int) -> Release | None: ...

    def get_release_by_tag(self, repo_id: int, tag_name: str) -> Release | None: ...


class SqlHostingProvider:
    """Both providers over the hosting tables."""

    def __init__(self, session_factory: sessionmaker[Any]):
        # Reuses the store's transaction scope and error mapping
        self._store = CatalogStore(session_factory)

    # ── Reads ────────────────────────────────────────────────────────

    def get_repository(self, repo_id: int) -> Repository | None:
        with self._store.session_scope() as session:
            row = session.get(RepositoryTable, repo_id)
            return Repository.from_row(row) if row is not None else None

    def get_repository_by_name(self, owner_name: str, name: str) -> Repository | None:
        with self._store.session_scope() as session:
            row = session.scalars(
                select(RepositoryTable).where(
                    RepositoryTable.lower_owner_name == owner_name.lower(),
                    RepositoryTable.lower_name == name.lower(),
                )
            ).one_or_none()
            return Repository.from_row(row) if row is not None else None

    def get_release(self, release_id: int) -> Release | None:
        with self._store.session_scope() as session:
            row = session.get(ReleaseTable, release_id)
            return Release.from_row(row) if row is not None else None

    def get_release_by_tag(self, repo_id: int, tag_name: str) -> Release | None:
        with self._store.session_scope() as session:
            row = session.scalars(
                select(ReleaseTable).where(
                    ReleaseTable.repo_id == repo_id,
                    ReleaseTable.lower_tag_name == tag_name.lower(),
                )
            ).one_or_none()
            return Release.from_row(row) if row is not None else None

    def count_repositories(self) -> int:
        with self._store.session_scope() as session:
            return session.scalar(select(func.count()).select_from(RepositoryTable)) or 0

    # ── Writes ───────────────────────────────────────────────────────

    def add_repository(
        self,
        owner_name: str,
        name: str,
        *,
        default_branch: str = "master",
        is_private: bool = False,
        is_archived: bool = False,
        repo_id: int | None = None,
    ) -> Repository:
        with self._store.session_scope() as session:
            row = RepositoryTable(
                owner_name=owner_name,
                lower_owner_name=owner_name.lower(),
                name=name,
                lower_name=name.lower(),
                default_branch=default_branch,
                is_private=is_private,
                is_archived=is_archived,
            )
            if repo_id is not None:
                row.id = repo_id
            session.add(row)
            session.flush()
            return Repository.from_row(row)

    def update_repository(self, repo_id: int, **changes: Any) -> Repository:
        """Change flags or names of a repository (``is_archived=True`` ...)."""
        with self._store.session_scope() as session:
            row = session.get(RepositoryTable, repo_id)
            if row is None:
                raise KeyError(repo_id)
            for key, value in changes.items():
                setattr(row, key, value)
            if "name" in changes:
                row.lower_name = row.name.lower()
            if "owner_name" in changes:
                row.lower_owner_name = row.owner_name.lower()
            session.flush()
            return Repository.from_row(row)

    def add_release(
        self,
        repo_id: int,
        tag_name: str,
        *,
        is_draft: bool = False,
        is_prerelease: bool = False,
        is_tag: bool = False,
        target: str = "",
        created_unix: int | None = None,
        release_id: int | None = None,
    ) -> Release:
        with self._store.session_scope() as session:
            row = ReleaseTable(
                repo_id=repo_id,
                tag_name=tag_name,
                lower_tag_name=tag_name.lower(),
                is_draft=is_draft,
                is_prerelease=is_prerelease,
                is_tag=is_tag,
                target=target,
                created_unix=created_unix if created_unix is not None else unix_now(),
            )
            if release_id is not None:
                row.id = release_id
            session.add(row)
            session.flush()
            return Release.from_row(row)


__all__ = ["RepositoryProvider", "ReleaseProvider", "SqlHostingProvider"]
