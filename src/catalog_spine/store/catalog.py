"""
CatalogStore: persistence for catalog entries and validation diagnostics.

Every public method runs in its own short transaction. No lock is held
across calls, so the synchronizer's "read existing, then write" sequence
is not isolated; that is acceptable because every write is idempotent.

Atomicity:
    - ``upsert`` inserts or updates the single ``(repo_id, release_id)``
      row. A concurrent insert of the same key surfaces as an
      ``IntegrityError``, which is retried once as an update (last writer
      wins).
    - ``delete_all`` removes every entry of a repository in one statement.

All SQLAlchemy failures are re-raised as :class:`StoreError`.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import delete, literal, select, union
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from catalog_spine.core.errors import StoreError
from catalog_spine.core.logging import get_logger
from catalog_spine.core.orm import (
    CatalogDiagnosticTable,
    CatalogEntryTable,
    ReleaseTable,
    RepositoryTable,
    unix_now,
)
from catalog_spine.models import (
    DEFAULT_BRANCH_RELEASE_ID,
    REF_TYPE_BRANCH,
    CatalogDiagnostic,
    CatalogEntry,
)
from catalog_spine.stage import Stage

logger = get_logger(__name__)


class CatalogStore:
    """Reads and writes ``catalog_entry`` and ``catalog_diagnostic`` rows."""

    def __init__(self, session_factory: sessionmaker[Any]):
        self._session_factory = session_factory

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Transaction scope that commits on success and maps errors to :class:`StoreError`."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"catalog store failure: {e}", cause=e)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ── Entries ──────────────────────────────────────────────────────

    def get(self, repo_id: int, release_id: int) -> CatalogEntry | None:
        with self.session_scope() as session:
            row = session.scalars(
                select(CatalogEntryTable).where(
                    CatalogEntryTable.repo_id == repo_id,
                    CatalogEntryTable.release_id == release_id,
                )
            ).one_or_none()
            return CatalogEntry.from_row(row) if row is not None else None

    def list_for_repo(self, repo_id: int) -> list[CatalogEntry]:
        with self.session_scope() as session:
            rows = session.scalars(
                select(CatalogEntryTable)
                .where(CatalogEntryTable.repo_id == repo_id)
                .order_by(CatalogEntryTable.release_id)
            ).all()
            return [CatalogEntry.from_row(row) for row in rows]

    def _write(self, repo_id: int, release_id: int, values: dict[str, Any]) -> CatalogEntry:
        now = unix_now()
        with self.session_scope() as session:
            row = session.scalars(
                select(CatalogEntryTable).where(
                    CatalogEntryTable.repo_id == repo_id,
                    CatalogEntryTable.release_id == release_id,
                )
            ).one_or_none()
            if row is None:
                row = CatalogEntryTable(
                    repo_id=repo_id,
                    release_id=release_id,
                    created_unix=now,
                    updated_unix=now,
                    **values,
                )
                session.add(row)
            else:
                for key, value in values.items():
                    setattr(row, key, value)
                row.updated_unix = now
            session.flush()
            return CatalogEntry.from_row(row)

    def upsert(self, repo_id: int, release_id: int, values: dict[str, Any]) -> CatalogEntry:
        """Insert or update the entry for ``(repo_id, release_id)``.

        *values* holds column attributes (``ref``, ``stage``, ``manifest`` ...);
        bookkeeping timestamps are set here.
        """
        try:
            entry = self._write(repo_id, release_id, values)
        except StoreError as e:
            if not isinstance(e.cause, IntegrityError):
                raise
            logger.debug("catalog_entry_upsert_retry", repo_id=repo_id, release_id=release_id)
            entry = self._write(repo_id, release_id, values)
        logger.debug("catalog_entry_written", repo_id=repo_id, release_id=release_id, entry_id=entry.id)
        return entry

    def delete(self, repo_id: int, release_id: int) -> bool:
        with self.session_scope() as session:
            result = session.execute(
                delete(CatalogEntryTable).where(
                    CatalogEntryTable.repo_id == repo_id,
                    CatalogEntryTable.release_id == release_id,
                )
            )
            return result.rowcount > 0

    def delete_ref(self, repo_id: int, ref: str) -> int:
        """Delete branch entries of *repo_id* extracted from branch *ref*."""
        with self.session_scope() as session:
            result = session.execute(
                delete(CatalogEntryTable).where(
                    CatalogEntryTable.repo_id == repo_id,
                    CatalogEntryTable.ref_type == REF_TYPE_BRANCH,
                    CatalogEntryTable.ref == ref,
                )
            )
            return result.rowcount

    def delete_all(self, repo_id: int) -> int:
        """Delete every entry and diagnostic of a repository."""
        with self.session_scope() as session:
            result = session.execute(delete(CatalogEntryTable).where(CatalogEntryTable.repo_id == repo_id))
            session.execute(delete(CatalogDiagnosticTable).where(CatalogDiagnosticTable.repo_id == repo_id))
            return result.rowcount

    def get_latest_for_stage(self, repo_id: int, stage: Stage) -> CatalogEntry | None:
        """Most recent entry of exactly *stage* (ties: greatest ref)."""
        with self.session_scope() as session:
            row = session.scalars(
                select(CatalogEntryTable)
                .where(
                    CatalogEntryTable.repo_id == repo_id,
                    CatalogEntryTable.stage == int(stage),
                    CatalogEntryTable.validation_error.is_(None),
                )
                .order_by(CatalogEntryTable.release_date_unix.desc(), CatalogEntryTable.ref.desc())
                .limit(1)
            ).first()
            return CatalogEntry.from_row(row) if row is not None else None

    # ── Sweep candidates ─────────────────────────────────────────────

    def candidates(self) -> list[tuple[int, int]]:
        """``(repo_id, release_id)`` pairs that have no catalog entry yet.

        Non-tag, non-draft releases without a row, plus the default branch
        (release 0) of every repository without a row, ordered by repository
        then release.
        """
        releases = (
            select(ReleaseTable.repo_id.label("repo_id"), ReleaseTable.id.label("release_id"))
            .outerjoin(
                CatalogEntryTable,
                (CatalogEntryTable.repo_id == ReleaseTable.repo_id)
                & (CatalogEntryTable.release_id == ReleaseTable.id),
            )
            .where(
                ReleaseTable.is_tag.is_(False),
                ReleaseTable.is_draft.is_(False),
                CatalogEntryTable.id.is_(None),
            )
        )
        branches = (
            select(
                RepositoryTable.id.label("repo_id"),
                literal(DEFAULT_BRANCH_RELEASE_ID).label("release_id"),
            )
            .outerjoin(
                CatalogEntryTable,
                (CatalogEntryTable.repo_id == RepositoryTable.id)
                & (CatalogEntryTable.release_id == DEFAULT_BRANCH_RELEASE_ID),
            )
            .where(CatalogEntryTable.id.is_(None))
        )
        combined = union(releases, branches).subquery()
        stmt = select(combined.c.repo_id, combined.c.release_id).order_by(
            combined.c.repo_id, combined.c.release_id
        )
        with self.session_scope() as session:
            return [(int(repo_id), int(release_id)) for repo_id, release_id in session.execute(stmt)]

    # ── Diagnostics ──────────────────────────────────────────────────

    def record_diagnostic(
        self,
        repo_id: int,
        release_id: int,
        *,
        ref: str,
        metadata_type: str,
        error_type: str,
        message: str,
        rendered: str = "",
        detail: dict[str, Any] | None = None,
    ) -> None:
        """Store the latest failure for ``(repo_id, release_id)``, replacing any earlier one."""
        with self.session_scope() as session:
            row = session.scalars(
                select(CatalogDiagnosticTable).where(
                    CatalogDiagnosticTable.repo_id == repo_id,
                    CatalogDiagnosticTable.release_id == release_id,
                )
            ).one_or_none()
            if row is None:
                row = CatalogDiagnosticTable(repo_id=repo_id, release_id=release_id)
                session.add(row)
            row.ref = ref
            row.metadata_type = metadata_type
            row.error_type = error_type
            row.message = message
            row.rendered = rendered
            row.detail = detail
            row.created_unix = unix_now()

    def clear_diagnostic(self, repo_id: int, release_id: int) -> bool:
        with self.session_scope() as session:
            result = session.execute(
                delete(CatalogDiagnosticTable).where(
                    CatalogDiagnosticTable.repo_id == repo_id,
                    CatalogDiagnosticTable.release_id == release_id,
                )
            )
            return result.rowcount > 0

    def get_diagnostic(self, repo_id: int, release_id: int) -> CatalogDiagnostic | None:
        with self.session_scope() as session:
            row = session.scalars(
                select(CatalogDiagnosticTable).where(
                    CatalogDiagnosticTable.repo_id == repo_id,
                    CatalogDiagnosticTable.release_id == release_id,
                )
            ).one_or_none()
            return CatalogDiagnostic.from_row(row) if row is not None else None


__all__ = ["CatalogStore"]
