"""
CatalogSynchronizer: keep one catalog entry per (repository, release) in
step with the manifest at that ref.

Decision flow for ``sync(repo, release)``::

    repo (re-read) gone/private/archived ───────► delete all entries
    release tag-only / not a catalog version ───► delete entry
    resolve commit (GitError propagates, never deletes)
    read metadata.json → manifest.json → manifest.yaml
        none present ───────────────────────────► delete entry (confirmed absent)
        malformed ──────────────────────────────► delete entry + diagnostic
    validate (SchemaUnavailableError propagates)
        invalid ────────────────────────────────► delete entry + diagnostic
    extract, compare with stored entry
        equal ──────────────────────────────────► no write
        different / missing ────────────────────► upsert

Release id 0 stands for the default branch. Every decision is published on
the event bus as ``catalog.<action>``; a sync that raises publishes
``catalog.failed`` before the error propagates.
"""

from __future__ import annotations

import threading
from typing import Any

from catalog_spine.core.errors import (
    DocumentTypeError,
    ErrorContext,
    MalformedDocumentError,
    NotCatalogEligible,
    categorize_error,
    is_retryable,
)
from catalog_spine.core.events import EventBus, get_event_bus, publish_event
from catalog_spine.core.logging import LogContext, get_logger
from catalog_spine.extract import FieldExtractor
from catalog_spine.git import Commit, GitBackend, repository_path
from catalog_spine.manifest import MANIFEST_FILES, Document, ManifestReader, SchemaFamily, detect_schema_family
from catalog_spine.models import (
    DEFAULT_BRANCH_RELEASE_ID,
    REF_TYPE_BRANCH,
    REF_TYPE_TAG,
    CatalogEntry,
    Release,
    Repository,
)
from catalog_spine.schema import SchemaValidator, ValidationResult, render_validation_text
from catalog_spine.stage import Stage, classify_stage, is_catalog_version
from catalog_spine.store import CatalogStore, ReleaseProvider, RepositoryProvider
from catalog_spine.sync.outcome import SweepReport, SyncAction, SyncOutcome

logger = get_logger(__name__)

EVENT_SOURCE = "catalog.sync"


class _Invalid(Exception):
    """Internal signal: the manifest exists but cannot be cataloged."""

    def __init__(self, error_type: str, message: str, metadata_type: str, result: ValidationResult | None = None):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.metadata_type = metadata_type
        self.result = result


def _stored_values(entry: CatalogEntry) -> dict[str, Any]:
    """Stored entry as the value dict the synchronizer writes."""
    return {
        "ref": entry.ref,
        "ref_type": entry.ref_type,
        "commit_sha": entry.commit_sha,
        "stage": int(entry.stage),
        "release_date_unix": entry.release_date_unix,
        "validation_error": entry.validation_error,
        "metadata_type": entry.metadata_type,
        "metadata_version": entry.metadata_version,
        "language": entry.language,
        "language_title": entry.language_title,
        "language_direction": entry.language_direction,
        "language_is_gl": entry.language_is_gl,
        "subject": entry.subject,
        "title": entry.title,
        "abbreviation": entry.abbreviation,
        "flavor_type": entry.flavor_type,
        "flavor": entry.flavor,
        "checking_level": entry.checking_level,
        "content_format": entry.content_format,
        "rights": entry.rights,
        "books": entry.books,
        "ingredients": [i.to_dict() for i in entry.ingredients],
        "manifest": entry.metadata,
    }


class CatalogSynchronizer:
    """Maintains catalog entries from repository manifests."""

    def __init__(
        self,
        store: CatalogStore,
        repositories: RepositoryProvider,
        releases: ReleaseProvider,
        git: GitBackend,
        validator: SchemaValidator,
        extractor: FieldExtractor,
        *,
        reader: ManifestReader | None = None,
        bus: EventBus | None = None,
    ):
        self._store = store
        self._repositories = repositories
        self._releases = releases
        self._git = git
        self._validator = validator
        self._extractor = extractor
        self._reader = reader or ManifestReader()
        self._bus = bus

    @property
    def bus(self) -> EventBus:
        return self._bus or get_event_bus()

    # ── Public API ───────────────────────────────────────────────────

    def sync(self, repo: Repository, release: Release | None = None) -> SyncOutcome:
        """Sync the default branch (``release=None``) or *release* of *repo*.

        Raises:
            SchemaUnavailableError: no schema could be loaded for the manifest
            GitError: the repository or ref could not be opened
            StoreError: the catalog store failed
        """
        release_id = release.id if release is not None else DEFAULT_BRANCH_RELEASE_ID
        ref = release.tag_name if release is not None else repo.default_branch
        with LogContext(repo_id=repo.id, release_id=release_id, ref=ref):
            try:
                outcome = self._sync(repo, release, release_id, ref)
            except Exception as e:
                self._fail(repo.id, release_id, ref, e)
                raise
            return self._publish(outcome)

    def sync_pair(self, repo_id: int, release_id: int) -> SyncOutcome:
        """Sync by ids; release id 0 is the default branch."""
        try:
            repo = self._repositories.get_repository(repo_id)
            release = None
            if repo is not None and release_id != DEFAULT_BRANCH_RELEASE_ID:
                release = self._releases.get_release(release_id)
        except Exception as e:
            self._fail(repo_id, release_id, "", e)
            raise
        if repo is None:
            return self._publish(SyncOutcome(SyncAction.SKIPPED, repo_id, release_id, error="repository not found"))
        if release_id == DEFAULT_BRANCH_RELEASE_ID:
            return self.sync(repo)
        if release is None or release.repo_id != repo_id:
            return self.delete_release(repo_id, release_id)
        return self.sync(repo, release)

    def sync_tag(self, repo: Repository, tag_name: str) -> SyncOutcome:
        """Sync the release published for *tag_name*; a bare tag is not eligible."""
        release = self._releases.get_release_by_tag(repo.id, tag_name)
        if release is None:
            logger.info("catalog_tag_without_release", repo_id=repo.id, ref=tag_name)
            return self._publish(
                SyncOutcome(SyncAction.SKIPPED, repo.id, -1, ref=tag_name, error="tag has no release")
            )
        return self.sync(repo, release)

    def sync_all(self, cancel: threading.Event | None = None) -> SweepReport:
        """Sync every candidate pair; failures are isolated per pair.

        *cancel* is checked between pairs, so a pair in progress always
        finishes.
        """
        report = SweepReport()
        candidates = self._store.candidates()
        logger.info("catalog_sweep_started", candidates=len(candidates))
        for repo_id, release_id in candidates:
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                logger.info("catalog_sweep_cancelled", processed=report.processed)
                break
            try:
                outcome = self.sync_pair(repo_id, release_id)
            except Exception as e:
                logger.warning(
                    "catalog_sweep_item_failed",
                    repo_id=repo_id,
                    release_id=release_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                outcome = SyncOutcome(SyncAction.FAILED, repo_id, release_id, error=str(e))
            report.record(outcome)
        logger.info("catalog_sweep_finished", **report.to_dict())
        return report

    def delete_release(self, repo_id: int, release_id: int, ref: str = "") -> SyncOutcome:
        """Remove the entry of a deleted release."""
        with LogContext(repo_id=repo_id, release_id=release_id, ref=ref):
            try:
                removed = self._store.delete(repo_id, release_id)
                self._store.clear_diagnostic(repo_id, release_id)
            except Exception as e:
                self._fail(repo_id, release_id, ref, e)
                raise
            if removed:
                logger.info("catalog_entry_deleted", reason="release deleted")
                return self._publish(SyncOutcome(SyncAction.DELETED, repo_id, release_id, ref=ref, removed=1))
            return self._publish(SyncOutcome(SyncAction.SKIPPED, repo_id, release_id, ref=ref))

    def delete_branch(self, repo: Repository, ref: str) -> SyncOutcome:
        """Remove the entry of a deleted branch; only the default branch has one."""
        with LogContext(repo_id=repo.id, release_id=DEFAULT_BRANCH_RELEASE_ID, ref=ref):
            try:
                removed = self._store.delete_ref(repo.id, ref)
            except Exception as e:
                self._fail(repo.id, DEFAULT_BRANCH_RELEASE_ID, ref, e)
                raise
            action = SyncAction.DELETED if removed else SyncAction.SKIPPED
            if removed:
                logger.info("catalog_entry_deleted", reason="branch deleted", removed=removed)
            return self._publish(
                SyncOutcome(action, repo.id, DEFAULT_BRANCH_RELEASE_ID, ref=ref, removed=removed)
            )

    def purge(self, repo_id: int) -> SyncOutcome:
        """Remove every entry of a deleted, archived or private repository."""
        with LogContext(repo_id=repo_id):
            try:
                removed = self._store.delete_all(repo_id)
            except Exception as e:
                self._fail(repo_id, DEFAULT_BRANCH_RELEASE_ID, "", e)
                raise
            logger.info("catalog_repository_purged", removed=removed)
            action = SyncAction.DELETED if removed else SyncAction.SKIPPED
            return self._publish(SyncOutcome(action, repo_id, DEFAULT_BRANCH_RELEASE_ID, removed=removed))

    # ── Decision flow ────────────────────────────────────────────────

    def _sync(self, repo: Repository, release: Release | None, release_id: int, ref: str) -> SyncOutcome:
        # *repo* may be a snapshot taken when the work was queued
        current = self._repositories.get_repository(repo.id)
        if current is None or current.is_hidden:
            removed = self._store.delete_all(repo.id)
            logger.info("catalog_repository_hidden", removed=removed, exists=current is not None)
            action = SyncAction.DELETED if removed else SyncAction.SKIPPED
            return SyncOutcome(action, repo.id, release_id, ref=ref, removed=removed)
        repo = current

        if release is not None and (release.is_tag or not is_catalog_version(release.tag_name)):
            reason = "tag without release" if release.is_tag else "not a catalog version"
            return self._remove(repo.id, release_id, ref, None, reason)

        stage = classify_stage(
            release is not None,
            is_draft=release.is_draft if release is not None else False,
            is_prerelease=release.is_prerelease if release is not None else False,
        )
        commit = self._resolve_commit(repo, release)
        try:
            document, source, family = self._read_manifest(commit)
            values = self._entry_values(repo, release, commit, stage, document, source, family)
        except NotCatalogEligible as e:
            return self._remove(repo.id, release_id, ref, stage, e.message)
        except _Invalid as invalid:
            return self._invalidate(repo.id, release_id, ref, stage, invalid)

        existing = self._store.get(repo.id, release_id)
        if existing is not None and _stored_values(existing) == values:
            self._store.clear_diagnostic(repo.id, release_id)
            logger.info("catalog_entry_unchanged")
            return SyncOutcome(SyncAction.UNCHANGED, repo.id, release_id, ref=ref, stage=stage, entry=existing)

        entry = self._store.upsert(repo.id, release_id, values)
        self._store.clear_diagnostic(repo.id, release_id)
        logger.info(
            "catalog_entry_upserted",
            stage=stage.label,
            metadata_type=entry.metadata_type,
            created=existing is None,
        )
        return SyncOutcome(SyncAction.SYNCED, repo.id, release_id, ref=ref, stage=stage, entry=entry)

    def _resolve_commit(self, repo: Repository, release: Release | None) -> Commit:
        git_repo = self._git.open_repository(repository_path(repo.owner_name, repo.name))
        try:
            if release is None:
                return git_repo.get_branch_commit(repo.default_branch)
            if release.is_draft:
                # A draft has no tag yet
                return git_repo.get_branch_commit(release.target or repo.default_branch)
            return git_repo.get_tag_commit(release.tag_name)
        finally:
            git_repo.close()

    def _read_manifest(self, commit: Commit) -> tuple[Document, str, SchemaFamily]:
        """First cataloged manifest at *commit*.

        Raises:
            NotCatalogEligible: no manifest file is present
        """
        for name in MANIFEST_FILES:
            try:
                document = self._reader.read(commit, name)
            except MalformedDocumentError as e:
                family = detect_schema_family(Document(None), name)
                raise _Invalid("malformed", e.message, family.metadata_type if family else "") from e
            if document is None:
                continue
            family = detect_schema_family(document, name)
            if family is None:
                logger.debug("manifest_not_cataloged", path=name)
                continue
            return document, name, family
        raise NotCatalogEligible("no manifest at commit", context=ErrorContext(ref=commit.id))

    def _entry_values(
        self,
        repo: Repository,
        release: Release | None,
        commit: Commit,
        stage: Stage,
        document: Document,
        source: str,
        family: SchemaFamily,
    ) -> dict[str, Any]:
        result = self._validator.validate(document, family, source=source)
        if not result.valid:
            raise _Invalid("validation", result.message, family.metadata_type, result)
        try:
            fields = self._extractor.extract(document, family, repo_name=repo.name)
        except DocumentTypeError as e:
            raise _Invalid("extraction", e.message, family.metadata_type) from e

        return {
            "ref": release.tag_name if release is not None else repo.default_branch,
            "ref_type": REF_TYPE_TAG if release is not None else REF_TYPE_BRANCH,
            "commit_sha": commit.id,
            "stage": int(stage),
            "release_date_unix": release.created_unix if release is not None else commit.author_time,
            "validation_error": None,
            **fields.column_values(),
        }

    # ── Outcomes ─────────────────────────────────────────────────────

    def _remove(
        self, repo_id: int, release_id: int, ref: str, stage: Stage | None, reason: str
    ) -> SyncOutcome:
        removed = self._store.delete(repo_id, release_id)
        self._store.clear_diagnostic(repo_id, release_id)
        if removed:
            logger.info("catalog_entry_deleted", reason=reason)
            return SyncOutcome(SyncAction.DELETED, repo_id, release_id, ref=ref, stage=stage, removed=1)
        logger.debug("catalog_not_eligible", reason=reason)
        return SyncOutcome(SyncAction.SKIPPED, repo_id, release_id, ref=ref, stage=stage, error=reason)

    def _invalidate(
        self, repo_id: int, release_id: int, ref: str, stage: Stage, invalid: _Invalid
    ) -> SyncOutcome:
        removed = self._store.delete(repo_id, release_id)
        if invalid.result is not None:
            rendered = render_validation_text(invalid.result)
            detail = invalid.result.to_dict()
        else:
            rendered = f"Invalid: {invalid.message}"
            detail = {"message": invalid.message, "causes": []}
        self._store.record_diagnostic(
            repo_id,
            release_id,
            ref=ref,
            metadata_type=invalid.metadata_type,
            error_type=invalid.error_type,
            message=invalid.message,
            rendered=rendered,
            detail=detail,
        )
        logger.info("catalog_manifest_invalid", error_type=invalid.error_type, removed=removed, detail=rendered)
        return SyncOutcome(
            SyncAction.INVALID,
            repo_id,
            release_id,
            ref=ref,
            stage=stage,
            error=invalid.message,
            removed=int(removed),
        )

    def _fail(self, repo_id: int, release_id: int, ref: str, error: Exception) -> None:
        logger.error(
            "catalog_sync_failed",
            error=str(error),
            error_type=type(error).__name__,
            category=categorize_error(error).value,
            retryable=is_retryable(error),
        )
        self._publish(SyncOutcome(SyncAction.FAILED, repo_id, release_id, ref=ref, error=str(error)))

    def _publish(self, outcome: SyncOutcome) -> SyncOutcome:
        publish_event(outcome.event_type, EVENT_SOURCE, outcome.to_payload(), bus=self.bus)
        return outcome


__all__ = ["CatalogSynchronizer", "EVENT_SOURCE"]
