"""
EventRouter: version-control lifecycle events → synchronizer calls.

=================================================  ===========================
Event                                              Action
=================================================  ===========================
repository created/migrated/forked/transferred/    sync default branch
renamed
push (default branch only)                         sync default branch
release created/updated (drafts ignored)           sync the release
release deleted                                    delete the release entry
branch deleted                                     delete the branch entry
repository deleted/archived/made private           delete every entry
=================================================  ===========================

Handlers never block the caller and never raise: work is queued on a
thread pool and the caller gets a ``Future`` resolving to a
:class:`SyncOutcome`. A failing sync resolves to a ``FAILED`` outcome; the
synchronizer has already published ``catalog.failed`` for it.

Work is single-flight per ``(repo_id, release_id)``. A request arriving
while the same key is running is coalesced into one rerun after the
running job finishes, so the final state reflects the latest request.

A purge (deleted, archived or made private) owns its repository: it starts
once that repository's running jobs have finished, and jobs submitted for
the repository meanwhile start after it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from contextlib import contextmanager
from enum import Enum
from typing import Any

from catalog_spine.core.events import Event, EventBus
from catalog_spine.core.logging import get_logger
from catalog_spine.models import DEFAULT_BRANCH_RELEASE_ID, Release, Repository
from catalog_spine.store import ReleaseProvider, RepositoryProvider
from catalog_spine.sync import CatalogSynchronizer, SyncAction, SyncOutcome

logger = get_logger(__name__)

_BRANCH_PREFIX = "refs/heads/"
_ALL_RELEASES = -1


class RepoEventKind(str, Enum):
    """Hosting-platform events the router understands."""

    REPOSITORY_CREATED = "repository.created"
    REPOSITORY_MIGRATED = "repository.migrated"
    REPOSITORY_FORKED = "repository.forked"
    REPOSITORY_TRANSFERRED = "repository.transferred"
    REPOSITORY_RENAMED = "repository.renamed"
    REPOSITORY_DELETED = "repository.deleted"
    REPOSITORY_ARCHIVED = "repository.archived"
    REPOSITORY_PRIVATIZED = "repository.privatized"
    PUSH = "repository.push"
    BRANCH_DELETED = "branch.deleted"
    RELEASE_CREATED = "release.created"
    RELEASE_UPDATED = "release.updated"
    RELEASE_DELETED = "release.deleted"


_SYNC_DEFAULT_BRANCH = frozenset(
    {
        RepoEventKind.REPOSITORY_CREATED,
        RepoEventKind.REPOSITORY_MIGRATED,
        RepoEventKind.REPOSITORY_FORKED,
        RepoEventKind.REPOSITORY_TRANSFERRED,
        RepoEventKind.REPOSITORY_RENAMED,
    }
)
_PURGE = frozenset(
    {
        RepoEventKind.REPOSITORY_DELETED,
        RepoEventKind.REPOSITORY_ARCHIVED,
        RepoEventKind.REPOSITORY_PRIVATIZED,
    }
)


def branch_name(ref: str) -> str:
    """``refs/heads/master`` → ``master``; other names unchanged."""
    return ref[len(_BRANCH_PREFIX):] if ref.startswith(_BRANCH_PREFIX) else ref


class _RepositoryGate:
    """Shared access for per-release jobs, exclusive access for purges.

    A purge waits for every running job of its repository and holds off
    jobs that start after it, so no sync can write behind a purge.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._active: dict[int, int] = {}
        self._purging: dict[int, int] = {}

    @contextmanager
    def shared(self, repo_id: int) -> Iterator[None]:
        with self._cond:
            while self._purging.get(repo_id):
                self._cond.wait()
            self._active[repo_id] = self._active.get(repo_id, 0) + 1
        try:
            yield
        finally:
            with self._cond:
                self._release(self._active, repo_id)

    @contextmanager
    def exclusive(self, repo_id: int) -> Iterator[None]:
        with self._cond:
            self._purging[repo_id] = self._purging.get(repo_id, 0) + 1
            while self._active.get(repo_id):
                self._cond.wait()
        try:
            yield
        finally:
            with self._cond:
                self._release(self._purging, repo_id)

    def _release(self, counts: dict[int, int], repo_id: int) -> None:
        counts[repo_id] -= 1
        if not counts[repo_id]:
            del counts[repo_id]
        self._cond.notify_all()


class EventRouter:
    """Routes lifecycle events to a :class:`CatalogSynchronizer` on worker threads."""

    def __init__(self, synchronizer: CatalogSynchronizer, *, max_workers: int = 4):
        self._synchronizer = synchronizer
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="catalog-sync")
        self._lock = threading.Lock()
        self._inflight: dict[tuple[int, int], Future[SyncOutcome]] = {}
        self._pending: dict[tuple[int, int], Callable[[], SyncOutcome]] = {}
        self._gate = _RepositoryGate()
        self._closed = False
        self._subscriptions: list[tuple[EventBus, str]] = []

    # ── Lifecycle handlers ───────────────────────────────────────────

    def on_repository_changed(self, repo: Repository) -> Future[SyncOutcome]:
        """Created, migrated, forked, transferred or renamed."""
        return self._submit((repo.id, DEFAULT_BRANCH_RELEASE_ID), lambda: self._synchronizer.sync(repo))

    def on_push(self, repo: Repository, ref: str) -> Future[SyncOutcome] | None:
        if branch_name(ref) != repo.default_branch:
            logger.debug("catalog_push_ignored", repo_id=repo.id, ref=ref)
            return None
        return self.on_repository_changed(repo)

    def on_release_published(self, repo: Repository, release: Release) -> Future[SyncOutcome] | None:
        """Release created or updated."""
        if release.is_draft:
            logger.debug("catalog_draft_ignored", repo_id=repo.id, release_id=release.id)
            return None
        return self._submit((repo.id, release.id), lambda: self._synchronizer.sync(repo, release))

    def on_release_deleted(self, repo: Repository, release: Release) -> Future[SyncOutcome]:
        return self._submit(
            (repo.id, release.id),
            lambda: self._synchronizer.delete_release(repo.id, release.id, release.tag_name),
        )

    def on_branch_deleted(self, repo: Repository, ref: str) -> Future[SyncOutcome]:
        name = branch_name(ref)
        return self._submit(
            (repo.id, DEFAULT_BRANCH_RELEASE_ID),
            lambda: self._synchronizer.delete_branch(repo, name),
        )

    def on_repository_removed(self, repo_id: int) -> Future[SyncOutcome]:
        """Deleted, archived or made private."""
        return self._submit((repo_id, _ALL_RELEASES), lambda: self._synchronizer.purge(repo_id))

    def dispatch(
        self,
        kind: RepoEventKind | str,
        repo: Repository,
        *,
        release: Release | None = None,
        ref: str | None = None,
    ) -> Future[SyncOutcome] | None:
        """Route one event; returns ``None`` when the event needs no work."""
        kind = RepoEventKind(kind)
        if kind in _SYNC_DEFAULT_BRANCH:
            return self.on_repository_changed(repo)
        if kind in _PURGE:
            return self.on_repository_removed(repo.id)
        if kind is RepoEventKind.PUSH:
            return self.on_push(repo, ref or repo.default_branch)
        if kind is RepoEventKind.BRANCH_DELETED:
            if ref is None:
                raise ValueError("branch.deleted needs a ref")
            return self.on_branch_deleted(repo, ref)
        if release is None:
            raise ValueError(f"{kind.value} needs a release")
        if kind is RepoEventKind.RELEASE_DELETED:
            return self.on_release_deleted(repo, release)
        return self.on_release_published(repo, release)

    # ── Bus wiring ───────────────────────────────────────────────────

    def attach(self, bus: EventBus, repositories: RepositoryProvider, releases: ReleaseProvider) -> None:
        """Consume hosting events (``repository.*``, ``release.*``, ``branch.*``) from *bus*.

        Payloads carry ``repo_id`` and, where relevant, ``release_id`` and
        ``ref``. Lookups happen on the publishing thread; unknown ids are
        logged and dropped.
        """

        def handle(event: Event) -> None:
            try:
                kind = RepoEventKind(event.event_type)
            except ValueError:
                return
            payload = event.payload
            repo = repositories.get_repository(int(payload["repo_id"]))
            if repo is None:
                if kind in _PURGE:
                    self.on_repository_removed(int(payload["repo_id"]))
                else:
                    logger.info("catalog_event_unknown_repository", event_type=event.event_type, **payload)
                return
            release = None
            if payload.get("release_id"):
                release = releases.get_release(int(payload["release_id"]))
                if release is None and kind is RepoEventKind.RELEASE_DELETED:
                    self.on_repository_release_gone(repo, int(payload["release_id"]), payload.get("ref", ""))
                    return
            if release is None and kind.value.startswith("release."):
                logger.info("catalog_event_unknown_release", event_type=event.event_type, **payload)
                return
            self.dispatch(kind, repo, release=release, ref=payload.get("ref"))

        for pattern in ("repository.*", "release.*", "branch.*"):
            self._subscriptions.append((bus, bus.subscribe(pattern, handle)))

    def on_repository_release_gone(self, repo: Repository, release_id: int, ref: str = "") -> Future[SyncOutcome]:
        """Release already removed from the hosting tables."""
        return self._submit(
            (repo.id, release_id),
            lambda: self._synchronizer.delete_release(repo.id, release_id, ref),
        )

    # ── Execution ────────────────────────────────────────────────────

    def _submit(self, key: tuple[int, int], job: Callable[[], SyncOutcome]) -> Future[SyncOutcome]:
        with self._lock:
            if self._closed:
                raise RuntimeError("event router is shut down")
            running = self._inflight.get(key)
            if running is not None:
                # Latest request wins; it runs once the current job returns
                self._pending[key] = job
                logger.debug("catalog_sync_coalesced", repo_id=key[0], release_id=key[1])
                return running
            future = self._pool.submit(self._run, key, job)
            self._inflight[key] = future
            return future

    def _run(self, key: tuple[int, int], job: Callable[[], SyncOutcome]) -> SyncOutcome:
        while True:
            outcome = self._guarded(key, job)
            with self._lock:
                follow_up = self._pending.pop(key, None)
                if follow_up is None:
                    self._inflight.pop(key, None)
                    return outcome
            job = follow_up

    def _guarded(self, key: tuple[int, int], job: Callable[[], SyncOutcome]) -> SyncOutcome:
        repo_id, release_id = key
        access = self._gate.exclusive if release_id == _ALL_RELEASES else self._gate.shared
        try:
            with access(repo_id):
                return job()
        except Exception as e:
            logger.warning(
                "catalog_event_handler_failed",
                repo_id=key[0],
                release_id=key[1],
                error=str(e),
                error_type=type(e).__name__,
            )
            return SyncOutcome(SyncAction.FAILED, key[0], max(key[1], DEFAULT_BRANCH_RELEASE_ID), error=str(e))

    def wait(self, timeout: float | None = None) -> bool:
        """Block until queued work finishes; ``False`` on timeout."""
        while True:
            with self._lock:
                futures = list(self._inflight.values())
            if not futures:
                return True
            _done, not_done = wait_futures(futures, timeout=timeout)
            if not_done:
                return False

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        for bus, subscription_id in self._subscriptions:
            bus.unsubscribe(subscription_id)
        self._subscriptions.clear()
        self._pool.shutdown(wait=wait)

    def __enter__(self) -> EventRouter:
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()


__all__ = ["EventRouter", "RepoEventKind", "branch_name"]
