"""Sync outcomes and sweep reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from catalog_spine.models import CatalogEntry
from catalog_spine.stage import Stage


class SyncAction(str, Enum):
    """What a sync decided to do with one ``(repo_id, release_id)`` pair."""

    SYNCED = "synced"  # entry inserted or updated
    UNCHANGED = "unchanged"  # entry already up to date, no write
    DELETED = "deleted"  # entry (or every entry of the repo) removed
    INVALID = "invalid"  # manifest malformed or failed validation
    SKIPPED = "skipped"  # nothing to catalog, nothing to remove
    FAILED = "failed"  # sync raised; nothing was changed by the failing step

    @property
    def event_type(self) -> str:
        return f"catalog.{self.value}"


@dataclass(frozen=True)
class SyncOutcome:
    action: SyncAction
    repo_id: int
    release_id: int
    ref: str = ""
    stage: Stage | None = None
    entry: CatalogEntry | None = None
    error: str | None = None
    removed: int = 0

    @property
    def event_type(self) -> str:
        return self.action.event_type

    def to_payload(self) -> dict[str, Any]:
        return {
            "repo_id": self.repo_id,
            "release_id": self.release_id,
            "ref": self.ref,
            "stage": self.stage.label if self.stage is not None else None,
            "error": self.error,
        }


@dataclass
class SweepReport:
    """Summary of a bulk sweep."""

    processed: int = 0
    cancelled: bool = False
    counts: dict[SyncAction, int] = field(default_factory=dict)
    failures: list[tuple[int, int, str]] = field(default_factory=list)

    def record(self, outcome: SyncOutcome) -> None:
        self.processed += 1
        self.counts[outcome.action] = self.counts.get(outcome.action, 0) + 1
        if outcome.action is SyncAction.FAILED:
            self.failures.append((outcome.repo_id, outcome.release_id, outcome.error or ""))

    def count(self, action: SyncAction) -> int:
        return self.counts.get(action, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "cancelled": self.cancelled,
            "counts": {action.value: n for action, n in self.counts.items()},
            "failures": [
                {"repo_id": repo_id, "release_id": release_id, "error": error}
                for repo_id, release_id, error in self.failures
            ],
        }


__all__ = ["SyncAction", "SyncOutcome", "SweepReport"]
