"""Lifecycle event routing into the catalog synchronizer."""

from catalog_spine.events.router import EventRouter, RepoEventKind, branch_name

__all__ = ["EventRouter", "RepoEventKind", "branch_name"]
