"""Catalog synchronization: manifest at a ref → catalog entry."""

from catalog_spine.sync.outcome import SweepReport, SyncAction, SyncOutcome
from catalog_spine.sync.synchronizer import CatalogSynchronizer

__all__ = ["CatalogSynchronizer", "SweepReport", "SyncAction", "SyncOutcome"]
