"""
Process-wide cache of compiled schema validators.

One compiled validator per :class:`SchemaFamily`, populated lazily on first
use. The cache is owned by the :class:`~catalog_spine.container.Container`
and shared by every synchronizer thread.

Concurrency:
    - Reads after population take no lock.
    - Loading happens outside the lock. Two threads racing on an empty slot
      may both fetch; the first to finish is kept.
    - :meth:`reload` compiles the replacement first and swaps it in under
      the lock, so validations in flight keep using the old validator and a
      failed reload leaves the old one in place.
"""

from __future__ import annotations

import threading

from jsonschema.protocols import Validator

from catalog_spine.core.errors import SchemaUnavailableError
from catalog_spine.core.logging import get_logger
from catalog_spine.manifest.families import SchemaFamily
from catalog_spine.schema.loader import SchemaLoader

logger = get_logger(__name__)


class SchemaCache:
    """Compiled validators keyed by schema family."""

    def __init__(self, loader: SchemaLoader):
        self._loader = loader
        self._compiled: dict[SchemaFamily, Validator] = {}
        self._lock = threading.Lock()

    def get(self, family: SchemaFamily) -> Validator:
        """Compiled validator for *family*, loading it on first use.

        Raises:
            SchemaUnavailableError: neither source could be loaded/compiled
        """
        compiled = self._compiled.get(family)
        if compiled is not None:
            return compiled
        loaded = self._loader.load(family)
        with self._lock:
            return self._compiled.setdefault(family, loaded)

    def invalidate(self, family: SchemaFamily | None = None) -> None:
        """Drop one family (or all) so the next :meth:`get` reloads it."""
        with self._lock:
            if family is None:
                self._compiled.clear()
            else:
                self._compiled.pop(family, None)
        logger.info("schema_cache_invalidated", family=family.value if family else "*")

    def reload(self, families: list[SchemaFamily] | None = None) -> dict[SchemaFamily, str]:
        """Recompile *families* (default: all) and swap them in.

        Returns a mapping of family to error message for every family that
        failed to reload; those keep their previous validator.
        """
        failures: dict[SchemaFamily, str] = {}
        for family in families or list(SchemaFamily):
            try:
                fresh = self._loader.load(family)
            except SchemaUnavailableError as e:
                logger.error("schema_reload_failed", family=family.value, error=e.message)
                failures[family] = e.message
                continue
            with self._lock:
                self._compiled[family] = fresh
            logger.info("schema_reloaded", family=family.value)
        return failures

    def is_loaded(self, family: SchemaFamily) -> bool:
        return family in self._compiled


__all__ = ["SchemaCache"]
