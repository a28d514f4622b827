"""
Lazy-initialised dependency-injection root.

:class:`CatalogContainer` owns every process-wide component: the database
engine and session factory, the schema cache, the event bus and the
services built on them. Components are created on first property access.

Usage::

    from catalog_spine.container import CatalogContainer

    with CatalogContainer() as c:
        c.create_schema()
        c.synchronizer.sync_all()
        result = c.search.search(SearchCatalogOptions(languages=("en",)))

Tests pass their own settings, git backend and bus::

    container = CatalogContainer(settings, git=FakeGitBackend(...), bus=InMemoryEventBus())
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from catalog_spine.core.events import EventBus, set_event_bus
from catalog_spine.core.events.memory import InMemoryEventBus
from catalog_spine.core.logging import get_logger
from catalog_spine.core.orm import CatalogBase, catalog_session_factory, create_catalog_engine
from catalog_spine.core.settings import CatalogSettings, get_settings
from catalog_spine.events import EventRouter
from catalog_spine.extract import FieldExtractor, LanguageTable
from catalog_spine.git import GitBackend, SubprocessGitBackend
from catalog_spine.schema import SchemaCache, SchemaLoader, SchemaValidator
from catalog_spine.search import CatalogSearch
from catalog_spine.store import CatalogStore, SqlHostingProvider
from catalog_spine.sync import CatalogSynchronizer

logger = get_logger(__name__)


def _ensure_sqlite_dir(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


class CatalogContainer:
    """Lazy-initialised dependency container."""

    def __init__(
        self,
        settings: CatalogSettings | None = None,
        *,
        engine: Engine | None = None,
        git: GitBackend | None = None,
        bus: EventBus | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._settings = settings
        self._engine = engine
        self._owns_engine = engine is None
        self._git = git
        self._bus = bus
        self._http_client = http_client
        self._session_factory: sessionmaker[Any] | None = None
        self._schema_loader: SchemaLoader | None = None
        self._schema_cache: SchemaCache | None = None
        self._languages: LanguageTable | None = None
        self._store: CatalogStore | None = None
        self._hosting: SqlHostingProvider | None = None
        self._synchronizer: CatalogSynchronizer | None = None
        self._search: CatalogSearch | None = None
        self._router: EventRouter | None = None

    # ── Infrastructure ───────────────────────────────────────────

    @property
    def settings(self) -> CatalogSettings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            url = self.settings.database_url
            if self.settings.is_sqlite:
                _ensure_sqlite_dir(url)
            self._engine = create_catalog_engine(url, echo=self.settings.database_echo)
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Any]:
        if self._session_factory is None:
            self._session_factory = catalog_session_factory(self.engine)
        return self._session_factory

    @property
    def event_bus(self) -> EventBus:
        if self._bus is None:
            self._bus = InMemoryEventBus()
            set_event_bus(self._bus)
        return self._bus

    @property
    def git(self) -> GitBackend:
        if self._git is None:
            self._git = SubprocessGitBackend(self.settings.repo_root)
        return self._git

    # ── Schemas and lookups ──────────────────────────────────────

    @property
    def schema_loader(self) -> SchemaLoader:
        if self._schema_loader is None:
            self._schema_loader = SchemaLoader(self.settings, client=self._http_client)
        return self._schema_loader

    @property
    def schema_cache(self) -> SchemaCache:
        if self._schema_cache is None:
            self._schema_cache = SchemaCache(self.schema_loader)
        return self._schema_cache

    @property
    def validator(self) -> SchemaValidator:
        return SchemaValidator(self.schema_cache)

    @property
    def languages(self) -> LanguageTable:
        if self._languages is None:
            self._languages = LanguageTable.load(self.settings.langnames_path)
        return self._languages

    @property
    def extractor(self) -> FieldExtractor:
        return FieldExtractor(self.languages)

    # ── Services ─────────────────────────────────────────────────

    @property
    def store(self) -> CatalogStore:
        if self._store is None:
            self._store = CatalogStore(self.session_factory)
        return self._store

    @property
    def hosting(self) -> SqlHostingProvider:
        """Repository and release provider over the hosting tables."""
        if self._hosting is None:
            self._hosting = SqlHostingProvider(self.session_factory)
        return self._hosting

    @property
    def synchronizer(self) -> CatalogSynchronizer:
        if self._synchronizer is None:
            self._synchronizer = CatalogSynchronizer(
                self.store,
                self.hosting,
                self.hosting,
                self.git,
                self.validator,
                self.extractor,
                bus=self.event_bus,
            )
        return self._synchronizer

    @property
    def search(self) -> CatalogSearch:
        if self._search is None:
            self._search = CatalogSearch(
                self.session_factory,
                default_page_size=self.settings.search_default_page_size,
                max_page_size=self.settings.search_max_page_size,
            )
        return self._search

    @property
    def router(self) -> EventRouter:
        if self._router is None:
            self._router = EventRouter(self.synchronizer, max_workers=self.settings.event_workers)
        return self._router

    # ── Lifecycle ────────────────────────────────────────────────

    def create_schema(self) -> None:
        """Create every catalog and hosting table that does not exist yet."""
        CatalogBase.metadata.create_all(self.engine)
        logger.info("catalog_schema_created", tables=sorted(CatalogBase.metadata.tables))

    def close(self) -> None:
        """Dispose of managed resources."""
        if self._router is not None:
            self._router.shutdown()
        if self._schema_loader is not None:
            self._schema_loader.close()
        if self._engine is not None and self._owns_engine:
            self._engine.dispose()

    def __enter__(self) -> CatalogContainer:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


__all__ = ["CatalogContainer"]
