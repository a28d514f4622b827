"""
Shared pytest fixtures for catalog-spine tests.

This module provides:
- Settings that never touch the network or the developer's ``.env``
- An in-memory SQLite engine with every table created
- A fresh event bus per test, recording everything published on it
- An in-memory git backend and a fully wired :class:`CatalogContainer`
- Hosting helpers to seed repositories and releases

Usage:
    Fixtures are auto-discovered by pytest::

        def test_sync(container, git, hosting):
            repo = hosting.add_repository("unfoldingWord", "en_ult")
            git.commit("unfoldingWord", "en_ult", branch="master", files={...})
            container.synchronizer.sync(repo)
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

import catalog_spine.core.events as events_module
from catalog_spine.container import CatalogContainer
from catalog_spine.core.events import Event
from catalog_spine.core.events.memory import InMemoryEventBus
from catalog_spine.core.logging import clear_context, configure_logging
from catalog_spine.core.orm import CatalogBase, catalog_session_factory, create_catalog_engine
from catalog_spine.core.settings import CatalogSettings, clear_settings_cache
from catalog_spine.store import CatalogStore, SqlHostingProvider
from tests._support.fake_git import FakeGitBackend

# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without an explicit marker as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Process state
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def _logging() -> None:
    # JSON rendering exercises every log call's keyword arguments
    configure_logging(level="DEBUG", json_format=True, service="catalog-spine-tests")


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Reset the global event bus, the settings cache and log context."""
    monkeypatch.setattr(events_module, "_event_bus", None)
    for key in ("CATALOG_DATABASE_URL", "CATALOG_SCHEMA_REMOTE_ENABLED", "CATALOG_LOG_FORMAT"):
        monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
    clear_context()


# =============================================================================
# Configuration and database
# =============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> CatalogSettings:
    """Offline settings: bundled schemas, in-memory database."""
    return CatalogSettings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite:///:memory:",
        schema_remote_enabled=False,
        repo_root=tmp_path / "repositories",
        log_level="WARNING",
        log_format="console",
        event_workers=2,
    )


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_catalog_engine("sqlite:///:memory:")
    CatalogBase.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return catalog_session_factory(engine)


@pytest.fixture
def store(session_factory) -> CatalogStore:
    return CatalogStore(session_factory)


# =============================================================================
# Events
# =============================================================================


class RecordingBus(InMemoryEventBus):
    """In-memory bus that also keeps every published event."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[Event] = []

    def publish(self, event: Event) -> None:
        self.events.append(event)
        super().publish(event)

    def types(self) -> list[str]:
        return [event.event_type for event in self.events]

    def of_type(self, event_type: str) -> list[Event]:
        return [event for event in self.events if event.event_type == event_type]


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


# =============================================================================
# Wired container
# =============================================================================


@pytest.fixture
def git() -> FakeGitBackend:
    return FakeGitBackend()


@pytest.fixture
def container(settings, engine, git, bus) -> Iterator[CatalogContainer]:
    c = CatalogContainer(settings, engine=engine, git=git, bus=bus)
    yield c
    c.close()


@pytest.fixture
def hosting(container) -> SqlHostingProvider:
    return container.hosting


@pytest.fixture
def synchronizer(container):
    return container.synchronizer
