"""Tests for CatalogContainer wiring."""

from __future__ import annotations

import httpx

import catalog_spine.core.events as events_module
from catalog_spine.container import CatalogContainer
from catalog_spine.core.events.memory import InMemoryEventBus
from catalog_spine.core.settings import RC02_SCHEMA_URL, CatalogSettings
from catalog_spine.git import SubprocessGitBackend
from catalog_spine.manifest import SchemaFamily


def _settings(tmp_path, **overrides) -> CatalogSettings:
    values = {
        "database_url": f"sqlite:///{tmp_path / 'db' / 'catalog.db'}",
        "schema_remote_enabled": False,
        "repo_root": tmp_path / "repositories",
    }
    values.update(overrides)
    return CatalogSettings(_env_file=None, **values)  # type: ignore[call-arg]


class TestLazyComponents:
    def test_components_are_built_once(self, tmp_path):
        with CatalogContainer(_settings(tmp_path)) as container:
            assert container.store is container.store
            assert container.hosting is container.hosting
            assert container.synchronizer is container.synchronizer
            assert container.search is container.search
            assert container.schema_cache is container.schema_cache
            assert container.languages is container.languages

    def test_sqlite_directory_created(self, tmp_path):
        with CatalogContainer(_settings(tmp_path)) as container:
            container.create_schema()
            assert (tmp_path / "db" / "catalog.db").exists()

    def test_default_git_backend(self, tmp_path):
        with CatalogContainer(_settings(tmp_path)) as container:
            assert isinstance(container.git, SubprocessGitBackend)
            assert container.git.root == tmp_path / "repositories"

    def test_default_bus_becomes_process_bus(self, tmp_path):
        with CatalogContainer(_settings(tmp_path)) as container:
            bus = container.event_bus
            assert isinstance(bus, InMemoryEventBus)
            assert events_module.get_event_bus() is bus

    def test_injected_bus_left_alone(self, tmp_path, bus):
        with CatalogContainer(_settings(tmp_path), bus=bus) as container:
            assert container.event_bus is bus
            assert events_module._event_bus is None

    def test_search_page_sizes_from_settings(self, tmp_path):
        settings = _settings(tmp_path, search_default_page_size=25, search_max_page_size=40)
        with CatalogContainer(settings) as container:
            assert container.search.effective_page_size(0) == 25
            assert container.search.effective_page_size(100) == 40

    def test_router_uses_configured_workers(self, tmp_path):
        with CatalogContainer(_settings(tmp_path, event_workers=3)) as container:
            assert container.router._pool._max_workers == 3

    def test_http_client_is_passed_to_schema_loader(self, tmp_path):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(503)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        settings = _settings(tmp_path, schema_remote_enabled=True)
        with CatalogContainer(settings, http_client=client) as container:
            container.schema_cache.get(SchemaFamily.RC02)
        assert requested == [RC02_SCHEMA_URL]
