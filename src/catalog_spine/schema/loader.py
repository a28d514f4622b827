"""
Schema loading: remote canonical documents with a bundled fallback.

Resource Container and Scripture Burrito schemas are published upstream and
occasionally change; the loader fetches them over HTTP (``httpx``) with a
bounded timeout and falls back to the copy bundled in
``catalog_spine/schema/bundle/`` on any network or decode failure. The
legacy translationCore / translationStudio shapes have no upstream and are
always read from the bundle.

Loading a family produces a compiled ``jsonschema`` validator. Every
external ``$ref`` is fetched while loading, so a schema that loads is
complete and validation never performs I/O.

Architecture:
    ::

        SchemaLoader.load(SchemaFamily.SB100)
            │  root uri  https://burrito.bible/schema/metadata.schema.json
            ▼
        fetch(uri) ── remote enabled? ── GET mirror url (timeout) ── ok ──┐
            │                                 │ fail                      │
            │                                 ▼                           │
            └──────────────────────── bundle/sb100/metadata.schema.json ──┤
                                                                          ▼
        crawl "$ref"s ─► Registry ─► validator_for(root).check_schema ─► Validator

Failures of both sources, or a schema that does not compile, raise
:class:`SchemaUnavailableError`.

Tags:
    catalog-spine, schema, jsonschema, httpx, fallback
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from urllib.parse import urldefrag, urljoin

import httpx
from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator
from jsonschema.validators import validator_for
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT7

from catalog_spine.core.errors import SchemaUnavailableError
from catalog_spine.core.logging import get_logger
from catalog_spine.core.settings import CatalogSettings
from catalog_spine.manifest.families import SchemaFamily

logger = get_logger(__name__)

BUNDLE_DIR = Path(__file__).parent / "bundle"

LEGACY_SCHEMA_BASE = "urn:catalog-spine:schema:legacy:"

_BUNDLE_SUBDIRS: dict[SchemaFamily, str] = {
    SchemaFamily.RC02: "rc02",
    SchemaFamily.SB100: "sb100",
    SchemaFamily.TC: "legacy",
    SchemaFamily.TS: "legacy",
}


def _iter_refs(node: Any) -> Iterator[str]:
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str):
            yield ref
        for value in node.values():
            yield from _iter_refs(value)
    elif isinstance(node, list):
        for value in node:
            yield from _iter_refs(value)


def _base_of(uri: str) -> str:
    if uri.startswith(LEGACY_SCHEMA_BASE):
        return LEGACY_SCHEMA_BASE
    return uri.rsplit("/", 1)[0] + "/"


class SchemaLoader:
    """Fetches and compiles schemas for each :class:`SchemaFamily`.

    Args:
        settings: schema URLs, timeout and remote toggle
        client: HTTP client; created (and owned) by the loader when omitted
    """

    def __init__(self, settings: CatalogSettings, client: httpx.Client | None = None):
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=settings.schema_fetch_timeout_seconds,
            follow_redirects=True,
        )
        self._bundle_dir = Path(settings.local_schema_dir) if settings.local_schema_dir else BUNDLE_DIR

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # ── Locations ────────────────────────────────────────────────────

    def root_uri(self, family: SchemaFamily) -> str:
        if family is SchemaFamily.RC02:
            return self._settings.rc02_schema_url
        if family is SchemaFamily.SB100:
            return self._settings.sb100_schema_url
        return f"{LEGACY_SCHEMA_BASE}{family.value}.manifest.schema.json"

    def remote_url(self, uri: str, family: SchemaFamily) -> str | None:
        """URL actually requested for *uri*, or ``None`` when it is bundle-only."""
        if not uri.startswith(("http://", "https://")):
            return None
        if family is SchemaFamily.SB100:
            # burrito.bible serves a certificate that fails verification
            sb_base = _base_of(self._settings.sb100_schema_url)
            if uri.startswith(sb_base):
                return self._settings.sb100_mirror_prefix + uri[len(sb_base):]
        return uri

    def local_path(self, uri: str, family: SchemaFamily) -> Path:
        base = _base_of(self.root_uri(family))
        relative = uri[len(base):] if uri.startswith(base) else uri.rsplit("/", 1)[-1]
        return self._bundle_dir / _BUNDLE_SUBDIRS[family] / relative

    # ── Fetching ─────────────────────────────────────────────────────

    def _fetch_remote(self, url: str) -> dict[str, Any] | None:
        try:
            response = self._client.get(url, timeout=self._settings.schema_fetch_timeout_seconds)
            response.raise_for_status()
            document = response.json()
        except httpx.TimeoutException as e:
            logger.warning("schema_remote_timeout", url=url, error=str(e))
            return None
        except httpx.HTTPError as e:
            logger.warning("schema_remote_fetch_failed", url=url, error=str(e))
            return None
        except ValueError as e:
            logger.warning("schema_remote_not_json", url=url, error=str(e))
            return None
        if not isinstance(document, dict):
            logger.warning("schema_remote_not_object", url=url)
            return None
        return document

    def _fetch_local(self, uri: str, family: SchemaFamily) -> dict[str, Any]:
        path = self.local_path(uri, family)
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise SchemaUnavailableError(
                f"schema {uri} unavailable remotely and locally",
                cause=e,
            ).with_context(url=uri, path=str(path))
        if not isinstance(document, dict):
            raise SchemaUnavailableError(f"bundled schema {path} is not an object").with_context(url=uri)
        logger.debug("schema_loaded_from_bundle", uri=uri, path=str(path))
        return document

    def fetch(self, uri: str, family: SchemaFamily) -> dict[str, Any]:
        """One schema document, remote first when enabled."""
        url = self.remote_url(uri, family) if self._settings.schema_remote_enabled else None
        if url is not None:
            document = self._fetch_remote(url)
            if document is not None:
                logger.debug("schema_loaded_from_remote", uri=uri, url=url)
                return document
        return self._fetch_local(uri, family)

    # ── Compilation ──────────────────────────────────────────────────

    def _collect(self, root_uri: str, root: dict[str, Any], family: SchemaFamily) -> dict[str, dict[str, Any]]:
        documents = {root_uri: root}
        pending = [root_uri]
        while pending:
            uri = pending.pop()
            for ref in _iter_refs(documents[uri]):
                target, _fragment = urldefrag(urljoin(uri, ref) if not uri.startswith("urn:") else ref)
                if not target or target in documents:
                    continue
                documents[target] = self.fetch(target, family)
                pending.append(target)
        return documents

    def load(self, family: SchemaFamily) -> Validator:
        """Fetch and compile the schema of *family*."""
        root_uri = self.root_uri(family)
        root = self.fetch(root_uri, family)
        documents = self._collect(root_uri, root, family)

        cls = validator_for(root, default=Draft7Validator)
        try:
            cls.check_schema(root)
        except SchemaError as e:
            raise SchemaUnavailableError(f"schema {root_uri} does not compile: {e.message}", cause=e).with_context(
                url=root_uri
            )

        resources = {
            uri: Resource.from_contents(contents, default_specification=DRAFT7)
            for uri, contents in documents.items()
        }
        declared_id = root.get("$id")
        if isinstance(declared_id, str) and declared_id.rstrip("#") not in resources:
            resources[declared_id.rstrip("#")] = resources[root_uri]
        registry: Registry = Registry().with_resources(resources.items())
        logger.info("schema_compiled", family=family.value, uri=root_uri, documents=len(documents))
        return cls(root, registry=registry)


__all__ = ["SchemaLoader", "BUNDLE_DIR", "LEGACY_SCHEMA_BASE"]
