"""Tests for SchemaLoader: remote fetch, bundled fallback and compilation."""

from __future__ import annotations

import json

import httpx
import pytest

from catalog_spine.core.errors import SchemaUnavailableError
from catalog_spine.core.settings import RC02_SCHEMA_URL, SB100_MIRROR_PREFIX, CatalogSettings
from catalog_spine.manifest import SchemaFamily
from catalog_spine.schema import SchemaLoader
from catalog_spine.schema.loader import BUNDLE_DIR
from tests._support.manifests import rc_manifest, sb_metadata, tc_manifest, ts_manifest

RC_BASE = RC02_SCHEMA_URL.rsplit("/", 1)[0] + "/"


def _settings(**overrides) -> CatalogSettings:
    values = {"schema_remote_enabled": True, "schema_fetch_timeout_seconds": 0.5}
    values.update(overrides)
    return CatalogSettings(_env_file=None, **values)


def _client(routes: dict[str, object], requested: list[str]) -> httpx.Client:
    """Client answering from *routes*; an exception value is raised instead."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested.append(url)
        answer = routes.get(url)
        if isinstance(answer, Exception):
            raise answer
        if answer is None:
            return httpx.Response(404, text="not found")
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestBundledSchemas:
    @pytest.mark.parametrize(
        "family, document",
        [
            (SchemaFamily.RC02, rc_manifest()),
            (SchemaFamily.SB100, sb_metadata()),
            (SchemaFamily.TC, tc_manifest()),
            (SchemaFamily.TS, ts_manifest()),
        ],
    )
    def test_every_family_loads_offline(self, family, document):
        loader = SchemaLoader(_settings(schema_remote_enabled=False))
        validator = loader.load(family)
        assert list(validator.iter_errors(document)) == []
        loader.close()

    def test_local_paths(self):
        loader = SchemaLoader(_settings())
        assert loader.local_path(RC02_SCHEMA_URL, SchemaFamily.RC02) == BUNDLE_DIR / "rc02" / "rc.schema.json"
        tc_uri = loader.root_uri(SchemaFamily.TC)
        assert loader.local_path(tc_uri, SchemaFamily.TC) == BUNDLE_DIR / "legacy" / "tc.manifest.schema.json"

    def test_legacy_schemas_are_bundle_only(self):
        loader = SchemaLoader(_settings())
        assert loader.remote_url(loader.root_uri(SchemaFamily.TS), SchemaFamily.TS) is None

    def test_missing_local_schema_dir(self, tmp_path):
        loader = SchemaLoader(_settings(schema_remote_enabled=False, local_schema_dir=tmp_path))
        with pytest.raises(SchemaUnavailableError) as exc_info:
            loader.load(SchemaFamily.RC02)
        assert exc_info.value.retryable is True
        assert exc_info.value.context.url == RC02_SCHEMA_URL

    def test_schema_that_does_not_compile(self, tmp_path):
        (tmp_path / "rc02").mkdir()
        (tmp_path / "rc02" / "rc.schema.json").write_text(json.dumps({"type": 12}))
        loader = SchemaLoader(_settings(schema_remote_enabled=False, local_schema_dir=tmp_path))
        with pytest.raises(SchemaUnavailableError, match="does not compile"):
            loader.load(SchemaFamily.RC02)


class TestRemoteSchemas:
    def test_remote_schema_wins_when_available(self):
        remote = {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "$id": RC02_SCHEMA_URL,
            "type": "object",
            "required": ["remote_only"],
        }
        requested: list[str] = []
        loader = SchemaLoader(_settings(), client=_client({RC02_SCHEMA_URL: remote}, requested))
        validator = loader.load(SchemaFamily.RC02)
        assert requested == [RC02_SCHEMA_URL]
        errors = list(validator.iter_errors(rc_manifest()))
        assert [e.message for e in errors] == ["'remote_only' is a required property"]

    @pytest.mark.parametrize(
        "answer",
        [
            httpx.Response(500, text="upstream down"),
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json=["not", "an", "object"]),
            httpx.ReadTimeout("timed out"),
            httpx.ConnectError("refused"),
        ],
    )
    def test_falls_back_to_bundle(self, answer):
        requested: list[str] = []
        loader = SchemaLoader(_settings(), client=_client({RC02_SCHEMA_URL: answer}, requested))
        validator = loader.load(SchemaFamily.RC02)
        assert requested == [RC02_SCHEMA_URL]
        assert list(validator.iter_errors(rc_manifest())) == []

    def test_burrito_schema_fetched_from_mirror(self):
        requested: list[str] = []
        loader = SchemaLoader(_settings(), client=_client({}, requested))
        loader.load(SchemaFamily.SB100)
        assert requested == [SB100_MIRROR_PREFIX + "metadata.schema.json"]

    def test_external_refs_are_crawled(self):
        root = {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "$id": RC02_SCHEMA_URL,
            "type": "object",
            "properties": {"dublin_core": {"$ref": "dublin_core.schema.json"}},
        }
        dublin_core = {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "$id": RC_BASE + "dublin_core.schema.json",
            "type": "object",
            "required": ["subject"],
            "properties": {"subject": {"type": "string", "minLength": 1}},
        }
        requested: list[str] = []
        client = _client({RC02_SCHEMA_URL: root, RC_BASE + "dublin_core.schema.json": dublin_core}, requested)
        validator = SchemaLoader(_settings(), client=client).load(SchemaFamily.RC02)

        assert requested == [RC02_SCHEMA_URL, RC_BASE + "dublin_core.schema.json"]
        assert list(validator.iter_errors({"dublin_core": {"subject": "Bible"}})) == []
        errors = list(validator.iter_errors({"dublin_core": {"subject": ""}}))
        assert len(errors) == 1

    def test_remote_disabled_makes_no_requests(self):
        requested: list[str] = []
        loader = SchemaLoader(_settings(schema_remote_enabled=False), client=_client({}, requested))
        loader.load(SchemaFamily.RC02)
        loader.load(SchemaFamily.SB100)
        assert requested == []
