"""Tests for the catalog-spine CLI."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from catalog_spine.cli import app
from catalog_spine.container import CatalogContainer
from catalog_spine.core.logging import configure_logging
from catalog_spine.core.settings import CatalogSettings
from catalog_spine.stage import Stage
from tests._support.entries import entry_values
from tests._support.manifests import rc_manifest, rc_yaml

runner = CliRunner()


@pytest.fixture(autouse=True)
def _cli_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("CATALOG_DATABASE_URL", f"sqlite:///{tmp_path / 'catalog.db'}")
    monkeypatch.setenv("CATALOG_SCHEMA_REMOTE_ENABLED", "false")
    monkeypatch.setenv("CATALOG_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("CATALOG_REPO_ROOT", str(tmp_path / "repositories"))
    yield
    # Commands reconfigure logging from settings
    configure_logging(level="DEBUG", json_format=True, service="catalog-spine-tests")


@pytest.fixture
def db(tmp_path) -> CatalogContainer:
    """Initialised database, also reachable directly for seeding."""
    result = runner.invoke(app, ["init-db"])
    assert result.exit_code == 0, result.output
    settings = CatalogSettings(
        _env_file=None,  # type: ignore[call-arg]
        database_url=f"sqlite:///{tmp_path / 'catalog.db'}",
        schema_remote_enabled=False,
    )
    with CatalogContainer(settings) as container:
        yield container


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestBasics:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "catalog-spine 0.4.0" in result.output

    def test_init_db(self, tmp_path):
        result = runner.invoke(app, ["init-db", "--database", f"sqlite:///{tmp_path / 'nested' / 'c.db'}"])
        assert result.exit_code == 0
        assert "Database initialised" in result.output
        assert (tmp_path / "nested" / "c.db").exists()


class TestHosting:
    def test_add_repo_and_release(self, db):
        repo = _json(runner.invoke(app, ["hosting", "add-repo", "unfoldingWord/en_ult", "--branch", "main", "--json"]))
        assert repo == {"id": 1, "repository": "unfoldingWord/en_ult", "default_branch": "main"}
        release = _json(runner.invoke(app, ["hosting", "add-release", "unfoldingWord/en_ult", "v42", "--json"]))
        assert release["tag"] == "v42"
        assert db.hosting.get_release_by_tag(1, "v42").id == release["id"]

    def test_bad_repository_name(self, db):
        result = runner.invoke(app, ["hosting", "add-repo", "en_ult"])
        assert result.exit_code == 1
        assert "USAGE" in result.output

    def test_release_for_unknown_repository(self, db):
        result = runner.invoke(app, ["hosting", "add-release", "nobody/none", "v1"])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_set_flags_purges_hidden_repository(self, db):
        repo = db.hosting.add_repository("unfoldingWord", "en_ult")
        db.store.upsert(repo.id, 0, entry_values(ref="master", stage=Stage.LATEST))

        result = runner.invoke(app, ["hosting", "set-flags", "unfoldingWord/en_ult", "--archived"])

        assert result.exit_code == 0, result.output
        assert db.hosting.get_repository(repo.id).is_archived
        assert db.store.list_for_repo(repo.id) == []

    def test_set_flags_needs_a_change(self, db):
        db.hosting.add_repository("unfoldingWord", "en_ult")
        assert runner.invoke(app, ["hosting", "set-flags", "unfoldingWord/en_ult"]).exit_code == 1


class TestSearch:
    def test_empty_catalog(self, db):
        data = _json(runner.invoke(app, ["search", "--json"]))
        assert data == {"total_count": 0, "page": 1, "page_size": 0, "data": []}

    def test_facets(self, db):
        en = db.hosting.add_repository("unfoldingWord", "en_ult")
        fr = db.hosting.add_repository("Door43", "fr_ulb")
        db.store.upsert(en.id, 1, entry_values(ref="v1"))
        db.store.upsert(fr.id, 2, entry_values(ref="v2", language="fr"))

        data = _json(runner.invoke(app, ["search", "--lang", "fr", "--json"]))

        assert data["total_count"] == 1
        row = data["data"][0]
        assert row["repository"] == "Door43/fr_ulb"
        assert (row["ref"], row["stage"], row["language"]) == ("v2", "prod", "fr")

    def test_stage_and_history(self, db):
        repo = db.hosting.add_repository("unfoldingWord", "en_ult")
        db.store.upsert(repo.id, 0, entry_values(ref="master", stage=Stage.LATEST, released=300))
        db.store.upsert(repo.id, 1, entry_values(ref="v1", released=100))
        db.store.upsert(repo.id, 2, entry_values(ref="v2", released=200))

        latest = _json(runner.invoke(app, ["search", "--stage", "latest", "--json"]))
        assert [row["ref"] for row in latest["data"]] == ["master"]
        history = _json(runner.invoke(app, ["search", "--include-history", "--sort", "released:desc", "--json"]))
        assert [row["ref"] for row in history["data"]] == ["v2", "v1"]

    def test_table_output(self, db):
        repo = db.hosting.add_repository("unfoldingWord", "en_ult")
        db.store.upsert(repo.id, 1, entry_values(ref="v1"))
        result = runner.invoke(app, ["search"])
        assert result.exit_code == 0
        assert "1 total" in result.output

    def test_bad_stage(self, db):
        result = runner.invoke(app, ["search", "--stage", "beta"])
        assert result.exit_code == 1
        assert "unknown stage" in result.output


class TestValidate:
    def test_valid_manifest(self, tmp_path):
        path = tmp_path / "manifest.yaml"
        path.write_bytes(rc_yaml())
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 0
        assert "valid" in result.output
        assert "rc0.2" in result.output

    def test_invalid_manifest(self, tmp_path):
        manifest = rc_manifest()
        del manifest["checking"]
        path = tmp_path / "manifest.yaml"
        path.write_bytes(rc_yaml(manifest))

        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "Invalid: manifest.yaml does not match the rc0.2 schema" in result.output

        data = json.loads(runner.invoke(app, ["validate", str(path), "--json"]).stdout)
        assert data["valid"] is False
        assert data["family"] == "rc0.2"

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "metadata.json"
        path.write_text("{not json", encoding="utf-8")
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "metadata.json" in result.output


class TestDiagnostics:
    def test_recorded_failure(self, db):
        repo = db.hosting.add_repository("unfoldingWord", "en_ult")
        release = db.hosting.add_release(repo.id, "v12")
        db.store.record_diagnostic(
            repo.id,
            release.id,
            ref="v12",
            metadata_type="rc",
            error_type="validation",
            message="manifest.yaml does not match the rc0.2 schema",
            rendered="Invalid: manifest.yaml does not match the rc0.2 schema\n",
            detail={"valid": False},
        )

        text = runner.invoke(app, ["diagnostics", "unfoldingWord/en_ult", "--tag", "v12"])
        assert text.exit_code == 0
        assert "does not match the rc0.2 schema" in text.output

        data = _json(runner.invoke(app, ["diagnostics", "unfoldingWord/en_ult", "--tag", "v12", "--json"]))
        assert data["error_type"] == "validation"
        assert data["detail"] == {"valid": False}

    def test_nothing_recorded(self, db):
        db.hosting.add_repository("unfoldingWord", "en_ult")
        result = runner.invoke(app, ["diagnostics", "unfoldingWord/en_ult"])
        assert result.exit_code == 0
        assert "no diagnostics recorded" in result.output
        assert _json(runner.invoke(app, ["diagnostics", "unfoldingWord/en_ult", "--json"])) is None

    def test_unknown_tag(self, db):
        db.hosting.add_repository("unfoldingWord", "en_ult")
        result = runner.invoke(app, ["diagnostics", "unfoldingWord/en_ult", "--tag", "v9"])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output


class TestSync:
    def test_missing_git_repository(self, db):
        db.hosting.add_repository("unfoldingWord", "en_ult")
        result = runner.invoke(app, ["sync", "unfoldingWord/en_ult"])
        assert result.exit_code == 1
        assert "repository not found" in result.output

    def test_unknown_repository(self, db):
        result = runner.invoke(app, ["sync", "unfoldingWord/en_ult"])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_bare_tag_is_skipped(self, db):
        db.hosting.add_repository("unfoldingWord", "en_ult")
        data = _json(runner.invoke(app, ["sync", "unfoldingWord/en_ult", "--tag", "v1", "--json"]))
        assert data["action"] == "skipped"
        assert data["release_id"] == -1

    def test_sync_all_reports_failures(self, db):
        db.hosting.add_repository("unfoldingWord", "en_ult")
        data = _json(runner.invoke(app, ["sync-all", "--json"]))
        assert data["processed"] == 1
        assert data["counts"] == {"failed": 1}
        assert data["failures"][0]["repo_id"] == 1

    def test_sync_all_empty(self, db):
        data = _json(runner.invoke(app, ["sync-all", "--json"]))
        assert data == {"processed": 0, "cancelled": False, "counts": {}, "failures": []}


def test_reload_schemas():
    result = runner.invoke(app, ["reload-schemas"])
    assert result.exit_code == 0
    assert "all schemas reloaded" in result.output
    assert _json(runner.invoke(app, ["reload-schemas", "--json"])) == {}
