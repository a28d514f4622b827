"""Tests for SchemaValidator, the cause tree and its text rendering."""

from __future__ import annotations

import pytest

from catalog_spine.core.errors import SchemaValidationFailed
from catalog_spine.core.settings import CatalogSettings
from catalog_spine.manifest import Document, SchemaFamily
from catalog_spine.schema import (
    SchemaCache,
    SchemaLoader,
    SchemaValidator,
    ValidationCause,
    ValidationResult,
    render_validation_text,
)
from catalog_spine.schema.validator import GROUP_MESSAGE
from tests._support.manifests import rc_manifest, sb_metadata, tc_manifest, ts_manifest


@pytest.fixture(scope="module")
def validator() -> SchemaValidator:
    settings = CatalogSettings(_env_file=None, schema_remote_enabled=False)
    return SchemaValidator(SchemaCache(SchemaLoader(settings)))


def _without(manifest: dict, *path: str) -> dict:
    node = manifest
    for key in path[:-1]:
        node = node[key]
    del node[path[-1]]
    return manifest


class TestValidManifests:
    @pytest.mark.parametrize(
        "document, source, family",
        [
            (rc_manifest(), "manifest.yaml", SchemaFamily.RC02),
            (rc_manifest(checking_level=2), "manifest.yaml", SchemaFamily.RC02),
            (sb_metadata(), "metadata.json", SchemaFamily.SB100),
            (sb_metadata(flavor_type="gloss", flavor="textStories"), "metadata.json", SchemaFamily.SB100),
            (tc_manifest(), "manifest.json", SchemaFamily.TC),
            (ts_manifest(), "manifest.json", SchemaFamily.TS),
            (ts_manifest(package_version=3), "manifest.json", SchemaFamily.TS),
        ],
    )
    def test_valid(self, validator, document, source, family):
        result = validator.validate(Document(document), source=source)
        assert result.valid
        assert result.family is family
        assert result.message == ""
        assert result.error_count == 0
        assert render_validation_text(result) == ""

    def test_family_can_be_forced(self, validator):
        result = validator.validate(Document(rc_manifest()), SchemaFamily.SB100)
        assert not result.valid
        assert result.family is SchemaFamily.SB100


class TestInvalidManifests:
    def test_missing_top_level_key(self, validator):
        result = validator.validate(Document(_without(rc_manifest(), "checking")), source="manifest.yaml")
        assert not result.valid
        assert result.message == "manifest.yaml does not match the rc0.2 schema"
        assert [c.message for c in result.root.causes] == ["'checking' is a required property"]
        assert result.root.causes[0].instance_location == ""

    def test_nested_errors_are_grouped_by_top_level_key(self, validator):
        manifest = _without(rc_manifest(), "dublin_core", "language", "direction")
        manifest["dublin_core"]["subject"] = ""
        result = validator.validate(Document(manifest), source="manifest.yaml")

        assert len(result.root.causes) == 1
        group = result.root.causes[0]
        assert group.message == GROUP_MESSAGE
        assert group.instance_location == "/dublin_core"
        assert sorted(c.instance_location for c in group.causes) == ["/dublin_core/language", "/dublin_core/subject"]
        assert result.error_count == 2

    def test_any_of_keeps_sub_errors(self, validator):
        result = validator.validate(Document(rc_manifest(checking_level="5")), source="manifest.yaml")
        group = result.root.causes[0]
        assert group.instance_location == "/checking"
        any_of = group.causes[0]
        assert any_of.instance_location == "/checking/checking_level"
        assert len(any_of.causes) == 2
        assert result.error_count == 2

    def test_empty_document(self, validator):
        result = validator.validate(Document(None), source="manifest.yaml")
        assert not result.valid
        assert result.message == "file cannot be empty"
        assert result.family is SchemaFamily.RC02

    def test_unrecognized_document(self, validator):
        result = validator.validate(Document({"name": "left-pad"}), source="manifest.json")
        assert not result.valid
        assert result.family is None
        assert result.message == "unrecognized manifest format"

    def test_sb_invalid(self, validator):
        metadata = sb_metadata()
        metadata["meta"]["version"] = "2.0.0"
        result = validator.validate(Document(metadata), source="metadata.json")
        assert not result.valid
        assert result.root.causes[0].instance_location == "/meta"

    def test_ensure_valid(self, validator):
        assert validator.ensure_valid(Document(tc_manifest()), source="manifest.json") is SchemaFamily.TC
        with pytest.raises(SchemaValidationFailed) as exc_info:
            validator.ensure_valid(Document(_without(tc_manifest(), "project")), source="manifest.json")
        assert exc_info.value.result.family is SchemaFamily.TC


class TestRendering:
    def test_render_tree(self, validator):
        manifest = _without(rc_manifest(), "checking")
        _without(manifest, "dublin_core", "language", "direction")
        result = validator.validate(Document(manifest), source="manifest.yaml")
        assert render_validation_text(result) == (
            "Invalid: manifest.yaml does not match the rc0.2 schema\n"
            "* <root>:\n"
            "  * 'checking' is a required property\n"
            "  * dublin_core: validation failed\n"
            "    * language: 'direction' is a required property\n"
        )

    def test_render_without_causes(self):
        result = ValidationResult.failed(SchemaFamily.RC02, "file cannot be empty")
        assert render_validation_text(result) == "Invalid: file cannot be empty\n"

    def test_children_sorted_by_location(self):
        root = ValidationCause(
            "bad",
            causes=[
                ValidationCause("z", "/projects/1"),
                ValidationCause("a", "/checking"),
            ],
        )
        text = render_validation_text(ValidationResult(family=SchemaFamily.RC02, root=root))
        assert text.index("checking: a") < text.index("projects.1: z")


class TestSerialization:
    def test_to_dict(self):
        result = ValidationResult.failed(
            SchemaFamily.TC, "bad", [ValidationCause("'project' is a required property")]
        )
        data = result.to_dict()
        assert data["valid"] is False
        assert data["family"] == "tc"
        assert data["message"] == "bad"
        assert data["causes"][0]["message"] == "'project' is a required property"

    def test_valid_to_dict(self):
        assert ValidationResult.ok(SchemaFamily.SB100).to_dict() == {"valid": True, "family": "sb1.0"}

    def test_cause_round_trip_through_dict(self):
        cause = ValidationCause("root", "", [ValidationCause("leaf", "/dublin_core/title")])
        assert ValidationCause.from_dict(cause.to_dict()) == cause
        assert [leaf.message for leaf in cause.leaves()] == ["leaf"]
