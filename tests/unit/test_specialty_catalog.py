"""Tests for specialty loading, validation and the catalog registry."""

from __future__ import annotations

import json

import pytest
import yaml

from portfolio_ai.exceptions import ConfigError
from portfolio_ai.specialties.catalog import SpecialtyCatalog, build_catalog, validate_specialty
from portfolio_ai.specialties.loader import load_specialty_file, specialty_from_dict


class TestBuiltIn:
    def test_gp_discovered(self):
        catalog = SpecialtyCatalog()
        catalog.auto_discover()

        gp = catalog.get("gp")
        assert len(gp.entry_types) == 10
        assert len(gp.capabilities) == 13
        assert len(gp.templates) == 8
        assert "gp" in catalog

    def test_gp_entry_types_resolve(self):
        catalog = build_catalog()

        for entry_type in catalog.get("gp").entry_types:
            template = catalog.template_for_entry_type("gp", entry_type.code)
            assert template.id == entry_type.template_id

    def test_ccr_template_shape(self):
        template = build_catalog().template_for_entry_type("gp", "CLINICAL_CASE_REVIEW")

        assert template.required_section_ids == (
            "presentation", "clinical_reasoning", "management", "outcome", "reflection",
        )
        assert template.section("ethical_legal").extraction_question is None

    def test_auto_discover_twice_is_harmless(self):
        catalog = SpecialtyCatalog()
        catalog.auto_discover()
        catalog.auto_discover()

        assert len(catalog) == 1

    def test_unknown_specialty(self):
        with pytest.raises(KeyError, match="Available"):
            SpecialtyCatalog().get("nope")


class TestValidation:
    def test_valid_mini(self, mini_config):
        validate_specialty(mini_config)

    def test_weights_must_sum_to_one(self, mini_data):
        mini_data["templates"][0]["sections"][0]["weight"] = 0.4

        with pytest.raises(ConfigError, match="sum to 0.900000"):
            validate_specialty(specialty_from_dict(mini_data))

    def test_weight_within_tolerance(self, mini_data):
        mini_data["templates"][0]["sections"][0]["weight"] = 0.5 + 1e-9

        validate_specialty(specialty_from_dict(mini_data))

    @pytest.mark.parametrize("weight", [0.0, -0.1, 1.5])
    def test_weight_out_of_range(self, mini_data, weight):
        mini_data["templates"][1]["sections"][0]["weight"] = weight

        with pytest.raises(ConfigError, match="outside"):
            validate_specialty(specialty_from_dict(mini_data))

    def test_duplicate_section_ids(self, mini_data):
        mini_data["templates"][1]["sections"][1]["id"] = "what"

        with pytest.raises(ConfigError, match="duplicate section"):
            validate_specialty(specialty_from_dict(mini_data))

    def test_duplicate_capability_codes(self, mini_data):
        mini_data["capabilities"][2]["code"] = "C1"

        with pytest.raises(ConfigError, match="duplicate capability"):
            validate_specialty(specialty_from_dict(mini_data))

    def test_duplicate_entry_type(self, mini_data):
        mini_data["entry_types"][1]["code"] = "CASE"
        mini_data["entry_type_to_template"] = {"CASE": "CASE_T"}
        mini_data["entry_types"][1]["template_id"] = "CASE_T"

        with pytest.raises(ConfigError, match="duplicate entry type"):
            validate_specialty(specialty_from_dict(mini_data))

    def test_missing_template(self, mini_data):
        mini_data["entry_types"][1]["template_id"] = "GONE_T"

        with pytest.raises(ConfigError, match="missing template 'GONE_T'"):
            validate_specialty(specialty_from_dict(mini_data))

    def test_mapping_disagrees_with_entry_type(self, mini_data):
        mini_data["entry_type_to_template"] = {"CASE": "EVENT_T", "EVENT": "EVENT_T"}

        with pytest.raises(ConfigError, match="mapped to"):
            validate_specialty(specialty_from_dict(mini_data))

    def test_bad_word_range(self, mini_data):
        mini_data["templates"][0]["word_count_range"] = {"min": 300, "max": 100}

        with pytest.raises(ConfigError, match="word count range"):
            validate_specialty(specialty_from_dict(mini_data))

    def test_invalid_specialty_is_never_registered(self, mini_data):
        mini_data["templates"][0]["sections"][0]["weight"] = 0.1
        catalog = SpecialtyCatalog()

        with pytest.raises(ConfigError):
            catalog.register(specialty_from_dict(mini_data))
        assert not catalog.has("mini")


class TestLoader:
    def test_missing_key(self, mini_data):
        del mini_data["templates"][0]["sections"][0]["weight"]

        with pytest.raises(ConfigError, match="missing required key"):
            specialty_from_dict(mini_data)

    def test_templates_as_mapping(self, mini_data):
        mini_data["templates"] = {t.pop("id"): t for t in mini_data["templates"]}

        config = specialty_from_dict(mini_data)

        assert set(config.templates) == {"CASE_T", "EVENT_T"}

    def test_yaml_file(self, tmp_path, mini_data):
        path = tmp_path / "mini.yaml"
        path.write_text(yaml.safe_dump(mini_data), encoding="utf-8")

        config = load_specialty_file(path)

        assert config.id == "mini"
        assert config.entry_type_to_template == {"CASE": "CASE_T", "EVENT": "EVENT_T"}

    def test_json_file(self, tmp_path, mini_data):
        path = tmp_path / "mini.json"
        path.write_text(json.dumps(mini_data), encoding="utf-8")

        assert load_specialty_file(path).templates["EVENT_T"].section("signoff").extraction_question is None

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("id: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigError, match="Could not parse"):
            load_specialty_file(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="mapping"):
            load_specialty_file(path)

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "mini.toml"
        path.write_text("id = 'mini'", encoding="utf-8")

        with pytest.raises(ConfigError, match="Unsupported"):
            load_specialty_file(path)


class TestCatalogPaths:
    def test_load_directory(self, tmp_path, mini_data):
        (tmp_path / "a.yaml").write_text(yaml.safe_dump(mini_data), encoding="utf-8")
        other = dict(mini_data, id="other", name="Other")
        (tmp_path / "b.json").write_text(json.dumps(other), encoding="utf-8")
        (tmp_path / "README.md").write_text("ignored", encoding="utf-8")

        catalog = SpecialtyCatalog()
        loaded = catalog.load_path(tmp_path)

        assert loaded == ["mini", "other"]
        assert [s.id for s in catalog.list_specialties()] == ["mini", "other"]

    def test_duplicate_without_replace(self, tmp_path, mini_data, mini_config):
        path = tmp_path / "mini.yaml"
        path.write_text(yaml.safe_dump(mini_data), encoding="utf-8")
        catalog = SpecialtyCatalog()
        catalog.register(mini_config)

        with pytest.raises(ConfigError, match="already registered"):
            catalog.load_path(path)

    def test_replace_swaps_whole_config(self, tmp_path, mini_data, mini_config):
        catalog = SpecialtyCatalog()
        catalog.register(mini_config)
        held = catalog.get("mini")

        mini_data["name"] = "Renamed"
        path = tmp_path / "mini.yaml"
        path.write_text(yaml.safe_dump(mini_data), encoding="utf-8")
        catalog.load_path(path, replace=True)

        assert catalog.get("mini").name == "Renamed"
        assert held.name == "Mini Specialty"

    def test_missing_path(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            SpecialtyCatalog().load_path(tmp_path / "nope")

    def test_build_catalog_with_paths(self, tmp_path, mini_data):
        path = tmp_path / "mini.yaml"
        path.write_text(yaml.safe_dump(mini_data), encoding="utf-8")

        catalog = build_catalog(paths=[path])

        assert catalog.has("gp") and catalog.has("mini")

    def test_configs_are_read_only(self, mini_config):
        with pytest.raises(TypeError):
            mini_config.templates["X"] = mini_config.templates["CASE_T"]
