"""Tests for configuration loading and repository construction."""
from __future__ import annotations

import json

import pytest

from shop_import.config import ConfigurationError, ImportSettings, load_configuration
from shop_import.factory import build_repository
from shop_import.repositories import InMemoryCustomerRepository


def test_load_json_and_yaml(tmp_path):
    json_path = tmp_path / "config.json"
    json_path.write_text(json.dumps({"import": {"enrich_existing": True}}), encoding="utf-8")
    yaml_path = tmp_path / "config.yaml"
    yaml_path.write_text("import:\n  max_error_details: 3\n", encoding="utf-8")

    assert load_configuration(json_path) == {"import": {"enrich_existing": True}}
    assert load_configuration(yaml_path) == {"import": {"max_error_details": 3}}


def test_empty_yaml_is_an_empty_mapping(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("", encoding="utf-8")

    assert load_configuration(path) == {}


@pytest.mark.parametrize(
    "name, content",
    [
        ("config.toml", "import = 1"),
        ("config.json", "{not json"),
        ("config.yaml", "- just\n- a list\n"),
    ],
)
def test_invalid_configuration_raises(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_configuration(path)


def test_missing_configuration_raises(tmp_path):
    with pytest.raises(ConfigurationError):
        load_configuration(tmp_path / "absent.json")


def test_import_settings_defaults_and_overrides():
    defaults = ImportSettings.from_config({})
    assert defaults == ImportSettings()
    assert defaults.max_error_details == 10
    assert defaults.duplicate_check_limit == 1000
    assert defaults.consent_source == "csv_import"

    settings = ImportSettings.from_config(
        {
            "import": {
                "enrich_existing": True,
                "default_interval_days": 120,
                "service_intervals": {"brake_service": {"days": 180, "miles": 15000}},
            }
        }
    )
    schedule = settings.service_schedule()
    assert settings.enrich_existing
    assert schedule.interval_for("oil_change").days == 120
    assert schedule.interval_for("brake_service").miles == 15000


def test_import_settings_rejects_bad_values():
    with pytest.raises(ConfigurationError):
        ImportSettings.from_config({"import": {"max_error_details": "many"}})
    with pytest.raises(ConfigurationError):
        ImportSettings.from_config({"import": ["not", "a", "mapping"]})


def test_build_repository_defaults_to_memory():
    assert isinstance(build_repository({}), InMemoryCustomerRepository)


def test_build_repository_from_class_path():
    repository = build_repository(
        {"repository": {"class": "shop_import.repositories.memory.InMemoryCustomerRepository"}}
    )

    assert isinstance(repository, InMemoryCustomerRepository)


@pytest.mark.parametrize(
    "section",
    [
        {"options": {}},
        {"class": "NoModule"},
        {"class": "shop_import.repositories.memory.Missing"},
        {"class": "shop_import.not_a_module.Repository"},
    ],
)
def test_build_repository_rejects_bad_class_paths(section):
    with pytest.raises(ConfigurationError):
        build_repository({"repository": section})
