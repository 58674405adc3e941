"""Configuration helpers for the customer import pipeline."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .scheduling import DEFAULT_INTERVAL_DAYS, DEFAULT_INTERVAL_MILES, ServiceSchedule

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    try:
        if file_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not parse configuration file '{file_path}': {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


@dataclass
class ImportSettings:
    """Tunable behaviour of the import pipeline, read from the ``import`` section."""

    max_error_details: int = 10
    duplicate_check_limit: int = 1000
    enrich_existing: bool = False
    default_interval_days: int = DEFAULT_INTERVAL_DAYS
    default_interval_miles: int = DEFAULT_INTERVAL_MILES
    service_intervals: Dict[str, Dict[str, int]] = field(default_factory=dict)
    consent_source: str = "csv_import"

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "ImportSettings":
        section = (config or {}).get("import") or {}
        if not isinstance(section, Mapping):
            raise ConfigurationError("The 'import' configuration section must be a mapping")

        known = set(cls.__dataclass_fields__)
        for key in section:
            if key not in known:
                LOGGER.warning("Ignoring unknown import setting '%s'", key)

        intervals = section.get("service_intervals") or {}
        if not isinstance(intervals, Mapping):
            raise ConfigurationError("'service_intervals' must map service types to {days, miles}")

        try:
            return cls(
                max_error_details=int(section.get("max_error_details", 10)),
                duplicate_check_limit=int(section.get("duplicate_check_limit", 1000)),
                enrich_existing=bool(section.get("enrich_existing", False)),
                default_interval_days=int(section.get("default_interval_days", DEFAULT_INTERVAL_DAYS)),
                default_interval_miles=int(section.get("default_interval_miles", DEFAULT_INTERVAL_MILES)),
                service_intervals={
                    str(name): {key: int(value) for key, value in dict(values).items()}
                    for name, values in intervals.items()
                },
                consent_source=str(section.get("consent_source", "csv_import")),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid import setting: {exc}") from exc

    def service_schedule(self) -> ServiceSchedule:
        return ServiceSchedule.from_mapping(
            self.service_intervals,
            default_days=self.default_interval_days,
            default_miles=self.default_interval_miles,
        )


__all__ = ["ConfigurationError", "ImportSettings", "load_configuration"]
