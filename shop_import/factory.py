"""Factory helpers for constructing repositories from configuration."""
from __future__ import annotations

import importlib
from typing import Any, Dict

from .config import ConfigurationError
from .repositories import CustomerRepository, InMemoryCustomerRepository


def _load_class(path: str):
    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ConfigurationError(f"Invalid repository class path '{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Could not import repository module '{module_name}'") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_name}' does not define '{attr}'") from exc


def build_repository(config: Dict[str, Any]) -> CustomerRepository:
    """Instantiate the repository named in the ``repository`` section."""

    repository_cfg = config.get("repository")
    if not repository_cfg:
        return InMemoryCustomerRepository()

    class_path = repository_cfg.get("class")
    if not class_path:
        raise ConfigurationError("Repository configuration missing required 'class' field")

    options = repository_cfg.get("options", {}) or {}
    repository_cls = _load_class(class_path)
    return repository_cls(**options)


__all__ = ["build_repository"]
