"""
Configuration Loader (``portfolio_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a typed
``ReportingConfig``.  The single public entry point for runtime config is
``portfolio_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Top level not a mapping, or unknown keys  -> ``ConfigurationError``.
* Non-positive threshold  -> ``InvalidThresholdError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from portfolio_config.schema import ReportingConfig
from portfolio_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top-level YAML must be a mapping")
    return data


def parse_config(data: dict[str, Any]) -> ReportingConfig:
    """Parse a ``ReportingConfig`` from a dict; the ``name`` key is metadata only."""
    body = {k: v for k, v in data.items() if k != "name"}
    return ReportingConfig.from_dict(body)


def load_config(path: Path) -> tuple[ReportingConfig, str]:
    """Load one YAML file; return the parsed config and its content checksum."""
    data = load_yaml_file(path)
    return parse_config(data), compute_checksum(data)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
