"""
portfolio_config -- single public entrypoint for reporting configuration.

Responsibility:
    Provides the runtime way to obtain configuration through
    ``get_active_config()``.  Returns a frozen ``ReportingConfig``.

Architecture position:
    Configuration -- YAML-driven settings.  Sits above ``portfolio_kernel``
    and below ``portfolio_modules``.  Engines never import from here; the
    reporting service passes thresholds into them as plain arguments.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``ConfigurationError`` / ``InvalidThresholdError`` -- invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PORTFOLIO_CONFIG_TRACE`` log entry with the set name, path and
    checksum, tying every report back to the configuration that produced it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from portfolio_config.loader import load_config
from portfolio_config.schema import ReportingConfig, ReportingThresholds

_logger = logging.getLogger("portfolio_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> ReportingConfig:
    """Load the named configuration set (``<config_dir>/<name>.yaml``).

    Args:
        name: Configuration set name (file stem).
        config_dir: Override path to configuration sets directory.
            Defaults to portfolio_config/sets/.

    Raises:
        FileNotFoundError: If no such configuration set exists.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config, checksum = load_config(path)

    _logger.info(
        "PORTFOLIO_CONFIG_TRACE",
        extra={
            "trace_type": "PORTFOLIO_CONFIG_TRACE",
            "config_name": name,
            "config_path": str(path),
            "checksum": checksum,
            "entity_name": config.entity_name,
        },
    )
    return config


__all__ = [
    "ReportingConfig",
    "ReportingThresholds",
    "get_active_config",
]
