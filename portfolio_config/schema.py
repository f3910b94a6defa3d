"""
Reporting configuration schema.

Defines the human-authored configuration for a reporting run: the
thresholds used by the Integrity Checker and Quality Scanner, plus the
presentation settings used on report metadata.  YAML files are parsed
into these types by ``portfolio_config.loader``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Self

from portfolio_kernel.exceptions import ConfigurationError, InvalidThresholdError
from portfolio_kernel.logging_config import get_logger

logger = get_logger("config.schema")


def _to_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidThresholdError(name, value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidThresholdError(name, value) from None
    if not result.is_finite() or result <= 0:
        raise InvalidThresholdError(name, value)
    return result


@dataclass(frozen=True)
class ReportingThresholds:
    """
    Rule thresholds for the diagnostic checks.

    Guarantees:
        - Every threshold is a positive, finite ``Decimal``; strings and
          ints are coerced on construction.
    """

    # Integrity: |forecast - actual| / forecast above this is an accuracy gap
    forecast_accuracy_tolerance: Decimal = Decimal("0.10")
    # Quality: same ratio above this is a forecast deviation finding
    forecast_deviation_threshold: Decimal = Decimal("0.50")
    # Quality: spend above multiplier x project mean is an outlier
    spend_outlier_multiplier: Decimal = Decimal("3")

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, _to_decimal(f.name, getattr(self, f.name)))


@dataclass(frozen=True)
class ReportingConfig:
    """
    Configuration for a reporting run.

    Controls diagnostic thresholds and report presentation.
    """

    thresholds: ReportingThresholds = field(default_factory=ReportingThresholds)

    # Entity name shown on reports
    entity_name: str = "Finance Reporting"

    # Reporting currency (ISO 4217)
    currency: str = "USD"

    # Rounding precision for display only; engines never round
    display_precision: int = 2

    def __post_init__(self) -> None:
        if self.display_precision < 0:
            raise ConfigurationError("display_precision cannot be negative")
        if len(self.currency) != 3:
            raise ConfigurationError("currency must be a 3-letter ISO 4217 code")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a dictionary (e.g. parsed YAML)."""
        data = dict(data)
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        try:
            if isinstance(data.get("thresholds"), dict):
                data["thresholds"] = ReportingThresholds(**data["thresholds"])
            return cls(**data)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid reporting config: {exc}") from exc
