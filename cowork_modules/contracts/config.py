"""
Contract Renewal Configuration Schema.

Thresholds for renewal reminder urgency and the expiry window the
reminder listing covers.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Self

import yaml

from cowork_kernel.logging_config import get_logger

logger = get_logger("modules.contracts.config")


@dataclass
class ContractsConfig:
    """Configuration schema for the contracts module."""

    # Urgency buckets (days until expiry, inclusive upper bounds)
    urgent_days: int = 7
    warning_days: int = 30
    upcoming_days: int = 60

    # Reminder listing window
    reminder_window_days: int = 60
    expired_lookback_days: int = 30

    # Currency shown in reminder messages
    default_currency: str = "TWD"

    def __post_init__(self):
        if self.urgent_days < 0:
            raise ValueError("urgent_days cannot be negative")
        if not self.urgent_days <= self.warning_days <= self.upcoming_days:
            raise ValueError("urgency thresholds must satisfy urgent <= warning <= upcoming")
        if self.reminder_window_days <= 0:
            raise ValueError("reminder_window_days must be positive")
        if self.expired_lookback_days < 0:
            raise ValueError("expired_lookback_days cannot be negative")

        logger.info(
            "contracts_config_initialized",
            extra={
                "urgent_days": self.urgent_days,
                "warning_days": self.warning_days,
                "upcoming_days": self.upcoming_days,
                "reminder_window_days": self.reminder_window_days,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard thresholds."""
        return cls()

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Self:
        """
        Build config from a parsed mapping.

        Raises:
            KeyError: unknown setting name.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise KeyError(f"Unknown contracts config keys: {unknown}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path | str) -> Self:
        """
        Load config overrides from a YAML file.

        The file may hold the settings at top level or under a
        ``contracts:`` key.  An empty file yields the defaults.

        Raises:
            FileNotFoundError: the file does not exist.
            yaml.YAMLError: the file is not valid YAML.
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {path}, got {type(data).__name__}")
        if "contracts" in data:
            data = data["contracts"] or {}
        return cls.from_mapping(data)
