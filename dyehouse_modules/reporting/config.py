"""
Reporting Configuration Schema.

Display and filtering options for the dyehouse read models.  Engine
thresholds live in ``dyehouse_config.EngineParameters``, not here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from dyehouse_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    Controls row filtering and the rounding applied when read models are
    rendered for display.
    """

    # Whether the balance matrix drops clients with nothing outstanding
    hide_zero_rows: bool = True

    # Decimal places kept by QueryFacade.render (half-up)
    display_precision: int = 2

    def __post_init__(self):
        if self.display_precision < 0:
            raise ValueError("display_precision cannot be negative")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
