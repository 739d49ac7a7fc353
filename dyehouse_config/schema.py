"""
Engine parameter schema.

Defines the tunable constants the calculation engines run with.  YAML
files under ``dyehouse_config/sets/`` are parsed into this type by the
loader; engines receive an instance through their constructor and never
read configuration themselves.

Defaults reproduce the dashboard's historical behaviour exactly:
a 10% return tolerance for completion, Tukey's 1.5 x IQR fence over
index-based quartiles, at least 4 samples before any outlier is flagged,
and late-work alerts at 15 (attention) and 20 (urgent) days.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class EngineParameters:
    """Tunable constants shared by all dyehouse engines."""

    # Completion: received within this fraction of sent counts as complete
    completion_tolerance: Decimal = Decimal("0.10")

    # Outlier fence: Q3 + multiplier * (Q3 - Q1)
    outlier_fence_multiplier: Decimal = Decimal("1.5")
    outlier_min_samples: int = 4
    lower_quartile: Decimal = Decimal("0.25")
    upper_quartile: Decimal = Decimal("0.75")

    # Late-work aging thresholds, in days since formation
    late_attention_days: int = 15
    late_urgent_days: int = 20

    # Dimension key used when a batch has no facility / client
    unassigned_label: str = "Unassigned"

    name: str = "default"
    version: int = 1


DEFAULT_PARAMETERS = EngineParameters()
