"""
Engine parameter validator (``dyehouse_config.validator``).

Responsibility
--------------
Checks an ``EngineParameters`` instance for values the engines cannot
work with before it is handed out by ``get_active_parameters()``.

Invariants enforced
-------------------
* ``0 <= completion_tolerance < 1``
* ``outlier_fence_multiplier >= 0``
* ``outlier_min_samples >= 1``
* ``0 <= lower_quartile <= upper_quartile < 1``
* ``0 < late_attention_days < late_urgent_days``
* ``unassigned_label`` is non-empty

Failure modes
-------------
* Validation errors (``ParameterValidationResult.errors``) -> the
  parameters MUST NOT be used; ``raise_if_invalid`` raises the first one
  as ``InvalidEngineParameterError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from dyehouse_config.schema import EngineParameters
from dyehouse_kernel.exceptions import InvalidEngineParameterError


@dataclass(frozen=True)
class ParameterError:
    """A single invalid parameter."""

    parameter: str
    value: Any
    reason: str

    def __str__(self) -> str:
        return f"{self.parameter}={self.value!r}: {self.reason}"


@dataclass
class ParameterValidationResult:
    """
    Result of parameter validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[ParameterError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, parameter: str, value: Any, reason: str) -> None:
        self.errors.append(ParameterError(parameter, value, reason))

    def raise_if_invalid(self) -> None:
        if self.errors:
            first = self.errors[0]
            raise InvalidEngineParameterError(first.parameter, first.value, first.reason)


def validate_parameters(params: EngineParameters) -> ParameterValidationResult:
    """Validate every engine parameter and collect all errors."""
    result = ParameterValidationResult()

    if not Decimal("0") <= params.completion_tolerance < Decimal("1"):
        result.add(
            "completion_tolerance", params.completion_tolerance,
            "must be in [0, 1)",
        )
    if params.outlier_fence_multiplier < 0:
        result.add(
            "outlier_fence_multiplier", params.outlier_fence_multiplier,
            "must not be negative",
        )
    if params.outlier_min_samples < 1:
        result.add(
            "outlier_min_samples", params.outlier_min_samples,
            "must be at least 1",
        )
    if not Decimal("0") <= params.lower_quartile < Decimal("1"):
        result.add("lower_quartile", params.lower_quartile, "must be in [0, 1)")
    if not Decimal("0") <= params.upper_quartile < Decimal("1"):
        result.add("upper_quartile", params.upper_quartile, "must be in [0, 1)")
    elif params.lower_quartile > params.upper_quartile:
        result.add(
            "upper_quartile", params.upper_quartile,
            "must not be below lower_quartile",
        )
    if params.late_attention_days <= 0:
        result.add(
            "late_attention_days", params.late_attention_days,
            "must be positive",
        )
    if params.late_urgent_days <= params.late_attention_days:
        result.add(
            "late_urgent_days", params.late_urgent_days,
            "must be greater than late_attention_days",
        )
    if not params.unassigned_label.strip():
        result.add("unassigned_label", params.unassigned_label, "must not be empty")

    return result
