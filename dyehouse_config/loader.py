"""
Configuration Loader (``dyehouse_config.loader``).

Responsibility
--------------
Loads engine parameter YAML files and parses them into the frozen
``EngineParameters`` dataclass.  The runtime entry point is
``dyehouse_config.get_active_parameters()``; call this module directly
only from tests and tooling.

File layout
-----------
::

    name: default
    version: 1
    completion:
      tolerance: "0.10"
    outliers:
      fence_multiplier: "1.5"
      min_samples: 4
      lower_quartile: "0.25"
      upper_quartile: "0.75"
    late_work:
      attention_days: 15
      urgent_days: 20
    dimensions:
      unassigned_label: Unassigned

Every section and key is optional; omitted values keep the schema
defaults.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section / key, or a value of the wrong type  ->
  ``InvalidEngineParameterError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from dyehouse_config.schema import EngineParameters
from dyehouse_kernel.exceptions import InvalidEngineParameterError

# (section, key) -> EngineParameters field
_FIELD_MAP: dict[tuple[str, str], str] = {
    ("completion", "tolerance"): "completion_tolerance",
    ("outliers", "fence_multiplier"): "outlier_fence_multiplier",
    ("outliers", "min_samples"): "outlier_min_samples",
    ("outliers", "lower_quartile"): "lower_quartile",
    ("outliers", "upper_quartile"): "upper_quartile",
    ("late_work", "attention_days"): "late_attention_days",
    ("late_work", "urgent_days"): "late_urgent_days",
    ("dimensions", "unassigned_label"): "unassigned_label",
}

_DECIMAL_FIELDS = frozenset({
    "completion_tolerance",
    "outlier_fence_multiplier",
    "lower_quartile",
    "upper_quartile",
})
_INT_FIELDS = frozenset({
    "outlier_min_samples",
    "late_attention_days",
    "late_urgent_days",
})


def load_yaml_file(path: Path) -> Any:
    """
    Load a single YAML file and return its parsed contents ({} when empty).

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(name: str, value: Any) -> Decimal:
    """Parse a Decimal from a YAML scalar (string, int or float)."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise InvalidEngineParameterError(name, value, "expected a number")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidEngineParameterError(name, value, "expected a number") from e
    if not result.is_finite():
        raise InvalidEngineParameterError(name, value, "must be finite")
    return result


def parse_int(name: str, value: Any) -> int:
    """Parse an integer from a YAML scalar."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidEngineParameterError(name, value, "expected an integer")
    return value


def parse_engine_parameters(data: dict[str, Any]) -> EngineParameters:
    """
    Parse ``EngineParameters`` from a loaded YAML mapping.

    Postconditions:
        - Returns a frozen ``EngineParameters``; omitted keys keep defaults.
    Raises:
        InvalidEngineParameterError: unknown keys or mistyped values,
            or a document that is not a mapping.
    """
    if not isinstance(data, dict):
        raise InvalidEngineParameterError("<root>", data, "expected a mapping")

    values: dict[str, Any] = {}

    if "name" in data:
        values["name"] = str(data["name"])
    if "version" in data:
        values["version"] = parse_int("version", data["version"])

    for section, body in data.items():
        if section in ("name", "version"):
            continue
        if not isinstance(body, dict):
            raise InvalidEngineParameterError(section, body, "expected a mapping section")
        for key, raw in body.items():
            field_name = _FIELD_MAP.get((section, key))
            if field_name is None:
                raise InvalidEngineParameterError(
                    f"{section}.{key}", raw, "unknown parameter",
                )
            if field_name in _DECIMAL_FIELDS:
                values[field_name] = parse_decimal(field_name, raw)
            elif field_name in _INT_FIELDS:
                values[field_name] = parse_int(field_name, raw)
            else:
                values[field_name] = str(raw)

    return EngineParameters(**values)


def load_engine_parameters(path: Path) -> EngineParameters:
    """Load and parse one engine parameter file."""
    return parse_engine_parameters(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
