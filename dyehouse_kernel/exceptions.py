"""
Typed exception hierarchy for the dyehouse engines.

===============================================================================
WHERE ERRORS ARE RAISED
===============================================================================

The calculation engines are total: any snapshot that has the minimal batch
shape produces a deterministic result. Numerically odd data (over-returns,
negative cycle times, negative closing stock) is reported as a
``DataAnomaly`` value on the derived read models, never raised.

Exceptions therefore only come from the two boundaries around the engines:

  * configuration loading (``dyehouse_config``)
  * snapshot mapping (``dyehouse_ingestion``)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DyehouseKernelError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidEngineParameterError
    |
    +-- SnapshotError
        +-- MalformedSnapshotError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_ENGINE_PARAMETER    | Parameter out of range / wrong type
----------------|-----------------------------|-----------------------------------------
Snapshot        | MALFORMED_SNAPSHOT          | Order or batch entry is not a mapping

Usage:

    try:
        params = get_active_parameters()
    except InvalidEngineParameterError as e:
        log.error("bad config", extra={"code": e.code, "parameter": e.parameter})
"""

from typing import Any


class DyehouseKernelError(Exception):
    """
    Base exception for all dyehouse errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "DYEHOUSE_KERNEL_ERROR"


# Configuration


class ConfigurationError(DyehouseKernelError):
    """Base exception for engine configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidEngineParameterError(ConfigurationError):
    """An engine parameter is missing, mistyped or out of range."""

    code: str = "INVALID_ENGINE_PARAMETER"

    def __init__(self, parameter: str, value: Any, reason: str):
        self.parameter = parameter
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid engine parameter {parameter}={value!r}: {reason}")


# Snapshot mapping


class SnapshotError(DyehouseKernelError):
    """Base exception for snapshot mapping errors."""

    code: str = "SNAPSHOT_ERROR"


class MalformedSnapshotError(SnapshotError):
    """A snapshot record does not have the minimal document shape."""

    code: str = "MALFORMED_SNAPSHOT"

    def __init__(self, record_ref: str, reason: str):
        self.record_ref = record_ref
        self.reason = reason
        super().__init__(f"Malformed snapshot record {record_ref}: {reason}")
