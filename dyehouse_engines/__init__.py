"""
Module: dyehouse_engines
Responsibility:
    Package entrypoint that re-exports all public symbols from the pure
    calculation engine sub-modules.  This is the canonical import surface
    for the reporting layer.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import dyehouse_kernel and dyehouse_config.schema.
    MUST NOT import dyehouse_modules or dyehouse_ingestion.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates must be passed in as explicit parameters.
    - Decimal-only arithmetic for all quantities.
    - Determinism: identical snapshots always produce identical outputs.

Audit relevance:
    Engine entry points are traced via ``@traced_engine`` (see
    ``dyehouse_engines.tracer``), emitting DYEHOUSE_ENGINE_TRACE records
    with engine name, version, input fingerprint and duration.

Usage:
    from dyehouse_engines.resolver import BatchStateResolver
    from dyehouse_engines.ledger import LedgerAggregator, by_facility
    from dyehouse_engines.outliers import OutlierDetector
    from dyehouse_engines.aging import LateWorkCalculator
"""

from dyehouse_kernel.logging_config import get_logger

logger = get_logger("engines")

from dyehouse_engines.aging import (
    AgeBucket,
    LateWorkCalculator,
    LateWorkItem,
    LateWorkReport,
    Urgency,
)
from dyehouse_engines.ledger import (
    ALL_DIMENSIONS,
    DimensionKeyFn,
    LedgerAggregator,
    LedgerCell,
    by_client,
    by_facility,
    dimension_key,
    merge_dimensions,
    roll_forward,
    whole_factory,
)
from dyehouse_engines.outliers import (
    INFINITE_THRESHOLD,
    CycleTimeSample,
    CycleTimeStats,
    OutlierDetector,
)
from dyehouse_engines.resolver import (
    BatchStateResolver,
    BatchSummary,
)

__all__ = [
    # Resolver
    "BatchStateResolver",
    "BatchSummary",
    # Ledger
    "LedgerAggregator",
    "LedgerCell",
    "DimensionKeyFn",
    "ALL_DIMENSIONS",
    "by_client",
    "by_facility",
    "dimension_key",
    "whole_factory",
    "merge_dimensions",
    "roll_forward",
    # Outliers
    "OutlierDetector",
    "CycleTimeSample",
    "CycleTimeStats",
    "INFINITE_THRESHOLD",
    # Aging
    "LateWorkCalculator",
    "LateWorkItem",
    "LateWorkReport",
    "AgeBucket",
    "Urgency",
]

logger.debug("engines_package_loaded", extra={
    "module_count": 5,
    "modules": ["resolver", "ledger", "outliers", "aging", "tracer"],
})
