"""
Dyehouse Query Facade (``dyehouse_modules.reporting.service``).

Responsibility
--------------
Single read-only entry point for the dyehouse dashboard: overall totals,
monthly ledgers per facility or client, scrap-rate ranking, cycle-time
outliers, the client x facility balance matrix, the active-work board and
late-work aging.  Wires the engines to the pure functions in
``queries.py``; holds no financial or statistical logic itself.

Architecture position
---------------------
**Modules layer** -- thin composition over ``dyehouse_engines``.
Constructor: ``params`` + ``config``.  No session, no clock: every method
takes the batch snapshot (and, where relevant, the as-of date) from the
caller.

Invariants enforced
-------------------
* Read-only -- the snapshot is never mutated.
* Every call recomputes from the snapshot it is given; nothing is cached
  between calls, so repeated calls on one snapshot are identical.
* All quantities use ``Decimal`` -- NEVER ``float`` (see
  ``serialization.to_wire`` for the wire form).
* Every log record emitted during a call, engine traces included, carries
  ``snapshot_id`` (fingerprint of the call's input) and ``query``.

Failure modes
-------------
* ``from_config`` propagates ``FileNotFoundError`` and
  ``InvalidEngineParameterError`` from ``get_active_parameters``.
* Query methods never raise on data anomalies; they surface them in the
  read models.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any, Sequence

from dyehouse_config import get_active_parameters
from dyehouse_config.schema import DEFAULT_PARAMETERS, EngineParameters
from dyehouse_engines.aging import LateWorkCalculator, LateWorkReport
from dyehouse_engines.ledger import DimensionKeyFn, LedgerAggregator, LedgerCell, whole_factory
from dyehouse_engines.outliers import CycleTimeStats, OutlierDetector
from dyehouse_engines.resolver import BatchStateResolver, BatchSummary
from dyehouse_engines.tracer import compute_input_fingerprint
from dyehouse_kernel.domain.batch import Batch, ProcessStage
from dyehouse_kernel.logging_config import LogContext, get_logger
from dyehouse_modules.reporting import queries
from dyehouse_modules.reporting.config import ReportingConfig
from dyehouse_modules.reporting.models import (
    ActiveWorkBoard,
    BalanceMatrix,
    DimensionSummary,
    LedgerView,
    OutlierEntry,
    OverallTotals,
)
from dyehouse_modules.reporting.serialization import to_wire

logger = get_logger("modules.reporting.service")


class QueryFacade:
    """
    Read-model composition over a batch snapshot.

    Contract
    --------
    * Every public method returns a frozen read model or a tuple of them.
    * All methods are **read-only** and deterministic.

    Non-goals
    ---------
    * Does NOT fetch snapshots, subscribe to changes or debounce; callers
      hand in whatever snapshot they hold.
    """

    def __init__(
        self,
        params: EngineParameters | None = None,
        config: ReportingConfig | None = None,
    ):
        self._params = params or DEFAULT_PARAMETERS
        self._config = config or ReportingConfig.with_defaults()
        self._resolver = BatchStateResolver(self._params)
        self._ledger = LedgerAggregator(self._params, self._resolver)
        self._detector = OutlierDetector(self._params)
        self._late_work = LateWorkCalculator(self._params, self._resolver)

    @classmethod
    def from_config(
        cls,
        name: str = "default",
        config_dir: Path | None = None,
        config: ReportingConfig | None = None,
    ) -> QueryFacade:
        """Build a facade from a named YAML parameter set."""
        return cls(get_active_parameters(name, config_dir), config)

    @property
    def params(self) -> EngineParameters:
        return self._params

    @property
    def config(self) -> ReportingConfig:
        return self._config

    def _pass(self, query: str, source: Sequence[Any]):
        """Bind ``snapshot_id`` and ``query`` onto every record of one call."""
        snapshot_id = compute_input_fingerprint(("snapshot",), {"snapshot": source})
        return LogContext.bind(snapshot_id=snapshot_id, query=query)

    # ------------------------------------------------------------------
    # Resolution and ledger
    # ------------------------------------------------------------------

    def summaries(self, batches: Sequence[Batch]) -> tuple[BatchSummary, ...]:
        with self._pass("summaries", batches):
            return self._resolver.resolve_all(batches)

    def dimension_key_fn(self, view: LedgerView) -> DimensionKeyFn:
        if view is LedgerView.FACILITY:
            return self._ledger.facility_key()
        if view is LedgerView.CLIENT:
            return self._ledger.client_key()
        return whole_factory

    def ledger(
        self,
        batches: Sequence[Batch],
        view: LedgerView = LedgerView.FACILITY,
    ) -> tuple[LedgerCell, ...]:
        """Monthly ledger over the given dimension."""
        with self._pass("ledger", batches):
            return self._ledger.build_ledger(batches, self.dimension_key_fn(view))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def overall_totals(self, batches: Sequence[Batch]) -> OverallTotals:
        with self._pass("overall_totals", batches):
            totals = queries.overall_totals(
                self._resolver.resolve_all(batches), self._detector,
            )
            logger.info("overall_totals_computed", extra={
                "batch_count": totals.batch_count,
                "in_transit_kg": str(totals.in_transit_kg),
            })
            return totals

    def by_dimension(self, ledger: Sequence[LedgerCell]) -> tuple[DimensionSummary, ...]:
        with self._pass("by_dimension", ledger):
            return queries.by_dimension(ledger)

    def monthly_timeline(
        self,
        ledger: Sequence[LedgerCell],
        dimension: str | None = None,
    ) -> tuple[LedgerCell, ...]:
        with self._pass("monthly_timeline", ledger):
            return queries.monthly_timeline(ledger, dimension)

    def outliers(self, batches: Sequence[Batch]) -> tuple[OutlierEntry, ...]:
        """Slow batches, slowest first."""
        with self._pass("outliers", batches):
            entries = queries.outliers(
                batches, self._resolver.resolve_all(batches), self._detector,
            )
            logger.info("outliers_ranked", extra={
                "batch_count": len(batches),
                "outlier_count": len(entries),
            })
            return entries

    def cycle_time_stats(self, batches: Sequence[Batch]) -> CycleTimeStats:
        with self._pass("cycle_time_stats", batches):
            return queries.cycle_time_stats(
                self._resolver.resolve_all(batches), self._detector,
            )

    def balance_matrix(self, batches: Sequence[Batch]) -> BalanceMatrix:
        with self._pass("balance_matrix", batches):
            matrix = queries.balance_matrix(
                batches,
                self._resolver.resolve_all(batches),
                self._config,
                self._params.unassigned_label,
            )
            logger.info("balance_matrix_built", extra={
                "row_count": len(matrix.rows),
                "facility_count": len(matrix.facilities),
                "grand_total": str(matrix.grand_total),
            })
            return matrix

    def active_work(
        self,
        batches: Sequence[Batch],
        facility: str,
        stage: ProcessStage | None = None,
    ) -> ActiveWorkBoard:
        with self._pass("active_work", batches):
            return queries.active_work(
                batches,
                self._resolver.resolve_all(batches),
                facility,
                stage,
                self._params.unassigned_label,
            )

    def late_work(self, batches: Sequence[Batch], as_of: date) -> LateWorkReport:
        with self._pass("late_work", batches):
            return queries.late_work(batches, as_of, self._late_work)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, read_model: Any) -> Any:
        """Wire form of a read model, rounded to ``config.display_precision``."""
        return to_wire(read_model, self._config.display_precision)
