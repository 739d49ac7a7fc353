"""
dyehouse_engines.outliers -- Robust "too slow" threshold for cycle times.

Responsibility:
    Compute a Tukey fence over batch cycle times and flag the batches
    above it.  Also summarizes a cycle-time sample (mean, min, median,
    max, quartiles) for drill-down views.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Quartiles are index-based on the ascending sample,
      ``Q1 = s[floor(n * 0.25)]`` and ``Q3 = s[floor(n * 0.75)]``, with no
      interpolation.  Changing this silently changes which batches are
      flagged, so it must stay exact.
    - ``threshold = Q3 + 1.5 * (Q3 - Q1)``.
    - Fewer than ``outlier_min_samples`` (4) observations yield an
      infinite threshold: nothing is classifiable as an outlier.
    - Classification is strict: a sample equal to the threshold is normal.

Failure modes:
    - None.  Insufficient samples are a result (infinite threshold), not
      an error.

Usage:
    from dyehouse_engines.outliers import OutlierDetector

    detector = OutlierDetector()
    detector.threshold([5, 6, 7, 8, 40])  # Decimal("11.0")
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from dyehouse_config.schema import DEFAULT_PARAMETERS, EngineParameters
from dyehouse_engines.tracer import traced_engine
from dyehouse_kernel.domain.batch import Batch
from dyehouse_kernel.logging_config import get_logger

logger = get_logger("engines.outliers")

INFINITE_THRESHOLD = Decimal("Infinity")


@dataclass(frozen=True)
class CycleTimeSample:
    """A cycle time paired with the batch it was measured on."""

    batch: Batch
    cycle_time_days: int

    @property
    def batch_id(self) -> str:
        return self.batch.id


@dataclass(frozen=True)
class CycleTimeStats:
    """
    Descriptive statistics of a cycle-time sample.

    ``q1``, ``q3`` and ``threshold`` follow the same index-based rule as
    ``OutlierDetector.threshold``; ``q1``/``q3`` are None when the sample
    is too small for a fence.
    """

    count: int
    mean: Decimal | None
    minimum: int | None
    median: Decimal | None
    maximum: int | None
    q1: int | None
    q3: int | None
    threshold: Decimal

    @property
    def has_fence(self) -> bool:
        return self.threshold.is_finite()


class OutlierDetector:
    """
    Tukey-fence outlier detection over whole-day cycle times.

    Contract:
        Pure functions -- no I/O.  Fence multiplier, minimum sample size
        and quartile positions come from ``EngineParameters``.
    """

    def __init__(self, params: EngineParameters | None = None):
        self._params = params or DEFAULT_PARAMETERS

    def quartiles(self, samples: Sequence[int]) -> tuple[int, int] | None:
        """Index-based (Q1, Q3), or None below the minimum sample size."""
        n = len(samples)
        if n < self._params.outlier_min_samples:
            return None
        ordered = sorted(samples)
        q1 = ordered[math.floor(n * self._params.lower_quartile)]
        q3 = ordered[math.floor(n * self._params.upper_quartile)]
        return q1, q3

    @traced_engine("outliers", "1.0", fingerprint_fields=("samples",))
    def threshold(self, samples: Sequence[int]) -> Decimal:
        """
        Compute the "too slow" threshold.

        Returns:
            ``Q3 + multiplier * (Q3 - Q1)`` as a Decimal, or
            ``Decimal("Infinity")`` when the sample is too small.
        """
        quartiles = self.quartiles(samples)
        if quartiles is None:
            logger.debug("outlier_sample_insufficient", extra={
                "sample_count": len(samples),
                "min_samples": self._params.outlier_min_samples,
            })
            return INFINITE_THRESHOLD

        q1, q3 = quartiles
        fence = Decimal(q3) + self._params.outlier_fence_multiplier * Decimal(q3 - q1)
        logger.debug("outlier_threshold_computed", extra={
            "sample_count": len(samples),
            "q1": q1,
            "q3": q3,
            "threshold": str(fence),
        })
        return fence

    def classify(
        self,
        samples: Sequence[CycleTimeSample],
        threshold: Decimal,
    ) -> tuple[CycleTimeSample, ...]:
        """All samples strictly above ``threshold``, in input order."""
        flagged = tuple(s for s in samples if s.cycle_time_days > threshold)
        if flagged:
            logger.info("cycle_time_outliers_flagged", extra={
                "sample_count": len(samples),
                "outlier_count": len(flagged),
                "threshold": str(threshold),
            })
        return flagged

    def detect(self, samples: Sequence[CycleTimeSample]) -> tuple[CycleTimeSample, ...]:
        """Threshold the samples' own cycle times and classify them."""
        fence = self.threshold([s.cycle_time_days for s in samples])
        return self.classify(samples, fence)

    def describe(self, values: Sequence[int]) -> CycleTimeStats:
        """
        Summarize a cycle-time sample.

        The median averages the two middle values for even-sized samples.
        """
        n = len(values)
        fence = self.threshold(values)
        if n == 0:
            return CycleTimeStats(
                count=0, mean=None, minimum=None, median=None, maximum=None,
                q1=None, q3=None, threshold=fence,
            )

        ordered = sorted(values)
        mid = n // 2
        if n % 2 == 0:
            median = (Decimal(ordered[mid - 1]) + Decimal(ordered[mid])) / 2
        else:
            median = Decimal(ordered[mid])

        quartiles = self.quartiles(values)
        return CycleTimeStats(
            count=n,
            mean=Decimal(sum(ordered)) / Decimal(n),
            minimum=ordered[0],
            median=median,
            maximum=ordered[-1],
            q1=quartiles[0] if quartiles else None,
            q3=quartiles[1] if quartiles else None,
            threshold=fence,
        )
