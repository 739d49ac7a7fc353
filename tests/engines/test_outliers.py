"""
Tests for the Outlier Detector.

Covers:
- Index-based quartiles and the Tukey fence
- Insufficient samples
- Strict classification paired with batches
- Descriptive statistics
"""

from decimal import Decimal

import pytest

from dyehouse_config.schema import EngineParameters
from dyehouse_engines.outliers import (
    INFINITE_THRESHOLD,
    CycleTimeSample,
    OutlierDetector,
)
from dyehouse_kernel.domain.batch import Batch


def _samples(*days):
    return [CycleTimeSample(Batch(id=f"B-{i}"), d) for i, d in enumerate(days)]


class TestThreshold:
    """Tukey fence over whole-day cycle times."""

    def setup_method(self):
        self.detector = OutlierDetector()

    def test_five_samples(self):
        assert self.detector.quartiles([5, 6, 7, 8, 40]) == (6, 8)
        assert self.detector.threshold([5, 6, 7, 8, 40]) == Decimal("11")

    def test_unsorted_input(self):
        assert self.detector.threshold([40, 8, 5, 7, 6]) == Decimal("11")

    def test_index_based_not_interpolated(self):
        """n=4: Q1 = s[1], Q3 = s[3]."""
        assert self.detector.quartiles([1, 2, 3, 100]) == (2, 100)
        assert self.detector.threshold([1, 2, 3, 100]) == Decimal("247")

    def test_identical_samples(self):
        assert self.detector.threshold([9, 9, 9, 9]) == Decimal("9")

    @pytest.mark.parametrize("samples", [[], [5], [5, 6], [5, 6, 7]])
    def test_insufficient_samples_infinite(self, samples):
        assert self.detector.threshold(samples) == INFINITE_THRESHOLD
        assert self.detector.quartiles(samples) is None

    def test_custom_multiplier(self):
        detector = OutlierDetector(EngineParameters(outlier_fence_multiplier=Decimal("3")))

        assert detector.threshold([5, 6, 7, 8, 40]) == Decimal("14")


class TestClassify:
    """Strictly-above classification paired with batches."""

    def setup_method(self):
        self.detector = OutlierDetector()

    def test_only_forty_flagged(self):
        flagged = self.detector.detect(_samples(5, 6, 7, 8, 40))

        assert [s.cycle_time_days for s in flagged] == [40]
        assert flagged[0].batch_id == "B-4"

    def test_sample_at_threshold_is_normal(self):
        samples = _samples(5, 6, 7, 8, 11)

        assert self.detector.classify(samples, Decimal("11")) == ()

    def test_insufficient_sample_flags_nothing(self):
        assert self.detector.detect(_samples(5, 6, 700)) == ()

    def test_input_order_kept(self):
        samples = _samples(50, 5, 6, 7, 8, 45)

        flagged = self.detector.classify(samples, Decimal("11"))

        assert [s.batch_id for s in flagged] == ["B-0", "B-5"]

    def test_new_maximum_keeps_fence_when_quartile_indices_stay(self):
        base = [5, 6, 7, 8, 9, 10, 11, 12]
        extended = base + [200]

        assert self.detector.threshold(extended) == self.detector.threshold(base) == Decimal("17")

    def test_new_maximum_can_lower_fence(self):
        """n=7 -> 8 moves Q1 from s[1] to s[2]; quartiles are not interpolated."""
        base = [0, 0, 100, 100, 100, 100, 100]

        assert self.detector.threshold(base) == Decimal("250")
        assert self.detector.threshold(base + [101]) == Decimal("100")


class TestDescribe:
    """Summary statistics for drill-down."""

    def setup_method(self):
        self.detector = OutlierDetector()

    def test_odd_sample(self):
        stats = self.detector.describe([40, 5, 7, 6, 8])

        assert stats.count == 5
        assert stats.mean == Decimal("13.2")
        assert stats.minimum == 5
        assert stats.median == Decimal("7")
        assert stats.maximum == 40
        assert (stats.q1, stats.q3) == (6, 8)
        assert stats.threshold == Decimal("11")
        assert stats.has_fence

    def test_even_sample_median_averages(self):
        stats = self.detector.describe([9, 19, 35])

        assert stats.median == Decimal("19")
        assert self.detector.describe([1, 2, 3, 4]).median == Decimal("2.5")

    def test_small_sample_has_no_fence(self):
        stats = self.detector.describe([9, 19, 35])

        assert stats.q1 is None
        assert stats.q3 is None
        assert not stats.has_fence

    def test_empty(self):
        stats = self.detector.describe([])

        assert stats.count == 0
        assert stats.mean is None
        assert stats.median is None
        assert stats.threshold == INFINITE_THRESHOLD
