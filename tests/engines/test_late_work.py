"""
Tests for the Late Work Calculator.

Covers:
- Age calculation from formation date
- Attention / urgent classification
- Eligibility (sent, unfinished, formed, not received)
- Report ordering and aggregates
"""

from datetime import date
from decimal import Decimal

import pytest

from dyehouse_config.schema import EngineParameters
from dyehouse_engines.aging import AgeBucket, LateWorkCalculator, Urgency
from dyehouse_kernel.domain.batch import ProcessStage


class TestAgeCalculation:
    """Tests for age calculation."""

    def setup_method(self):
        self.calculator = LateWorkCalculator()

    def test_age_in_days(self):
        assert self.calculator.calculate_age(date(2025, 2, 1), date(2025, 3, 1)) == 28

    def test_future_formation_is_negative(self):
        assert self.calculator.calculate_age(date(2025, 3, 5), date(2025, 3, 1)) == -4


class TestClassification:
    """Tests for bucket classification."""

    def setup_method(self):
        self.calculator = LateWorkCalculator()

    @pytest.mark.parametrize("age", [-3, 0, 14])
    def test_not_late(self, age):
        assert self.calculator.classify(age) is None

    @pytest.mark.parametrize("age", [15, 19])
    def test_attention(self, age):
        assert self.calculator.classify(age).name == Urgency.ATTENTION.value

    @pytest.mark.parametrize("age", [20, 365])
    def test_urgent(self, age):
        assert self.calculator.classify(age).name == Urgency.URGENT.value

    def test_configured_thresholds(self):
        calculator = LateWorkCalculator(EngineParameters(late_attention_days=7, late_urgent_days=10))

        assert calculator.classify(6) is None
        assert calculator.classify(9).name == "attention"
        assert calculator.classify(10).name == "urgent"


class TestAgeBucket:
    """Bucket definition validation."""

    def test_negative_min_rejected(self):
        with pytest.raises(ValueError):
            AgeBucket("bad", -1, 5)

    def test_max_below_min_rejected(self):
        with pytest.raises(ValueError):
            AgeBucket("bad", 10, 5)

    def test_unbounded(self):
        bucket = AgeBucket("urgent", 20, None)

        assert bucket.is_unbounded
        assert bucket.contains(10_000)
        assert not bucket.contains(19)


class TestLateWorkReport:
    """Report generation over the shared snapshot."""

    def setup_method(self):
        self.calculator = LateWorkCalculator()

    def test_only_in_progress_batches(self, snapshot):
        report = self.calculator.generate_report(snapshot, date(2025, 3, 20))

        assert [i.batch_id for i in report.items] == ["B-3", "B-5"]
        assert [i.age_days for i in report.items] == [47, 19]
        assert [i.urgency for i in report.items] == [Urgency.URGENT, Urgency.ATTENTION]

    def test_young_batches_not_reported(self, snapshot):
        report = self.calculator.generate_report(snapshot, date(2025, 3, 1))

        assert [i.batch_id for i in report.items] == ["B-3"]

    def test_aggregates(self, snapshot):
        report = self.calculator.generate_report(snapshot, date(2025, 3, 20))

        assert report.item_count == 2
        assert report.count_by_bucket() == {"attention": 1, "urgent": 1}
        assert report.average_age() == Decimal("33")
        assert report.outstanding_total() == Decimal("110")
        assert [i.batch_id for i in report.items_in_bucket("urgent")] == ["B-3"]
        assert [i.batch_id for i in report.items_for_facility("Beta Textile")] == ["B-5"]

    def test_received_stage_excluded(self, make_batch):
        batch = make_batch(
            formation=date(2025, 1, 1),
            sent=[(date(2025, 1, 2), Decimal("10"))],
            stage=ProcessStage.RECEIVED,
        )

        report = self.calculator.generate_report([batch], date(2025, 3, 1))

        assert report.items == ()

    def test_missing_formation_excluded(self, make_batch):
        batch = make_batch(sent=[(date(2025, 1, 2), Decimal("10"))])

        assert self.calculator.generate_report([batch], date(2025, 3, 1)).items == ()

    def test_ties_ordered_by_batch_id(self, make_batch):
        batches = [
            make_batch(bid, formation=date(2025, 1, 1), sent=[(date(2025, 1, 2), Decimal("10"))])
            for bid in ("Z", "A", "M")
        ]

        report = self.calculator.generate_report(batches, date(2025, 2, 1))

        assert [i.batch_id for i in report.items] == ["A", "M", "Z"]

    def test_empty_report(self):
        report = self.calculator.generate_report([], date(2025, 3, 1))

        assert report.average_age() is None
        assert report.count_by_bucket() == {"attention": 0, "urgent": 0}
