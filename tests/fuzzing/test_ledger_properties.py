"""
Property-based tests for the resolver, ledger and outlier engines.

Properties checked over generated snapshots:
- Totals conservation per batch
- Ledger conservation per dimension against the attributed events
- Non-negative carried balance
- Idempotence and input-order independence
- Outlier threshold monotonicity
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from dyehouse_engines.ledger import LedgerAggregator, by_client, by_facility
from dyehouse_engines.outliers import OutlierDetector
from dyehouse_engines.resolver import BatchStateResolver
from dyehouse_kernel.domain.batch import Batch, TransferEvent
from dyehouse_kernel.domain.values import ZERO, month_key

_START = date(2024, 1, 1)

quantities = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("5000"), places=2,
    allow_nan=False, allow_infinity=False,
)
event_dates = st.integers(min_value=0, max_value=540).map(lambda d: _START + timedelta(days=d))


@st.composite
def transfer_events(draw):
    return TransferEvent(draw(event_dates), draw(quantities), draw(quantities))


@st.composite
def batches(draw, index=st.integers(min_value=0, max_value=10_000)):
    return Batch(
        id=f"B-{draw(index)}",
        facility=draw(st.sampled_from(["Alpha", "Beta", "Gamma", ""])),
        client_id=draw(st.sampled_from(["C-1", "C-2", "C-3"])),
        formation_date=draw(st.one_of(st.none(), event_dates)),
        sent_events=tuple(draw(st.lists(transfer_events(), max_size=3))),
        receive_events=tuple(draw(st.lists(transfer_events(), max_size=4))),
        legacy_sent_qty=draw(quantities),
        legacy_sent_date=draw(st.one_of(st.none(), event_dates)),
        legacy_received_qty=draw(quantities),
        scrap_quantity=draw(st.one_of(st.just(Decimal("0")), quantities)),
        explicit_complete=draw(st.one_of(st.none(), st.booleans())),
    )


snapshots = st.lists(batches(), max_size=25, unique_by=lambda b: b.id)

_SETTINGS = settings(max_examples=75, deadline=None, suppress_health_check=[HealthCheck.too_slow])


class TestResolverProperties:

    @_SETTINGS
    @given(batches())
    def test_totals_conservation(self, batch):
        s = BatchStateResolver().resolve(batch)

        assert s.sent_total == s.received_total + s.scrap_quantity + s.outstanding
        if s.sent_total > ZERO:
            # remaining_fraction is a rounded quotient; allow for the last digit
            drift = abs(s.sent_total * s.remaining_fraction - (s.outstanding + s.scrap_quantity))
            assert drift <= Decimal("1e-20") * max(s.sent_total, Decimal("1"))

    @_SETTINGS
    @given(batches())
    def test_cycle_time_only_for_complete(self, batch):
        s = BatchStateResolver().resolve(batch)

        if s.cycle_time_days is not None:
            assert s.is_complete
            assert s.cycle_time_days >= 0


class TestLedgerProperties:

    @_SETTINGS
    @given(snapshots)
    def test_conservation_per_dimension(self, snapshot):
        aggregator = LedgerAggregator()
        resolver = BatchStateResolver()
        cells = aggregator.build_ledger(snapshot, by_facility)

        expected: dict[str, list[Decimal]] = {}
        for batch in snapshot:
            s = resolver.resolve(batch)
            key = by_facility(batch)
            sent, received, scrap = expected.setdefault(key, [ZERO, ZERO, ZERO])
            if s.sent_total > ZERO and s.earliest_sent_date is not None:
                sent += s.sent_total
            received += sum((e.quantity for e in batch.receive_events if e.date is not None), ZERO)
            closing = month_key(s.last_receive_date) or month_key(s.earliest_sent_date)
            if s.is_complete and s.scrap_quantity > ZERO and closing is not None:
                scrap += s.scrap_quantity
            expected[key] = [sent, received, scrap]

        actual: dict[str, list[Decimal]] = {}
        for c in cells:
            sent, received, scrap = actual.setdefault(c.dimension_key, [ZERO, ZERO, ZERO])
            actual[c.dimension_key] = [sent + c.sent_kg, received + c.received_kg, scrap + c.scrap_kg]

        for key, totals in expected.items():
            assert actual.get(key, [ZERO, ZERO, ZERO]) == totals

    @_SETTINGS
    @given(snapshots)
    def test_carried_balance_never_negative(self, snapshot):
        cells = LedgerAggregator().build_ledger(snapshot, by_client)

        for c in cells:
            assert c.opening_stock >= ZERO
            assert c.closing_stock == c.opening_stock + c.sent_kg - c.received_kg - c.scrap_kg

    @_SETTINGS
    @given(snapshots)
    def test_idempotent_and_order_independent(self, snapshot):
        aggregator = LedgerAggregator()

        first = aggregator.build_ledger(snapshot, by_facility)
        second = aggregator.build_ledger(snapshot, by_facility)
        reversed_ = aggregator.build_ledger(list(reversed(snapshot)), by_facility)

        assert first == second == reversed_


class TestOutlierProperties:

    @_SETTINGS
    @given(st.lists(st.integers(min_value=0, max_value=365), min_size=4, max_size=60))
    def test_new_maximum_moves_fence_only_with_quartile_index(self, samples):
        detector = OutlierDetector()
        n = len(samples)
        extended = samples + [max(samples) + 1]

        same_indices = (n // 4, 3 * n // 4) == ((n + 1) // 4, 3 * (n + 1) // 4)
        if same_indices:
            assert detector.threshold(extended) == detector.threshold(samples)

    @_SETTINGS
    @given(
        st.lists(st.integers(min_value=0, max_value=365), min_size=4, max_size=60),
        st.integers(min_value=0, max_value=100),
    )
    def test_fence_shifts_with_samples(self, samples, shift):
        detector = OutlierDetector()

        assert detector.threshold([s + shift for s in samples]) == detector.threshold(samples) + shift

    @_SETTINGS
    @given(st.lists(st.integers(min_value=0, max_value=365), min_size=4, max_size=60))
    def test_fence_never_below_upper_quartile(self, samples):
        detector = OutlierDetector()
        q1, q3 = detector.quartiles(samples)

        assert detector.threshold(samples) >= q3
        flagged = [s for s in samples if s > detector.threshold(samples)]
        assert len(flagged) <= len(samples) - 1 - (3 * len(samples) // 4)

    @_SETTINGS
    @given(st.lists(st.integers(min_value=0, max_value=365), max_size=3))
    def test_small_samples_never_flag(self, samples):
        detector = OutlierDetector()

        assert not detector.threshold(samples).is_finite()
