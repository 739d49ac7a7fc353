"""
Pytest fixtures for the dyehouse engine test suite.

Provides:
- Batch factories with sensible defaults
- A small mixed snapshot covering two facilities and two clients
- Log capture through the structured JSON formatter
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from dyehouse_kernel.domain.batch import Batch, ProcessStage, TransferEvent
from dyehouse_kernel.logging_config import LogContext, StructuredFormatter, reset_logging


@pytest.fixture(autouse=True)
def _clean_logging():
    """Restore the dyehouse_kernel logger hierarchy around each test."""
    reset_logging()
    LogContext.clear()
    yield
    reset_logging()
    LogContext.clear()


@pytest.fixture
def make_batch():
    """
    Factory for ``Batch`` records.

    ``sent`` / ``received`` take ``(date, raw_kg)`` or
    ``(date, raw_kg, accessory_kg)`` tuples.
    """

    def _make(
        batch_id="B-1",
        *,
        sent=(),
        received=(),
        formation=None,
        facility="Alpha Dyeing",
        client="C-1",
        scrap=Decimal("0"),
        complete=None,
        stage=None,
        fabric="Jersey",
        order_id="O-1",
        **kwargs,
    ) -> Batch:
        return Batch(
            id=batch_id,
            facility=facility,
            client_id=client,
            formation_date=formation,
            sent_events=tuple(TransferEvent(*e) for e in sent),
            receive_events=tuple(TransferEvent(*e) for e in received),
            scrap_quantity=scrap,
            explicit_complete=complete,
            stage=stage,
            fabric=fabric,
            order_id=order_id,
            **kwargs,
        )

    return _make


@pytest.fixture
def snapshot(make_batch):
    """
    Six batches across two facilities and two clients.

    - B-1: Alpha/C-1, 100 sent Jan, 98 back Jan (complete, 9 days)
    - B-2: Alpha/C-1, 500 sent Mar, 200 back Mar + 300 back Apr (complete)
    - B-3: Alpha/C-2, 80 sent Feb, nothing back (in progress, DYEING)
    - B-4: Beta/C-2, 60 sent Feb, 50 back Mar, 10 scrap (complete)
    - B-5: Beta/C-1, 40 sent Mar, 10 back Mar (in progress, FINISHING)
    - B-6: Beta/C-2, nothing sent yet
    """
    return (
        make_batch(
            "B-1", formation=date(2025, 1, 1),
            sent=[(date(2025, 1, 2), Decimal("100"))],
            received=[(date(2025, 1, 10), Decimal("98"))],
        ),
        make_batch(
            "B-2", formation=date(2025, 3, 1),
            sent=[(date(2025, 3, 2), Decimal("500"))],
            received=[
                (date(2025, 3, 20), Decimal("200")),
                (date(2025, 4, 5), Decimal("300")),
            ],
            order_id="O-2",
        ),
        make_batch(
            "B-3", client="C-2", formation=date(2025, 2, 1),
            sent=[(date(2025, 2, 3), Decimal("80"))],
            stage=ProcessStage.DYEING, order_id="O-3",
        ),
        make_batch(
            "B-4", facility="Beta Textile", client="C-2",
            formation=date(2025, 2, 10),
            sent=[(date(2025, 2, 12), Decimal("60"))],
            received=[(date(2025, 3, 1), Decimal("50"))],
            scrap=Decimal("10"), order_id="O-3",
        ),
        make_batch(
            "B-5", facility="Beta Textile", formation=date(2025, 3, 1),
            sent=[(date(2025, 3, 3), Decimal("40"))],
            received=[(date(2025, 3, 25), Decimal("10"))],
            stage=ProcessStage.FINISHING, fabric="Pique", order_id="O-5",
        ),
        make_batch("B-6", facility="Beta Textile", client="C-2", order_id="O-6"),
    )


@pytest.fixture
def log_capture():
    """
    Attach a JSON-formatting handler to the dyehouse_kernel logger.

    Yields a callable returning the parsed records emitted so far.
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("dyehouse_kernel")
    root.addHandler(handler)
    previous = root.level
    root.setLevel(logging.DEBUG)

    def records():
        return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]

    yield records

    root.removeHandler(handler)
    root.setLevel(previous)
