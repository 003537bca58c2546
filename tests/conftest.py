"""
Shared fixtures: a pinned clock, a subject wallet and a Transaction factory.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from sentinel.risk_engine.models import Transaction
from sentinel.risk_engine.registry import USDT_CONTRACT

SUBJECT = "TSubjectWa11etAAAAAAAAAAAAAAAAAAAA"
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def subject():
    return SUBJECT


@pytest.fixture
def make_tx():
    """
    Build Transactions with safe defaults: inbound to SUBJECT, 10 USDT (canonical
    contract), one hour apart going back from NOW. Override what a test needs.
    """
    counter = itertools.count()

    def _make(
        frm: str = "TCounterpartyAAAAAAAAAAAAAAAAAAAAA",
        to: str = SUBJECT,
        value: str = "10",
        ts: datetime | None = None,
        symbol: str = "USDT",
        contract: str | None = USDT_CONTRACT,
    ) -> Transaction:
        n = next(counter)
        return Transaction(
            hash=f"tx{n:04d}",
            from_address=frm,
            to_address=to,
            value=Decimal(value),
            timestamp=ts or NOW - timedelta(hours=n + 1),
            asset_symbol=symbol,
            asset_contract=contract,
            decimals=6,
        )

    return _make
