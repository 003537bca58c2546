"""Historial de demo determinista, usado cuando TronGrid no responde."""
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from ..risk_engine.models import Transaction
from ..risk_engine.registry import USDT_CONTRACT

_B58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

SCAM_ADDRESS = "TX9QPigButcheringScamXXXXXXXXXXXXX"
FAKE_CONTRACT = "TFakeWithdrawalContractXXXXXXXXXXX"


def _addr(rng: random.Random) -> str:
    return "T" + "".join(rng.choice(_B58) for _ in range(33))


def _hash(rng: random.Random) -> str:
    return "".join(rng.choice("0123456789abcdef") for _ in range(64))


def synthetic_transactions(address: str, now: Optional[datetime] = None, count: int = 20) -> List[Transaction]:
    rng = random.Random(address)
    now = now or datetime.now(timezone.utc)
    txs = []
    for i in range(count):
        outbound = rng.random() > 0.45
        frm, to = (address, _addr(rng)) if outbound else (_addr(rng), address)
        value = Decimal(str(round(rng.random() * 500, 2)))

        if i < 5:  # dust inbound
            frm, to, value = _addr(rng), address, Decimal("0.5")
        elif i == 8:  # pérdida grande hacia el scammer
            frm, to, value = address, SCAM_ADDRESS, Decimal("5000.00")
        elif i == 12:  # approval ilimitado
            to, value = _addr(rng), Decimal("0")
        elif i == 16:  # "fee" de retiro falso
            frm, to, value = address, FAKE_CONTRACT, Decimal("50.00")

        txs.append(Transaction(
            hash=_hash(rng),
            from_address=frm,
            to_address=to,
            value=value,
            timestamp=now - timedelta(hours=2 * i),
            asset_symbol="USDT",
            asset_contract=USDT_CONTRACT,
            decimals=6,
        ))
    return txs


def synthetic_profile(address: str, now: Optional[datetime] = None) -> dict:
    rng = random.Random(address)
    now = now or datetime.now(timezone.utc)
    return {
        "address": address,
        "balance_usdt": format(Decimal(str(round(rng.random() * 10000, 2))).quantize(Decimal("0.01")), ",f"),
        "first_seen": (now - timedelta(days=rng.randint(30, 900))).isoformat(),
        "last_operation_at": now.isoformat(),
    }
