"""Reglas heurísticas sobre historiales TRC20.

Cada regla es una función pura RuleContext -> RuleFinding | None, sin I/O ni reloj.
Una regla suma su peso completo o nada.
"""
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from .models import RuleFinding, Transaction
from .registry import PROTECTED_TOKENS
from .weights import W


DUST_MAX_VALUE = Decimal(os.getenv("DUST_MAX_VALUE", "0.1"))
DUST_WINDOW = timedelta(days=int(os.getenv("DUST_WINDOW_DAYS", "30")))
DUST_MIN_EVENTS = int(os.getenv("DUST_MIN_EVENTS", "5"))  # dispara con > DUST_MIN_EVENTS
DUST_MAX_REPORTED = 3
BOT_MAX_GAP_SECONDS = float(os.getenv("BOT_MAX_GAP_SECONDS", "10"))
BOT_MIN_PAIRS = int(os.getenv("BOT_MIN_PAIRS", "5"))
FAN_IN_MIN_SENDERS = int(os.getenv("FAN_IN_MIN_SENDERS", "15"))
FAN_IN_KNOWN_SHARE = Decimal("0.5")
ZERO_VALUE_MIN_EVENTS = int(os.getenv("ZERO_VALUE_MIN_EVENTS", "3"))


@dataclass(frozen=True)
class RuleContext:
    address: str
    transactions: Sequence[Transaction]
    now: datetime
    known_entities: Mapping[str, str]
    protected_tokens: Mapping[str, str] = field(default_factory=lambda: PROTECTED_TOKENS)

    def inbound(self) -> List[Transaction]:
        return [tx for tx in self.transactions if tx.to_address == self.address]


Rule = Callable[[RuleContext], Optional[RuleFinding]]


def _distinct(values) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def check_fake_token(ctx: RuleContext) -> Optional[RuleFinding]:
    impostors = []
    for tx in ctx.transactions:
        canonical = ctx.protected_tokens.get(tx.asset_symbol.upper())
        # contrato ausente cuenta como no canónico
        if canonical is None:
            continue
        if tx.asset_contract != canonical:
            impostors.append(tx)
    if not impostors:
        return None
    return RuleFinding(
        code="FAKE_USDT",
        weight=W.FAKE_USDT,
        detail=f"INTERACTED WITH FAKE USDT TOKEN! Found {len(impostors)} txs involving impostor contracts.",
        addresses=_distinct(tx.asset_contract for tx in impostors if tx.asset_contract),
    )


def check_dust_spam(ctx: RuleContext) -> Optional[RuleFinding]:
    small_inbound = [
        tx for tx in ctx.inbound()
        if tx.value < DUST_MAX_VALUE and ctx.now - tx.timestamp < DUST_WINDOW
    ]
    if len(small_inbound) <= DUST_MIN_EVENTS:
        return None
    spammers = _distinct(tx.from_address for tx in small_inbound)[:DUST_MAX_REPORTED]
    return RuleFinding(
        code="DUST_SPAM",
        weight=W.DUST_SPAM,
        detail=f"Potential Dusting/Phishing Spam Detected ({len(small_inbound)} tiny inbound txs)",
        addresses=spammers,
    )


def check_bot_frequency(ctx: RuleContext) -> Optional[RuleFinding]:
    txs = ctx.transactions
    rapid = 0
    for prev, cur in zip(txs, txs[1:]):
        if abs((cur.timestamp - prev.timestamp).total_seconds()) < BOT_MAX_GAP_SECONDS:
            rapid += 1
    if rapid <= BOT_MIN_PAIRS:
        return None
    return RuleFinding(
        code="BOT_FREQUENCY",
        weight=W.BOT_FREQUENCY,
        detail="Bot-like High Frequency Activity Detected",
    )


def check_fan_in(ctx: RuleContext) -> Optional[RuleFinding]:
    inbound = ctx.inbound()
    senders = {tx.from_address for tx in inbound}
    if len(senders) <= FAN_IN_MIN_SENDERS:
        return None
    from_known = sum(1 for tx in inbound if tx.from_address in ctx.known_entities)
    if from_known >= len(inbound) * FAN_IN_KNOWN_SHARE:
        return None
    return RuleFinding(
        code="FAN_IN",
        weight=W.FAN_IN,
        detail="High Fan-In Pattern (Potential Mule/Laundering Account)",
    )


def check_zero_value(ctx: RuleContext) -> Optional[RuleFinding]:
    zero = sum(1 for tx in ctx.transactions if tx.value == 0)
    if zero <= ZERO_VALUE_MIN_EVENTS:
        return None
    return RuleFinding(
        code="ZERO_VALUE",
        weight=W.ZERO_VALUE,
        detail='Multiple Zero-Value Transactions (Signature of "Fake Transfer" Phishing)',
    )


# el orden solo define el orden de los findings
RULES: Tuple[Rule, ...] = (
    check_fake_token,
    check_dust_spam,
    check_bot_frequency,
    check_fan_in,
    check_zero_value,
)
