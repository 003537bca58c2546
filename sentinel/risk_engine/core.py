from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..utils.address import merge_addresses
from .models import RiskAssessment, RuleFinding, Transaction
from .registry import default_registry
from .rules import RULES, RuleContext
from .weights import W

TxInput = Union[Transaction, Mapping[str, Any]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_transactions(transactions: Iterable[TxInput]) -> Tuple[Transaction, ...]:
    """Valida los registros de entrada; pydantic.ValidationError si vienen mal formados."""
    return tuple(
        tx if isinstance(tx, Transaction) else Transaction.model_validate(tx)
        for tx in transactions or ()
    )


def check_address(address: str) -> str:
    if not isinstance(address, str) or not address.strip():
        raise ValueError("La dirección a analizar no puede estar vacía")
    return address


def aggregate_score(reasons: Sequence[RuleFinding]) -> int:
    total = sum(r.weight for r in reasons)
    assert total >= 0, f"negative aggregate score {total}"
    return int(min(total, W.MAX_SCORE))


def evaluate(
    address: str,
    transactions: Iterable[TxInput],
    *,
    now: Optional[datetime] = None,
    registry: Optional[Mapping[str, str]] = None,
) -> RiskAssessment:
    """Aplica todas las reglas heurísticas a ``transactions`` y calcula el score.

    ``now`` fija la ventana de dust; pasarlo explícito da resultados reproducibles.
    ``registry`` es la whitelist de entidades conocidas (por defecto, la configurada).
    """
    check_address(address)
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    ctx = RuleContext(
        address=address,
        transactions=normalize_transactions(transactions),
        now=now,
        known_entities=default_registry() if registry is None else registry,
    )

    reasons: List[RuleFinding] = []
    for rule in RULES:
        finding = rule(ctx)
        if finding is not None:
            reasons.append(finding)

    return RiskAssessment(
        score=aggregate_score(reasons),
        findings=tuple(r.detail for r in reasons),
        suspicious_addresses=merge_addresses(*(r.addresses for r in reasons)),
        reasons=tuple(reasons),
    )
