"""Fusión del veredicto heurístico local con la evaluación externa (IA).

El motor local corre primero: sus findings viajan como contexto al asesor externo.
Pase lo que pase con la llamada externa se devuelve un FusedAssessment válido;
solo se propagan los errores de validación de entrada.
"""
import asyncio
import os
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional, Protocol, Sequence, Tuple

from ..log import get_logger
from ..utils.address import merge_addresses
from .core import TxInput, evaluate, normalize_transactions
from .models import (
    AnalyzedTransaction,
    ExternalAssessment,
    FusedAssessment,
    RiskAssessment,
    Transaction,
    TransactionVerdict,
)

log = get_logger(__name__)

MAX_SAMPLE = 30
AI_SAMPLE_SIZE = min(int(os.getenv("AI_SAMPLE_SIZE", str(MAX_SAMPLE))), MAX_SAMPLE)
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "25"))


class RiskAssessor(Protocol):
    async def assess(
        self,
        address: str,
        sample: Sequence[Transaction],
        local_findings: Sequence[str],
    ) -> ExternalAssessment: ...


class AssessorUnavailable(RuntimeError):
    pass


def degraded_summary(findings: Sequence[str]) -> str:
    return f"AI analysis unavailable. Heuristic rules triggered: {', '.join(findings) or 'None'}"


def label_transactions(
    transactions: Iterable[Transaction],
    verdicts: Iterable[TransactionVerdict],
) -> Tuple[AnalyzedTransaction, ...]:
    by_hash = {}
    for v in verdicts:
        if v.hash:
            by_hash.setdefault(v.hash, v)
    out = []
    for tx in transactions:
        v = by_hash.get(tx.hash)
        out.append(AnalyzedTransaction(
            transaction=tx,
            ai_label=(v.label if v else None) or "Normal",
            ai_score=(v.score if v else None) or 0,
            ai_reasoning=(v.reasoning if v else None) or "Standard transaction.",
        ))
    return tuple(out)


def external_score(external: ExternalAssessment) -> int:
    # redondeo half-up: 79.5 -> 80, 80.5 -> 81
    return int(Decimal(str(external.risk_score)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def fuse(
    local: RiskAssessment,
    external: ExternalAssessment,
    transactions: Sequence[Transaction] = (),
) -> FusedAssessment:
    """Máximo de ambos scores, unión de direcciones sospechosas, solo findings locales."""
    return FusedAssessment(
        score=max(local.score, external_score(external)),
        findings=local.findings,
        suspicious_addresses=merge_addresses(local.suspicious_addresses, external.suspicious_wallets),
        reasons=local.reasons,
        summary=external.summary or "No analysis available.",
        external_available=True,
        transactions=label_transactions(transactions, external.analyzed_transactions),
    )


def degrade(local: RiskAssessment, transactions: Sequence[Transaction] = ()) -> FusedAssessment:
    return FusedAssessment(
        score=local.score,
        findings=local.findings,
        suspicious_addresses=local.suspicious_addresses,
        reasons=local.reasons,
        summary=degraded_summary(local.findings),
        external_available=False,
        transactions=tuple(
            AnalyzedTransaction(transaction=tx, ai_label="Unanalyzed", ai_score=0, ai_reasoning="AI Error")
            for tx in transactions
        ),
    )


async def analyze_wallet(
    address: str,
    transactions: Iterable[TxInput],
    assessor: Optional[RiskAssessor],
    *,
    now: Optional[datetime] = None,
    registry: Optional[Mapping[str, str]] = None,
    timeout: float = AI_TIMEOUT_SECONDS,
) -> FusedAssessment:
    txs = normalize_transactions(transactions)
    local = evaluate(address, txs, now=now, registry=registry)

    try:
        if assessor is None:
            raise AssessorUnavailable("no external assessor configured")
        external = await asyncio.wait_for(
            assessor.assess(address, txs[:AI_SAMPLE_SIZE], list(local.findings)),
            timeout=timeout,
        )
        if not isinstance(external, ExternalAssessment):
            external = ExternalAssessment.model_validate(external)
    except Exception as e:
        log.warning("external_assessment_failed", address=address,
                    error=type(e).__name__, detail=str(e), local_score=local.score)
        return degrade(local, txs)

    fused = fuse(local, external, txs)
    if external.risk_level and external.risk_level.upper() != fused.level.value:
        log.debug("external_level_overridden", address=address,
                  claimed=external.risk_level, derived=fused.level.value)
    log.info("wallet_analyzed", address=address, local_score=local.score,
             external_score=external.risk_score, score=fused.score, level=fused.level.value)
    return fused
