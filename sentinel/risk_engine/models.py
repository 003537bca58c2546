from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class RiskLevel(str, Enum):
    SAFE = "SAFE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


def classify_level(score: int) -> RiskLevel:
    """Mapea score -> nivel. Umbrales evaluados de mayor a menor."""
    if score >= 80:
        return RiskLevel.CRITICAL
    if score >= 50:
        return RiskLevel.HIGH
    if score >= 20:
        return RiskLevel.MEDIUM
    if score > 0:
        return RiskLevel.LOW
    return RiskLevel.SAFE


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hash: str = Field(min_length=1)
    from_address: str = Field(alias="from", min_length=1)
    to_address: str = Field(alias="to", min_length=1)
    value: Decimal = Field(ge=0)
    timestamp: datetime
    asset_symbol: str = "Unknown"
    asset_contract: Optional[str] = None
    decimals: Optional[int] = Field(default=None, ge=0)

    @field_validator("value")
    @classmethod
    def _finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("value must be a finite amount")
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def _epoch_ms(cls, v):
        # TronGrid entrega block_timestamp en milisegundos
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return datetime.fromtimestamp(v / 1000, tz=timezone.utc)
        return v

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class RuleFinding(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    weight: int = Field(ge=0)
    detail: str
    addresses: Tuple[str, ...] = ()


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    findings: Tuple[str, ...] = ()
    suspicious_addresses: Tuple[str, ...] = ()
    reasons: Tuple[RuleFinding, ...] = ()

    @computed_field
    @property
    def level(self) -> RiskLevel:
        return classify_level(self.score)


class TransactionVerdict(BaseModel):
    """Etiqueta por transacción tal como la devuelve el asesor externo; campos ausentes o null quedan en None."""
    model_config = ConfigDict(populate_by_name=True)

    hash: Optional[str] = None
    label: Optional[str] = Field(default=None, alias="aiRiskLabel")
    score: Optional[float] = Field(default=None, alias="aiRiskScore")
    reasoning: Optional[str] = Field(default=None, alias="aiReasoning")


class ExternalAssessment(BaseModel):
    """Esquema de respuesta del asesor externo.

    ``risk_level`` solo se registra en el log: el nivel final siempre sale del score fusionado.
    """
    model_config = ConfigDict(populate_by_name=True)

    risk_score: float = Field(default=0, ge=0, le=100, alias="riskScore")
    risk_level: Optional[str] = Field(default=None, alias="riskLevel")
    summary: Optional[str] = None
    suspicious_wallets: List[str] = Field(default_factory=list, alias="suspiciousWalletsFound")
    analyzed_transactions: List[TransactionVerdict] = Field(default_factory=list, alias="analyzedTransactions")

    @field_validator("risk_score", "suspicious_wallets", "analyzed_transactions", mode="before")
    @classmethod
    def _null_as_default(cls, v, info):
        if v is None:
            return 0 if info.field_name == "risk_score" else []
        return v

    @field_validator("suspicious_wallets")
    @classmethod
    def _drop_empty_wallets(cls, v: List[str]) -> List[str]:
        return [a for a in v if a]

    @field_validator("analyzed_transactions")
    @classmethod
    def _drop_unkeyed(cls, v: List[TransactionVerdict]) -> List[TransactionVerdict]:
        # sin hash no se puede asociar a ninguna transacción
        return [t for t in v if t.hash]


class AnalyzedTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    ai_label: str
    ai_score: float
    ai_reasoning: str


class FusedAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    findings: Tuple[str, ...] = ()
    suspicious_addresses: Tuple[str, ...] = ()
    reasons: Tuple[RuleFinding, ...] = ()
    summary: str
    external_available: bool
    transactions: Tuple[AnalyzedTransaction, ...] = ()

    @computed_field
    @property
    def level(self) -> RiskLevel:
        return classify_level(self.score)
