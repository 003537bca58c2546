import json
import os
from typing import Optional, Sequence

import httpx

from ..log import get_logger
from ..risk_engine.models import ExternalAssessment, Transaction

log = get_logger(__name__)

GEMINI_API_URL = os.getenv("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "riskScore": {"type": "NUMBER", "description": "Combined risk score 0-100"},
        "riskLevel": {"type": "STRING", "enum": ["CRITICAL", "HIGH", "MEDIUM", "LOW", "SAFE"]},
        "summary": {"type": "STRING", "description": "Detailed security assessment summary"},
        "suspiciousWalletsFound": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "List of addresses identified as suspicious",
        },
        "analyzedTransactions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "hash": {"type": "STRING"},
                    "aiRiskLabel": {"type": "STRING"},
                    "aiRiskScore": {"type": "NUMBER"},
                    "aiReasoning": {"type": "STRING"},
                },
            },
        },
    },
}


def build_prompt(address: str, local_findings: Sequence[str]) -> str:
    if local_findings:
        rules_context = ("The following risk patterns were ALREADY detected by our rule engine: "
                         f"{json.dumps(list(local_findings))}.")
    else:
        rules_context = "No automated heuristic rules were triggered."
    return f"""
You are a specialized Web3 security analyst focusing on the Tron (TRC20) network and USDT scams.
Analyze the transaction history for wallet: {address}.

{rules_context}

Specific Threats to look for on Tron:
1. "Pig Butchering" (Sha Zhu Pan): Large transfers to unverified addresses after a period of small "trust-building" interactions.
2. Fake Mining Pool / Smart Contract Scams: Unlimited approvals (value 0 usually means approve all in UI, or specific max uint256).
3. Dusting: Many small inbound transfers (< 1 USDT) trying to deanonymize or spam the wallet.
4. Fake USDT: Transfers of tokens with symbol USDT but a contract other than the official Tether one.

Provide a human-readable summary explaining the risk level. If heuristic rules were triggered, explain why those are dangerous.
""".strip()


def transaction_context(sample: Sequence[Transaction]) -> str:
    return json.dumps([
        {
            "hash": t.hash,
            "type": "Transfer",
            "from": t.from_address,
            "to": t.to_address,
            "value": str(t.value),
            "asset": t.asset_symbol,
            "contract": t.asset_contract,
        }
        for t in sample
    ])


def parse_generate_content(body: dict) -> ExternalAssessment:
    """Extrae el JSON del primer candidato; KeyError/ValidationError si la respuesta es inválida."""
    text = body["candidates"][0]["content"]["parts"][0]["text"]
    return ExternalAssessment.model_validate_json(text or "{}")


class GeminiAssessor:
    """Asesor externo sobre el endpoint REST ``generateContent`` de Gemini."""

    def __init__(self, api_key: str, model: str = GEMINI_MODEL, base_url: str = GEMINI_API_URL,
                 timeout: float = 20.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not api_key:
            raise ValueError("GEMINI_API_KEY not configured")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def assess(self, address: str, sample: Sequence[Transaction],
                     local_findings: Sequence[str]) -> ExternalAssessment:
        payload = {
            "contents": [{
                "parts": [
                    {"text": build_prompt(address, local_findings)},
                    {"text": f"Transaction Data: {transaction_context(sample)}"},
                ],
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            r = await client.post(url, json=payload, headers={"x-goog-api-key": self.api_key})
            r.raise_for_status()
            body = r.json()
        result = parse_generate_content(body)
        log.debug("gemini_assessment", address=address, score=result.risk_score, sample=len(sample))
        return result


def assessor_from_env() -> Optional[GeminiAssessor]:
    key = os.getenv("GEMINI_API_KEY", "")
    if not key:
        return None
    return GeminiAssessor(api_key=key)
