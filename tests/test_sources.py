"""
Tests for the collaborators: TronGrid normalization, the Gemini assessor
(httpx.MockTransport) and the synthetic fallback dataset.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest
from pydantic import ValidationError

from sentinel.risk_engine.core import evaluate
from sentinel.risk_engine.fusion import analyze_wallet
from sentinel.risk_engine.registry import USDT_CONTRACT
from sentinel.sources import trongrid
from sentinel.sources.gemini import GeminiAssessor, build_prompt
from sentinel.sources.synthetic import synthetic_profile, synthetic_transactions

SUBJECT = "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"

RAW_TRANSFER = {
    "transaction_id": "abc123",
    "block_timestamp": 1717243200000,
    "from": "TSenderAAAAAAAAAAAAAAAAAAAAAAAAAAA",
    "to": SUBJECT,
    "value": "1500000",
    "type": "Transfer",
    "token_info": {"symbol": "USDT", "address": "TFakeUsdtContractAAAAAAAAAAAAAAAAA", "decimals": 6},
}


# --- TronGrid ---

def test_normalize_trc20_keeps_contract_and_decimals():
    tx = trongrid.normalize_trc20(RAW_TRANSFER)
    assert tx.hash == "abc123"
    assert tx.value == Decimal("1.5")
    assert tx.asset_contract == "TFakeUsdtContractAAAAAAAAAAAAAAAAA"
    assert tx.decimals == 6
    assert tx.timestamp == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_normalize_trc20_defaults():
    raw = dict(RAW_TRANSFER, value="5", token_info={"decimals": 0})
    tx = trongrid.normalize_trc20(raw)
    assert tx.value == Decimal("5")
    assert tx.asset_symbol == "Unknown"
    assert tx.asset_contract is None


def test_normalize_trc20_rejects_garbage():
    with pytest.raises(ValueError):
        trongrid.normalize_trc20(dict(RAW_TRANSFER, value="lots"))
    with pytest.raises(ValidationError):
        trongrid.normalize_trc20(dict(RAW_TRANSFER, block_timestamp=None))


def test_fetch_transactions_does_not_filter_by_contract(monkeypatch):
    calls = []

    async def fake_transfers(address, limit=50, contract_address=None):
        calls.append(contract_address)
        return {"data": [RAW_TRANSFER]}

    monkeypatch.setattr(trongrid, "account_trc20_transfers", fake_transfers)
    txs = asyncio.run(trongrid.fetch_transactions(SUBJECT))
    assert calls == [None]
    assert evaluate(SUBJECT, txs, registry={}).score == 100


def test_fetch_transactions_skips_malformed_records(monkeypatch):
    broken = dict(RAW_TRANSFER, transaction_id="bad1", value="lots")
    no_time = dict(RAW_TRANSFER, transaction_id="bad2", block_timestamp=None)

    async def fake_transfers(address, limit=50, contract_address=None):
        return {"data": [broken, RAW_TRANSFER, no_time, "junk"]}

    monkeypatch.setattr(trongrid, "account_trc20_transfers", fake_transfers)
    txs = asyncio.run(trongrid.fetch_transactions(SUBJECT))
    assert [t.hash for t in txs] == ["abc123"]


def test_wallet_profile_for_new_account():
    profile = trongrid.build_wallet_profile(SUBJECT, {"data": []})
    assert profile == {"address": SUBJECT, "balance_usdt": "0.00", "first_seen": None, "last_operation_at": None}


def test_wallet_profile_reads_usdt_balance():
    account = {"data": [{
        "create_time": 1717243200000,
        "trc20": [{"TOtherTokenAAAAAAAAAAAAAAAAAAAAAAA": "1"}, {USDT_CONTRACT: "1234567890"}],
    }]}
    profile = trongrid.build_wallet_profile(SUBJECT, account)
    assert profile["balance_usdt"] == "1,234.57"
    assert profile["first_seen"] == "2024-06-01T12:00:00+00:00"
    assert profile["last_operation_at"] is None


# --- Gemini ---

def _gemini_reply(payload: dict) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": json.dumps(payload)}]}}]}


def test_gemini_assessor_posts_prompt_and_parses_reply(make_tx):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_gemini_reply({
            "riskScore": 72, "riskLevel": "HIGH", "summary": "Dusting.",
            "suspiciousWalletsFound": ["TScammerAAAAAAAAAAAAAAAAAAAAAAAAAA"],
        }))

    assessor = GeminiAssessor(api_key="k-123", transport=httpx.MockTransport(handler))
    result = asyncio.run(assessor.assess(SUBJECT, [make_tx()], ["Bot-like High Frequency Activity Detected"]))

    assert seen["url"].endswith("/models/gemini-2.5-flash:generateContent")
    assert seen["key"] == "k-123"
    parts = seen["body"]["contents"][0]["parts"]
    assert "Bot-like High Frequency Activity Detected" in parts[0]["text"]
    assert parts[1]["text"].startswith("Transaction Data: ")
    assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"
    assert result.risk_score == 72
    assert result.suspicious_wallets == ["TScammerAAAAAAAAAAAAAAAAAAAAAAAAAA"]


def test_gemini_http_error_becomes_degraded_result(subject, now, make_tx):
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "boom"}))
    assessor = GeminiAssessor(api_key="k", transport=transport)
    fused = asyncio.run(analyze_wallet(subject, [make_tx()], assessor, now=now, registry={}))
    assert fused.external_available is False
    assert fused.summary.startswith("AI analysis unavailable")


def test_gemini_empty_candidates_is_an_error(make_tx):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"candidates": []}))
    assessor = GeminiAssessor(api_key="k", transport=transport)
    with pytest.raises(IndexError):
        asyncio.run(assessor.assess(SUBJECT, [make_tx()], []))


def test_gemini_requires_key():
    with pytest.raises(ValueError):
        GeminiAssessor(api_key="")


def test_prompt_without_findings():
    assert "No automated heuristic rules were triggered." in build_prompt(SUBJECT, [])


# --- synthetic ---

def test_synthetic_dataset_is_deterministic(now):
    first = synthetic_transactions(SUBJECT, now=now)
    second = synthetic_transactions(SUBJECT, now=now)
    assert first == second
    assert len(first) == 20
    assert sum(1 for tx in first if tx.value == 0) == 1
    assert all(tx.asset_contract == USDT_CONTRACT for tx in first)
    assert synthetic_profile(SUBJECT, now=now) == synthetic_profile(SUBJECT, now=now)


def test_synthetic_dataset_scores(now):
    result = evaluate(SUBJECT, synthetic_transactions(SUBJECT, now=now), now=now, registry={})
    # dust de 0.5 queda por encima del umbral; ninguna regla dispara
    assert result.score == 0
