import os
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional

import httpx

from ..log import get_logger
from ..risk_engine.models import Transaction
from ..risk_engine.registry import USDT_CONTRACT

log = get_logger(__name__)

TRONGRID = os.getenv("TRONGRID_API_URL", "https://api.trongrid.io")
TRONGRID_LIMIT = int(os.getenv("TRONGRID_LIMIT", "50"))
DEFAULT_DECIMALS = 6


def _headers():
    key = os.getenv("TRONGRID_API_KEY", "")
    h = {}
    if key:
        h["TRON-PRO-API-KEY"] = key
    return h


async def account_overview(address_b58: str) -> dict:
    url = f"{TRONGRID}/v1/accounts/{address_b58}"
    async with httpx.AsyncClient(timeout=20.0) as client:
        r = await client.get(url, headers=_headers())
        r.raise_for_status()
        return r.json()


async def account_trc20_transfers(address_b58: str, limit=TRONGRID_LIMIT, contract_address=None) -> dict:
    params = {"limit": limit}
    if contract_address: params["contract_address"] = contract_address
    url = f"{TRONGRID}/v1/accounts/{address_b58}/transactions/trc20"
    async with httpx.AsyncClient(timeout=20.0) as client:
        r = await client.get(url, params=params, headers=_headers())
        r.raise_for_status()
        return r.json()


def normalize_trc20(it: dict) -> Transaction:
    """Transferencia TRC20 cruda de TronGrid -> Transaction, conservando el contrato real del token."""
    token = it.get("token_info") or {}
    decimals = int(token.get("decimals") if token.get("decimals") is not None else DEFAULT_DECIMALS)
    try:
        raw = Decimal(str(it.get("value", "0")))
    except InvalidOperation:
        raise ValueError(f"valor TRC20 ilegible en {it.get('transaction_id')}")
    return Transaction(
        hash=it.get("transaction_id") or "",
        from_address=(it.get("from") or "").strip(),
        to_address=(it.get("to") or "").strip(),
        value=raw / (Decimal(10) ** decimals),
        timestamp=it.get("block_timestamp"),
        asset_symbol=token.get("symbol") or "Unknown",
        asset_contract=token.get("address") or None,
        decimals=decimals,
    )


async def fetch_transactions(address_b58: str, limit: int = TRONGRID_LIMIT) -> List[Transaction]:
    # sin filtro de contrato: los tokens USDT falsos también tienen que llegar al motor
    payload = await account_trc20_transfers(address_b58, limit=limit)
    items = payload.get("data", []) or []
    if not isinstance(items, list):
        items = []
    txs = []
    for it in items:
        if not isinstance(it, dict):
            continue
        try:
            txs.append(normalize_trc20(it))
        except ValueError as e:
            # un registro roto no invalida el resto del historial
            log.warning("trc20_record_skipped", address=address_b58, tx=it.get("transaction_id"), error=str(e))
    log.info("trc20_fetched", address=address_b58, count=len(txs))
    return txs


def fmt_time(ms: Optional[int]) -> Optional[str]:
    if not ms:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def build_wallet_profile(address_b58: str, tron_account: dict) -> dict:
    data = (tron_account or {}).get("data")
    obj = data[0] if isinstance(data, list) and data else None
    if not isinstance(obj, dict):
        # cuenta nueva o inactiva
        return {"address": address_b58, "balance_usdt": "0.00", "first_seen": None, "last_operation_at": None}

    balance = Decimal("0")
    for entry in obj.get("trc20") or []:
        if isinstance(entry, dict) and USDT_CONTRACT in entry:
            balance = Decimal(str(entry[USDT_CONTRACT])) / (Decimal(10) ** DEFAULT_DECIMALS)
            break

    create_ts = obj.get("create_time") or obj.get("createTime")
    last_op_ts = obj.get("latest_opration_time") or obj.get("latest_operation_time")
    return {
        "address": address_b58,
        "balance_usdt": format(balance.quantize(Decimal("0.01")), ",f"),
        "first_seen": fmt_time(create_ts),
        "last_operation_at": fmt_time(last_op_ts),
    }


async def fetch_wallet_profile(address_b58: str) -> dict:
    return build_wallet_profile(address_b58, await account_overview(address_b58))
