# sentinel/main.py
import asyncio
import os

import httpx
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv
load_dotenv()

from .log import get_logger
from .risk_engine.fusion import analyze_wallet
from .sources.gemini import assessor_from_env
from .sources.synthetic import synthetic_profile, synthetic_transactions
from .sources.trongrid import fetch_transactions, fetch_wallet_profile
from .utils.address import validate_tron_address

log = get_logger(__name__)

SYNTHETIC_FALLBACK = os.getenv("SYNTHETIC_FALLBACK", "1") not in ("0", "false", "False")

app = FastAPI(title="TRON Sentinel API", version="0.2")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_assessor():
    return assessor_from_env()


async def load_wallet(address: str):
    """Devuelve (transacciones, perfil, origen de datos)."""
    try:
        txs, profile = await asyncio.gather(fetch_transactions(address), fetch_wallet_profile(address))
        return txs, profile, "trongrid"
    except httpx.HTTPError as e:
        if not SYNTHETIC_FALLBACK:
            raise HTTPException(502, detail=f"TronGrid no disponible: {e}")
        log.warning("trongrid_unavailable_using_synthetic", address=address, error=str(e))
        return synthetic_transactions(address), synthetic_profile(address), "synthetic"


@app.api_route("/health", methods=["GET", "HEAD"])
async def health(request: Request):
    if request.method == "HEAD":
        return Response(status_code=200)
    return {"ok": True}


@app.get("/risk/{address}")
async def risk(address: str):
    try:
        address = validate_tron_address(address)
    except ValueError as e:
        raise HTTPException(400, detail=str(e))

    txs, profile, source = await load_wallet(address)
    try:
        fused = await analyze_wallet(address, txs, get_assessor())
    except ValueError as e:
        raise HTTPException(400, detail=str(e))

    result = fused.model_dump(mode="json", by_alias=True)
    result.update({"address": address, "data_source": source, "profile": profile})
    return result
