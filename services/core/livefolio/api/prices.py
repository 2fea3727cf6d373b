"""
Price API endpoints for UI collaborators.

Read-only views over the price table plus lifecycle control for the
streaming channel. The ``offline`` marker is surfaced here and nowhere else.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from ..providers.base import AssetType, HoldingRef, PriceRecord, PriceUpdate
from ..streaming.runner import PriceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["prices"])

# Service instance (set by main.py)
_service: PriceService | None = None


def set_service(service: PriceService | None):
    """Set the service instance."""
    global _service
    _service = service


def get_service() -> PriceService:
    """Get the service instance."""
    if _service is None:
        raise RuntimeError("Price service not initialized")
    return _service


class HoldingIn(BaseModel):
    symbol: str = Field(min_length=1)
    asset_type: AssetType


class RefreshRequest(BaseModel):
    holdings: list[HoldingIn]


class StreamRequest(BaseModel):
    symbols: list[str]


def record_to_dict(record: PriceRecord) -> dict[str, Any]:
    return {
        "symbol": record.symbol,
        "price": record.price,
        "source": record.source.value,
        "observed_at": record.observed_at,
        "asset_type": record.asset_type.value,
        "provider": record.provider,
        "currency": record.currency,
    }


def update_to_dict(update: PriceUpdate) -> dict[str, Any]:
    return {
        "symbol": update.symbol,
        "price": update.price,
        "source": update.source.value,
        "observed_at": update.observed_at,
    }


@router.get("/prices")
async def get_prices(service: PriceService = Depends(get_service)) -> dict[str, Any]:
    """
    Current price snapshot.

    Example:
        {
            "prices": {"BTC": 65010.0, "THYAO": 312.5},
            "status": "connected",
            "offline": false,
            "stale": [],
            "as_of": 1700000000.0
        }
    """
    snapshot = service.snapshot()
    return {
        "prices": snapshot.prices,
        "records": {symbol: record_to_dict(r) for symbol, r in snapshot.records.items()},
        "status": snapshot.status.value,
        "offline": snapshot.offline,
        "stale": snapshot.stale,
        "as_of": snapshot.as_of,
    }


@router.get("/prices/{symbol}")
async def get_price(symbol: str, service: PriceService = Depends(get_service)) -> dict[str, Any]:
    record = service.table.get_record(symbol) or service.table.get_record(symbol.upper())
    if record is None:
        raise HTTPException(status_code=404, detail=f"No price for {symbol}")
    return record_to_dict(record)


@router.post("/prices/refresh")
async def refresh_prices(req: RefreshRequest, service: PriceService = Depends(get_service)) -> dict[str, Any]:
    """Run one polling cycle for the given holdings."""
    prices = await service.fetch_multiple_prices(
        HoldingRef(symbol=h.symbol, asset_type=h.asset_type) for h in req.holdings
    )
    return {"prices": prices, "offline": service.offline, "status": service.publisher.status.value}


@router.get("/status")
async def get_status(service: PriceService = Depends(get_service)) -> dict[str, Any]:
    return {
        "status": service.publisher.status.value,
        "stream_state": service.stream.state.value,
        "stream_symbols": sorted(service.stream.symbols),
        "reconnect_attempt": service.stream.reconnect_attempt,
        "polling_active": service.active,
        "offline": service.offline,
    }


@router.post("/stream/start")
async def start_stream(req: StreamRequest, service: PriceService = Depends(get_service)) -> dict[str, Any]:
    await service.initialize_streaming_connection(req.symbols)
    return {"symbols": sorted(service.stream.symbols), "state": service.stream.state.value}


@router.post("/stream/stop")
async def stop_stream(service: PriceService = Depends(get_service)) -> dict[str, Any]:
    await service.close_streaming_connection()
    return {"state": service.stream.state.value}


@router.websocket("/ws/prices")
async def price_updates_ws(websocket: WebSocket) -> None:
    """Push every price table write to the client as JSON."""
    service = get_service()
    await websocket.accept()
    queue: asyncio.Queue[PriceUpdate] = asyncio.Queue(maxsize=1000)

    def enqueue(update: PriceUpdate) -> None:
        try:
            queue.put_nowait(update)
        except asyncio.QueueFull:
            logger.warning(f"Price websocket queue full; dropping update for {update.symbol}")

    unsubscribe = service.subscribe_to_price_updates(enqueue)
    try:
        while True:
            update = await queue.get()
            await websocket.send_json(update_to_dict(update))
    except WebSocketDisconnect:
        logger.info("Price websocket client disconnected")
    finally:
        unsubscribe()
