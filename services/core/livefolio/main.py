from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI

from .api import prices as prices_api
from .config import get_settings
from .storage.sqlite import HoldingsStore
from .streaming.runner import PriceService


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

settings = get_settings()
store = HoldingsStore(settings.sqlite_path)
service: PriceService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup/shutdown."""
    global service

    # Startup: initialize storage and start the price engine
    await store.init()
    service = PriceService.create(settings, store)
    prices_api.set_service(service)
    await service.start()

    yield

    # Shutdown: close the stream and stop every timer
    if service:
        await service.dispose()
    prices_api.set_service(None)


app = FastAPI(
    title="Livefolio Price API",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(prices_api.router)


@app.get("/health")
async def health() -> dict[str, Any]:
    return {
        "ok": True,
        "ts": int(time.time()),
        "status": service.publisher.status.value if service else "disconnected",
        "symbols": len(service.table) if service else 0,
    }


def run() -> None:
    """Serve the API on the configured host and port."""
    import uvicorn

    uvicorn.run("livefolio.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
