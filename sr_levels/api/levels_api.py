"""
FastAPI REST API for the support/resistance level engine.

Read-only level queries plus a manual scan trigger. Every engine call runs on
one single-worker executor, so the engine stays single-threaded while a slow
provider fetch does not block the event loop.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from functools import partial
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime
from enum import Enum

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..engine import SupportResistanceEngine
from ..support_resistance.models import Level, Tier
from ..utils.logger import get_logger
from ..utils.exceptions import (
    SRLevelsException,
    InvalidDataException,
    create_error_response,
    log_exception
)

logger = get_logger(__name__)


# === Pydantic Models for API ===

class Side(str, Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"


class LevelResponse(BaseModel):
    """Level snapshot"""
    price: float
    touches: int
    strength: int
    first_touch_time: datetime
    last_touch_time: datetime
    tier: Tier
    is_support: bool
    is_resistance: bool
    is_active: bool
    consecutive_touches: int
    symbol: Optional[str] = None

    @classmethod
    def from_level(cls, level: Level) -> "LevelResponse":
        return cls(
            price=level.price,
            touches=level.touches,
            strength=level.strength,
            first_touch_time=level.first_touch_time,
            last_touch_time=level.last_touch_time,
            tier=level.tier,
            is_support=level.is_support,
            is_resistance=level.is_resistance,
            is_active=level.is_active,
            consecutive_touches=level.consecutive_touches,
            symbol=level.symbol
        )


class NearestPairResponse(BaseModel):
    """Nearest support below and resistance above a price"""
    symbol: str
    price: float
    support: Optional[LevelResponse] = None
    resistance: Optional[LevelResponse] = None


class HealthResponse(BaseModel):
    """Response health check"""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    symbols: List[str] = Field(..., description="Symbols scanned so far")


def create_levels_app(engine: SupportResistanceEngine) -> FastAPI:
    """
    Create the FastAPI application around an engine

    Args:
        engine: Engine whose stores are queried

    Returns:
        Configured FastAPI app
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sr-engine")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting levels API", symbols=engine.symbols)
        yield
        executor.shutdown(wait=True)
        logger.info("Levels API stopped")

    async def run_engine(func: Callable, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, partial(func, *args, **kwargs))

    app = FastAPI(
        title="Support/Resistance Levels API",
        description="Multi-timeframe support/resistance level queries",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.engine = engine
    app.state.executor = executor

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(),
            symbols=await run_engine(lambda: engine.symbols)
        )

    @app.get("/levels/{symbol}", response_model=List[LevelResponse])
    async def list_levels(symbol: str, tier: Optional[Tier] = Query(default=None)):
        levels = await run_engine(engine.levels, symbol, tier)
        return [LevelResponse.from_level(level) for level in levels]

    @app.get("/levels/{symbol}/strongest", response_model=LevelResponse)
    async def strongest_level(
        symbol: str,
        price: float = Query(..., gt=0),
        side: Side = Query(default=Side.SUPPORT),
        max_distance: Optional[float] = Query(default=None, gt=0)
    ):
        level = await run_engine(
            engine.strongest_level,
            symbol, price, want_support=side is Side.SUPPORT, max_distance=max_distance
        )
        if level is None:
            raise HTTPException(
                status_code=404,
                detail=f"No {side.value} level for {symbol.upper()} near {price}"
            )
        return LevelResponse.from_level(level)

    @app.get("/levels/{symbol}/nearest", response_model=NearestPairResponse)
    async def nearest_pair(
        symbol: str,
        price: float = Query(..., gt=0),
        max_distance: Optional[float] = Query(default=None, gt=0)
    ):
        pair = await run_engine(engine.nearest_pair, symbol, price, max_distance=max_distance)
        return NearestPairResponse(
            symbol=symbol.upper(),
            price=price,
            support=LevelResponse.from_level(pair.support) if pair.support else None,
            resistance=LevelResponse.from_level(pair.resistance) if pair.resistance else None
        )

    @app.get("/levels/{symbol}/stats")
    async def level_stats(symbol: str) -> Dict[str, Any]:
        stats = await run_engine(lambda: engine.query(symbol).get_statistics())
        return {"symbol": symbol.upper(), **stats}

    @app.post("/scan/{symbol}")
    async def scan_symbol(symbol: str) -> Dict[str, Any]:
        report = await run_engine(engine.scan_symbol, symbol)
        return report.to_dict()

    @app.exception_handler(SRLevelsException)
    async def engine_exception_handler(request, exc: SRLevelsException):
        log_exception(logger, exc, {'path': request.url.path})
        status_code = 400 if isinstance(exc, InvalidDataException) else 500
        return JSONResponse(status_code=status_code, content=create_error_response(exc))

    return app


def run_server(
    engine: SupportResistanceEngine,
    host: str = "0.0.0.0",
    port: int = 8000,
    log_level: str = "info"
):
    """
    Run the API with uvicorn

    Args:
        engine: Engine to serve
        host: Bind host
        port: Bind port
        log_level: uvicorn log level
    """
    import uvicorn

    uvicorn.run(create_levels_app(engine), host=host, port=port, log_level=log_level)
