from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from quote_dashboard.config.settings import Settings
from quote_dashboard.observability import RefreshHeartbeat
from quote_dashboard.schemas.quote import ApiEnvelope, Provenance, Quote
from quote_dashboard.services.quote_service import QuoteService
from quote_dashboard.services.refresh_scheduler import RefreshScheduler

logger = logging.getLogger(__name__)
router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_service(request: Request) -> QuoteService:
    return request.app.state.quote_service


def get_heartbeat(request: Request) -> RefreshHeartbeat:
    return request.app.state.heartbeat


def summarize_source(quotes: list[Quote]) -> str:
    sources = {q.data_source for q in quotes}
    if len(sources) == 1:
        return sources.pop().value
    if not sources:
        return Provenance.FALLBACK.value
    return "mixed"


@router.get("/health")
def health(
    settings: Settings = Depends(get_settings),
    service: QuoteService = Depends(get_service),
    heartbeat: RefreshHeartbeat = Depends(get_heartbeat),
):
    return {
        "schema_version": settings.schema_version,
        "status": "UP",
        "service": settings.app_name,
        "version": settings.app_version,
        "has_recent_data": service.has_recent_data(),
        "uptime_seconds": round(heartbeat.uptime_seconds(), 3),
        "seconds_since_last_refresh": heartbeat.seconds_since_last_success(),
        "last_refresh": heartbeat.snapshot(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/metrics")
def all_metrics(
    settings: Settings = Depends(get_settings),
    service: QuoteService = Depends(get_service),
):
    output = service.metrics.global_metrics()
    output["cache"] = service.cache.metrics()
    output["schema_version"] = settings.schema_version
    return output


@router.get("/stocks/market-data", response_model=ApiEnvelope)
def market_data(settings: Settings = Depends(get_settings), service: QuoteService = Depends(get_service)):
    quotes = service.get_cached_quotes()
    source = Provenance.CACHED.value if service.has_recent_data() else Provenance.FALLBACK.value
    return ApiEnvelope(
        schema_version=settings.schema_version,
        data=[q.model_dump(mode="json") for q in quotes],
        message="Market data retrieved successfully",
        data_source=source,
    )


@router.get("/stocks/live", response_model=ApiEnvelope)
async def live_market_data(settings: Settings = Depends(get_settings), service: QuoteService = Depends(get_service)):
    quotes = await service.get_all_quotes()
    return ApiEnvelope(
        schema_version=settings.schema_version,
        data=[q.model_dump(mode="json") for q in quotes],
        message="Market data retrieved successfully",
        data_source=summarize_source(quotes),
    )


@router.post("/stocks/refresh", response_model=ApiEnvelope)
def refresh_market_data(request: Request, background_tasks: BackgroundTasks, settings: Settings = Depends(get_settings)):
    scheduler: RefreshScheduler = request.app.state.scheduler
    background_tasks.add_task(scheduler.run_once)
    return ApiEnvelope(
        schema_version=settings.schema_version,
        data="OK",
        message="Market data refresh initiated - data will update in background",
        data_source=request.app.state.quote_service.provider.name,
    )


@router.get("/stocks/info")
def data_source_info(
    request: Request,
    settings: Settings = Depends(get_settings),
    service: QuoteService = Depends(get_service),
):
    return {
        "schema_version": settings.schema_version,
        "provider": service.provider.name,
        "has_recent_data": service.has_recent_data(),
        "refresh_interval_seconds": request.app.state.scheduler.interval_seconds,
        "request_delay_seconds": service.request_delay_seconds,
        "cache_ttl_seconds": service.cache.ttl_seconds,
        "tracked_symbols": service.tracked_symbols,
        "cache": service.cache.metrics(),
    }


@router.get("/stocks/{symbol}", response_model=ApiEnvelope)
async def stock_by_symbol(symbol: str, settings: Settings = Depends(get_settings), service: QuoteService = Depends(get_service)):
    quote = await service.get_quote(symbol)
    if quote.data_source == Provenance.FALLBACK:
        message = f"Real data unavailable for {quote.symbol}, using simulated data"
    else:
        message = f"Stock data for {quote.symbol} retrieved successfully"
    return ApiEnvelope(
        schema_version=settings.schema_version,
        data=quote.model_dump(mode="json"),
        message=message,
        data_source=quote.data_source.value,
    )
