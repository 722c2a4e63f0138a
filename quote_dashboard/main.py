"""
Main application entry point.
Builds the FastAPI app, the quote pipeline, and the refresh scheduler.
"""
import asyncio
import logging
import random
import sys
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from quote_dashboard.api.routes import router
from quote_dashboard.cache.quote_cache import QuoteCache
from quote_dashboard.config.settings import Settings, settings
from quote_dashboard.internal_metrics import MetricsCollector, Stopwatch
from quote_dashboard.observability import RefreshHeartbeat
from quote_dashboard.providers.base import QuoteProvider
from quote_dashboard.providers.factory import build_provider
from quote_dashboard.services.fallback import FallbackGenerator
from quote_dashboard.services.quote_service import QuoteService
from quote_dashboard.services.refresh_scheduler import RefreshScheduler

# Configure logging for stdout/stderr collectors
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
    force=True,
)

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    provider: Optional[QuoteProvider] = None,
    rng: Optional[random.Random] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    cfg = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup and shutdown of the quote pipeline.
        Configuration errors surface here and abort startup.
        """
        logger.info("Starting Trading Dashboard API...")

        executor = ThreadPoolExecutor(max_workers=cfg.fetch_workers, thread_name_prefix="quote-fetch")
        refresh_task = None
        try:
            cfg.validate_provider()
            quote_provider = provider or build_provider(cfg)
            cache = QuoteCache(ttl_seconds=cfg.cache_ttl_seconds)
            service = QuoteService(
                quote_provider,
                cache,
                cfg.tracked_symbol_list,
                fallback=FallbackGenerator(rng),
                request_delay_seconds=cfg.request_delay_seconds,
                call_timeout_seconds=cfg.request_timeout_seconds * 2,
                executor=executor,
                metrics=app.state.metrics,
            )
            scheduler = RefreshScheduler(service, cfg.refresh_interval_seconds, app.state.heartbeat)

            app.state.quote_service = service
            app.state.scheduler = scheduler

            if start_scheduler and cfg.refresh_interval_seconds > 0:
                refresh_task = asyncio.create_task(scheduler.start())
            logger.info(
                "Application started successfully",
                extra={"provider": quote_provider.name, "tracked_symbols": service.tracked_symbols},
            )
            yield
        except Exception as e:
            logger.error(f"Startup failed: {e}", exc_info=True)
            raise
        finally:
            logger.info("Shutting down Trading Dashboard API...")
            if "scheduler" in locals():
                await scheduler.stop()

            if refresh_task is not None:
                refresh_task.cancel()
                try:
                    await refresh_task
                except asyncio.CancelledError:
                    pass

            executor.shutdown(wait=False, cancel_futures=True)
            logger.info("Shutdown complete")

    app = FastAPI(title=cfg.app_name, version=cfg.app_version, lifespan=lifespan)
    app.state.settings = cfg
    app.state.metrics = MetricsCollector()
    app.state.heartbeat = RefreshHeartbeat()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        response = None
        timer = Stopwatch()
        try:
            response = await call_next(request)
            return response
        finally:
            latency_ms = round(timer.elapsed_ms(), 2)
            app.state.metrics.record_request(latency_ms)
            logger.info(
                "request_complete",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "latency_ms": latency_ms,
                    "status_code": response.status_code if response else None,
                },
            )

    app.include_router(router, prefix="/api")
    return app


app = create_app()


def main():
    """Run the application."""
    logger.info(
        "Configuration loaded",
        extra={
            "host": settings.host,
            "port": settings.port,
            "log_level": settings.log_level,
            "provider": settings.provider,
            "cache_ttl_seconds": settings.cache_ttl_seconds,
            "request_delay_seconds": settings.request_delay_seconds,
            "refresh_interval_seconds": settings.refresh_interval_seconds,
        },
    )

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        lifespan="on",
        access_log=True,
    )


if __name__ == "__main__":
    main()
