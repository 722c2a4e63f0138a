"""
Periodic market data refresh.
Owned by the application lifespan; calls QuoteService.refresh_all on an interval.
"""
import asyncio
import logging
from typing import Optional

from quote_dashboard.observability import RefreshHeartbeat
from quote_dashboard.services.quote_service import QuoteService

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Runs refresh passes until stopped."""

    def __init__(
        self,
        service: QuoteService,
        interval_seconds: float,
        heartbeat: Optional[RefreshHeartbeat] = None,
    ):
        self.service = service
        self.interval_seconds = interval_seconds
        self.heartbeat = heartbeat
        self.running = False
        self.completed_runs = 0

    async def run_once(self):
        """Run a single refresh pass and update the heartbeat."""
        result = await self.service.refresh_all()
        self.completed_runs += 1
        if self.heartbeat is not None:
            self.heartbeat.record(result)
        return result

    async def start(self):
        """Start the refresh loop."""
        self.running = True
        logger.info(f"Starting refresh scheduler (interval: {self.interval_seconds}s)")

        while self.running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in refresh loop: {e}", exc_info=True)
            # stop() may have been called during the pass
            if not self.running:
                break
            await asyncio.sleep(self.interval_seconds)

    async def stop(self):
        """Stop the refresh loop."""
        logger.info("Stopping refresh scheduler...")
        self.running = False
