"""
Quote fetch orchestration.

Decides per request whether to answer from the cache, call the provider
(after the rate-limit delay), or degrade to stale cache / synthetic data.
Provider failures never reach the caller.
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from quote_dashboard.cache.quote_cache import QuoteCache
from quote_dashboard.errors import ProviderRateLimited, ProviderUnavailable
from quote_dashboard.internal_metrics import MetricsCollector, Stopwatch
from quote_dashboard.providers.base import QuoteProvider
from quote_dashboard.schemas.quote import Provenance, Quote
from quote_dashboard.services.fallback import FallbackGenerator
from quote_dashboard.utils.symbol_normalizer import normalize_symbol

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of one forced fetch pass over the tracked symbols."""

    refreshed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class QuoteService:
    """Serves quotes from cache, provider or fallback; never raises for provider failures."""

    def __init__(
        self,
        provider: QuoteProvider,
        cache: QuoteCache,
        tracked_symbols: list[str],
        fallback: FallbackGenerator | None = None,
        request_delay_seconds: float = 3.0,
        call_timeout_seconds: float | None = None,
        executor: Executor | None = None,
        metrics: MetricsCollector | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.provider = provider
        self.cache = cache
        self._tracked = [normalize_symbol(s) for s in tracked_symbols]
        self.fallback = fallback or FallbackGenerator()
        self.request_delay_seconds = request_delay_seconds
        self.call_timeout_seconds = call_timeout_seconds
        self.metrics = metrics or MetricsCollector()
        self._executor = executor
        self._sleep = sleep

    @property
    def tracked_symbols(self) -> list[str]:
        return list(self._tracked)

    async def _call_provider(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Wait out the rate-limit delay, then run one provider call on the worker pool."""
        if self.request_delay_seconds > 0:
            await self._sleep(self.request_delay_seconds)

        loop = asyncio.get_running_loop()
        timer = Stopwatch()
        try:
            call = loop.run_in_executor(self._executor, fn, *args)
            if self.call_timeout_seconds is not None:
                try:
                    result = await asyncio.wait_for(call, timeout=self.call_timeout_seconds)
                except asyncio.TimeoutError as exc:
                    raise ProviderUnavailable(
                        f"{self.provider.name} call exceeded {self.call_timeout_seconds}s"
                    ) from exc
            else:
                result = await call
        except Exception as exc:
            self.metrics.record_fetch(False, timer.elapsed_ms(), exc)
            raise
        self.metrics.record_fetch(True, timer.elapsed_ms())
        return result

    def _serve(self, quote: Quote, source: Provenance) -> Quote:
        self.metrics.record_served(source)
        return quote.as_source(source)

    def _cached_or_fallback(self, symbol: str) -> Quote:
        entry = self.cache.get(symbol)
        if entry is not None:
            return self._serve(entry.quote, Provenance.CACHED)
        return self._serve(self.fallback.generate(symbol), Provenance.FALLBACK)

    async def get_quote(self, symbol: str) -> Quote:
        try:
            symbol = normalize_symbol(symbol)
        except ValueError:
            logger.warning(f"Unrecognized symbol {symbol!r}, using fallback data")
            return self._serve(self.fallback.generate(symbol.strip().upper() or symbol), Provenance.FALLBACK)

        entry = self.cache.get_fresh(symbol)
        if entry is not None:
            logger.debug(f"Cache hit for symbol: {symbol}")
            return self._serve(entry.quote, Provenance.CACHED)

        try:
            logger.info(f"Fetching fresh data for symbol: {symbol}")
            quote = await self._call_provider(self.provider.fetch_quote, symbol)
        except Exception as exc:
            logger.warning(f"Error fetching data for {symbol}: {exc}")
            degraded = self._cached_or_fallback(symbol)
            logger.info(f"Using {degraded.data_source.value} data for {symbol}")
            return degraded

        if quote.symbol != symbol:
            quote = quote.model_copy(update={"symbol": symbol})
        self.cache.put(symbol, quote)
        logger.info(f"Successfully fetched data for {symbol}: ${quote.price}")
        return self._serve(quote, Provenance.LIVE)

    async def _fetch_pass(self, symbols: list[str]) -> tuple[dict[str, Quote], dict[str, str]]:
        """Fetch the given symbols, store every success, and report per-symbol failures."""
        live: dict[str, Quote] = {}
        failed: dict[str, str] = {}
        if not symbols:
            return live, failed

        if self.provider.supports_batch:
            logger.info(f"Making combined request to {self.provider.name} for symbols: {symbols}")
            try:
                quotes = await self._call_provider(self.provider.fetch_quotes, list(symbols))
            except Exception as exc:
                logger.error(f"Batch fetch failed: {exc}")
                return live, {s: str(exc) for s in symbols}

            wanted = set(symbols)
            for quote in quotes:
                if quote.symbol not in wanted:
                    logger.debug(f"Ignoring unrequested symbol in response: {quote.symbol}")
                    continue
                self.cache.put(quote.symbol, quote)
                live[quote.symbol] = quote
            for symbol in symbols:
                if symbol not in live:
                    failed[symbol] = "missing or malformed in provider response"
            return live, failed

        for index, symbol in enumerate(symbols):
            try:
                quote = await self._call_provider(self.provider.fetch_quote, symbol)
            except ProviderRateLimited as exc:
                logger.warning(f"Rate limited while fetching {symbol}: {exc}")
                failed[symbol] = str(exc)
                for skipped in symbols[index + 1:]:
                    failed[skipped] = "skipped after provider rate limit"
                break
            except Exception as exc:
                logger.warning(f"Failed to update {symbol}: {exc}")
                failed[symbol] = str(exc)
                continue
            if quote.symbol != symbol:
                quote = quote.model_copy(update={"symbol": symbol})
            self.cache.put(symbol, quote)
            live[symbol] = quote
        return live, failed

    async def get_all_quotes(self) -> list[Quote]:
        tracked = self.tracked_symbols
        logger.info(f"Requesting market data for {len(tracked)} symbols")

        fresh = self.cache.fresh_count(tracked)
        if fresh == len(tracked):
            logger.info(f"Cache hit: all {len(tracked)} symbols available in cache")
            return [self._serve(self.cache.get(s).quote, Provenance.CACHED) for s in tracked]

        needs_refresh = [s for s in tracked if self.cache.get_fresh(s) is None]
        logger.info(f"Cache miss: {len(needs_refresh)} symbols need refresh")
        live, failed = await self._fetch_pass(needs_refresh)
        if failed:
            logger.warning(f"Using cached/fallback data for {sorted(failed)}")

        out: list[Quote] = []
        for symbol in tracked:
            if symbol in live:
                out.append(self._serve(live[symbol], Provenance.LIVE))
            else:
                out.append(self._cached_or_fallback(symbol))
        return out

    def get_cached_quotes(self) -> list[Quote]:
        """Quotes for every tracked symbol without any provider call."""
        return [self._cached_or_fallback(s) for s in self._tracked]

    async def refresh_all(self) -> RefreshResult:
        logger.info("Starting cache refresh of all tracked symbols...")
        live, failed = await self._fetch_pass(self.tracked_symbols)
        result = RefreshResult(refreshed=[s for s in self._tracked if s in live], failed=failed)
        for symbol, reason in failed.items():
            logger.error(f"Failed to refresh {symbol}: {reason}")
        logger.info(f"Cache refresh completed: {len(result.refreshed)} refreshed, {len(result.failed)} failed")
        return result

    def has_recent_data(self) -> bool:
        return self.cache.has_any_fresh()
