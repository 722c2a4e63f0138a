import random

import pytest

from quote_dashboard.cache.quote_cache import QuoteCache
from quote_dashboard.errors import ProviderDataError
from quote_dashboard.providers.base import QuoteProvider
from quote_dashboard.schemas.quote import Quote
from quote_dashboard.services.fallback import FallbackGenerator
from quote_dashboard.services.quote_service import QuoteService


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FakeProvider(QuoteProvider):
    name = "fake"

    def __init__(self, prices=None, supports_batch=True, error=None, extra=None):
        super().__init__("http://provider.test")
        self.prices = dict(prices or {})
        self.supports_batch = supports_batch
        self.error = error
        self.extra = list(extra or [])
        self.calls = []

    def make_quote(self, symbol):
        price = self.prices[symbol]
        return Quote(symbol=symbol, price=price, change=1.5, change_percent=1.5 / (price - 1.5) * 100, volume=1_000_000)

    def fetch_quote(self, symbol):
        self.calls.append(("quote", [symbol]))
        if self.error is not None:
            raise self.error
        if symbol not in self.prices:
            raise ProviderDataError(f"no usable data returned for symbol: {symbol}")
        return self.make_quote(symbol)

    def fetch_quotes(self, symbols):
        self.calls.append(("quotes", list(symbols)))
        if self.error is not None:
            raise self.error
        return [self.make_quote(s) for s in symbols if s in self.prices] + self.extra


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def cache(clock):
    return QuoteCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def make_service(cache, sleeper):
    def _make(provider, tracked=("AAPL", "MSFT", "TSLA"), **kwargs):
        kwargs.setdefault("request_delay_seconds", 5.0)
        return QuoteService(
            provider,
            cache,
            list(tracked),
            fallback=FallbackGenerator(random.Random(7)),
            sleep=sleeper,
            **kwargs,
        )

    return _make
