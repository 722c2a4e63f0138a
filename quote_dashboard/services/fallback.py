"""
Synthetic quotes used when neither the provider nor the cache can answer.
Values are plausible but not real; every quote is tagged as fallback.
"""
from __future__ import annotations

import random

from quote_dashboard.schemas.quote import Provenance, Quote

BASE_PRICES = {
    "AAPL": 175.0,
    "GOOGL": 2700.0,
    "MSFT": 330.0,
    "TSLA": 250.0,
    "NVDA": 450.0,
    "AMZN": 140.0,
    "META": 300.0,
    "NFLX": 440.0,
}
DEFAULT_BASE_PRICE = 100.0

MAX_ABS_CHANGE = 1.0
MIN_VOLUME = 5_000_000
MAX_VOLUME = 15_000_000


class FallbackGenerator:
    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def base_price(self, symbol: str) -> float:
        return BASE_PRICES.get(symbol.upper(), DEFAULT_BASE_PRICE)

    def generate(self, symbol: str) -> Quote:
        symbol = symbol.upper()
        base = self.base_price(symbol)
        change = self.rng.uniform(-MAX_ABS_CHANGE, MAX_ABS_CHANGE)
        return Quote(
            symbol=symbol,
            price=base + change,
            change=change,
            change_percent=change / base * 100,
            volume=self.rng.randrange(MIN_VOLUME, MAX_VOLUME),
            data_source=Provenance.FALLBACK,
        )
