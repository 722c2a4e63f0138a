from __future__ import annotations

import logging

from quote_dashboard.errors import (
    ConfigurationError,
    ProviderApiError,
    ProviderDataError,
    ProviderRateLimited,
)
from quote_dashboard.providers.base import QuoteProvider
from quote_dashboard.schemas.quote import Provenance, Quote
from quote_dashboard.utils.validators import require_float, require_int

logger = logging.getLogger(__name__)


class AlphaVantageQuoteClient(QuoteProvider):
    """
    Alpha Vantage GLOBAL_QUOTE endpoint.
    One symbol per request, so batch fetches are issued serially by the caller.
    """

    name = "alpha_vantage"
    supports_batch = False

    def __init__(self, base_url: str, api_key: str, timeout_seconds: float = 8.0):
        super().__init__(base_url, timeout_seconds)
        if not api_key:
            raise ConfigurationError("Alpha Vantage requires an API key")
        self.api_key = api_key

    def fetch_quote(self, symbol: str) -> Quote:
        payload = self._get_json({"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key})

        if "Error Message" in payload:
            raise ProviderApiError(f"API Error: {payload['Error Message']}")
        for marker in ("Note", "Information"):
            if marker in payload:
                raise ProviderRateLimited(f"API Rate Limit: {payload[marker]}")

        quote = payload.get("Global Quote")
        if not isinstance(quote, dict) or not quote:
            raise ProviderDataError(f"no data returned for symbol: {symbol}")

        try:
            return Quote(
                symbol=symbol,
                price=require_float(quote.get("05. price"), "05. price"),
                change=require_float(quote.get("09. change"), "09. change"),
                change_percent=require_float(quote.get("10. change percent"), "10. change percent"),
                volume=require_int(quote.get("06. volume"), "06. volume"),
                data_source=Provenance.LIVE,
            )
        except ValueError as exc:
            raise ProviderDataError(f"malformed quote for {symbol}: {exc}") from exc

    def fetch_quotes(self, symbols: list[str]) -> list[Quote]:
        quotes: list[Quote] = []
        for symbol in symbols:
            try:
                quotes.append(self.fetch_quote(symbol))
            except ProviderDataError as exc:
                logger.warning(f"Skipping {symbol}: {exc}")
        return quotes
