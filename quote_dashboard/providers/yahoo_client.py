from __future__ import annotations

import logging
from typing import Any

from quote_dashboard.errors import ProviderApiError, ProviderDataError, ProviderRateLimited
from quote_dashboard.providers.base import QuoteProvider
from quote_dashboard.schemas.quote import Provenance, Quote
from quote_dashboard.utils.validators import optional_int, require_float, require_int

logger = logging.getLogger(__name__)

_RATE_LIMIT_HINTS = ("rate limit", "too many requests")


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("description") or error.get("code") or error)
    return str(error)


def _raise_api_error(error: Any):
    message = _error_message(error)
    if any(hint in message.lower() for hint in _RATE_LIMIT_HINTS):
        raise ProviderRateLimited(message)
    raise ProviderApiError(message)


def parse_quote(item: dict[str, Any]) -> Quote:
    symbol = str(item.get("symbol") or "").strip().upper()
    if not symbol:
        raise ValueError("missing symbol")
    return Quote(
        symbol=symbol,
        price=require_float(item.get("regularMarketPrice"), "regularMarketPrice"),
        change=require_float(item.get("regularMarketChange"), "regularMarketChange"),
        change_percent=require_float(item.get("regularMarketChangePercent"), "regularMarketChangePercent"),
        volume=require_int(item.get("regularMarketVolume"), "regularMarketVolume"),
        market_cap=optional_int(item.get("marketCap")),
        data_source=Provenance.LIVE,
    )


class YahooQuoteClient(QuoteProvider):
    """Yahoo Finance v7 quote endpoint; accepts many symbols per request."""

    name = "yahoo"
    supports_batch = True

    def fetch_quotes(self, symbols: list[str]) -> list[Quote]:
        if not symbols:
            return []
        payload = self._get_json({"symbols": ",".join(symbols)})

        if payload.get("error"):
            _raise_api_error(payload["error"])
        finance = payload.get("finance")
        if isinstance(finance, dict) and finance.get("error"):
            _raise_api_error(finance["error"])

        quote_response = payload.get("quoteResponse")
        if not isinstance(quote_response, dict):
            raise ProviderDataError("invalid response format: missing quoteResponse")
        if quote_response.get("error"):
            _raise_api_error(quote_response["error"])

        by_symbol: dict[str, Quote] = {}
        for item in quote_response.get("result") or []:
            try:
                quote = parse_quote(item)
            except (ValueError, TypeError, AttributeError) as exc:
                logger.warning(f"Skipping malformed Yahoo quote entry: {exc}")
                continue
            by_symbol[quote.symbol] = quote

        logger.info(f"Yahoo returned {len(by_symbol)} quotes for {len(symbols)} requested symbols")
        return list(by_symbol.values())

    def fetch_quote(self, symbol: str) -> Quote:
        for quote in self.fetch_quotes([symbol]):
            if quote.symbol == symbol:
                return quote
        raise ProviderDataError(f"no usable data returned for symbol: {symbol}")
