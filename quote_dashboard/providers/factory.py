from __future__ import annotations

from quote_dashboard.config.settings import Settings
from quote_dashboard.providers.alpha_vantage_client import AlphaVantageQuoteClient
from quote_dashboard.providers.base import QuoteProvider
from quote_dashboard.providers.yahoo_client import YahooQuoteClient


def build_provider(settings: Settings) -> QuoteProvider:
    settings.validate_provider()
    name = settings.provider.lower()
    if name == "alpha_vantage":
        return AlphaVantageQuoteClient(
            settings.resolved_provider_url,
            api_key=(settings.provider_api_key or "").strip(),
            timeout_seconds=settings.request_timeout_seconds,
        )
    return YahooQuoteClient(settings.resolved_provider_url, timeout_seconds=settings.request_timeout_seconds)
