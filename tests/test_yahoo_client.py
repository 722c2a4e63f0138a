import json
from urllib.error import HTTPError, URLError

import pytest

from quote_dashboard.errors import (
    ProviderApiError,
    ProviderDataError,
    ProviderEmptyResponse,
    ProviderRateLimited,
    ProviderUnavailable,
)
from quote_dashboard.providers import base
from quote_dashboard.providers.yahoo_client import YahooQuoteClient
from quote_dashboard.schemas.quote import Provenance


def _item(symbol, price=100.0, change=2.0, pct=2.04, volume=1000, **extra):
    item = {
        "symbol": symbol,
        "regularMarketPrice": price,
        "regularMarketChange": change,
        "regularMarketChangePercent": pct,
        "regularMarketVolume": volume,
    }
    item.update(extra)
    return item


def _client_returning(monkeypatch, body):
    client = YahooQuoteClient("https://example.test/v7/finance/quote")
    seen = {}

    def fake_get_text(params):
        seen.update(params)
        return body if isinstance(body, str) else json.dumps(body)

    monkeypatch.setattr(client, "_get_text", fake_get_text)
    return client, seen


def test_combined_request_parses_all_symbols(monkeypatch):
    payload = {"quoteResponse": {"result": [_item("AAPL", 190.5, marketCap=3_000_000_000_000), _item("MSFT", 410.0)], "error": None}}
    client, seen = _client_returning(monkeypatch, payload)

    quotes = client.fetch_quotes(["AAPL", "MSFT"])

    assert seen == {"symbols": "AAPL,MSFT"}
    assert [q.symbol for q in quotes] == ["AAPL", "MSFT"]
    assert quotes[0].price == 190.5
    assert quotes[0].market_cap == 3_000_000_000_000
    assert quotes[1].market_cap is None
    assert isinstance(quotes[0].volume, int)
    assert all(q.data_source == Provenance.LIVE for q in quotes)


def test_malformed_symbol_is_skipped_not_fatal(monkeypatch):
    bad = _item("MSFT")
    del bad["regularMarketPrice"]
    payload = {"quoteResponse": {"result": [_item("AAPL"), bad, _item("TSLA", "n/a")]}}
    client, _ = _client_returning(monkeypatch, payload)

    quotes = client.fetch_quotes(["AAPL", "MSFT", "TSLA"])

    assert [q.symbol for q in quotes] == ["AAPL"]


def test_duplicate_symbol_last_entry_wins(monkeypatch):
    payload = {"quoteResponse": {"result": [_item("AAPL", 1.0), _item("MSFT"), _item("AAPL", 2.0)]}}
    client, _ = _client_returning(monkeypatch, payload)

    quotes = client.fetch_quotes(["AAPL", "MSFT"])

    assert len(quotes) == 2
    assert {q.symbol: q.price for q in quotes}["AAPL"] == 2.0


def test_error_field_raises_api_error(monkeypatch):
    client, _ = _client_returning(monkeypatch, {"error": "Invalid Crumb"})
    with pytest.raises(ProviderApiError) as exc_info:
        client.fetch_quotes(["AAPL"])
    assert not isinstance(exc_info.value, ProviderRateLimited)
    assert "Invalid Crumb" in exc_info.value.message


def test_rate_limit_marker_raises_rate_limited(monkeypatch):
    payload = {"finance": {"error": {"code": "Too Many Requests", "description": "Rate limit exceeded"}}}
    client, _ = _client_returning(monkeypatch, payload)
    with pytest.raises(ProviderRateLimited):
        client.fetch_quotes(["AAPL"])


def test_nested_quote_response_error(monkeypatch):
    client, _ = _client_returning(monkeypatch, {"quoteResponse": {"result": [], "error": {"description": "bad symbols"}}})
    with pytest.raises(ProviderApiError):
        client.fetch_quotes(["AAPL"])


def test_empty_body_raises(monkeypatch):
    client, _ = _client_returning(monkeypatch, "   ")
    with pytest.raises(ProviderEmptyResponse):
        client.fetch_quotes(["AAPL"])


def test_missing_quote_response_is_data_error(monkeypatch):
    client, _ = _client_returning(monkeypatch, {"something": "else"})
    with pytest.raises(ProviderDataError):
        client.fetch_quotes(["AAPL"])


def test_non_json_body_is_data_error(monkeypatch):
    client, _ = _client_returning(monkeypatch, "<html>oops</html>")
    with pytest.raises(ProviderDataError):
        client.fetch_quotes(["AAPL"])


def test_fetch_quote_without_usable_entry(monkeypatch):
    client, _ = _client_returning(monkeypatch, {"quoteResponse": {"result": []}})
    with pytest.raises(ProviderDataError):
        client.fetch_quote("AAPL")


def test_fetch_quote_returns_single_symbol(monkeypatch):
    client, seen = _client_returning(monkeypatch, {"quoteResponse": {"result": [_item("aapl", 123.0)]}})
    quote = client.fetch_quote("AAPL")
    assert seen == {"symbols": "AAPL"}
    assert quote.symbol == "AAPL"
    assert quote.price == 123.0


def test_http_429_maps_to_rate_limited(monkeypatch):
    def fake_urlopen(request, timeout):
        raise HTTPError(request.full_url, 429, "Too Many Requests", hdrs=None, fp=None)

    monkeypatch.setattr(base, "urlopen", fake_urlopen)
    client = YahooQuoteClient("https://example.test/quote", timeout_seconds=1)
    with pytest.raises(ProviderRateLimited):
        client.fetch_quotes(["AAPL"])


def test_network_failure_maps_to_unavailable(monkeypatch):
    seen = {}

    def fake_urlopen(request, timeout):
        seen["url"] = request.full_url
        seen["timeout"] = timeout
        raise URLError("connection refused")

    monkeypatch.setattr(base, "urlopen", fake_urlopen)
    client = YahooQuoteClient("https://example.test/quote", timeout_seconds=2.5)
    with pytest.raises(ProviderUnavailable):
        client.fetch_quotes(["AAPL", "MSFT"])
    assert seen["url"] == "https://example.test/quote?symbols=AAPL,MSFT"
    assert seen["timeout"] == 2.5


def test_server_error_maps_to_unavailable(monkeypatch):
    def fake_urlopen(request, timeout):
        raise HTTPError(request.full_url, 503, "Service Unavailable", hdrs=None, fp=None)

    monkeypatch.setattr(base, "urlopen", fake_urlopen)
    client = YahooQuoteClient("https://example.test/quote")
    with pytest.raises(ProviderUnavailable):
        client.fetch_quote("AAPL")
