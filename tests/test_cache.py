from quote_dashboard.cache.quote_cache import CacheEntry, QuoteCache
from quote_dashboard.schemas.quote import Quote


def _quote(symbol="AAPL", price=180.0):
    return Quote(symbol=symbol, price=price, change=1.0, change_percent=0.5, volume=10)


def test_ttl_boundary(cache, clock):
    cache.put("AAPL", _quote())
    clock.advance(300 - 0.001)
    assert cache.is_fresh("AAPL") is True
    clock.advance(0.002)
    assert cache.is_fresh("AAPL") is False


def test_stale_entry_is_still_returned(cache, clock):
    cache.put("AAPL", _quote())
    clock.advance(3600)
    entry = cache.get("AAPL")
    assert entry is not None
    assert entry.quote.price == 180.0
    assert cache.get_fresh("AAPL") is None


def test_put_overwrites_previous_entry(cache, clock):
    cache.put("AAPL", _quote(price=1.0))
    clock.advance(10)
    cache.put("AAPL", _quote(price=2.0))
    entry = cache.get("AAPL")
    assert entry.quote.price == 2.0
    assert entry.captured_at == clock.now
    assert cache.metrics()["size"] == 1


def test_has_any_fresh(cache, clock):
    assert cache.has_any_fresh() is False
    cache.put("AAPL", _quote())
    clock.advance(200)
    cache.put("MSFT", _quote("MSFT"))
    assert cache.has_any_fresh() is True
    clock.advance(200)
    assert cache.has_any_fresh() is True
    clock.advance(200)
    assert cache.has_any_fresh() is False


def test_metrics_and_fresh_count(cache, clock):
    cache.put("AAPL", _quote())
    clock.advance(400)
    cache.put("MSFT", _quote("MSFT"))
    assert cache.metrics() == {"size": 2, "fresh": 1, "stale": 1}
    assert cache.fresh_count(["AAPL", "MSFT", "TSLA"]) == 1


def test_entry_expiry_is_strictly_greater_than_ttl():
    entry = CacheEntry(quote=_quote(), captured_at=100.0)
    assert entry.is_expired(60, now=160.0) is False
    assert entry.is_expired(60, now=160.5) is True


def test_missing_symbol():
    cache = QuoteCache(ttl_seconds=1)
    assert cache.get("NOPE") is None
    assert cache.is_fresh("NOPE") is False
