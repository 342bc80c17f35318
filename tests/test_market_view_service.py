# tests/test_market_view_service.py

from datetime import date, datetime, timedelta, timezone

import pytest

from domain.market_data.models.ohlcv_bar import OhlcvBar
from domain.market_data.repository.cache_tier import CacheKeys
from domain.market_data.service.market_view_service import MarketViewService

NOW = datetime(2024, 5, 15, 18, tzinfo=timezone.utc)
TODAY = date(2024, 5, 15)


def _daily(day, close):
    return OhlcvBar(symbol="AAPL", date=day, open=close, high=close + 1, low=close - 1, close=close, volume=100)


@pytest.fixture
def view(repository, cache):
    return MarketViewService(repository, cache, clock=lambda: NOW)


def test_latest_price_prefers_cache(view, cache):
    cache.put(CacheKeys.latest_price("AAPL"), {'symbol': "AAPL", 'price': 199.0}, 60)
    assert view.get_latest_price("aapl")['price'] == 199.0


def test_latest_price_falls_back_to_store(view, repository):
    repository.upsert_bars("AAPL", [_daily(TODAY - timedelta(days=1), 150.0), _daily(TODAY, 153.0)])

    latest = view.get_latest_price("AAPL")

    assert latest['price'] == 153.0
    assert latest['previousClose'] == 150.0
    assert latest['change'] == 3.0


def test_latest_price_unknown_symbol(view):
    assert view.get_latest_price("NOPE") is None


def test_intraday_series_from_store_then_cache(view, repository, cache):
    ts = datetime(2024, 5, 15, 14, tzinfo=timezone.utc)
    repository.replace_intraday_for_date("AAPL", TODAY, [
        OhlcvBar(symbol="AAPL", date=TODAY, timestamp=ts, open=1, high=2, low=0.5, close=1.5, volume=10),
    ])

    from_store = view.get_intraday_series("AAPL")
    assert [bar['timestamp'] for bar in from_store] == ["2024-05-15T14:00:00+00:00"]

    cache.put(CacheKeys.hourly_data("AAPL", TODAY), [{'close': 9.0}], 120)
    assert view.get_intraday_series("AAPL", TODAY) == [{'close': 9.0}]


def test_daily_series_appends_cached_today_bar(view, repository, cache):
    repository.upsert_bars("AAPL", [_daily(TODAY - timedelta(days=1), 150.0)])
    cache.put(CacheKeys.daily_data("AAPL", TODAY), _daily(TODAY, 151.0).to_cache_dict(), 3600)

    series = view.get_daily_series("AAPL", "7D")

    assert [bar['date'] for bar in series] == ["2024-05-14", "2024-05-15"]
    assert series[-1]['close'] == 151.0


def test_daily_series_does_not_duplicate_stored_today_bar(view, repository, cache):
    repository.upsert_bars("AAPL", [_daily(TODAY, 150.0)])
    cache.put(CacheKeys.daily_data("AAPL", TODAY), _daily(TODAY, 151.0).to_cache_dict(), 3600)

    series = view.get_daily_series("AAPL", "7D")

    assert len(series) == 1
    assert series[0]['close'] == 150.0
