# tests/conftest.py

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
import redis
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from domain.market_data.models.ohlcv_bar import OhlcvBar, PriceQuote
from domain.market_data.source.base_source import MarketDataSource
from infrastructure.cache.redis_cache import RedisCacheTier
from infrastructure.db.db_manager import Database
from infrastructure.db.repository.sql_market_data_repository import SQLMarketDataRepository

# 로깅 레벨 조정 (테스트 중 출력 최소화)
logging.getLogger().setLevel(logging.WARNING)


class FakeClock:
    """sleep 호출 시 시간이 흐르는 가짜 시계"""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class InMemoryRedis:
    """테스트용 Redis 대역. fail=True 이면 연결 오류를 발생시킵니다."""

    def __init__(self, fail: bool = False):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("Connection refused")

    def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    def get(self, key):
        self._check()
        return self.store.get(key)

    def ping(self):
        self._check()
        return True


class StubSource(MarketDataSource):
    """심볼별 동작을 지정할 수 있는 소스. errors 에 있는 심볼은 해당 예외를 발생시킵니다."""

    name = "stub"

    def __init__(self, errors: Optional[Dict[str, Exception]] = None, empty: Optional[List[str]] = None,
                 max_days: Optional[int] = None, price: float = 100.0):
        self.errors = errors or {}
        self.empty = set(empty or [])
        self.max_days = max_days
        self.price = price
        self.daily_calls = []

    def max_request_days(self, symbol):
        return self.max_days

    def _maybe_fail(self, symbol):
        if symbol in self.errors:
            raise self.errors[symbol]

    def fetch_daily_bars(self, symbol, start, end):
        self.daily_calls.append((symbol, start, end))
        self._maybe_fail(symbol)
        if symbol in self.empty:
            return []
        bars = []
        day = start
        while day <= end:
            bars.append(OhlcvBar(symbol=symbol, date=day, open=self.price, high=self.price + 1,
                                 low=self.price - 1, close=self.price, volume=1000))
            day += timedelta(days=1)
        return bars

    def fetch_intraday_bars(self, symbol, day, daily_anchor=None):
        self._maybe_fail(symbol)
        if symbol in self.empty:
            return []
        base = datetime(day.year, day.month, day.day, 14, tzinfo=timezone.utc)
        return [
            OhlcvBar(symbol=symbol, date=day, timestamp=base + timedelta(hours=i),
                     open=self.price, high=self.price + 1, low=self.price - 1, close=self.price, volume=10)
            for i in range(3)
        ]

    def fetch_latest_quote(self, symbol, previous_close=None):
        self._maybe_fail(symbol)
        if symbol in self.empty:
            return None
        return PriceQuote.from_prices(symbol, self.price, previous_close or self.price - 2,
                                      timestamp=datetime(2024, 5, 15, 15, tzinfo=timezone.utc))


@pytest.fixture
def database():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db = Database(engine=engine)
    db.create_all()
    yield db
    engine.dispose()


@pytest.fixture
def repository(database):
    return SQLMarketDataRepository(database)


@pytest.fixture
def redis_double():
    return InMemoryRedis()


@pytest.fixture
def cache(redis_double):
    return RedisCacheTier(redis_double)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def trading_day():
    return date(2024, 5, 15)  # 수요일
