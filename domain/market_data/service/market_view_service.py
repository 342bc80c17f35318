from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from domain.market_data.models.ohlcv_bar import PriceQuote
from domain.market_data.repository.cache_tier import CacheKeys, CacheTier
from domain.market_data.repository.market_data_repository import MarketDataRepository
from domain.market_data.utils.symbols import normalize_symbol
from domain.market_data.utils.time_range import resolve_time_range
from domain.market_data.utils.trading_calendar import last_trading_day, market_now
from infrastructure.logging import get_logger

logger = get_logger(__name__)


class MarketViewService:
    """
    조회 계층이 사용하는 읽기 전용 서비스.
    캐시를 먼저 보고, 미스(또는 캐시 장애)면 저장소에서 직접 읽습니다.
    """

    def __init__(self, repository: MarketDataRepository, cache: CacheTier,
                 timezone_name: str = "America/New_York",
                 clock: Optional[Callable[[], datetime]] = None):
        self.repository = repository
        self.cache = cache
        self.timezone_name = timezone_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_latest_price(self, symbol: str) -> Optional[Dict[str, Any]]:
        symbol = normalize_symbol(symbol)
        cached = self.cache.get(CacheKeys.latest_price(symbol))
        if cached is not None:
            return cached

        today = market_now(self.timezone_name, self._clock()).date()
        latest = self.repository.get_latest_close(symbol)
        if latest is None:
            return None
        previous = self.repository.get_latest_close(symbol, before=today)
        logger.debug(f"Latest price cache miss for {symbol}, served from store")
        return PriceQuote.from_prices(symbol, latest, previous, timestamp=self._clock()).to_cache_dict()

    def get_intraday_series(self, symbol: str, day: Optional[date] = None) -> List[Dict[str, Any]]:
        symbol = normalize_symbol(symbol)
        day = day or last_trading_day(self._clock(), self.timezone_name)
        cached = self.cache.get(CacheKeys.hourly_data(symbol, day))
        if cached is not None:
            return cached

        bars = self.repository.query_range(symbol, day, day, include_daily=False)
        return [bar.to_cache_dict() for bar in bars]

    def get_daily_series(self, symbol: str, time_range: str = "1M",
                         now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        기간 키에 해당하는 일봉. 오늘 일봉이 아직 저장소에 없으면 캐시에 있는 오늘 일봉을 덧붙입니다.
        """
        symbol = normalize_symbol(symbol)
        today = market_now(self.timezone_name, now or self._clock()).date()
        start, end = resolve_time_range(time_range, now=today)
        series = [bar.to_cache_dict() for bar in self.repository.query_range(symbol, start, end, include_intraday=False)]

        if not series or series[-1]['date'] != today.isoformat():
            cached_today = self.cache.get(CacheKeys.daily_data(symbol, today))
            if cached_today is not None:
                series.append(cached_today)
        return series
