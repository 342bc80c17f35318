import time
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from domain.market_data.config.settings import CACHE_TTL_SECONDS
from domain.market_data.exceptions import ProviderError, StoreError
from domain.market_data.models.job_run import JobType, RefreshSummary
from domain.market_data.repository.cache_tier import CacheKeys, CacheTier
from domain.market_data.repository.market_data_repository import MarketDataRepository
from domain.market_data.source.base_source import MarketDataSource
from domain.market_data.utils.symbols import normalize_symbol
from domain.market_data.utils.trading_calendar import last_trading_day, market_now
from infrastructure.logging import get_logger

logger = get_logger(__name__)


class RealtimeUpdater:
    """
    활성 심볼에 대한 고빈도 갱신.
    - refresh_intraday: 마지막 거래일의 시간봉을 날짜 단위로 교체하고 캐시에 반영
    - refresh_latest_prices: 최신가를 캐시에만 기록 (저장소에는 쓰지 않음)
    """

    def __init__(self, source: MarketDataSource, repository: MarketDataRepository, cache: CacheTier,
                 timezone_name: str = "America/New_York",
                 request_delay_seconds: float = 0.0,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Optional[Callable[[], datetime]] = None):
        self.source = source
        self.repository = repository
        self.cache = cache
        self.timezone_name = timezone_name
        self.request_delay_seconds = request_delay_seconds
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def _symbols(symbols: Iterable[str]) -> List[str]:
        return list(dict.fromkeys(normalize_symbol(s) for s in symbols if s))

    def _record_failure(self, summary: RefreshSummary, symbol: str, error: Exception) -> None:
        if isinstance(error, ProviderError) and error.is_configuration_error:
            summary.skipped += 1
            logger.warning(f"Skipping {symbol}: {error.kind} ({error})")
            return
        summary.errors += 1
        summary.failed_symbols.append(symbol)
        if isinstance(error, (ProviderError, StoreError)):
            logger.error(f"{summary.job_type} refresh failed for {symbol}: {error.kind} ({error})")
        else:
            logger.error(f"Unexpected error during {summary.job_type} refresh for {symbol}: {error}", exc_info=True)

    def _pace(self, index: int, total: int) -> None:
        if self.request_delay_seconds > 0 and index < total - 1:
            self._sleep(self.request_delay_seconds)

    def refresh_intraday(self, symbols: Iterable[str], now: Optional[datetime] = None) -> RefreshSummary:
        now = now or self._clock()
        day = last_trading_day(now, self.timezone_name)
        symbol_list = self._symbols(symbols)
        summary = RefreshSummary(job_type=JobType.HOURLY.value, trading_date=day)
        logger.info(f"Refreshing intraday bars for {len(symbol_list)} symbols (trading day {day})")

        for index, symbol in enumerate(symbol_list):
            try:
                anchor = self.repository.get_daily_bar(symbol, day)
                bars = self.source.fetch_intraday_bars(symbol, day, anchor)
                if not bars:
                    # 기존 시간봉은 그대로 둡니다.
                    logger.info(f"No intraday data for {symbol} on {day}")
                    summary.processed += 1
                    continue

                summary.inserted += self.repository.replace_intraday_for_date(symbol, day, bars)
                summary.processed += 1
                payload = [bar.to_cache_dict() for bar in bars]
                if self.cache.put(CacheKeys.hourly_data(symbol, day), payload, CACHE_TTL_SECONDS["HOURLY_DATA"]):
                    summary.cached += 1
            except Exception as e:
                self._record_failure(summary, symbol, e)
            finally:
                self._pace(index, len(symbol_list))

        logger.info(f"Intraday refresh finished: {summary.to_dict()}")
        return summary

    def _previous_close(self, symbol: str, now: datetime):
        """저장소의 직전 거래일 종가. 조회 실패는 시세 갱신을 막지 않습니다."""
        try:
            return self.repository.get_latest_close(symbol, before=market_now(self.timezone_name, now).date())
        except Exception as e:
            logger.debug(f"Previous close lookup failed for {symbol}: {e}")
            return None

    def refresh_latest_prices(self, symbols: Iterable[str], now: Optional[datetime] = None) -> RefreshSummary:
        now = now or self._clock()
        symbol_list = self._symbols(symbols)
        summary = RefreshSummary(job_type=JobType.LATEST_PRICE.value,
                                 trading_date=last_trading_day(now, self.timezone_name))
        logger.info(f"Refreshing latest prices for {len(symbol_list)} symbols")

        for index, symbol in enumerate(symbol_list):
            try:
                quote = self.source.fetch_latest_quote(symbol, self._previous_close(symbol, now))
                if quote is None:
                    summary.skipped += 1
                    logger.warning(f"No quote available for {symbol}")
                    continue

                summary.processed += 1
                if self.cache.put(CacheKeys.latest_price(symbol), quote.to_cache_dict(),
                                  CACHE_TTL_SECONDS["LATEST_PRICE"]):
                    summary.cached += 1
            except Exception as e:
                self._record_failure(summary, symbol, e)
            finally:
                self._pace(index, len(symbol_list))

        logger.info(f"Latest price refresh finished: {summary.to_dict()}")
        return summary
