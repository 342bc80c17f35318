"""
과거 일봉 데이터 배치 수집 엔진.

심볼 목록과 기간 키를 받아 기간을 날짜 구간으로 바꾸고, 소스가 허용하는 최대 기간 단위로 나눠
가져온 뒤 저장소에 upsert 합니다. 심볼 하나의 실패는 집계만 하고 실행 전체를 멈추지 않습니다.
"""
import time
from datetime import date, datetime, timezone
from typing import Callable, Iterable, List, Optional, Union

from domain.market_data.config.settings import CACHE_TTL_SECONDS, OHLCV_COLLECTION
from domain.market_data.exceptions import ProviderError, StoreError
from domain.market_data.models.job_run import IngestionSummary
from domain.market_data.models.ohlcv_bar import OhlcvBar
from domain.market_data.repository.cache_tier import CacheKeys, CacheTier
from domain.market_data.repository.market_data_repository import MarketDataRepository, UpsertResult
from domain.market_data.source.base_source import MarketDataSource
from domain.market_data.utils.symbols import normalize_symbol
from domain.market_data.utils.time_range import chunk_date_range, resolve_time_range
from domain.market_data.utils.trading_calendar import market_now
from infrastructure.logging import get_logger

logger = get_logger(__name__)


class HistoricalIngestionEngine:

    def __init__(self, source: MarketDataSource, repository: MarketDataRepository,
                 cache: Optional[CacheTier] = None,
                 batch_size: int = 50,
                 batch_delay_seconds: float = 0.2,
                 max_lookback_years: Optional[int] = None,
                 timezone_name: str = "America/New_York",
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Optional[Callable[[], datetime]] = None):
        self.source = source
        self.repository = repository
        self.cache = cache
        self.batch_size = max(1, batch_size)
        self.batch_delay_seconds = batch_delay_seconds
        self.max_lookback_years = max_lookback_years or OHLCV_COLLECTION["HISTORICAL"]["MAX_LOOKBACK_YEARS"]
        self.timezone_name = timezone_name
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _market_today(self, now: Optional[Union[date, datetime]]) -> date:
        if now is None:
            now = self._clock()
        if isinstance(now, datetime):
            return market_now(self.timezone_name, now).date()
        return now

    def run(self, symbols: Iterable[str], time_range: str,
            now: Optional[Union[date, datetime]] = None) -> IngestionSummary:
        """
        Args:
            symbols: 수집 대상 심볼
            time_range: '7D' | '1M' | '3M' | '6M' | 'YTD' | '1Y' | '3Y' | '5Y' | 'MAX'
            now: 기준 시각 (기본값: 현재 시각, 시장 타임존 기준 날짜로 변환)

        Returns:
            IngestionSummary
        """
        today = self._market_today(now)
        start, end = resolve_time_range(time_range, now=today, max_lookback_years=self.max_lookback_years)
        symbol_list = self._dedupe(symbols)
        summary = IngestionSummary(time_range=str(time_range).upper(), start_date=start, end_date=end)

        logger.info(f"Historical ingestion {summary.time_range} ({start} ~ {end}) "
                    f"for {len(symbol_list)} symbols via {self.source.name} source")

        for i in range(0, len(symbol_list), self.batch_size):
            batch = symbol_list[i:i + self.batch_size]
            for symbol in batch:
                self._ingest_symbol(symbol, start, end, today, summary)

            done = min(i + self.batch_size, len(symbol_list))
            logger.info(f"Progress: {done}/{len(symbol_list)} symbols processed "
                        f"(inserted={summary.total_inserted}, errors={summary.errors}, skipped={summary.skipped})")
            if done < len(symbol_list) and self.batch_delay_seconds > 0:
                self._sleep(self.batch_delay_seconds)

        logger.info(f"Historical ingestion finished: {summary.to_dict()}")
        return summary

    @staticmethod
    def _dedupe(symbols: Iterable[str]) -> List[str]:
        seen = set()
        ordered = []
        for symbol in symbols:
            symbol = normalize_symbol(symbol)
            if symbol and symbol not in seen:
                seen.add(symbol)
                ordered.append(symbol)
        return ordered

    def _ingest_symbol(self, symbol: str, start: date, end: date, today: date, summary: IngestionSummary) -> None:
        try:
            result = UpsertResult()
            today_bar: Optional[OhlcvBar] = None
            for chunk_start, chunk_end in chunk_date_range(start, end, self.source.max_request_days(symbol)):
                bars = self.source.fetch_daily_bars(symbol, chunk_start, chunk_end)
                if not bars:
                    continue
                result += self.repository.upsert_bars(symbol, bars)
                for bar in bars:
                    if bar.date == today and not bar.is_intraday:
                        today_bar = bar
        except ProviderError as e:
            if e.is_configuration_error:
                summary.skipped += 1
                logger.warning(f"Skipping {symbol}: {e.kind} ({e})")
            else:
                summary.errors += 1
                summary.failed_symbols.append(symbol)
                logger.error(f"Failed to ingest {symbol}: {e.kind} ({e})")
            return
        except StoreError as e:
            summary.errors += 1
            summary.failed_symbols.append(symbol)
            logger.error(f"Failed to store {symbol}: {e}")
            return
        except Exception as e:
            summary.errors += 1
            summary.failed_symbols.append(symbol)
            logger.error(f"Unexpected error while ingesting {symbol}: {e}", exc_info=True)
            return

        summary.processed += 1
        summary.total_inserted += result.inserted
        summary.total_updated += result.updated
        summary.records_by_symbol[symbol] = result.total
        if result.total == 0:
            logger.info(f"No data returned for {symbol} in {start} ~ {end}")

        if today_bar is not None and self.cache is not None:
            self.cache.put(CacheKeys.daily_data(symbol, today), today_bar.to_cache_dict(),
                           CACHE_TTL_SECONDS["DAILY_DATA"])
