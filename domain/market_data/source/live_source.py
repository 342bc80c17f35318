"""
외부 Provider 를 사용하는 실데이터 소스.

- 'X:...USD' 암호화폐 심볼은 CoinGecko, 그 외(주식/ETF/지수)는 Polygon 으로 라우팅합니다.
- Polygon 이 일시적 오류(RateLimited/Unavailable)로 실패하고 Yahoo 보조 Provider 가 설정되어 있으면
  같은 요청을 Yahoo 로 다시 시도합니다. 보조 Provider 도 실패하면 원래 오류를 그대로 올립니다.
"""
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Callable, List, Optional

import pandas as pd
import pytz

from domain.market_data.config.settings import PROVIDERS
from domain.market_data.exceptions import (
    ProviderError,
    ProviderUnavailableError,
    RateLimitedError,
)
from domain.market_data.models.ohlcv_bar import OhlcvBar, PriceQuote
from domain.market_data.source.base_source import MarketDataSource
from domain.market_data.utils.symbols import is_crypto_symbol, normalize_symbol
from infrastructure.client.coingecko.coingecko_client import CoinGeckoClient
from infrastructure.client.polygon.polygon_client import PolygonClient
from infrastructure.client.yahoo.yahoo_client import YahooFinanceClient
from infrastructure.logging import get_logger

logger = get_logger(__name__)

TRANSIENT_ERRORS = (RateLimitedError, ProviderUnavailableError)


def _bar_date(ts: pd.Timestamp) -> date:
    # 일봉 타임스탬프는 Provider 에 따라 UTC 자정 또는 미국 동부 자정이므로 반나절을 더해 날짜를 구합니다.
    return (ts.tz_convert('UTC') + pd.Timedelta(hours=12)).date()


def frame_to_daily_bars(symbol: str, df: pd.DataFrame, start: date, end: date) -> List[OhlcvBar]:
    bars = []
    for ts, row in df.iterrows():
        day = _bar_date(ts)
        if day < start or day > end:
            continue
        bars.append(OhlcvBar(
            symbol=symbol, date=day,
            open=row['Open'], high=row['High'], low=row['Low'], close=row['Close'],
            volume=int(row['Volume']),
        ))
    return bars


def frame_to_intraday_bars(symbol: str, df: pd.DataFrame, day: date, timezone_name: str) -> List[OhlcvBar]:
    """시장 타임존 기준으로 day 에 속한 행만 시간봉으로 변환합니다."""
    tz = pytz.timezone(timezone_name)
    bars = []
    for ts, row in df.iterrows():
        ts_utc = ts.tz_convert('UTC')
        if ts_utc.tz_convert(tz).date() != day:
            continue
        bars.append(OhlcvBar(
            symbol=symbol, date=day, timestamp=ts_utc.to_pydatetime(),
            open=row['Open'], high=row['High'], low=row['Low'], close=row['Close'],
            volume=int(row['Volume']),
        ))
    return bars


class LiveMarketDataSource(MarketDataSource):

    name = "live"

    def __init__(self, polygon: Optional[PolygonClient], coingecko: CoinGeckoClient,
                 yahoo: Optional[YahooFinanceClient] = None,
                 timezone_name: str = "America/New_York",
                 clock: Optional[Callable[[], datetime]] = None):
        self.polygon = polygon
        self.coingecko = coingecko
        self.yahoo = yahoo
        self.timezone_name = timezone_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def max_request_days(self, symbol: str) -> Optional[int]:
        provider_id = "coingecko" if is_crypto_symbol(symbol) else ("polygon" if self.polygon else "yahoo")
        return PROVIDERS[provider_id].get("MAX_REQUEST_DAYS")

    def _equity_call(self, symbol: str, primary: Callable[[], object], fallback: Callable[[], object]):
        """Polygon 호출 후 일시적 오류면 Yahoo 로 재시도합니다."""
        if self.polygon is None:
            if self.yahoo is None:
                raise ProviderUnavailableError("No equity provider configured", symbol=symbol)
            return fallback()

        try:
            return primary()
        except TRANSIENT_ERRORS as e:
            if self.yahoo is None:
                raise
            logger.warning(f"Polygon failed for {symbol} ({e.kind}), falling back to Yahoo Finance")
            try:
                return fallback()
            except ProviderError as fallback_error:
                logger.warning(f"Yahoo fallback also failed for {symbol}: {fallback_error}")
                raise e from fallback_error

    def fetch_daily_bars(self, symbol: str, start: date, end: date) -> List[OhlcvBar]:
        symbol = normalize_symbol(symbol)
        if is_crypto_symbol(symbol):
            start_dt = datetime.combine(start, time.min, tzinfo=timezone.utc)
            end_dt = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
            df = self.coingecko.get_daily_prices(symbol, start_dt, end_dt)
        else:
            df = self._equity_call(
                symbol,
                lambda: self.polygon.get_daily_aggregates(symbol, start, end),
                lambda: self.yahoo.get_daily_history(symbol, start, end),
            )
        return frame_to_daily_bars(symbol, df, start, end)

    def fetch_intraday_bars(self, symbol: str, day: date,
                            daily_anchor: Optional[OhlcvBar] = None) -> List[OhlcvBar]:
        symbol = normalize_symbol(symbol)
        if is_crypto_symbol(symbol):
            tz = pytz.timezone(self.timezone_name)
            start_dt = tz.localize(datetime.combine(day, time.min))
            end_dt = start_dt + timedelta(days=1)
            df = self.coingecko.get_hourly_prices(symbol, start_dt, end_dt)
        else:
            df = self._equity_call(
                symbol,
                lambda: self.polygon.get_hourly_aggregates(symbol, day),
                lambda: self.yahoo.get_hourly_history(symbol, day),
            )
        return frame_to_intraday_bars(symbol, df, day, self.timezone_name)

    def fetch_latest_quote(self, symbol: str, previous_close: Optional[Decimal] = None) -> Optional[PriceQuote]:
        symbol = normalize_symbol(symbol)
        if is_crypto_symbol(symbol):
            latest = self.coingecko.get_latest_price(symbol)
        else:
            latest = self._equity_call(
                symbol,
                lambda: self.polygon.get_latest_price(symbol),
                lambda: self.yahoo.get_latest_price(symbol),
            )

        reference = latest.get('previous_close')
        if reference is None:
            reference = previous_close
        return PriceQuote.from_prices(symbol, latest['price'], reference, timestamp=self._clock())
