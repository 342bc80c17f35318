from datetime import date, timedelta
from typing import Dict, Optional

import pandas as pd
import yfinance as yf

from domain.market_data.exceptions import ProviderUnavailableError
from domain.market_data.utils.symbols import to_yahoo_ticker
from infrastructure.client.http.rate_limiter import RateLimiter
from infrastructure.logging import get_logger

logger = get_logger(__name__)

PROVIDER_ID = "yahoo"
REQUIRED_COLUMNS = ['Open', 'High', 'Low', 'Close', 'Volume']


def normalize_download(df_raw: pd.DataFrame, ticker: str) -> pd.DataFrame:
    """
    yf.download 결과를 UTC 인덱스의 OHLCV DataFrame 으로 정규화합니다.
    티커가 응답에 없거나 유효한 행이 없으면 빈 DataFrame 을 반환합니다.
    """
    if df_raw is None or df_raw.empty:
        return pd.DataFrame(columns=REQUIRED_COLUMNS)

    # group_by='ticker' 는 항상 (티커, 컬럼) 멀티인덱스를 반환
    if isinstance(df_raw.columns, pd.MultiIndex):
        if ticker not in df_raw.columns.get_level_values(0):
            logger.warning(f"Ticker '{ticker}' not found in yfinance response.")
            return pd.DataFrame(columns=REQUIRED_COLUMNS)
        df_symbol = df_raw[ticker].copy()
    else:
        df_symbol = df_raw.copy()

    df_symbol.dropna(how='all', inplace=True)
    if df_symbol.empty:
        return pd.DataFrame(columns=REQUIRED_COLUMNS)

    # 컬럼명 정규화 및 타임존 통일
    df_symbol.columns = [str(col).capitalize() for col in df_symbol.columns]
    if not all(col in df_symbol.columns for col in REQUIRED_COLUMNS):
        logger.error(f"Missing required columns for {ticker}. Available: {df_symbol.columns.tolist()}")
        return pd.DataFrame(columns=REQUIRED_COLUMNS)

    # 타임존이 없으면 UTC로 설정, 있으면 UTC로 변환
    if df_symbol.index.tz is None:
        df_symbol.index = df_symbol.index.tz_localize('UTC')
    else:
        df_symbol.index = df_symbol.index.tz_convert('UTC')

    df_symbol = df_symbol[REQUIRED_COLUMNS].dropna(subset=['Open', 'High', 'Low', 'Close'])
    df_symbol['Volume'] = df_symbol['Volume'].fillna(0)
    return df_symbol


class YahooFinanceClient:
    """
    주식/ETF 데이터의 보조(fallback) Provider.
    yfinance 는 자체 HTTP 세션을 사용하므로 요청 간격만 공유 RateLimiter 로 맞춥니다.
    """

    def __init__(self, rate_limiter: RateLimiter):
        self.rate_limiter = rate_limiter

    def _download(self, symbol: str, **kwargs) -> pd.DataFrame:
        ticker = to_yahoo_ticker(symbol)
        self.rate_limiter.acquire(PROVIDER_ID)
        logger.info(f"Fetching {kwargs.get('interval')} OHLCV for {ticker} from Yahoo Finance...")
        try:
            df_raw = yf.download(
                tickers=[ticker],
                progress=False,
                auto_adjust=False,
                group_by='ticker',
                **kwargs,
            )
        except Exception as e:
            raise ProviderUnavailableError(f"yfinance download failed: {e}",
                                           provider_id=PROVIDER_ID, symbol=symbol) from e
        return normalize_download(df_raw, ticker)

    def get_daily_history(self, symbol: str, start: date, end: date) -> pd.DataFrame:
        # yfinance 의 end 는 배타적
        return self._download(symbol, start=start.isoformat(),
                              end=(end + timedelta(days=1)).isoformat(), interval='1d')

    def get_hourly_history(self, symbol: str, day: date) -> pd.DataFrame:
        return self._download(symbol, start=day.isoformat(),
                              end=(day + timedelta(days=1)).isoformat(), interval='1h')

    def get_latest_price(self, symbol: str) -> Dict[str, Optional[float]]:
        ticker = to_yahoo_ticker(symbol)
        self.rate_limiter.acquire(PROVIDER_ID)
        try:
            info = yf.Ticker(ticker).fast_info
            price = info['lastPrice']
            previous_close = info['previousClose']
        except Exception as e:
            raise ProviderUnavailableError(f"yfinance quote failed: {e}",
                                           provider_id=PROVIDER_ID, symbol=symbol) from e
        if price is None or pd.isna(price):
            raise ProviderUnavailableError("yfinance returned no price", provider_id=PROVIDER_ID, symbol=symbol)
        return {
            'price': float(price),
            'previous_close': float(previous_close) if previous_close is not None and not pd.isna(previous_close) else None,
        }
