from datetime import date
from typing import Dict, Optional

import pandas as pd

from domain.market_data.exceptions import BadRequestError
from domain.market_data.utils.symbols import is_index_symbol, to_polygon_ticker
from infrastructure.client.http.provider_client import ProviderRequest, RateLimitedProviderClient
from infrastructure.logging import get_logger

logger = get_logger(__name__)

PROVIDER_ID = "polygon"
REQUIRED_COLUMNS = ['Open', 'High', 'Low', 'Close', 'Volume']
# Polygon aggregates 응답 필드 -> 정규화 컬럼
AGGREGATE_COLUMNS = {'t': 'Timestamp', 'o': 'Open', 'h': 'High', 'l': 'Low', 'c': 'Close', 'v': 'Volume'}


def aggregates_to_frame(payload: Dict, ticker: str) -> pd.DataFrame:
    """
    Polygon aggregates 응답을 UTC 인덱스의 OHLCV DataFrame 으로 변환합니다.
    결과가 없으면 빈 DataFrame 을 반환합니다 (신규 상장 종목 등).
    """
    results = (payload or {}).get('results') or []
    if not results:
        return pd.DataFrame(columns=REQUIRED_COLUMNS)

    df = pd.DataFrame(results).rename(columns=AGGREGATE_COLUMNS)
    missing = [col for col in ['Timestamp'] + REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise BadRequestError(f"Aggregates payload missing columns {missing}",
                              provider_id=PROVIDER_ID, symbol=ticker)

    df.index = pd.to_datetime(df['Timestamp'], unit='ms', utc=True)
    df = df[REQUIRED_COLUMNS].dropna(subset=['Open', 'High', 'Low', 'Close'])
    df['Volume'] = df['Volume'].fillna(0)
    return df.sort_index()


class PolygonClient:
    """Polygon.io 주식/ETF/지수 데이터 클라이언트"""

    def __init__(self, http_client: RateLimitedProviderClient, api_key: str):
        self.http = http_client
        self.api_key = api_key

    def _request(self, path: str, symbol: str, **params) -> ProviderRequest:
        params['apiKey'] = self.api_key
        return ProviderRequest(path=path, params=params, symbol=symbol)

    def get_daily_aggregates(self, symbol: str, start: date, end: date) -> pd.DataFrame:
        ticker = to_polygon_ticker(symbol)
        path = f"/v2/aggs/ticker/{ticker}/range/1/day/{start.isoformat()}/{end.isoformat()}"
        payload = self.http.fetch(PROVIDER_ID, self._request(path, symbol, adjusted='true', sort='asc', limit=50000))
        df = aggregates_to_frame(payload, ticker)
        logger.debug(f"Polygon returned {len(df)} daily rows for {ticker} ({start} ~ {end})")
        return df

    def get_hourly_aggregates(self, symbol: str, day: date) -> pd.DataFrame:
        ticker = to_polygon_ticker(symbol)
        path = f"/v2/aggs/ticker/{ticker}/range/1/hour/{day.isoformat()}/{day.isoformat()}"
        payload = self.http.fetch(PROVIDER_ID, self._request(path, symbol, adjusted='true', sort='asc'))
        return aggregates_to_frame(payload, ticker)

    def get_latest_price(self, symbol: str) -> Dict[str, Optional[float]]:
        """
        현재가와 전일 종가를 반환합니다.
        주식/ETF 는 snapshot, 지수는 직전 거래일 집계(prev)를 사용하며 이 경우 전일 종가는 None 입니다.
        """
        ticker = to_polygon_ticker(symbol)
        if is_index_symbol(symbol):
            payload = self.http.fetch(PROVIDER_ID, self._request(f"/v2/aggs/ticker/{ticker}/prev", symbol))
            results = (payload or {}).get('results') or []
            if not results or results[0].get('c') is None:
                raise BadRequestError("Previous close payload is empty", provider_id=PROVIDER_ID, symbol=symbol)
            return {'price': float(results[0]['c']), 'previous_close': None}

        path = f"/v2/snapshot/locale/us/markets/stocks/tickers/{ticker}"
        payload = self.http.fetch(PROVIDER_ID, self._request(path, symbol))
        snapshot = (payload or {}).get('ticker') or {}
        price = ((snapshot.get('lastTrade') or {}).get('p')
                 or (snapshot.get('min') or {}).get('c')
                 or (snapshot.get('day') or {}).get('c'))
        if not price:
            raise BadRequestError("Snapshot payload has no price", provider_id=PROVIDER_ID, symbol=symbol)
        previous_close = (snapshot.get('prevDay') or {}).get('c')
        return {'price': float(price), 'previous_close': float(previous_close) if previous_close else None}
