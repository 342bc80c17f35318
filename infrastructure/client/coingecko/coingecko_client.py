"""
CoinGecko 암호화폐 클라이언트.

CoinGecko 의 market_chart 는 현물가(spot) 시계열만 제공하므로,
일봉/시간봉은 구간별 마지막 가격을 종가로, 직전 종가를 시가로 두고
고가/저가는 종가 주변의 좁은 밴드로 보정합니다.
"""
from datetime import datetime
from typing import Dict, Optional

import pandas as pd

from domain.market_data.config.settings import OHLCV_COLLECTION
from domain.market_data.exceptions import BadRequestError, MappingMissingError
from domain.market_data.utils.symbols import get_coingecko_id
from infrastructure.client.http.provider_client import ProviderRequest, RateLimitedProviderClient
from infrastructure.logging import get_logger

logger = get_logger(__name__)

PROVIDER_ID = "coingecko"
REQUIRED_COLUMNS = ['Open', 'High', 'Low', 'Close', 'Volume']


def spot_series_to_ohlcv(payload: Dict, rule: str, band: float) -> pd.DataFrame:
    """
    market_chart 응답(prices, total_volumes)을 rule('1D', '1h') 간격의 OHLCV 로 변환합니다.
    """
    prices = (payload or {}).get('prices') or []
    if not prices:
        return pd.DataFrame(columns=REQUIRED_COLUMNS)

    spot = pd.DataFrame(prices, columns=['Timestamp', 'Price'])
    spot.index = pd.to_datetime(spot['Timestamp'], unit='ms', utc=True)
    spot = spot['Price'].astype(float).dropna()

    grouped = spot.resample(rule)
    df = pd.DataFrame({
        'Close': grouped.last(),
        'SpotHigh': grouped.max(),
        'SpotLow': grouped.min(),
    }).dropna()
    if df.empty:
        return pd.DataFrame(columns=REQUIRED_COLUMNS)

    df['Open'] = df['Close'].shift(1).fillna(spot.iloc[0])
    upper = df[['Open', 'Close', 'SpotHigh']].max(axis=1)
    lower = df[['Open', 'Close', 'SpotLow']].min(axis=1)
    df['High'] = upper * (1 + band)
    df['Low'] = lower * (1 - band)

    volumes = (payload or {}).get('total_volumes') or []
    if volumes:
        vol = pd.DataFrame(volumes, columns=['Timestamp', 'Volume'])
        vol.index = pd.to_datetime(vol['Timestamp'], unit='ms', utc=True)
        df['Volume'] = vol['Volume'].astype(float).resample(rule).last().reindex(df.index).fillna(0)
    else:
        df['Volume'] = 0

    return df[REQUIRED_COLUMNS]


class CoinGeckoClient:

    def __init__(self, http_client: RateLimitedProviderClient, api_key: Optional[str] = None,
                 spot_band: Optional[float] = None):
        self.http = http_client
        self.api_key = api_key
        self.spot_band = spot_band if spot_band is not None else OHLCV_COLLECTION["INTRADAY"]["CRYPTO_SPOT_BAND"]

    def coin_id(self, symbol: str) -> str:
        coin_id = get_coingecko_id(symbol)
        if not coin_id:
            raise MappingMissingError("No CoinGecko ID mapping", provider_id=PROVIDER_ID, symbol=symbol)
        return coin_id

    def _request(self, path: str, symbol: str, **params) -> ProviderRequest:
        headers = {'x-cg-demo-api-key': self.api_key} if self.api_key else {}
        return ProviderRequest(path=path, params=params, headers=headers, symbol=symbol)

    def _market_chart(self, symbol: str, start: datetime, end: datetime) -> Dict:
        coin_id = self.coin_id(symbol)
        request = self._request(
            f"/coins/{coin_id}/market_chart/range", symbol,
            vs_currency='usd', **{'from': int(start.timestamp()), 'to': int(end.timestamp())},
        )
        return self.http.fetch(PROVIDER_ID, request)

    def get_daily_prices(self, symbol: str, start: datetime, end: datetime) -> pd.DataFrame:
        df = spot_series_to_ohlcv(self._market_chart(symbol, start, end), '1D', self.spot_band)
        logger.debug(f"CoinGecko returned {len(df)} daily rows for {symbol}")
        return df

    def get_hourly_prices(self, symbol: str, start: datetime, end: datetime) -> pd.DataFrame:
        return spot_series_to_ohlcv(self._market_chart(symbol, start, end), '1h', self.spot_band)

    def get_latest_price(self, symbol: str) -> Dict[str, Optional[float]]:
        """현재가와 24시간 등락률로 역산한 기준가를 반환합니다."""
        coin_id = self.coin_id(symbol)
        payload = self.http.fetch(PROVIDER_ID, self._request(
            "/simple/price", symbol, ids=coin_id, vs_currencies='usd', include_24hr_change='true'
        ))
        data = (payload or {}).get(coin_id) or {}
        price = data.get('usd')
        if not price:
            raise BadRequestError("Simple price payload has no usd price", provider_id=PROVIDER_ID, symbol=symbol)

        change_percent = data.get('usd_24h_change')
        previous_close = None
        if change_percent is not None and change_percent > -100:
            previous_close = float(price) / (1 + float(change_percent) / 100)
        return {'price': float(price), 'previous_close': previous_close}
