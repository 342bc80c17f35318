"""CoinGecko client."""
from .coingecko_client import CoinGeckoClient, spot_series_to_ohlcv

__all__ = [
    'CoinGeckoClient',
    'spot_series_to_ohlcv',
]
