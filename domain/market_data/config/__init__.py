"""Static market data configuration."""
from .settings import (
    TIME_RANGES,
    OHLCV_COLLECTION,
    PROVIDERS,
    CACHE_TTL_SECONDS,
    CACHE_KEYS,
    COINGECKO_IDS,
    NON_CRYPTO_MARKERS,
    SYNTHETIC_DATA,
)

__all__ = [
    'TIME_RANGES',
    'OHLCV_COLLECTION',
    'PROVIDERS',
    'CACHE_TTL_SECONDS',
    'CACHE_KEYS',
    'COINGECKO_IDS',
    'NON_CRYPTO_MARKERS',
    'SYNTHETIC_DATA',
]
