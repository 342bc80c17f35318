"""Market data utilities."""
from .symbols import (
    normalize_symbol,
    is_crypto_symbol,
    is_index_symbol,
    get_coingecko_id,
    to_polygon_ticker,
    to_yahoo_ticker,
)
from .time_range import resolve_time_range, chunk_date_range
from .trading_calendar import market_now, is_weekend, last_trading_day

__all__ = [
    'normalize_symbol',
    'is_crypto_symbol',
    'is_index_symbol',
    'get_coingecko_id',
    'to_polygon_ticker',
    'to_yahoo_ticker',
    'resolve_time_range',
    'chunk_date_range',
    'market_now',
    'is_weekend',
    'last_trading_day',
]
