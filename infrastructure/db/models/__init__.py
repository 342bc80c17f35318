"""Database models package"""

from .daily_bar import DailyBar
from .intraday_bar import IntradayBar
from .asset_info import AssetInfo
from .watchlist import WatchlistEntry

__all__ = [
    'DailyBar',
    'IntradayBar',
    'AssetInfo',
    'WatchlistEntry',
]
