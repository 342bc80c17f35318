"""Database infrastructure package"""

from .db_manager import Base, Database
from .models import (
    DailyBar,
    IntradayBar,
    AssetInfo,
    WatchlistEntry,
)

__all__ = [
    'Base',
    'Database',
    'DailyBar',
    'IntradayBar',
    'AssetInfo',
    'WatchlistEntry',
]
