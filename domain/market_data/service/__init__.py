"""Market data services."""
from .historical_ingestion_service import HistoricalIngestionEngine
from .realtime_update_service import RealtimeUpdater
from .market_view_service import MarketViewService

__all__ = [
    'HistoricalIngestionEngine',
    'RealtimeUpdater',
    'MarketViewService',
]
