"""Market data sources (live providers and synthetic generator)."""
from .base_source import MarketDataSource
from .synthetic_generator import SyntheticDataGenerator
from .synthetic_source import SyntheticMarketDataSource
from .live_source import LiveMarketDataSource
from .factory import build_market_data_source

__all__ = [
    'MarketDataSource',
    'SyntheticDataGenerator',
    'SyntheticMarketDataSource',
    'LiveMarketDataSource',
    'build_market_data_source',
]
