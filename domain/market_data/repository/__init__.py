"""Market data repository interfaces."""
from .market_data_repository import MarketDataRepository, UpsertResult
from .symbol_universe_repository import SymbolUniverseRepository
from .cache_tier import CacheTier, CacheKeys

__all__ = [
    'MarketDataRepository',
    'UpsertResult',
    'SymbolUniverseRepository',
    'CacheTier',
    'CacheKeys',
]
