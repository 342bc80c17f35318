"""SQLAlchemy repository implementations."""
from .sql_market_data_repository import SQLMarketDataRepository
from .sql_symbol_universe_repository import SQLSymbolUniverseRepository

__all__ = [
    'SQLMarketDataRepository',
    'SQLSymbolUniverseRepository',
]
