"""Market data domain models."""

from .ohlcv_bar import OhlcvBar, PriceQuote, to_price, PRICE_QUANTUM
from .job_run import JobType, JobRun, IngestionSummary, RefreshSummary

__all__ = [
    'OhlcvBar',
    'PriceQuote',
    'to_price',
    'PRICE_QUANTUM',
    'JobType',
    'JobRun',
    'IngestionSummary',
    'RefreshSummary',
]
