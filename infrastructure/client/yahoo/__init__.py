"""Yahoo Finance client."""
from .yahoo_client import YahooFinanceClient, normalize_download

__all__ = [
    'YahooFinanceClient',
    'normalize_download',
]
