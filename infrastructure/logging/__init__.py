"""Logging infrastructure package."""
from .logger_config import setup_logging, get_logger

__all__ = [
    'setup_logging',
    'get_logger',
]
