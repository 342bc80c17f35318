"""Scheduler package for managing background jobs."""
from . import settings
from .scheduler_manager import MarketDataScheduler, SchedulerState, print_scheduled_jobs

__all__ = [
    'settings',
    'MarketDataScheduler',
    'SchedulerState',
    'print_scheduled_jobs',
]
