"""Process configuration package."""
from .settings import PipelineSettings, IngestionMode, EquityFallback, load_settings

__all__ = [
    'PipelineSettings',
    'IngestionMode',
    'EquityFallback',
    'load_settings',
]
