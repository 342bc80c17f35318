"""Rate-limited HTTP access to market data providers."""
from .rate_limiter import RateLimiter
from .provider_client import RateLimitedProviderClient, ProviderRequest

__all__ = [
    'RateLimiter',
    'RateLimitedProviderClient',
    'ProviderRequest',
]
