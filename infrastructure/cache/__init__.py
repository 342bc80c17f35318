"""Cache tier adapters."""
from .redis_cache import RedisCacheTier, create_redis_client

__all__ = [
    'RedisCacheTier',
    'create_redis_client',
]
