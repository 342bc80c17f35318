"""
Redis 기반 캐시 어댑터.

캐시는 권위 있는 저장소가 아닙니다. Redis 에 연결할 수 없으면 경고만 남기고
쓰기는 False, 읽기는 None(캐시 미스)으로 처리해 호출자가 저장소로 대체하도록 합니다.
"""
import json
from typing import Any, Callable, Optional

import redis

from domain.market_data.exceptions import CacheUnreachableError
from domain.market_data.repository.cache_tier import CacheTier
from infrastructure.logging import get_logger

logger = get_logger(__name__)


def create_redis_client(url: str, timeout_seconds: float = 2.0) -> redis.Redis:
    """연결은 첫 명령 실행 시점에 맺어지므로, Redis 가 내려가 있어도 생성 자체는 실패하지 않습니다."""
    return redis.Redis.from_url(
        url,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
        decode_responses=True,
    )


class RedisCacheTier(CacheTier):

    def __init__(self, client: redis.Redis):
        self.client = client

    def _call(self, operation: str, key: str, func: Callable[[], Any]) -> Any:
        try:
            return func()
        except redis.RedisError as e:
            raise CacheUnreachableError(f"Redis {operation} failed for '{key}': {e}") from e

    def put(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            payload = json.dumps(value, default=str)
            self._call("SETEX", key, lambda: self.client.setex(key, int(ttl_seconds), payload))
            return True
        except CacheUnreachableError as e:
            logger.warning(f"Cache write skipped: {e}")
            return False
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache write skipped, value for '{key}' is not serializable: {e}")
            return False

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self._call("GET", key, lambda: self.client.get(key))
        except CacheUnreachableError as e:
            logger.warning(f"Cache read skipped: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed cache entry for '{key}'")
            return None

    def ping(self) -> bool:
        try:
            return bool(self._call("PING", "-", self.client.ping))
        except CacheUnreachableError as e:
            logger.warning(f"Cache backend unreachable: {e}")
            return False
