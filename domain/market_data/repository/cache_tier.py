from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional

from domain.market_data.config.settings import CACHE_KEYS


class CacheTier(ABC):
    """
    짧은 TTL 의 키/값 캐시 인터페이스.
    캐시는 권위 있는 저장소가 아니므로 구현체는 연결 실패를 호출자에게 전파하지 않습니다.
    """

    @abstractmethod
    def put(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """저장 성공 여부를 반환합니다. 실패해도 예외를 발생시키지 않습니다."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """캐시 미스 또는 연결 실패 시 None 을 반환합니다."""
        pass


class CacheKeys:
    """캐시 키 네임스페이스"""

    @staticmethod
    def latest_price(symbol: str) -> str:
        return CACHE_KEYS["LATEST_PRICE"].format(symbol=symbol.upper())

    @staticmethod
    def hourly_data(symbol: str, day: date) -> str:
        return CACHE_KEYS["HOURLY_DATA"].format(symbol=symbol.upper(), date=day.isoformat())

    @staticmethod
    def daily_data(symbol: str, day: date) -> str:
        return CACHE_KEYS["DAILY_DATA"].format(symbol=symbol.upper(), date=day.isoformat())
