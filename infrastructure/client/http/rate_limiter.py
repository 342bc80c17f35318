import threading
import time
from typing import Callable, Dict, Optional

from domain.market_data.config.settings import PROVIDERS
from infrastructure.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Provider 별 최소 요청 간격을 보장하는 공유 페이싱 시계.

    과거 데이터 작업과 실시간 작업이 같은 인스턴스를 공유해야 합쳐진 트래픽이 한도를 넘지 않습니다.
    다음 요청 슬롯은 락 안에서 예약하고, 실제 대기는 락 밖에서 수행합니다.
    """

    def __init__(self, provider_settings: Optional[Dict[str, Dict]] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.provider_settings = provider_settings or PROVIDERS
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot: Dict[str, float] = {}

    def min_interval(self, provider_id: str) -> float:
        return float(self.provider_settings.get(provider_id, {}).get("MIN_INTERVAL_SECONDS", 0.0))

    def acquire(self, provider_id: str) -> float:
        """요청 가능한 시점까지 대기하고, 대기한 시간(초)을 반환합니다."""
        interval = self.min_interval(provider_id)
        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot.get(provider_id, now))
            self._next_slot[provider_id] = slot + interval
            wait = slot - now

        if wait > 0:
            logger.debug(f"Pacing {provider_id}: waiting {wait:.2f}s")
            self._sleep(wait)
        return wait

    def penalize(self, provider_id: str, seconds: float) -> None:
        """429/5xx 쿨다운 동안 같은 Provider 의 다른 호출도 대기하도록 다음 슬롯을 미룹니다."""
        with self._lock:
            resume_at = self._clock() + seconds
            if resume_at > self._next_slot.get(provider_id, 0.0):
                self._next_slot[provider_id] = resume_at
