from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from domain.market_data.models.ohlcv_bar import OhlcvBar


@dataclass
class UpsertResult:
    inserted: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.updated

    def __add__(self, other: "UpsertResult") -> "UpsertResult":
        return UpsertResult(self.inserted + other.inserted, self.updated + other.updated)


class MarketDataRepository(ABC):
    """
    OHLCV 시계열 저장소에 대한 '계약'(추상 인터페이스).
    구현체는 (symbol, date, timestamp) 식별자 기준의 멱등 upsert 를 보장해야 합니다.
    """

    @abstractmethod
    def upsert_bars(self, symbol: str, bars: List[OhlcvBar]) -> UpsertResult:
        """
        식별자 기준으로 병합합니다. 같은 데이터를 다시 넣으면 updated 로 집계될 뿐 상태는 변하지 않습니다.
        쓰기 실패 시 StoreWriteError 를 발생시킵니다.
        """
        pass

    @abstractmethod
    def replace_intraday_for_date(self, symbol: str, day: date, bars: List[OhlcvBar]) -> int:
        """해당 날짜의 기존 시간봉을 모두 지우고 새 시간봉으로 교체합니다. 삽입된 행 수를 반환합니다."""
        pass

    @abstractmethod
    def query_range(self, symbol: str, start: date, end: date,
                    include_daily: bool = True, include_intraday: bool = True) -> List[OhlcvBar]:
        """[start, end] 구간의 봉을 (date, timestamp) 순으로 반환합니다. 일봉이 같은 날짜의 시간봉보다 앞에 옵니다."""
        pass

    @abstractmethod
    def get_daily_bar(self, symbol: str, day: date) -> Optional[OhlcvBar]:
        pass

    @abstractmethod
    def get_latest_close(self, symbol: str, before: Optional[date] = None) -> Optional[Decimal]:
        """가장 최근 일봉 종가. before 가 주어지면 그 날짜 이전에서 찾습니다."""
        pass
