from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import List, Optional

from domain.market_data.models.ohlcv_bar import OhlcvBar, PriceQuote


class MarketDataSource(ABC):
    """
    OHLCV 데이터 공급원 인터페이스.

    실데이터(LiveMarketDataSource)와 합성 데이터(SyntheticMarketDataSource) 중 하나가
    프로세스 시작 시 한 번 선택되어 엔진에 주입됩니다. 엔진은 어느 쪽인지 알 필요가 없습니다.
    """

    name: str = "base"

    @abstractmethod
    def fetch_daily_bars(self, symbol: str, start: date, end: date) -> List[OhlcvBar]:
        """[start, end] 구간의 일봉을 오래된 순으로 반환합니다. 데이터가 없으면 빈 리스트."""
        pass

    @abstractmethod
    def fetch_intraday_bars(self, symbol: str, day: date,
                            daily_anchor: Optional[OhlcvBar] = None) -> List[OhlcvBar]:
        """
        해당 날짜의 시간봉을 반환합니다.
        daily_anchor 는 저장소에 있는 같은 날짜의 일봉이며, 실데이터 소스는 무시할 수 있습니다.
        """
        pass

    @abstractmethod
    def fetch_latest_quote(self, symbol: str, previous_close: Optional[Decimal] = None) -> Optional[PriceQuote]:
        """
        현재가와 전일 대비 등락을 반환합니다.
        previous_close 는 저장소의 직전 종가이며, Provider 가 전일 종가를 주지 않을 때 사용합니다.
        """
        pass

    def max_request_days(self, symbol: str) -> Optional[int]:
        """1회 요청으로 가져올 수 있는 최대 일수. None 이면 구간을 나누지 않습니다."""
        return None
