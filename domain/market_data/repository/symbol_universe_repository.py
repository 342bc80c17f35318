from abc import ABC, abstractmethod
from typing import List


class SymbolUniverseRepository(ABC):
    """파이프라인이 담당하는 심볼 집합을 조회하는 인터페이스"""

    @abstractmethod
    def get_all_symbols(self) -> List[str]:
        """메타데이터가 등록된 모든 심볼 (과거 데이터 백필 대상)"""
        pass

    @abstractmethod
    def get_active_symbols(self, limit: int = 100) -> List[str]:
        """관심종목에 등록된 심볼 + 시가총액 상위 limit 개 (실시간 갱신 대상)"""
        pass
