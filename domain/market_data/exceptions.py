"""
시장 데이터 파이프라인의 예외 계층.

호출자는 메시지 문자열이 아니라 예외 타입으로 분기합니다.
- ProviderError: 외부 Provider 호출 실패 (심볼 단위로 격리)
- StoreError: 시계열 저장소 쓰기 실패
- CacheUnreachableError: 캐시 어댑터 내부에서만 사용, 호출자에게 전파되지 않음
"""
from typing import Optional


class MarketDataError(Exception):
    """파이프라인 예외의 최상위 클래스"""


class ProviderError(MarketDataError):
    kind = "provider_error"
    # 같은 실행 안에서 재시도해도 의미가 없는 설정성 오류인지 여부
    is_configuration_error = False

    def __init__(self, message: str, provider_id: Optional[str] = None,
                 symbol: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider_id = provider_id
        self.symbol = symbol
        self.status_code = status_code

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.provider_id:
            parts.append(f"provider={self.provider_id}")
        if self.symbol:
            parts.append(f"symbol={self.symbol}")
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        return " | ".join(parts)


class RateLimitedError(ProviderError):
    """HTTP 429 가 재시도 후에도 반복된 경우"""
    kind = "rate_limited"


class ProviderUnavailableError(ProviderError):
    """5xx, 타임아웃, 연결 실패가 재시도 후에도 반복된 경우"""
    kind = "unavailable"


class BadRequestError(ProviderError):
    """429 를 제외한 4xx 또는 해석할 수 없는 응답. 재시도하지 않습니다."""
    kind = "bad_request"
    is_configuration_error = True


class MappingMissingError(ProviderError):
    """심볼을 Provider 식별자로 변환할 수 없는 경우 (예: CoinGecko ID 없음)"""
    kind = "mapping_missing"
    is_configuration_error = True


class StoreError(MarketDataError):
    kind = "store_error"


class StoreWriteError(StoreError):
    """배치 쓰기 실패. 해당 심볼만 오류로 집계합니다."""
    kind = "write_failed"

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message)
        self.symbol = symbol


class CacheUnreachableError(MarketDataError):
    kind = "cache_unreachable"
