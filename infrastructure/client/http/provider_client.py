"""
외부 시장 데이터 Provider 호출 래퍼.

- 요청 전 RateLimiter 로 Provider 별 간격을 지킵니다.
- 429: 쿨다운 후 1회 재시도, 다시 429 이면 RateLimitedError
- 5xx / 타임아웃 / 연결 실패: 짧은 쿨다운 후 1회 재시도, 반복되면 ProviderUnavailableError
- 그 외 4xx 또는 JSON 이 아닌 응답: 재시도 없이 BadRequestError
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from domain.market_data.config.settings import PROVIDERS
from domain.market_data.exceptions import (
    BadRequestError,
    ProviderUnavailableError,
    RateLimitedError,
)
from infrastructure.client.http.rate_limiter import RateLimiter
from infrastructure.logging import get_logger

logger = get_logger(__name__)

MAX_ATTEMPTS = 2


@dataclass
class ProviderRequest:
    path: str
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    symbol: Optional[str] = None


class RateLimitedProviderClient:

    def __init__(self, rate_limiter: Optional[RateLimiter] = None,
                 session: Optional[requests.Session] = None,
                 provider_settings: Optional[Dict[str, Dict]] = None,
                 timeout: float = 10.0):
        self.provider_settings = provider_settings or PROVIDERS
        self.rate_limiter = rate_limiter or RateLimiter(self.provider_settings)
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, provider_id: str, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        base_url = self.provider_settings.get(provider_id, {}).get("BASE_URL", "")
        return f"{base_url.rstrip('/')}/{path.lstrip('/')}"

    def _cooldown(self, provider_id: str, key: str) -> float:
        return float(self.provider_settings.get(provider_id, {}).get(key, 0))

    def fetch(self, provider_id: str, request: ProviderRequest) -> Any:
        """요청을 보내고 JSON 본문을 반환합니다. 실패는 ProviderError 하위 예외로 발생합니다."""
        url = self._url(provider_id, request.path)
        error_args = dict(provider_id=provider_id, symbol=request.symbol)

        for attempt in range(1, MAX_ATTEMPTS + 1):
            last_attempt = attempt == MAX_ATTEMPTS
            self.rate_limiter.acquire(provider_id)

            try:
                response = self.session.get(url, params=request.params, headers=request.headers,
                                            timeout=self.timeout)
            except (requests.Timeout, requests.ConnectionError) as e:
                if last_attempt:
                    raise ProviderUnavailableError(f"Request failed: {e}", **error_args) from e
                cooldown = self._cooldown(provider_id, "SERVER_ERROR_COOLDOWN_SECONDS")
                logger.warning(f"{provider_id} request error for {request.symbol or url}: {e}. "
                               f"Retrying in {cooldown}s")
                self.rate_limiter.penalize(provider_id, cooldown)
                continue

            status = response.status_code
            if status == 429:
                if last_attempt:
                    raise RateLimitedError("Rate limited after retry", status_code=status, **error_args)
                cooldown = self._cooldown(provider_id, "RATE_LIMIT_COOLDOWN_SECONDS")
                logger.warning(f"{provider_id} rate limited (429). Cooling down {cooldown}s before retry")
                self.rate_limiter.penalize(provider_id, cooldown)
                continue

            if status >= 500:
                if last_attempt:
                    raise ProviderUnavailableError("Server error after retry", status_code=status, **error_args)
                cooldown = self._cooldown(provider_id, "SERVER_ERROR_COOLDOWN_SECONDS")
                logger.warning(f"{provider_id} returned {status}. Retrying in {cooldown}s")
                self.rate_limiter.penalize(provider_id, cooldown)
                continue

            if status >= 400:
                raise BadRequestError("Request rejected", status_code=status, **error_args)

            try:
                return response.json()
            except ValueError as e:
                raise BadRequestError(f"Malformed payload: {e}", status_code=status, **error_args) from e

        # MAX_ATTEMPTS 안에서 항상 반환하거나 예외가 발생합니다.
        raise ProviderUnavailableError("Retries exhausted", **error_args)
