from typing import Optional

import requests

from common.config.settings import EquityFallback, PipelineSettings
from domain.market_data.source.base_source import MarketDataSource
from domain.market_data.source.live_source import LiveMarketDataSource
from domain.market_data.source.synthetic_generator import SyntheticDataGenerator
from domain.market_data.source.synthetic_source import SyntheticMarketDataSource
from infrastructure.client.coingecko.coingecko_client import CoinGeckoClient
from infrastructure.client.http.provider_client import RateLimitedProviderClient
from infrastructure.client.http.rate_limiter import RateLimiter
from infrastructure.client.polygon.polygon_client import PolygonClient
from infrastructure.client.yahoo.yahoo_client import YahooFinanceClient
from infrastructure.logging import get_logger

logger = get_logger(__name__)


def build_market_data_source(settings: PipelineSettings,
                             rate_limiter: Optional[RateLimiter] = None,
                             session: Optional[requests.Session] = None) -> MarketDataSource:
    """
    설정에 따라 실데이터/합성 데이터 소스 중 하나를 생성합니다.
    프로세스 시작 시 한 번 호출되며, 모든 엔진이 같은 인스턴스(같은 RateLimiter)를 공유합니다.
    """
    if settings.use_synthetic_data:
        reason = "mode=synthetic" if settings.polygon_api_key else "POLYGON_API_KEY not configured"
        logger.info(f"Using synthetic market data source ({reason})")
        return SyntheticMarketDataSource(SyntheticDataGenerator(timezone_name=settings.timezone))

    rate_limiter = rate_limiter or RateLimiter()
    http_client = RateLimitedProviderClient(
        rate_limiter=rate_limiter,
        session=session,
        timeout=settings.request_timeout_seconds,
    )
    yahoo = YahooFinanceClient(rate_limiter) if settings.equity_fallback == EquityFallback.YAHOO else None
    logger.info(f"Using live market data source (equity fallback: {settings.equity_fallback.value})")
    return LiveMarketDataSource(
        polygon=PolygonClient(http_client, settings.polygon_api_key),
        coingecko=CoinGeckoClient(http_client, settings.coingecko_api_key),
        yahoo=yahoo,
        timezone_name=settings.timezone,
    )
