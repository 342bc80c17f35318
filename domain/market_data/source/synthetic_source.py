from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional

from domain.market_data.models.ohlcv_bar import OhlcvBar, PriceQuote
from domain.market_data.source.base_source import MarketDataSource
from domain.market_data.source.synthetic_generator import SyntheticDataGenerator
from infrastructure.logging import get_logger

logger = get_logger(__name__)


class SyntheticMarketDataSource(MarketDataSource):
    """외부 호출 없이 SyntheticDataGenerator 로 데이터를 만드는 소스. 예외를 발생시키지 않습니다."""

    name = "synthetic"

    def __init__(self, generator: Optional[SyntheticDataGenerator] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.generator = generator or SyntheticDataGenerator()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def fetch_daily_bars(self, symbol: str, start: date, end: date) -> List[OhlcvBar]:
        bars = self.generator.generate_daily_bars_between(symbol, start, end)
        logger.debug(f"Generated {len(bars)} synthetic daily bars for {symbol} ({start} ~ {end})")
        return bars

    def fetch_intraday_bars(self, symbol: str, day: date,
                            daily_anchor: Optional[OhlcvBar] = None) -> List[OhlcvBar]:
        anchor = daily_anchor or self.generator.generate_daily_anchor(symbol, day)
        return self.generator.generate_intraday_bars(
            symbol, day, anchor.open, anchor.high, anchor.low, anchor.close
        )

    def fetch_latest_quote(self, symbol: str, previous_close: Optional[Decimal] = None) -> Optional[PriceQuote]:
        # 합성 시세는 자체 경로의 직전 종가를 기준으로 합니다.
        return self.generator.generate_quote(symbol, now=self._clock())
