from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

# 가격은 소수점 8자리까지 보존합니다.
PRICE_QUANTUM = Decimal("0.00000001")


def to_price(value: Any) -> Decimal:
    """float/str/int 값을 소수점 8자리 Decimal 로 정규화합니다."""
    if isinstance(value, Decimal):
        return value.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
    return Decimal(str(value)).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass
class OhlcvBar:
    """
    하나의 OHLCV 레코드를 나타내는 도메인 모델.

    timestamp 가 None 이면 일봉, 값이 있으면 해당 date 에 속한 분/시간봉입니다.
    식별자는 (symbol, date, timestamp) 입니다.
    low <= open, close <= high 는 Provider 가 어길 수 있으므로 검증하지 않습니다.
    """
    symbol: str
    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int = 0
    adjusted_close: Optional[Decimal] = None
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        self.symbol = self.symbol.upper()
        self.open = to_price(self.open)
        self.high = to_price(self.high)
        self.low = to_price(self.low)
        self.close = to_price(self.close)
        self.adjusted_close = to_price(self.adjusted_close) if self.adjusted_close is not None else self.close
        self.volume = max(int(self.volume or 0), 0)
        if self.timestamp is not None and self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=timezone.utc)

    @property
    def is_intraday(self) -> bool:
        return self.timestamp is not None

    def to_cache_dict(self) -> Dict[str, Any]:
        """캐시(JSON)에 저장하기 위한 형태로 변환합니다."""
        return {
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'date': self.date.isoformat(),
            'open': float(self.open),
            'high': float(self.high),
            'low': float(self.low),
            'close': float(self.close),
            'volume': self.volume,
        }


@dataclass
class PriceQuote:
    """최신 가격 스냅샷. 저장소에는 저장하지 않고 캐시에만 기록합니다."""
    symbol: str
    price: Decimal
    previous_close: Optional[Decimal] = None
    change: Decimal = Decimal("0")
    change_percent: Decimal = Decimal("0")
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_prices(cls, symbol: str, price: Any, previous_close: Any,
                    timestamp: Optional[datetime] = None) -> "PriceQuote":
        """현재가와 전일 종가로 등락폭/등락률을 계산합니다."""
        current = to_price(price)
        prev = to_price(previous_close) if previous_close is not None else current
        change = current - prev
        change_percent = (change / prev * 100) if prev != 0 else Decimal("0")
        return cls(
            symbol=symbol.upper(),
            price=current,
            previous_close=prev,
            change=change.quantize(PRICE_QUANTUM),
            change_percent=change_percent.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP),
            timestamp=timestamp or datetime.now(timezone.utc),
        )

    def to_cache_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'price': float(self.price),
            'previousClose': float(self.previous_close) if self.previous_close is not None else None,
            'change': float(self.change),
            'changePercent': float(self.change_percent),
            'timestamp': self.timestamp.isoformat(),
        }
