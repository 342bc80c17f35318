from datetime import date, datetime, timedelta
from typing import Optional

import pytz


def market_now(timezone_name: str = "America/New_York", now: Optional[datetime] = None) -> datetime:
    """시장 타임존 기준의 현재 시각. naive datetime 은 UTC 로 간주합니다."""
    tz = pytz.timezone(timezone_name)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    return now.astimezone(tz)


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def last_trading_day(now: Optional[datetime] = None, timezone_name: str = "America/New_York") -> date:
    """오늘이 평일이면 오늘, 토/일요일이면 직전 금요일을 반환합니다."""
    today = market_now(timezone_name, now).date()
    if today.weekday() == 5:
        return today - timedelta(days=1)
    if today.weekday() == 6:
        return today - timedelta(days=2)
    return today
