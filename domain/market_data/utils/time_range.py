"""
기간 키('7D', '1M', ..., 'MAX')를 실제 날짜 구간으로 변환하는 유틸리티.
모든 구간은 양 끝 날짜를 포함합니다.
"""
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

import pandas as pd

from domain.market_data.config.settings import TIME_RANGES, OHLCV_COLLECTION

DateLike = Union[date, datetime]

# 기간 키 -> pandas DateOffset 인자
_RANGE_OFFSETS = {
    "1M": {"months": 1},
    "3M": {"months": 3},
    "6M": {"months": 6},
    "1Y": {"years": 1},
    "3Y": {"years": 3},
    "5Y": {"years": 5},
}


def _as_date(value: Optional[DateLike]) -> date:
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def resolve_time_range(
    time_range: str,
    now: Optional[DateLike] = None,
    max_lookback_years: Optional[int] = None,
) -> Tuple[date, date]:
    """
    기간 키를 [start_date, end_date] 로 변환합니다.

    Args:
        time_range: '7D' | '1M' | '3M' | '6M' | 'YTD' | '1Y' | '3Y' | '5Y' | 'MAX'
        now: 기준 시각 (기본값: 오늘)
        max_lookback_years: 어떤 기간이든 넘을 수 없는 상한 (기본값: 설정값)

    Returns:
        (start_date, end_date)
    """
    key = str(time_range).strip().upper()
    if key not in TIME_RANGES:
        raise ValueError(f"Unknown time range: {time_range}")

    if max_lookback_years is None:
        max_lookback_years = OHLCV_COLLECTION["HISTORICAL"]["MAX_LOOKBACK_YEARS"]

    end = _as_date(now)
    end_ts = pd.Timestamp(end)
    ceiling = (end_ts - pd.DateOffset(years=max_lookback_years)).date()

    if key == "7D":
        start = end - timedelta(days=6)
    elif key == "YTD":
        start = date(end.year, 1, 1)
    elif key == "MAX":
        start = ceiling
    else:
        start = (end_ts - pd.DateOffset(**_RANGE_OFFSETS[key])).date()

    return max(start, ceiling), end


def chunk_date_range(start: date, end: date, max_days: Optional[int]) -> List[Tuple[date, date]]:
    """
    [start, end] 구간을 최대 max_days 일 길이의 연속 구간으로 나눕니다.
    max_days 가 없으면 구간을 나누지 않습니다.
    """
    if start > end:
        return []
    if not max_days or max_days <= 0:
        return [(start, end)]

    chunks = []
    chunk_start = start
    while chunk_start <= end:
        chunk_end = min(chunk_start + timedelta(days=max_days - 1), end)
        chunks.append((chunk_start, chunk_end))
        chunk_start = chunk_end + timedelta(days=1)
    return chunks
