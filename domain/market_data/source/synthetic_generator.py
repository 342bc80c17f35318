"""
합성 OHLCV 데이터 생성기.

외부 Provider 를 사용할 수 없을 때(키 미설정, 합성 모드) 파이프라인이 멈추지 않도록
심볼별 기준가 주변을 움직이는 평균회귀 랜덤워크로 일봉/시간봉/최신가를 만듭니다.

- 일봉 경로는 고정된 기준일(EPOCH)부터 심볼별 시드로 생성하므로, 어떤 구간을 요청하든
  같은 날짜에는 항상 같은 값이 나옵니다. 재실행/재개된 백필이 같은 데이터를 다시 쓰게 됩니다.
- 이 모듈의 공개 메서드는 예외를 던지지 않습니다. 내부 오류 시 기본 기준가의 평탄한 데이터로 대체합니다.
"""
import zlib
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
import pytz

from domain.market_data.config.settings import SYNTHETIC_DATA
from domain.market_data.models.ohlcv_bar import OhlcvBar, PriceQuote
from domain.market_data.utils.symbols import is_crypto_symbol, is_index_symbol, normalize_symbol
from domain.market_data.utils.trading_calendar import is_weekend, market_now
from infrastructure.logging import get_logger

logger = get_logger(__name__)

EPOCH = date(2000, 1, 1)
# 평균회귀 강도. 로그 가격이 기준가에서 크게 벗어나지 않도록 당겨줍니다.
MEAN_REVERSION = 0.005


def _seed(*parts) -> int:
    return zlib.crc32(":".join(str(p) for p in parts).encode("utf-8"))


def _round_price(value: float) -> float:
    return round(value, 2) if value >= 1 else round(value, 6)


class SyntheticDataGenerator:
    """심볼별 기준가와 변동성 설정으로 결정적인 OHLCV 를 생성합니다."""

    def __init__(self, config: Optional[Dict] = None, timezone_name: str = "America/New_York"):
        self.config = config or SYNTHETIC_DATA
        self.timezone_name = timezone_name

    # ------------------------------------------------------------------
    # 기준값
    # ------------------------------------------------------------------
    def base_price(self, symbol: str) -> float:
        price = self.config.get("BASE_PRICES", {}).get(normalize_symbol(symbol))
        if price is None or price <= 0:
            return float(self.config.get("DEFAULT_BASE_PRICE", 100.0))
        return float(price)

    def _daily_volatility(self, symbol: str) -> float:
        if is_crypto_symbol(symbol):
            return self.config["CRYPTO_DAILY_VOLATILITY"]
        return self.config["DAILY_VOLATILITY"]

    def _base_volume(self, symbol: str) -> int:
        volumes = self.config["BASE_VOLUME"]
        symbol = normalize_symbol(symbol)
        if is_crypto_symbol(symbol):
            return volumes["CRYPTO"]
        if is_index_symbol(symbol):
            return volumes["INDEX"]
        if symbol in self.config.get("MAJOR_ETFS", []):
            return volumes["MAJOR_ETF"]
        return volumes["DEFAULT"]

    # ------------------------------------------------------------------
    # 일봉
    # ------------------------------------------------------------------
    def _daily_path(self, symbol: str, first: date, last: date) -> pd.DataFrame:
        """EPOCH 부터 last 까지의 일별 OHLCV 경로를 만든 뒤 [first, last] 만 잘라 반환합니다."""
        origin = min(EPOCH, first)
        days = (last - origin).days + 1
        seed = _seed(symbol, "daily", origin.isoformat())
        # 시계열마다 별도 스트림을 써야 last 가 바뀌어도 같은 날짜가 같은 난수를 받습니다.
        shock_rng, wick_up_rng, wick_down_rng, volume_rng = (
            np.random.default_rng([seed, stream]) for stream in range(4)
        )
        volatility = self._daily_volatility(symbol)
        base = self.base_price(symbol)

        shocks = shock_rng.uniform(-volatility, volatility, size=days)
        wick_up = wick_up_rng.random(size=days)
        wick_down = wick_down_rng.random(size=days)
        volume_noise = volume_rng.random(size=days)

        # AR(1): x_t = (1 - k) * x_{t-1} + r_t  ==  ewm(alpha=k).mean() / k, x_{-1} = 0 (기준가)
        smoothed = pd.Series(np.concatenate(([0.0], shocks))).ewm(alpha=MEAN_REVERSION, adjust=False).mean()
        log_level = smoothed.to_numpy()[1:] / MEAN_REVERSION
        closes = base * np.exp(log_level)
        opens = np.concatenate(([base], closes[:-1]))

        intraday = volatility * 0.5
        highs = np.maximum(opens, closes) * (1 + wick_up * intraday)
        lows = np.minimum(opens, closes) * (1 - wick_down * intraday)
        volumes = (self._base_volume(symbol) * (0.7 + volume_noise * 0.6)).astype(np.int64)

        index = pd.date_range(origin, periods=days, freq="D")
        frame = pd.DataFrame(
            {"Open": opens, "High": highs, "Low": lows, "Close": closes, "Volume": volumes},
            index=index,
        )
        return frame.loc[pd.Timestamp(first):pd.Timestamp(last)]

    def generate_daily_bars_between(self, symbol: str, start: date, end: date) -> List[OhlcvBar]:
        """[start, end] 구간의 일봉. 암호화폐가 아니면 주말을 건너뜁니다."""
        symbol = normalize_symbol(symbol)
        if start > end:
            return []
        try:
            frame = self._daily_path(symbol, start, end)
            always_open = is_crypto_symbol(symbol)
            bars = []
            for ts, row in frame.iterrows():
                day = ts.date()
                if not always_open and is_weekend(day):
                    continue
                bars.append(OhlcvBar(
                    symbol=symbol,
                    date=day,
                    open=_round_price(row["Open"]),
                    high=_round_price(row["High"]),
                    low=_round_price(row["Low"]),
                    close=_round_price(row["Close"]),
                    volume=int(row["Volume"]),
                ))
            return bars
        except Exception as e:
            logger.warning(f"Synthetic daily generation failed for {symbol}, using flat series: {e}")
            return self._flat_daily_bars(symbol, start, end)

    def generate_daily_bars(self, symbol: str, day_count: int, end_date: Optional[date] = None) -> List[OhlcvBar]:
        """end_date(기본값: 오늘)까지 최근 day_count 일(달력 기준)의 일봉을 오래된 순으로 반환합니다."""
        if day_count <= 0:
            return []
        end = end_date or date.today()
        start = end - timedelta(days=day_count - 1)
        return self.generate_daily_bars_between(symbol, start, end)

    def _flat_daily_bars(self, symbol: str, start: date, end: date) -> List[OhlcvBar]:
        price = float(self.config.get("DEFAULT_BASE_PRICE", 100.0))
        bars = []
        day = start
        while day <= end:
            if is_crypto_symbol(symbol) or not is_weekend(day):
                bars.append(OhlcvBar(symbol=symbol, date=day, open=price, high=price, low=price, close=price, volume=0))
            day += timedelta(days=1)
        return bars

    # ------------------------------------------------------------------
    # 시간봉
    # ------------------------------------------------------------------
    def generate_intraday_bars(self, symbol: str, day: date, daily_open: float, daily_high: float,
                               daily_low: float, daily_close: float) -> List[OhlcvBar]:
        """
        하루 24개의 1시간봉을 생성합니다 (시장 타임존 기준 00:00 ~ 23:00).
        시가에서 출발해 종가에 도착하는 경로이며, 고가/저가는 일봉 범위 안으로 제한합니다.
        """
        symbol = normalize_symbol(symbol)
        try:
            return self._intraday_bars(symbol, day, float(daily_open), float(daily_high),
                                       float(daily_low), float(daily_close))
        except Exception as e:
            logger.warning(f"Synthetic intraday generation failed for {symbol} on {day}: {e}")
            return []

    def _intraday_bars(self, symbol: str, day: date, daily_open: float, daily_high: float,
                       daily_low: float, daily_close: float) -> List[OhlcvBar]:
        if daily_open <= 0 or daily_close <= 0:
            daily_open = daily_close = self.base_price(symbol)
        daily_high = max(daily_high, daily_open, daily_close)
        daily_low = min(daily_low, daily_open, daily_close)

        crypto = is_crypto_symbol(symbol)
        trading_day = not is_weekend(day)
        hours = 24
        hour_index = np.arange(hours)
        trading_hours = ((hour_index >= 9) & (hour_index <= 16)) & (trading_day or crypto)

        cfg = self.config
        active_vol = cfg["CRYPTO_HOURLY_VOLATILITY"] if crypto else cfg["HOURLY_VOLATILITY"]
        idle_vol = cfg["CRYPTO_OFF_HOURS_VOLATILITY"] if crypto else cfg["OFF_HOURS_VOLATILITY"]
        volatility = np.where(trading_hours, active_vol, idle_vol)

        rng = np.random.default_rng(_seed(symbol, "intraday", day.isoformat()))
        steps = rng.uniform(-1, 1, size=hours) * volatility
        # 마지막 시간봉 종가가 일봉 종가에 도착하도록 누적 경로를 선형 보정합니다.
        cumulative = np.cumsum(steps)
        target = np.log(daily_close / daily_open)
        cumulative = cumulative + (target - cumulative[-1]) * (hour_index + 1) / hours
        closes = daily_open * np.exp(cumulative)
        closes = np.clip(closes, daily_low, daily_high)
        opens = np.concatenate(([daily_open], closes[:-1]))

        wick = volatility * 0.3
        highs = np.minimum(np.maximum(opens, closes) * (1 + rng.random(hours) * wick), daily_high)
        lows = np.maximum(np.minimum(opens, closes) * (1 - rng.random(hours) * wick), daily_low)

        base_volume = self._base_volume(symbol)
        volumes = np.where(
            trading_hours,
            base_volume / 8 * (0.8 + rng.random(hours) * 0.4),
            base_volume * 0.01 * (0.5 + rng.random(hours) * 0.5),
        ).astype(np.int64)

        tz = pytz.timezone(self.timezone_name)
        bars = []
        for hour in range(hours):
            local_ts = tz.localize(datetime.combine(day, time(hour=hour)))
            bars.append(OhlcvBar(
                symbol=symbol,
                date=day,
                timestamp=local_ts.astimezone(timezone.utc),
                open=_round_price(opens[hour]),
                high=_round_price(highs[hour]),
                low=_round_price(lows[hour]),
                close=_round_price(closes[hour]),
                volume=int(volumes[hour]),
            ))
        return bars

    def generate_daily_anchor(self, symbol: str, day: date) -> OhlcvBar:
        """저장된 일봉이 없을 때 시간봉 생성의 기준으로 쓸 일봉"""
        bars = self.generate_daily_bars_between(symbol, day, day)
        if bars:
            return bars[0]
        # 주말의 비암호화폐 심볼: 직전 평일 종가로 평탄한 일봉
        previous = self.generate_daily_bars_between(symbol, day - timedelta(days=7), day)
        price = float(previous[-1].close) if previous else self.base_price(symbol)
        return OhlcvBar(symbol=symbol, date=day, open=price, high=price, low=price, close=price, volume=0)

    # ------------------------------------------------------------------
    # 최신가
    # ------------------------------------------------------------------
    def generate_quote(self, symbol: str, now: Optional[datetime] = None) -> PriceQuote:
        """오늘 일봉 종가 주변의 현재가와 직전 거래일 종가를 사용한 등락 정보를 만듭니다."""
        symbol = normalize_symbol(symbol)
        now = now or datetime.now(timezone.utc)
        try:
            today = market_now(self.timezone_name, now).date()
            recent = self.generate_daily_bars_between(symbol, today - timedelta(days=7), today)
            if len(recent) >= 2:
                reference, previous_close = float(recent[-1].close), float(recent[-2].close)
            elif recent:
                reference = previous_close = float(recent[-1].close)
            else:
                reference = previous_close = self.base_price(symbol)

            volatility = self.config["CRYPTO_QUOTE_VOLATILITY"] if is_crypto_symbol(symbol) \
                else self.config["QUOTE_VOLATILITY"]
            rng = np.random.default_rng(_seed(symbol, "quote", now.strftime("%Y%m%d%H%M")))
            price = reference * (1 + rng.uniform(-volatility, volatility) / 2)
            return PriceQuote.from_prices(symbol, _round_price(price), previous_close, timestamp=now)
        except Exception as e:
            logger.warning(f"Synthetic quote generation failed for {symbol}: {e}")
            base = self.base_price(symbol)
            return PriceQuote.from_prices(symbol, base, base, timestamp=now)
