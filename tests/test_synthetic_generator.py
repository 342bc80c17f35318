# tests/test_synthetic_generator.py

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.market_data.source.synthetic_generator import SyntheticDataGenerator
from domain.market_data.source.synthetic_source import SyntheticMarketDataSource

END = date(2024, 5, 15)


def _weekdays(start, end):
    count = 0
    day = start
    while day <= end:
        if day.weekday() < 5:
            count += 1
        day += timedelta(days=1)
    return count


def test_daily_bars_skip_weekends_for_equities():
    bars = SyntheticDataGenerator().generate_daily_bars("AAPL", 30, end_date=END)
    assert len(bars) == _weekdays(END - timedelta(days=29), END)
    assert all(bar.date.weekday() < 5 for bar in bars)
    assert bars[-1].date == END
    assert [bar.date for bar in bars] == sorted(bar.date for bar in bars)


def test_daily_bars_include_weekends_for_crypto():
    bars = SyntheticDataGenerator().generate_daily_bars("X:BTCUSD", 30, end_date=END)
    assert len(bars) == 30


def test_daily_bars_are_stable_across_windows():
    generator = SyntheticDataGenerator()
    short = {bar.date: bar for bar in generator.generate_daily_bars("MSFT", 10, end_date=END)}
    wide = {bar.date: bar for bar in generator.generate_daily_bars_between("MSFT", date(2024, 4, 1), date(2024, 5, 31))}
    for day, bar in short.items():
        assert wide[day] == bar


def test_daily_bar_shape():
    bars = SyntheticDataGenerator().generate_daily_bars("NVDA", 60, end_date=END)
    for bar in bars:
        assert bar.high >= max(bar.open, bar.close)
        assert bar.low <= min(bar.open, bar.close)
        assert bar.volume > 0
        assert bar.timestamp is None


def test_unknown_symbol_uses_default_base_price():
    bars = SyntheticDataGenerator().generate_daily_bars("ZZZZ", 20, end_date=END)
    assert bars
    assert all(Decimal("50") < bar.close < Decimal("200") for bar in bars)


def test_non_positive_day_count_returns_empty():
    assert SyntheticDataGenerator().generate_daily_bars("AAPL", 0, end_date=END) == []


def test_intraday_bars_stay_inside_daily_range():
    bars = SyntheticDataGenerator().generate_intraday_bars("AAPL", END, 100, 105, 95, 102)
    assert len(bars) == 24
    assert all(Decimal("95") <= bar.low and bar.high <= Decimal("105") for bar in bars)
    assert bars[0].open == Decimal("100")
    assert abs(bars[-1].close - Decimal("102")) <= Decimal("0.01")
    assert bars[0].timestamp == datetime(2024, 5, 15, 4, 0, tzinfo=timezone.utc)
    assert all(b.timestamp - a.timestamp == timedelta(hours=1) for a, b in zip(bars, bars[1:]))
    assert all(bar.date == END for bar in bars)


def test_generator_never_raises_on_broken_config():
    generator = SyntheticDataGenerator(config={"DEFAULT_BASE_PRICE": 100.0})
    bars = generator.generate_daily_bars("AAPL", 5, end_date=END)
    assert bars and all(bar.close == Decimal("100") for bar in bars)
    assert generator.generate_intraday_bars("AAPL", END, 100, 101, 99, 100) == []
    quote = generator.generate_quote("AAPL", now=datetime(2024, 5, 15, 15, tzinfo=timezone.utc))
    assert quote.price == Decimal("100")


def test_quote_change_matches_previous_close():
    now = datetime(2024, 5, 15, 15, 30, tzinfo=timezone.utc)
    quote = SyntheticDataGenerator().generate_quote("X:ETHUSD", now=now)
    assert quote.price > 0
    assert quote.change == quote.price - quote.previous_close
    assert quote.timestamp == now


def test_synthetic_source_synthesizes_missing_anchor():
    source = SyntheticMarketDataSource()
    bars = source.fetch_intraday_bars("SPY", END)
    anchor = source.generator.generate_daily_anchor("SPY", END)
    assert len(bars) == 24
    assert all(anchor.low <= bar.low and bar.high <= anchor.high for bar in bars)
    assert source.max_request_days("SPY") is None


@pytest.mark.parametrize("symbol, lower, upper", [
    ("AAPL", 0.6, 1.6),
    ("MSFT", 0.6, 1.6),
    ("^GSPC", 0.6, 1.6),
    ("X:BTCUSD", 0.4, 2.5),
    ("X:ETHUSD", 0.4, 2.5),
])
def test_daily_closes_stay_near_configured_base_price(symbol, lower, upper):
    generator = SyntheticDataGenerator()
    base = generator.base_price(symbol)
    bars = generator.generate_daily_bars_between(symbol, date(2023, 5, 15), END)
    assert bars
    ratios = [float(bar.close) / base for bar in bars]
    assert lower < min(ratios) and max(ratios) < upper


def test_changing_window_end_keeps_earlier_bars():
    source = SyntheticMarketDataSource()
    day = date(2024, 5, 10)
    shorter = {bar.date: bar for bar in source.fetch_daily_bars("MSFT", date(2024, 5, 1), date(2024, 5, 13))}
    longer = {bar.date: bar for bar in source.fetch_daily_bars("MSFT", date(2024, 5, 1), date(2024, 5, 14))}
    assert (shorter[day].high, shorter[day].low, shorter[day].volume) == \
           (longer[day].high, longer[day].low, longer[day].volume)


def test_quote_uses_market_date_after_us_close():
    generator = SyntheticDataGenerator()
    # 2024-05-16 01:00 UTC 는 뉴욕 기준 2024-05-15 21:00
    quote = generator.generate_quote("AAPL", now=datetime(2024, 5, 16, 1, tzinfo=timezone.utc))
    daily = {bar.date: bar for bar in generator.generate_daily_bars_between("AAPL", date(2024, 5, 13), END)}
    assert quote.previous_close == daily[date(2024, 5, 14)].close
