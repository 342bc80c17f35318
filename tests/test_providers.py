# tests/test_providers.py

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pandas as pd
import pytest

from common.config.settings import EquityFallback, PipelineSettings
from domain.market_data.exceptions import (
    BadRequestError,
    MappingMissingError,
    ProviderUnavailableError,
    RateLimitedError,
)
from domain.market_data.source.factory import build_market_data_source
from domain.market_data.source.live_source import (
    LiveMarketDataSource,
    frame_to_daily_bars,
    frame_to_intraday_bars,
)
from domain.market_data.source.synthetic_source import SyntheticMarketDataSource
from infrastructure.client.coingecko.coingecko_client import CoinGeckoClient, spot_series_to_ohlcv
from infrastructure.client.polygon.polygon_client import PolygonClient, aggregates_to_frame
from infrastructure.client.yahoo.yahoo_client import normalize_download

NOW = datetime(2024, 5, 15, 18, tzinfo=timezone.utc)


def _ms(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def _ohlcv_frame(index, close=100.0):
    return pd.DataFrame(
        {'Open': close, 'High': close + 1, 'Low': close - 1, 'Close': close, 'Volume': 1000.0},
        index=pd.DatetimeIndex(index),
    )


class TestPolygon:

    def test_aggregates_to_frame(self):
        payload = {'results': [
            {'t': _ms(2024, 5, 15, 4), 'o': 10.0, 'h': 12.0, 'l': 9.5, 'c': 11.0, 'v': 1500},
            {'t': _ms(2024, 5, 14, 4), 'o': 9.0, 'h': 10.5, 'l': 8.5, 'c': 10.0, 'v': None},
        ]}
        df = aggregates_to_frame(payload, "AAPL")
        assert list(df.columns) == ['Open', 'High', 'Low', 'Close', 'Volume']
        assert len(df) == 2
        assert df.index[0] < df.index[1]
        assert str(df.index.tz) == 'UTC'
        assert df['Volume'].iloc[0] == 0

    def test_empty_results_give_empty_frame(self):
        assert aggregates_to_frame({'resultsCount': 0}, "NEWCO").empty
        assert aggregates_to_frame(None, "NEWCO").empty

    def test_malformed_results_raise_bad_request(self):
        with pytest.raises(BadRequestError):
            aggregates_to_frame({'results': [{'t': _ms(2024, 5, 15), 'c': 1.0}]}, "AAPL")

    def test_index_symbol_uses_polygon_prefix(self):
        http = MagicMock()
        http.fetch.return_value = {'results': []}
        client = PolygonClient(http, api_key="secret")

        client.get_daily_aggregates("^GSPC", date(2024, 1, 1), date(2024, 5, 15))

        provider_id, request = http.fetch.call_args[0]
        assert provider_id == "polygon"
        assert request.path == "/v2/aggs/ticker/I:GSPC/range/1/day/2024-01-01/2024-05-15"
        assert request.params['apiKey'] == "secret"
        assert request.symbol == "^GSPC"

    def test_latest_price_from_snapshot(self):
        http = MagicMock()
        http.fetch.return_value = {'ticker': {'lastTrade': {'p': 191.5}, 'prevDay': {'c': 189.0}}}
        latest = PolygonClient(http, api_key="k").get_latest_price("AAPL")
        assert latest == {'price': 191.5, 'previous_close': 189.0}

    def test_latest_index_price_has_no_previous_close(self):
        http = MagicMock()
        http.fetch.return_value = {'results': [{'c': 5300.25}]}
        latest = PolygonClient(http, api_key="k").get_latest_price("^GSPC")
        assert latest == {'price': 5300.25, 'previous_close': None}
        assert http.fetch.call_args[0][1].path == "/v2/aggs/ticker/I:GSPC/prev"


class TestCoinGecko:

    def test_spot_series_to_daily_ohlcv(self):
        payload = {
            'prices': [
                [_ms(2024, 5, 14, 0), 100.0],
                [_ms(2024, 5, 14, 12), 110.0],
                [_ms(2024, 5, 15, 6), 105.0],
            ],
            'total_volumes': [
                [_ms(2024, 5, 14, 0), 10.0],
                [_ms(2024, 5, 14, 12), 20.0],
                [_ms(2024, 5, 15, 6), 30.0],
            ],
        }
        df = spot_series_to_ohlcv(payload, '1D', 0.01)

        assert len(df) == 2
        first, second = df.iloc[0], df.iloc[1]
        assert first['Open'] == pytest.approx(100.0)
        assert first['Close'] == pytest.approx(110.0)
        assert first['High'] == pytest.approx(111.1)
        assert first['Low'] == pytest.approx(99.0)
        assert first['Volume'] == pytest.approx(20.0)
        assert second['Open'] == pytest.approx(110.0)
        assert second['Close'] == pytest.approx(105.0)
        assert second['Low'] == pytest.approx(105.0 * 0.99)

    def test_empty_series(self):
        assert spot_series_to_ohlcv({'prices': []}, '1h', 0.01).empty

    def test_unmapped_symbol_raises_without_request(self):
        http = MagicMock()
        client = CoinGeckoClient(http)
        with pytest.raises(MappingMissingError):
            client.get_daily_prices("X:FOOUSD", NOW, NOW)
        http.fetch.assert_not_called()

    def test_latest_price_derives_previous_close(self):
        http = MagicMock()
        http.fetch.return_value = {'bitcoin': {'usd': 66000.0, 'usd_24h_change': 10.0}}
        client = CoinGeckoClient(http, api_key="demo")

        latest = client.get_latest_price("X:BTCUSD")

        assert latest['price'] == 66000.0
        assert latest['previous_close'] == pytest.approx(60000.0)
        request = http.fetch.call_args[0][1]
        assert request.headers == {'x-cg-demo-api-key': 'demo'}
        assert request.params['ids'] == "bitcoin"


class TestFrameConversion:

    def test_daily_dates_cover_utc_and_eastern_midnight(self):
        df = _ohlcv_frame(pd.to_datetime(['2024-05-14 00:00', '2024-05-15 04:00'], utc=True))
        bars = frame_to_daily_bars("aapl", df, date(2024, 5, 1), date(2024, 5, 31))
        assert [bar.date for bar in bars] == [date(2024, 5, 14), date(2024, 5, 15)]
        assert bars[0].symbol == "AAPL"
        assert bars[0].close == Decimal("100")
        assert bars[0].timestamp is None

    def test_daily_rows_outside_window_are_dropped(self):
        df = _ohlcv_frame(pd.to_datetime(['2024-05-14', '2024-05-15', '2024-05-16'], utc=True))
        bars = frame_to_daily_bars("AAPL", df, date(2024, 5, 15), date(2024, 5, 15))
        assert [bar.date for bar in bars] == [date(2024, 5, 15)]

    def test_intraday_rows_filtered_by_market_day(self):
        # 03:00 UTC 는 뉴욕 기준 전날 23:00
        df = _ohlcv_frame(pd.to_datetime(['2024-05-15 03:00', '2024-05-15 14:00', '2024-05-15 15:00'], utc=True))
        bars = frame_to_intraday_bars("SPY", df, date(2024, 5, 15), "America/New_York")
        assert len(bars) == 2
        assert bars[0].timestamp == datetime(2024, 5, 15, 14, tzinfo=timezone.utc)
        assert all(bar.date == date(2024, 5, 15) for bar in bars)

    def test_normalize_download_multiindex(self):
        index = pd.to_datetime(['2024-05-14', '2024-05-15'])
        columns = pd.MultiIndex.from_product([['AAPL'], ['Open', 'High', 'Low', 'Close', 'Adj Close', 'Volume']])
        df_raw = pd.DataFrame([[1, 2, 0.5, 1.5, 1.4, 100], [1.5, 2.5, 1, 2, 1.9, None]],
                              index=index, columns=columns)

        df = normalize_download(df_raw, "AAPL")

        assert list(df.columns) == ['Open', 'High', 'Low', 'Close', 'Volume']
        assert str(df.index.tz) == 'UTC'
        assert df['Volume'].iloc[1] == 0

    def test_normalize_download_missing_ticker(self):
        columns = pd.MultiIndex.from_product([['MSFT'], ['Open', 'High', 'Low', 'Close', 'Volume']])
        df_raw = pd.DataFrame([[1, 2, 0.5, 1.5, 100]], index=pd.to_datetime(['2024-05-15']), columns=columns)
        assert normalize_download(df_raw, "AAPL").empty


class TestLiveSourceRouting:

    @pytest.fixture
    def clients(self):
        return MagicMock(spec=PolygonClient), MagicMock(spec=CoinGeckoClient), MagicMock()

    def test_crypto_routes_to_coingecko(self, clients):
        polygon, coingecko, yahoo = clients
        coingecko.get_daily_prices.return_value = _ohlcv_frame(pd.to_datetime(['2024-05-15'], utc=True))
        source = LiveMarketDataSource(polygon, coingecko, yahoo)

        bars = source.fetch_daily_bars("x:btcusd", date(2024, 5, 15), date(2024, 5, 15))

        assert len(bars) == 1 and bars[0].symbol == "X:BTCUSD"
        polygon.get_daily_aggregates.assert_not_called()
        _, start_dt, end_dt = coingecko.get_daily_prices.call_args[0]
        assert start_dt == datetime(2024, 5, 15, tzinfo=timezone.utc)
        assert end_dt == datetime(2024, 5, 16, tzinfo=timezone.utc)

    def test_transient_polygon_error_falls_back_to_yahoo(self, clients):
        polygon, coingecko, yahoo = clients
        polygon.get_daily_aggregates.side_effect = RateLimitedError("429", provider_id="polygon", symbol="AAPL")
        yahoo.get_daily_history.return_value = _ohlcv_frame(pd.to_datetime(['2024-05-15'], utc=True), close=190.0)
        source = LiveMarketDataSource(polygon, coingecko, yahoo)

        bars = source.fetch_daily_bars("AAPL", date(2024, 5, 15), date(2024, 5, 15))

        assert bars[0].close == Decimal("190")
        yahoo.get_daily_history.assert_called_once_with("AAPL", date(2024, 5, 15), date(2024, 5, 15))

    def test_bad_request_does_not_fall_back(self, clients):
        polygon, coingecko, yahoo = clients
        polygon.get_daily_aggregates.side_effect = BadRequestError("404", provider_id="polygon")
        source = LiveMarketDataSource(polygon, coingecko, yahoo)

        with pytest.raises(BadRequestError):
            source.fetch_daily_bars("AAPL", date(2024, 5, 15), date(2024, 5, 15))
        yahoo.get_daily_history.assert_not_called()

    def test_failed_fallback_surfaces_original_error(self, clients):
        polygon, coingecko, yahoo = clients
        original = ProviderUnavailableError("503", provider_id="polygon")
        polygon.get_hourly_aggregates.side_effect = original
        yahoo.get_hourly_history.side_effect = ProviderUnavailableError("yfinance down", provider_id="yahoo")
        source = LiveMarketDataSource(polygon, coingecko, yahoo)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            source.fetch_intraday_bars("AAPL", date(2024, 5, 15))
        assert exc_info.value is original

    def test_no_equity_provider(self, clients):
        _, coingecko, _ = clients
        source = LiveMarketDataSource(None, coingecko, None)
        with pytest.raises(ProviderUnavailableError):
            source.fetch_daily_bars("AAPL", date(2024, 5, 15), date(2024, 5, 15))

    def test_quote_uses_stored_previous_close_when_provider_lacks_it(self, clients):
        polygon, coingecko, yahoo = clients
        polygon.get_latest_price.return_value = {'price': 5300.0, 'previous_close': None}
        source = LiveMarketDataSource(polygon, coingecko, yahoo, clock=lambda: NOW)

        quote = source.fetch_latest_quote("^GSPC", previous_close=Decimal("5200"))

        assert quote.previous_close == Decimal("5200")
        assert quote.change == Decimal("100")
        assert quote.timestamp == NOW

    def test_max_request_days_by_provider(self, clients):
        polygon, coingecko, yahoo = clients
        source = LiveMarketDataSource(polygon, coingecko, yahoo)
        assert source.max_request_days("X:BTCUSD") == 365
        assert source.max_request_days("AAPL") == 730
        assert LiveMarketDataSource(None, coingecko, yahoo).max_request_days("AAPL") == 3650


class TestSourceFactory:

    def test_live_source_with_yahoo_fallback(self):
        source = build_market_data_source(PipelineSettings(polygon_api_key="pk"))

        assert isinstance(source, LiveMarketDataSource)
        assert source.polygon.api_key == "pk"
        assert source.yahoo is not None

    def test_fallback_can_be_disabled(self):
        source = build_market_data_source(PipelineSettings(polygon_api_key="pk", equity_fallback=EquityFallback.NONE))
        assert source.yahoo is None

    def test_missing_key_selects_synthetic(self):
        assert isinstance(build_market_data_source(PipelineSettings()), SyntheticMarketDataSource)
