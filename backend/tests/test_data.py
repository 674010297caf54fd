import unittest
from io import StringIO

import pandas as pd

from demystify.data import (
    bars_to_arrays, load_series_csv, map_timeframe_to_market_type, markets_per_day,
    parse_ohlcv_frame, snapshots_to_bars,
)
from demystify.models import MarketSnapshot, OHLCVData


class TimeframeTests(unittest.TestCase):
    def test_market_type_mapping(self):
        self.assertEqual(map_timeframe_to_market_type('1h'), '1hr')
        self.assertEqual(map_timeframe_to_market_type('4h'), '4hr')
        self.assertEqual(map_timeframe_to_market_type('1d'), '24hr')
        self.assertEqual(map_timeframe_to_market_type('5m'), '5m')
        self.assertEqual(map_timeframe_to_market_type('weekly'), '15m')
        self.assertEqual(map_timeframe_to_market_type(None), '15m')

    def test_markets_per_day(self):
        self.assertEqual(markets_per_day('15m'), 96.0)
        self.assertEqual(markets_per_day('1h'), 24.0)
        self.assertEqual(markets_per_day('24h'), 1.0)


class OhlcvParsingTests(unittest.TestCase):
    def test_datetime_strings_to_epoch_seconds(self):
        df = pd.DataFrame({
            'Datetime': ['2024-01-01 00:00:00', '2024-01-02 00:00:00'],
            'Open': [1.0, 2.0], 'High': [1.5, 2.5], 'Low': [0.5, 1.5], 'Close': [1.2, 2.2], 'Volume': [10, 20],
        })
        bars = parse_ohlcv_frame(df)
        self.assertEqual(bars[0].time, 1704067200)
        self.assertEqual(bars[1].time - bars[0].time, 86400)
        self.assertEqual(bars[1].close, 2.2)

    def test_millisecond_timestamps(self):
        df = pd.DataFrame({'time': [1704067200000], 'open': [1], 'high': [1], 'low': [1], 'close': [1]})
        bars = parse_ohlcv_frame(df)
        self.assertEqual(bars[0].time, 1704067200)
        self.assertEqual(bars[0].volume, 0.0)

    def test_missing_columns_raise(self):
        with self.assertRaises(ValueError):
            parse_ohlcv_frame(pd.DataFrame({'time': [1], 'close': [1.0]}))


class CsvLoadingTests(unittest.TestCase):
    def test_ohlcv_csv(self):
        csv = "time,open,high,low,close,volume\n100,1,2,0.5,1.5,10\n200,1.5,2,1,1.8,12\n"
        series = load_series_csv(StringIO(csv))
        self.assertTrue(all(isinstance(s, OHLCVData) for s in series))
        self.assertEqual([s.time for s in series], [100, 200])

    def test_snapshot_csv(self):
        csv = (
            "timestamp,yes_price,no_price,btc_price,market_id\n"
            "1000,0.55,0.45,42000.5,btc-15m-1\n"
            "1060,0.91,0.09,42010.0,btc-15m-1\n"
        )
        series = load_series_csv(StringIO(csv))
        self.assertIsInstance(series[0], MarketSnapshot)
        self.assertEqual(series[1].yesPrice, 0.91)
        self.assertEqual(series[1].underlyingPrice, 42010.0)
        self.assertEqual(series[0].marketId, 'btc-15m-1')

    def test_snapshot_csv_missing_underlying(self):
        csv = "time,yes_price,no_price\n1,0.5,0.5\n"
        with self.assertRaises(ValueError):
            load_series_csv(StringIO(csv))


class ConversionTests(unittest.TestCase):
    def test_bars_to_arrays(self):
        bars = [OHLCVData(time=i, open=1, high=2, low=0.5, close=1.5) for i in range(5)]
        arrays = bars_to_arrays(bars)
        self.assertEqual(sorted(arrays), ['close', 'high', 'low', 'open', 'time', 'volume'])
        self.assertEqual(arrays['close'].shape, (5,))
        self.assertEqual(arrays['time'].dtype.kind, 'i')

    def test_snapshots_to_bars_use_yes_price(self):
        bars = snapshots_to_bars([MarketSnapshot(time=5, yesPrice=0.7, noPrice=0.3, underlyingPrice=100)])
        self.assertEqual((bars[0].open, bars[0].close, bars[0].time), (0.7, 0.7, 5))


if __name__ == "__main__":
    unittest.main()
