"""
Market Data Ingestion
CSV / DataFrame -> OHLCVData or MarketSnapshot series, and series -> NumPy arrays
"""
from io import StringIO
from typing import Dict, List, Union

import numpy as np
import pandas as pd

from demystify.models import MarketSnapshot, OHLCVData

OHLCV_COLUMNS = ['time', 'open', 'high', 'low', 'close', 'volume']
SNAPSHOT_ALIASES = {
    'time': ['time', 'timestamp', 'datetime', 'date'],
    'yesPrice': ['yesprice', 'yes_price', 'yes', 'price_up', 'up_price'],
    'noPrice': ['noprice', 'no_price', 'no', 'price_down', 'down_price'],
    'underlyingPrice': ['underlyingprice', 'underlying_price', 'underlying', 'btc_price', 'reference_price'],
    'marketId': ['marketid', 'market_id', 'market', 'slug'],
}

# Human timeframe -> provider market_type
MARKET_TYPES = {
    '5m': '5m',
    '15m': '15m',
    '1h': '1hr',
    '4h': '4hr',
    '24h': '24hr',
    '1d': '24hr',
}
MARKETS_PER_DAY = {
    '5m': 288,
    '15m': 96,
    '1hr': 24,
    '4hr': 6,
    '24hr': 1,
}


def map_timeframe_to_market_type(timeframe: str) -> str:
    """'1h' -> '1hr' etc.; unknown timeframes default to 15m markets"""
    return MARKET_TYPES.get((timeframe or '').strip().lower(), '15m')


def markets_per_day(timeframe: str) -> float:
    return float(MARKETS_PER_DAY[map_timeframe_to_market_type(timeframe)])


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = df.columns.str.lower().str.strip()
    return df


def _to_epoch_seconds(col: pd.Series) -> pd.Series:
    """Datetime strings, epoch seconds or epoch milliseconds -> int seconds"""
    if not pd.api.types.is_numeric_dtype(col):
        epoch = pd.Timestamp('1970-01-01', tz='UTC')
        return (pd.to_datetime(col, utc=True) - epoch) // pd.Timedelta(seconds=1)
    values = col.astype(np.int64)
    if len(values) and values.abs().max() > 10**11:
        return values // 1000
    return values


def parse_ohlcv_frame(df: pd.DataFrame) -> List[OHLCVData]:
    """Parse a DataFrame with time/open/high/low/close[/volume] columns"""
    df = _normalize_columns(df)
    if 'datetime' in df.columns and 'time' not in df.columns:
        df = df.rename(columns={'datetime': 'time'})
    if 'timestamp' in df.columns and 'time' not in df.columns:
        df = df.rename(columns={'timestamp': 'time'})
    if 'volume' not in df.columns:
        df['volume'] = 0.0

    missing = [c for c in OHLCV_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV must contain: {OHLCV_COLUMNS} (missing: {missing}, found: {list(df.columns)})")

    df['time'] = _to_epoch_seconds(df['time'])
    records = df[OHLCV_COLUMNS].to_dict('records')
    return [OHLCVData(**r) for r in records]


def parse_snapshot_frame(df: pd.DataFrame) -> List[MarketSnapshot]:
    """Parse a DataFrame of binary market snapshots"""
    df = _normalize_columns(df)
    renames = {}
    for field, aliases in SNAPSHOT_ALIASES.items():
        for alias in aliases:
            if alias in df.columns:
                renames[alias] = field
                break

    df = df.rename(columns=renames)
    required = ['time', 'yesPrice', 'noPrice', 'underlyingPrice']
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Snapshot CSV must contain: {required} (missing: {missing}, found: {list(df.columns)})")

    df['time'] = _to_epoch_seconds(df['time'])
    columns = required + (['marketId'] if 'marketId' in df.columns else [])
    snapshots = []
    for r in df[columns].to_dict('records'):
        if 'marketId' in r:
            r['marketId'] = None if pd.isna(r['marketId']) else str(r['marketId'])
        snapshots.append(MarketSnapshot(**r))
    return snapshots


def is_snapshot_frame(df: pd.DataFrame) -> bool:
    columns = set(df.columns.str.lower().str.strip())
    return any(alias in columns for alias in SNAPSHOT_ALIASES['yesPrice'])


def load_series_csv(source: Union[str, StringIO]) -> List[Union[OHLCVData, MarketSnapshot]]:
    """Read a CSV path or buffer; snapshot vs OHLCV is detected from the columns"""
    df = pd.read_csv(source)
    if is_snapshot_frame(df):
        return parse_snapshot_frame(df)
    return parse_ohlcv_frame(df)


def bars_to_arrays(bars: List[OHLCVData]) -> Dict[str, np.ndarray]:
    """Column arrays for the backtest engine"""
    return {
        'time': np.array([b.time for b in bars], dtype=np.int64),
        'open': np.array([b.open for b in bars], dtype=np.float64),
        'high': np.array([b.high for b in bars], dtype=np.float64),
        'low': np.array([b.low for b in bars], dtype=np.float64),
        'close': np.array([b.close for b in bars], dtype=np.float64),
        'volume': np.array([b.volume for b in bars], dtype=np.float64),
    }


def snapshots_to_bars(snapshots: List[MarketSnapshot]) -> List[OHLCVData]:
    """Flat bars on the YES token price"""
    return [
        OHLCVData(time=s.time, open=s.yesPrice, high=s.yesPrice, low=s.yesPrice, close=s.yesPrice, volume=0.0)
        for s in snapshots
    ]
