"""
Technical Indicators
Point functions (value at one bar) + NumPy/Numba series versions for the simulator
"""
import numpy as np
from numba import jit
from typing import Sequence, Union

Series = Union[np.ndarray, Sequence[float]]


def _as_float_array(values: Series) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def _check_args(close: np.ndarray, index: int, period: int):
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if index < 0 or index >= len(close):
        raise ValueError(f"index {index} out of range for series of length {len(close)}")


# ==================== POINT FUNCTIONS ====================

def relative_strength_index(close: Series, index: int, period: int = 14) -> float:
    """RSI over the `period` close-to-close changes ending at `index`.

    Returns the neutral 50 when there is not enough history and 100 when
    the window holds no losses.
    """
    close = _as_float_array(close)
    _check_args(close, index, period)
    if index < period:
        return 50.0

    changes = np.diff(close[index - period:index + 1])
    avg_gain = changes[changes > 0].sum() / period
    avg_loss = -changes[changes < 0].sum() / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100.0 - (100.0 / (1.0 + rs)))


def moving_average(close: Series, index: int, period: int) -> float:
    """Simple moving average of the `period` closes ending at `index`.

    With fewer than `period` closes available the close at `index` itself is returned.
    """
    close = _as_float_array(close)
    _check_args(close, index, period)
    if index < period - 1:
        return float(close[index])
    return float(np.mean(close[index - period + 1:index + 1]))


# ==================== SERIES FUNCTIONS ====================

@jit(nopython=True)
def _rsi_core(close: np.ndarray, period: int) -> np.ndarray:
    """RSI Core (Numba optimized)"""
    n = len(close)
    rsi = np.full(n, 50.0)

    for i in range(period, n):
        gains = 0.0
        losses = 0.0
        for j in range(i - period + 1, i + 1):
            change = close[j] - close[j - 1]
            if change > 0:
                gains += change
            else:
                losses -= change

        avg_gain = gains / period
        avg_loss = losses / period
        if avg_loss == 0:
            rsi[i] = 100.0
        else:
            rs = avg_gain / avg_loss
            rsi[i] = 100.0 - (100.0 / (1.0 + rs))

    return rsi


def calculate_rsi(close: Series, period: int = 14) -> np.ndarray:
    """Relative Strength Index for every bar"""
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    return _rsi_core(_as_float_array(close), period)


@jit(nopython=True)
def _sma_core(close: np.ndarray, period: int) -> np.ndarray:
    """SMA Core (Numba optimized)"""
    n = len(close)
    result = close.copy()

    for i in range(period - 1, n):
        total = 0.0
        for j in range(i - period + 1, i + 1):
            total += close[j]
        result[i] = total / period

    return result


def calculate_sma(close: Series, period: int) -> np.ndarray:
    """Simple Moving Average for every bar"""
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    return _sma_core(_as_float_array(close), period)


@jit(nopython=True)
def _rolling_extreme_core(values: np.ndarray, lookback: int, use_max: bool) -> np.ndarray:
    """Max/min of the `lookback` values strictly before each index (NaN until available)"""
    n = len(values)
    result = np.full(n, np.nan)

    for i in range(lookback, n):
        extreme = values[i - lookback]
        for j in range(i - lookback + 1, i):
            if use_max:
                if values[j] > extreme:
                    extreme = values[j]
            else:
                if values[j] < extreme:
                    extreme = values[j]
        result[i] = extreme

    return result


def rolling_high(high: Series, lookback: int) -> np.ndarray:
    """Highest high of the previous `lookback` bars"""
    if lookback <= 0:
        raise ValueError(f"lookback must be positive, got {lookback}")
    return _rolling_extreme_core(_as_float_array(high), lookback, True)


def rolling_low(low: Series, lookback: int) -> np.ndarray:
    """Lowest low of the previous `lookback` bars"""
    if lookback <= 0:
        raise ValueError(f"lookback must be positive, got {lookback}")
    return _rolling_extreme_core(_as_float_array(low), lookback, False)
