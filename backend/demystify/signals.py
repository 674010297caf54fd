"""
Strategy Path Selection + Signal Handlers
Each handler takes (data, params, config) and returns (entry, exit) np.ndarrays of bools.
"""
from enum import Enum
from typing import Callable, Dict, Tuple

import numpy as np

from demystify import (
    RSI_PERIOD, RSI_OVERSOLD, RSI_OVERBOUGHT,
    GENERIC_RSI_OVERSOLD, GENERIC_RSI_OVERBOUGHT,
)
from demystify.config import BacktestConfig
from demystify.indicators import calculate_rsi, calculate_sma, rolling_high, rolling_low
from demystify.models import StrategyParameters

Signals = Tuple[np.ndarray, np.ndarray]


class StrategyPath(str, Enum):
    BINARY = 'binary'
    RSI = 'rsi'
    MA_CROSSOVER = 'ma_crossover'
    BREAKOUT = 'breakout'
    GENERIC = 'generic'


def has_binary_conditions(params: StrategyParameters) -> bool:
    return (
        params.find_condition('time_window') is not None
        and params.find_condition('price_threshold') is not None
    )


def select_strategy_path(params: StrategyParameters) -> StrategyPath:
    """First match wins: binary, RSI, MA crossover, breakout, generic"""
    if params.isBinaryMarket and has_binary_conditions(params):
        return StrategyPath.BINARY
    if params.has_indicator('RSI'):
        return StrategyPath.RSI
    if params.has_indicator('MA'):
        return StrategyPath.MA_CROSSOVER
    if 'Breakout' in params.recognizedPatterns or params.find_condition('breakout') is not None:
        return StrategyPath.BREAKOUT
    return StrategyPath.GENERIC


# ---------------------------------------------------------------------------
# RSI mean reversion
# ---------------------------------------------------------------------------

def _rsi_signals(close: np.ndarray, period: int, oversold: float, overbought: float) -> Signals:
    rsi = calculate_rsi(close, period)
    return rsi < oversold, rsi > overbought


def rsi_mean_reversion(data, params, config):
    entry_cond = params.find_condition('rsi_threshold')
    exit_cond = params.find_condition('rsi_threshold', on_exit=True)
    indicator = params.get_indicator('RSI')

    period = indicator.period if indicator and indicator.period else RSI_PERIOD
    oversold = entry_cond.value if entry_cond is not None else RSI_OVERSOLD
    overbought = exit_cond.value if exit_cond is not None else RSI_OVERBOUGHT
    return _rsi_signals(data['close'], period, oversold, overbought)


def generic_mean_reversion(data, params, config):
    return _rsi_signals(data['close'], RSI_PERIOD, GENERIC_RSI_OVERSOLD, GENERIC_RSI_OVERBOUGHT)


# ---------------------------------------------------------------------------
# MA crossover
# ---------------------------------------------------------------------------

def ma_periods(params: StrategyParameters, config: BacktestConfig) -> Tuple[int, int]:
    """(fast, slow) periods from the parsed MA periods"""
    periods = sorted({ind.period for ind in params.indicators if ind.type == 'MA' and ind.period})
    if len(periods) >= 2:
        return periods[0], periods[-1]
    if len(periods) == 1:
        period = periods[0]
        if period > config.ma_fast_period:
            return config.ma_fast_period, period
        if period < config.ma_slow_period:
            return period, config.ma_slow_period
    return config.ma_fast_period, config.ma_slow_period


def ma_crossover(data, params, config):
    fast_period, slow_period = ma_periods(params, config)
    fast = calculate_sma(data['close'], fast_period)
    slow = calculate_sma(data['close'], slow_period)
    n = len(fast)

    entry = np.zeros(n, dtype=bool)
    exit_ = np.zeros(n, dtype=bool)
    if n > 1:
        # Golden / death cross vs previous bar
        entry[1:] = (fast[:-1] <= slow[:-1]) & (fast[1:] > slow[1:])
        exit_[1:] = (fast[:-1] >= slow[:-1]) & (fast[1:] < slow[1:])
    return entry, exit_


# ---------------------------------------------------------------------------
# Breakout
# ---------------------------------------------------------------------------

def breakout(data, params, config):
    cond = params.find_condition('breakout')
    lookback = cond.lookback if cond is not None else config.breakout_lookback
    highest = rolling_high(data['high'], lookback)
    lowest = rolling_low(data['low'], config.breakout_exit_lookback)
    close = data['close']
    # NaN (not enough history) compares False
    return close > highest, close < lowest


# ---------------------------------------------------------------------------
# SIGNAL_HANDLERS dispatch dict (traditional paths)
# ---------------------------------------------------------------------------

SIGNAL_HANDLERS: Dict[StrategyPath, Callable[..., Signals]] = {
    StrategyPath.RSI: rsi_mean_reversion,
    StrategyPath.MA_CROSSOVER: ma_crossover,
    StrategyPath.BREAKOUT: breakout,
    StrategyPath.GENERIC: generic_mean_reversion,
}
