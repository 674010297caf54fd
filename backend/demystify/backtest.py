"""
Backtest Engine
Bar-by-bar long-only simulation on vectorized entry/exit signals,
plus the run_backtest entry point that also dispatches binary markets.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from demystify.binary import BinaryMarketEngine
from demystify.config import BacktestConfig
from demystify.data import bars_to_arrays, snapshots_to_bars
from demystify.metrics import calculate_performance_metrics, empty_metrics
from demystify.models import (
    BacktestResult, BinaryMarketParams, MarketSnapshot, OHLCVData, StrategyParameters, Trade,
)
from demystify.signals import SIGNAL_HANDLERS, StrategyPath, select_strategy_path

SeriesItem = Union[OHLCVData, MarketSnapshot, Dict[str, Any]]

OPEN_POSITION_WARNING = 'Open position closed at end of backtest period'


class BacktestEngine:
    """Traditional (OHLCV) Backtest Engine"""

    def __init__(self, data: Dict[str, np.ndarray], config: BacktestConfig):
        self.data = data
        self.config = config
        self.length = len(data['close'])

    def run(self, params: StrategyParameters, path: StrategyPath) -> Tuple[List[Trade], List[str]]:
        """Run backtest, returns (trades, warnings)"""
        handler = SIGNAL_HANDLERS[path]
        entry_signals, exit_signals = handler(self.data, params, self.config)
        return self._simulate_trades(entry_signals, exit_signals, params)

    def _simulate_trades(self, entry_signals: np.ndarray, exit_signals: np.ndarray,
                         params: StrategyParameters) -> Tuple[List[Trade], List[str]]:
        """Long-only loop: signal exit, stop loss or take profit, checked every bar"""
        trades: List[Trade] = []
        warnings: List[str] = []
        close = self.data['close']
        time_arr = self.data['time']
        capital = self.config.initial_capital
        fraction = self.config.position_fraction

        stop_loss = params.stopLoss
        take_profit = params.takeProfit

        in_trade = False
        entry_price = 0.0
        entry_idx = 0

        def close_trade(i: int, reason: str):
            nonlocal capital
            ret = (close[i] - entry_price) / entry_price
            pnl = ret * capital * fraction
            capital += pnl
            trades.append(Trade(
                entryTime=int(time_arr[entry_idx]), exitTime=int(time_arr[i]),
                entryPrice=float(entry_price), exitPrice=float(close[i]),
                side='long', exitReason=reason,
                pnl=float(pnl), pnlFraction=float(ret),
                outcome='win' if pnl > 0 else 'loss',
            ))

        for i in range(self.config.warmup_bars, self.length - 1):
            if not in_trade:
                if entry_signals[i] and close[i] > 0:
                    in_trade = True
                    entry_idx = i
                    entry_price = close[i]
                continue

            ret = (close[i] - entry_price) / entry_price
            exit_reason = None
            if exit_signals[i]:
                exit_reason = 'Signal'
            elif stop_loss and ret < -stop_loss / 100.0:
                exit_reason = 'Stop Loss'
            elif take_profit and ret > take_profit / 100.0:
                exit_reason = 'Take Profit'

            if exit_reason is not None:
                close_trade(i, exit_reason)
                in_trade = False

        if in_trade:
            close_trade(self.length - 1, 'End of Data')
            warnings.append(OPEN_POSITION_WARNING)

        return trades, warnings


# ---------------------------------------------------------------------------
# run_backtest
# ---------------------------------------------------------------------------

def _coerce_series(series: Optional[Sequence[SeriesItem]]) -> List[Union[OHLCVData, MarketSnapshot]]:
    items = []
    for item in series or []:
        if isinstance(item, (OHLCVData, MarketSnapshot)):
            items.append(item)
        elif 'yesPrice' in item:
            items.append(MarketSnapshot(**item))
        else:
            items.append(OHLCVData(**item))
    # Stable: equal timestamps keep their input order
    return sorted(items, key=lambda x: x.time)


def strategy_warnings(params: StrategyParameters, path: StrategyPath) -> List[str]:
    """Warnings known before simulation, in reporting order"""
    warnings = [f"{u.pattern}: {u.reason}" for u in params.unrecognized]

    if not params.recognizedPatterns and not params.indicators:
        warnings.append('No recognizable strategy patterns found. Using generic mean-reversion simulation.')
        warnings.append('Supported patterns: RSI, MA, MACD, Bollinger Bands, Breakout, Stop Loss, Take Profit, '
                        'Binary market time window / price threshold')

    if any(u.pattern == 'Order_Flow_Scalping' for u in params.unrecognized):
        warnings.append('Order Flow/Scalping strategies require real-time order book data not available in historical OHLCV')
        warnings.append('This backtest uses OHLCV approximation and may not reflect real strategy performance')

    if path == StrategyPath.GENERIC:
        approximated = [t for t in ('MACD', 'BollingerBands') if params.has_indicator(t)]
        if approximated:
            warnings.append(f"{'/'.join(approximated)} signals are approximated with generic RSI mean reversion")

    if params.isBinaryMarket and path != StrategyPath.BINARY:
        warnings.append('Binary market detected without both a time window and a price threshold; '
                        f'falling back to {path.value} simulation')

    return warnings


def binary_params(params: StrategyParameters) -> BinaryMarketParams:
    """Binary sub-parameters, taken from the parsed conditions"""
    window = params.find_condition('time_window')
    threshold = params.find_condition('price_threshold')
    side = params.find_condition('side_select')
    return BinaryMarketParams(
        asset=params.binary.asset if params.binary else None,
        timeWindowSeconds=window.seconds if window is not None else None,
        priceThreshold=threshold.threshold if threshold is not None else None,
        sideSelection=side.side if side is not None else None,
    )


def _run_binary(series, params: StrategyParameters, config: BacktestConfig, warnings: List[str]) -> BacktestResult:
    snapshots = [s for s in series if isinstance(s, MarketSnapshot)]
    if len(snapshots) < 2:
        if len(series) > len(snapshots):
            warnings.append('Binary market strategies need market snapshots; OHLCV bars cannot be resolved')
        warnings.append(f'Insufficient data: {len(snapshots)} market snapshot(s), at least 2 required')
        return BacktestResult(strategyPath=StrategyPath.BINARY.value, trades=[],
                              metrics=empty_metrics(config.initial_capital), warnings=warnings)

    engine = BinaryMarketEngine(snapshots, config)
    trades, engine_warnings, evaluated = engine.run(binary_params(params))
    warnings.extend(engine_warnings)

    metrics = calculate_performance_metrics(
        trades, config.initial_capital,
        elapsed_days=evaluated / config.markets_per_day,
        start_date=snapshots[0].time, end_date=snapshots[-1].time,
    )
    return BacktestResult(strategyPath=StrategyPath.BINARY.value, trades=trades,
                          metrics=metrics, warnings=warnings)


def _run_traditional(series, params: StrategyParameters, path: StrategyPath,
                     config: BacktestConfig, warnings: List[str]) -> BacktestResult:
    bars = [s for s in series if isinstance(s, OHLCVData)]
    snapshots = [s for s in series if isinstance(s, MarketSnapshot)]
    if not bars and snapshots:
        warnings.append('Market snapshots simulated as bars using the YES token price')
        bars = snapshots_to_bars(snapshots)

    if len(bars) <= config.warmup_bars:
        warnings.append(f'Insufficient data: {len(bars)} bar(s), more than {config.warmup_bars} required')
        start = bars[0].time if bars else None
        end = bars[-1].time if bars else None
        return BacktestResult(strategyPath=path.value, trades=[],
                              metrics=empty_metrics(config.initial_capital, start, end), warnings=warnings)

    engine = BacktestEngine(bars_to_arrays(bars), config)
    trades, engine_warnings = engine.run(params, path)
    warnings.extend(engine_warnings)

    metrics = calculate_performance_metrics(
        trades, config.initial_capital,
        elapsed_days=len(bars) / config.bars_per_day,
        start_date=bars[0].time, end_date=bars[-1].time,
    )
    return BacktestResult(strategyPath=path.value, trades=trades, metrics=metrics, warnings=warnings)


def run_backtest(series: Optional[Sequence[SeriesItem]], params: StrategyParameters,
                 config: Optional[BacktestConfig] = None) -> BacktestResult:
    """Simulate `params` over a bar or snapshot series. Never raises for empty/short data."""
    config = config or BacktestConfig()
    items = _coerce_series(series)
    path = select_strategy_path(params)
    warnings = strategy_warnings(params, path)

    if path == StrategyPath.BINARY:
        return _run_binary(items, params, config, warnings)
    return _run_traditional(items, params, path, config, warnings)
