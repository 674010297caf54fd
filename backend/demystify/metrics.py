"""
Performance Metrics
Shared by the traditional and binary simulators; derived only from the trade log.
"""
import math
from typing import List, Optional

import numpy as np

from demystify import PROFIT_FACTOR_SENTINEL, MAX_PROFIT_FACTOR, MAX_SHARPE, CAGR_BOUNDS
from demystify.models import PerformanceMetrics, Trade


def profit_factor(gross_profit: float, gross_loss: float) -> float:
    if gross_loss > 0:
        return gross_profit / gross_loss
    return PROFIT_FACTOR_SENTINEL if gross_profit > 0 else 0.0


def max_drawdown_percent(equity: np.ndarray) -> float:
    """Largest drop from the running peak, as % of that peak"""
    if len(equity) == 0:
        return 0.0
    running_peak = np.maximum.accumulate(equity)
    with np.errstate(divide='ignore', invalid='ignore'):
        drawdown = np.where(running_peak > 0, (running_peak - equity) / running_peak * 100.0, 0.0)
    return float(np.max(drawdown))


def sharpe_like(pnls: np.ndarray) -> float:
    """Mean trade P&L / population stdev (not annualized)"""
    if len(pnls) == 0:
        return 0.0
    std = float(np.std(pnls))
    if std == 0:
        return 0.0
    return float(np.mean(pnls)) / std


def cagr_percent(total_return_fraction: float, elapsed_days: float) -> float:
    """(1 + r) ** (365 / days) - 1, in percent"""
    if elapsed_days <= 0:
        return 0.0
    if total_return_fraction <= -1:
        return -100.0
    growth = (365.0 / elapsed_days) * math.log1p(total_return_fraction)
    # exp() overflows past ~709; anything that large is clamped anyway
    return math.expm1(min(growth, 700.0)) * 100.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def empty_metrics(initial_capital: float, start_date: Optional[int] = None,
                  end_date: Optional[int] = None) -> PerformanceMetrics:
    return PerformanceMetrics(
        totalTrades=0, winningTrades=0, losingTrades=0,
        profitFactor=0.0, maxDrawdown=0.0, sharpeRatio=0.0, cagr=0.0, winRate=0.0,
        initialCapital=initial_capital, finalCapital=initial_capital, totalReturn=0.0,
        startDate=start_date, endDate=end_date,
    )


def calculate_performance_metrics(
    trades: List[Trade],
    initial_capital: float,
    elapsed_days: float,
    start_date: Optional[int] = None,
    end_date: Optional[int] = None,
) -> PerformanceMetrics:
    """Aggregate a trade log into display-clamped metrics"""
    if not trades:
        return empty_metrics(initial_capital, start_date, end_date)

    pnls = np.array([t.pnl for t in trades], dtype=np.float64)
    total_trades = len(trades)
    winning_trades = int(np.sum(pnls > 0))
    losing_trades = total_trades - winning_trades
    gross_profit = float(np.sum(pnls[pnls > 0]))
    gross_loss = float(abs(np.sum(pnls[pnls <= 0])))

    # Capital after each trade (P&L already compounds trade to trade)
    equity = initial_capital + np.cumsum(pnls)
    equity = np.concatenate([[initial_capital], equity])
    final_capital = float(equity[-1])
    total_return = (final_capital - initial_capital) / initial_capital

    return PerformanceMetrics(
        totalTrades=total_trades,
        winningTrades=winning_trades,
        losingTrades=losing_trades,
        profitFactor=_clamp(profit_factor(gross_profit, gross_loss), 0.0, MAX_PROFIT_FACTOR),
        maxDrawdown=_clamp(max_drawdown_percent(equity), 0.0, 100.0),
        sharpeRatio=_clamp(sharpe_like(pnls), -MAX_SHARPE, MAX_SHARPE),
        cagr=_clamp(cagr_percent(total_return, elapsed_days), *CAGR_BOUNDS),
        winRate=_clamp(winning_trades / total_trades * 100.0, 0.0, 100.0),
        initialCapital=initial_capital,
        finalCapital=final_capital,
        totalReturn=total_return * 100.0,
        startDate=start_date,
        endDate=end_date,
    )
