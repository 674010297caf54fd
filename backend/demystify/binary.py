"""
Binary Market Backtest Engine
Time-window / price-threshold entries on prediction-market snapshots.
"""
from typing import List, Optional, Tuple

from demystify.config import BacktestConfig
from demystify.models import BinaryMarketParams, MarketSnapshot, Trade


def segment_markets(snapshots: List[MarketSnapshot], gap_seconds: int) -> List[List[MarketSnapshot]]:
    """Split a time-sorted snapshot series into market instances.

    A new instance starts when the gap to the previous snapshot exceeds
    `gap_seconds` or when both snapshots carry different market ids.
    """
    markets: List[List[MarketSnapshot]] = []
    current: List[MarketSnapshot] = []

    for snap in snapshots:
        if current:
            prev = current[-1]
            id_changed = (
                prev.marketId is not None and snap.marketId is not None
                and prev.marketId != snap.marketId
            )
            if snap.time - prev.time > gap_seconds or id_changed:
                markets.append(current)
                current = []
        current.append(snap)

    if current:
        markets.append(current)
    return markets


def _qualifies(snap: MarketSnapshot, side: str, threshold: float) -> Optional[Tuple[str, float]]:
    """(traded token, entry price) if this snapshot triggers an entry"""
    if side in ('up', 'whichever') and snap.yesPrice >= threshold:
        return 'yes', snap.yesPrice
    if side in ('down', 'whichever') and snap.noPrice >= threshold:
        return 'no', snap.noPrice
    return None


class BinaryMarketEngine:
    """Binary Market Backtest Engine"""

    def __init__(self, snapshots: List[MarketSnapshot], config: BacktestConfig):
        self.snapshots = snapshots
        self.config = config
        self.markets = segment_markets(snapshots, config.market_gap_seconds)

    def run(self, binary: BinaryMarketParams) -> Tuple[List[Trade], List[str], int]:
        """Returns (trades, warnings, evaluated market count)"""
        warnings: List[str] = []
        trades: List[Trade] = []
        capital = self.config.initial_capital

        side = binary.sideSelection
        if side is None:
            side = 'whichever'
            warnings.append('No side selection parsed; entering whichever side reaches the price threshold first')

        window = binary.timeWindowSeconds or 0
        threshold = binary.priceThreshold if binary.priceThreshold is not None else 0.0

        evaluated = 0
        too_short = 0
        no_entry = 0
        for market in self.markets:
            if len(market) < 2:
                too_short += 1
                continue
            evaluated += 1

            trade = self._simulate_market(market, side, window, threshold, capital)
            if trade is None:
                no_entry += 1
                continue

            capital += trade.pnl
            trades.append(trade)

        if too_short:
            warnings.append(f'{too_short} market(s) skipped: fewer than 2 snapshots')
        if no_entry:
            warnings.append(f'{no_entry} of {evaluated} market(s) never met the entry conditions')
        return trades, warnings, evaluated

    def _simulate_market(self, market: List[MarketSnapshot], side: str, window: int,
                         threshold: float, capital: float) -> Optional[Trade]:
        last = market[-1]
        window_start = last.time - window

        entry_snap = None
        entry = None
        for snap in market:
            if snap.time < window_start:
                continue
            entry = _qualifies(snap, side, threshold)
            if entry is not None:
                entry_snap = snap
                break

        if entry is None:
            return None

        token, price = entry
        if price <= 0:
            return None
        price = min(price, 1.0)

        resolved_up = last.underlyingPrice > entry_snap.underlyingPrice
        won = resolved_up if token == 'yes' else not resolved_up

        stake = capital * self.config.binary_position_fraction
        # $1 payout per contract bought at `price`
        pnl = stake * (1.0 - price) / price if won else -stake

        return Trade(
            entryTime=entry_snap.time,
            exitTime=last.time,
            entryPrice=price,
            exitPrice=1.0 if won else 0.0,
            side=token,
            exitReason='Market Resolution',
            pnl=pnl,
            pnlFraction=pnl / stake,
            outcome='win' if pnl > 0 else 'loss',
            marketId=entry_snap.marketId,
        )
