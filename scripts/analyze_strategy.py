#!/usr/bin/env python3
"""
Runs a strategy description against a CSV and prints the parse, metrics and score.
Usage: python scripts/analyze_strategy.py data.csv "RSI 30'da al, 70'te sat" [timeframe]
"""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))
from demystify.backtest import run_backtest
from demystify.config import BacktestConfig
from demystify.data import load_series_csv, markets_per_day
from demystify.parser import parse_strategy
from demystify.scoring import calculate_total_score


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)

    csv_path, description = sys.argv[1], sys.argv[2]
    timeframe = sys.argv[3] if len(sys.argv) > 3 else "15m"

    series = load_series_csv(csv_path)
    params = parse_strategy(description)
    config = BacktestConfig(markets_per_day=markets_per_day(timeframe))
    result = run_backtest(series, params, config)
    score = calculate_total_score(result.metrics, result.metrics.totalTrades)

    print(f"=== Strategy: {description} ===\n")
    print(f"Recognized: {', '.join(params.recognizedPatterns) or '-'}")
    for u in params.unrecognized:
        print(f"Unrecognized: {u.pattern} ({u.confidence:.0%}) - {u.reason}")
    print(f"Path: {result.strategyPath} | Rows: {len(series)} | Trades: {result.metrics.totalTrades}\n")

    m = result.metrics
    print("Metric          | Value      | Score")
    print("-" * 40)
    rows = [
        ("Profit Factor", f"{m.profitFactor:.2f}", score.breakdown.profitFactor),
        ("Max Drawdown", f"{m.maxDrawdown:.1f}%", score.breakdown.maxDrawdown),
        ("Sharpe", f"{m.sharpeRatio:.2f}", score.breakdown.sharpeRatio),
        ("CAGR", f"{m.cagr:.1f}%", score.breakdown.cagr),
        ("Win Rate", f"{m.winRate:.1f}%", score.breakdown.winRate),
    ]
    for name, value, points in rows:
        print(f"{name:<15} | {value:<10} | {points:5.1f}/20")
    print(f"\nBonus +{score.breakdown.bonus} | Penalty -{score.breakdown.penalty}")
    print(f"TOTAL {score.breakdown.total:.1f}/100  {score.rating.symbol} {score.rating.label}")
    print(f"→ {score.recommendation}")

    if score.redFlags:
        print("\n=== Red flags ===")
        for flag in score.redFlags:
            print(f"[{flag.severity}] {flag.message}")
    if result.warnings:
        print("\n=== Warnings ===")
        for w in result.warnings:
            print(f"- {w}")


if __name__ == "__main__":
    main()
