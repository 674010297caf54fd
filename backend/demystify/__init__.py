"""
Strategy Demystify - natural-language strategy parsing, backtesting and scoring
"""

__version__ = "1.0.0"

# Capital / sizing
INITIAL_CAPITAL = 10000.0
POSITION_FRACTION = 0.1          # traditional path: 10% of capital per trade
BINARY_POSITION_FRACTION = 0.05  # binary payouts are bounded, smaller stake

# Simulation windows
WARMUP_BARS = 20
MARKET_GAP_SECONDS = 20 * 60     # gap that starts a new binary market instance
MARKETS_PER_DAY = 96             # 15m markets
BARS_PER_DAY = 1.0

# Strategy defaults
RSI_PERIOD = 14
RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70
GENERIC_RSI_OVERSOLD = 35
GENERIC_RSI_OVERBOUGHT = 65
MA_FAST_PERIOD = 20
MA_SLOW_PERIOD = 50
BREAKOUT_LOOKBACK = 20
BREAKOUT_EXIT_LOOKBACK = 10

# Metric sentinels / display bounds
PROFIT_FACTOR_SENTINEL = 999.0
MAX_PROFIT_FACTOR = 5.0
MAX_SHARPE = 3.0
CAGR_BOUNDS = (-100.0, 500.0)
