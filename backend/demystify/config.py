"""
Configuration
Built once at startup and passed explicitly; the core never reads the environment.
"""
import os
from typing import List, Mapping, Optional
from pydantic import BaseModel, Field

from demystify import (
    INITIAL_CAPITAL, POSITION_FRACTION, BINARY_POSITION_FRACTION,
    WARMUP_BARS, MARKET_GAP_SECONDS, MARKETS_PER_DAY, BARS_PER_DAY,
    MA_FAST_PERIOD, MA_SLOW_PERIOD, BREAKOUT_LOOKBACK, BREAKOUT_EXIT_LOOKBACK,
)

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000"


class BacktestConfig(BaseModel):
    """Simulation knobs"""
    initial_capital: float = Field(INITIAL_CAPITAL, gt=0)
    position_fraction: float = Field(POSITION_FRACTION, gt=0, le=1)
    binary_position_fraction: float = Field(BINARY_POSITION_FRACTION, gt=0, le=1)
    warmup_bars: int = Field(WARMUP_BARS, ge=WARMUP_BARS)
    market_gap_seconds: int = Field(MARKET_GAP_SECONDS, gt=0)
    markets_per_day: float = Field(MARKETS_PER_DAY, gt=0)
    bars_per_day: float = Field(BARS_PER_DAY, gt=0)
    ma_fast_period: int = Field(MA_FAST_PERIOD, gt=0)
    ma_slow_period: int = Field(MA_SLOW_PERIOD, gt=0)
    breakout_lookback: int = Field(BREAKOUT_LOOKBACK, gt=0)
    breakout_exit_lookback: int = Field(BREAKOUT_EXIT_LOOKBACK, gt=0)


class Settings(BaseModel):
    """Service settings"""
    cors_origins: List[str] = DEFAULT_CORS_ORIGINS.split(",")
    default_data_path: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 4000
    backtest: BacktestConfig = BacktestConfig()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read DEMYSTIFY_* variables (defaults for anything unset)"""
        env = os.environ if environ is None else environ

        overrides = {}
        if env.get("DEMYSTIFY_INITIAL_CAPITAL"):
            overrides["initial_capital"] = float(env["DEMYSTIFY_INITIAL_CAPITAL"])
        if env.get("DEMYSTIFY_MARKETS_PER_DAY"):
            overrides["markets_per_day"] = float(env["DEMYSTIFY_MARKETS_PER_DAY"])
        if env.get("DEMYSTIFY_BARS_PER_DAY"):
            overrides["bars_per_day"] = float(env["DEMYSTIFY_BARS_PER_DAY"])
        backtest = BacktestConfig(**overrides)

        origins = env.get("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
        return cls(
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            default_data_path=env.get("DEMYSTIFY_DATA_PATH") or None,
            host=env.get("DEMYSTIFY_HOST", "0.0.0.0"),
            port=int(env.get("DEMYSTIFY_PORT", "4000")),
            backtest=backtest,
        )
