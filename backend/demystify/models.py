"""
Data Models for Strategy Demystify
"""
from typing import Annotated, List, Dict, Any, Optional, Union, Literal
from pydantic import BaseModel, ConfigDict, Field


# ==================== MARKET DATA ====================

class OHLCVData(BaseModel):
    """OHLCV Candle Data"""
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class MarketSnapshot(BaseModel):
    """Binary market snapshot (yes/no token prices + underlying reference)"""
    time: int
    yesPrice: float
    noPrice: float
    underlyingPrice: float
    marketId: Optional[str] = None


# ==================== STRATEGY PARAMETERS ====================

IndicatorType = Literal['RSI', 'MA', 'MACD', 'BollingerBands']
SideSelection = Literal['whichever', 'up', 'down']


class Indicator(BaseModel):
    """Parsed indicator"""
    type: IndicatorType
    period: Optional[int] = None


class RsiThresholdCondition(BaseModel):
    kind: Literal['rsi_threshold'] = 'rsi_threshold'
    comparator: Literal['<', '>']
    value: float
    period: int = 14


class MaCrossCondition(BaseModel):
    kind: Literal['ma_cross'] = 'ma_cross'
    direction: Literal['cross_above', 'cross_below']
    period: Optional[int] = None


class MacdCrossCondition(BaseModel):
    kind: Literal['macd_cross'] = 'macd_cross'
    direction: Literal['bullish_cross', 'bearish_cross']


class BollingerTouchCondition(BaseModel):
    kind: Literal['bollinger_touch'] = 'bollinger_touch'
    band: Literal['lower', 'upper']


class BreakoutCondition(BaseModel):
    kind: Literal['breakout'] = 'breakout'
    direction: Literal['breakout_above'] = 'breakout_above'
    lookback: int = 20


class TimeWindowCondition(BaseModel):
    """Enter within the last `seconds` of a market's lifetime"""
    kind: Literal['time_window'] = 'time_window'
    seconds: int


class PriceThresholdCondition(BaseModel):
    """Token price (0-1) that must be reached before entry"""
    kind: Literal['price_threshold'] = 'price_threshold'
    threshold: float = Field(ge=0.0, le=1.0)


class SideSelectCondition(BaseModel):
    kind: Literal['side_select'] = 'side_select'
    side: SideSelection


Condition = Annotated[
    Union[
        RsiThresholdCondition,
        MaCrossCondition,
        MacdCrossCondition,
        BollingerTouchCondition,
        BreakoutCondition,
        TimeWindowCondition,
        PriceThresholdCondition,
        SideSelectCondition,
    ],
    Field(discriminator='kind'),
]


class UnrecognizedPattern(BaseModel):
    """Pattern detected in the text that cannot be simulated faithfully"""
    pattern: str
    reason: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    note: Optional[str] = None


class Timeframe(BaseModel):
    value: int
    unit: Literal['s', 'm', 'h']
    description: str


class BinaryMarketParams(BaseModel):
    """Binary (prediction) market sub-parameters"""
    asset: Optional[str] = None
    timeWindowSeconds: Optional[int] = None
    priceThreshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    sideSelection: Optional[SideSelection] = None


class StrategyParameters(BaseModel):
    """Structured strategy parsed from free text"""
    indicators: List[Indicator] = []
    entryConditions: List[Condition] = []
    exitConditions: List[Condition] = []
    stopLoss: Optional[float] = None
    takeProfit: Optional[float] = None
    recognizedPatterns: List[str] = []
    unrecognized: List[UnrecognizedPattern] = []
    timeframe: Optional[Timeframe] = None
    isBinaryMarket: bool = False
    binary: Optional[BinaryMarketParams] = None

    def has_indicator(self, indicator_type: str) -> bool:
        return any(ind.type == indicator_type for ind in self.indicators)

    def get_indicator(self, indicator_type: str) -> Optional[Indicator]:
        for ind in self.indicators:
            if ind.type == indicator_type:
                return ind
        return None

    def find_condition(self, kind: str, on_exit: bool = False):
        """First entry (or exit) condition of the given kind, or None"""
        conditions = self.exitConditions if on_exit else self.entryConditions
        for cond in conditions:
            if cond.kind == kind:
                return cond
        return None


# ==================== SIMULATION OUTPUT ====================

class Trade(BaseModel):
    """Closed trade (immutable once recorded)"""
    model_config = ConfigDict(frozen=True)

    entryTime: int
    exitTime: int
    entryPrice: float
    exitPrice: float
    side: Literal['long', 'yes', 'no']
    exitReason: str
    pnl: float
    pnlFraction: float
    outcome: Literal['win', 'loss']
    marketId: Optional[str] = None


class MetricValues(BaseModel):
    """The five scored metrics"""
    profitFactor: float
    maxDrawdown: float
    sharpeRatio: float
    cagr: float
    winRate: float


class PerformanceMetrics(MetricValues):
    """Aggregate metrics derived from a trade log"""
    model_config = ConfigDict(frozen=True)

    totalTrades: int
    winningTrades: int
    losingTrades: int
    initialCapital: float
    finalCapital: float
    totalReturn: float
    startDate: Optional[int] = None
    endDate: Optional[int] = None

    def to_metric_values(self) -> MetricValues:
        return MetricValues(
            profitFactor=self.profitFactor,
            maxDrawdown=self.maxDrawdown,
            sharpeRatio=self.sharpeRatio,
            cagr=self.cagr,
            winRate=self.winRate,
        )


class BacktestResult(BaseModel):
    """Backtest Result"""
    strategyPath: str
    trades: List[Trade] = []
    metrics: PerformanceMetrics
    warnings: List[str] = []


# ==================== SCORING ====================

ScoreCategory = Literal['exceptional', 'excellent', 'good', 'fair', 'poor']


class ScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    profitFactor: float
    maxDrawdown: float
    sharpeRatio: float
    cagr: float
    winRate: float
    bonus: float
    penalty: float
    total: float


class RedFlag(BaseModel):
    type: Literal['overfitting', 'excessive_risk', 'poor_returns', 'small_sample', 'high_variance']
    severity: Literal['warning', 'critical']
    message: str
    metric: str
    value: float
    threshold: float


class ScoreRating(BaseModel):
    category: ScoreCategory
    label: str
    symbol: str
    minScore: int
    maxScore: int


class ScoreResult(BaseModel):
    breakdown: ScoreBreakdown
    category: ScoreCategory
    rating: ScoreRating
    recommendation: str
    redFlags: List[RedFlag] = []


# ==================== API ====================

class ParseRequest(BaseModel):
    strategy: str


class AnalyzeRequest(BaseModel):
    """Analyze Request (parse -> backtest -> score)"""
    strategy: str
    market: str = 'BTC'
    timeframe: str = '1h'
    bars: Optional[List[OHLCVData]] = None
    snapshots: Optional[List[MarketSnapshot]] = None


class ScoreRequest(BaseModel):
    metrics: MetricValues
    totalTrades: int = 50


class AnalysisResponse(BaseModel):
    success: bool = True
    strategy: Dict[str, Any]
    marketType: str
    backtest: BacktestResult
    score: ScoreResult
