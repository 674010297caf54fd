"""
Strategy Parser
Free-text strategy description -> StrategyParameters.

Each detector takes the lower-cased description and returns an optional
PatternMatch fragment. Detectors run in PATTERN_DETECTORS order and their
fragments are merged. A binary-market match that also carries a time window
or a price threshold stops the traditional (indicator) detectors from running.
"""
import re
from typing import Callable, List, NamedTuple, Optional, Tuple
from pydantic import BaseModel

from demystify import RSI_PERIOD, RSI_OVERSOLD, RSI_OVERBOUGHT, BREAKOUT_LOOKBACK
from demystify.models import (
    BinaryMarketParams, BollingerTouchCondition, BreakoutCondition, Condition,
    Indicator, MaCrossCondition, MacdCrossCondition, PriceThresholdCondition,
    RsiThresholdCondition, SideSelectCondition, StrategyParameters,
    TimeWindowCondition, Timeframe, UnrecognizedPattern,
)


class PatternMatch(BaseModel):
    """Fragment produced by a single detector"""
    indicators: List[Indicator] = []
    entryConditions: List[Condition] = []
    exitConditions: List[Condition] = []
    recognizedPatterns: List[str] = []
    unrecognized: List[UnrecognizedPattern] = []
    stopLoss: Optional[float] = None
    takeProfit: Optional[float] = None
    timeframe: Optional[Timeframe] = None
    binary: Optional[BinaryMarketParams] = None


class PatternDetector(NamedTuple):
    name: str
    detect: Callable[[str], Optional[PatternMatch]]
    traditional: bool


# ---------------------------------------------------------------------------
# Binary (prediction) markets
# ---------------------------------------------------------------------------

BINARY_KEYWORDS = re.compile(
    r"polymarket|\b15m(?:in)?\b|binary|\byes\s*/\s*no\b|\bup\s*side\b|\bdown\s*side\b|\blong\s*/\s*short\b"
)
TIME_WINDOW = re.compile(r"last\s*(\d+)\s*(seconds?|secs?|s|minutes?|mins?)\b")
PRICE_DECIMAL = re.compile(r"(?<![\d.])(0?\.\d{1,4})(?![\d.])(?!\s*%)")
PRICE_CENTS = re.compile(r"(?<![\d.])(\d{1,2})\s*(?:¢|cents?\b|c\b)")
PRICE_BARE = re.compile(
    r"(?:\bat|\babove|\bover|>=|>|\bprice)\s*(\d{1,2})(?![\d.%])(?!\s*%)"
    r"(?!\s*(?:s|secs?|seconds?|m|mins?|minutes?|h|hours?|days?|periods?|bars?|candles?"
    r"|gün|günlük|[se]?ma|rsi)\b)"
)
# "yes/no", "long/short" etc. name the market type, not a side
SIDE_PAIRS = re.compile(
    r"yes\s*/\s*no|no\s*/\s*yes|up\s*(?:side)?\s*/\s*down\s*(?:side)?|down\s*(?:side)?\s*/\s*up\s*(?:side)?"
    r"|long\s*/\s*short|short\s*/\s*long"
)
SIDE_WHICHEVER = re.compile(r"\bwhichever\b|\beither\s+side\b|\bany\s+side\b|\bboth\s+sides\b")
SIDE_UP = re.compile(r"\b(?:up|long|yes)\b")
SIDE_DOWN = re.compile(r"\b(?:down|short|no)\b")
ASSETS = {
    'btc': 'BTC', 'bitcoin': 'BTC',
    'eth': 'ETH', 'ethereum': 'ETH',
    'sol': 'SOL', 'solana': 'SOL',
    'xrp': 'XRP',
}
ASSET_PATTERN = re.compile(r"\b(" + "|".join(ASSETS) + r")\b")


def _time_window_seconds(text: str) -> Optional[int]:
    match = TIME_WINDOW.search(text)
    if not match:
        return None
    value = int(match.group(1))
    unit = match.group(2)
    if unit.startswith('m'):
        return value * 60
    return value


def _price_threshold(text: str) -> Optional[float]:
    """Entry price as a 0-1 fraction (cent quotes are divided by 100)"""
    match = PRICE_DECIMAL.search(text)
    if match:
        return min(1.0, float(match.group(1)))

    match = PRICE_CENTS.search(text)
    if match:
        return int(match.group(1)) / 100.0

    match = PRICE_BARE.search(text)
    if match:
        value = float(match.group(1))
        return value / 100.0 if value > 1 else value

    return None


def _side_selection(text: str):
    """Returns (side, ambiguous)"""
    text = SIDE_PAIRS.sub(' ', text)
    if SIDE_WHICHEVER.search(text):
        return 'whichever', False

    wants_up = SIDE_UP.search(text) is not None
    wants_down = SIDE_DOWN.search(text) is not None
    if wants_up and wants_down:
        return None, True
    if wants_up:
        return 'up', False
    if wants_down:
        return 'down', False
    return None, False


def detect_binary_market(text: str) -> Optional[PatternMatch]:
    if not BINARY_KEYWORDS.search(text):
        return None

    match = PatternMatch(recognizedPatterns=['Binary_Market'])
    asset_match = ASSET_PATTERN.search(text)
    binary = BinaryMarketParams(asset=ASSETS[asset_match.group(1)] if asset_match else None)

    seconds = _time_window_seconds(text)
    if seconds is not None:
        binary.timeWindowSeconds = seconds
        match.entryConditions.append(TimeWindowCondition(seconds=seconds))
        match.recognizedPatterns.append('Time_Window_Entry')

    threshold = _price_threshold(text)
    if threshold is not None:
        binary.priceThreshold = threshold
        match.entryConditions.append(PriceThresholdCondition(threshold=threshold))
        match.recognizedPatterns.append('Price_Threshold')

    side, ambiguous = _side_selection(text)
    if side is not None:
        binary.sideSelection = side
        match.entryConditions.append(SideSelectCondition(side=side))
        match.recognizedPatterns.append('Side_Selection')
    elif ambiguous:
        match.unrecognized.append(UnrecognizedPattern(
            pattern='Ambiguous_Side_Selection',
            reason='Both up and down sides are mentioned without "whichever"; the traded side must be clarified',
            confidence=0.5,
            note='Rephrase as "whichever side", "up/yes side" or "down/no side"',
        ))

    match.binary = binary
    return match


def is_binary_short_circuit(match: PatternMatch) -> bool:
    binary = match.binary
    return binary is not None and (
        binary.timeWindowSeconds is not None or binary.priceThreshold is not None
    )


# ---------------------------------------------------------------------------
# Unsupported strategy classes / metadata
# ---------------------------------------------------------------------------

ORDER_FLOW_CUES = [
    re.compile(r"order\s*flow|orderflow"),
    re.compile(r"scalping|scapling|\bscalp\b"),
    re.compile(r"(?<![\d.])\d{2}\s*(?:c\b|¢)"),
    re.compile(r"last\s*\d+\s*(?:sec|second)"),
]


def detect_order_flow(text: str) -> Optional[PatternMatch]:
    hits = sum(1 for cue in ORDER_FLOW_CUES if cue.search(text))
    if hits == 0:
        return None
    return PatternMatch(unrecognized=[UnrecognizedPattern(
        pattern='Order_Flow_Scalping',
        reason='Advanced order flow strategies require CVD/Order Book data not available in standard OHLCV',
        confidence=min(1.0, 0.4 + 0.2 * hits),
        note='This strategy type requires real-time order book data',
    )])


TIMEFRAME = re.compile(r"(\d+)([smh])\s*(?:market|timeframe|tf)\b")


def detect_timeframe(text: str) -> Optional[PatternMatch]:
    match = TIMEFRAME.search(text)
    if not match:
        return None
    value, unit = int(match.group(1)), match.group(2)
    return PatternMatch(
        timeframe=Timeframe(value=value, unit=unit, description=f"{value}{unit} timeframe detected"),
        recognizedPatterns=['Timeframe_Specification'],
    )


# ---------------------------------------------------------------------------
# Traditional indicator strategies
# ---------------------------------------------------------------------------

# "RSI 30'da al, 70'te sat", "rsi(14) below 30 sell above 70", "rsi 14 below 30"
RSI_KEYWORD = re.compile(r"\brsi(?![a-z])")
RSI_PERIOD_AFTER = re.compile(
    r"\s*(?:\(\s*(\d+)\s*\)|(\d{1,2})(?=\s*(?:-?\s*periods?\b|below|under|above|over|<|>)))"
)
RSI_PERIOD_BEFORE = re.compile(r"(\d+)\s*-?\s*(?:periods?|days?|gün|günlük)\s*rsi(?![a-z])")
# Thresholds are read up to the end of the sentence or the next "rsi"
CLAUSE_END = re.compile(r"[.;\n](?!\d)")
RSI_LEVEL = re.compile(
    r"(?<![\d.])(\d{1,3}(?:\.\d+)?)(?![\d.])"
    r"(?!\s*(?:%|-?\s*(?:days?|periods?|bars?|candles?|gün|günlük)\b|[smh]\b))"
)


def _rsi_period(text: str, keyword: re.Match) -> Tuple[int, int]:
    """(period, index where the threshold clause starts)"""
    after = RSI_PERIOD_AFTER.match(text, keyword.end())
    if after:
        return int(after.group(1) or after.group(2)), after.end()
    before = RSI_PERIOD_BEFORE.search(text)
    if before:
        return int(before.group(1)), keyword.end()
    return RSI_PERIOD, keyword.end()


def _rsi_levels(text: str, keywords: List[re.Match], start: int) -> List[float]:
    levels: List[float] = []
    for k, keyword in enumerate(keywords):
        begin = start if k == 0 else keyword.end()
        end = keywords[k + 1].start() if k + 1 < len(keywords) else len(text)
        stop = CLAUSE_END.search(text, begin, end)
        if stop:
            end = stop.start()
        for raw in RSI_LEVEL.findall(text, begin, end):
            value = float(raw)
            if 0 < value <= 100:
                levels.append(value)
    return levels


def detect_rsi(text: str) -> Optional[PatternMatch]:
    keywords = list(RSI_KEYWORD.finditer(text))
    if not keywords:
        return None

    period, start = _rsi_period(text, keywords[0])
    levels = _rsi_levels(text, keywords, start)
    if len(levels) >= 2:
        low, high = sorted(levels[:2])
    elif levels and levels[0] >= 50:
        low, high = RSI_OVERSOLD, levels[0]
    elif levels:
        low, high = levels[0], RSI_OVERBOUGHT
    else:
        low, high = RSI_OVERSOLD, RSI_OVERBOUGHT

    return PatternMatch(
        indicators=[Indicator(type='RSI', period=period)],
        entryConditions=[RsiThresholdCondition(comparator='<', value=low, period=period)],
        exitConditions=[RsiThresholdCondition(comparator='>', value=high, period=period)],
        recognizedPatterns=['RSI_Mean_Reversion'],
    )


# "50 günlük MA", "50 day MA", "20 period" ("14 period rsi" excluded)
MA_PERIOD = re.compile(r"(\d+)\s*-?\s*(?:günlük|gün|day|period)(?!\s*rsi)")
MA_EXPLICIT = re.compile(r"\b[se]?ma\s*\(?\s*(\d+)")


def detect_moving_average(text: str) -> Optional[PatternMatch]:
    periods: List[int] = []
    for raw in MA_PERIOD.findall(text) + MA_EXPLICIT.findall(text):
        period = int(raw)
        if period > 0 and period not in periods:
            periods.append(period)
    if not periods:
        return None

    return PatternMatch(
        indicators=[Indicator(type='MA', period=p) for p in periods],
        entryConditions=[MaCrossCondition(direction='cross_above', period=periods[0])],
        exitConditions=[MaCrossCondition(direction='cross_below', period=periods[0])],
        recognizedPatterns=['MA_Crossover'],
    )


MACD = re.compile(r"\bmacd\b")


def detect_macd(text: str) -> Optional[PatternMatch]:
    if not MACD.search(text):
        return None
    return PatternMatch(
        indicators=[Indicator(type='MACD')],
        entryConditions=[MacdCrossCondition(direction='bullish_cross')],
        exitConditions=[MacdCrossCondition(direction='bearish_cross')],
        recognizedPatterns=['MACD'],
    )


BOLLINGER = re.compile(r"bollinger|\bbb\b|\bbands?\b")


def detect_bollinger(text: str) -> Optional[PatternMatch]:
    if not BOLLINGER.search(text):
        return None
    return PatternMatch(
        indicators=[Indicator(type='BollingerBands', period=20)],
        entryConditions=[BollingerTouchCondition(band='lower')],
        exitConditions=[BollingerTouchCondition(band='upper')],
        recognizedPatterns=['Bollinger_Bands'],
    )


STOP_LOSS = [
    re.compile(r"(\d+(?:\.\d+)?)\s*%?\s*stop[\s-]*loss"),
    re.compile(r"stop[\s-]*loss\s*(?:of|at)?\s*(\d+(?:\.\d+)?)\s*%"),
]
TAKE_PROFIT = [
    re.compile(r"(\d+(?:\.\d+)?)\s*%?\s*take[\s-]*profit"),
    re.compile(r"take[\s-]*profit\s*(?:of|at)?\s*(\d+(?:\.\d+)?)\s*%"),
]


def _first_percent(patterns, text: str) -> Optional[float]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return float(match.group(1))
    return None


def detect_stop_loss(text: str) -> Optional[PatternMatch]:
    value = _first_percent(STOP_LOSS, text)
    if value is None:
        return None
    return PatternMatch(stopLoss=value, recognizedPatterns=['Stop_Loss'])


def detect_take_profit(text: str) -> Optional[PatternMatch]:
    value = _first_percent(TAKE_PROFIT, text)
    if value is None:
        return None
    return PatternMatch(takeProfit=value, recognizedPatterns=['Take_Profit'])


BREAKOUT = re.compile(r"breakout|break\s*out")


def detect_breakout(text: str) -> Optional[PatternMatch]:
    if not BREAKOUT.search(text):
        return None
    return PatternMatch(
        entryConditions=[BreakoutCondition(lookback=BREAKOUT_LOOKBACK)],
        recognizedPatterns=['Breakout'],
    )


SUPPORT_RESISTANCE = re.compile(r"support|resistance|\bs/r\b|\bsr\b")


def detect_support_resistance(text: str) -> Optional[PatternMatch]:
    if not SUPPORT_RESISTANCE.search(text):
        return None
    return PatternMatch(recognizedPatterns=['Support_Resistance'])


# ---------------------------------------------------------------------------
# PATTERN_DETECTORS registry (order matters)
# ---------------------------------------------------------------------------

PATTERN_DETECTORS: List[PatternDetector] = [
    PatternDetector('binary_market', detect_binary_market, False),
    PatternDetector('order_flow', detect_order_flow, False),
    PatternDetector('timeframe', detect_timeframe, False),
    # Traditional
    PatternDetector('rsi', detect_rsi, True),
    PatternDetector('moving_average', detect_moving_average, True),
    PatternDetector('macd', detect_macd, True),
    PatternDetector('bollinger', detect_bollinger, True),
    PatternDetector('stop_loss', detect_stop_loss, True),
    PatternDetector('take_profit', detect_take_profit, True),
    PatternDetector('breakout', detect_breakout, True),
    PatternDetector('support_resistance', detect_support_resistance, True),
]


def _merge(fragments: List[PatternMatch]) -> StrategyParameters:
    params = StrategyParameters()
    for fragment in fragments:
        params.indicators.extend(fragment.indicators)
        params.entryConditions.extend(fragment.entryConditions)
        params.exitConditions.extend(fragment.exitConditions)
        params.recognizedPatterns.extend(fragment.recognizedPatterns)
        params.unrecognized.extend(fragment.unrecognized)
        if params.stopLoss is None:
            params.stopLoss = fragment.stopLoss
        if params.takeProfit is None:
            params.takeProfit = fragment.takeProfit
        if params.timeframe is None:
            params.timeframe = fragment.timeframe
        if fragment.binary is not None:
            params.isBinaryMarket = True
            params.binary = fragment.binary
    return params


def parse_strategy(description: str) -> StrategyParameters:
    """Parse a free-text strategy description. Never raises; unmatched text gives empty lists."""
    text = str(description or '').lower()

    fragments: List[PatternMatch] = []
    skip_traditional = False
    for detector in PATTERN_DETECTORS:
        if skip_traditional and detector.traditional:
            continue
        match = detector.detect(text)
        if match is None:
            continue
        fragments.append(match)
        if detector.name == 'binary_market' and is_binary_short_circuit(match):
            skip_traditional = True

    return _merge(fragments)
