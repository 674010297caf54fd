"""
Score Calculator
PerformanceMetrics -> 0-100 score: five 0-20 sub-scores, bonus, penalty, red flags.
"""
from typing import Dict, List

from demystify.models import MetricValues, RedFlag, ScoreBreakdown, ScoreRating, ScoreResult


# ==================== SUB-SCORES (0-20) ====================

def calculate_pf_score(profit_factor: float) -> float:
    if profit_factor >= 2.5:
        return 20
    if profit_factor >= 2.0:
        return 16
    if profit_factor >= 1.5:
        return 12
    if profit_factor >= 1.2:
        return 8
    return round(max(0.0, (profit_factor - 1.0) * 20), 4)  # linear 1.0 -> 1.2


def calculate_mdd_score(max_drawdown: float) -> float:
    """Lower drawdown scores higher"""
    if max_drawdown <= 5:
        return 20
    if max_drawdown <= 10:
        return 16
    if max_drawdown <= 15:
        return 12
    if max_drawdown <= 25:
        return 8
    if max_drawdown <= 35:
        return 4
    return round(max(0.0, 4 - (max_drawdown - 35) * 0.4), 4)  # 4 -> 0 across 35 -> 45


def calculate_sharpe_score(sharpe_ratio: float) -> float:
    if sharpe_ratio >= 2.0:
        return 20
    if sharpe_ratio >= 1.5:
        return 16
    if sharpe_ratio >= 1.0:
        return 12
    if sharpe_ratio >= 0.5:
        return 8
    return round(max(0.0, sharpe_ratio * 16), 4)  # linear 0 -> 0.5


def calculate_cagr_score(cagr: float) -> float:
    if cagr >= 50:
        return 20
    if cagr >= 30:
        return 18
    if cagr >= 25:
        return 16
    if cagr >= 20:
        return 14
    if cagr >= 15:
        return 12
    if cagr >= 10:
        return 8
    if cagr >= 5:
        return 4
    return round(max(0.0, cagr * 0.8), 4)


def calculate_win_rate_score(win_rate: float) -> float:
    if win_rate >= 65:
        return 20
    if win_rate >= 60:
        return 16
    if win_rate >= 55:
        return 12
    if win_rate >= 50:
        return 8
    if win_rate >= 45:
        return 4
    return round(min(4.0, max(0.0, win_rate * 0.09)), 4)


def _sub_scores(metrics: MetricValues) -> Dict[str, float]:
    return {
        'profitFactor': calculate_pf_score(metrics.profitFactor),
        'maxDrawdown': calculate_mdd_score(metrics.maxDrawdown),
        'sharpeRatio': calculate_sharpe_score(metrics.sharpeRatio),
        'cagr': calculate_cagr_score(metrics.cagr),
        'winRate': calculate_win_rate_score(metrics.winRate),
    }


# ==================== BONUS / PENALTY ====================

def calculate_bonus(metrics: MetricValues) -> float:
    bonus = 0

    # Low risk + high return
    if metrics.maxDrawdown < 10 and metrics.cagr > 25:
        bonus += 5

    # Consistent excellence
    if all(score >= 14 for score in _sub_scores(metrics).values()):
        bonus += 5

    # Risk management
    if metrics.sharpeRatio > 2.0 and metrics.maxDrawdown < 15:
        bonus += 3

    return min(10, bonus)


def calculate_penalty(metrics: MetricValues) -> float:
    penalty = 0

    # Overfitting
    if metrics.winRate > 75 or metrics.profitFactor > 3.5:
        penalty += 5

    # Excessive risk
    if metrics.maxDrawdown > 30 or metrics.sharpeRatio < 0.5:
        penalty += 5

    # Poor risk/reward
    if metrics.cagr < 10 and metrics.maxDrawdown > 20:
        penalty += 3

    return min(10, penalty)


# ==================== RED FLAGS ====================

def detect_red_flags(metrics: MetricValues, total_trades: int) -> List[RedFlag]:
    """Informational flags, in rule order"""
    flags: List[RedFlag] = []

    if total_trades < 30:
        flags.append(RedFlag(
            type='small_sample', severity='warning',
            message=f'Only {total_trades} trades - insufficient data for reliable analysis',
            metric='totalTrades', value=total_trades, threshold=30,
        ))

    if metrics.winRate > 75:
        flags.append(RedFlag(
            type='overfitting', severity='warning',
            message='Win rate >75% suggests potential overfitting',
            metric='winRate', value=metrics.winRate, threshold=75,
        ))

    if metrics.profitFactor > 3.5:
        flags.append(RedFlag(
            type='overfitting', severity='warning',
            message='Profit Factor >3.5 may indicate overfitting',
            metric='profitFactor', value=metrics.profitFactor, threshold=3.5,
        ))

    if metrics.maxDrawdown > 30:
        flags.append(RedFlag(
            type='excessive_risk', severity='critical',
            message='Max drawdown >30% indicates excessive risk exposure',
            metric='maxDrawdown', value=metrics.maxDrawdown, threshold=30,
        ))

    if metrics.sharpeRatio < 0.5:
        flags.append(RedFlag(
            type='excessive_risk', severity='critical',
            message='Sharpe ratio <0.5 suggests poor risk-adjusted returns',
            metric='sharpeRatio', value=metrics.sharpeRatio, threshold=0.5,
        ))

    if metrics.cagr < 10 and metrics.maxDrawdown > 20:
        flags.append(RedFlag(
            type='poor_returns', severity='critical',
            message='CAGR <10% with MDD >20% indicates poor risk/reward',
            metric='cagr', value=metrics.cagr, threshold=10,
        ))

    if metrics.winRate < 45 and metrics.profitFactor > 2.0:
        flags.append(RedFlag(
            type='high_variance', severity='warning',
            message='Low win rate with high profit factor suggests inconsistent performance',
            metric='winRate', value=metrics.winRate, threshold=45,
        ))

    return flags


# ==================== CATEGORIES ====================

SCORE_CATEGORIES: Dict[str, ScoreRating] = {
    'exceptional': ScoreRating(category='exceptional', label='Exceptional', symbol='🌟', minScore=90, maxScore=100),
    'excellent': ScoreRating(category='excellent', label='Excellent', symbol='🏆', minScore=75, maxScore=89),
    'good': ScoreRating(category='good', label='Good', symbol='✓', minScore=60, maxScore=74),
    'fair': ScoreRating(category='fair', label='Fair', symbol='⚠', minScore=40, maxScore=59),
    'poor': ScoreRating(category='poor', label='Poor', symbol='✕', minScore=0, maxScore=39),
}

RECOMMENDATIONS: Dict[str, str] = {
    'exceptional': 'Deploy with confidence after validation',
    'excellent': 'Deploy after thorough validation',
    'good': 'Deploy with caution and proper risk management',
    'fair': 'Do NOT deploy - requires significant revision',
    'poor': 'Reject - strategy is fundamentally flawed',
}


def get_score_category(total_score: float) -> ScoreRating:
    if total_score >= 90:
        return SCORE_CATEGORIES['exceptional']
    if total_score >= 75:
        return SCORE_CATEGORIES['excellent']
    if total_score >= 60:
        return SCORE_CATEGORIES['good']
    if total_score >= 40:
        return SCORE_CATEGORIES['fair']
    return SCORE_CATEGORIES['poor']


def get_recommendation(category: str) -> str:
    return RECOMMENDATIONS.get(category, 'Unknown category')


# ==================== TOTAL ====================

def calculate_total_score(metrics: MetricValues, total_trades: int = 50) -> ScoreResult:
    """Composite 0-100 score for a set of metrics"""
    scores = _sub_scores(metrics)
    bonus = calculate_bonus(metrics)
    penalty = calculate_penalty(metrics)
    total = min(100, max(0, sum(scores.values()) + bonus - penalty))

    rating = get_score_category(total)
    return ScoreResult(
        breakdown=ScoreBreakdown(**scores, bonus=bonus, penalty=penalty, total=total),
        category=rating.category,
        rating=rating,
        recommendation=get_recommendation(rating.category),
        redFlags=detect_red_flags(metrics, total_trades),
    )
