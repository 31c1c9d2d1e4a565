import logging

import numpy as np
import pandas as pd

import config
from data_loader import normalize_entries
from data_quality import DataQuality, classify
from financial_math import build_value_series, periods_per_year, twr_period_returns

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Diversification (works on any data quality)
# ------------------------------------------------------------

def calculate_diversification_score(weights: np.ndarray) -> float:
    """
    0-100 composite:
      + up to 40 for platform count (8 per platform)
      - 60 per unit of weight above 50% in the largest platform
      + up to 10 for balance toward equal weighting
    """
    n = len(weights)
    if n == 0:
        return 0.0

    platform_score = min(40.0, n * 8.0)

    largest = float(weights.max())
    concentration_penalty = (largest - 0.5) * 60.0 if largest > 0.5 else 0.0

    ideal = 1.0 / n
    balance_score = max(0.0, 10.0 - 100.0 * float(((weights - ideal) ** 2).sum()))

    raw = platform_score - concentration_penalty + balance_score
    return float(max(0.0, min(100.0, raw)))


def calculate_diversification_metrics(entries) -> dict:
    df = normalize_entries(entries)

    if df.empty:
        return {
            "score": 0.0,
            "platform_count": 0,
            "concentration_risk": 0.0,
            "largest_platform_weight": 0.0,
        }

    exposure = df["amount"].abs().groupby(df["platform"], sort=False).sum()
    total = float(exposure.sum())

    if total <= 0:
        return {
            "score": 0.0,
            "platform_count": len(exposure),
            "concentration_risk": 0.0,
            "largest_platform_weight": 0.0,
        }

    weights = (exposure / total).to_numpy()

    return {
        "score": calculate_diversification_score(weights),
        "platform_count": len(exposure),
        # Herfindahl index: 1/n when equally weighted, 1.0 for a single platform
        "concentration_risk": float((weights ** 2).sum()),
        "largest_platform_weight": float(weights.max()),
    }


# ------------------------------------------------------------
# Drawdown
# ------------------------------------------------------------

def compute_drawdown_series(values: pd.Series) -> pd.Series:
    """
    Fractional decline from the running high-water mark
    (0.25 = 25% below the best value seen so far).

    Points before any positive peak read 0.
    """
    if values.empty:
        return pd.Series(dtype=float)

    hwm = values.cummax()
    drawdown = (hwm - values) / hwm
    return drawdown.where(hwm > 0, 0.0)


def calculate_max_drawdown_duration(values: pd.Series) -> int:
    """Longest stretch in days spent below a prior peak, from the first underwater date."""
    if len(values) < 2:
        return 0

    max_duration = 0
    current_duration = 0
    peak = values.iloc[0]
    underwater_since = None

    for date, value in values.items():
        if value > peak:
            peak = value
            if underwater_since is not None and current_duration > max_duration:
                max_duration = current_duration
            current_duration = 0
            underwater_since = None
        elif value < peak:
            if underwater_since is None:
                underwater_since = date
                current_duration = 0
            else:
                current_duration = (date - underwater_since).days

    # Still underwater at the end
    if underwater_since is not None and current_duration > max_duration:
        max_duration = current_duration

    return int(max_duration)


# ------------------------------------------------------------
# Return-based statistics (inputs are period-return fractions)
# ------------------------------------------------------------

def calculate_annualized_volatility(returns, ppy: float) -> float:
    returns = np.asarray(returns, dtype=float)
    if len(returns) < 2:
        return 0.0
    return float(np.std(returns, ddof=1) * np.sqrt(ppy))


def calculate_downside_deviation(returns, ppy: float) -> float:
    returns = np.asarray(returns, dtype=float)
    negative = returns[returns < 0]
    if len(negative) < 2:
        return 0.0
    return float(np.std(negative, ddof=1) * np.sqrt(ppy))


def calculate_value_at_risk(returns, confidence: float) -> float:
    """Historical VaR: magnitude of the (1 - confidence) percentile period return."""
    returns = np.sort(np.asarray(returns, dtype=float))
    if len(returns) < 2:
        return 0.0
    index = int(np.floor((1.0 - confidence) * len(returns)))
    return abs(float(returns[max(0, index)]))


def calculate_sharpe_ratio(returns) -> float:
    returns = np.asarray(returns, dtype=float)
    if len(returns) < 2:
        return 0.0
    std = float(np.std(returns, ddof=1))
    if std <= 0:
        return 0.0
    return (float(returns.mean()) - config.PERIOD_RISK_FREE_RATE) / std


def calculate_sortino_ratio(returns) -> float:
    returns = np.asarray(returns, dtype=float)
    negative = returns[returns < 0]
    if len(negative) < 2:
        return 0.0
    downside = float(np.sqrt((negative ** 2).mean()))
    if downside <= 0:
        return 0.0
    return (float(returns.mean()) - config.PERIOD_RISK_FREE_RATE) / downside


# ------------------------------------------------------------
# Investment risk (ENHANCED data only)
# ------------------------------------------------------------

def _empty_investment_risk_metrics() -> dict:
    return {
        "annualized_volatility": 0.0,
        "downside_deviation": 0.0,
        "max_drawdown": 0.0,
        "max_drawdown_duration": 0,
        "current_drawdown": 0.0,
        "value_at_risk_95": 0.0,
        "value_at_risk_99": 0.0,
        "sharpe_ratio": 0.0,
        "sortino_ratio": 0.0,
    }


def calculate_investment_risk_metrics(entries) -> dict:
    """
    Risk statistics from contribution-adjusted (TWR) period returns, so
    deposits never show up as volatility. All values are fractions.
    """
    series = build_value_series(entries)
    returns = twr_period_returns(series, max_abs_return=config.MAX_PERIOD_RETURN).to_numpy()

    if len(returns) < 2:
        return _empty_investment_risk_metrics()

    ppy = periods_per_year(series.index)
    values = series["value"]
    drawdown = compute_drawdown_series(values)
    var_95, var_99 = (calculate_value_at_risk(returns, c) for c in config.VAR_CONFIDENCE_LEVELS)

    return {
        "annualized_volatility": calculate_annualized_volatility(returns, ppy),
        "downside_deviation": calculate_downside_deviation(returns, ppy),
        "max_drawdown": float(drawdown.max()),
        "max_drawdown_duration": calculate_max_drawdown_duration(values),
        "current_drawdown": float(drawdown.iloc[-1]),
        "value_at_risk_95": var_95,
        "value_at_risk_99": var_99,
        "sharpe_ratio": calculate_sharpe_ratio(returns),
        "sortino_ratio": calculate_sortino_ratio(returns),
    }


# ------------------------------------------------------------
# What is missing and how to fix it
# ------------------------------------------------------------

def generate_limitations(tier: DataQuality, total_entries: int) -> list:
    limitations = []

    if tier is DataQuality.SNAPSHOT_ONLY:
        limitations.append("Investment risk metrics unavailable - portfolio changes include contributions")
        limitations.append("Cannot separate market performance from cash flows")
        limitations.append("Volatility and drawdown analysis not meaningful")
    elif tier is DataQuality.MIXED:
        limitations.append("Limited investment risk analysis - partial contribution data")
        limitations.append("Risk metrics may not reflect full portfolio history")
    elif tier is not DataQuality.ENHANCED:
        raise ValueError(f"Unknown data quality tier: {tier}")

    if total_entries < config.LOW_SAMPLE_ENTRIES:
        limitations.append("Limited historical data - metrics may not be representative")

    return limitations


def generate_improvements(tier: DataQuality, total_entries: int) -> list:
    improvements = []

    if tier is DataQuality.SNAPSHOT_ONLY:
        improvements.append("Add contribution amounts to unlock investment risk analysis")
        improvements.append("Track deposits/withdrawals separately from market performance")
        improvements.append("Record contribution amounts with future entries")
    elif tier is DataQuality.MIXED:
        improvements.append("Add contribution data to remaining entries")
        improvements.append("Complete historical contribution tracking")
    elif tier is not DataQuality.ENHANCED:
        raise ValueError(f"Unknown data quality tier: {tier}")

    if total_entries < config.SHORT_HISTORY_ENTRIES:
        improvements.append("Add more historical data for better trend analysis")

    return improvements


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def calculate_risk(entries, quality_report: dict = None) -> dict:
    """
    Risk analysis that only shows what the data can support.

    Diversification is always computed. Investment risk metrics need
    ENHANCED data; for MIXED or SNAPSHOT_ONLY histories
    `investment_risk_metrics` is None and must be shown as unavailable,
    never as zero.

    Pass the history's `classify()` report as quality_report to keep one
    classification per history; it is computed here when omitted.
    """
    df = normalize_entries(entries)
    report = quality_report if quality_report is not None else classify(df)
    tier = DataQuality(report["data_quality"])

    diversification = calculate_diversification_metrics(df)

    if tier is DataQuality.ENHANCED:
        investment = calculate_investment_risk_metrics(df)
    elif tier is DataQuality.MIXED:
        investment = None
    elif tier is DataQuality.SNAPSHOT_ONLY:
        investment = None
    else:
        raise ValueError(f"Unknown data quality tier: {tier}")

    if investment is None:
        logger.debug("Investment risk metrics locked for %s data", tier.value)

    return {
        "data_quality": tier,
        "portfolio_data_summary": {
            "total_entries": report["total_entries"],
            "enhanced_entries": report["enhanced_entries"],
            "snapshot_only_entries": report["snapshot_only_entries"],
            "coverage_period": report["coverage_period"],
        },
        "diversification_metrics": diversification,
        "investment_risk_metrics": investment,
        "limitations": generate_limitations(tier, report["total_entries"]),
        "improvements": generate_improvements(tier, report["total_entries"]),
    }
