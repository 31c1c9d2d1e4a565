import logging

import numpy as np
import pandas as pd

import config
from data_loader import normalize_entries
from data_quality import DataQuality
from financial_math import (
    build_value_series,
    chain_link,
    periods_per_year,
    simple_period_returns,
    twr_period_returns,
)

logger = logging.getLogger(__name__)

# ============================================================
# CONFIG / CONSTANTS
# ============================================================
# tier -> (confidence_level, methodology)
METHODOLOGY = {
    DataQuality.ENHANCED: ("high", "enhanced_with_cash_flows"),
    DataQuality.MIXED: ("medium", "hybrid_analysis"),
    DataQuality.SNAPSHOT_ONLY: ("low", "snapshot_approximation"),
}
INSUFFICIENT_DATA = "insufficient_data"


def performance_tier(cash_flow_ratio: float) -> DataQuality:
    """
    Pick the calculation method from the share of entries carrying cash flows.

    Same 0.8 / 0.3 cut points as the data-quality classifier, but strict and
    counted over contribution-bearing entries only (a bare 'enhanced' hint
    does not count here).
    """
    if cash_flow_ratio > config.ENHANCED_THRESHOLD:
        return DataQuality.ENHANCED
    if cash_flow_ratio > config.MIXED_THRESHOLD:
        return DataQuality.MIXED
    return DataQuality.SNAPSHOT_ONLY


def analyze_performance_quality(entries) -> dict:
    df = normalize_entries(entries)
    total = len(df)
    flagged = int(df["has_cash_flow"].sum()) if total else 0
    ratio = flagged / total if total else 0.0

    tier = performance_tier(ratio)
    confidence, methodology = METHODOLOGY[tier]

    return {
        "tier": tier,
        "has_enhanced_data": flagged > 0,
        "has_snapshot_only_data": total - flagged > 0,
        "enhanced_data_ratio": ratio,
        "confidence_level": confidence,
        "methodology": methodology,
        "total_entries": total,
        "enhanced_entries": flagged,
        "snapshot_only_entries": total - flagged,
    }


# ------------------------------------------------------------
# Individual metrics (all returned as percentages, x100)
# ------------------------------------------------------------

def calculate_time_weighted_return(series: pd.DataFrame) -> float:
    """Chain-linked, contribution-adjusted return: market performance only."""
    return chain_link(twr_period_returns(series)) * 100.0


def calculate_money_weighted_return(series: pd.DataFrame) -> float:
    """
    Simplified money-weighted return: value change per dollar contributed.

    Not an IRR solve; timing of contributions inside the window is ignored.
    """
    if len(series) < 2:
        return 0.0

    total_contributions = float(series["contributions"].sum())
    if total_contributions <= 0:
        return 0.0

    initial_value = float(series["value"].iloc[0])
    final_value = float(series["value"].iloc[-1])
    return (final_value - initial_value) / total_contributions * 100.0


def calculate_cagr(series: pd.DataFrame) -> float:
    if len(series) < 2:
        return 0.0

    start_value = float(series["value"].iloc[0])
    end_value = float(series["value"].iloc[-1])
    days = (series.index[-1] - series.index[0]).days

    if days <= 0 or start_value <= 0:
        return 0.0

    ratio = end_value / start_value
    if ratio <= 0:
        # Wiped out (or flipped to debt): no real root to take
        return -100.0

    try:
        growth = ratio ** (config.DAYS_PER_YEAR_CALENDAR / days)
    except OverflowError:
        logger.debug("CAGR overflow over a %d-day span; reporting 0", days)
        return 0.0
    return (growth - 1.0) * 100.0


def calculate_total_return(series: pd.DataFrame) -> float:
    if len(series) < 2:
        return 0.0

    start_value = float(series["value"].iloc[0])
    end_value = float(series["value"].iloc[-1])
    if start_value <= 0:
        return 0.0
    return (end_value - start_value) / start_value * 100.0


def calculate_volatility(series: pd.DataFrame, annualize_always: bool = False) -> float:
    """
    Standard deviation of period-over-period changes, annualized by the
    detected sampling frequency.

    Unless annualize_always is set, short or very dense histories (fewer
    than 4 returns, or more than 50 periods a year) are reported as
    per-period volatility.
    """
    returns = simple_period_returns(series)
    if len(returns) == 0:
        return 0.0

    variance = float(np.var(returns.to_numpy()))
    ppy = periods_per_year(series.index)

    if not annualize_always and (
        len(returns) < config.MIN_ANNUALIZED_RETURNS or ppy > config.MAX_ANNUALIZED_PERIODS
    ):
        return float(np.sqrt(variance)) * 100.0
    return float(np.sqrt(variance * ppy)) * 100.0


# ------------------------------------------------------------
# Methods by data-quality tier
# ------------------------------------------------------------

def _empty_metrics() -> dict:
    return {
        "time_weighted_return": 0.0,
        "money_weighted_return": 0.0,
        "cagr": 0.0,
        "total_return": 0.0,
        "volatility": 0.0,
        "segments": None,
    }


def _distinct_dates(entries: pd.DataFrame) -> int:
    return entries["date"].nunique()


def _enhanced_metrics(entries: pd.DataFrame) -> dict:
    series = build_value_series(entries)
    return {
        "time_weighted_return": calculate_time_weighted_return(series),
        "money_weighted_return": calculate_money_weighted_return(series),
        "cagr": calculate_cagr(series),
        "total_return": calculate_total_return(series),
        "volatility": calculate_volatility(series, annualize_always=True),
        "segments": None,
    }


def _legacy_metrics(entries: pd.DataFrame) -> dict:
    # Without cash flows, contributions cannot be separated from growth:
    # TWR / MWR / CAGR would be misleading, so they are withheld.
    series = build_value_series(entries)
    return {
        "time_weighted_return": 0.0,
        "money_weighted_return": 0.0,
        "cagr": 0.0,
        "total_return": calculate_total_return(series),
        "volatility": calculate_volatility(series),
        "segments": None,
    }


def _hybrid_metrics(entries: pd.DataFrame) -> dict:
    enhanced_part = entries[entries["has_cash_flow"]]
    snapshot_part = entries[~entries["has_cash_flow"]]

    enhanced = _enhanced_metrics(enhanced_part) if _distinct_dates(enhanced_part) >= 2 else None
    legacy = _legacy_metrics(snapshot_part) if _distinct_dates(snapshot_part) >= 2 else None

    # Best effort over the combined history; MWR needs cash flows, so it
    # only comes from the contribution-bearing subset
    series = build_value_series(entries)
    return {
        "time_weighted_return": calculate_time_weighted_return(series),
        "money_weighted_return": enhanced["money_weighted_return"] if enhanced else 0.0,
        "cagr": calculate_cagr(series),
        "total_return": calculate_total_return(series),
        "volatility": calculate_volatility(series, annualize_always=True),
        "segments": {"enhanced": enhanced, "snapshot_only": legacy},
    }


def calculate_performance(entries) -> dict:
    """
    Portfolio performance over a full entry history.

    Returns TWR, MWR, CAGR, total return and volatility (percentages) plus
    data_quality_info with the methodology used and a confidence level,
    so callers can caveat or hide numbers:

      - ENHANCED      (> 80% cash-flow entries): full metrics, high confidence
      - MIXED         (> 30%): combined-series metrics, MWR from the
                      cash-flow subset only, medium confidence
      - SNAPSHOT_ONLY : total return and volatility only, low confidence
    """
    df = normalize_entries(entries)

    if len(df) < 2:
        info = analyze_performance_quality(df)
        info.update({"confidence_level": "low", "methodology": INSUFFICIENT_DATA})
        metrics = _empty_metrics()
        metrics["data_quality_info"] = info
        return metrics

    df = df.sort_values("date", kind="mergesort")
    info = analyze_performance_quality(df)
    tier = info["tier"]

    if tier is DataQuality.ENHANCED:
        metrics = _enhanced_metrics(df)
    elif tier is DataQuality.MIXED:
        metrics = _hybrid_metrics(df)
    elif tier is DataQuality.SNAPSHOT_ONLY:
        metrics = _legacy_metrics(df)
    else:
        raise ValueError(f"No performance method for tier: {tier}")

    logger.debug(
        "Performance via %s (%.0f%% cash-flow entries)",
        info["methodology"], info["enhanced_data_ratio"] * 100,
    )
    metrics["data_quality_info"] = info
    return metrics
