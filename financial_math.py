import logging

import numpy as np
import pandas as pd

import config
from data_loader import empty_entries, normalize_entries

logger = logging.getLogger(__name__)

# ============================================================
# CONFIG / CONSTANTS
# ============================================================
HISTORICAL_PERIODS = {
    "MoM": pd.DateOffset(months=1),
    "YoY": pd.DateOffset(years=1),
}


# ------------------------------------------------------------
# Grouping and ordering
# ------------------------------------------------------------

def sort_by_date(entries, ascending: bool = False) -> pd.DataFrame:
    """Stable date sort; newest first by default."""
    df = normalize_entries(entries)
    return df.sort_values("date", ascending=ascending, kind="mergesort")


def group_by_date(entries) -> dict:
    """
    Partition entries into snapshots: {date: entries on that date}.
    Keys come in first-appearance order, rows keep input order.
    """
    df = normalize_entries(entries)
    return {d: g for d, g in df.groupby("date", sort=False)}


def group_by_platform(entries) -> dict:
    df = normalize_entries(entries)
    return {p: g for p, g in df.groupby("platform", sort=False)}


def sorted_dates(entries_by_date: dict) -> list:
    """All snapshot dates, newest first."""
    return sorted(entries_by_date.keys(), reverse=True)


def total_for_date(entries) -> float:
    df = normalize_entries(entries)
    if df.empty:
        return 0.0
    return float(df["amount"].sum())


# ------------------------------------------------------------
# Comparison snapshot lookup
# ------------------------------------------------------------
# all_dates is always newest-first (see sorted_dates). These are
# nearest-available approximations: "a month ago" is the snapshot closest
# to the naive date subtraction, not an exact calendar boundary.

def _snapshot(by_date: dict, date) -> pd.DataFrame:
    if date is None or date not in by_date:
        return empty_entries()
    return by_date[date]


def previous_snapshot(current_date, all_dates: list, by_date: dict) -> pd.DataFrame:
    """
    Snapshot immediately older than current_date.

      - current_date is the newest -> second newest
      - current_date is the oldest or unknown -> nearest strictly older date
      - nothing older -> empty frame
    """
    current = pd.Timestamp(current_date)

    if current in all_dates:
        idx = all_dates.index(current)
        if idx + 1 < len(all_dates):
            return _snapshot(by_date, all_dates[idx + 1])

    older = [d for d in all_dates if d < current]
    if not older:
        return empty_entries()
    return _snapshot(by_date, max(older))


def _adjacent_date(current, all_dates: list):
    """Neighbour of current_date in the newest-first list: older first, then newer."""
    if current in all_dates:
        idx = all_dates.index(current)
        if idx + 1 < len(all_dates):
            return all_dates[idx + 1]
        if idx > 0:
            return all_dates[idx - 1]
        return None

    older = [d for d in all_dates if d < current]
    if older:
        return max(older)
    newer = [d for d in all_dates if d > current]
    return min(newer) if newer else None


def historical_snapshot(current_date, period: str, all_dates: list, by_date: dict) -> pd.DataFrame:
    """
    Snapshot closest to current_date minus one month ('MoM') or one year ('YoY').

    Distance is the absolute day difference to the target; current_date itself
    is never a candidate and ties go to the first date in all_dates. With only
    one or two distinct dates, whatever else is available is used.
    """
    if period not in HISTORICAL_PERIODS:
        raise ValueError(f"Unsupported comparison period: {period}")

    current = pd.Timestamp(current_date)

    if not all_dates:
        return empty_entries()
    if len(all_dates) == 1:
        return _snapshot(by_date, all_dates[0])
    if len(all_dates) == 2 and current in all_dates:
        other = all_dates[1] if all_dates[0] == current else all_dates[0]
        return _snapshot(by_date, other)

    target = current - HISTORICAL_PERIODS[period]

    closest = None
    smallest_diff = None
    for d in all_dates:
        if d == current:
            continue
        diff = abs((d - target).days)
        if smallest_diff is None or diff < smallest_diff:
            smallest_diff = diff
            closest = d

    if closest is None:
        closest = _adjacent_date(current, all_dates)

    return _snapshot(by_date, closest)


def year_start_snapshot(current_date, all_dates: list, by_date: dict) -> pd.DataFrame:
    """
    Earliest snapshot in current_date's calendar year (the YTD baseline).

    Walks from current_date toward older dates and stops at the first
    year boundary. Without an older same-year snapshot, falls back to the
    adjacent date, and finally to current_date itself.
    """
    current = pd.Timestamp(current_date)

    if not all_dates:
        return empty_entries()

    if current in all_dates:
        start = all_dates.index(current) + 1
    else:
        start = next((i for i, d in enumerate(all_dates) if d < current), len(all_dates))

    earliest = None
    for d in all_dates[start:]:
        if d.year != current.year:
            break
        earliest = d

    if earliest is None:
        earliest = _adjacent_date(current, all_dates)
    if earliest is None:
        earliest = current

    return _snapshot(by_date, earliest)


# ------------------------------------------------------------
# Portfolio value series
# ------------------------------------------------------------

def build_value_series(entries) -> pd.DataFrame:
    """
    One point per distinct date, oldest first:

      value         = sum of amount across platforms on that date
      contributions = sum of contribution_amount on that date (absent = 0)
    """
    df = normalize_entries(entries)
    if df.empty:
        return pd.DataFrame(
            {"value": pd.Series(dtype=float), "contributions": pd.Series(dtype=float)},
            index=pd.DatetimeIndex([], name="date"),
        )

    series = df.groupby("date", sort=True)[["amount", "contribution_amount"]].sum()
    return series.rename(columns={"amount": "value", "contribution_amount": "contributions"})


# ------------------------------------------------------------
# Period returns
# ------------------------------------------------------------

def twr_period_returns(series: pd.DataFrame, max_abs_return: float = None) -> pd.Series:
    """
    Contribution-adjusted period returns (as fractions), indexed by period end:

        r_t = value_t / (value_{t-1} + contributions_t) - 1

    Money added during the period raises the base, so it never counts as
    a gain. Periods whose adjusted base is not positive are skipped. With
    max_abs_return set, returns of that magnitude or more are dropped as
    likely data-entry errors.
    """
    if len(series) < 2:
        return pd.Series(dtype=float)

    base = series["value"].shift(1) + series["contributions"]
    valid = base > 0
    returns = series["value"][valid] / base[valid] - 1.0

    if max_abs_return is not None:
        extreme = returns.abs() >= max_abs_return
        if extreme.any():
            logger.debug(
                "Dropping %d period return(s) beyond +/-%.0f%%: %s",
                int(extreme.sum()),
                max_abs_return * 100,
                [d.strftime("%Y-%m-%d") for d in returns.index[extreme]],
            )
        returns = returns[~extreme]

    return returns


def simple_period_returns(series: pd.DataFrame) -> pd.Series:
    """Plain period-over-period change of value, where the prior value is positive."""
    if len(series) < 2:
        return pd.Series(dtype=float)

    prev = series["value"].shift(1)
    valid = prev > 0
    return (series["value"][valid] - prev[valid]) / prev[valid]


def chain_link(returns: pd.Series) -> float:
    """Cumulative return from chained period returns (fraction)."""
    if len(returns) == 0:
        return 0.0
    return float(np.prod(1.0 + returns.to_numpy()) - 1.0)


# ------------------------------------------------------------
# Sampling frequency
# ------------------------------------------------------------

def average_days_between(dates) -> float:
    """Mean positive gap in days between consecutive observations."""
    idx = pd.DatetimeIndex(dates).sort_values()
    if len(idx) < 2:
        return float(config.DEFAULT_PERIOD_DAYS)

    gaps = np.diff(idx.to_numpy()).astype("timedelta64[D]").astype(int)
    gaps = gaps[gaps > 0]
    if len(gaps) == 0:
        return float(config.DEFAULT_PERIOD_DAYS)
    return float(gaps.mean())


def periods_per_year(dates) -> float:
    return config.DAYS_PER_YEAR / average_days_between(dates)


def years_between(start, end) -> float:
    return (pd.Timestamp(end) - pd.Timestamp(start)).days / config.DAYS_PER_YEAR_CALENDAR
