import pandas as pd

from data_loader import normalize_entries


def empty_summary() -> dict:
    return {
        "total_value": 0.0,
        "total_previous_value": 0.0,
        "percent_change": 0.0,
        "absolute_change": 0.0,
        "avg_rate": 0.0,
        "largest_holding": {"platform": "", "amount": 0.0},
        "platforms": [],
        "platform_data": {},
    }


def _pct_change(change: float, base: float) -> float:
    # New positions (or a non-positive base) show 0% rather than "new"
    return change / base * 100.0 if base > 0 else 0.0


def _platform_totals(entries: pd.DataFrame) -> pd.DataFrame:
    """Amount summed per platform, rate from the platform's last row; first-seen order."""
    grouped = entries.groupby("platform", sort=False)
    return pd.DataFrame({
        "amount": grouped["amount"].sum(),
        "rate": grouped["rate"].last(),
    })


def calculate_summary(current, previous) -> dict:
    """
    Portfolio totals and per-platform change between two snapshots.

    Platforms that only appear in `previous` were fully liquidated and are
    reported with amount 0 and percent_change -100.
    """
    current = normalize_entries(current)
    previous = normalize_entries(previous)

    if current.empty:
        return empty_summary()

    total_value = float(current["amount"].sum())
    total_previous_value = float(previous["amount"].sum()) if not previous.empty else 0.0

    now = _platform_totals(current)
    before = _platform_totals(previous) if not previous.empty else None

    platforms = []
    platform_data = {}

    for platform, row in now.iterrows():
        amount = float(row["amount"])
        previous_amount = 0.0
        if before is not None and platform in before.index:
            previous_amount = float(before.at[platform, "amount"])
        change = amount - previous_amount

        platforms.append(platform)
        platform_data[platform] = {
            "amount": amount,
            "rate": float(row["rate"]),
            "percentage": amount / total_value * 100.0 if total_value != 0 else 0.0,
            "previous_amount": previous_amount,
            "percent_change": _pct_change(change, previous_amount),
            "absolute_change": change,
        }

    if before is not None:
        for platform, row in before.iterrows():
            if platform in platform_data:
                continue
            previous_amount = float(row["amount"])
            platforms.append(platform)
            platform_data[platform] = {
                "amount": 0.0,
                "rate": 0.0,
                "percentage": 0.0,
                "previous_amount": previous_amount,
                "percent_change": -100.0,
                "absolute_change": -previous_amount,
            }

    # Value-weighted expected rate
    if total_value != 0:
        avg_rate = float((current["amount"] * current["rate"]).sum() / total_value)
    else:
        avg_rate = 0.0

    # idxmax keeps the first platform on ties
    largest = now["amount"].idxmax()

    absolute_change = total_value - total_previous_value

    return {
        "total_value": total_value,
        "total_previous_value": total_previous_value,
        "percent_change": _pct_change(absolute_change, total_previous_value),
        "absolute_change": absolute_change,
        "avg_rate": avg_rate,
        "largest_holding": {"platform": largest, "amount": float(now.at[largest, "amount"])},
        "platforms": platforms,
        "platform_data": platform_data,
    }
