import logging

import pandas as pd

from cash_flow import calculate_cash_flow
from data_loader import empty_entries, normalize_entries
from data_quality import classify
from financial_math import (
    group_by_date,
    historical_snapshot,
    previous_snapshot,
    sorted_dates,
    year_start_snapshot,
)
from performance import calculate_performance
from risk import calculate_risk
from summary import calculate_summary

logger = logging.getLogger(__name__)

COMPARISONS = ("previous", "MoM", "YoY", "YTD")
GROUP_BY = ("platform", "tag")


def comparison_snapshot(current_date, comparison: str, all_dates: list, by_date: dict) -> pd.DataFrame:
    if comparison == "previous":
        return previous_snapshot(current_date, all_dates, by_date)
    if comparison in ("MoM", "YoY"):
        return historical_snapshot(current_date, comparison, all_dates, by_date)
    if comparison == "YTD":
        return year_start_snapshot(current_date, all_dates, by_date)
    raise ValueError(f"Unsupported comparison: {comparison} (expected one of {COMPARISONS})")


def unique_platforms(entries) -> list:
    df = normalize_entries(entries)
    return sorted(df["platform"].unique())


def grouped_allocation(current_entries, platform_tags: dict = None, group_by: str = "platform") -> list:
    """
    Allocation of positive balances, largest first: [(label, amount), ...].

    With group_by='tag', platforms are pooled under their tag; untagged
    platforms keep their own name.
    """
    if group_by not in GROUP_BY:
        raise ValueError(f"Unsupported grouping: {group_by} (expected one of {GROUP_BY})")

    df = normalize_entries(current_entries)
    tags = platform_tags or {}

    grouped = {}
    for platform, amount in zip(df["platform"], df["amount"]):
        if amount <= 0:
            continue
        label = tags.get(platform, platform) if group_by == "tag" else platform
        grouped[label] = grouped.get(label, 0.0) + float(amount)

    # sorted() is stable: equal amounts keep first-seen order
    return sorted(grouped.items(), key=lambda item: item[1], reverse=True)


def run_engine(entries, selected_date=None, comparison: str = "MoM", platform_tags: dict = None,
               group_by: str = "platform") -> dict:
    """
    Runs the full analytics pipeline over one entry history and returns
    plain results for display.

    The selected snapshot (newest by default) is compared against the
    snapshot picked by `comparison`: 'previous', 'MoM', 'YoY' or 'YTD'.
    Performance, cash flow and risk always cover the whole history, with
    one data-quality classification shared between them.
    """
    if comparison not in COMPARISONS:
        raise ValueError(f"Unsupported comparison: {comparison} (expected one of {COMPARISONS})")

    entries = normalize_entries(entries)
    by_date = group_by_date(entries)
    all_dates = sorted_dates(by_date)

    # =============================================================
    # SNAPSHOT SELECTION
    # =============================================================
    if not all_dates:
        selected = None
    elif selected_date is None:
        selected = all_dates[0]
    else:
        selected = pd.Timestamp(selected_date)
        if selected not in by_date:
            logger.warning(
                "No entries on %s; using latest snapshot %s",
                selected.strftime("%Y-%m-%d"), all_dates[0].strftime("%Y-%m-%d"),
            )
            selected = all_dates[0]

    if selected is None:
        current = empty_entries()
        previous = empty_entries()
    else:
        current = by_date[selected]
        previous = comparison_snapshot(selected, comparison, all_dates, by_date)

    # =============================================================
    # ANALYTICS
    # =============================================================
    quality = classify(entries)

    results = {
        "selected_date": selected,
        "all_dates": all_dates,
        "comparison": comparison,
        "current_entries": current,
        "previous_entries": previous,
        "summary": calculate_summary(current, previous),
        "data_quality": quality,
        "performance": calculate_performance(entries),
        "cash_flow": calculate_cash_flow(entries, current_entries=current),
        "risk": calculate_risk(entries, quality_report=quality),
        "allocation": grouped_allocation(current, platform_tags, group_by),
    }

    logger.info(
        "Analyzed %d entries across %d snapshots (%s)",
        len(entries), len(all_dates), quality["data_quality"].value,
    )
    return results
