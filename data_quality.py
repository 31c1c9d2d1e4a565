from enum import Enum

import config
from data_loader import normalize_entries


class DataQuality(str, Enum):
    """How much cash-flow information an entry history carries."""

    ENHANCED = "ENHANCED"
    MIXED = "MIXED"
    SNAPSHOT_ONLY = "SNAPSHOT_ONLY"


def classify_ratio(enhanced_ratio: float) -> DataQuality:
    if enhanced_ratio >= config.ENHANCED_THRESHOLD:
        return DataQuality.ENHANCED
    if enhanced_ratio >= config.MIXED_THRESHOLD:
        return DataQuality.MIXED
    return DataQuality.SNAPSHOT_ONLY


def coverage_period(dates) -> str:
    """'Jan 2024 to Mar 2024', or a single month when both ends match."""
    if len(dates) == 0:
        return "No data"
    start = min(dates).strftime("%b %Y")
    end = max(dates).strftime("%b %Y")
    return start if start == end else f"{start} to {end}"


def classify(entries) -> dict:
    """
    Classify a full entry history by its share of enhanced entries.

    An entry is enhanced when it carries a contribution amount, is a
    contribution transaction, or is explicitly hinted 'enhanced'. The
    resulting tier gates which performance and risk metrics are shown, so
    compute it once per history and pass it along.
    """
    df = normalize_entries(entries)

    if df.empty:
        return {
            "data_quality": DataQuality.SNAPSHOT_ONLY,
            "total_entries": 0,
            "enhanced_entries": 0,
            "snapshot_only_entries": 0,
            "enhanced_ratio": 0.0,
            "coverage_period": coverage_period([]),
        }

    total = len(df)
    enhanced = int(df["is_enhanced"].sum())
    ratio = enhanced / total

    return {
        "data_quality": classify_ratio(ratio),
        "total_entries": total,
        "enhanced_entries": enhanced,
        "snapshot_only_entries": total - enhanced,
        "enhanced_ratio": ratio,
        "coverage_period": coverage_period(list(df["date"])),
    }
