import logging
import os
import re
from datetime import datetime

import numpy as np
import pandas as pd

import config

logger = logging.getLogger(__name__)

# ============================================================
# SCHEMA
# ============================================================
ENTRY_COLUMNS = [
    "date",
    "platform",
    "amount",
    "rate",
    "transaction_type",
    "contribution_amount",
    "data_quality",
    "notes",
]
DERIVED_COLUMNS = ["has_cash_flow", "is_enhanced"]

REQUIRED_HEADERS = {"date", "platform", "amount", "rate"}
TRANSACTION_TYPES = ("snapshot", "contribution")
DATA_QUALITY_HINTS = ("enhanced", "snapshot_only")

# Record keys as the storage layer spells them
_CAMEL_CASE_KEYS = {
    "transactionType": "transaction_type",
    "contributionAmount": "contribution_amount",
    "dataQuality": "data_quality",
}

# Lower-cased CSV headers -> entry columns
_CSV_COLUMNS = {
    "date": "date",
    "platform": "platform",
    "amount": "amount",
    "rate": "rate",
    "transactiontype": "transaction_type",
    "contributionamount": "contribution_amount",
    "dataquality": "data_quality",
    "notes": "notes",
}

EXPORT_HEADERS = {
    "date": "Date",
    "platform": "Platform",
    "amount": "Amount",
    "rate": "Rate",
    "transaction_type": "TransactionType",
    "contribution_amount": "ContributionAmount",
    "data_quality": "DataQuality",
    "notes": "Notes",
}

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ------------------------------------------------------------
# Normalize raw records into the entries frame
# ------------------------------------------------------------

def empty_entries() -> pd.DataFrame:
    return pd.DataFrame({
        "date": pd.Series(dtype="datetime64[ns]"),
        "platform": pd.Series(dtype=object),
        "amount": pd.Series(dtype=float),
        "rate": pd.Series(dtype=float),
        "transaction_type": pd.Series(dtype=object),
        "contribution_amount": pd.Series(dtype=float),
        "data_quality": pd.Series(dtype=object),
        "notes": pd.Series(dtype=object),
        "has_cash_flow": pd.Series(dtype=bool),
        "is_enhanced": pd.Series(dtype=bool),
    })


def normalize_entries(entries) -> pd.DataFrame:
    """
    Build the entries frame every calculation works on.

    Accepts a DataFrame or an iterable of dict records (snake_case or the
    storage layer's camelCase keys). Two flags are derived once, here:

      - has_cash_flow: contribution_amount present, or transaction_type
        is 'contribution'
      - is_enhanced:   has_cash_flow, or the data_quality hint says 'enhanced'

    A contribution_amount of 0.0 still counts as present. An already
    normalized frame is returned untouched; callers never mutate it.
    """
    if isinstance(entries, pd.DataFrame):
        if set(DERIVED_COLUMNS).issubset(entries.columns):
            return entries
        df = entries.copy()
    else:
        df = pd.DataFrame(list(entries or []))

    if df.empty:
        return empty_entries()

    df = df.rename(columns=_CAMEL_CASE_KEYS)

    missing = {"date", "platform", "amount"} - set(df.columns)
    if missing:
        raise ValueError(f"Entries must contain columns: {sorted(missing)}")

    if "rate" not in df.columns:
        df["rate"] = 0.0
    if "transaction_type" not in df.columns:
        df["transaction_type"] = "snapshot"
    if "contribution_amount" not in df.columns:
        df["contribution_amount"] = np.nan
    if "data_quality" not in df.columns:
        df["data_quality"] = ""
    if "notes" not in df.columns:
        df["notes"] = ""

    df["date"] = pd.to_datetime(df["date"]).dt.normalize()
    df["platform"] = df["platform"].astype(str)
    df["amount"] = df["amount"].astype(float)
    df["rate"] = df["rate"].fillna(0.0).astype(float)
    df["transaction_type"] = (
        df["transaction_type"].fillna("").astype(str).str.strip().str.lower()
        .replace("", "snapshot")
    )
    df["contribution_amount"] = df["contribution_amount"].astype(float)
    df["data_quality"] = df["data_quality"].fillna("").astype(str).str.strip().str.lower()
    df["notes"] = df["notes"].fillna("").astype(str)

    df["has_cash_flow"] = (
        df["contribution_amount"].notna() | (df["transaction_type"] == "contribution")
    )
    df["is_enhanced"] = df["has_cash_flow"] | (df["data_quality"] == "enhanced")

    return df[ENTRY_COLUMNS + DERIVED_COLUMNS].reset_index(drop=True)


# ------------------------------------------------------------
# Row validation (CSV import boundary)
# ------------------------------------------------------------

def _is_valid_date(value: str) -> bool:
    if not _DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def _parse_number(value: str):
    try:
        num = float(value.strip())
    except ValueError:
        return None
    return num if np.isfinite(num) else None


def validate_rows(raw: pd.DataFrame):
    """
    Validate raw CSV rows (all values as strings).

    Returns (entries, errors, warnings). Rows with any error are dropped;
    warnings never drop a row. Row numbers count the header as row 1.
    """
    errors: list[str] = []
    warnings: list[str] = []
    records = []

    for idx, row in raw.reset_index(drop=True).iterrows():
        row_number = idx + 2
        row_errors = []

        date_str = str(row.get("date", "")).strip()
        platform = str(row.get("platform", "")).strip()
        amount = _parse_number(str(row.get("amount", "")))
        rate = _parse_number(str(row.get("rate", "")))
        tx_type = str(row.get("transaction_type", "")).strip().lower()
        contrib_raw = str(row.get("contribution_amount", "")).strip()
        hint = str(row.get("data_quality", "")).strip().lower()
        notes = str(row.get("notes", "")).strip()

        if not _is_valid_date(date_str):
            row_errors.append(
                f"Row {row_number}: Invalid date format. Expected YYYY-MM-DD (e.g., 2024-01-15)"
            )

        if not 0 < len(platform) <= config.MAX_PLATFORM_NAME:
            row_errors.append(
                f"Row {row_number}: Platform name is required and must be "
                f"1-{config.MAX_PLATFORM_NAME} characters"
            )

        if amount is None:
            row_errors.append(f"Row {row_number}: Amount must be a valid number (e.g., 15000.50)")
        elif amount > config.LARGE_AMOUNT_WARNING:
            warnings.append(f"Row {row_number}: Amount seems unusually large ({amount})")

        if rate is None:
            row_errors.append(f"Row {row_number}: Rate must be a valid number (e.g., 7.5 for 7.5%)")
        else:
            low, high = config.RATE_WARNING_BOUNDS
            if rate < low or rate > high:
                warnings.append(
                    f"Row {row_number}: Rate {rate}% seems unusual (expected {low:g}% to {high:g}%)"
                )

        if tx_type and tx_type not in TRANSACTION_TYPES:
            row_errors.append(f"Row {row_number}: TransactionType must be 'snapshot' or 'contribution'")

        contribution = None
        if contrib_raw:
            contribution = _parse_number(contrib_raw)
            if contribution is None:
                row_errors.append(
                    f"Row {row_number}: ContributionAmount must be a valid number if provided"
                )

        if hint and hint not in DATA_QUALITY_HINTS:
            row_errors.append(f"Row {row_number}: DataQuality must be 'enhanced' or 'snapshot_only'")

        if row_errors:
            errors.extend(row_errors)
            continue

        if not tx_type:
            tx_type = "contribution" if contribution else "snapshot"

        records.append({
            "date": date_str,
            "platform": platform,
            "amount": amount,
            "rate": rate,
            "transaction_type": tx_type,
            "contribution_amount": np.nan if contribution is None else contribution,
            "data_quality": hint,
            "notes": notes,
        })

    return normalize_entries(records), errors, warnings


# ------------------------------------------------------------
# Load entries from CSV
# ------------------------------------------------------------

def load_entries(path: str = config.ENTRIES_FILE, strict: bool = False) -> pd.DataFrame:
    """
    Load a balance history CSV:

        Date,Platform,Amount,Rate[,TransactionType,ContributionAmount,DataQuality,Notes]

    Headers are case-insensitive. Structural problems (missing headers,
    empty or oversized file) raise ValueError. Invalid rows are dropped and
    logged; with strict=True any invalid row raises instead.

    The validation outcome rides along in entries.attrs:
    'errors', 'warnings' and 'summary' (total/valid/invalid row counts).
    """
    if os.path.getsize(path) > config.MAX_IMPORT_BYTES:
        raise ValueError("File size too large. Maximum size is 10MB.")

    try:
        raw = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError as exc:
        raise ValueError("CSV file is empty or contains no valid data rows.") from exc

    raw.columns = [str(c).strip().lower() for c in raw.columns]

    missing = REQUIRED_HEADERS - set(raw.columns)
    if missing:
        headers = ", ".join(h.capitalize() for h in sorted(missing))
        raise ValueError(f"Missing required headers: {headers}")

    if raw.empty:
        raise ValueError("CSV file is empty or contains no valid data rows.")

    if len(raw) > config.MAX_IMPORT_ROWS:
        raise ValueError(f"Too many rows. Maximum is {config.MAX_IMPORT_ROWS:,} entries.")

    raw = raw.rename(columns=_CSV_COLUMNS)
    entries, errors, warnings = validate_rows(raw)

    if strict and errors:
        raise ValueError(f"{len(errors)} invalid row(s) in {path}: {errors[0]}")

    for msg in warnings:
        logger.warning(msg)
    for msg in errors:
        logger.error(msg)

    summary = {
        "total_rows": len(raw),
        "valid_rows": len(entries),
        "invalid_rows": len(raw) - len(entries),
    }
    logger.info(
        "Loaded %d of %d rows from %s (%d warnings)",
        summary["valid_rows"], summary["total_rows"], path, len(warnings),
    )

    entries.attrs["errors"] = errors
    entries.attrs["warnings"] = warnings
    entries.attrs["summary"] = summary
    return entries


# ------------------------------------------------------------
# Export entries to CSV
# ------------------------------------------------------------

def export_entries(entries, path: str) -> str:
    df = normalize_entries(entries)
    if df.empty:
        raise ValueError("No data to export.")

    out = df[list(EXPORT_HEADERS)].copy()
    out["date"] = out["date"].dt.strftime("%Y-%m-%d")
    out = out.rename(columns=EXPORT_HEADERS)

    # Absent contribution amounts are written blank
    out.to_csv(path, index=False, na_rep="")
    logger.info("Exported %d entries to %s", len(out), path)
    return path


# ------------------------------------------------------------
# Platform tags (display grouping only)
# ------------------------------------------------------------

def load_platform_tags(path: str = config.PLATFORM_TAGS_FILE) -> dict:
    if not os.path.exists(path):
        return {}

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip().lower() for c in df.columns]

    required = {"platform", "tag"}
    if not required.issubset(df.columns):
        raise ValueError(f"Platform tags must contain columns: {required}")

    tags = {}
    for platform, tag in zip(df["platform"], df["tag"]):
        platform, tag = platform.strip(), tag.strip()
        if platform and tag:
            tags[platform] = tag
    return tags
