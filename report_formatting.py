import pandas as pd

# =====================================================================
# Formatting Helpers (N/A for anything missing)
# =====================================================================

def _missing(x) -> bool:
    return x is None or pd.isna(x)


def fmt_pct_clean(x):
    """Fraction -> percent string (0.075 -> '7.50%')."""
    try:
        if _missing(x):
            return "N/A"
        return f"{float(x)*100:.2f}%"
    except (TypeError, ValueError):
        return "N/A"


def fmt_pct_points(x):
    """Already-scaled percentage -> string (7.5 -> '7.50%')."""
    try:
        if _missing(x):
            return "N/A"
        return f"{float(x):.2f}%"
    except (TypeError, ValueError):
        return "N/A"


def fmt_dollar_clean(x):
    try:
        if _missing(x):
            return "N/A"
        value = float(x)
        sign = "-" if value < 0 else ""
        return f"{sign}${abs(value):,.2f}"
    except (TypeError, ValueError):
        return "N/A"


def fmt_number_clean(x, digits: int = 2):
    try:
        if _missing(x):
            return "N/A"
        return f"{float(x):,.{digits}f}"
    except (TypeError, ValueError):
        return "N/A"
