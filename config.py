import os

from dotenv import load_dotenv

# ============================================================
# FILE LOCATIONS (ENV OVERRIDABLE)
# ============================================================

# Load the .env file immediately so the lookups below see it
load_dotenv()

ENTRIES_FILE = os.environ.get("HOMESTEAD_ENTRIES_FILE", "entries.csv")
PLATFORM_TAGS_FILE = os.environ.get("HOMESTEAD_TAGS_FILE", "platform_tags.csv")
LOG_LEVEL = os.environ.get("HOMESTEAD_LOG_LEVEL", "INFO").upper()

# ============================================================
# IMPORT LIMITS
# ============================================================
MAX_IMPORT_ROWS = 10_000
MAX_IMPORT_BYTES = 10 * 1024 * 1024  # 10MB
MAX_PLATFORM_NAME = 50
LARGE_AMOUNT_WARNING = 1_000_000_000
RATE_WARNING_BOUNDS = (-100.0, 100.0)

# ============================================================
# DATA QUALITY TIERS
# ============================================================
# Share of entries carrying contribution information
ENHANCED_THRESHOLD = 0.8
MIXED_THRESHOLD = 0.3

LOW_SAMPLE_ENTRIES = 6      # below this, warn that metrics may not be representative
SHORT_HISTORY_ENTRIES = 12  # below this, suggest adding more history

# ============================================================
# RISK PARAMETERS
# ============================================================
RISK_FREE_RATE = 0.03  # 3% annual risk-free rate for Sharpe/Sortino ratios

# Risk-free rate per observation period (observations assumed ~monthly)
PERIOD_RISK_FREE_RATE = RISK_FREE_RATE / (365 / 30)

# Single-period returns at or beyond +/-200% are treated as data-entry errors
MAX_PERIOD_RETURN = 2.0

VAR_CONFIDENCE_LEVELS = (0.95, 0.99)

# ============================================================
# CALENDAR CONVENTIONS
# ============================================================
DAYS_PER_YEAR = 365             # annualizing sampling frequency
DAYS_PER_YEAR_CALENDAR = 365.25  # CAGR and contribution frequency spans
DEFAULT_PERIOD_DAYS = 30        # assumed spacing when it cannot be measured

# Volatility is left un-annualized above this sampling frequency
MAX_ANNUALIZED_PERIODS = 50
MIN_ANNUALIZED_RETURNS = 4
