import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def snapshot_history():
    """Two platforms, monthly balances, no contribution tracking."""
    return [
        {"date": "2024-01-01", "platform": "Robinhood", "amount": 1000.0, "rate": 7.0},
        {"date": "2024-01-01", "platform": "Savings", "amount": 500.0, "rate": 4.0},
        {"date": "2024-02-01", "platform": "Robinhood", "amount": 1100.0, "rate": 7.0},
        {"date": "2024-02-01", "platform": "Savings", "amount": 510.0, "rate": 4.0},
        {"date": "2024-03-01", "platform": "Robinhood", "amount": 1050.0, "rate": 7.0},
        {"date": "2024-03-01", "platform": "Savings", "amount": 520.0, "rate": 4.0},
    ]


@pytest.fixture
def enhanced_history():
    """One platform, monthly, every entry carries a contribution amount."""
    rows = [
        ("2024-01-01", 1000.0, 0.0),
        ("2024-02-01", 1200.0, 100.0),
        ("2024-03-01", 1150.0, 0.0),
        ("2024-04-01", 1300.0, 100.0),
        ("2024-05-01", 1200.0, 0.0),
        ("2024-06-01", 1400.0, 100.0),
    ]
    return [
        {
            "date": date,
            "platform": "Wealthfront",
            "amount": amount,
            "rate": 6.0,
            "transactionType": "contribution" if contribution else "snapshot",
            "contributionAmount": contribution,
        }
        for date, amount, contribution in rows
    ]
