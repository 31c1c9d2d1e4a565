import numpy as np
import pandas as pd
import pytest

from data_loader import export_entries, load_entries, load_platform_tags, normalize_entries

VALID_CSV = """Date,Platform,Amount,Rate,TransactionType,ContributionAmount,DataQuality,Notes
2024-01-01,Robinhood,1000,7,,,,
2024-02-01,Robinhood,1600,7,,500,,monthly deposit
2024-02-01,Car Loan,-8000,6.5,,,,
"""


def _write(tmp_path, text, name="entries.csv"):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_load_valid_file(tmp_path):
    entries = load_entries(_write(tmp_path, VALID_CSV))

    assert len(entries) == 3
    assert entries["date"].iloc[0] == pd.Timestamp("2024-01-01")
    assert entries.attrs["errors"] == []
    assert entries.attrs["summary"] == {"total_rows": 3, "valid_rows": 3, "invalid_rows": 0}


def test_transaction_type_is_inferred(tmp_path):
    entries = load_entries(_write(tmp_path, VALID_CSV))

    assert list(entries["transaction_type"]) == ["snapshot", "contribution", "snapshot"]
    assert np.isnan(entries["contribution_amount"].iloc[0])
    assert entries["contribution_amount"].iloc[1] == 500.0
    assert list(entries["has_cash_flow"]) == [False, True, False]


def test_negative_balances_are_allowed(tmp_path):
    entries = load_entries(_write(tmp_path, VALID_CSV))
    assert entries["amount"].iloc[2] == -8000.0


def test_headers_are_case_insensitive(tmp_path):
    entries = load_entries(_write(tmp_path, "date,PLATFORM,amount,Rate\n2024-01-01,Bank,10,1\n"))
    assert list(entries["platform"]) == ["Bank"]


def test_invalid_rows_are_dropped(tmp_path):
    text = """Date,Platform,Amount,Rate
2024-01-01,Bank,100,1
2024-02-30,Bank,100,1
01/03/2024,Bank,100,1
2024-03-01,,100,1
2024-03-01,Bank,abc,1
2024-03-01,Bank,100,150
"""
    entries = load_entries(_write(tmp_path, text))
    errors = entries.attrs["errors"]

    assert len(entries) == 2
    assert len(errors) == 4
    assert errors[0].startswith("Row 3: Invalid date format")
    assert errors[2].startswith("Row 5: Platform name is required")
    assert entries.attrs["warnings"] == ["Row 7: Rate 150.0% seems unusual (expected -100% to 100%)"]
    assert entries.attrs["summary"]["invalid_rows"] == 4


def test_invalid_enumerations(tmp_path):
    text = """Date,Platform,Amount,Rate,TransactionType,ContributionAmount,DataQuality
2024-01-01,Bank,100,1,deposit,,
2024-01-01,Bank,100,1,,ten,
2024-01-01,Bank,100,1,,,great
"""
    entries = load_entries(_write(tmp_path, text))
    assert entries.empty
    assert [e.split(":")[0] for e in entries.attrs["errors"]] == ["Row 2", "Row 3", "Row 4"]


def test_strict_mode_raises(tmp_path):
    text = "Date,Platform,Amount,Rate\n2024-01-01,Bank,oops,1\n"
    with pytest.raises(ValueError):
        load_entries(_write(tmp_path, text), strict=True)


def test_missing_headers(tmp_path):
    with pytest.raises(ValueError, match="Missing required headers: Rate"):
        load_entries(_write(tmp_path, "Date,Platform,Amount\n2024-01-01,Bank,100\n"))


@pytest.mark.parametrize("text", ["", "Date,Platform,Amount,Rate\n"])
def test_empty_files(tmp_path, text):
    with pytest.raises(ValueError, match="empty"):
        load_entries(_write(tmp_path, text))


def test_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        load_entries(str(tmp_path / "nope.csv"))


def test_export_writes_canonical_headers(tmp_path):
    entries = load_entries(_write(tmp_path, VALID_CSV))
    out = export_entries(entries, str(tmp_path / "out.csv"))

    lines = open(out).read().splitlines()
    assert lines[0] == "Date,Platform,Amount,Rate,TransactionType,ContributionAmount,DataQuality,Notes"
    assert lines[1] == "2024-01-01,Robinhood,1000.0,7.0,snapshot,,,"

    reloaded = load_entries(out)
    assert list(reloaded["amount"]) == list(entries["amount"])


def test_export_rejects_empty(tmp_path):
    with pytest.raises(ValueError, match="No data to export"):
        export_entries([], str(tmp_path / "out.csv"))


def test_normalize_requires_core_columns():
    with pytest.raises(ValueError):
        normalize_entries([{"date": "2024-01-01", "amount": 1.0}])


def test_platform_tags(tmp_path):
    assert load_platform_tags(str(tmp_path / "missing.csv")) == {}

    path = _write(tmp_path, "Platform,Tag\nRobinhood,Stocks\nAlly, Cash \n,Orphan\n", "tags.csv")
    assert load_platform_tags(path) == {"Robinhood": "Stocks", "Ally": "Cash"}
