import pandas as pd
import pytest

from financial_math import (
    average_days_between,
    build_value_series,
    group_by_date,
    group_by_platform,
    historical_snapshot,
    periods_per_year,
    previous_snapshot,
    sort_by_date,
    sorted_dates,
    total_for_date,
    twr_period_returns,
    year_start_snapshot,
)


def _index(dates):
    """Build (all_dates newest-first, by_date) from date strings, one entry per date."""
    entries = [{"date": d, "platform": "P", "amount": float(i + 1), "rate": 0.0} for i, d in enumerate(dates)]
    by_date = group_by_date(entries)
    return sorted_dates(by_date), by_date


def _date_of(snapshot):
    assert not snapshot.empty
    return snapshot["date"].iloc[0].strftime("%Y-%m-%d")


def test_group_by_date_is_stable(snapshot_history):
    by_date = group_by_date(snapshot_history)
    assert [d.strftime("%Y-%m-%d") for d in by_date] == ["2024-01-01", "2024-02-01", "2024-03-01"]
    assert list(by_date[pd.Timestamp("2024-02-01")]["platform"]) == ["Robinhood", "Savings"]


def test_group_by_platform(snapshot_history):
    by_platform = group_by_platform(snapshot_history)
    assert list(by_platform) == ["Robinhood", "Savings"]
    assert list(by_platform["Savings"]["amount"]) == [500.0, 510.0, 520.0]


def test_sort_by_date_newest_first(snapshot_history):
    ordered = sort_by_date(snapshot_history)
    assert ordered["date"].iloc[0] == pd.Timestamp("2024-03-01")
    # stable within a date
    assert list(ordered["platform"].iloc[:2]) == ["Robinhood", "Savings"]


def test_total_for_date():
    assert total_for_date([]) == 0.0
    entries = [
        {"date": "2024-01-01", "platform": "A", "amount": 250.0, "rate": 1.0},
        {"date": "2024-01-01", "platform": "Loan", "amount": -100.0, "rate": 5.0},
    ]
    assert total_for_date(entries) == 150.0


def test_previous_snapshot_policies():
    all_dates, by_date = _index(["2024-01-01", "2024-02-01", "2024-03-01"])

    assert _date_of(previous_snapshot("2024-03-01", all_dates, by_date)) == "2024-02-01"
    assert _date_of(previous_snapshot("2024-02-01", all_dates, by_date)) == "2024-01-01"
    # unknown date: nearest strictly older
    assert _date_of(previous_snapshot("2024-02-15", all_dates, by_date)) == "2024-02-01"
    assert _date_of(previous_snapshot("2024-04-01", all_dates, by_date)) == "2024-03-01"
    # oldest: nothing before it
    assert previous_snapshot("2024-01-01", all_dates, by_date).empty


def test_historical_snapshot_single_date_falls_back_to_it():
    all_dates, by_date = _index(["2024-05-01"])
    assert _date_of(historical_snapshot("2024-05-01", "MoM", all_dates, by_date)) == "2024-05-01"


def test_historical_snapshot_two_dates_uses_the_other():
    all_dates, by_date = _index(["2023-01-01", "2024-05-01"])
    assert _date_of(historical_snapshot("2024-05-01", "MoM", all_dates, by_date)) == "2023-01-01"
    assert _date_of(historical_snapshot("2023-01-01", "YoY", all_dates, by_date)) == "2024-05-01"


def test_historical_snapshot_month_over_month():
    all_dates, by_date = _index(["2024-01-01", "2024-02-01", "2024-03-01"])
    assert _date_of(historical_snapshot("2024-03-01", "MoM", all_dates, by_date)) == "2024-02-01"


def test_historical_snapshot_year_over_year_picks_nearest():
    all_dates, by_date = _index(["2023-05-01", "2023-06-15", "2024-01-01", "2024-06-01"])
    assert _date_of(historical_snapshot("2024-06-01", "YoY", all_dates, by_date)) == "2023-06-15"


def test_historical_snapshot_tie_goes_to_first_in_list():
    # target 2024-02-01 sits 10 days from both candidates
    all_dates, by_date = _index(["2024-01-22", "2024-02-11", "2024-03-01"])
    assert _date_of(historical_snapshot("2024-03-01", "MoM", all_dates, by_date)) == "2024-02-11"


def test_historical_snapshot_rejects_unknown_period():
    all_dates, by_date = _index(["2024-01-01", "2024-02-01", "2024-03-01"])
    with pytest.raises(ValueError):
        historical_snapshot("2024-03-01", "QoQ", all_dates, by_date)


def test_historical_snapshot_no_dates():
    assert historical_snapshot("2024-03-01", "MoM", [], {}).empty


def test_year_start_snapshot():
    all_dates, by_date = _index(["2023-12-01", "2024-01-15", "2024-03-01", "2024-06-01"])

    assert _date_of(year_start_snapshot("2024-06-01", all_dates, by_date)) == "2024-01-15"
    # no older same-year snapshot: adjacent older date
    assert _date_of(year_start_snapshot("2024-01-15", all_dates, by_date)) == "2023-12-01"
    # oldest date: adjacent newer date
    assert _date_of(year_start_snapshot("2023-12-01", all_dates, by_date)) == "2024-01-15"


def test_year_start_snapshot_single_date():
    all_dates, by_date = _index(["2024-06-01"])
    assert _date_of(year_start_snapshot("2024-06-01", all_dates, by_date)) == "2024-06-01"


def test_build_value_series_sums_per_date():
    entries = [
        {"date": "2024-02-01", "platform": "A", "amount": 600.0, "rate": 0.0, "contributionAmount": 100.0},
        {"date": "2024-01-01", "platform": "A", "amount": 500.0, "rate": 0.0},
        {"date": "2024-02-01", "platform": "B", "amount": 400.0, "rate": 0.0, "contributionAmount": 50.0},
        {"date": "2024-01-01", "platform": "B", "amount": 300.0, "rate": 0.0},
    ]
    series = build_value_series(entries)
    assert list(series.index.strftime("%Y-%m-%d")) == ["2024-01-01", "2024-02-01"]
    assert list(series["value"]) == [800.0, 1000.0]
    assert list(series["contributions"]) == [0.0, 150.0]


def test_twr_period_return_ignores_contributions():
    entries = [
        {"date": "2024-01-01", "platform": "P", "amount": 1000.0, "rate": 0.0},
        {"date": "2024-02-01", "platform": "P", "amount": 1500.0, "rate": 0.0, "contributionAmount": 500.0},
    ]
    returns = twr_period_returns(build_value_series(entries))
    assert list(returns) == [0.0]


def test_twr_period_returns_drop_extreme_values():
    entries = [
        {"date": "2024-01-01", "platform": "P", "amount": 1000.0, "rate": 0.0, "contributionAmount": 0.0},
        {"date": "2024-02-01", "platform": "P", "amount": 1100.0, "rate": 0.0, "contributionAmount": 0.0},
        # misplaced decimal: 10x jump
        {"date": "2024-03-01", "platform": "P", "amount": 11000.0, "rate": 0.0, "contributionAmount": 0.0},
    ]
    series = build_value_series(entries)
    assert len(twr_period_returns(series)) == 2
    capped = twr_period_returns(series, max_abs_return=2.0)
    assert list(capped) == pytest.approx([0.1])


def test_frequency_detection():
    monthly = pd.to_datetime(["2023-01-01", "2023-01-31", "2023-03-02"])
    assert average_days_between(monthly) == 30.0
    assert periods_per_year(monthly) == pytest.approx(365 / 30)
    # a single observation cannot be measured
    assert average_days_between(pd.to_datetime(["2024-01-01"])) == 30.0
