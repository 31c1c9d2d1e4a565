from data_loader import normalize_entries
from financial_math import years_between


def _contribution_frequency(dates: list) -> float:
    """Contributions per year between the first and last contribution."""
    if len(dates) < 2:
        return 0.0
    years = years_between(min(dates), max(dates))
    if years == 0:
        return 0.0
    return len(dates) / years


def calculate_cash_flow(entries, current_entries=None) -> dict:
    """
    Separate deposited money from market-driven change.

    investment_gains = current_value - net_contributions
    contribution_gains = net_contributions

    Both gains are forced to 0 when no entry tracks contributions at all:
    without that data the split cannot be made, and showing the whole
    balance as "investment gains" would be wrong.

    current_value is the total of `current_entries` when given, otherwise
    the total of the latest snapshot in `entries`.
    """
    df = normalize_entries(entries)
    df = df.sort_values("date", kind="mergesort")

    flows = df[df["contribution_amount"].notna()]
    has_any_contribution_data = not flows.empty

    deposits = flows[flows["contribution_amount"] > 0]
    withdrawals = flows[flows["contribution_amount"] < 0]

    total_contributions = float(deposits["contribution_amount"].sum())
    total_withdrawals = float(withdrawals["contribution_amount"].abs().sum())
    net_contributions = total_contributions - total_withdrawals

    contributions_by_period = []
    for row in flows.itertuples(index=False):
        if row.contribution_amount == 0:
            continue
        contributions_by_period.append({
            "date": row.date.strftime("%Y-%m-%d"),
            "amount": abs(float(row.contribution_amount)),
            "type": "contribution" if row.contribution_amount > 0 else "withdrawal",
        })

    average_contribution_amount = (
        float(deposits["contribution_amount"].mean()) if not deposits.empty else 0.0
    )
    contribution_frequency = _contribution_frequency(list(deposits["date"]))

    if current_entries is not None:
        current_value = float(normalize_entries(current_entries)["amount"].sum())
    elif not df.empty:
        latest = df["date"].max()
        current_value = float(df.loc[df["date"] == latest, "amount"].sum())
    else:
        current_value = 0.0

    return {
        "total_contributions": total_contributions,
        "total_withdrawals": total_withdrawals,
        "net_contributions": net_contributions,
        "has_any_contribution_data": has_any_contribution_data,
        "current_value": current_value,
        "contribution_gains": net_contributions if has_any_contribution_data else 0.0,
        "investment_gains": current_value - net_contributions if has_any_contribution_data else 0.0,
        "average_contribution_amount": average_contribution_amount,
        "contribution_frequency": contribution_frequency,
        "contributions_by_period": contributions_by_period,
    }
