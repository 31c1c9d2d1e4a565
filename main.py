#!/usr/bin/env python3
import argparse
import sys

import config
from data_loader import export_entries, load_entries, load_platform_tags
from logging_setup import setup_logging
from portfolio_engine import COMPARISONS, GROUP_BY, run_engine
from report_formatting import fmt_dollar_clean, fmt_number_clean, fmt_pct_clean, fmt_pct_points


BANNER = "=" * 66


def _section(title: str):
    print(f"\n========== {title} ==========\n")


def print_summary(results: dict):
    summary = results["summary"]
    selected = results["selected_date"]

    _section("PORTFOLIO SUMMARY")
    if selected is None:
        print("No entries.")
        return

    print(f"As of:           {selected.strftime('%Y-%m-%d')}  (vs {results['comparison']})")
    print(f"Total value:     {fmt_dollar_clean(summary['total_value'])}")
    print(f"Previous value:  {fmt_dollar_clean(summary['total_previous_value'])}")
    print(f"Change:          {fmt_dollar_clean(summary['absolute_change'])} "
          f"({fmt_pct_points(summary['percent_change'])})")
    print(f"Avg. rate:       {fmt_pct_points(summary['avg_rate'])}")
    largest = summary["largest_holding"]
    print(f"Largest holding: {largest['platform']} ({fmt_dollar_clean(largest['amount'])})\n")

    print(f"{'Platform':<20}{'Amount':>16}{'Share':>10}{'Change':>16}{'Change %':>10}")
    for platform in summary["platforms"]:
        row = summary["platform_data"][platform]
        print(
            f"{platform[:19]:<20}{fmt_dollar_clean(row['amount']):>16}"
            f"{fmt_pct_points(row['percentage']):>10}"
            f"{fmt_dollar_clean(row['absolute_change']):>16}"
            f"{fmt_pct_points(row['percent_change']):>10}"
        )


def print_allocation(results: dict):
    _section("ALLOCATION")
    allocation = results["allocation"]
    if not allocation:
        print("No positive balances.")
        return
    total = sum(amount for _, amount in allocation)
    for label, amount in allocation:
        print(f"{label[:29]:<30}{fmt_dollar_clean(amount):>16}{fmt_pct_clean(amount / total):>10}")


def print_performance(results: dict):
    perf = results["performance"]
    info = perf["data_quality_info"]

    _section("PERFORMANCE")
    print(f"Methodology: {info['methodology']} (confidence: {info['confidence_level']})\n")
    rows = [
        ("Time-weighted return", perf["time_weighted_return"]),
        ("Money-weighted return*", perf["money_weighted_return"]),
        ("CAGR", perf["cagr"]),
        ("Total return", perf["total_return"]),
        ("Volatility", perf["volatility"]),
    ]
    for label, value in rows:
        print(f"{label:<26}{fmt_pct_points(value):>12}")
    print("\n* simplified: value change per dollar contributed, not IRR")


def print_cash_flow(results: dict):
    cf = results["cash_flow"]

    _section("CASH FLOW")
    print(f"Contributions:      {fmt_dollar_clean(cf['total_contributions'])}")
    print(f"Withdrawals:        {fmt_dollar_clean(cf['total_withdrawals'])}")
    print(f"Net contributions:  {fmt_dollar_clean(cf['net_contributions'])}")
    if cf["has_any_contribution_data"]:
        print(f"Investment gains:   {fmt_dollar_clean(cf['investment_gains'])}")
        print(f"Contribution gains: {fmt_dollar_clean(cf['contribution_gains'])}")
        print(f"Avg. contribution:  {fmt_dollar_clean(cf['average_contribution_amount'])}")
        print(f"Contributions/yr:   {fmt_number_clean(cf['contribution_frequency'], 1)}")
    else:
        print("Gains attribution:  N/A (no contribution data recorded)")


def print_risk(results: dict):
    risk = results["risk"]
    div = risk["diversification_metrics"]
    data = risk["portfolio_data_summary"]

    _section("RISK")
    print(f"Data quality: {risk['data_quality'].value} "
          f"({data['enhanced_entries']}/{data['total_entries']} enhanced, {data['coverage_period']})\n")

    print(f"Diversification score:   {fmt_number_clean(div['score'], 1)} / 100")
    print(f"Platforms:               {div['platform_count']}")
    print(f"Concentration (HHI):     {fmt_number_clean(div['concentration_risk'], 3)}")
    print(f"Largest platform weight: {fmt_pct_clean(div['largest_platform_weight'])}\n")

    metrics = risk["investment_risk_metrics"]
    if metrics is None:
        print("Investment risk metrics: Locked")
    else:
        print(f"Annualized volatility:   {fmt_pct_clean(metrics['annualized_volatility'])}")
        print(f"Downside deviation:      {fmt_pct_clean(metrics['downside_deviation'])}")
        print(f"Max drawdown:            {fmt_pct_clean(metrics['max_drawdown'])}")
        print(f"Max drawdown duration:   {metrics['max_drawdown_duration']} days")
        print(f"Current drawdown:        {fmt_pct_clean(metrics['current_drawdown'])}")
        print(f"VaR (95%):               {fmt_pct_clean(metrics['value_at_risk_95'])}")
        print(f"VaR (99%):               {fmt_pct_clean(metrics['value_at_risk_99'])}")
        print(f"Sharpe ratio:            {fmt_number_clean(metrics['sharpe_ratio'])}")
        print(f"Sortino ratio:           {fmt_number_clean(metrics['sortino_ratio'])}")

    for line in risk["limitations"]:
        print(f"  ! {line}")
    for line in risk["improvements"]:
        print(f"  + {line}")


def run_console_report(results: dict):
    print_summary(results)
    print_allocation(results)
    print_performance(results)
    print_cash_flow(results)
    print_risk(results)
    print(f"\n{BANNER}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Portfolio analytics from balance snapshots")
    parser.add_argument("--entries", default=config.ENTRIES_FILE, help="entries CSV")
    parser.add_argument("--tags", default=config.PLATFORM_TAGS_FILE, help="platform,tag CSV")
    parser.add_argument("--date", default=None, help="snapshot date (YYYY-MM-DD); latest by default")
    parser.add_argument("--comparison", choices=COMPARISONS, default="MoM")
    parser.add_argument("--group-by", choices=GROUP_BY, default="platform")
    parser.add_argument("--export", default=None, help="write the validated entries to this CSV")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        entries = load_entries(args.entries)
        tags = load_platform_tags(args.tags)
    except (OSError, ValueError) as e:
        print(f"Could not load data: {e}")
        return 1

    results = run_engine(
        entries,
        selected_date=args.date,
        comparison=args.comparison,
        platform_tags=tags,
        group_by=args.group_by,
    )
    run_console_report(results)

    if args.export:
        try:
            export_entries(entries, args.export)
        except (OSError, ValueError) as e:
            print(f"Could not export data: {e}")
            return 1
        print(f"Exported {len(entries)} entries to {args.export}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
