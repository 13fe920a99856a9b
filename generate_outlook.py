#!/usr/bin/env python3
"""
Dealer Stock Outlook Generator
==============================

Loads the latest record-store snapshots, derives the per-dealer stock
outlook, tier replenishment gaps and model-range target comparison, and
prints them (optionally exporting an Excel workbook).

Usage:
    # Whole network
    python generate_outlook.py

    # One dealer (slug, or slug with its access code) or a dealer group
    python generate_outlook.py --dealer example-dealer
    python generate_outlook.py --dealer example-dealer-ab12cd

    # Gaps for one tier, evaluating every model when none are assigned
    python generate_outlook.py --tier A1 --all-models-fallback

Examples:
    # Reproducible run against a fixed reference time
    python generate_outlook.py --now 2025-12-15 --export

    # Target comparison against each dealer's total volume
    python generate_outlook.py --target-mode share_of_total --year 2026

    # Show current settings
    python generate_outlook.py --show-settings
"""

import sys
import argparse
from pathlib import Path
from datetime import datetime

# Add current directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from dealer_outlook.config import ConfigError, default_config, config_from_yaml, print_current_settings, setup_logging
from dealer_outlook.dates import parse_date
from dealer_outlook.pipeline import PlanningSettings, compute_views
from dealer_outlook.replenishment import TierFallback
from dealer_outlook.report_generator import ReportGenerator
from dealer_outlook.snapshot_loader import SnapshotLoadError, SnapshotLoader
from dealer_outlook.targets import TargetMode
from dealer_outlook.tier_config import TierSettings


def print_outlook(views, max_rows: int):
    rows = views.outlook
    print("\n" + "-" * 78)
    print("STOCK OUTLOOK")
    print("-" * 78)
    if not rows:
        print("No dealer activity in the current snapshots")
        return
    print(f"{'Dealer':<24} {'Model':<16} {'Yard':>5} {'Incoming':>9} {'Capacity':>9} {'HO 3M':>6} {'HO 6M':>6}")
    print("-" * 78)
    for row in rows[:max_rows]:
        print(f"{row.dealer[:24]:<24} {row.model[:16]:<16} {row.yard:>5} {row.incoming:>9} "
              f"{row.capacity_now:>9} {row.handover3m_stock:>6} {row.handover6m_stock:>6}")
    if len(rows) > max_rows:
        print(f"  ... and {len(rows) - max_rows} more")

    months = list(rows[0].incoming_by_month)
    totals = {label: sum(row.incoming_by_month.get(label, 0) for row in rows) for label in months}
    print("\nIncoming by arrival month:")
    for label in months:
        print(f"   {label:<10} {totals[label]:>6,} units")


def print_tier_gaps(views, max_rows: int):
    print("\n" + "-" * 78)
    print("TIER REPLENISHMENT GAPS")
    print("-" * 78)
    if not views.tier_gaps:
        print("No gaps for the selected tiers")
        return
    print(f"{'Dealer':<24} {'Model':<16} {'Tier':<5} {'Basis':<11} {'Capacity':>9} {'Required':>9} {'Order':>6}")
    print("-" * 78)
    for row in views.tier_gaps[:max_rows]:
        print(f"{row.dealer[:24]:<24} {row.model[:16]:<16} {row.tier:<5} {row.basis:<11} "
              f"{row.capacity_now:>9} {row.required:>9.2f} {row.gap:>6}")
    total = sum(row.gap for row in views.tier_gaps)
    print("-" * 78)
    print(f"{'TOTAL':<24} {'':<16} {'':<5} {'':<11} {'':>9} {'':>9} {total:>6}")


def print_tier_debug(views, max_rows: int):
    if not views.tier_debug:
        return
    print("\n" + "-" * 78)
    print("TIER DEBUG")
    print("-" * 78)
    print(f"{'Dealer':<24} {'Model':<16} {'Tier':<5} {'Assigned':<9} {'Gap 6M':>7} {'Gap 3M':>7}")
    for row in views.tier_debug[:max_rows]:
        print(f"{row.dealer[:24]:<24} {row.model[:16]:<16} {row.tier:<5} {str(row.assigned):<9} "
              f"{row.gap_by_6m:>7} {row.gap_by_3m:>7}")


def print_tier_mix(views, max_rows: int):
    if not views.tier_mix:
        return
    print("\n" + "-" * 78)
    print("TIER YARD MIX")
    print("-" * 78)
    print(f"{'Dealer':<24} {'Tier':<5} {'Yard':>5} {'Share':>7} {'Target':>7} {'Target Units':>13} {'Diff':>7}")
    for row in views.tier_mix[:max_rows]:
        print(f"{row.dealer[:24]:<24} {row.tier:<5} {row.yard:>5} {row.share:>7.0%} {row.target_share:>7.0%} "
              f"{row.target_units:>13.1f} {row.difference:>7.1f}")


def print_targets(views):
    print("\n" + "-" * 78)
    print("MODEL RANGE TARGETS")
    print("-" * 78)
    if not views.targets:
        print("No focus model ranges configured")
        return
    for comparison in views.targets:
        print(f"\n{comparison.model_range} (target {comparison.target_percent:g}%, {comparison.mode.value})")
        print(f"{'Dealer':<30} {'Result':>8} {'Total':>8} {'Target':>9} {'Diff':>9}")
        for row in comparison.rows:
            print(f"{row.dealer[:30]:<30} {row.result:>8.0f} {row.dealer_total:>8.0f} "
                  f"{row.target:>9.2f} {row.difference:>9.2f}")
        print(f"{'TOTAL':<30} {comparison.total_result:>8.0f} {'':>8} "
              f"{comparison.total_target:>9.2f} {comparison.total_difference:>9.2f}")


def main():
    parser = argparse.ArgumentParser(
        description="Dealer Stock Outlook - outlook, tier gaps and range targets from snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Usage:")[1],
    )
    parser.add_argument("--settings", type=str, help="settings.yaml to use instead of the default")
    parser.add_argument("--data-dir", type=str, help="Directory holding the snapshot exports")
    parser.add_argument("--planning-settings", type=str, help="planning_settings.yaml with tiers and targets")
    parser.add_argument("--dealer", "-d", type=str, help="Dealer or dealer-group slug to scope to")
    parser.add_argument("--tier", "-t", type=str, action="append",
                        help="Tier to evaluate (repeatable; default: all configured tiers)")
    parser.add_argument("--all-models-fallback", action="store_true",
                        help="Evaluate every model for a tier that has no models assigned")
    parser.add_argument("--default-tiers", action="store_true",
                        help="Use the default A1/A1+/A2/B1 rules, unit bounds and shares when none are configured")
    parser.add_argument("--target-mode", type=str, default=TargetMode.YEARLY_TARGET.value,
                        choices=[mode.value for mode in TargetMode],
                        help="Target comparison mode (default: yearly_target)")
    parser.add_argument("--year", type=int, help="Production year for target counts (default: year of --now)")
    parser.add_argument("--now", type=str, help="Reference time, e.g. 2025-12-15 (default: current time)")
    parser.add_argument("--max-rows", type=int, default=25, help="Rows to print per table (default: 25)")
    parser.add_argument("--export", "-e", action="store_true", help="Write an Excel workbook")
    parser.add_argument("--show-settings", action="store_true", help="Print current settings and exit")

    args = parser.parse_args()

    try:
        config = config_from_yaml(Path(args.settings)) if args.settings else default_config
    except ConfigError as e:
        print(f"\nError: {e}")
        return 1
    setup_logging(config)

    if args.data_dir:
        config = config.with_overrides(data_path=Path(args.data_dir))
    if args.planning_settings:
        config = config.with_overrides(planning_settings_file=Path(args.planning_settings))

    if args.show_settings:
        print_current_settings(config)
        return 0

    now = parse_date(args.now) if args.now else datetime.now()
    if now is None:
        print(f"\nError: could not parse --now {args.now!r}")
        return 1

    print(f"\n{'=' * 78}")
    print("DEALER STOCK OUTLOOK")
    print(f"{'=' * 78}")
    print(f"Data: {config.data_path}")
    print(f"Dealer Scope: {args.dealer or 'All dealers'}")
    print(f"Reference Time: {now.strftime('%Y-%m-%d %H:%M')}")
    print(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    try:
        snapshots = SnapshotLoader(config=config).load_snapshots()
        settings = PlanningSettings.load(config=config)
    except (SnapshotLoadError, ConfigError) as e:
        print(f"\nError: {e}")
        return 1

    if args.default_tiers and not settings.tiers.rules:
        defaults = TierSettings.with_defaults()
        settings.tiers = TierSettings(
            rules=defaults.rules, assignments=settings.tiers.assignments, shares=defaults.shares
        )

    views = compute_views(
        snapshots,
        settings,
        now,
        tier=args.tier,
        fallback=TierFallback.ALL_MODELS if args.all_models_fallback else TierFallback.NONE,
        dealer=args.dealer,
        target_mode=TargetMode(args.target_mode),
        target_year=args.year,
        config=config,
    )

    if views.loading:
        print(f"\nWaiting for snapshots: {', '.join(snapshots.missing)}")
        return 2

    print_outlook(views, args.max_rows)
    print_tier_gaps(views, args.max_rows)
    print_tier_debug(views, args.max_rows)
    print_tier_mix(views, args.max_rows)
    print_targets(views)

    issues = views.diagnostics.data_issue_total()
    if issues:
        print(f"\n{issues:,} records excluded; run check_snapshot_quality.py for details")

    if args.export:
        print("\nGenerating Excel report...")
        output_file = ReportGenerator(config=config).generate_outlook_report(views, dealer=args.dealer)
        print(f"Report generated: {output_file}")

    print(f"\nCompleted: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
