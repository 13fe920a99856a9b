#!/usr/bin/env python
"""
Snapshot Quality Checker
========================
Runs one aggregation pass over the latest snapshots and reports every record
that had to be left out, grouped by issue code.

Usage:
    python check_snapshot_quality.py                  # All issue codes with samples
    python check_snapshot_quality.py --summary-only   # Just the counts
    python check_snapshot_quality.py --code CHS002    # One issue code

Issues reported:
    - Orders without chassis (unallocated slots)
    - Yard/handover chassis that are not in the schedule
    - Records without a usable dealer
    - Missing or unparseable forecast, handover and PGI dates
    - Arrivals outside the horizon and handovers outside the window (informational)
    - Invalid tier multipliers, unknown tiers and invalid range targets
"""

import sys
import argparse
from pathlib import Path
from datetime import datetime

# Add project to path
sys.path.insert(0, str(Path(__file__).parent))

from dealer_outlook.config import ConfigError, default_config, setup_logging
from dealer_outlook.dates import parse_date
from dealer_outlook.diagnostics import INFORMATIONAL_CODES, ISSUE_CODES, get_issue_description
from dealer_outlook.pipeline import PlanningSettings, compute_views
from dealer_outlook.snapshot_loader import SnapshotLoadError, SnapshotLoader


def print_section(title: str, char: str = "="):
    """Print a formatted section header."""
    print(f"\n{char * 70}")
    print(f"  {title}")
    print(f"{char * 70}")


def print_issue_summary(code: str, count: int):
    """Print one summary line for an issue code."""
    if code in INFORMATIONAL_CODES:
        status_icon = "i"
    else:
        status_icon = "X" if count > 0 else "OK"
    print(f"  [{status_icon:>2}] {code} {get_issue_description(code)}: {count:,}")


def print_samples(code: str, samples: list):
    """Print the sample records kept for an issue code."""
    if not samples:
        return
    print(f"\n{code} - {get_issue_description(code)}:")
    print("-" * 50)
    for i, sample in enumerate(samples):
        details = ", ".join(f"{key}={value}" for key, value in sample.items())
        print(f"  {i+1}. {details}")


def main():
    parser = argparse.ArgumentParser(
        description="Snapshot Quality Checker - find records the outlook had to leave out",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python check_snapshot_quality.py                  # Full report
  python check_snapshot_quality.py --summary-only   # Quick summary
  python check_snapshot_quality.py --code DT001     # Specific issue code
        """
    )

    parser.add_argument(
        "--summary-only", "-s",
        action="store_true",
        help="Show only counts, skip sample records"
    )

    parser.add_argument(
        "--code", "-c",
        type=str,
        choices=sorted(ISSUE_CODES),
        help="Show only one issue code"
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        help="Directory holding the snapshot exports"
    )

    parser.add_argument(
        "--now",
        type=str,
        help="Reference time for windows (default: current time)"
    )

    args = parser.parse_args()
    config = default_config
    if args.data_dir:
        config = config.with_overrides(data_path=Path(args.data_dir))
    setup_logging(config)

    print_section("SNAPSHOT QUALITY ANALYSIS")
    print(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    now = parse_date(args.now) if args.now else datetime.now()
    if now is None:
        print(f"\nError: could not parse --now {args.now!r}")
        return 1

    try:
        snapshots = SnapshotLoader(config=config).load_snapshots()
        settings = PlanningSettings.load(config=config)
    except (SnapshotLoadError, ConfigError) as e:
        print(f"\nError: {e}")
        return 1

    views = compute_views(snapshots, settings, now, config=config)
    if views.loading:
        print(f"\nNo snapshot yet for: {', '.join(snapshots.missing)}")
        return 2

    diagnostics = views.diagnostics
    codes = [args.code] if args.code else list(ISSUE_CODES)

    print_section("SUMMARY", "-")
    print(f"  Orders Analyzed: {len(snapshots.orders):,}")
    print(f"  Outlook Rows: {len(views.outlook):,}")
    print(f"  Excluded Records: {diagnostics.data_issue_total():,}")
    print()
    for code in codes:
        print_issue_summary(code, diagnostics.count(code))

    if not args.summary_only:
        print_section("SAMPLES", "-")
        for code in codes:
            print_samples(code, diagnostics.samples.get(code, []))

    print(f"\nCompleted: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
