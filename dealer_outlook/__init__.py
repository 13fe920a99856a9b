"""
Dealer Stock Outlook & Replenishment Engine
===========================================

Derives per-dealer, per-model stock outlooks from the order schedule, yard
stock and handover snapshots, turns them into tier-based replenishment gaps,
and compares production-confirmed mix against model-range targets.

Configuration:
- Edit settings.yaml for paths, field aliases, horizon and handover windows
- Edit planning_settings.yaml for tier rules, model tiers and range targets
"""

from .config import Config, ConfigError, default_config, config_from_yaml, reload_settings, print_current_settings
from .diagnostics import Diagnostics, ISSUE_CODES, get_issue_description
from .identity import normalize_dealer_slug, dealer_key, normalize_chassis_exact, normalize_chassis_loose
from .classifier import STOCK, CUSTOMER, classify_record, is_stock_customer, is_stock_like_record
from .chassis_index import ChassisIndex, find_schedule_match
from .dealers import DealerConfig, DealerDirectory
from .outlook import DealerModelOutlook, OutlookAggregator, build_outlook
from .tier_config import TierRule, TierSettings, load_tier_settings
from .replenishment import (
    TierFallback, TierGapRow, TierDebugRow, TierMixRow, evaluate_tier_gaps, tier_debug_rows, tier_mix_rows,
)
from .targets import TargetMode, TargetConfig, RangeComparison, compare_targets, build_dealer_range_counts
from .pipeline import Snapshots, PlanningSettings, DerivedViews, compute_views
from .snapshot_loader import SnapshotLoader, SnapshotLoadError
from .report_generator import ReportGenerator

__version__ = "1.0.0"
__all__ = [
    "Config",
    "ConfigError",
    "default_config",
    "config_from_yaml",
    "reload_settings",
    "print_current_settings",
    "Diagnostics",
    "ISSUE_CODES",
    "get_issue_description",
    "normalize_dealer_slug",
    "dealer_key",
    "normalize_chassis_exact",
    "normalize_chassis_loose",
    "STOCK",
    "CUSTOMER",
    "classify_record",
    "is_stock_customer",
    "is_stock_like_record",
    "ChassisIndex",
    "find_schedule_match",
    "DealerConfig",
    "DealerDirectory",
    "DealerModelOutlook",
    "OutlookAggregator",
    "build_outlook",
    "TierRule",
    "TierSettings",
    "load_tier_settings",
    "TierFallback",
    "TierGapRow",
    "TierDebugRow",
    "evaluate_tier_gaps",
    "tier_debug_rows",
    "TierMixRow",
    "tier_mix_rows",
    "TargetMode",
    "TargetConfig",
    "RangeComparison",
    "compare_targets",
    "build_dealer_range_counts",
    "Snapshots",
    "PlanningSettings",
    "DerivedViews",
    "compute_views",
    "SnapshotLoader",
    "SnapshotLoadError",
    "ReportGenerator",
]
