"""
Snapshot Pipeline
=================
Single entry point turning one consistent set of snapshots plus the
operator's planning settings into every derived view:

    (snapshots, settings, now) -> DerivedViews

The pipeline keeps no state between calls. Whoever subscribes to the record
streams calls compute_views() again with the full latest set whenever any
one stream delivers, rather than patching previous results. Until the
orders, yard and handover streams have each delivered a snapshot the views
are returned empty with loading=True; earlier results are not kept.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .chassis_index import ChassisIndex
from .config import Config, default_config
from .dealers import DealerDirectory
from .diagnostics import Diagnostics
from .outlook import DealerModelOutlook, OutlookAggregator
from .replenishment import (
    TierDebugRow,
    TierFallback,
    TierGapRow,
    TierMixRow,
    TierSelector,
    evaluate_tier_gaps,
    selected_tiers,
    tier_debug_rows,
    tier_mix_rows,
)
from .targets import RangeComparison, TargetConfig, TargetMode, build_dealer_range_counts, compare_targets
from .tier_config import TierSettings, read_planning_settings, tier_settings_from_dict

logger = logging.getLogger(__name__)


@dataclass
class Snapshots:
    """Latest snapshot of every stream; None = not delivered yet."""
    orders: Optional[List[dict]] = None
    yard: Optional[Dict[str, dict]] = None
    handover: Optional[Dict[str, dict]] = None
    pgi: Optional[Dict[str, dict]] = None
    dealer_configs: Optional[Dict[str, dict]] = None
    campervans: Optional[List[dict]] = None

    @staticmethod
    def for_dealer(dealer_slug: str, snapshot: Optional[dict]) -> Optional[Dict[str, dict]]:
        """Wrap a per-dealer yard/handover snapshot into the all-dealer shape."""
        if snapshot is None:
            return None
        return {dealer_slug: snapshot}

    def dealer_slugs(self) -> List[str]:
        """Dealer keys and names seen in the yard, handover and orders streams."""
        slugs = list(self.yard or {}) + list(self.handover or {})
        slugs.extend(order.get("Dealer") for order in (self.orders or []) if isinstance(order, dict))
        return [slug for slug in slugs if slug]

    @property
    def missing(self) -> List[str]:
        return [name for name in ("orders", "yard", "handover") if getattr(self, name) is None]


@dataclass
class PlanningSettings:
    """Operator configuration read from the configuration store."""
    tiers: TierSettings = field(default_factory=TierSettings)
    target_config: TargetConfig = field(default_factory=TargetConfig)
    issues: Diagnostics = field(default_factory=Diagnostics)  # problems found while parsing

    @classmethod
    def from_dict(cls, data: Optional[dict], diagnostics: Diagnostics = None) -> "PlanningSettings":
        data = data or {}
        diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        return cls(
            tiers=tier_settings_from_dict(data, diagnostics),
            target_config=TargetConfig.from_dict(
                data.get("target_highlight") or data.get("targetHighlight"), diagnostics
            ),
            issues=diagnostics,
        )

    @classmethod
    def load(cls, path: Path = None, config: Config = None, diagnostics: Diagnostics = None) -> "PlanningSettings":
        config = config or default_config
        return cls.from_dict(read_planning_settings(path or config.planning_settings_file), diagnostics)


@dataclass
class DerivedViews:
    """Everything handed to the presentation layer for one pass."""
    loading: bool = False
    now: Optional[datetime] = None
    outlook: List[DealerModelOutlook] = field(default_factory=list)
    tier_gaps: List[TierGapRow] = field(default_factory=list)
    tier_debug: List[TierDebugRow] = field(default_factory=list)
    tier_mix: List[TierMixRow] = field(default_factory=list)
    targets: List[RangeComparison] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)


def compute_views(
    snapshots: Snapshots,
    settings: PlanningSettings,
    now: datetime,
    tier: TierSelector = None,
    fallback: TierFallback = TierFallback.NONE,
    dealer: Optional[str] = None,
    target_mode: TargetMode = TargetMode.YEARLY_TARGET,
    target_year: Optional[int] = None,
    config: Config = None,
) -> DerivedViews:
    """
    Recompute every derived view from scratch.

    Args:
        snapshots: one consistent capture of all streams
        settings: tier rules, model-tier assignment and target config
        now: reference time, used for every window in this pass
        tier: tier(s) to evaluate; None = every configured tier
        fallback: explicit mode for tiers without assigned models
        dealer: optional dealer or dealer-group selector (slug, or
            slug with access code) restricting outlook and tier views
        target_mode: comparison mode for the target view
        target_year: production year for target counts (default now.year)
    """
    config = config or default_config
    settings = settings or PlanningSettings()

    if snapshots is None or snapshots.missing:
        missing = snapshots.missing if snapshots is not None else ["all"]
        logger.info("Waiting for snapshots: %s", ", ".join(missing))
        return DerivedViews(loading=True, now=now)

    diagnostics = Diagnostics()
    diagnostics.merge(settings.issues)
    year = target_year or now.year
    directory = DealerDirectory.from_snapshot(snapshots.dealer_configs, year)
    scope = directory.scope(dealer, known_slugs=snapshots.dealer_slugs())

    index = ChassisIndex.from_orders(snapshots.orders, config)
    if index.skipped_without_chassis:
        diagnostics.counts["CHS001"] += index.skipped_without_chassis

    outlook = OutlookAggregator(config=config).aggregate(
        snapshots.orders,
        snapshots.yard,
        snapshots.handover,
        now,
        pgi=snapshots.pgi,
        dealers=scope,
        diagnostics=diagnostics,
        index=index,
    )

    tier_gaps = evaluate_tier_gaps(outlook, settings.tiers, tier=tier, fallback=fallback)
    tier_debug = []
    for tier_name in selected_tiers(settings.tiers, tier):
        tier_debug.extend(tier_debug_rows(outlook, settings.tiers, tier_name, fallback=fallback))

    range_counts = build_dealer_range_counts(
        snapshots.orders, year, snapshots.campervans, config=config
    )
    targets = compare_targets(range_counts, directory, settings.target_config, mode=target_mode)

    return DerivedViews(
        loading=False,
        now=now,
        outlook=outlook,
        tier_gaps=tier_gaps,
        tier_debug=tier_debug,
        tier_mix=tier_mix_rows(outlook, settings.tiers),
        targets=targets,
        diagnostics=diagnostics,
    )
