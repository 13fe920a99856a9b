"""
Tier Replenishment Module
Turns outlook rows into "order N more of model M for dealer D" gap rows using
the operator's tier rules.

For every row whose model is assigned to the evaluated tier:

    required_by_6m = handover6m_stock x rule.handover6m_multiplier
    required_by_3m = handover3m_stock x rule.handover3m_multiplier
    required       = min(max(required, rule.minimum), rule.ceiling)
    gap            = ceil(required - capacity_now)

Each basis with a positive gap becomes its own ranked row. Ranking is by gap,
largest first; equal gaps keep input order (outlook row order, tier order,
then the 6-month basis before the 3-month one).

The tier mix view compares each dealer's yard split across tiers with the
tier share targets.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from .outlook import DealerModelOutlook, outlook_frame
from .tier_config import TierRule, TierSettings

logger = logging.getLogger(__name__)

HANDOVER_6M = "handover6m"
HANDOVER_3M = "handover3m"

# (basis, count column, multiplier attribute), in tie-break order
BASES = (
    (HANDOVER_6M, "handover6m_stock", "handover6m_multiplier"),
    (HANDOVER_3M, "handover3m_stock", "handover3m_multiplier"),
)

# required - capacity is rounded to this many decimals before ceil so that
# float noise (0.1 * 3 - 0.3 = 5.5e-17) does not become a whole unit
GAP_DECIMALS = 9


class TierFallback(str, Enum):
    """What to evaluate when a tier has no models assigned."""
    NONE = "none"              # empty result
    ALL_MODELS = "all_models"  # evaluate every outlook row under the tier's rule


@dataclass
class TierGapRow:
    """One replenishment recommendation."""
    dealer: str
    model: str
    tier: str
    basis: str
    yard: int
    incoming: int
    capacity_now: int
    handover3m_stock: int
    handover6m_stock: int
    multiplier: float
    required: float
    gap: int
    minimum: float = 0.0
    ceiling: Optional[float] = None


@dataclass
class TierDebugRow:
    """Unfiltered evaluation of one outlook row under a tier, for troubleshooting."""
    dealer: str
    model: str
    tier: str
    assigned: bool
    enabled: bool
    yard: int
    incoming: int
    capacity_now: int
    handover3m_stock: int
    handover6m_stock: int
    required_by_6m: float
    required_by_3m: float
    gap_by_6m: int
    gap_by_3m: int
    minimum: float = 0.0
    ceiling: Optional[float] = None


@dataclass
class TierMixRow:
    """One dealer's yard units in a tier against the tier's share target."""
    dealer: str
    tier: str
    yard: int
    dealer_yard: int
    share: float
    target_share: float
    target_units: float
    difference: float


TierSelector = Union[None, str, Iterable[str]]


def compute_gap(required, capacity_now):
    """ceil(required - capacity_now) on scalars or Series."""
    return np.ceil(np.round(np.asarray(required, dtype=float) - np.asarray(capacity_now, dtype=float), GAP_DECIMALS))


def bound_required(required, rule: TierRule):
    """Apply the tier's unit floor, then its ceiling."""
    bounded = np.maximum(required, rule.minimum)
    if rule.ceiling is not None:
        bounded = np.minimum(bounded, rule.ceiling)
    return bounded


def selected_tiers(settings: TierSettings, tier: TierSelector) -> List[str]:
    if tier is None:
        return settings.tiers
    if isinstance(tier, str):
        return [tier]
    return list(tier)


def _base_frame(outlook, settings: TierSettings) -> pd.DataFrame:
    frame = outlook.copy() if isinstance(outlook, pd.DataFrame) else outlook_frame(list(outlook or []))
    frame = frame.reset_index(drop=True)
    frame["_position"] = np.arange(len(frame))
    frame["assigned_tier"] = frame["model"].map(settings.tier_for) if len(frame) else pd.Series(dtype=object)
    return frame


def _candidates(frame: pd.DataFrame, settings: TierSettings, tier: str, fallback: TierFallback) -> pd.DataFrame:
    if not settings.models_in(tier) and TierFallback(fallback) is TierFallback.ALL_MODELS:
        logger.info("Tier %s has no assigned models; evaluating all %d rows", tier, len(frame))
        return frame
    return frame[frame["assigned_tier"] == tier]


def _usable_rule(settings: TierSettings, tier: str) -> Optional[TierRule]:
    rule = settings.rule_for(tier)
    if rule is None:
        logger.debug("No rule configured for tier %s", tier)
        return None
    if not rule.enabled:
        logger.debug("Tier %s is disabled", tier)
        return None
    return rule


def evaluate_tier_gaps(
    outlook: Union[List[DealerModelOutlook], pd.DataFrame],
    settings: TierSettings,
    tier: TierSelector = None,
    fallback: TierFallback = TierFallback.NONE,
) -> List[TierGapRow]:
    """
    Ranked gap recommendations.

    Args:
        outlook: outlook rows (or their frame)
        settings: tier rules and model assignments
        tier: one tier, several tiers, or None for every configured tier
        fallback: TierFallback.ALL_MODELS evaluates every row for a tier
            that has no assigned models; TierFallback.NONE leaves it empty

    Returns:
        Rows with gap > 0, largest gap first.
    """
    frame = _base_frame(outlook, settings)
    if frame.empty:
        return []

    pieces = []
    for tier_position, tier_name in enumerate(selected_tiers(settings, tier)):
        rule = _usable_rule(settings, tier_name)
        if rule is None:
            continue
        subset = _candidates(frame, settings, tier_name, fallback)
        if subset.empty:
            continue
        for basis_position, (basis, count_column, multiplier_attr) in enumerate(BASES):
            multiplier = float(getattr(rule, multiplier_attr))
            piece = subset.copy()
            piece["tier"] = tier_name
            piece["basis"] = basis
            piece["multiplier"] = multiplier
            piece["required"] = bound_required(piece[count_column].astype(float) * multiplier, rule)
            piece["gap"] = compute_gap(piece["required"], piece["capacity_now"])
            piece["_tier_position"] = tier_position
            piece["_basis_position"] = basis_position
            pieces.append(piece[piece["gap"] > 0])

    if not pieces:
        return []
    gaps = pd.concat(pieces, ignore_index=True)
    if gaps.empty:
        return []

    gaps = gaps.sort_values(["_position", "_tier_position", "_basis_position"], kind="mergesort")
    gaps = gaps.sort_values("gap", ascending=False, kind="mergesort")

    rows = [
        TierGapRow(
            dealer=rec["dealer"],
            model=rec["model"],
            tier=rec["tier"],
            basis=rec["basis"],
            yard=int(rec["yard"]),
            incoming=int(rec["incoming"]),
            capacity_now=int(rec["capacity_now"]),
            handover3m_stock=int(rec["handover3m_stock"]),
            handover6m_stock=int(rec["handover6m_stock"]),
            multiplier=float(rec["multiplier"]),
            required=float(rec["required"]),
            gap=int(rec["gap"]),
            minimum=settings.rule_for(rec["tier"]).minimum,
            ceiling=settings.rule_for(rec["tier"]).ceiling,
        )
        for rec in gaps.to_dict("records")
    ]
    logger.info("TIERS: %d gap rows across %d tier(s)", len(rows), len(selected_tiers(settings, tier)))
    return rows


def tier_debug_rows(
    outlook: Union[List[DealerModelOutlook], pd.DataFrame],
    settings: TierSettings,
    tier: str,
    fallback: TierFallback = TierFallback.NONE,
) -> List[TierDebugRow]:
    """
    Every outlook row evaluated under ``tier``, including non-positive gaps.

    Disabled tiers are still evaluated here (flagged ``enabled=False``);
    an unconfigured tier yields no rows.
    """
    rule = settings.rule_for(tier)
    frame = _base_frame(outlook, settings)
    if rule is None or frame.empty:
        return []
    subset = _candidates(frame, settings, tier, fallback)

    required_6m = bound_required(subset["handover6m_stock"].astype(float) * rule.handover6m_multiplier, rule)
    required_3m = bound_required(subset["handover3m_stock"].astype(float) * rule.handover3m_multiplier, rule)
    gap_6m = compute_gap(required_6m, subset["capacity_now"])
    gap_3m = compute_gap(required_3m, subset["capacity_now"])

    rows = []
    for i, rec in enumerate(subset.to_dict("records")):
        rows.append(TierDebugRow(
            dealer=rec["dealer"],
            model=rec["model"],
            tier=tier,
            assigned=rec["assigned_tier"] == tier,
            enabled=rule.enabled,
            yard=int(rec["yard"]),
            incoming=int(rec["incoming"]),
            capacity_now=int(rec["capacity_now"]),
            handover3m_stock=int(rec["handover3m_stock"]),
            handover6m_stock=int(rec["handover6m_stock"]),
            required_by_6m=float(required_6m.iloc[i]),
            required_by_3m=float(required_3m.iloc[i]),
            gap_by_6m=int(gap_6m[i]),
            gap_by_3m=int(gap_3m[i]),
            minimum=rule.minimum,
            ceiling=rule.ceiling,
        ))
    return rows


def tier_mix_rows(
    outlook: Union[List[DealerModelOutlook], pd.DataFrame],
    settings: TierSettings,
) -> List[TierMixRow]:
    """
    Yard units per dealer and tier against each tier's share target.

    Dealers with an empty yard are left out. Units of unassigned models count
    towards the dealer's yard but no tier.
    """
    frame = _base_frame(outlook, settings)
    if frame.empty or not settings.shares:
        return []

    rows = []
    for dealer, group in frame.groupby("dealer", sort=False):
        dealer_yard = int(group["yard"].sum())
        if dealer_yard <= 0:
            continue
        for tier, target_share in settings.shares.items():
            yard = int(group.loc[group["assigned_tier"] == tier, "yard"].sum())
            target_units = target_share * dealer_yard
            rows.append(TierMixRow(
                dealer=dealer,
                tier=tier,
                yard=yard,
                dealer_yard=dealer_yard,
                share=yard / dealer_yard,
                target_share=target_share,
                target_units=target_units,
                difference=yard - target_units,
            ))
    return rows


def gap_frame(rows) -> pd.DataFrame:
    """TierGapRow / TierDebugRow / TierMixRow list as a DataFrame."""
    return pd.DataFrame([asdict(row) for row in rows])
