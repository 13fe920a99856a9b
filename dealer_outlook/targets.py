"""
Target & Highlight Module
Compares each active dealer's production-confirmed mix against the
percentage-of-volume target set for each focus model range.

Comparison modes:
- SHARE_OF_TOTAL     target = dealer total x pct / 100, difference = actual - target
- YEARLY_TARGET      target = dealer yearly target x pct / 100, difference = actual - target
- PERCENTAGE_POINTS  difference = actual share of dealer total (%) - pct

Rows come back sorted so the dealers furthest from target are first for
the mode in use.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .config import Config, default_config
from .dates import first_date
from .dealers import DealerConfig, DealerDirectory
from .diagnostics import Diagnostics

logger = logging.getLogger(__name__)

TARGET_MODEL_RANGES = ["SRC", "SRH", "SRL", "SRP", "SRS", "SRT", "SRV", "NGC", "NGB"]

OTHER_RANGE = "OTHER"
UNKNOWN_DEALER = "Unknown Dealer"
FINISHED_STATUSES = {"finished", "finish"}


class TargetMode(str, Enum):
    SHARE_OF_TOTAL = "share_of_total"
    YEARLY_TARGET = "yearly_target"
    PERCENTAGE_POINTS = "percentage_points"


# True = largest difference first
SORT_DESCENDING = {
    TargetMode.SHARE_OF_TOTAL: False,
    TargetMode.YEARLY_TARGET: True,
    TargetMode.PERCENTAGE_POINTS: False,
}


@dataclass
class TargetConfig:
    """Operator's focus ranges and per-range target percentages."""
    focus_ranges: List[str] = field(default_factory=list)
    range_targets: Dict[str, float] = field(default_factory=dict)  # range -> percent

    @classmethod
    def from_dict(cls, data: Optional[dict], diagnostics: Diagnostics = None) -> "TargetConfig":
        data = data or {}
        focus = data.get("focusModelRanges") or data.get("focus_ranges") or []
        raw_targets = data.get("modelRangeTargets") or data.get("range_targets") or {}
        targets = {}
        for model_range, pct in raw_targets.items():
            try:
                value = float(pct)
            except (TypeError, ValueError):
                value = float("nan")
            if value != value or value < 0:
                logger.warning("Target for range %s is invalid (%r); using 0", model_range, pct)
                if diagnostics is not None:
                    diagnostics.record("CFG003", range=model_range, value=pct)
                value = 0.0
            targets[str(model_range).strip().upper()] = value
        return cls(
            focus_ranges=[str(r).strip().upper() for r in focus if str(r).strip()],
            range_targets=targets,
        )


@dataclass
class TargetRow:
    dealer: str
    slug: str
    result: float
    dealer_total: float
    target: float
    difference: float


@dataclass
class RangeComparison:
    """All dealer rows for one focus range plus totals."""
    model_range: str
    mode: TargetMode
    target_percent: float
    rows: List[TargetRow]
    total_result: float
    total_target: float
    total_difference: float


# =============================================================================
# PRODUCTION-CONFIRMED COUNTS
# =============================================================================

def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    return str(value).strip()


def model_range(model=None, chassis=None) -> str:
    """First three characters of the model, else of the chassis, uppercased."""
    model_text = _text(model)
    if model_text:
        return model_text[:3].upper()
    chassis_text = _text(chassis)
    if chassis_text:
        return chassis_text[:3].upper()
    return OTHER_RANGE


def _is_finished(status) -> bool:
    return _text(status).lower() in FINISHED_STATUSES


# (status, forecast dates, dealer, model, chassis) field names per schedule
SCHEDULE_FIELDS = ("Regent Production", None, "Dealer", "Model", "Chassis")
CAMPERVAN_FIELDS = ("regentProduction", ["forecastProductionDate"], "dealer", "model", "chassisNumber")


def build_dealer_range_counts(
    orders: Optional[Iterable[dict]],
    year: int,
    campervans: Optional[Iterable[dict]] = None,
    config: Config = None,
) -> Dict[str, Dict[str, int]]:
    """
    {dealer name: {model range: count}} of units confirmed for production
    in ``year``.

    Orders already finished in production are excluded, as are orders
    without a parseable forecast production date. Unallocated slots (no
    chassis) still count.
    """
    config = config or default_config
    counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    sources = [(orders, SCHEDULE_FIELDS), (campervans, CAMPERVAN_FIELDS)]
    for records, (status_field, date_fields, dealer_field, model_field, chassis_field) in sources:
        date_fields = date_fields or config.forecast_date_fields
        for item in records or []:
            if not isinstance(item, dict) or _is_finished(item.get(status_field)):
                continue
            forecast = first_date(item, date_fields)
            if forecast is None or forecast.year != year:
                continue
            dealer = _text(item.get(dealer_field)) or UNKNOWN_DEALER
            counts[dealer][model_range(item.get(model_field), item.get(chassis_field))] += 1

    return {dealer: dict(ranges) for dealer, ranges in counts.items()}


def _normalize_key(value) -> str:
    return _text(value).lower()


def _counts_for(dealer: DealerConfig, by_name: Dict[str, Dict[str, int]]) -> Dict[str, int]:
    return by_name.get(_normalize_key(dealer.name)) or by_name.get(_normalize_key(dealer.slug)) or {}


# =============================================================================
# COMPARISON
# =============================================================================

def _compare(actual: float, total: float, yearly_target: float, pct: float, mode: TargetMode):
    if mode is TargetMode.SHARE_OF_TOTAL:
        target = total * pct / 100
        return target, actual - target
    if mode is TargetMode.YEARLY_TARGET:
        target = yearly_target * pct / 100
        return target, actual - target
    actual_pct = actual / total * 100 if total > 0 else 0.0
    return pct, actual_pct - pct


def compare_targets(
    range_counts: Dict[str, Dict[str, int]],
    dealers: DealerDirectory,
    target_config: TargetConfig,
    mode: TargetMode = TargetMode.YEARLY_TARGET,
) -> List[RangeComparison]:
    """
    One RangeComparison per focus range, in the operator's focus order.

    Only active (non-group) dealers take part. In YEARLY_TARGET mode dealers
    without a positive yearly target are left out.
    """
    mode = TargetMode(mode)
    by_name = {}
    for dealer_name, ranges in (range_counts or {}).items():
        key = _normalize_key(dealer_name)
        if key:
            by_name[key] = ranges or {}

    eligible = dealers.active()
    if mode is TargetMode.YEARLY_TARGET:
        eligible = [d for d in eligible if d.yearly_target > 0]

    comparisons = []
    for focus in target_config.focus_ranges:
        pct = float(target_config.range_targets.get(focus, 0.0))
        rows = []
        for dealer in eligible:
            counts = _counts_for(dealer, by_name)
            actual = float(counts.get(focus, 0))
            total = float(sum(counts.values()))
            target, difference = _compare(actual, total, dealer.yearly_target, pct, mode)
            rows.append(TargetRow(
                dealer=dealer.name,
                slug=dealer.slug,
                result=actual,
                dealer_total=total,
                target=round(target, 2),
                difference=round(difference, 2),
            ))
        rows.sort(key=lambda row: row.difference, reverse=SORT_DESCENDING[mode])

        total_result = sum(row.result for row in rows)
        total_target = round(sum(row.target for row in rows), 2)
        comparisons.append(RangeComparison(
            model_range=focus,
            mode=mode,
            target_percent=pct,
            rows=rows,
            total_result=total_result,
            total_target=total_target,
            total_difference=round(total_result - total_target, 2),
        ))

    logger.info("TARGETS: %d focus range(s) compared for %d dealer(s) [%s]",
                len(comparisons), len(eligible), mode.value)
    return comparisons


def target_frame(comparisons: List[RangeComparison]) -> pd.DataFrame:
    """Flatten comparisons to one row per (range, dealer)."""
    records = [
        {
            "model_range": comparison.model_range,
            "mode": comparison.mode.value,
            "target_percent": comparison.target_percent,
            "dealer": row.dealer,
            "result": row.result,
            "dealer_total": row.dealer_total,
            "target": row.target,
            "difference": row.difference,
        }
        for comparison in comparisons
        for row in comparison.rows
    ]
    return pd.DataFrame(records, columns=[
        "model_range", "mode", "target_percent", "dealer",
        "result", "dealer_total", "target", "difference",
    ])
