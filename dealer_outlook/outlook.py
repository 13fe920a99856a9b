"""
Outlook Aggregator Module
Folds yard stock, forecast arrivals and handover history into one row per
(dealer, model).

For each pass:
1. Yard entries classified as stock -> yard count
2. Stock orders whose forecast production + lead days lands in the horizon
   -> incoming count (per month bucket too)
3. Stock handovers inside the long / short trailing windows
   -> handover6m_stock / handover3m_stock
4. capacity_now = yard + incoming; rows with nothing on yard, nothing
   incoming and no handovers are dropped

"now" is taken once per pass so every window comparison agrees. Nothing is
cached between passes; call aggregate() again when any snapshot changes.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .chassis_index import ChassisIndex, record_chassis
from .classifier import is_stock_customer, is_stock_like_record
from .config import Config, default_config
from .dates import (
    MonthBucket,
    add_days,
    bucket_index,
    first_date,
    month_buckets,
    parse_year_month,
    start_of_day,
)
from .diagnostics import Diagnostics
from .identity import dealer_key

logger = logging.getLogger(__name__)

UNKNOWN_MODEL = "Unknown"

OUTLOOK_COLUMNS = [
    "dealer", "model", "yard", "incoming", "capacity_now",
    "handover3m_stock", "handover6m_stock", "recent_pgi",
]


@dataclass
class DealerModelOutlook:
    """Derived per-(dealer, model) position. Never persisted."""
    dealer: str
    model: str
    yard: int = 0
    incoming: int = 0
    handover3m_stock: int = 0
    handover6m_stock: int = 0
    recent_pgi: int = 0
    incoming_by_month: Dict[str, int] = field(default_factory=dict)

    @property
    def capacity_now(self) -> int:
        return self.yard + self.incoming

    @property
    def key(self) -> Tuple[str, str]:
        return (self.dealer, self.model)

    def has_activity(self) -> bool:
        return bool(self.yard or self.incoming or self.handover6m_stock)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["capacity_now"] = self.capacity_now
        return data


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    return str(value).strip()


def _first_text(record, fields: Iterable[str]) -> str:
    if not isinstance(record, dict):
        return ""
    for name in fields:
        value = _text(record.get(name))
        if value:
            return value
    return ""


class OutlookAggregator:
    """Build DealerModelOutlook rows from one consistent set of snapshots."""

    def __init__(self, config: Config = None):
        self.config = config or default_config

    # =========================================================================
    # HORIZON
    # =========================================================================

    def forecast_buckets(self, now: datetime) -> List[MonthBucket]:
        """Month buckets arrivals are counted into."""
        anchor = parse_year_month(self.config.horizon_start)
        if anchor is not None:
            return month_buckets(anchor, self.config.horizon_months, 0)
        return month_buckets(now, self.config.horizon_months, self.config.horizon_offset_months)

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def aggregate(
        self,
        orders: Optional[List[dict]],
        yard: Optional[Dict[str, dict]],
        handover: Optional[Dict[str, dict]],
        now: datetime,
        pgi: Optional[Dict[str, dict]] = None,
        dealers: Optional[Iterable[str]] = None,
        diagnostics: Optional[Diagnostics] = None,
        index: Optional[ChassisIndex] = None,
    ) -> List[DealerModelOutlook]:
        """
        Compute outlook rows.

        Args:
            orders: order/schedule snapshot (list of records)
            yard: {dealer_slug: {chassis: entry}}
            handover: {dealer_slug: {key: record}}
            now: reference time for windows and the default horizon
            pgi: optional {chassis: dispatch record}, adds recent_pgi
            dealers: optional dealer slugs to restrict the pass to
            diagnostics: optional collector for excluded records
            index: prebuilt chassis index over ``orders``

        Returns:
            Rows sorted by dealer, yard stock (descending) and model.
        """
        orders = orders or []
        diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        index = index or ChassisIndex.from_orders(orders, self.config)
        scope = {dealer_key(d) for d in dealers} if dealers is not None else None
        buckets = self.forecast_buckets(now)
        day_start = start_of_day(now)
        short_cutoff = add_days(day_start, -self.config.short_window_days)
        long_cutoff = add_days(day_start, -self.config.long_window_days)

        rows: Dict[Tuple[str, str], DealerModelOutlook] = {}

        def row_for(dealer: str, model: str) -> DealerModelOutlook:
            key = (dealer, model)
            if key not in rows:
                rows[key] = DealerModelOutlook(
                    dealer=dealer,
                    model=model,
                    incoming_by_month={bucket.label: 0 for bucket in buckets},
                )
            return rows[key]

        yard_count = self._count_yard(yard or {}, index, scope, row_for, diagnostics)
        incoming_count = self._count_incoming(orders, buckets, scope, row_for, diagnostics)
        handover_count = self._count_handovers(
            handover or {}, index, scope, short_cutoff, long_cutoff, row_for, diagnostics
        )

        result = [row for row in rows.values() if row.has_activity()]
        if pgi:
            live = {row.key: row for row in result}
            self._count_pgi(pgi, index, scope, short_cutoff, live, diagnostics)

        result.sort(key=lambda row: (row.dealer, -row.yard, row.model))
        logger.info(
            "OUTLOOK: %d rows from %d yard stock, %d incoming, %d stock handovers",
            len(result), yard_count, incoming_count, handover_count,
        )
        return result

    def _resolve_model(self, record, match: Optional[dict]) -> str:
        model = _first_text(record, self.config.model_fields)
        if not model and match is not None:
            model = _first_text(match, ["Model", "model"])
        return model or UNKNOWN_MODEL

    def _enrich(self, record, key, index: ChassisIndex, diagnostics: Diagnostics, dealer: str):
        chassis = record_chassis(record, self.config, fallback=key)
        match = index.find(chassis) if chassis else None
        if chassis and match is None:
            diagnostics.record("CHS002", dealer=dealer, chassis=chassis)
        return chassis, match

    def _count_yard(self, yard, index, scope, row_for, diagnostics) -> int:
        counted = 0
        for raw_dealer, entries in yard.items():
            dealer = dealer_key(raw_dealer)
            if not dealer:
                diagnostics.record("DLR001", source="yard", dealer=raw_dealer)
                continue
            if scope is not None and dealer not in scope:
                continue
            for key, entry in (entries or {}).items():
                if key == self.config.yard_sentinel_key:
                    continue
                record = entry if isinstance(entry, dict) else {}
                _, match = self._enrich(record, key, index, diagnostics, dealer)
                customer = match.get("Customer") if match is not None else None
                if not is_stock_like_record(record, customer, self.config):
                    continue
                row_for(dealer, self._resolve_model(record, match)).yard += 1
                counted += 1
        return counted

    def _count_incoming(self, orders, buckets, scope, row_for, diagnostics) -> int:
        counted = 0
        lead_days = self.config.arrival_lead_days
        for order in orders:
            if not isinstance(order, dict) or not is_stock_customer(order.get("Customer")):
                continue
            dealer = dealer_key(order.get("Dealer"))
            if not dealer:
                diagnostics.record("DLR001", source="orders", chassis=order.get("Chassis"))
                continue
            if scope is not None and dealer not in scope:
                continue
            forecast = first_date(order, self.config.forecast_date_fields)
            if forecast is None:
                diagnostics.record("DT001", dealer=dealer, chassis=order.get("Chassis"))
                continue
            arrival = add_days(forecast, lead_days)
            position = bucket_index(arrival, buckets)
            if position is None:
                diagnostics.record("WIN001", dealer=dealer, arrival=arrival.date().isoformat())
                continue
            row = row_for(dealer, _text(order.get("Model")) or UNKNOWN_MODEL)
            row.incoming += 1
            row.incoming_by_month[buckets[position].label] += 1
            counted += 1
        return counted

    def _count_handovers(self, handover, index, scope, short_cutoff, long_cutoff, row_for, diagnostics) -> int:
        counted = 0
        for raw_dealer, entries in handover.items():
            dealer = dealer_key(raw_dealer)
            if not dealer:
                diagnostics.record("DLR001", source="handover", dealer=raw_dealer)
                continue
            if scope is not None and dealer not in scope:
                continue
            for key, entry in (entries or {}).items():
                record = entry if isinstance(entry, dict) else {}
                handed_over = first_date(record, self.config.handover_date_fields)
                if handed_over is None:
                    diagnostics.record("DT002", dealer=dealer, key=key)
                    continue
                if handed_over < long_cutoff:
                    diagnostics.record("WIN002", dealer=dealer, key=key)
                    continue
                _, match = self._enrich(record, key, index, diagnostics, dealer)
                customer = match.get("Customer") if match is not None else None
                if not is_stock_like_record(record, customer, self.config):
                    continue
                row = row_for(dealer, self._resolve_model(record, match))
                row.handover6m_stock += 1
                if handed_over >= short_cutoff:
                    row.handover3m_stock += 1
                counted += 1
        return counted

    def _count_pgi(self, pgi, index, scope, short_cutoff, live, diagnostics):
        for key, entry in pgi.items():
            record = entry if isinstance(entry, dict) else {}
            dealer = dealer_key(record.get("dealer") or record.get("Dealer"))
            if not dealer or (scope is not None and dealer not in scope):
                continue
            dispatched = first_date(record, self.config.pgi_date_fields)
            if dispatched is None:
                diagnostics.record("DT003", dealer=dealer, chassis=key)
                continue
            if dispatched < short_cutoff:
                continue
            match = index.find(record_chassis(record, self.config, fallback=key))
            row = live.get((dealer, self._resolve_model(record, match)))
            if row is not None:
                row.recent_pgi += 1


def build_outlook(
    orders,
    yard,
    handover,
    now: datetime,
    config: Config = None,
    **kwargs,
) -> List[DealerModelOutlook]:
    """Functional entry point; see OutlookAggregator.aggregate."""
    return OutlookAggregator(config=config).aggregate(orders, yard, handover, now, **kwargs)


def outlook_frame(rows: List[DealerModelOutlook]) -> pd.DataFrame:
    """Outlook rows as a DataFrame, one column per count plus one per month bucket."""
    if not rows:
        return pd.DataFrame(columns=OUTLOOK_COLUMNS)
    records = []
    for row in rows:
        record = {column: getattr(row, column) for column in OUTLOOK_COLUMNS}
        record.update({f"incoming {label}": n for label, n in row.incoming_by_month.items()})
        records.append(record)
    return pd.DataFrame.from_records(records)
