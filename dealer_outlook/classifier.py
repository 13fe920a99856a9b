"""
Record Classifier Module
Decides whether a yard or handover record is dealer-owned stock or a
customer-committed unit.

Upstream data carries no reliable flag, so the decision runs through an
ordered list of rules. The order record (schedule) is trusted first, then
the yard/handover record's own hints. When no rule matches the unit is a
Customer unit, which keeps replenishment maths from over-counting stock.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .config import Config, default_config

STOCK = "Stock"
CUSTOMER = "Customer"


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def is_stock_customer(customer_name) -> bool:
    """True iff the customer name ends with the word 'stock' (any case)."""
    return _text(customer_name).endswith("stock")


def _fields_mention_stock(record, fields) -> bool:
    if not isinstance(record, dict):
        return False
    return any("stock" in _text(record.get(name)) for name in fields)


@dataclass(frozen=True)
class StockRule:
    """One step of the classification precedence."""
    name: str
    matches: Callable[[Optional[dict], Optional[str], Config], bool]


STOCK_RULES = (
    StockRule(
        "schedule_customer",
        lambda record, schedule_customer, config: is_stock_customer(schedule_customer),
    ),
    StockRule(
        "record_type_hint",
        lambda record, schedule_customer, config: _fields_mention_stock(record, config.stock_hint_fields),
    ),
    StockRule(
        "record_customer_alias",
        lambda record, schedule_customer, config: _fields_mention_stock(record, config.customer_alias_fields),
    ),
)


def matching_stock_rule(record, schedule_customer=None, config: Config = None) -> Optional[str]:
    """Name of the first rule classifying the record as stock, or None."""
    config = config or default_config
    for rule in STOCK_RULES:
        if rule.matches(record, schedule_customer, config):
            return rule.name
    return None


def is_stock_like_record(record, schedule_customer=None, config: Config = None) -> bool:
    """
    True when the record should count as dealer stock.

    Args:
        record: yard or handover record (may be None or empty)
        schedule_customer: Customer field of the matched order, if any
        config: supplies the hint and customer alias field lists
    """
    return matching_stock_rule(record, schedule_customer, config) is not None


def classify_record(record, schedule_customer=None, config: Config = None) -> str:
    """'Stock' or 'Customer'."""
    return STOCK if is_stock_like_record(record, schedule_customer, config) else CUSTOMER
