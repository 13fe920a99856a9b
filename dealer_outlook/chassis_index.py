"""
Cross-Source Index Module
Builds the chassis -> order lookup used to enrich yard, handover and PGI
records that lack a model or customer.

Orders are registered under every chassis alias they carry, once in an
exact map (trimmed, uppercased) and once in a loose map (punctuation and
whitespace removed). Later orders overwrite earlier ones sharing a key.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from .config import Config, default_config
from .identity import normalize_chassis_exact, normalize_chassis_loose

logger = logging.getLogger(__name__)


def chassis_accessors(config: Config = None) -> List[Callable[[dict], object]]:
    """Ordered accessor functions, one per configured chassis field alias."""
    config = config or default_config
    return [lambda record, name=name: record.get(name) for name in config.chassis_fields]


def record_chassis(record, config: Config = None, fallback=None) -> str:
    """
    First non-empty chassis value on a record, exact-normalized.

    Falls back to ``fallback`` (usually the record's key in its stream)
    when none of the alias fields carries a value.
    """
    if isinstance(record, dict):
        for accessor in chassis_accessors(config):
            chassis = normalize_chassis_exact(accessor(record))
            if chassis:
                return chassis
    return normalize_chassis_exact(fallback)


class ChassisIndex:
    """Exact + loose chassis lookup over an order snapshot."""

    def __init__(self, config: Config = None):
        self.config = config or default_config
        self._accessors = chassis_accessors(self.config)
        self._exact: Dict[str, dict] = {}
        self._loose: Dict[str, dict] = {}
        self.skipped_without_chassis = 0

    @classmethod
    def from_orders(cls, orders: Iterable[dict], config: Config = None) -> "ChassisIndex":
        index = cls(config=config)
        for order in orders or []:
            index.register(order)
        logger.debug(
            "Chassis index built: %d exact keys, %d loose keys, %d orders without chassis",
            len(index._exact), len(index._loose), index.skipped_without_chassis,
        )
        return index

    def register(self, order) -> bool:
        """Register one order under all of its chassis aliases.

        Returns False for unallocated slots (no chassis on any alias).
        """
        if not isinstance(order, dict):
            return False

        registered = False
        for accessor in self._accessors:
            raw = accessor(order)
            exact = normalize_chassis_exact(raw)
            if not exact:
                continue
            self._exact[exact] = order
            loose = normalize_chassis_loose(raw)
            if loose:
                self._loose[loose] = order
            registered = True

        if not registered:
            self.skipped_without_chassis += 1
        return registered

    def find(self, chassis_like) -> Optional[dict]:
        """Matched order, or None when neither exact nor loose key is known."""
        exact = normalize_chassis_exact(chassis_like)
        if not exact:
            return None
        match = self._exact.get(exact)
        if match is not None:
            return match
        loose = normalize_chassis_loose(chassis_like)
        return self._loose.get(loose) if loose else None

    @property
    def exact_keys(self) -> List[str]:
        return list(self._exact)

    def __len__(self) -> int:
        return len(self._exact)

    def __contains__(self, chassis_like) -> bool:
        return self.find(chassis_like) is not None


def find_schedule_match(index: ChassisIndex, chassis_like) -> Optional[dict]:
    """Functional form of ``ChassisIndex.find``."""
    return index.find(chassis_like)
