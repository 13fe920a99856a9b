"""
Dealer Configuration Module
Read-only view over the configuration store's dealerConfigs map: which
dealers are active, which slugs are dealer groups, and each dealer's yearly
target.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .identity import dealer_key, normalize_dealer_slug

logger = logging.getLogger(__name__)

# Yearly target field names seen in dealer configs, in lookup order;
# {year} is the production year being compared
YEARLY_TARGET_FIELD_PATTERNS = [
    "initialTarget{year}",
    "initialTarget",
    "target{year}",
    "yearlyTarget{year}",
    "targetYearly{year}",
]

DEFAULT_TARGET_YEAR = 2026


def yearly_target_fields(year: int = DEFAULT_TARGET_YEAR) -> List[str]:
    """Target aliases for one production year (the undated alias applies to any year)."""
    return [pattern.format(year=year) for pattern in YEARLY_TARGET_FIELD_PATTERNS]


def _number(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number == number and number not in (float("inf"), float("-inf")) else 0.0


def read_yearly_target(payload: dict, year: int = DEFAULT_TARGET_YEAR) -> float:
    """First yearly target alias for ``year`` present on a dealer config payload, else 0."""
    for name in yearly_target_fields(year):
        if payload.get(name) is not None:
            return _number(payload.get(name))
    return 0.0


@dataclass
class DealerConfig:
    """One dealer (or dealer group) entry."""
    slug: str
    name: str
    active: bool = True
    is_group: bool = False
    included_dealers: List[str] = field(default_factory=list)
    yearly_target: float = 0.0

    @classmethod
    def from_payload(cls, slug: str, payload: Optional[dict], year: int = DEFAULT_TARGET_YEAR) -> "DealerConfig":
        payload = payload if isinstance(payload, dict) else {}
        key = dealer_key(payload.get("slug") or slug)
        included = payload.get("includedDealers") or []
        if isinstance(included, dict):  # arrays exported as {"0": ..., "1": ...}
            included = list(included.values())
        return cls(
            slug=key,
            name=str(payload.get("name") or slug).strip(),
            active=payload.get("isActive") is not False,
            is_group=bool(payload.get("isGroup")),
            included_dealers=[dealer_key(d) for d in included if dealer_key(d)],
            yearly_target=read_yearly_target(payload, year),
        )


class DealerDirectory:
    """Lookup over all dealer configs."""

    def __init__(self, configs: Optional[Dict[str, DealerConfig]] = None):
        self._configs: Dict[str, DealerConfig] = dict(configs or {})

    @classmethod
    def from_snapshot(cls, snapshot: Optional[dict], year: int = DEFAULT_TARGET_YEAR) -> "DealerDirectory":
        """
        Build from the raw {slug: payload} snapshot; None means not loaded.

        ``year`` picks which dated target aliases feed ``yearly_target``.
        """
        configs = {}
        for slug, payload in (snapshot or {}).items():
            config = DealerConfig.from_payload(slug, payload, year)
            if not config.slug:
                logger.warning("Skipping dealer config with empty slug: %r", slug)
                continue
            configs[config.slug] = config
        return cls(configs)

    def __len__(self) -> int:
        return len(self._configs)

    def __iter__(self):
        return iter(self._configs.values())

    def get(self, selector) -> Optional[DealerConfig]:
        """Config for a slug, access-code slug or display name."""
        key = dealer_key(selector)
        if key in self._configs:
            return self._configs[key]
        return self._configs.get(dealer_key(normalize_dealer_slug(selector)))

    def active(self, include_groups: bool = False) -> List[DealerConfig]:
        return [
            config for config in self._configs.values()
            if config.active and (include_groups or not config.is_group)
        ]

    def scope(self, selector, known_slugs: Optional[Iterable[str]] = None) -> Optional[List[str]]:
        """
        Dealer slugs a selector covers.

        A dealer group expands to its member dealers, a plain dealer to
        itself. None selector means all dealers (returns None).

        A selector without a dealer config is kept as given unless only its
        access-code-stripped form appears in ``known_slugs`` (the dealer keys
        seen in the record streams).
        """
        if selector is None or not str(selector).strip():
            return None
        config = self.get(selector)
        if config is None:
            # a tail like "-dealer" is indistinguishable from an access code
            key = dealer_key(selector)
            known = {dealer_key(slug) for slug in (known_slugs or [])}
            stripped = dealer_key(normalize_dealer_slug(selector))
            if key not in known and stripped in known:
                logger.debug("Dealer selector %s resolved to %s", selector, stripped)
                return [stripped]
            return [key] if key else []
        if config.is_group:
            return list(config.included_dealers)
        return [config.slug]
