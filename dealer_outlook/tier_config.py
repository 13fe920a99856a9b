"""
Tier Configuration Module
=========================
Operator-editable replenishment settings: one multiplier rule per tier, the
model -> tier assignment, per-tier unit bounds and each tier's target share
of a dealer's yard. Read from planning_settings.yaml, which the operator UI
maintains.

Example planning_settings.yaml:

    tiers:
      A1:
        handover6m_multiplier: 1.5
        handover3m_multiplier: 2
        enabled: true
      B1:
        handover6m_multiplier: 0.5
        enabled: false
    model_tiers:
      SRC19E: A1
      "NG 13": B1
    tier_targets:
      A1: {minimum: 3}
      B1: {minimum: 0, ceiling: 1}
    share_targets:
      A1: 0.6
      B1: 40%

Missing files, tiers and assignments are all valid: the derived views are
simply empty until the operator configures them. Unit bounds apply only to
tiers listed under tier_targets; share targets fall back to the default
share of each configured tier.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .config import ConfigError
from .diagnostics import Diagnostics
from .identity import normalize_model_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierProfile:
    """Display metadata and default stock targets for a tier."""
    label: str
    role: str
    minimum: float = 0.0
    ceiling: Optional[float] = None
    share: float = 0.0


# Default tier set, in display order
DEFAULT_TIER_PROFILES: Dict[str, TierProfile] = {
    "A1": TierProfile("Core", "Never run dry; keep multiple couple options visible.", minimum=3, share=0.4),
    "A1+": TierProfile("Flagship", "Prioritise showcase quality; always have a demo.", minimum=1, share=0.3),
    "A2": TierProfile("Supporting", "Fill structural gaps like family bunk and hybrid.", minimum=1, share=0.2),
    "B1": TierProfile("Niche", "Tightly control volume; refresh quickly.", minimum=0, ceiling=1, share=0.1),
}


@dataclass(frozen=True)
class TierRule:
    """
    Multipliers applied to the handover counts of a tier's models.

    ``minimum`` and ``ceiling`` bound the required units of every
    dealer/model row evaluated under the tier (ceiling wins if both bite).
    """
    tier: str
    handover6m_multiplier: float = 1.0
    handover3m_multiplier: float = 1.0
    enabled: bool = True
    minimum: float = 0.0
    ceiling: Optional[float] = None

    @property
    def profile(self) -> Optional[TierProfile]:
        return DEFAULT_TIER_PROFILES.get(self.tier)


@dataclass
class TierSettings:
    """Tier rules plus the model-tier assignment and yard share targets."""
    rules: Dict[str, TierRule] = field(default_factory=dict)
    assignments: Dict[str, str] = field(default_factory=dict)  # normalized model -> tier
    shares: Dict[str, float] = field(default_factory=dict)     # tier -> fraction of yard

    @classmethod
    def with_defaults(cls) -> "TierSettings":
        """Default tier set with its default unit bounds and shares."""
        return cls(
            rules={
                tier: TierRule(tier, minimum=profile.minimum, ceiling=profile.ceiling)
                for tier, profile in DEFAULT_TIER_PROFILES.items()
            },
            shares={tier: profile.share for tier, profile in DEFAULT_TIER_PROFILES.items()},
        )

    @property
    def tiers(self) -> List[str]:
        return list(self.rules)

    def tier_for(self, model) -> Optional[str]:
        return self.assignments.get(normalize_model_key(model))

    def models_in(self, tier: str) -> List[str]:
        return [model for model, assigned in self.assignments.items() if assigned == tier]

    def rule_for(self, tier: str) -> Optional[TierRule]:
        return self.rules.get(tier)


# =============================================================================
# PARSING
# =============================================================================

def _parse_number(value) -> float:
    """Number or numeric string ("1.5", "150%"); NaN when unreadable."""
    try:
        if isinstance(value, str):
            text = value.strip()
            return float(text[:-1]) / 100 if text.endswith("%") else float(text)
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


def _is_valid(number: float) -> bool:
    return number == number and 0 <= number < float("inf")


def parse_multiplier(value, tier: str = "", name: str = "", diagnostics: Diagnostics = None) -> float:
    """
    Non-negative multiplier from a number or numeric string ("1.5", "150%").

    Anything else becomes 0 with a warning.
    """
    if value is None:
        return 1.0
    number = _parse_number(value)
    if not _is_valid(number):
        logger.warning("Tier %s %s multiplier %r is invalid; using 0", tier, name, value)
        if diagnostics is not None:
            diagnostics.record("CFG001", tier=tier, field=name, value=value)
        return 0.0
    return number


def parse_tier_bound(value, tier: str = "", name: str = "", diagnostics: Diagnostics = None) -> Optional[float]:
    """Non-negative unit bound; None when absent or invalid."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = _parse_number(value)
    if not _is_valid(number):
        logger.warning("Tier %s %s %r is invalid; ignoring", tier, name, value)
        if diagnostics is not None:
            diagnostics.record("CFG004", tier=tier, field=name, value=value)
        return None
    return number


def parse_share(value, tier: str = "", diagnostics: Diagnostics = None) -> Optional[float]:
    """
    Yard share as a fraction. Accepts 0.4, "40%" or 40 (values above 1 are
    read as percentages). None when invalid.
    """
    number = _parse_number(value)
    if _is_valid(number) and number > 1:
        number /= 100
    if not _is_valid(number) or number > 1:
        logger.warning("Tier %s share target %r is invalid; ignoring", tier, value)
        if diagnostics is not None:
            diagnostics.record("CFG004", tier=tier, field="share", value=value)
        return None
    return number


def _tier_targets(data: dict) -> dict:
    targets = data.get("tier_targets") or data.get("tierTargets") or {}
    return targets if isinstance(targets, dict) else {}


def _share_targets(data: dict) -> dict:
    shares = data.get("share_targets") or data.get("shareTargets") or {}
    return shares if isinstance(shares, dict) else {}


def tier_settings_from_dict(data: Optional[dict], diagnostics: Diagnostics = None) -> TierSettings:
    """Build TierSettings from the planning settings mapping."""
    data = data or {}
    rules: Dict[str, TierRule] = {}
    targets = {str(tier).strip(): raw for tier, raw in _tier_targets(data).items()}

    for tier, raw in (data.get("tiers") or {}).items():
        tier = str(tier).strip()
        raw = raw if isinstance(raw, dict) else {}
        target = targets.get(tier)
        target = target if isinstance(target, dict) else {}
        minimum = parse_tier_bound(target.get("minimum"), tier, "minimum", diagnostics)
        rules[tier] = TierRule(
            tier=tier,
            handover6m_multiplier=parse_multiplier(
                raw.get("handover6m_multiplier", raw.get("handover6mMultiplier")),
                tier, "handover6m", diagnostics,
            ),
            handover3m_multiplier=parse_multiplier(
                raw.get("handover3m_multiplier", raw.get("handover3mMultiplier")),
                tier, "handover3m", diagnostics,
            ),
            enabled=raw.get("enabled", True) is not False,
            minimum=minimum or 0.0,
            ceiling=parse_tier_bound(target.get("ceiling"), tier, "ceiling", diagnostics),
        )

    for tier in targets:
        if tier not in rules:
            logger.debug("Tier target for unconfigured tier %s ignored", tier)

    shares: Dict[str, float] = {
        tier: DEFAULT_TIER_PROFILES[tier].share for tier in rules if tier in DEFAULT_TIER_PROFILES
    }
    for tier, value in _share_targets(data).items():
        tier = str(tier).strip()
        if tier not in rules:
            logger.debug("Share target for unconfigured tier %s ignored", tier)
            continue
        share = parse_share(value, tier, diagnostics)
        if share is not None:
            shares[tier] = share

    assignments: Dict[str, str] = {}
    for model, tier in (data.get("model_tiers") or data.get("modelTiers") or {}).items():
        key = normalize_model_key(model)
        tier = str(tier or "").strip()
        if not key or not tier:
            continue
        if rules and tier not in rules:
            logger.warning("Model %s assigned to unknown tier %s; ignoring", model, tier)
            if diagnostics is not None:
                diagnostics.record("CFG002", model=model, tier=tier)
            continue
        assignments[key] = tier

    return TierSettings(rules=rules, assignments=assignments, shares=shares)


def read_planning_settings(path: Path) -> dict:
    """Raw planning settings mapping; {} when the file does not exist yet."""
    path = Path(path)
    if not path.exists():
        logger.info("No planning settings at %s; tier and target views will be empty", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not load planning settings from {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Planning settings {path} must contain a mapping")
    return data


def load_tier_settings(path: Path, diagnostics: Diagnostics = None) -> TierSettings:
    """Load tier rules, assignments and targets from planning_settings.yaml."""
    return tier_settings_from_dict(read_planning_settings(path), diagnostics)
