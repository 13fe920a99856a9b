"""
Identity Normalizer Module
Turns the inconsistent chassis and dealer identifiers found across the record
streams into canonical keys.

Every function here is total: None, NaN and empty input return "" and callers
treat "" as "no identity".
"""

import re

_ACCESS_CODE_SUFFIX = re.compile(r"^(.*?)-([a-z0-9]{6})$")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_WHITESPACE = re.compile(r"\s+")


def _to_str(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:  # NaN from pandas sheets
        return ""
    return str(value)


# =============================================================================
# DEALERS
# =============================================================================

def normalize_dealer_slug(raw) -> str:
    """
    Lowercase a dealer slug and strip an appended 6-character access code.

    "snowy-river-ab12cd" -> "snowy-river"; anything else is returned
    lowercased and otherwise unchanged.
    """
    slug = _to_str(raw).lower()
    match = _ACCESS_CODE_SUFFIX.match(slug)
    return match.group(1) if match else slug


def slugify_dealer_name(name) -> str:
    """'Snowy River Caravans' -> 'snowy-river-caravans'."""
    slug = _NON_ALNUM_RUN.sub("-", _to_str(name).lower())
    return slug.strip("-")


def dealer_key(raw) -> str:
    """Canonical key for a dealer name or slug read from a record stream."""
    return slugify_dealer_name(raw)


def prettify_dealer_name(slug) -> str:
    """'snowy-river' -> 'Snowy River'."""
    text = _to_str(slug).replace("-", " ").strip()
    return " ".join(word[:1].upper() + word[1:] for word in text.split())


# =============================================================================
# CHASSIS
# =============================================================================

def normalize_chassis_exact(raw) -> str:
    """Trim and uppercase."""
    return _to_str(raw).strip().upper()


def normalize_chassis_loose(raw) -> str:
    """Exact form with every non-alphanumeric character removed."""
    return _NON_ALNUM.sub("", normalize_chassis_exact(raw))


# =============================================================================
# MODELS
# =============================================================================

def normalize_model_key(model) -> str:
    """Key used to match a model name against the model-tier assignment."""
    return _WHITESPACE.sub(" ", _to_str(model)).strip().upper()
