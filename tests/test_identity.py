import math

import pytest

from dealer_outlook.identity import (
    dealer_key,
    normalize_chassis_exact,
    normalize_chassis_loose,
    normalize_dealer_slug,
    normalize_model_key,
    prettify_dealer_name,
    slugify_dealer_name,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("snowy-river-ab12cd", "snowy-river"),
        ("Snowy-River-AB12CD", "snowy-river"),
        ("snowy-river", "snowy-river"),
        ("snowy-river-ab12c", "snowy-river-ab12c"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_dealer_slug_strips_access_code(raw, expected):
    assert normalize_dealer_slug(raw) == expected


def test_normalize_dealer_slug_cannot_tell_six_letter_words_from_codes():
    # "dealer" has the shape of an access code
    assert normalize_dealer_slug("example-dealer") == "example"


def test_dealer_key_slugifies_names_and_slugs_alike():
    assert dealer_key("Example Dealer") == "example-dealer"
    assert dealer_key("example-dealer") == "example-dealer"
    assert dealer_key("  Snowy River Caravans (VIC) ") == "snowy-river-caravans-vic"
    assert slugify_dealer_name(None) == ""


def test_prettify_dealer_name():
    assert prettify_dealer_name("snowy-river") == "Snowy River"
    assert prettify_dealer_name("") == ""


def test_chassis_exact_trims_and_uppercases():
    assert normalize_chassis_exact("  abc123456 ") == "ABC123456"
    assert normalize_chassis_exact(None) == ""
    assert normalize_chassis_exact(math.nan) == ""


def test_chassis_loose_drops_punctuation_and_spaces():
    assert normalize_chassis_loose(" abc-123 456 ") == "ABC123456"
    assert normalize_chassis_loose("---") == ""


def test_chassis_normalization_is_idempotent():
    for raw in ["abc-12 3", " Xy_9 ", "ABC123"]:
        exact = normalize_chassis_exact(raw)
        loose = normalize_chassis_loose(raw)
        assert normalize_chassis_exact(exact) == exact
        assert normalize_chassis_loose(loose) == loose


def test_normalize_model_key_collapses_whitespace():
    assert normalize_model_key("  src   19e ") == "SRC 19E"
    assert normalize_model_key(None) == ""
