import pytest

from dealer_outlook.config import ConfigError
from dealer_outlook.diagnostics import Diagnostics
from dealer_outlook.tier_config import (
    DEFAULT_TIER_PROFILES,
    TierSettings,
    parse_share,
    load_tier_settings,
    parse_multiplier,
    read_planning_settings,
    tier_settings_from_dict,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 1.0),
        (2, 2.0),
        ("1.5", 1.5),
        ("150%", 1.5),
        (0, 0.0),
    ],
)
def test_parse_multiplier_valid(value, expected):
    assert parse_multiplier(value) == expected


@pytest.mark.parametrize("value", ["abc", -1, float("inf"), float("nan"), [1]])
def test_parse_multiplier_invalid_becomes_zero(value):
    diagnostics = Diagnostics()
    assert parse_multiplier(value, "A1", "handover6m", diagnostics) == 0.0
    assert diagnostics.count("CFG001") == 1


def test_settings_from_dict_reads_both_key_styles():
    settings = tier_settings_from_dict({
        "tiers": {
            "A1": {"handover6m_multiplier": 2, "handover3m_multiplier": "1.5"},
            "B1": {"handover6mMultiplier": 0.5, "enabled": False},
        },
        "modelTiers": {"src 19e": "A1", "NG13": "B1"},
    })

    assert settings.tiers == ["A1", "B1"]
    assert settings.rule_for("A1").handover6m_multiplier == 2.0
    assert settings.rule_for("A1").handover3m_multiplier == 1.5
    assert settings.rule_for("B1").handover3m_multiplier == 1.0
    assert settings.rule_for("B1").enabled is False
    assert settings.tier_for("SRC 19E") == "A1"
    assert settings.models_in("B1") == ["NG13"]


def test_assignment_to_unknown_tier_is_dropped():
    diagnostics = Diagnostics()
    settings = tier_settings_from_dict(
        {"tiers": {"A1": {}}, "model_tiers": {"X1": "A1", "X2": "Z9", "X3": ""}},
        diagnostics,
    )
    assert settings.assignments == {"X1": "A1"}
    assert diagnostics.count("CFG002") == 1


def test_with_defaults_has_default_tier_order():
    settings = TierSettings.with_defaults()
    assert settings.tiers == ["A1", "A1+", "A2", "B1"]
    assert settings.rule_for("A1").profile == DEFAULT_TIER_PROFILES["A1"]
    assert settings.rule_for("A1").minimum == 3
    assert settings.rule_for("B1").ceiling == 1
    assert sum(settings.shares.values()) == pytest.approx(1.0)


def test_missing_planning_settings_file_is_empty(tmp_path):
    settings = load_tier_settings(tmp_path / "missing.yaml")
    assert settings.rules == {}
    assert settings.assignments == {}


def test_load_tier_settings_from_yaml(tmp_path):
    path = tmp_path / "planning_settings.yaml"
    path.write_text("tiers:\n  A1:\n    handover6m_multiplier: 1.25\nmodel_tiers:\n  X1: A1\n")
    settings = load_tier_settings(path)
    assert settings.rule_for("A1").handover6m_multiplier == 1.25
    assert settings.tier_for("x1") == "A1"


def test_malformed_planning_settings_raise(tmp_path):
    path = tmp_path / "planning_settings.yaml"
    path.write_text("tiers: [unclosed\n")
    with pytest.raises(ConfigError):
        read_planning_settings(path)

    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        read_planning_settings(path)


def test_tier_targets_and_share_targets():
    diagnostics = Diagnostics()
    settings = tier_settings_from_dict({
        "tiers": {"A1": {}, "B1": {}, "C9": {}},
        "tierTargets": {"A1": {"minimum": 3}, "B1": {"minimum": "0", "ceiling": 1}, "C9": {"minimum": -2}},
        "shareTargets": {"A1": "60%", "B1": 0.1, "C9": "x"},
    }, diagnostics)

    assert (settings.rule_for("A1").minimum, settings.rule_for("A1").ceiling) == (3.0, None)
    assert (settings.rule_for("B1").minimum, settings.rule_for("B1").ceiling) == (0.0, 1.0)
    assert settings.rule_for("C9").minimum == 0.0
    assert settings.shares == {"A1": 0.6, "B1": 0.1}
    assert diagnostics.count("CFG004") == 2


def test_unconfigured_targets_use_default_shares_and_no_bounds():
    settings = tier_settings_from_dict({"tiers": {"A1": {}, "A2": {}}})
    assert settings.shares == {"A1": 0.4, "A2": 0.2}
    assert settings.rule_for("A1").minimum == 0.0
    assert settings.rule_for("A1").ceiling is None


@pytest.mark.parametrize("value, expected", [(0.4, 0.4), ("40%", 0.4), (40, 0.4), (1, 1.0), (150, None), ("x", None)])
def test_parse_share(value, expected):
    assert parse_share(value) == expected
