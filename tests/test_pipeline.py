from datetime import timedelta

import pytest

from dealer_outlook.pipeline import PlanningSettings, Snapshots, compute_views
from dealer_outlook.replenishment import TierFallback
from dealer_outlook.targets import TargetMode
from dealer_outlook.tier_config import TierRule

PLANNING = {
    "tiers": {
        "A1": {"handover6m_multiplier": 2, "handover3m_multiplier": 0},
        "B1": {"handover6m_multiplier": "oops"},
    },
    "model_tiers": {"X1": "A1"},
    "target_highlight": {"focusModelRanges": ["X1"], "modelRangeTargets": {"X1": 50}},
}

DEALER_CONFIGS = {
    "example-dealer": {"name": "Example Dealer", "initialTarget2026": 10},
    "other-dealer": {"name": "Other Dealer"},
    "east-group": {"name": "East Group", "isGroup": True, "includedDealers": ["example-dealer"]},
}


@pytest.fixture
def snapshots(now, make_order):
    handover = {
        "example-dealer": {
            f"h{i}": {"chassis": f"H{i}", "model": "X1", "type": "stock",
                      "handoverAt": (now - timedelta(days=20 * i)).isoformat()}
            for i in range(3)
        },
    }
    return Snapshots(
        orders=[
            make_order(),
            make_order(chassis="O2", dealer="Other Dealer", model="Y1"),
            make_order(chassis=None, forecast="01/02/2026"),
        ],
        yard={"example-dealer": {"Y9": {"model": "X1", "type": "stock"}}},
        handover=handover,
        pgi={},
        dealer_configs=DEALER_CONFIGS,
    )


@pytest.mark.parametrize("missing", ["orders", "yard", "handover"])
def test_missing_required_snapshot_means_loading(snapshots, now, missing):
    setattr(snapshots, missing, None)
    views = compute_views(snapshots, PlanningSettings.from_dict(PLANNING), now)

    assert views.loading is True
    assert snapshots.missing == [missing]
    assert views.outlook == []
    assert views.tier_gaps == []
    assert views.targets == []


def test_optional_snapshots_may_be_missing(snapshots, now, config):
    snapshots.pgi = None
    snapshots.dealer_configs = None
    views = compute_views(snapshots, PlanningSettings(), now, config=config)
    assert views.loading is False
    assert views.outlook


def test_full_pass(snapshots, now, config):
    views = compute_views(snapshots, PlanningSettings.from_dict(PLANNING), now, config=config)

    assert views.loading is False
    by_key = {row.key: row for row in views.outlook}
    x1 = by_key[("example-dealer", "X1")]
    assert (x1.yard, x1.incoming, x1.handover6m_stock, x1.handover3m_stock) == (1, 2, 3, 3)

    # required 3 x 2 = 6 against capacity 3
    assert [(g.dealer, g.model, g.gap) for g in views.tier_gaps] == [("example-dealer", "X1", 3)]
    # B1 has no assigned models, so only A1 is evaluated
    assert {row.tier for row in views.tier_debug} == {"A1"}

    assert views.diagnostics.count("CHS001") == 1
    assert views.diagnostics.count("CFG001") == 1


def test_dealer_group_scope(snapshots, now, config):
    views = compute_views(
        snapshots, PlanningSettings.from_dict(PLANNING), now, dealer="east-group", config=config,
    )
    assert {row.dealer for row in views.outlook} == {"example-dealer"}

    views = compute_views(
        snapshots, PlanningSettings.from_dict(PLANNING), now, dealer="other-dealer", config=config,
    )
    assert {row.dealer for row in views.outlook} == {"other-dealer"}
    assert views.tier_gaps == []


def test_single_tier_and_fallback(snapshots, now, config):
    settings = PlanningSettings.from_dict(PLANNING)
    views = compute_views(snapshots, settings, now, tier="B1", config=config)
    assert views.tier_gaps == []
    assert views.tier_debug == []

    settings.tiers.rules["B1"] = TierRule("B1", handover6m_multiplier=2, handover3m_multiplier=1)
    views = compute_views(snapshots, settings, now, tier="B1",
                          fallback=TierFallback.ALL_MODELS, config=config)
    assert {g.model for g in views.tier_gaps} == {"X1"}
    assert len(views.tier_debug) == 2
    assert all(row.tier == "B1" and not row.assigned for row in views.tier_debug)


def test_targets_use_year_of_now_by_default(snapshots, now, config):
    settings = PlanningSettings.from_dict(PLANNING)

    # 2025: no dealer carries a 2025 target
    views = compute_views(snapshots, settings, now, config=config)
    assert views.targets[0].rows == []

    views = compute_views(snapshots, settings, now, target_year=2026, config=config)
    assert [(row.dealer, row.result, row.target) for row in views.targets[0].rows] == [
        ("Example Dealer", 2.0, 5.0)
    ]

    views = compute_views(snapshots, settings, now, target_year=2026,
                          target_mode=TargetMode.SHARE_OF_TOTAL, config=config)
    rows = {row.dealer: row for row in views.targets[0].rows}
    assert rows["Example Dealer"].result == 2.0
    assert rows["Example Dealer"].dealer_total == 2.0
    assert rows["Other Dealer"].result == 0.0


def test_recompute_from_same_snapshots_is_identical(snapshots, now, config):
    settings = PlanningSettings.from_dict(PLANNING)
    first = compute_views(snapshots, settings, now, config=config)
    second = compute_views(snapshots, settings, now, config=config)
    assert [r.to_dict() for r in first.outlook] == [r.to_dict() for r in second.outlook]
    assert first.tier_gaps == second.tier_gaps


def test_for_dealer_wraps_single_dealer_snapshot():
    assert Snapshots.for_dealer("example-dealer", {"C1": {}}) == {"example-dealer": {"C1": {}}}
    assert Snapshots.for_dealer("example-dealer", None) is None


def test_planning_settings_load(tmp_path, config):
    path = tmp_path / "custom_planning.yaml"
    path.write_text("tiers:\n  A1: {}\ntarget_highlight:\n  focusModelRanges: [SRC]\n")
    settings = PlanningSettings.load(path)
    assert settings.tiers.tiers == ["A1"]
    assert settings.target_config.focus_ranges == ["SRC"]

    empty = PlanningSettings.load(config=config)
    assert empty.tiers.rules == {}


def test_access_code_selector_without_dealer_configs(snapshots, now, config):
    snapshots.dealer_configs = None
    views = compute_views(
        snapshots, PlanningSettings.from_dict(PLANNING), now, dealer="example-dealer-ab12cd", config=config,
    )
    assert {row.dealer for row in views.outlook} == {"example-dealer"}


def test_tier_mix_uses_default_shares(snapshots, now, config):
    views = compute_views(snapshots, PlanningSettings.from_dict(PLANNING), now, config=config)
    mix = {(row.dealer, row.tier): row for row in views.tier_mix}

    a1 = mix[("example-dealer", "A1")]
    assert (a1.yard, a1.dealer_yard, a1.target_share) == (1, 1, 0.4)
    assert a1.difference == pytest.approx(0.6)
    assert mix[("example-dealer", "B1")].yard == 0
