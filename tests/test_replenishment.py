import pytest

from dealer_outlook.outlook import DealerModelOutlook, outlook_frame
from dealer_outlook.replenishment import (
    HANDOVER_3M,
    HANDOVER_6M,
    TierFallback,
    compute_gap,
    evaluate_tier_gaps,
    gap_frame,
    tier_debug_rows,
    tier_mix_rows,
)
from dealer_outlook.tier_config import TierRule, TierSettings


def _row(dealer="d1", model="X1", yard=0, incoming=0, h3=0, h6=0):
    return DealerModelOutlook(
        dealer=dealer, model=model, yard=yard, incoming=incoming,
        handover3m_stock=h3, handover6m_stock=h6,
    )


def _settings(h6=1.0, h3=1.0, enabled=True, assignments=None):
    return TierSettings(
        rules={"A1": TierRule("A1", handover6m_multiplier=h6, handover3m_multiplier=h3, enabled=enabled)},
        assignments=assignments if assignments is not None else {"X1": "A1"},
    )


def test_six_month_basis_gap():
    outlook = [_row(yard=1, incoming=3, h6=3)]
    gaps = evaluate_tier_gaps(outlook, _settings(h6=2, h3=1), tier="A1")

    assert len(gaps) == 1
    gap = gaps[0]
    assert gap.basis == HANDOVER_6M
    assert gap.capacity_now == 4
    assert gap.required == 6
    assert gap.gap == 2


def test_compute_gap_rounds_up():
    assert compute_gap(6, 4) == 2
    assert compute_gap(4.2, 4) == 1
    assert compute_gap(3, 4) == -1


def test_float_noise_does_not_create_a_unit():
    # 10 * 0.7 == 7.000000000000001
    outlook = [_row(yard=7, h6=10)]
    assert evaluate_tier_gaps(outlook, _settings(h6=0.7, h3=0), tier="A1") == []


def test_both_bases_become_separate_rows_six_month_first_on_ties():
    outlook = [_row(h6=2, h3=2)]
    gaps = evaluate_tier_gaps(outlook, _settings(h6=1, h3=1), tier="A1")
    assert [(g.basis, g.gap) for g in gaps] == [(HANDOVER_6M, 2), (HANDOVER_3M, 2)]


def test_rows_ranked_by_gap_with_stable_ties():
    outlook = [
        _row(dealer="a", h6=1),
        _row(dealer="b", h6=5),
        _row(dealer="c", h6=1),
    ]
    gaps = evaluate_tier_gaps(outlook, _settings(h3=0), tier="A1")
    assert [(g.dealer, g.gap) for g in gaps] == [("b", 5), ("a", 1), ("c", 1)]


@pytest.mark.parametrize("multiplier", [0.5, 1.0, 1.5, 2.0, 3.0])
def test_gap_never_shrinks_as_multiplier_grows(multiplier):
    outlook = [_row(yard=2, h6=4)]
    low = tier_debug_rows(outlook, _settings(h6=multiplier), "A1")[0].gap_by_6m
    high = tier_debug_rows(outlook, _settings(h6=multiplier + 0.5), "A1")[0].gap_by_6m
    assert high >= low


def test_only_assigned_models_are_evaluated():
    outlook = [_row(model="X1", h6=2), _row(model="Y9", h6=5)]
    gaps = evaluate_tier_gaps(outlook, _settings(h3=0), tier="A1")
    assert [g.model for g in gaps] == ["X1"]


def test_model_assignment_matches_normalized_names():
    outlook = [_row(model="src  19e", h6=1)]
    settings = _settings(h3=0, assignments={"SRC 19E": "A1"})
    assert len(evaluate_tier_gaps(outlook, settings, tier="A1")) == 1


def test_unassigned_tier_is_empty_unless_fallback_requested():
    outlook = [_row(model="Y9", h6=2), _row(model="Z1", h6=1)]
    settings = _settings(h3=0, assignments={})

    assert evaluate_tier_gaps(outlook, settings, tier="A1") == []
    gaps = evaluate_tier_gaps(outlook, settings, tier="A1", fallback=TierFallback.ALL_MODELS)
    assert [g.model for g in gaps] == ["Y9", "Z1"]


def test_disabled_and_unconfigured_tiers_yield_nothing():
    outlook = [_row(h6=3)]
    assert evaluate_tier_gaps(outlook, _settings(enabled=False), tier="A1") == []
    assert evaluate_tier_gaps(outlook, _settings(), tier="B1") == []
    assert evaluate_tier_gaps([], _settings()) == []


def test_all_tiers_evaluated_when_none_selected():
    settings = TierSettings(
        rules={"A1": TierRule("A1", 1, 0), "B1": TierRule("B1", 1, 0)},
        assignments={"X1": "A1", "Y1": "B1"},
    )
    outlook = [_row(model="X1", h6=1), _row(model="Y1", h6=3)]
    gaps = evaluate_tier_gaps(outlook, settings)
    assert [(g.tier, g.model, g.gap) for g in gaps] == [("B1", "Y1", 3), ("A1", "X1", 1)]


def test_accepts_outlook_frame():
    frame = outlook_frame([_row(h6=2)])
    gaps = evaluate_tier_gaps(frame, _settings(h3=0), tier="A1")
    assert [g.gap for g in gaps] == [2]


def test_debug_rows_include_non_positive_gaps_and_disabled_tiers():
    outlook = [_row(yard=5, h6=1, h3=1)]
    rows = tier_debug_rows(outlook, _settings(h6=2, h3=1, enabled=False), "A1")

    assert len(rows) == 1
    row = rows[0]
    assert row.enabled is False
    assert row.assigned is True
    assert row.required_by_6m == 2
    assert row.gap_by_6m == -3
    assert row.gap_by_3m == -4


def test_gap_frame_columns():
    frame = gap_frame(evaluate_tier_gaps([_row(h6=1)], _settings(h3=0), tier="A1"))
    assert list(frame[["dealer", "model", "gap"]].iloc[0]) == ["d1", "X1", 1]


def test_all_models_fallback_skipped_when_tier_has_assignments():
    settings = TierSettings(rules={"A1": TierRule("A1", 1, 0)}, assignments={"SRC19E": "A1"})
    outlook = [_row(dealer="d", model="OTHER", h6=3)]

    assert evaluate_tier_gaps(outlook, settings, tier="A1", fallback=TierFallback.ALL_MODELS) == []
    assert tier_debug_rows(outlook, settings, "A1", fallback=TierFallback.ALL_MODELS) == []


def test_tier_minimum_floors_required():
    settings = TierSettings(rules={"A1": TierRule("A1", 1, 0, minimum=3)}, assignments={"X1": "A1"})
    gaps = evaluate_tier_gaps([_row(yard=1)], settings, tier="A1")

    assert [(g.basis, g.required, g.gap, g.minimum) for g in gaps] == [
        (HANDOVER_6M, 3.0, 2, 3.0),
        (HANDOVER_3M, 3.0, 2, 3.0),
    ]


def test_tier_ceiling_caps_required():
    settings = TierSettings(rules={"B1": TierRule("B1", 2, 0, ceiling=1)}, assignments={"X1": "B1"})
    gaps = evaluate_tier_gaps([_row(h6=5)], settings, tier="B1")

    assert [(g.basis, g.required, g.gap, g.ceiling) for g in gaps] == [(HANDOVER_6M, 1.0, 1, 1.0)]

    row = tier_debug_rows([_row(h6=5)], settings, "B1")[0]
    assert (row.required_by_6m, row.required_by_3m, row.ceiling) == (1.0, 0.0, 1.0)


def test_tier_mix_against_share_targets():
    settings = TierSettings(
        rules={"A1": TierRule("A1"), "B1": TierRule("B1")},
        assignments={"X1": "A1", "Y1": "B1"},
        shares={"A1": 0.5, "B1": 0.25},
    )
    outlook = [
        _row(dealer="d1", model="X1", yard=3),
        _row(dealer="d1", model="Y1", yard=1),
        _row(dealer="d2", model="X1", incoming=2),
    ]
    rows = tier_mix_rows(outlook, settings)

    assert [(r.dealer, r.tier, r.yard, r.share, r.target_units, r.difference) for r in rows] == [
        ("d1", "A1", 3, 0.75, 2.0, 1.0),
        ("d1", "B1", 1, 0.25, 1.0, 0.0),
    ]
    assert tier_mix_rows(outlook, TierSettings(rules=settings.rules, assignments=settings.assignments)) == []
