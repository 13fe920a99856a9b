import pandas as pd
import pytest

from dealer_outlook.pipeline import DerivedViews, PlanningSettings, Snapshots, compute_views
from dealer_outlook.report_generator import ReportGenerator


def test_report_has_every_tab(config, now, make_order):
    snapshots = Snapshots(
        orders=[make_order()],
        yard={},
        handover={},
        dealer_configs={"example-dealer": {"name": "Example Dealer", "initialTarget2026": 4}},
    )
    settings = PlanningSettings.from_dict({
        "tiers": {"A1": {}},
        "model_tiers": {"X1": "A1"},
        "target_highlight": {"focusModelRanges": ["X1"], "modelRangeTargets": {"X1": 50}},
    })
    views = compute_views(snapshots, settings, now, tier="A1", target_year=2026, config=config)

    output = ReportGenerator(config=config).generate_outlook_report(views, filename="report.xlsx")

    sheets = pd.read_excel(output, sheet_name=None)
    assert list(sheets) == ["Summary", "Outlook", "Tier Gaps", "Tier Debug", "Tier Mix", "Targets", "Diagnostics"]
    assert sheets["Outlook"].loc[0, "Capacity Now"] == 1
    assert "Arriving Jan 2026" in sheets["Outlook"].columns
    assert list(sheets["Targets"]["Dealer"]) == ["Example Dealer", "TOTAL"]


def test_loading_views_cannot_be_reported(config):
    with pytest.raises(ValueError):
        ReportGenerator(config=config).generate_outlook_report(DerivedViews(loading=True))
