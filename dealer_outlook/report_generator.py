"""
Report Generator Module
Writes the derived views of one pipeline pass to an Excel workbook.

Tabs:
- Summary
- Outlook (one column per arrival month)
- Tier Gaps
- Tier Debug
- Tier Mix
- Targets
- Diagnostics
"""

import warnings
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List

import pandas as pd

warnings.filterwarnings('ignore', category=UserWarning, module='openpyxl')

from .config import Config, default_config
from .diagnostics import get_issue_description
from .outlook import outlook_frame
from .pipeline import DerivedViews
from .targets import target_frame


OUTLOOK_TITLES = {
    "dealer": "Dealer",
    "model": "Model",
    "yard": "Yard Stock",
    "incoming": "Incoming",
    "capacity_now": "Capacity Now",
    "handover3m_stock": "Handovers 3M",
    "handover6m_stock": "Handovers 6M",
    "recent_pgi": "Recent PGI",
}

GAP_TITLES = {
    "dealer": "Dealer",
    "model": "Model",
    "tier": "Tier",
    "basis": "Basis",
    "yard": "Yard Stock",
    "incoming": "Incoming",
    "capacity_now": "Capacity Now",
    "handover3m_stock": "Handovers 3M",
    "handover6m_stock": "Handovers 6M",
    "multiplier": "Multiplier",
    "required": "Required",
    "gap": "Order Qty",
    "assigned": "Assigned",
    "enabled": "Enabled",
    "required_by_6m": "Required (6M)",
    "required_by_3m": "Required (3M)",
    "gap_by_6m": "Gap (6M)",
    "gap_by_3m": "Gap (3M)",
    "minimum": "Tier Minimum",
    "ceiling": "Tier Ceiling",
}

MIX_TITLES = {
    "dealer": "Dealer",
    "tier": "Tier",
    "yard": "Yard Stock",
    "dealer_yard": "Dealer Yard",
    "share": "Share",
    "target_share": "Target Share",
    "target_units": "Target Units",
    "difference": "Difference",
}

TARGET_TITLES = {
    "model_range": "Model Range",
    "mode": "Mode",
    "target_percent": "Target %",
    "dealer": "Dealer",
    "result": "Result",
    "dealer_total": "Dealer Total",
    "target": "Target",
    "difference": "Difference",
}


class ReportGenerator:
    """Generate Excel reports from derived views."""

    def __init__(self, config: Config = None):
        self.config = config or default_config
        self.output_path = Path(self.config.output_path)
        self.output_path.mkdir(parents=True, exist_ok=True)

    def generate_outlook_report(self, views: DerivedViews, filename: str = None, dealer: str = None) -> str:
        """
        Write every view to one workbook.

        Args:
            views: Output from compute_views()
            filename: Optional output filename (auto-generated if not provided)
            dealer: Dealer/group the views were scoped to, for the summary tab

        Returns:
            Path to generated Excel file
        """
        if views.loading:
            raise ValueError("Snapshots are still loading; nothing to report")

        if not filename:
            date_str = datetime.now().strftime("%Y%m%d_%H%M%S")
            scope = dealer or "AllDealers"
            filename = f"{scope}_StockOutlook_{date_str}.xlsx"

        output_file = self.output_path / filename

        with pd.ExcelWriter(output_file, engine='openpyxl') as writer:
            self._write_summary_tab(writer, views, dealer)
            self._write_outlook_tab(writer, views)
            self._write_rows_tab(writer, "Tier Gaps", [asdict(r) for r in views.tier_gaps], GAP_TITLES,
                                 "No replenishment gaps for the selected tiers")
            self._write_rows_tab(writer, "Tier Debug", [asdict(r) for r in views.tier_debug], GAP_TITLES,
                                 "Select a tier to see its debug rows")
            self._write_rows_tab(writer, "Tier Mix", [asdict(r) for r in views.tier_mix], MIX_TITLES,
                                 "No yard stock or no tier share targets")
            self._write_targets_tab(writer, views)
            self._write_diagnostics_tab(writer, views)

        return str(output_file)

    def _write_summary_tab(self, writer: pd.ExcelWriter, views: DerivedViews, dealer: str):
        """Write Summary tab."""
        rows = []
        rows.append(["DEALER STOCK OUTLOOK REPORT", ""])
        rows.append(["Generated", datetime.now().strftime("%Y-%m-%d %H:%M")])
        rows.append(["Reference Time", views.now.strftime("%Y-%m-%d %H:%M") if views.now else "N/A"])
        rows.append(["Dealer Scope", dealer or "All dealers"])
        rows.append(["", ""])

        rows.append(["OUTLOOK", ""])
        rows.append(["Dealer/Model Rows", len(views.outlook)])
        rows.append(["Yard Stock", sum(r.yard for r in views.outlook)])
        rows.append(["Incoming", sum(r.incoming for r in views.outlook)])
        rows.append(["Stock Handovers (6M)", sum(r.handover6m_stock for r in views.outlook)])
        rows.append(["", ""])

        rows.append(["REPLENISHMENT", ""])
        rows.append(["Gap Rows", len(views.tier_gaps)])
        rows.append(["Total Order Qty", sum(r.gap for r in views.tier_gaps)])
        rows.append(["", ""])

        rows.append(["DATA QUALITY", ""])
        rows.append(["Excluded Records", views.diagnostics.data_issue_total()])

        df = pd.DataFrame(rows, columns=["Item", "Value"])
        df.to_excel(writer, sheet_name="Summary", index=False)

    def _write_outlook_tab(self, writer: pd.ExcelWriter, views: DerivedViews):
        """Write Outlook tab with one incoming column per month bucket."""
        df = outlook_frame(views.outlook)
        if df.empty:
            pd.DataFrame([["No dealer activity"]], columns=["Message"]).to_excel(
                writer, sheet_name="Outlook", index=False)
            return
        df = df.rename(columns=OUTLOOK_TITLES)
        df = df.rename(columns=lambda c: c.replace("incoming ", "Arriving ") if c.startswith("incoming ") else c)
        df.to_excel(writer, sheet_name="Outlook", index=False)

    def _write_rows_tab(self, writer: pd.ExcelWriter, sheet: str, records: List[Dict],
                        titles: Dict[str, str], empty_message: str):
        if not records:
            pd.DataFrame([[empty_message]], columns=["Message"]).to_excel(writer, sheet_name=sheet, index=False)
            return
        df = pd.DataFrame(records).rename(columns=titles)
        df.to_excel(writer, sheet_name=sheet, index=False)

    def _write_targets_tab(self, writer: pd.ExcelWriter, views: DerivedViews):
        """Write Targets tab, one block per focus range followed by its total."""
        if not views.targets:
            pd.DataFrame([["No focus model ranges configured"]], columns=["Message"]).to_excel(
                writer, sheet_name="Targets", index=False)
            return

        blocks = []
        for comparison in views.targets:
            total = pd.DataFrame([{
                "model_range": comparison.model_range,
                "mode": comparison.mode.value,
                "target_percent": comparison.target_percent,
                "dealer": "TOTAL",
                "result": comparison.total_result,
                "dealer_total": None,
                "target": comparison.total_target,
                "difference": comparison.total_difference,
            }])
            blocks.extend([target_frame([comparison]), total])
        df = pd.concat(blocks, ignore_index=True).rename(columns=TARGET_TITLES)
        df.to_excel(writer, sheet_name="Targets", index=False)

    def _write_diagnostics_tab(self, writer: pd.ExcelWriter, views: DerivedViews):
        """Write Diagnostics tab with counts and a few sample records per code."""
        diagnostics = views.diagnostics
        rows = []
        for code, count in diagnostics.counts.most_common():
            samples = diagnostics.samples.get(code) or [{}]
            for sample in samples:
                rows.append({
                    "Code": code,
                    "Description": get_issue_description(code),
                    "Count": count,
                    "Sample": ", ".join(f"{k}={v}" for k, v in sample.items()),
                })
        df = pd.DataFrame(rows, columns=["Code", "Description", "Count", "Sample"])
        df.to_excel(writer, sheet_name="Diagnostics", index=False)
