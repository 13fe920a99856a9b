import sys
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dealer_outlook.config import Config  # noqa: E402


@pytest.fixture
def now() -> datetime:
    """Fixed reference time, mid-afternoon so day-start cutoffs are exercised."""
    return datetime(2025, 12, 15, 14, 30)


@pytest.fixture
def config(tmp_path) -> Config:
    """Config with an 8-month horizon fixed to start in January 2026."""
    return Config(
        data_path=tmp_path / "data",
        output_path=tmp_path / "output",
        planning_settings_file=tmp_path / "planning_settings.yaml",
        horizon_start="2026-01",
    )


def stock_order(chassis="ABC123456", dealer="Example Dealer", model="X1",
                forecast="01/01/2026", customer="Example Dealer Stock", **extra):
    order = {
        "Chassis": chassis,
        "Dealer": dealer,
        "Customer": customer,
        "Model": model,
        "Forecast Production Date": forecast,
    }
    order.update(extra)
    return order


@pytest.fixture
def make_order():
    return stock_order
