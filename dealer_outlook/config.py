"""
Configuration for the Dealer Yard Outlook engine.

CONFIGURATION OPTIONS:
----------------------
1. EASY WAY (Recommended): Edit settings.yaml next to the data exports
   - Human-readable YAML format
   - Field alias lists, horizons and windows can be changed without code

2. PROGRAMMATIC WAY: Build a Config dataclass or use with_overrides()
   - For tests, notebooks and automation

The field alias lists below were gathered from the live record streams, which
do not agree on field names or casing. Confirm changes with the data owner.
"""

import logging
from pathlib import Path
from dataclasses import dataclass, field, replace
from typing import List, Optional
import yaml

logger = logging.getLogger(__name__)

# =============================================================================
# DEFAULT PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_PATH = PROJECT_ROOT / "data"
OUTPUT_PATH = PROJECT_ROOT / "output"
SETTINGS_FILE = PROJECT_ROOT / "settings.yaml"
PLANNING_SETTINGS_FILE = PROJECT_ROOT / "planning_settings.yaml"


class ConfigError(ValueError):
    """Raised when a settings file exists but cannot be used."""


@dataclass
class Config:
    """Configuration settings for the outlook and replenishment engine."""

    # =========================================================================
    # FILE PATHS
    # =========================================================================
    data_path: Path = DATA_PATH
    output_path: Path = OUTPUT_PATH
    planning_settings_file: Path = PLANNING_SETTINGS_FILE

    # Snapshot exports (relative to data_path)
    orders_file: str = "schedule.json"
    yard_file: str = "yardstock.json"
    handover_file: str = "handover.json"
    pgi_file: str = "pgirecords.json"
    dealer_configs_file: str = "dealerConfigs.json"
    campervan_file: str = "campervanSchedule.json"
    orders_sheet: str = "Schedule"    # Used when orders_file is a workbook

    # =========================================================================
    # FIELD ALIASES (tried in order)
    # =========================================================================
    chassis_fields: List[str] = field(default_factory=lambda: [
        "Chassis", "chassis", "CHASSIS",
        "Chassis Number", "chassisNumber", "chassis_number",
    ])

    model_fields: List[str] = field(default_factory=lambda: ["model", "Model"])

    # Explicit type/category tags on yard and handover records
    stock_hint_fields: List[str] = field(default_factory=lambda: [
        "type", "Type", "category", "Category", "stockType",
    ])

    # Customer names stored on the yard/handover record itself
    customer_alias_fields: List[str] = field(default_factory=lambda: [
        "customer", "Customer", "customerName",
    ])

    forecast_date_fields: List[str] = field(default_factory=lambda: [
        "Forecast Melbourne Factory Start Date",
        "Forecast Production Date",
        "Forecast production date",
    ])

    handover_date_fields: List[str] = field(default_factory=lambda: ["handoverAt", "createdAt"])

    pgi_date_fields: List[str] = field(default_factory=lambda: [
        "pgidate", "PGIDate", "pgIDate", "PgiDate",
    ])

    # Dealer-level placeholder record stored alongside chassis in yard stock
    yard_sentinel_key: str = "dealer-chassis"

    # =========================================================================
    # FORECAST HORIZON
    # =========================================================================
    arrival_lead_days: int = 30            # Forecast production -> on yard
    horizon_months: int = 8                # Forward month buckets
    horizon_start: Optional[str] = None    # "YYYY-MM"; None = month after now
    horizon_offset_months: int = 1         # Used when horizon_start is None

    # =========================================================================
    # HANDOVER WINDOWS (days, boundary inclusive)
    # =========================================================================
    short_window_days: int = 90            # "3 month" handover count
    long_window_days: int = 180            # "6 month" handover count

    # =========================================================================
    # LOGGING
    # =========================================================================
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def get_full_path(self, relative_path: str) -> Path:
        """Get full path for a file relative to data_path."""
        return Path(self.data_path) / relative_path

    def with_overrides(self, **changes) -> "Config":
        """Return a new config with the given fields replaced.

        ``None`` values are ignored so CLI arguments can be passed straight
        through.
        """
        changes = {key: value for key, value in changes.items() if value is not None}
        unknown = [key for key in changes if key not in self.__dataclass_fields__]
        if unknown:
            raise ConfigError(f"Unknown config field(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)


# =============================================================================
# SETTINGS LOADER
# =============================================================================

def load_settings_from_yaml(yaml_path: Path = None) -> dict:
    """
    Load settings from YAML file.

    Args:
        yaml_path: Path to settings.yaml (uses default if not provided)

    Returns:
        Dictionary of settings, or empty dict if file not found

    Raises:
        ConfigError: if the file exists but is not a YAML mapping
    """
    yaml_path = Path(yaml_path or SETTINGS_FILE)
    if not yaml_path.exists():
        return {}

    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not load settings from {yaml_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {yaml_path} must contain a mapping")
    return data


def config_from_yaml(yaml_path: Path = None) -> Config:
    """
    Create a Config object from settings.yaml.

    Sections that are absent keep their defaults, so an empty or missing
    file yields ``Config()``.
    """
    settings = load_settings_from_yaml(yaml_path)
    if not settings:
        return Config()

    defaults = Config()
    paths = settings.get("paths") or {}
    files = settings.get("files") or {}
    fields_ = settings.get("fields") or {}
    horizon = settings.get("horizon") or {}
    windows = settings.get("handover_windows") or {}
    log_cfg = settings.get("logging") or {}

    return Config(
        # Paths
        data_path=Path(paths.get("data", defaults.data_path)),
        output_path=Path(paths.get("output", defaults.output_path)),
        planning_settings_file=Path(paths.get("planning_settings", defaults.planning_settings_file)),

        # Files
        orders_file=files.get("orders", defaults.orders_file),
        yard_file=files.get("yard", defaults.yard_file),
        handover_file=files.get("handover", defaults.handover_file),
        pgi_file=files.get("pgi", defaults.pgi_file),
        dealer_configs_file=files.get("dealer_configs", defaults.dealer_configs_file),
        campervan_file=files.get("campervans", defaults.campervan_file),
        orders_sheet=files.get("orders_sheet", defaults.orders_sheet),

        # Field aliases
        chassis_fields=fields_.get("chassis") or defaults.chassis_fields,
        model_fields=fields_.get("model") or defaults.model_fields,
        stock_hint_fields=fields_.get("stock_hints") or defaults.stock_hint_fields,
        customer_alias_fields=fields_.get("customer_aliases") or defaults.customer_alias_fields,
        forecast_date_fields=fields_.get("forecast_date") or defaults.forecast_date_fields,
        handover_date_fields=fields_.get("handover_date") or defaults.handover_date_fields,
        pgi_date_fields=fields_.get("pgi_date") or defaults.pgi_date_fields,
        yard_sentinel_key=fields_.get("yard_sentinel_key", defaults.yard_sentinel_key),

        # Horizon
        arrival_lead_days=int(horizon.get("arrival_lead_days", defaults.arrival_lead_days)),
        horizon_months=int(horizon.get("months", defaults.horizon_months)),
        horizon_start=horizon.get("start", defaults.horizon_start),
        horizon_offset_months=int(horizon.get("offset_months", defaults.horizon_offset_months)),

        # Windows
        short_window_days=int(windows.get("short_days", defaults.short_window_days)),
        long_window_days=int(windows.get("long_days", defaults.long_window_days)),

        # Logging
        log_level=str(log_cfg.get("level", defaults.log_level)),
        log_format=log_cfg.get("format", defaults.log_format),
    )


def setup_logging(config: Config = None):
    """Configure root logging from the config's level and format."""
    config = config or default_config
    level = getattr(logging, str(config.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)
    logger.debug("Logging configured at %s", logging.getLevelName(level))


# Create default configuration instance
# First try to load from settings.yaml, fall back to defaults
try:
    default_config = config_from_yaml()
except ConfigError as e:
    logger.warning("%s; using built-in defaults", e)
    default_config = Config()


def reload_settings(yaml_path: Path = None) -> Config:
    """Reload settings from YAML file."""
    global default_config
    default_config = config_from_yaml(yaml_path)
    return default_config


def print_current_settings(config: Config = None):
    """Print current configuration settings for debugging."""
    config = config or default_config
    print("\n" + "=" * 60)
    print("CURRENT CONFIGURATION SETTINGS")
    print("=" * 60)
    print(f"\nData Path: {config.data_path}")
    print(f"Output Path: {config.output_path}")
    print(f"Planning Settings: {config.planning_settings_file}")
    print(f"\nHorizon: {config.horizon_months} months from {config.horizon_start or 'next month'}")
    print(f"Arrival Lead: {config.arrival_lead_days} days after forecast production")
    print(f"Handover Windows: {config.short_window_days} / {config.long_window_days} days")
    print(f"\nChassis Fields: {', '.join(config.chassis_fields)}")
    print(f"Stock Hint Fields: {', '.join(config.stock_hint_fields)}")
    print("=" * 60 + "\n")
