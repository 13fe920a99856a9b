"""
Snapshot Loader Module
Loads the record-store exports from the data directory into the in-memory
shapes the engine consumes.

Exports are JSON dumps of the real-time record store:
- schedule.json          [order, ...]  (may be an .xlsx/.csv sheet instead)
- yardstock.json         {dealer_slug: {chassis: entry}}
- handover.json          {dealer_slug: {key: record}}
- pgirecords.json        {chassis: dispatch record}
- dealerConfigs.json     {dealer_slug: config}
- campervanSchedule.json [campervan order, ...]

A missing file means that stream has not delivered a snapshot yet (None).
A file that exists but cannot be read raises SnapshotLoadError.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .config import Config, default_config
from .pipeline import Snapshots

logger = logging.getLogger(__name__)


class SnapshotLoadError(RuntimeError):
    """A snapshot export exists but could not be read."""


def _as_list(data) -> List[dict]:
    """Record-store arrays sometimes export as {"0": {...}, "1": {...}}."""
    if data is None:
        return []
    if isinstance(data, dict):
        data = list(data.values())
    return [item for item in data if isinstance(item, dict)]


def _as_map(data) -> Dict[str, dict]:
    if data is None:
        return {}
    if isinstance(data, list):
        return {str(i): item for i, item in enumerate(data) if item is not None}
    return {str(key): value for key, value in data.items() if value is not None}


class SnapshotLoader:
    """Load and cache snapshot exports from the data directory."""

    def __init__(self, config: Config = None, data_path: Path = None):
        self.config = config or default_config
        self.data_path = Path(data_path or self.config.data_path)
        self._cache: Dict[str, object] = {}

    def _get_path(self, relative_path: str) -> Path:
        """Get full path for a snapshot file."""
        return self.data_path / relative_path

    def _read_json(self, relative_path: str):
        path = self._get_path(relative_path)
        if not path.exists():
            logger.info("No snapshot at %s yet", path)
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SnapshotLoadError(f"Could not read snapshot {path}: {e}") from e

    def _cached(self, cache_key: str, loader, use_cache: bool):
        if use_cache and cache_key in self._cache:
            return self._cache[cache_key]
        value = loader()
        self._cache[cache_key] = value
        return value

    # =========================================================================
    # ORDERS
    # =========================================================================

    def load_orders(self, use_cache: bool = True) -> Optional[List[dict]]:
        """Order/schedule snapshot, including unallocated slots."""
        return self._cached("orders", self._load_orders, use_cache)

    def _load_orders(self) -> Optional[List[dict]]:
        relative = self.config.orders_file
        suffix = Path(relative).suffix.lower()
        if suffix == ".json":
            data = self._read_json(relative)
            return None if data is None else _as_list(data)

        path = self._get_path(relative)
        if not path.exists():
            logger.info("No snapshot at %s yet", path)
            return None
        try:
            if suffix in (".xlsx", ".xls"):
                df = pd.read_excel(path, sheet_name=self.config.orders_sheet, dtype=str)
            else:
                df = pd.read_csv(path, dtype=str, keep_default_na=False)
        except (OSError, ValueError) as e:
            raise SnapshotLoadError(f"Could not read order sheet {path}: {e}") from e
        return self._frame_to_records(df)

    @staticmethod
    def _frame_to_records(df: pd.DataFrame) -> List[dict]:
        """Sheet rows -> order records with blank cells dropped."""
        df.columns = df.columns.astype(str).str.strip()
        df = df.where(pd.notna(df), None)
        records = []
        for record in df.to_dict("records"):
            records.append({
                key: value for key, value in record.items()
                if value is not None and str(value).strip() != ""
            })
        return records

    def load_campervans(self, use_cache: bool = True) -> Optional[List[dict]]:
        def load():
            data = self._read_json(self.config.campervan_file)
            return None if data is None else _as_list(data)
        return self._cached("campervans", load, use_cache)

    # =========================================================================
    # PER-DEALER STREAMS
    # =========================================================================

    def load_yard(self, use_cache: bool = True) -> Optional[Dict[str, dict]]:
        """All-dealer yard stock: {dealer_slug: {chassis: entry}}."""
        def load():
            data = self._read_json(self.config.yard_file)
            return None if data is None else {k: _as_map(v) for k, v in _as_map(data).items()}
        return self._cached("yard", load, use_cache)

    def load_handover(self, use_cache: bool = True) -> Optional[Dict[str, dict]]:
        """All-dealer handovers: {dealer_slug: {key: record}}."""
        def load():
            data = self._read_json(self.config.handover_file)
            return None if data is None else {k: _as_map(v) for k, v in _as_map(data).items()}
        return self._cached("handover", load, use_cache)

    def load_pgi(self, use_cache: bool = True) -> Optional[Dict[str, dict]]:
        def load():
            data = self._read_json(self.config.pgi_file)
            return None if data is None else _as_map(data)
        return self._cached("pgi", load, use_cache)

    # =========================================================================
    # CONFIGURATION STORE
    # =========================================================================

    def load_dealer_configs(self, use_cache: bool = True) -> Optional[Dict[str, dict]]:
        def load():
            data = self._read_json(self.config.dealer_configs_file)
            return None if data is None else _as_map(data)
        return self._cached("dealer_configs", load, use_cache)

    # =========================================================================
    # CONVENIENCE METHODS
    # =========================================================================

    def load_snapshots(self, use_cache: bool = True) -> Snapshots:
        """One consistent capture of every stream."""
        snapshots = Snapshots(
            orders=self.load_orders(use_cache),
            yard=self.load_yard(use_cache),
            handover=self.load_handover(use_cache),
            pgi=self.load_pgi(use_cache),
            dealer_configs=self.load_dealer_configs(use_cache),
            campervans=self.load_campervans(use_cache),
        )
        logger.info(
            "Loaded snapshots: %s orders, %s yard dealers, %s handover dealers, %s PGI records",
            _size(snapshots.orders), _size(snapshots.yard), _size(snapshots.handover), _size(snapshots.pgi),
        )
        return snapshots

    def clear_cache(self):
        """Clear all cached data."""
        self._cache.clear()

    def refresh(self) -> Snapshots:
        """Clear cache and reload every stream."""
        self.clear_cache()
        return self.load_snapshots()


def _size(value) -> str:
    return "no" if value is None else str(len(value))
