from pathlib import Path

import pytest

from dealer_outlook.config import (
    Config,
    ConfigError,
    config_from_yaml,
    load_settings_from_yaml,
    print_current_settings,
    reload_settings,
)


def test_missing_settings_file_gives_defaults(tmp_path):
    assert load_settings_from_yaml(tmp_path / "settings.yaml") == {}
    assert config_from_yaml(tmp_path / "settings.yaml") == Config()


def test_settings_sections_override_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "paths:\n"
        "  data: /srv/snapshots\n"
        "files:\n"
        "  orders: schedule.xlsx\n"
        "fields:\n"
        "  chassis: [VIN]\n"
        "horizon:\n"
        "  months: 6\n"
        "  start: '2026-03'\n"
        "handover_windows:\n"
        "  short_days: 60\n"
    )
    config = config_from_yaml(path)

    assert config.data_path == Path("/srv/snapshots")
    assert config.orders_file == "schedule.xlsx"
    assert config.chassis_fields == ["VIN"]
    assert config.horizon_months == 6
    assert config.horizon_start == "2026-03"
    assert config.short_window_days == 60
    assert config.long_window_days == 180


def test_unreadable_settings_raise(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("paths: {data: [\n")
    with pytest.raises(ConfigError):
        config_from_yaml(path)


def test_with_overrides_ignores_none_and_rejects_unknown():
    config = Config().with_overrides(horizon_months=4, horizon_start=None)
    assert config.horizon_months == 4
    assert config.horizon_start is None
    with pytest.raises(ConfigError):
        Config().with_overrides(not_a_field=1)


def test_reload_and_print_settings(tmp_path, capsys, monkeypatch):
    import dealer_outlook.config as config_module
    monkeypatch.setattr(config_module, "default_config", config_module.default_config)

    config = reload_settings(tmp_path / "absent.yaml")
    assert config == Config()

    print_current_settings(Config(horizon_months=3))
    out = capsys.readouterr().out
    assert "Horizon: 3 months from next month" in out
