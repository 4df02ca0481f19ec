import json

import pytest

from tapereplay.config import DEFAULTS, SPEED_OPTIONS, ReplaySettings, load_config
from tapereplay.config.providers import EnvProvider, FileProvider, env_value, merged
from tapereplay.errors import ConfigError


def test_defaults_give_default_settings():
    s = ReplaySettings.from_dict(load_config(DEFAULTS, use_env=False))
    assert s == ReplaySettings()
    assert s.speeds == SPEED_OPTIONS
    assert s.lunch.start_s == 11 * 3600 + 30 * 60


def test_file_then_env_then_overrides(tmp_path, monkeypatch):
    path = tmp_path / "replay.json"
    path.write_text(json.dumps({"playback": {"tick_period_ms": 250, "default_speed": 2}}), encoding="utf-8")
    monkeypatch.setenv("TAPE_PLAYBACK__TICK_PERIOD_MS", "50")
    monkeypatch.setenv("TAPE_STYLE__UP_COLOR", "green")

    cfg = load_config(DEFAULTS, str(path), overrides={"style": {"background": "black"}})
    s = ReplaySettings.from_dict(cfg)
    assert s.tick_period_ms == 50
    assert s.default_speed == 2.0
    assert s.palette.up == "green"
    assert s.palette.down == DEFAULTS["style"]["down_color"]
    assert s.background == "black"
    assert cfg["log"]["level"] == "info"


def test_toml_file(tmp_path):
    path = tmp_path / "replay.toml"
    path.write_text('[lunch]\nstart = "11:00"\nend = "12:00"\n', encoding="utf-8")
    s = ReplaySettings.from_dict(load_config(DEFAULTS, str(path), use_env=False))
    assert (s.lunch.start_s, s.lunch.end_s) == (39600, 43200)


def test_missing_required_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(DEFAULTS, str(tmp_path / "nope.toml"))
    assert FileProvider(path=str(tmp_path / "nope.toml")).load() == {}


def test_env_values_are_coerced(monkeypatch):
    monkeypatch.setenv("TAPE_PLAYBACK__SPEEDS", "[1, 1000]")
    monkeypatch.setenv("TAPE_LUNCH__ENABLED", "off")
    monkeypatch.setenv("TAPE_DOJI__EPSILON", "0.5")
    out = EnvProvider().load()
    assert out["playback"]["speeds"] == [1, 1000]
    assert out["lunch"]["enabled"] is False
    assert out["doji"]["epsilon"] == 0.5


def test_cli_level_env_names_stay_out_of_the_tree(monkeypatch):
    monkeypatch.setenv("TAPE_CONFIG", "somewhere.toml")
    monkeypatch.setenv("TAPE_LOG_LEVEL", "debug")
    out = EnvProvider().load()
    assert "config" not in out and "log_level" not in out


def test_env_value_and_merge_helpers():
    assert env_value(" 11:30:00 ") == "11:30:00"
    assert env_value("1e-4") == 1e-4
    assert env_value("Yes") is True
    base = {"style": {"up_color": "a", "down_color": "b"}, "speeds": [1, 2]}
    out = merged(base, {"style": {"up_color": "c"}, "speeds": [5]})
    assert out == {"style": {"up_color": "c", "down_color": "b"}, "speeds": [5]}
    assert base["style"]["up_color"] == "a"


def test_unsupported_or_broken_files(tmp_path):
    with pytest.raises(ConfigError):
        FileProvider(path=str(tmp_path / "replay.ini")).load()
    broken = tmp_path / "broken.json"
    broken.write_text("{nope", encoding="utf-8")
    with pytest.raises(ConfigError):
        FileProvider(path=str(broken)).load()


def test_lunch_can_be_disabled():
    s = ReplaySettings.from_dict({"lunch": {"enabled": False}})
    assert s.lunch is None


def test_custom_header_aliases():
    s = ReplaySettings.from_dict({"tape": {"headers": {"date": ["d"], "time": ["t"], "price": ["p"], "volume": ["v"]}}})
    assert s.header_aliases["price"] == ("p",)


@pytest.mark.parametrize(
    "cfg",
    [
        {"playback": {"default_speed": 4}},
        {"playback": {"tick_period_ms": 0}},
        {"playback": {"speeds": []}},
        {"doji": {"epsilon": 0}},
        {"lunch": {"start": "13:00", "end": "12:00"}},
    ],
)
def test_invalid_settings_are_rejected(cfg):
    with pytest.raises(ValueError):
        ReplaySettings.from_dict(cfg)
