"""
Tests for config.py

These tests ensure that:
1. An empty config file yields every default
2. Environment variables override file values
3. Invalid files and values raise with the path in the message
"""

import json

import pytest

import config as config_module
from config import AppConfig, load_config

ENV_NAMES = [
    "SCORESCOPE_CONFIG_PATH",
    "SCORESCOPE_MATCH_THRESHOLD",
    "SCORESCOPE_RECENT_SCORES_LIMIT",
    "SCORESCOPE_COMPARE_USERNAME",
    "SCORESCOPE_CONFIRMATION_CAPACITY",
    "SCORESCOPE_CONFIRMATION_TTL_SECONDS",
    "SCORESCOPE_TESSDATA_DIR",
    "SCORESCOPE_TESSERACT_CMD",
    "SCORESCOPE_WEB_HOST",
    "SCORESCOPE_WEB_PORT",
    "SCORESCOPE_SCORE_STORE_PATH",
    "SCORESCOPE_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for env_name in ENV_NAMES:
        monkeypatch.delenv(env_name, raising=False)


def write_config(tmp_path, payload) -> object:
    config_path = tmp_path / "scorescope_config.json"
    config_path.write_text(json.dumps(payload), encoding="utf-8")
    return config_path


def test_empty_file_gives_defaults(tmp_path):
    config, resolved_path = load_config(write_config(tmp_path, {}))
    assert resolved_path == tmp_path / "scorescope_config.json"
    assert config.matching.threshold == 8
    assert config.matching.recent_scores_limit == 50
    assert config.matching.compare_username is False
    assert config.confirmation.capacity == 512
    assert config.confirmation.ttl_seconds == 86400.0
    assert config.ocr.text_language == "eng"
    assert config.ocr.digits_language == "digitsall_layer"
    assert config.ocr.tessdata_dir is None
    assert config.logging.level == "INFO"


def test_file_values_are_used(tmp_path):
    payload = {
        "matching": {"threshold": 10, "compare_username": True},
        "confirmation": {"ttl_seconds": None},
        "ocr": {"tessdata_dir": "  ", "tesseract_cmd": "/usr/bin/tesseract"},
        "logging": {"level": "debug"},
    }
    config, _path = load_config(write_config(tmp_path, payload))
    assert config.matching.threshold == 10
    assert config.matching.compare_username is True
    assert config.confirmation.ttl_seconds is None
    assert config.ocr.tessdata_dir is None
    assert config.ocr.tesseract_cmd == "/usr/bin/tesseract"
    assert config.logging.level == "DEBUG"


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("SCORESCOPE_MATCH_THRESHOLD", "12")
    monkeypatch.setenv("SCORESCOPE_COMPARE_USERNAME", "yes")
    monkeypatch.setenv("SCORESCOPE_CONFIRMATION_TTL_SECONDS", "60.5")
    monkeypatch.setenv("SCORESCOPE_WEB_PORT", "not a number")
    monkeypatch.setenv("SCORESCOPE_TESSDATA_DIR", "/data/tessdata")

    config, _path = load_config(write_config(tmp_path, {"matching": {"threshold": 9}}))

    assert config.matching.threshold == 12
    assert config.matching.compare_username is True
    assert config.confirmation.ttl_seconds == 60.5
    assert config.web_server.port == 5178
    assert config.ocr.tessdata_dir == "/data/tessdata"


def test_explicit_config_path_from_environment(tmp_path, monkeypatch):
    config_path = write_config(tmp_path, {"web_server": {"port": 6000}})
    monkeypatch.setenv("SCORESCOPE_CONFIG_PATH", str(config_path))
    config, resolved_path = load_config()
    assert resolved_path == config_path
    assert config.web_server.port == 6000


def test_missing_explicit_path_raises(tmp_path, monkeypatch):
    monkeypatch.setenv("SCORESCOPE_CONFIG_PATH", str(tmp_path / "missing.json"))
    with pytest.raises(FileNotFoundError):
        load_config()


def test_no_config_anywhere_raises(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "_default_config_candidates", lambda: [tmp_path / "nope.json"])
    with pytest.raises(FileNotFoundError, match="nope.json"):
        load_config()


@pytest.mark.parametrize(
    "raw_text",
    [
        "{broken",
        "[1, 2]",
        json.dumps({"matching": {"threshold": -1}}),
        json.dumps({"confirmation": {"ttl_seconds": 0}}),
        json.dumps({"logging": {"level": "LOUD"}}),
        json.dumps({"ocr": {"text_language": " "}}),
    ],
)
def test_invalid_config_raises_value_error(tmp_path, raw_text):
    config_path = tmp_path / "scorescope_config.json"
    config_path.write_text(raw_text, encoding="utf-8")
    with pytest.raises(ValueError, match="scorescope_config.json"):
        load_config(config_path)


def test_main_prints_the_resolved_config(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("SCORESCOPE_CONFIG_PATH", str(write_config(tmp_path, {})))
    assert config_module.main() == 0
    output = json.loads(capsys.readouterr().out)
    assert output["ok"] is True
    assert output["config"]["matching"]["threshold"] == 8


def test_app_config_defaults_without_a_file():
    assert AppConfig().web_server.port == 5178
