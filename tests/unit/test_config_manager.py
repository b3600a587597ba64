"""Tests for studysync.core.config_manager."""

from pathlib import Path
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from studysync.core.config_manager import (
    DEFAULT_RELAY_URL,
    ConfigManager,
    StudySyncSettings,
    ensure_settings,
    get_config_value,
    parse_env_file,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]

ENV_KEYS = (
    "STUDYSYNC_WEB_HOST",
    "STUDYSYNC_WEB_PORT",
    "STUDYSYNC_RELAY_URL",
    "STUDYSYNC_REQUEST_TIMEOUT",
    "STUDYSYNC_DEFAULT_TIMEZONE",
    "STUDYSYNC_STORE_PATH",
    "STUDYSYNC_USER_ID",
    "STUDYSYNC_THEME",
    "STUDYSYNC_DEFAULT_DURATION",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test with no STUDYSYNC_* config and restore afterwards."""
    for key in ENV_KEYS:
        # setenv first so monkeypatch removes keys that .env loading creates
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_settings_defaults() -> None:
    settings = StudySyncSettings()

    assert settings.server_port == 3001
    assert settings.relay_url == DEFAULT_RELAY_URL
    assert settings.theme == "light"
    assert settings.default_duration_minutes == 60


@pytest.mark.parametrize(
    "overrides",
    [{"theme": "neon"}, {"default_timezone": "Mars/Olympus"}, {"server_port": 70000}],
)
def test_settings_when_invalid_then_validation_error(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        StudySyncSettings(**overrides)


def test_parse_env_file_skips_comments_and_strips_quotes(tmp_path: Path) -> None:
    env = tmp_path / ".env"
    env.write_text('# comment\nSTUDYSYNC_USER_ID="alice"\n\nBROKEN LINE\nSTUDYSYNC_THEME=\'dark\'\n')

    assert parse_env_file(env) == {"STUDYSYNC_USER_ID": "alice", "STUDYSYNC_THEME": "dark"}


def test_parse_env_file_when_missing_then_empty(tmp_path: Path) -> None:
    assert parse_env_file(tmp_path / "absent.env") == {}


def test_build_config_from_env_maps_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUDYSYNC_WEB_PORT", "8088")
    monkeypatch.setenv("STUDYSYNC_USER_ID", "student-7")
    monkeypatch.setenv("STUDYSYNC_THEME", "dark")
    monkeypatch.setenv("STUDYSYNC_RELAY_URL", "")
    monkeypatch.setenv("STUDYSYNC_DEFAULT_DURATION", "45")

    cfg = ConfigManager(env_file_path=Path("/nonexistent/.env")).build_config_from_env()

    assert cfg == {
        "server_port": 8088,
        "user_id": "student-7",
        "theme": "dark",
        "relay_url": "",
        "default_duration_minutes": 45,
    }


def test_build_config_from_env_when_bad_int_then_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUDYSYNC_WEB_PORT", "eighty")

    assert "server_port" not in ConfigManager().build_config_from_env()


def test_load_settings_env_overrides_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """.env supplies defaults; variables already in the environment win."""
    env = tmp_path / ".env"
    env.write_text("STUDYSYNC_USER_ID=from-file\nSTUDYSYNC_THEME=dark\n")
    monkeypatch.setenv("STUDYSYNC_USER_ID", "from-env")

    settings = ConfigManager(env_file_path=env).load_settings()

    assert settings.user_id == "from-env"
    assert settings.theme == "dark"


def test_get_config_value_supports_dict_and_attributes() -> None:
    assert get_config_value({"a": 1}, "a") == 1
    assert get_config_value({"a": 1}, "b", 2) == 2
    assert get_config_value(SimpleNamespace(a=3), "a") == 3
    assert get_config_value(SimpleNamespace(), "a", 4) == 4


def test_ensure_settings_coerces_inputs() -> None:
    settings = StudySyncSettings(user_id="x")

    assert ensure_settings(settings) is settings
    assert ensure_settings(None).user_id == StudySyncSettings().user_id
    assert ensure_settings({"server_port": 9000}).server_port == 9000
    assert ensure_settings(SimpleNamespace(user_id="y", theme="dark")).theme == "dark"
