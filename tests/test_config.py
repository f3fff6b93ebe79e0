"""Tests for wsclient.config -- XDG paths, atomic writes, settings, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from wsclient.config import (
    _atomic_write,
    get_config_dir,
    get_data_dir,
    load_settings,
    resolve_settings,
    save_settings,
    settings_path,
)
from wsclient.exceptions import ConfigError
from wsclient.models import DEFAULT_TIMEOUT_MS, DEFAULT_USER_AGENT, Settings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("wsclient.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "wsclient"
        assert result.is_dir()

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("wsclient.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "custom"))
        assert get_config_dir() == tmp_path / "custom" / "wsclient"

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("wsclient.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_data_dir() == tmp_path / ".local" / "share" / "wsclient"

    def test_fallback_dirs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("wsclient.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".wsclient"
        assert get_data_dir() == tmp_path / ".wsclient"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "settings.json"
        _atomic_write(target, "hello")
        assert target.read_text(encoding="utf-8") == "hello"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "settings.json"
        target.write_text("old", encoding="utf-8")
        _atomic_write(target, "new")
        assert target.read_text(encoding="utf-8") == "new"
        assert list(tmp_path.iterdir()) == [target]

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "settings.json"
        with patch("wsclient.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                _atomic_write(target, "will fail")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Settings file
# ---------------------------------------------------------------------------


class TestSettingsFile:
    def test_load_returns_defaults_when_missing(self, config_home: Path) -> None:
        settings = load_settings()
        assert settings == Settings()
        assert settings.timeout_ms == DEFAULT_TIMEOUT_MS
        assert settings.user_agent == DEFAULT_USER_AGENT

    def test_save_and_load_roundtrip(self, config_home: Path) -> None:
        original = Settings(timeout_ms=5_000, default_headers={"Accept": "application/xml"}, verify_ssl=False)
        save_settings(original)
        assert settings_path() == config_home / "settings.json"
        assert load_settings() == original

    def test_saved_file_is_json(self, config_home: Path) -> None:
        save_settings(Settings(user_agent="agent/2"))
        data = json.loads((config_home / "settings.json").read_text(encoding="utf-8"))
        assert data["user_agent"] == "agent/2"

    def test_invalid_json_raises_config_error(self, config_home: Path) -> None:
        (config_home).mkdir(parents=True, exist_ok=True)
        (config_home / "settings.json").write_text("{broken", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings()

    def test_invalid_schema_raises_config_error(self, config_home: Path) -> None:
        _write_json(config_home / "settings.json", {"timeout_ms": -5})
        with pytest.raises(ConfigError):
            load_settings()


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveSettings:
    """Explicit arguments > env vars > settings file > defaults."""

    def test_defaults(self, config_home: Path) -> None:
        assert resolve_settings() == Settings()

    def test_file_overrides_defaults(self, config_home: Path) -> None:
        save_settings(Settings(timeout_ms=7_000))
        assert resolve_settings().timeout_ms == 7_000

    def test_env_overrides_file(self, config_home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        save_settings(Settings(timeout_ms=7_000, user_agent="file"))
        monkeypatch.setenv("WSCLIENT_TIMEOUT_MS", "3000")
        monkeypatch.setenv("WSCLIENT_USER_AGENT", "env")
        settings = resolve_settings()
        assert settings.timeout_ms == 3_000
        assert settings.user_agent == "env"

    def test_explicit_overrides_env(self, config_home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WSCLIENT_TIMEOUT_MS", "3000")
        settings = resolve_settings(timeout_ms=1_000, user_agent="cli")
        assert settings.timeout_ms == 1_000
        assert settings.user_agent == "cli"

    def test_base_replaces_file(self, config_home: Path) -> None:
        save_settings(Settings(timeout_ms=7_000))
        assert resolve_settings(base=Settings(timeout_ms=9_000)).timeout_ms == 9_000

    def test_other_fields_survive_overrides(self, config_home: Path) -> None:
        save_settings(Settings(default_headers={"Accept": "text/xml"}))
        settings = resolve_settings(timeout_ms=2_000)
        assert settings.default_headers == {"Accept": "text/xml"}

    def test_non_integer_env_timeout(self, config_home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WSCLIENT_TIMEOUT_MS", "soon")
        with pytest.raises(ConfigError, match="WSCLIENT_TIMEOUT_MS"):
            resolve_settings()

    def test_non_positive_timeout(self, config_home: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid settings override"):
            resolve_settings(timeout_ms=0)
