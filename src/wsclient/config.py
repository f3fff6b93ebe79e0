"""Persisted defaults for wsclient and the order in which they apply.

``settings.json`` holds one :class:`~wsclient.models.Settings` document with
the default timeout, user agent, extra headers and transport flags. It lives
in ``$XDG_CONFIG_HOME/wsclient`` on Linux and the BSDs and in ``~/.wsclient``
elsewhere; crash logs go to the matching data directory.

:func:`resolve_settings` layers explicit arguments over ``WSCLIENT_*``
environment variables over the file over built-in defaults. The file is only
ever replaced whole (:func:`_atomic_write`), so a crash mid-save leaves the
previous version in place.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from wsclient.exceptions import ConfigError
from wsclient.models import Settings

_APP_NAME = "wsclient"
_SETTINGS_FILENAME = "settings.json"

ENV_TIMEOUT_MS = "WSCLIENT_TIMEOUT_MS"
ENV_USER_AGENT = "WSCLIENT_USER_AGENT"


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _home_dir() -> Path:
    """``~/.wsclient``, used where XDG directories are not a convention."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_dir(env_var: str, *default: str) -> Path:
    """``$env_var/wsclient``, or ``~/<default...>/wsclient`` when unset or empty."""
    root = os.environ.get(env_var) or str(Path.home().joinpath(*default))
    return Path(root) / _APP_NAME


def get_config_dir() -> Path:
    """Directory holding ``settings.json``. Created on first use."""
    path = _xdg_dir("XDG_CONFIG_HOME", ".config") if _is_xdg_platform() else _home_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Directory for crash logs. Created on first use.

    ``$XDG_DATA_HOME/wsclient`` (default ``~/.local/share/wsclient``) on
    XDG platforms, ``~/.wsclient`` elsewhere.
    """
    if _is_xdg_platform():
        path = _xdg_dir("XDG_DATA_HOME", ".local", "share")
    else:
        path = _home_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Saving ---


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* in one rename.

    The text goes to a hidden sibling temp file first, is fsynced, then moved
    over *path* with :func:`os.replace`. The temp file is removed if anything
    fails along the way.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp = tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    )
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        try:
            os.unlink(tmp.name)
        except OSError:
            pass
        raise


# --- Settings file ---


def settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _SETTINGS_FILENAME


def load_settings() -> Settings:
    """Load the persisted settings from the config directory.

    Returns:
        The deserialised :class:`~wsclient.models.Settings`. If the file does
        not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = settings_path()
    if not path.is_file():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Settings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist the settings atomically to disk."""
    data = settings.model_dump(mode="json")
    _atomic_write(settings_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_settings(
    timeout_ms: Optional[int] = None,
    user_agent: Optional[str] = None,
    base: Optional[Settings] = None,
) -> Settings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. Explicit arguments (``timeout_ms``, ``user_agent``)
        2. Environment variables (``WSCLIENT_TIMEOUT_MS``, ``WSCLIENT_USER_AGENT``)
        3. Settings file (``~/.config/wsclient/settings.json``), or *base*
        4. Defaults

    Raises:
        ConfigError: If an environment variable holds an invalid value.
    """
    settings = (base or load_settings()).model_copy(deep=True)
    overrides: dict[str, Any] = {}

    env_timeout = os.environ.get(ENV_TIMEOUT_MS)
    if env_timeout:
        try:
            overrides["timeout_ms"] = int(env_timeout)
        except ValueError as exc:
            raise ConfigError(
                f"{ENV_TIMEOUT_MS} must be an integer number of milliseconds, got: {env_timeout}"
            ) from exc
    env_agent = os.environ.get(ENV_USER_AGENT)
    if env_agent:
        overrides["user_agent"] = env_agent

    if timeout_ms is not None:
        overrides["timeout_ms"] = timeout_ms
    if user_agent is not None:
        overrides["user_agent"] = user_agent

    if not overrides:
        return settings
    try:
        return Settings.model_validate({**settings.model_dump(), **overrides})
    except ValueError as exc:
        raise ConfigError(f"Invalid settings override: {exc}") from exc
