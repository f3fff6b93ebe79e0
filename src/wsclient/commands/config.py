"""Config commands -- view and modify persisted settings.

Provides the ``wsclient config`` sub-command group for reading, updating,
and resetting the user's settings file (:class:`~wsclient.models.Settings`).
Settings control request defaults such as timeout, user agent, default
headers, and transport flags.
"""

from __future__ import annotations

import typer

from wsclient.output import error, format_payload, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current settings.

    Example::

        wsclient config show
        wsclient --json config show
    """
    from wsclient.config import load_settings, settings_path

    settings = load_settings()
    info(f"Settings file: {settings_path()}")
    format_payload(settings.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Settings key (dot notation, e.g. 'output.format' or 'default_headers.Accept')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a settings value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type (bool or int); keys under ``default_headers`` may
    be new. The result is validated against
    :class:`~wsclient.models.Settings` before saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        wsclient config set timeout_ms 10000
        wsclient config set verify_ssl false
        wsclient config set default_headers.Accept application/json
    """
    from wsclient.config import load_settings, save_settings
    from wsclient.models import Settings

    settings = load_settings()
    data = settings.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid settings key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    open_mapping = len(keys) > 1 and keys[0] == "default_headers"
    if final_key not in target and not open_mapping:
        error(f"Unknown settings key: {key}")
        raise typer.Exit(code=2)

    current = target.get(final_key)
    coerced: object
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_settings = Settings.model_validate(data)
    except Exception as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings(new_settings)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset settings to defaults.

    Asks for confirmation unless ``--force`` is given.

    Example::

        wsclient config reset --force
    """
    from wsclient.config import save_settings
    from wsclient.models import Settings

    if not force:
        confirmed = typer.confirm("Reset all settings to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_settings(Settings())
    success("Settings reset to defaults.")
