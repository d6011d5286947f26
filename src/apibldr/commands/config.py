"""Config commands -- view and modify global configuration.

Provides the ``apibldr config`` sub-command group for reading, updating and
resetting the user's global configuration file
(:class:`~apibldr.models.GlobalConfig`): the store backend, the debounce
delay, the output format and the default workspace.
"""

from __future__ import annotations

import typer

from apibldr.output import info, print_mapping, success


config_app = typer.Typer(no_args_is_help=True)


def _flatten(data: dict, prefix: str = "") -> dict[str, object]:
    flat: dict[str, object] = {}
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{name}."))
        else:
            flat[name] = value
    return flat


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        apibldr config show
        apibldr --json config show
    """
    from apibldr.config import get_config_dir, list_workspaces, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    workspaces = list_workspaces()
    if workspaces:
        info(f"Workspaces: {', '.join(workspaces)}")
    print_mapping(_flatten(config.model_dump(mode="json")))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g., 'sync.debounce_ms')."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the existing field's type and the updated config
    is validated before saving.

    Example::

        apibldr config set default_workspace petstore
        apibldr config set store.backend diskcache
        apibldr config set sync.debounce_ms 500
    """
    from apibldr.config import load_global_config, save_global_config, set_config_value

    config = set_config_value(load_global_config(), key, value)
    save_global_config(config)
    success(f"Set {key} = {value}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.
    """
    from apibldr.config import save_global_config
    from apibldr.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
