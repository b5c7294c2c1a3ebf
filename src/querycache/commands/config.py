"""Config commands -- view and modify global configuration.

Provides the ``querycache config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~querycache.models.GlobalConfig`). Settings control the default
collection, TTL, storage backend and HTTP request defaults.
"""

from __future__ import annotations

import typer

from querycache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    effective: bool = typer.Option(
        False,
        "--effective",
        help="Show the resolved config including project, environment and CLI overrides.",
    ),
) -> None:
    """Show current configuration.

    Example::

        querycache config show
        querycache --ttl 60 config show --effective --json
    """
    from querycache.config import get_config_dir, load_global_config, resolve_config
    from querycache.exceptions import QueryCacheError

    try:
        if effective:
            obj = ctx.obj or {}
            config = resolve_config(
                cli_collection=obj.get("collection"),
                cli_ttl=obj.get("ttl"),
                cli_storage=obj.get("storage"),
                cli_base_url=obj.get("base_url"),
            )
        else:
            config = load_global_config()
    except QueryCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.ttl_seconds')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type (bool, int, float or str) and the updated config is
    validated against :class:`~querycache.models.GlobalConfig` before saving.

    Example::

        querycache config set cache.ttl_seconds 600
        querycache config set cache.collection_key my-app
        querycache config set storage.backend diskcache
    """
    from pydantic import ValidationError

    from querycache.config import load_global_config, save_global_config
    from querycache.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    coerced: object = value
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    elif isinstance(current, float):
        try:
            coerced = float(value)
        except ValueError:
            error(f"Expected number for {key}, got: {value}")
            raise typer.Exit(code=2) from None

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults.

    Example::

        querycache config reset --force
    """
    from querycache.config import reset_global_config

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    reset_global_config()
    success("Configuration reset to defaults.")
