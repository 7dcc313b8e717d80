"""
Configuration commands.

Read and update devark settings stored in ~/.config/devark/config.json.
"""

import json

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from devark.core.config import (
    DevarkConfig,
    get_user_config_path,
    load_config,
    resolve_cli_path,
    set_config_value,
)

app = typer.Typer(
    name="config",
    help="View and change devark configuration",
    no_args_is_help=True,
)

console = Console()


def _format_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


@app.command(name="list")
def list_config(ctx: typer.Context) -> None:
    """
    Show the effective configuration.

    Values are merged from defaults, user config, project config and
    DEVARK_* environment variables.
    """
    project_dir = ctx.obj.get("project_dir") if ctx.obj else None
    config = load_config(project_dir)
    values = config.model_dump(mode="json")

    table = Table(title="devark Configuration", show_header=True, header_style="bold")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    table.add_column("Description", style="dim")

    for key, field in DevarkConfig.model_fields.items():
        table.add_row(key, _format_value(values[key]), field.description or "")

    console.print(table)
    console.print(f"[dim]Resolved CLI path: {resolve_cli_path(config)}[/dim]")
    console.print(f"[dim]User config: {get_user_config_path()}[/dim]")


@app.command(name="get")
def get_config(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Configuration key (e.g. cli_path)"),
) -> None:
    """
    Print one configuration value.

    Examples:
        devark config get cli_path
    """
    if key not in DevarkConfig.model_fields:
        console.print(f"[red]Unknown config key: {key}[/red]")
        raise typer.Exit(1)

    project_dir = ctx.obj.get("project_dir") if ctx.obj else None
    config = load_config(project_dir)
    console.print(_format_value(config.model_dump(mode="json")[key]))


@app.command(name="set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key (e.g. cli_path)"),
    value: str = typer.Argument(..., help="New value; lists are comma-separated"),
) -> None:
    """
    Store a configuration value in the user config file.

    Examples:
        devark config set cli_path /usr/local/bin/devark
        devark config set hook_triggers SessionStart,SessionEnd
    """
    try:
        config = set_config_value(key, value)
    except KeyError:
        console.print(f"[red]Unknown config key: {key}[/red]")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]Invalid value for {key}:[/red] {e.errors()[0]['msg']}")
        raise typer.Exit(1)
    except OSError as e:
        console.print(f"[red]Failed to write config:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {key} = {_format_value(config.model_dump(mode='json')[key])}")
