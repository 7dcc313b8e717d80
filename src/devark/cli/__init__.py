"""
devark CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from devark import __version__
from devark.cli import config, hooks
from devark.core.config.env import load_layered_env
from devark.utils.project import get_project_root

app = typer.Typer(
    name="devark",
    help="Measure, learn and improve your AI coding sessions",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for CLI commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    project_dir: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory for project/local settings (default: detected from cwd)",
    ),
) -> None:
    """
    devark - Measure, learn and improve your AI coding sessions.

    Manages the hooks devark installs into your assistant's settings so
    sessions are tracked automatically.

    Quick Start:
        devark hooks install         # Install hooks in ~/.claude/settings.json
        devark hooks status          # See which triggers are covered
        devark hooks validate        # Check hooks point at this devark
        devark hooks uninstall       # Remove only devark's hooks
    """
    setup_logging(debug)

    project_path = get_project_root(Path(project_dir) if project_dir else None)

    # Precedence: OS env > project .env > user .env
    load_layered_env(project_dir=project_path)

    ctx.obj = {"debug": debug, "project_dir": project_path}


app.add_typer(hooks.app, name="hooks")
app.add_typer(config.app, name="config")


@app.command()
def version() -> None:
    """Show devark version and exit."""
    console.print(f"devark version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
