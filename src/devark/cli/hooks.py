"""
Hook management commands for host assistant integration.

Provides commands to install, uninstall, inspect, and validate the hooks
devark registers in the assistant's settings.json files. Only devark's own
entries are ever added or removed.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from devark.core.config import DevarkConfig, load_config, resolve_cli_path
from devark.core.hooks import (
    HookErrorCode,
    HookInstallResult,
    HookPredicate,
    get_hook_status,
    install_hook,
    install_hooks,
    layers_with_hooks,
    uninstall_hooks,
    validate_hooks,
)
from devark.core.settings import SettingsLayer, SettingsStore, Trigger

app = typer.Typer(
    name="hooks",
    help="Manage devark hooks in your assistant's settings",
    no_args_is_help=True,
)

console = Console()


def _project_dir(ctx: typer.Context) -> Path:
    if ctx.obj and ctx.obj.get("project_dir"):
        return Path(ctx.obj["project_dir"])
    return Path.cwd()


def _context(ctx: typer.Context) -> tuple[DevarkConfig, SettingsStore, HookPredicate, str]:
    project_dir = _project_dir(ctx)
    config = load_config(project_dir)
    cli_path = resolve_cli_path(config)
    store = SettingsStore(project_dir=project_dir)
    predicate = HookPredicate(config.recognized_commands, cli_path=cli_path)
    return config, store, predicate, cli_path


def _writable_layer(layer: Optional[SettingsLayer], config: DevarkConfig) -> SettingsLayer:
    selected = layer or config.default_layer
    if selected is SettingsLayer.ENTERPRISE:
        console.print("[red]Error: Enterprise managed settings are read-only[/red]")
        raise typer.Exit(1)
    return selected


def _print_install_result(result: HookInstallResult) -> None:
    if result.success:
        console.print(f"[green]✓[/green] {result.message}")
        if result.hooks_installed:
            console.print(f"  Installed hooks: {', '.join(result.hooks_installed)}")
        if result.hooks_skipped:
            console.print(f"  [dim]Already configured: {', '.join(result.hooks_skipped)}[/dim]")
        if result.settings_file:
            console.print(f"  Settings file: {result.settings_file}")
    else:
        console.print(f"[red]✗[/red] {result.message}")
        if result.error:
            console.print(f"[red]Error:[/red] {result.error.message}")


@app.command(name="install")
def install(
    ctx: typer.Context,
    layer: Optional[SettingsLayer] = typer.Option(
        None,
        "--layer",
        "-l",
        help="Settings layer to modify (default: user)",
        case_sensitive=False,
    ),
    triggers: Optional[list[Trigger]] = typer.Option(
        None,
        "--trigger",
        "-t",
        help="Trigger to install (repeatable; default: SessionStart, PreCompact, SessionEnd)",
    ),
    matcher: str = typer.Option(
        "",
        "--matcher",
        "-m",
        help="Matcher for the hook group (default: match all)",
    ),
    command: Optional[str] = typer.Option(
        None,
        "--command",
        "-c",
        help="Custom hook command (default: devark send for each trigger)",
    ),
    timeout: Optional[int] = typer.Option(
        None,
        "--timeout",
        min=1,
        help="Hook timeout in seconds",
    ),
) -> None:
    """
    Install devark hooks.

    Adds devark's hook command to the selected settings layer for each
    trigger. Existing settings and other tools' hooks are preserved, and
    re-running the command never duplicates an entry.

    Examples:
        devark hooks install                         # Default triggers, user settings
        devark hooks install --layer project         # .claude/settings.json
        devark hooks install -t SessionStart -t Stop
    """
    config, store, _, cli_path = _context(ctx)
    target = _writable_layer(layer, config)
    selected = list(triggers) if triggers else list(config.hook_triggers)
    hook_timeout = timeout or config.hook_timeout

    console.print(f"[blue]Installing hooks in:[/blue] {store.path_for(target)}")

    if command:
        results = [
            install_hook(
                store,
                trigger,
                command,
                layer=target,
                matcher=matcher,
                timeout=hook_timeout,
                stale_after=config.lock_stale_seconds,
            )
            for trigger in selected
        ]
    else:
        results = [
            install_hooks(
                store,
                cli_path,
                layer=target,
                triggers=selected,
                matcher=matcher,
                timeout=hook_timeout,
                stale_after=config.lock_stale_seconds,
            )
        ]

    for result in results:
        _print_install_result(result)

    if not all(result.success for result in results):
        raise typer.Exit(1)


@app.command(name="uninstall")
def uninstall(
    ctx: typer.Context,
    layer: Optional[SettingsLayer] = typer.Option(
        None,
        "--layer",
        "-l",
        help="Settings layer to clean (default: user)",
        case_sensitive=False,
    ),
) -> None:
    """
    Remove devark hooks.

    Removes every devark hook from the selected settings layer while
    preserving other settings and other tools' hooks. Groups and triggers
    left empty are removed.

    Examples:
        devark hooks uninstall                  # ~/.claude/settings.json
        devark hooks uninstall --layer local    # .claude/settings.local.json
    """
    config, store, predicate, _ = _context(ctx)
    target = _writable_layer(layer, config)

    console.print(f"[blue]Removing hooks from:[/blue] {store.path_for(target)}")

    result = uninstall_hooks(store, predicate, layer=target, stale_after=config.lock_stale_seconds)

    if result.success:
        console.print(f"[green]✓[/green] {result.message}")
        if result.triggers_affected:
            console.print(f"  Triggers cleaned: {', '.join(result.triggers_affected)}")
        raise typer.Exit(0)

    if result.error and result.error.code is HookErrorCode.NO_HOOKS_FOUND:
        console.print(f"[yellow]⚠[/yellow] {result.error.message}")
        others = [found.value for found in layers_with_hooks(store, predicate) if found != target]
        if others:
            console.print(f"  devark hooks found in: {', '.join(others)} (use --layer)")
    else:
        console.print(f"[red]✗[/red] {result.message}")
        if result.error:
            console.print(f"[red]Error:[/red] {result.error.message}")
    raise typer.Exit(1)


@app.command(name="status")
def status(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Show which triggers have devark hooks.

    Reads the effective settings (all layers merged the way the assistant
    merges them).

    Examples:
        devark hooks status
        devark hooks status --json
    """
    _, store, predicate, _ = _context(ctx)
    hook_status = get_hook_status(store, predicate)

    if json_output:
        # Plain print: rich would wrap long commands and break the JSON
        print(hook_status.model_dump_json(indent=2))
        return

    table = Table(title="devark Hooks", show_header=True, header_style="bold")
    table.add_column("Trigger", style="white")
    table.add_column("Installed", width=10)
    table.add_column("Layer", style="dim")
    table.add_column("Command", style="dim")

    for trigger_status in hook_status.triggers:
        if not trigger_status.installed and not trigger_status.sources:
            continue
        table.add_row(
            trigger_status.trigger,
            "[green]yes[/green]" if trigger_status.installed else "[yellow]shadowed[/yellow]",
            ", ".join(trigger_status.sources),
            "\n".join(trigger_status.commands),
        )

    if not hook_status.installed:
        console.print("[yellow]No devark hooks installed.[/yellow]")
        console.print("To install hooks: [cyan]devark hooks install[/cyan]")
        return

    console.print(table)
    if hook_status.outdated:
        console.print(
            f"[yellow]⚠[/yellow] Some hooks were installed by an older devark "
            f"(version {hook_status.hook_version}). Run 'devark hooks install' to add current ones."
        )


@app.command(name="validate")
def validate(ctx: typer.Context) -> None:
    """
    Validate installed devark hooks.

    Checks that:
    - At least one devark hook is installed
    - Each hook's program exists on disk or on PATH
    - Each hook uses the currently configured CLI path

    Examples:
        devark hooks validate
    """
    _, store, predicate, cli_path = _context(ctx)
    result = validate_hooks(store, predicate, cli_path)

    if result.valid:
        console.print(f"[green]✓[/green] All {result.hooks_checked} hooks validated successfully")
        raise typer.Exit(0)

    table = Table(title="Hook Validation Issues", show_header=True, header_style="bold")
    table.add_column("Issue", style="white")
    table.add_column("Trigger/File", style="dim")

    for issue in result.errors:
        table.add_row(f"[red]{issue.message}[/red]", issue.trigger or issue.file_path or "")

    console.print(table)
    console.print()
    console.print(f"[red]✗[/red] Found {len(result.errors)} error(s)")
    console.print(f"  Expected CLI path: {cli_path}")
    console.print("  Run 'devark hooks uninstall' then 'devark hooks install' to fix")
    raise typer.Exit(1)
