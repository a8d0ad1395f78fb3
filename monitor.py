#!/usr/bin/env python3
"""
Auto-Push Monitor CLI

Usage:
    python monitor.py                   # Watch forever
    python monitor.py --once            # Run a single check cycle
    python monitor.py --config my.cfg   # Use another config file (default: ./config.cfg)
    python monitor.py status            # Show monitor status
    python monitor.py baseline          # Reset the stored fingerprint
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from auto_push import __version__
from auto_push.checksum import FingerprintStore, compute_checksum
from auto_push.config import Config, ConfigError
from auto_push.git_handler import GitHandler, GitUnavailableError
from auto_push.log import setup_logging
from auto_push.monitor_engine import MonitorEngine

console = Console()
err_console = Console(stderr=True)

DEFAULT_CONFIG = "config.cfg"
CONFIG_ENVVAR = "AUTO_PUSH_CONFIG"


def load_config(ctx: click.Context) -> Config:
    """
    Load configuration and run the startup checks.

    Exits with status 1 on any startup failure.
    """
    try:
        config = Config.from_file(ctx.obj["config_path"], debug=ctx.obj["debug"])
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    try:
        GitHandler.ensure_available()
    except GitUnavailableError as e:
        err_console.print(f"[red]Missing tool:[/red] {e}")
        sys.exit(1)

    if not GitHandler(config).is_git_repo():
        err_console.print(f"[red]Not a git repository:[/red] {config.repo_root}")
        sys.exit(1)

    return config


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG,
    envvar=CONFIG_ENVVAR,
    show_default=True,
    show_envvar=True,
    help="Path to the config file",
)
@click.option("--once", is_flag=True, help="Run a single check cycle and exit")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx, config_path: Path, once: bool, debug: bool):
    """
    Auto-Push Monitor

    Watches a file or directory and pushes every change to the remote.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["once"] = once
    ctx.obj["debug"] = debug

    # If no subcommand, start monitoring
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.pass_context
def run(ctx):
    """Monitor the target and publish changes."""
    config = load_config(ctx)
    setup_logging(config.log_path, debug=config.debug, console=console)

    engine = MonitorEngine(config)

    try:
        if ctx.obj.get("once"):
            engine.establish_baseline()
            engine.run_cycle()
        else:
            engine.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Monitor stopped.[/yellow]")
        sys.exit(130)


@cli.command()
@click.pass_context
def status(ctx):
    """Show current monitor status."""
    config = load_config(ctx)

    stored = FingerprintStore(config.checksum_path).read()
    current = compute_checksum(config.target_path, exclude=config.monitor_files)

    table = Table(title="Monitor Status", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Repository", str(config.repo_root))
    table.add_row("Target", config.target)
    table.add_row("Remote", f"{config.git_remote}/{config.git_branch}")
    table.add_row("Poll interval", f"{config.poll_interval:g}s")
    table.add_row("Stored fingerprint", stored or "(none)")
    table.add_row("Current fingerprint", current or "(target missing or empty)")

    if stored is None:
        state = "[yellow]no baseline yet[/yellow]"
    elif current and current != stored:
        state = "[yellow]changed[/yellow]"
    else:
        state = "[green]up to date[/green]"

    console.print(table)
    console.print(f"State: {state}")


@cli.command()
@click.option("--yes", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def baseline(ctx, yes: bool):
    """Overwrite the stored fingerprint with the current one."""
    config = load_config(ctx)

    if not yes and not click.confirm("Reset the stored fingerprint? Pending changes will not be pushed"):
        console.print("Aborted.")
        return

    current = compute_checksum(config.target_path, exclude=config.monitor_files)
    FingerprintStore(config.checksum_path).write(current)
    console.print(f"[green]Stored fingerprint:[/green] {current or '(target missing or empty)'}")


@cli.command()
def version():
    """Show version information."""
    console.print(f"Auto-Push Monitor v{__version__}")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
