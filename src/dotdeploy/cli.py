"""Command line interface for dotdeploy."""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from .core.backup import BackupVault
from .core.config import Config
from .core.engine import DeploymentEngine
from .core.environment import classify, describe
from .core.errors import DotDeployError
from .core.locator import ConfigLocator
from .core.logging import setup_logging
from .core.models import DeploymentStatus, ResolvedConfig
from .core.packages import PackageManager
from .core.report import Report
from .core.repository import GitRepository, SyncResult

console = Console()

STATUS_STYLES: Dict[DeploymentStatus, Tuple[str, str]] = {
    DeploymentStatus.INSTALLED: ("green", "installed"),
    DeploymentStatus.SOURCE_MISSING: ("yellow", "not found"),
    DeploymentStatus.WRITE_FAILED: ("red", "failed"),
}


def _load_config(ctx: click.Context) -> Config:
    try:
        config = Config.from_file(ctx.obj.get("config_file"))
    except DotDeployError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Invalid configuration: {error}")
        raise click.Abort()
    return config


def _relative(path: Optional[Path], root: Path) -> str:
    if path is None:
        return "-"
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


def _print_plan(resolved: List[ResolvedConfig], source_root: Path) -> None:
    table = Table(title="Deployment Plan")
    table.add_column("Config", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("Destination", style="magenta")

    for config in resolved:
        source = _relative(config.source_path, source_root) if config.found else "[yellow]not found"
        table.add_row(config.logical_name, source, str(config.destination_path))

    console.print(table)


def _plan_entry(config: ResolvedConfig) -> Dict[str, Optional[str]]:
    return {
        "logical_name": config.logical_name,
        "source_path": str(config.source_path) if config.source_path else None,
        "destination_path": str(config.destination_path),
    }


def _print_report(report: Report) -> None:
    table = Table(title="Deployment Summary")
    table.add_column("Config", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    for outcome in report.outcomes:
        style, label = STATUS_STYLES[outcome.status]
        details = outcome.error_detail or ""
        if outcome.status is DeploymentStatus.INSTALLED and outcome.backup and outcome.backup.created:
            details = f"backed up to {outcome.backup.backup_path}"
        table.add_row(outcome.logical_name, f"[{style}]{label}", details)

    console.print(table)
    console.print(
        f"[bold]{report.installed} installed, {report.missing} not found, {report.failed} failed"
    )
    if report.backup_directory:
        console.print(f"Backup created at {report.backup_directory}")


def _print_survey(source_root: Path) -> None:
    found = ConfigLocator().survey(source_root)
    if not found:
        return
    console.print("Available files in dotfiles directory:")
    for path in found:
        console.print(f"  - {_relative(path, source_root)}")


def _sync_source(source_root: Path, force: bool, out: Console, err: bool = False) -> None:
    repo = GitRepository(source_root)
    stash = False
    if repo.exists() and repo.has_changes():
        out.print("[yellow]You have uncommitted changes in your dotfiles repository")
        if not force:
            stash = click.confirm(
                "Do you want to stash them and continue?", default=False, err=err
            )

    result = repo.sync(stash_changes=stash)
    if result is SyncResult.UPDATED:
        out.print("[green]Repository updated successfully")
    elif result is SyncResult.PULL_FAILED:
        out.print("[yellow]Failed to update repository (may already be up to date)")


@click.group()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file overriding the default settings and catalog",
)
@click.option("--debug", is_flag=True, help="Show debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[Path], debug: bool, log_file: Optional[str]) -> None:
    """Dotfiles deployment tool.

    Deploys shell, prompt, editor, multiplexer and VCS configuration files
    from a dotfiles source tree into the home directory, backing up whatever
    they replace.

    Main commands:

      deploy    Back up and install configurations from the source tree
      locate    Show which source file each configuration resolves to
      detect    Show the detected operating system and package manager
      backups   List backup directories created by previous runs
      tools     Install missing command line tools

    Run 'dotdeploy COMMAND --help' for more information on a specific command.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["debug"] = debug
    ctx.obj["log_file"] = log_file
    setup_logging(debug=debug, log_file=log_file)


@cli.command()
@click.option(
    "--source",
    "-s",
    type=click.Path(file_okay=False, path_type=Path),
    help="Dotfiles source tree (defaults to ~/.dotfiles)",
)
@click.option(
    "--only",
    "-o",
    multiple=True,
    help="Deploy only these configs (can specify multiple times, e.g., -o zshrc -o nvim)",
)
@click.option("--pull", is_flag=True, help="Pull the source tree from its git remote first")
@click.option("--tools", "-t", is_flag=True, help="Also update system tools and packages")
@click.option("--dry-run", is_flag=True, help="Show what would be deployed without making changes")
@click.option("--force", "-f", is_flag=True, help="Deploy without confirmation")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
@click.pass_context
def deploy(
    ctx: click.Context,
    source: Optional[Path],
    only: Tuple[str, ...],
    pull: bool,
    tools: bool,
    dry_run: bool,
    force: bool,
    as_json: bool,
) -> None:
    """Back up and install configurations from the source tree.

    The deploy command will:
    1. Find each configuration in the source tree, trying known layouts in order
    2. Copy any existing destination into ~/.config-backup-<timestamp>/
    3. Replace the destination with the source file or directory
    4. Print a summary of what was installed, not found or failed

    The command fails only when the source tree is missing or every
    configuration failed to install.

    Examples:

      # Deploy everything from ~/.dotfiles
      dotdeploy deploy

      # Pull the latest dotfiles, deploy without asking and upgrade packages
      dotdeploy deploy --pull --force --tools

      # Show what would be deployed from another checkout
      dotdeploy deploy --source ~/src/dotfiles --dry-run
    """
    config = _load_config(ctx)
    source_root = (source or config.source_root_path()).expanduser()

    # With --json, stdout carries only the JSON document
    out = Console(stderr=True) if as_json else console
    if as_json:
        setup_logging(
            debug=ctx.obj["debug"],
            log_file=ctx.obj["log_file"],
            log_console=out,
        )

    if not force and not dry_run:
        if not click.confirm(
            "Do you want to continue with the update?", default=False, err=as_json
        ):
            out.print("Update cancelled")
            return

    env = classify()
    try:
        if pull and not dry_run:
            _sync_source(source_root, force, out, err=as_json)

        engine = DeploymentEngine(
            config,
            env,
            console=None if as_json else console,
            names=list(only) or None,
        )
        if dry_run:
            resolved = engine.plan(source_root)
            if as_json:
                click.echo(json.dumps([_plan_entry(item) for item in resolved], indent=2))
            else:
                _print_plan(resolved, source_root)
            return
        report = engine.run(source_root)
    except DotDeployError as e:
        out.print(f"[red]Error: {e}")
        raise click.Abort()

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _print_report(report)
        if report.installed == 0:
            console.print("[yellow]Warning: No configuration files were updated")
            _print_survey(source_root)

    if tools:
        try:
            PackageManager(env).upgrade()
        except RuntimeError as e:
            out.print(f"[yellow]Skipping tool updates: {e}")

    ctx.exit(report.exit_code)


@cli.command()
@click.option(
    "--source",
    "-s",
    type=click.Path(file_okay=False, path_type=Path),
    help="Dotfiles source tree (defaults to ~/.dotfiles)",
)
@click.pass_context
def locate(ctx: click.Context, source: Optional[Path]) -> None:
    """Show which source file each configuration resolves to.

    Nothing is written; this is the same resolution a deploy would use.
    """
    config = _load_config(ctx)
    source_root = (source or config.source_root_path()).expanduser()
    engine = DeploymentEngine(config, classify())
    try:
        resolved = engine.plan(source_root)
    except DotDeployError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()

    _print_plan(resolved, source_root)
    if not any(config.found for config in resolved):
        _print_survey(source_root)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the descriptor as JSON")
def detect(as_json: bool) -> None:
    """Show the detected operating system and package manager."""
    env = classify()
    if as_json:
        click.echo(json.dumps(env.to_dict(), indent=2))
        return

    table = Table(title="Environment")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    for label, value in describe(env):
        table.add_row(label, value)
    console.print(table)


@cli.command()
@click.pass_context
def backups(ctx: click.Context) -> None:
    """List backup directories created by previous runs, newest first."""
    config = _load_config(ctx)
    vault = BackupVault(
        config.backup_root_path(),
        prefix=config.backup_prefix,
        timestamp_format=config.timestamp_format,
    )
    found = vault.list_backups()
    if not found:
        console.print("[yellow]No backups found.")
        return

    table = Table(title="Available Backups")
    table.add_column("Backup", style="yellow")
    table.add_column("Contents", style="magenta")
    for backup in found:
        try:
            contents = ", ".join(sorted(item.name for item in backup.iterdir())) or "empty"
        except OSError:
            contents = "unreadable"
        table.add_row(str(backup), contents)
    console.print(table)


@cli.command()
@click.argument("names", nargs=-1)
@click.option("--dry-run", is_flag=True, help="Show the package manager commands without running them")
@click.pass_context
def tools(ctx: click.Context, names: Tuple[str, ...], dry_run: bool) -> None:
    """Install missing command line tools with the native package manager.

    NAMES defaults to the tools listed in the configuration.

    Examples:

      # Install whatever default tools are missing
      dotdeploy tools

      # Show how starship and fzf would be installed
      dotdeploy tools starship fzf --dry-run
    """
    config = _load_config(ctx)
    manager = PackageManager(classify())
    wanted = list(names) or config.tools
    try:
        installed = manager.install(wanted, dry_run=dry_run)
    except RuntimeError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()

    if not installed:
        console.print("[green]All tools already installed")
    elif dry_run:
        for command in manager.install_commands(installed):
            console.print(f"Would run: {' '.join(command)}")
    else:
        console.print(f"[green]Installed: {', '.join(installed)}")


def main() -> None:
    """Entry point for the dotdeploy CLI."""
    cli()


if __name__ == "__main__":
    main()
