"""changelog commands: inspect and back up the changelog file."""

from __future__ import annotations

import click
from rich.console import Console

from relnotes_cli.settings import build_config
from relnotes_core.changelog import backup_changelog, validate_changelog

console = Console()


@click.group("changelog")
def changelog_cmd():
    """Changelog maintenance."""


@changelog_cmd.command("validate")
@click.option("--file", "file_path", default=None, help="Changelog path. Defaults to changelog_file from config.")
@click.pass_context
def validate_cmd(ctx, file_path: str | None):
    """Check the changelog has a heading, version entries and dates."""
    path = file_path or build_config(ctx).changelog_file
    result = validate_changelog(path)
    if result.valid:
        console.print(f"[green]{path} is valid[/green] ({result.version_count} version entries)")
        return
    console.print(f"[red]{path} has problems:[/red]")
    for issue in result.issues:
        console.print(f"  - {issue}")
    ctx.exit(1)


@changelog_cmd.command("backup")
@click.option("--file", "file_path", default=None, help="Changelog path. Defaults to changelog_file from config.")
@click.pass_context
def backup_cmd(ctx, file_path: str | None):
    """Copy the changelog to a timestamped backup file."""
    path = file_path or build_config(ctx).changelog_file
    backup = backup_changelog(path)
    if backup is None:
        raise click.ClickException(f"Could not back up {path}")
    console.print(f"[green]Backed up to {backup}[/green]")
