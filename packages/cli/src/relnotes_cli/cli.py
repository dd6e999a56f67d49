"""CLI entry point for relnotes.

Commands:
  run        — full release pipeline for a merged-PR event (the CI entry point)
  check      — evaluate the trigger conditions only
  changelog  — changelog maintenance (validate, backup)
  releases   — list or delete GitHub releases
  notify     — Slack webhook utilities (test)
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from relnotes_cli.commands.changelog import changelog_cmd
from relnotes_cli.commands.check import check_cmd
from relnotes_cli.commands.notify import notify_cmd
from relnotes_cli.commands.releases import releases_cmd
from relnotes_cli.commands.run import run_cmd


def _setup_logging(verbosity: int) -> None:
    """WARNING by default, INFO with -v, DEBUG with -vv."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbosity >= 2)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("relnotes"),
    prog_name="relnotes",
)
@click.option(
    "--config",
    "config_path",
    default=".relnotes.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="RELNOTES_CONFIG",
)
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug).")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: int):
    """Release notes, tags, changelog and announcements for merged pull requests."""
    from relnotes_cli.auth import resolve_github_token
    from relnotes_core.config import load_config

    _setup_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Could not parse {config_path}: {e}")

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config


main.add_command(run_cmd)
main.add_command(check_cmd)
main.add_command(changelog_cmd)
main.add_command(releases_cmd)
main.add_command(notify_cmd)
