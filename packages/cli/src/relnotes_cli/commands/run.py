"""run command: the full release pipeline for a merged-PR event."""

from __future__ import annotations

import click
from github import GithubException
from rich.console import Console

from relnotes_cli.outputs import write_outputs
from relnotes_cli.settings import build_config
from relnotes_core.config import VERSION_STRATEGIES
from relnotes_core.context import ActionContext
from relnotes_core.gh.releases import ReleaseAsset
from relnotes_core.pipeline import run_release

console = Console()


@click.command("run")
@click.option("--event-name", default=None, help="Event name. Defaults to $GITHUB_EVENT_NAME.")
@click.option(
    "--event-path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to the event payload JSON. Defaults to $GITHUB_EVENT_PATH.",
)
@click.option("--environment", default=None, help="Deployment environment (PROD, DEV, ...). Overrides config file.")
@click.option(
    "--strategy",
    "version_strategy",
    type=click.Choice(VERSION_STRATEGIES),
    default=None,
    help="Version increment strategy. Overrides config file.",
)
@click.option(
    "--asset",
    "assets",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="File to upload to the created release. Repeatable.",
)
@click.option(
    "--workdir",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Repository checkout to tag, commit and write artifacts in.",
)
@click.pass_context
def run_cmd(
    ctx,
    event_name: str | None,
    event_path: str | None,
    environment: str | None,
    version_strategy: str | None,
    assets: tuple[str, ...],
    workdir: str,
):
    """Generate release notes for a merged pull request and publish them.

    Runs, in order: tag, changelog, GitHub release, changelog PR and Slack
    notification, each as enabled by configuration. A failed step is
    reported but does not stop the later ones.

    \b
    Environment variables:
      GITHUB_TOKEN         GitHub token (or INPUT_TOKEN, or use gh CLI)
      ANTHROPIC_API_KEY    Enables generated release notes
      SLACK_WEBHOOK_URL    Required when enable_slack is true
    """
    config = build_config(ctx, environment=environment, version_strategy=version_strategy)

    try:
        context = ActionContext.from_env(event_name=event_name, event_path=event_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not read event payload: {e}")

    try:
        outcome = run_release(
            config,
            context,
            config.github_token,
            workdir=workdir,
            assets=[ReleaseAsset(path=p) for p in assets],
        )
    except (ValueError, OSError, RuntimeError, GithubException) as e:
        raise click.ClickException(f"Release run failed: {e}")

    if outcome.skipped:
        return

    write_outputs(outcome)
    console.print("\n[bold green]Release notes generation completed.[/bold green]")
