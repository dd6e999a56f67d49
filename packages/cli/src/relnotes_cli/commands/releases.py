"""releases commands: list and delete GitHub releases."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from relnotes_cli.settings import build_config
from relnotes_core.gh.pull_request import get_repo
from relnotes_core.gh.releases import delete_release, list_releases

console = Console()

_REPO_OPTION = click.option(
    "--repo",
    envvar="GITHUB_REPOSITORY",
    required=True,
    help="GitHub repository (owner/name). Defaults to $GITHUB_REPOSITORY.",
)


def _repo(ctx, repo: str):
    config = build_config(ctx)
    if not config.github_token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")
    return get_repo(repo, config.github_token)


@click.group("releases")
def releases_cmd():
    """Inspect and clean up GitHub releases."""


@releases_cmd.command("list")
@_REPO_OPTION
@click.option("--limit", default=10, show_default=True, help="Maximum number of releases to show.")
@click.pass_context
def list_cmd(ctx, repo: str, limit: int):
    """Show the most recent releases."""
    releases = list_releases(_repo(ctx, repo), limit=limit)
    if not releases:
        console.print("[yellow]No releases found.[/yellow]")
        return

    table = Table(title=f"Releases: {repo}", show_header=True, header_style="bold cyan")
    table.add_column("Tag", style="bold")
    table.add_column("Name", max_width=50)
    table.add_column("Flags", width=18)
    table.add_column("Published", width=20)

    for r in releases:
        flags = ", ".join(flag for flag, on in (("draft", r.draft), ("prerelease", r.prerelease)) if on)
        published = r.published_at.strftime("%Y-%m-%d %H:%M") if r.published_at else ""
        table.add_row(r.tag_name, r.title or "", flags, published)

    console.print(table)


@releases_cmd.command("delete")
@_REPO_OPTION
@click.argument("tag")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def delete_cmd(ctx, repo: str, tag: str, yes: bool):
    """Delete the release for TAG (the git tag itself is kept)."""
    if not yes:
        click.confirm(f"Delete the release for {tag} in {repo}?", abort=True)
    if not delete_release(_repo(ctx, repo), tag):
        raise click.ClickException(f"Could not delete release {tag}")
    console.print(f"[green]Deleted release {tag}[/green]")
