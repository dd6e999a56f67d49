"""check command: evaluate trigger conditions without side effects."""

from __future__ import annotations

import click
from rich.console import Console

from relnotes_cli.settings import build_config
from relnotes_core.context import ActionContext
from relnotes_core.trigger import evaluate

console = Console()


@click.command("check")
@click.option("--event-name", default=None, help="Event name. Defaults to $GITHUB_EVENT_NAME.")
@click.option(
    "--event-path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to the event payload JSON. Defaults to $GITHUB_EVENT_PATH.",
)
@click.pass_context
def check_cmd(ctx, event_name: str | None, event_path: str | None):
    """Report whether `relnotes run` would act on this event."""
    config = build_config(ctx)
    try:
        context = ActionContext.from_env(event_name=event_name, event_path=event_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not read event payload: {e}")

    decision = evaluate(context, config)
    if decision.run:
        console.print(f"[green]Would run:[/green] {decision.reason}")
    else:
        console.print(f"[yellow]Would skip:[/yellow] {decision.reason}")
