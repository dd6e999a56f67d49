"""notify commands: Slack webhook utilities."""

from __future__ import annotations

import click
from rich.console import Console

from relnotes_cli.settings import build_config
from relnotes_core.notify import send_test_message, validate_webhook_url

console = Console()


@click.group("notify")
def notify_cmd():
    """Slack notification utilities."""


@notify_cmd.command("test")
@click.pass_context
def test_cmd(ctx):
    """Send a test message to the configured Slack webhook."""
    config = build_config(ctx)
    if not config.is_slack_enabled:
        raise click.UsageError("Slack is not enabled. Set enable_slack: true and SLACK_WEBHOOK_URL.")
    if not validate_webhook_url(config.slack_webhook_url):
        console.print("[yellow]Webhook URL does not look like a Slack incoming webhook.[/yellow]")

    result = send_test_message(config)
    if not result.sent:
        raise click.ClickException(f"Test message failed: {result.reason}")
    console.print("[green]Test message sent.[/green]")
