"""Slack incoming-webhook notifications."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from relnotes_core.config import Config
    from relnotes_core.context import ActionContext
    from relnotes_core.versioning import VersionInfo

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 10  # seconds
ATTACHMENT_FOOTER = "relnotes"
TEST_MESSAGE = ":test_tube: Test message from relnotes"

_WEBHOOK_URL_RE = re.compile(r"^https://hooks\.slack\.com/services/[A-Z0-9]+/[A-Z0-9]+/[a-zA-Z0-9]+$")

_ENVIRONMENT_COLORS = {
    "prod": "good",
    "production": "good",
    "staging": "warning",
    "dev": "#36a64f",
    "development": "#36a64f",
}
DEFAULT_COLOR = "#439FE0"


@dataclass
class NotificationResult:
    sent: bool
    reason: str = ""
    status_code: int | None = None
    response: str = ""


def _split(value: str) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def build_mentions(users: str = "", groups: str = "") -> str:
    """`@user` and `<!group>` mentions from comma-separated lists."""
    mentions = [u if u.startswith("@") else f"@{u}" for u in _split(users)]
    mentions += [g if g.startswith("<!") else f"<!{g}>" for g in _split(groups)]
    return " ".join(mentions)


def build_message(config: Config, base_message: str, version_info: VersionInfo, context: ActionContext) -> str:
    """Append the environment-appropriate link block and mentions to the synthesized message.

    Release runs link the hosted release and the comparison; dev runs link
    the commit that was built. Both link the PR when there is one.
    """
    message = base_message
    pr_url = context.pr_url

    if config.is_release_grade and config.is_release_enabled:
        message += f"\n\n:link: View release: {context.release_url(version_info.tag_name)}"
        message += f"\n:memo: View changes: {context.compare_url(version_info.previous_version, version_info.tag_name)}"
        if pr_url:
            message += f"\n:twisted_rightwards_arrows: PR: {pr_url}"
    else:
        if pr_url:
            message += f"\n\n:twisted_rightwards_arrows: PR: {pr_url}"
        message += f"\n:computer: Commit: {context.commit_url()}"

    mentions = build_mentions(config.slack_mention_users, config.slack_mention_groups)
    if mentions:
        message += f"\n\n{mentions}"
    return message


def message_color(environment: str) -> str:
    return _ENVIRONMENT_COLORS.get(environment.lower(), DEFAULT_COLOR)


def build_payload(message: str, config: Config, repository: str, now: float | None = None) -> dict:
    payload: dict = {"text": message}
    if config.slack_channel:
        channel = config.slack_channel
        payload["channel"] = channel if channel.startswith("#") else f"#{channel}"
    payload["attachments"] = [
        {
            "color": message_color(config.environment),
            "fields": [
                {"title": "Environment", "value": config.environment, "short": True},
                {"title": "Repository", "value": repository, "short": True},
            ],
            "footer": ATTACHMENT_FOOTER,
            "ts": int(now if now is not None else time.time()),
        }
    ]
    return payload


def send_webhook(url: str, payload: dict, timeout: float = WEBHOOK_TIMEOUT) -> NotificationResult:
    """POST the payload once. Never raises: transport errors and non-2xx become sent=False."""
    try:
        response = requests.post(url, json=payload, timeout=timeout)
    except requests.Timeout:
        return NotificationResult(sent=False, reason=f"No response from webhook within {timeout}s")
    except requests.RequestException as e:
        return NotificationResult(sent=False, reason=str(e))

    if not 200 <= response.status_code < 300:
        return NotificationResult(
            sent=False,
            reason=f"HTTP {response.status_code}: {response.text or response.reason}",
            status_code=response.status_code,
        )
    return NotificationResult(sent=True, status_code=response.status_code, response=response.text)


def send_notification(
    config: Config, base_message: str, version_info: VersionInfo, context: ActionContext
) -> NotificationResult:
    if not config.is_slack_enabled:
        logger.info("Slack notifications disabled, skipping")
        return NotificationResult(sent=False, reason="disabled")

    logger.info("Sending Slack notification to %s", config.slack_channel or "webhook channel")
    message = build_message(config, base_message, version_info, context)
    result = send_webhook(config.slack_webhook_url, build_payload(message, config, context.repository))
    if result.sent:
        logger.info("Slack notification sent")
    else:
        logger.error("Slack notification failed: %s", result.reason)
    return result


def send_test_message(config: Config) -> NotificationResult:
    if not config.is_slack_enabled:
        return NotificationResult(sent=False, reason="Slack notifications disabled")
    payload = {
        "text": TEST_MESSAGE,
        "attachments": [
            {
                "color": "good",
                "fields": [{"title": "Status", "value": "Configuration test successful", "short": False}],
            }
        ],
    }
    return send_webhook(config.slack_webhook_url, payload)


def validate_webhook_url(url: str | None) -> bool:
    return bool(url) and bool(_WEBHOOK_URL_RE.match(url))


def escape_slack_text(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
