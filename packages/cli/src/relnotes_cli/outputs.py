"""GitHub Actions step outputs."""

from __future__ import annotations

import logging
import os
import uuid
from typing import Mapping

from relnotes_core.pipeline import RunOutcome

logger = logging.getLogger(__name__)


def _format(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def set_output(name: str, value, environ: Mapping[str, str] | None = None) -> bool:
    """Append one output to $GITHUB_OUTPUT using heredoc framing.

    Returns False (and writes nothing) when GITHUB_OUTPUT is not set, e.g.
    when running outside Actions.
    """
    env = os.environ if environ is None else environ
    path = env.get("GITHUB_OUTPUT")
    if not path:
        return False
    text = _format(value)
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")
    logger.debug("Set output %s", name)
    return True


def outcome_outputs(outcome: RunOutcome) -> dict:
    """Step outputs for a completed run. Skipped runs produce none."""
    if outcome.skipped or outcome.version_info is None or outcome.notes is None:
        return {}
    version_info = outcome.version_info
    return {
        "version": version_info.new_version,
        "previous_version": version_info.previous_version,
        "tag_name": version_info.tag_name,
        "build_number": version_info.build_number,
        "release_notes": outcome.notes.release_notes,
        "ai_generated": outcome.notes.generated,
        "commits_analyzed": outcome.commits_analyzed,
        "changelog_updated": outcome.changelog_updated,
        "release_url": outcome.release_url,
        "slack_sent": outcome.notification_sent,
    }


def write_outputs(outcome: RunOutcome, environ: Mapping[str, str] | None = None) -> None:
    for name, value in outcome_outputs(outcome).items():
        set_output(name, value, environ)
