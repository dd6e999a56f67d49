"""Intermediate files written to the working directory during a run.

They let operators (and the generation backend's logs) inspect what was
sent and received. Nothing reads them back; cleanup() removes them at the
end of every run.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

PR_DETAILS = "pr_details.json"
PR_DIFF = "pr_diff.txt"
GENERATION_PROMPT = "generation_prompt.txt"
GENERATION_OUTPUT = "generation_output.txt"
RELEASE_NOTES = "release-notes.md"
NOTIFICATION_MESSAGE = "slack-message.txt"

ARTIFACT_FILES = (
    PR_DETAILS,
    PR_DIFF,
    RELEASE_NOTES,
    NOTIFICATION_MESSAGE,
    GENERATION_PROMPT,
    GENERATION_OUTPUT,
)


def write_artifact(name: str, content: str, workdir: str | Path = ".") -> Path:
    path = Path(workdir) / name
    path.write_text(content, encoding="utf-8")
    logger.debug("Wrote %s", path)
    return path


def cleanup(workdir: str | Path = ".") -> list[str]:
    """Delete known artifact files. Best effort: failures are logged at debug level only."""
    removed = []
    for name in ARTIFACT_FILES:
        path = Path(workdir) / name
        try:
            if path.exists():
                path.unlink()
                removed.append(name)
                logger.debug("Cleaned up %s", path)
        except OSError as e:
            logger.debug("Failed to clean up %s: %s", path, e)
    return removed
