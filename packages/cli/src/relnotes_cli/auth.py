"""GitHub token resolution with gh CLI fallback.

Resolution order (stops at first success):
  1. INPUT_TOKEN (the action's `token` input)
  2. GITHUB_TOKEN environment variable
  3. `gh auth token` (GitHub CLI session, for running locally)
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Mapping

logger = logging.getLogger(__name__)


def resolve_github_token(environ: Mapping[str, str] | None = None) -> str | None:
    """Return a GitHub token or None if no valid source is available.

    Never raises; callers check for None.
    """
    env = os.environ if environ is None else environ
    token = env.get("INPUT_TOKEN") or env.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved GitHub token via gh CLI session.")
                return gh_token
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or timed out
        pass

    return None
