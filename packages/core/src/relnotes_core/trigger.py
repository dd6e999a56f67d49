"""Decide whether a CI event should produce a release at all."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from relnotes_core.config import Config
    from relnotes_core.context import ActionContext

logger = logging.getLogger(__name__)

PULL_REQUEST_EVENT = "pull_request"

# Base branches accepted even when they differ from the configured target.
ALLOWED_BRANCHES = frozenset({"main", "master", "dev", "development"})


@dataclass(frozen=True)
class TriggerDecision:
    run: bool
    reason: str


def evaluate(context: ActionContext, config: Config) -> TriggerDecision:
    """Return the first failing condition, or run=True when every check passes.

    Checks are ordered and short-circuit: event kind, merged flag, target
    branch, trigger label. No network or filesystem access happens here.
    """
    pr = context.pull_request
    if context.event_name != PULL_REQUEST_EVENT or pr is None:
        return TriggerDecision(False, "Not a pull request event")

    if not pr.get("merged"):
        return TriggerDecision(False, "PR is not merged")

    base_ref = (pr.get("base") or {}).get("ref", "")
    if base_ref != config.target_branch and base_ref not in ALLOWED_BRANCHES:
        return TriggerDecision(False, f"Target branch {base_ref} not in allowed list")

    if config.trigger_label:
        labels = {label.get("name") for label in pr.get("labels") or []}
        if config.trigger_label not in labels:
            return TriggerDecision(False, f"Missing required label: {config.trigger_label}")

    if config.skip_if_no_changes:
        # Accepted for compatibility; significance detection is not implemented.
        logger.info("skip_if_no_changes is enabled but has no effect yet.")

    return TriggerDecision(True, "All conditions met")
