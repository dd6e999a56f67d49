"""Snapshot of the triggering CI event.

Captured once at the process entry point (from_env) and passed down, so the
trigger evaluator and link builders stay pure functions over plain data.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "https://github.com"


@dataclass(frozen=True)
class ActionContext:
    event_name: str
    payload: dict = field(default_factory=dict)
    repository: str = ""  # owner/name
    server_url: str = DEFAULT_SERVER_URL
    sha: str = ""

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        event_name: str | None = None,
        event_path: str | None = None,
    ) -> "ActionContext":
        """Build a context from the GitHub Actions runner environment.

        Explicit event_name/event_path arguments win over GITHUB_EVENT_NAME /
        GITHUB_EVENT_PATH so the CLI can replay a saved event payload locally.
        """
        env = os.environ if environ is None else environ
        name = event_name or env.get("GITHUB_EVENT_NAME", "")
        path = event_path or env.get("GITHUB_EVENT_PATH")

        payload: dict = {}
        if path:
            p = Path(path)
            if not p.exists():
                raise FileNotFoundError(f"Event payload not found: {path}")
            payload = json.loads(p.read_text(encoding="utf-8")) or {}

        return cls(
            event_name=name,
            payload=payload,
            repository=env.get("GITHUB_REPOSITORY", ""),
            server_url=env.get("GITHUB_SERVER_URL", DEFAULT_SERVER_URL).rstrip("/"),
            sha=env.get("GITHUB_SHA", ""),
        )

    @property
    def pull_request(self) -> dict | None:
        pr = self.payload.get("pull_request")
        return pr if isinstance(pr, dict) else None

    @property
    def pr_number(self) -> int | None:
        pr = self.pull_request
        return pr.get("number") if pr else None

    @property
    def pr_url(self) -> str:
        pr = self.pull_request
        return (pr.get("html_url") or "") if pr else ""

    @property
    def repo_url(self) -> str:
        return f"{self.server_url}/{self.repository}"

    def commit_url(self, sha: str | None = None) -> str:
        return f"{self.repo_url}/commit/{sha or self.sha}"

    def compare_url(self, base: str, head: str) -> str:
        return f"{self.repo_url}/compare/{base}...{head}"

    def release_url(self, tag_name: str) -> str:
        return f"{self.repo_url}/releases/tag/{tag_name}"
