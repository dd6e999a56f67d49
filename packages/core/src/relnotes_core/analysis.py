"""Classify a merged pull request into change-type facts.

Evidence comes from three places (commit messages, PR labels, and the diff)
and is purely additive: a flag set by any source stays set, so the order in
which commits or labels arrive never changes the result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from relnotes_core.models import CommitRecord

BREAKING = "breaking"
FEATURE = "feature"
BUGFIX = "bugfix"
CHORE = "chore"

# Display order for change types; the set itself is unordered.
CHANGE_TYPE_ORDER = (BREAKING, FEATURE, BUGFIX, CHORE)

_COMMIT_PREFIXES = (
    ("feat", FEATURE),
    ("fix", BUGFIX),
    ("chore", CHORE),
    ("ci", CHORE),
    ("docs", CHORE),
)
_BREAKING_MARKERS = ("breaking change", "!:")

_LABEL_KEYWORDS = (
    ("breaking", BREAKING),
    ("bug", BUGFIX),
    ("fix", BUGFIX),
    ("feature", FEATURE),
    ("enhancement", FEATURE),
)

_DIFF_HEADER_RE = re.compile(r"^diff --git a/(.+) b/(.+)$")


@dataclass
class ChangeAnalysis:
    title: str = ""
    body: str = ""
    labels: list[str] = field(default_factory=list)
    base_branch: str = "unknown"
    head_branch: str = "unknown"
    author: str = "unknown"
    created_at: str | None = None
    merged_at: str | None = None
    files_changed: list[str] = field(default_factory=list)
    change_types: set[str] = field(default_factory=set)
    is_breaking_change: bool = False
    is_bugfix: bool = False
    is_feature: bool = False
    is_chore: bool = False

    def mark(self, change_type: str) -> None:
        """Record evidence for a change type. Never clears a flag."""
        self.change_types.add(change_type)
        if change_type == BREAKING:
            self.is_breaking_change = True
        elif change_type == FEATURE:
            self.is_feature = True
        elif change_type == BUGFIX:
            self.is_bugfix = True
        elif change_type == CHORE:
            self.is_chore = True

    @property
    def ordered_change_types(self) -> list[str]:
        return [t for t in CHANGE_TYPE_ORDER if t in self.change_types]

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "body": self.body,
            "labels": list(self.labels),
            "baseBranch": self.base_branch,
            "headBranch": self.head_branch,
            "author": self.author,
            "createdAt": self.created_at,
            "mergedAt": self.merged_at,
            "filesChanged": list(self.files_changed),
            "changeTypes": self.ordered_change_types,
            "isBreakingChange": self.is_breaking_change,
            "isBugfix": self.is_bugfix,
            "isFeature": self.is_feature,
            "isChore": self.is_chore,
        }


def classify_commit(message: str) -> set[str]:
    """Change types implied by a single commit message."""
    text = message.lower()
    found = set()
    if any(marker in text for marker in _BREAKING_MARKERS):
        found.add(BREAKING)
    for prefix, change_type in _COMMIT_PREFIXES:
        if text.startswith(prefix):
            found.add(change_type)
    return found


def classify_label(label: str) -> set[str]:
    """Change types implied by a single PR label name."""
    text = label.lower()
    return {change_type for keyword, change_type in _LABEL_KEYWORDS if keyword in text}


def files_from_diff(diff: str | None) -> list[str]:
    """Return the b-side path of every `diff --git` header, unique and in order of appearance."""
    files: list[str] = []
    if not diff:
        return files
    for line in diff.splitlines():
        if not line.startswith("diff --git"):
            continue
        match = _DIFF_HEADER_RE.match(line)
        if match and match.group(2) not in files:
            files.append(match.group(2))
    return files


def analyze_changes(pr: dict, diff: str | None, commits: Iterable[CommitRecord] = ()) -> ChangeAnalysis:
    """Build a ChangeAnalysis from PR metadata (GitHub REST shape), diff text and commits."""
    analysis = ChangeAnalysis(
        title=pr.get("title") or "",
        body=pr.get("body") or "",
        labels=[label["name"] for label in pr.get("labels") or [] if label.get("name")],
        base_branch=(pr.get("base") or {}).get("ref") or "unknown",
        head_branch=(pr.get("head") or {}).get("ref") or "unknown",
        author=(pr.get("user") or {}).get("login") or "unknown",
        created_at=pr.get("created_at"),
        merged_at=pr.get("merged_at"),
    )

    for commit in commits or ():
        for change_type in classify_commit(commit.text):
            analysis.mark(change_type)

    for label in analysis.labels:
        for change_type in classify_label(label):
            analysis.mark(change_type)

    analysis.files_changed = files_from_diff(diff)
    return analysis


def suggest_increment(strategy: str, analysis: ChangeAnalysis) -> str:
    """Resolve the `auto` strategy from the analysis; explicit strategies pass through."""
    if strategy != "auto":
        return strategy
    if analysis.is_breaking_change:
        return "major"
    if analysis.is_feature:
        return "minor"
    return "patch"
