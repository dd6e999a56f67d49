from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from github import Auth, Github, GithubException

from relnotes_core.analysis import ChangeAnalysis, analyze_changes
from relnotes_core.artifacts import PR_DETAILS, PR_DIFF, write_artifact
from relnotes_core.models import CommitRecord

logger = logging.getLogger(__name__)

NO_DIFF = "No diff available"


@dataclass
class PullRequestData:
    """Everything the pipeline needs to know about the merged PR."""

    number: int
    raw: dict
    diff: str
    commits: list[CommitRecord] = field(default_factory=list)
    analysis: ChangeAnalysis = field(default_factory=ChangeAnalysis)

    @property
    def html_url(self) -> str:
        return self.raw.get("html_url") or ""


def get_repo(repo_name: str, token: str):
    return Github(auth=Auth.Token(token)).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_pull_diff(pr) -> str:
    """Reassemble a unified diff from the PR's per-file patches.

    Each file contributes a `diff --git a/<old> b/<new>` header followed by
    its patch, which is all the analyzer and the prompt need.
    """
    try:
        chunks = []
        for f in pr.get_files():
            old = f.previous_filename or f.filename
            chunks.append(f"diff --git a/{old} b/{f.filename}")
            if f.patch:
                chunks.append(f.patch)
        return "\n".join(chunks) if chunks else NO_DIFF
    except GithubException as e:
        logger.warning("Failed to get PR diff: %s", e)
        return NO_DIFF


def get_pull_commits(pr) -> list[CommitRecord]:
    try:
        commits = []
        for c in pr.get_commits():
            author = c.commit.author
            message = c.commit.message or ""
            commits.append(
                CommitRecord(
                    full_id=c.sha,
                    subject=message.splitlines()[0] if message else "",
                    author_name=getattr(author, "name", "") or "",
                    author_email=getattr(author, "email", "") or "",
                    date=author.date.isoformat() if getattr(author, "date", None) else "",
                    message=message,
                    url=c.html_url or "",
                )
            )
        return commits
    except GithubException as e:
        logger.warning("Failed to get PR commits: %s", e)
        return []


def fetch_pull_request(repo, pr_number: int) -> PullRequestData:
    """Fetch metadata, diff and commits for a PR and analyze them.

    Metadata failures propagate (the run cannot continue without the PR);
    diff and commit failures degrade to empty values.
    """
    try:
        pr = get_pull(repo, pr_number)
    except GithubException:
        raise ValueError(f"PR #{pr_number} not found in {repo.full_name}.")
    raw = dict(pr.raw_data)
    diff = get_pull_diff(pr)
    commits = get_pull_commits(pr)
    return PullRequestData(
        number=pr_number,
        raw=raw,
        diff=diff,
        commits=commits,
        analysis=analyze_changes(raw, diff, commits),
    )


def save_analysis_files(data: PullRequestData, workdir: str | Path = ".") -> None:
    """Snapshot PR details and diff for inspection. Failures are logged, never raised."""
    details = {
        "title": data.raw.get("title"),
        "body": data.raw.get("body"),
        "labels": list(data.analysis.labels),
        "commits": [c.to_dict() for c in data.commits],
        "analysis": data.analysis.to_dict(),
    }
    try:
        write_artifact(PR_DETAILS, json.dumps(details, indent=2), workdir)
        write_artifact(PR_DIFF, data.diff or NO_DIFF, workdir)
    except OSError as e:
        logger.warning("Failed to save analysis files: %s", e)
