"""Thin `git` subprocess wrapper: history queries and the few mutations we need.

Read queries degrade to defaults (no tag → 1.0.0, log failure → [],
unreadable HEAD → "");
mutations return bool so the orchestrator can record an outcome instead of
catching exceptions across step boundaries.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Iterable, Sequence

from relnotes_core.models import CommitRecord
from relnotes_core.versioning import DEFAULT_VERSION

logger = logging.getLogger(__name__)

# ASCII unit separator between `git log` fields.
_FIELD_SEP = "\x1f"
_LOG_FORMAT = _FIELD_SEP.join(["%H", "%s", "%an", "%ae", "%ad"])


class GitError(RuntimeError):
    """A git command exited non-zero."""


def parse_log(output: str) -> list[CommitRecord]:
    """Parse `git log --pretty=format:%H<US>%s<US>%an<US>%ae<US>%ad` output.

    Lines without a commit hash are malformed and dropped.
    """
    commits = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = [p.strip() for p in line.split(_FIELD_SEP)]
        parts += [""] * (5 - len(parts))
        full_id, subject, author, email, date = parts[:5]
        if not full_id:
            continue
        commits.append(
            CommitRecord(full_id=full_id, subject=subject, author_name=author, author_email=email, date=date)
        )
    return commits


class GitRepository:
    """Runs git in a single working tree. Not safe for concurrent use against the same checkout."""

    def __init__(
        self,
        cwd: str | None = None,
        fallback_count: int = 10,
        user_name: str | None = None,
        user_email: str | None = None,
    ):
        self.cwd = cwd
        self.fallback_count = fallback_count
        self.user_name = user_name
        self.user_email = user_email

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        result = subprocess.run(
            ["git", *args],
            cwd=self.cwd,
            capture_output=True,
            text=True,
        )
        if check and result.returncode != 0:
            raise GitError(f"git {' '.join(args)} failed ({result.returncode}): {result.stderr.strip()}")
        return result

    # ------------------------------------------------------------------ #
    # History queries                                                      #
    # ------------------------------------------------------------------ #

    def latest_tag(self) -> str:
        try:
            result = self._git("describe", "--tags", "--abbrev=0", check=False)
        except OSError as e:
            logger.warning("Could not run git describe: %s", e)
            return DEFAULT_VERSION
        tag = result.stdout.strip()
        if result.returncode == 0 and tag:
            return tag
        logger.info("No tags found, assuming %s", DEFAULT_VERSION)
        return DEFAULT_VERSION

    def commits_since(self, tag: str) -> list[CommitRecord]:
        """Commits in tag..HEAD, or the last `fallback_count` commits when that range is empty."""
        log_args = ["log", f"--pretty=format:{_LOG_FORMAT}", "--date=short"]
        try:
            result = self._git(*log_args, f"{tag}..HEAD", check=False)
            output = result.stdout if result.returncode == 0 else ""
            if not output.strip():
                output = self._git(*log_args, f"-{self.fallback_count}").stdout
        except (OSError, GitError) as e:
            logger.warning("Failed to get commits since tag %s: %s", tag, e)
            return []
        return parse_log(output)

    def _rev_parse(self, *args: str) -> str:
        try:
            return self._git("rev-parse", *args, "HEAD").stdout.strip()
        except (OSError, GitError) as e:
            logger.warning("Could not read HEAD commit: %s", e)
            return ""

    def current_commit(self) -> str:
        return self._rev_parse()

    def short_commit(self) -> str:
        return self._rev_parse("--short")

    # ------------------------------------------------------------------ #
    # Mutations                                                            #
    # ------------------------------------------------------------------ #

    def set_identity(self, name: str | None = None, email: str | None = None) -> None:
        name = name or self.user_name
        email = email or self.user_email
        if name:
            self._git("config", "--local", "user.name", name)
        if email:
            self._git("config", "--local", "user.email", email)

    def create_tag(self, name: str, message: str) -> bool:
        try:
            self.set_identity()
            self._git("tag", "-a", name, "-m", message)
        except (OSError, GitError) as e:
            logger.error("Failed to create tag %s: %s", name, e)
            return False
        logger.info("Created tag %s", name)
        return True

    def push_tag(self, name: str, remote: str = "origin") -> bool:
        try:
            self._git("push", remote, name)
        except (OSError, GitError) as e:
            logger.error("Failed to push tag %s: %s", name, e)
            return False
        logger.info("Pushed tag %s", name)
        return True

    def has_staged_changes(self) -> bool:
        return bool(self._git("diff", "--staged", "--name-only").stdout.strip())

    def commit_and_push(
        self,
        files: Iterable[str],
        message: str,
        branch: str | None = None,
        remote: str = "origin",
    ) -> bool:
        """Stage files, commit, and push (to a new branch when given).

        Returns False without committing when nothing ends up staged.
        """
        try:
            self.set_identity()
            for path in files:
                self._git("add", path)
            if not self.has_staged_changes():
                logger.info("No changes to commit")
                return False
            if branch:
                self._git("checkout", "-b", branch)
            self._git("commit", "-m", message)
            push_args: Sequence[str] = ("push", remote, branch) if branch else ("push",)
            self._git(*push_args)
        except (OSError, GitError) as e:
            logger.error("Failed to commit and push: %s", e)
            return False
        logger.info("Committed and pushed%s", f" to branch {branch}" if branch else "")
        return True
