"""Tests for GitHub pull request helper functions."""

import json
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from github import GithubException

from relnotes_core.gh.pull_request import (
    NO_DIFF,
    PullRequestData,
    fetch_pull_request,
    get_pull_commits,
    get_pull_diff,
    save_analysis_files,
)

SHA = "a" * 40


def _file(filename, patch="@@ -1 +1 @@\n-a\n+b", previous_filename=None):
    f = MagicMock()
    f.filename = filename
    f.patch = patch
    f.previous_filename = previous_filename
    return f


def _commit(message, sha=SHA):
    c = MagicMock()
    c.sha = sha
    c.html_url = f"https://github.com/acme/widgets/commit/{sha}"
    c.commit.message = message
    c.commit.author.name = "Ada"
    c.commit.author.email = "ada@example.com"
    c.commit.author.date = datetime(2024, 1, 2, 3, 4, 5)
    return c


class TestGetPullDiff:
    def test_builds_git_headers(self):
        pr = MagicMock()
        pr.get_files.return_value = [_file("src/app.py"), _file("new.py", patch=None, previous_filename="old.py")]
        diff = get_pull_diff(pr)
        assert "diff --git a/src/app.py b/src/app.py" in diff
        assert "+b" in diff
        assert "diff --git a/old.py b/new.py" in diff

    def test_no_files(self):
        pr = MagicMock()
        pr.get_files.return_value = []
        assert get_pull_diff(pr) == NO_DIFF

    def test_api_error_degrades(self):
        pr = MagicMock()
        pr.get_files.side_effect = GithubException(500, "boom", None)
        assert get_pull_diff(pr) == NO_DIFF


class TestGetPullCommits:
    def test_maps_commits(self):
        pr = MagicMock()
        pr.get_commits.return_value = [_commit("feat: add\n\nbody")]
        commits = get_pull_commits(pr)
        assert len(commits) == 1
        assert commits[0].subject == "feat: add"
        assert commits[0].message == "feat: add\n\nbody"
        assert commits[0].url.endswith(SHA)
        assert commits[0].date == "2024-01-02T03:04:05"

    def test_api_error_degrades(self):
        pr = MagicMock()
        pr.get_commits.side_effect = GithubException(500, "boom", None)
        assert get_pull_commits(pr) == []


class TestFetchPullRequest:
    def test_analyzes_pull_request(self):
        pr = MagicMock()
        pr.raw_data = {
            "title": "Add login",
            "body": "",
            "labels": [{"name": "enhancement"}],
            "html_url": "https://github.com/acme/widgets/pull/5",
            "base": {"ref": "main"},
            "head": {"ref": "feat"},
            "user": {"login": "octocat"},
        }
        pr.get_files.return_value = [_file("src/login.py")]
        pr.get_commits.return_value = [_commit("fix: typo")]
        repo = MagicMock()
        repo.get_pull.return_value = pr

        data = fetch_pull_request(repo, 5)

        repo.get_pull.assert_called_once_with(5)
        assert data.number == 5
        assert data.html_url == "https://github.com/acme/widgets/pull/5"
        assert data.analysis.is_feature is True
        assert data.analysis.is_bugfix is True
        assert data.analysis.files_changed == ["src/login.py"]

    def test_missing_pr_raises_value_error(self):
        repo = MagicMock()
        repo.full_name = "acme/widgets"
        repo.get_pull.side_effect = GithubException(404, "Not Found", None)
        with pytest.raises(ValueError, match="PR #9 not found in acme/widgets"):
            fetch_pull_request(repo, 9)


class TestSaveAnalysisFiles:
    def test_writes_snapshots(self, tmp_path):
        data = PullRequestData(number=1, raw={"title": "T", "body": "B"}, diff="diff --git a/x b/x")
        save_analysis_files(data, tmp_path)
        details = json.loads((tmp_path / "pr_details.json").read_text())
        assert details["title"] == "T"
        assert "analysis" in details
        assert (tmp_path / "pr_diff.txt").read_text() == "diff --git a/x b/x"

    def test_write_failure_is_not_raised(self, tmp_path):
        data = PullRequestData(number=1, raw={}, diff="")
        save_analysis_files(data, tmp_path / "missing-dir")
