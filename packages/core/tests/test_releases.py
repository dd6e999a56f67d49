"""Tests for GitHub release helpers."""

from unittest.mock import MagicMock

from github import GithubException

from relnotes_core.analysis import ChangeAnalysis
from relnotes_core.gh.releases import (
    RELEASE_FOOTER,
    ReleaseAsset,
    ReleaseLinks,
    build_links_section,
    build_metadata_section,
    build_release_body,
    build_release_name,
    changelog_branch,
    create_changelog_pull_request,
    create_release,
    delete_release,
    is_already_exists,
    list_releases,
    upload_release_assets,
)
from relnotes_core.models import CommitRecord
from relnotes_core.versioning import VersionInfo

VERSION = VersionInfo(
    new_version="1.3.0",
    previous_version="v1.2.0",
    tag_name="v1.3.0",
    clean_previous_version="1.2.0",
    build_number="20240305.0709",
)

ALREADY_EXISTS = GithubException(
    422,
    {"message": "Validation Failed", "errors": [{"resource": "Release", "code": "already_exists", "field": "tag_name"}]},
    None,
)


def _links(commits=()):
    return ReleaseLinks(
        compare_url="https://github.com/acme/widgets/compare/v1.2.0...v1.3.0",
        pr_number=5,
        pr_url="https://github.com/acme/widgets/pull/5",
        commits=list(commits),
    )


class TestBuildReleaseName:
    def test_prod_has_no_environment_suffix(self):
        assert build_release_name(VERSION, "PROD") == "Release v1.3.0"

    def test_other_environments_are_tagged(self):
        assert build_release_name(VERSION, "DEV") == "Release v1.3.0 [DEV]"

    def test_long_title_appended(self):
        assert build_release_name(VERSION, "PROD", "Add OAuth login") == "Release v1.3.0 - Add OAuth login"

    def test_short_title_ignored(self):
        assert build_release_name(VERSION, "PROD", "Fix typo") == "Release v1.3.0"


class TestBuildBody:
    def test_metadata_section(self):
        analysis = ChangeAnalysis(files_changed=["a.py", "b.py"], is_breaking_change=True)
        analysis.mark("breaking")
        section = build_metadata_section(VERSION, "PROD", analysis)
        assert "**Version:** 1.3.0" in section
        assert "**Previous Version:** v1.2.0" in section
        assert "**Change Types:** breaking" in section
        assert "**Files Changed:** 2" in section
        assert "**Breaking Changes:** Yes" in section

    def test_links_section_with_commits(self):
        commit = CommitRecord(full_id="b" * 40, subject="fix: y", url="https://github.com/acme/widgets/commit/bbb")
        section = build_links_section(VERSION, _links([commit]), include_pr_links=True, include_commit_links=True)
        assert "[#5](https://github.com/acme/widgets/pull/5)" in section
        assert "[v1.2.0...v1.3.0]" in section
        assert "- [bbbbbbb](https://github.com/acme/widgets/commit/bbb) fix: y" in section

    def test_links_section_empty_returns_none(self):
        assert build_links_section(VERSION, ReleaseLinks(), include_pr_links=True, include_commit_links=True) is None

    def test_body_has_notes_metadata_and_footer(self):
        body = build_release_body("## Notes", VERSION, "PROD", None, _links())
        assert body.startswith("## Notes")
        assert "## Release Information" in body
        assert "## Links" in body
        assert body.endswith(RELEASE_FOOTER)

    def test_body_without_links(self):
        body = build_release_body("## Notes", VERSION, "PROD", None, _links(), False, False)
        assert "## Links" not in body


class TestCreateRelease:
    def test_creates_release(self):
        repo = MagicMock()
        repo.create_git_release.return_value.html_url = "https://github.com/acme/widgets/releases/tag/v1.3.0"
        result = create_release(repo, "v1.3.0", "Release v1.3.0", "body", target_commitish="abc")
        assert result.created is True
        assert result.updated is False
        repo.create_git_release.assert_called_once_with(
            "v1.3.0", "Release v1.3.0", "body", draft=False, prerelease=False, target_commitish="abc"
        )

    def test_updates_existing_release_on_already_exists(self):
        repo = MagicMock()
        repo.create_git_release.side_effect = ALREADY_EXISTS
        existing = repo.get_release.return_value
        existing.update_release.return_value.html_url = "https://github.com/acme/widgets/releases/tag/v1.3.0"

        result = create_release(repo, "v1.3.0", "Release v1.3.0", "body")

        repo.get_release.assert_called_once_with("v1.3.0")
        existing.update_release.assert_called_once_with(
            name="Release v1.3.0", message="body", draft=False, prerelease=False
        )
        assert result.created is True
        assert result.updated is True

    def test_other_errors_are_recorded(self):
        repo = MagicMock()
        repo.create_git_release.side_effect = GithubException(403, {"message": "Forbidden"}, None)
        result = create_release(repo, "v1.3.0", "n", "b")
        assert result.created is False
        assert "403" in result.reason
        repo.get_release.assert_not_called()

    def test_update_failure_is_recorded(self):
        repo = MagicMock()
        repo.create_git_release.side_effect = ALREADY_EXISTS
        repo.get_release.side_effect = GithubException(404, {"message": "Not Found"}, None)
        result = create_release(repo, "v1.3.0", "n", "b")
        assert result.created is False


class TestIsAlreadyExists:
    def test_matches_structured_code(self):
        assert is_already_exists(ALREADY_EXISTS) is True

    def test_ignores_message_text(self):
        error = GithubException(422, {"message": "tag already_exists", "errors": [{"code": "invalid"}]}, None)
        assert is_already_exists(error) is False

    def test_ignores_other_status(self):
        assert is_already_exists(GithubException(500, {"errors": [{"code": "already_exists"}]}, None)) is False


class TestChangelogPullRequest:
    def test_opens_pr_from_release_branch(self):
        repo = MagicMock()
        repo.create_pull.return_value.html_url = "https://github.com/acme/widgets/pull/6"
        result = create_changelog_pull_request(repo, "v1.3.0", "main")
        assert result.created is True
        kwargs = repo.create_pull.call_args.kwargs
        assert kwargs["head"] == changelog_branch("v1.3.0") == "release/v1.3.0"
        assert kwargs["base"] == "main"
        assert kwargs["title"].startswith("[skip ci]")

    def test_failure_recorded(self):
        repo = MagicMock()
        repo.create_pull.side_effect = GithubException(422, {"message": "No commits"}, None)
        result = create_changelog_pull_request(repo, "v1.3.0", "main")
        assert result.created is False


class TestReleaseManagement:
    def test_list_releases_respects_limit(self):
        repo = MagicMock()
        repo.get_releases.return_value = [MagicMock() for _ in range(5)]
        assert len(list_releases(repo, limit=2)) == 2

    def test_list_releases_error(self):
        repo = MagicMock()
        repo.get_releases.side_effect = GithubException(500, "boom", None)
        assert list_releases(repo) == []

    def test_delete_release(self):
        repo = MagicMock()
        assert delete_release(repo, "v1.3.0") is True
        repo.get_release.return_value.delete_release.assert_called_once()

    def test_delete_missing_release(self):
        repo = MagicMock()
        repo.get_release.side_effect = GithubException(404, "Not Found", None)
        assert delete_release(repo, "v9.9.9") is False

    def test_upload_assets_continues_after_failure(self, tmp_path):
        release = MagicMock()
        release.upload_asset.side_effect = [OSError("gone"), MagicMock(name="ok")]
        assets = [ReleaseAsset(path=str(tmp_path / "a.zip")), ReleaseAsset(path=str(tmp_path / "b.zip"), name="b")]
        uploaded = upload_release_assets(release, assets)
        assert len(uploaded) == 1
        assert release.upload_asset.call_count == 2
        assert release.upload_asset.call_args_list[0].kwargs["name"] == "a.zip"
