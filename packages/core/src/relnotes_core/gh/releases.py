"""GitHub release and changelog-PR helpers.

Name/body builders are pure so they can be tested without PyGithub; the
functions that talk to the API return small result objects rather than
raising, except where noted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Sequence

from github import GithubException

if TYPE_CHECKING:
    from relnotes_core.analysis import ChangeAnalysis
    from relnotes_core.models import CommitRecord
    from relnotes_core.versioning import VersionInfo

logger = logging.getLogger(__name__)

# PR titles at or under this length are too terse to add to a release name.
MIN_TITLE_LENGTH = 10
MAX_LINKED_COMMITS = 5
RELEASE_FOOTER = "---\n*Generated by relnotes*"


@dataclass
class ReleaseResult:
    created: bool
    updated: bool = False
    url: str = ""
    release: object | None = None
    reason: str = ""


@dataclass
class PullRequestResult:
    created: bool
    url: str = ""
    reason: str = ""


@dataclass(frozen=True)
class ReleaseAsset:
    path: str
    name: str = ""
    content_type: str = "application/octet-stream"


@dataclass
class ReleaseLinks:
    """Inputs for the optional links block shared by the release body and the changelog."""

    compare_url: str = ""
    pr_number: int | None = None
    pr_url: str = ""
    commits: Sequence[CommitRecord] = field(default_factory=list)


def environment_suffix(environment: str) -> str:
    return "" if environment.upper() == "PROD" else f" [{environment}]"


def build_release_name(version_info: VersionInfo, environment: str, pr_title: str | None = None) -> str:
    title_suffix = ""
    if pr_title and len(pr_title) > MIN_TITLE_LENGTH:
        title_suffix = f" - {pr_title}"
    return f"Release {version_info.tag_name}{environment_suffix(environment)}{title_suffix}"


def build_metadata_section(version_info: VersionInfo, environment: str, analysis: ChangeAnalysis | None) -> str:
    lines = [
        "## Release Information",
        f"**Version:** {version_info.new_version}",
        f"**Environment:** {environment}",
        f"**Build:** {version_info.build_number}",
    ]
    if version_info.previous_version:
        lines.append(f"**Previous Version:** {version_info.previous_version}")
    if analysis is not None:
        if analysis.change_types:
            lines.append(f"**Change Types:** {', '.join(analysis.ordered_change_types)}")
        if analysis.files_changed:
            lines.append(f"**Files Changed:** {len(analysis.files_changed)}")
        if analysis.is_breaking_change:
            lines.append("**Breaking Changes:** Yes")
    return "\n".join(lines)


def build_links_section(
    version_info: VersionInfo,
    links: ReleaseLinks,
    include_pr_links: bool,
    include_commit_links: bool,
) -> str | None:
    """Markdown links block, or None when there is nothing to link."""
    lines = ["## Links"]

    if include_pr_links and links.pr_url:
        lines.append(f"**Pull Request:** [#{links.pr_number}]({links.pr_url})")

    if version_info.previous_version and links.compare_url:
        lines.append(
            f"**Full Changelog:** [{version_info.previous_version}...{version_info.tag_name}]({links.compare_url})"
        )

    if include_commit_links and links.commits:
        commit_lines = [
            f"- [{c.short_id}]({c.url}) {c.first_line}" for c in list(links.commits)[:MAX_LINKED_COMMITS] if c.url
        ]
        if commit_lines:
            lines.append("**Recent Commits:**")
            lines.extend(commit_lines)

    return "\n".join(lines) if len(lines) > 1 else None


def build_release_body(
    release_notes: str,
    version_info: VersionInfo,
    environment: str,
    analysis: ChangeAnalysis | None,
    links: ReleaseLinks,
    include_pr_links: bool = True,
    include_commit_links: bool = True,
) -> str:
    body = f"{release_notes}\n\n{build_metadata_section(version_info, environment, analysis)}"
    if include_pr_links or include_commit_links:
        links_section = build_links_section(version_info, links, include_pr_links, include_commit_links)
        if links_section:
            body += f"\n\n{links_section}"
    return f"{body}\n\n{RELEASE_FOOTER}"


def is_already_exists(error: GithubException) -> bool:
    """True for the 422 validation error GitHub returns when a release for the tag exists."""
    if error.status != 422 or not isinstance(error.data, dict):
        return False
    return any(isinstance(e, dict) and e.get("code") == "already_exists" for e in error.data.get("errors") or [])


def create_release(
    repo,
    tag_name: str,
    name: str,
    body: str,
    target_commitish: str | None = None,
    draft: bool = False,
    prerelease: bool = False,
) -> ReleaseResult:
    """Create a release, or update the existing one in place if the tag already has a release."""
    kwargs = {"draft": draft, "prerelease": prerelease}
    if target_commitish:
        kwargs["target_commitish"] = target_commitish
    try:
        release = repo.create_git_release(tag_name, name, body, **kwargs)
    except GithubException as e:
        if is_already_exists(e):
            logger.warning("Release for %s already exists, updating it in place", tag_name)
            return update_existing_release(repo, tag_name, name, body, draft=draft, prerelease=prerelease)
        logger.error("Failed to create GitHub release %s: %s", tag_name, e)
        return ReleaseResult(created=False, reason=str(e))
    return ReleaseResult(created=True, url=release.html_url, release=release)


def update_existing_release(
    repo, tag_name: str, name: str, body: str, draft: bool = False, prerelease: bool = False
) -> ReleaseResult:
    try:
        release = repo.get_release(tag_name)
        updated = release.update_release(name=name, message=body, draft=draft, prerelease=prerelease)
    except GithubException as e:
        logger.error("Failed to update existing release %s: %s", tag_name, e)
        return ReleaseResult(created=False, reason=str(e))
    return ReleaseResult(created=True, updated=True, url=updated.html_url, release=updated)


def changelog_branch(tag_name: str) -> str:
    return f"release/{tag_name}"


def changelog_commit_message(tag_name: str) -> str:
    return f"[skip ci] chore: update changelog for release {tag_name}"


def create_changelog_pull_request(repo, tag_name: str, base: str) -> PullRequestResult:
    try:
        pr = repo.create_pull(
            title=changelog_commit_message(tag_name),
            body=f"Automated changelog update for release {tag_name}",
            head=changelog_branch(tag_name),
            base=base,
        )
    except GithubException as e:
        logger.error("Failed to create changelog PR for %s: %s", tag_name, e)
        return PullRequestResult(created=False, reason=str(e))
    return PullRequestResult(created=True, url=pr.html_url)


def list_releases(repo, limit: int = 30) -> list:
    try:
        releases = []
        for release in repo.get_releases():
            if len(releases) >= limit:
                break
            releases.append(release)
        return releases
    except GithubException as e:
        logger.error("Failed to list releases: %s", e)
        return []


def delete_release(repo, tag_name: str) -> bool:
    try:
        release = repo.get_release(tag_name)
        release.delete_release()
    except GithubException as e:
        logger.warning("Failed to delete release for tag %s: %s", tag_name, e)
        return False
    logger.info("Deleted release for tag %s", tag_name)
    return True


def upload_release_assets(release, assets: Iterable[ReleaseAsset]) -> list:
    """Upload each asset; a failed upload is logged and skipped, the rest continue."""
    uploaded = []
    for asset in assets:
        name = asset.name or Path(asset.path).name
        try:
            uploaded.append(release.upload_asset(asset.path, name=name, content_type=asset.content_type))
        except (GithubException, OSError) as e:
            logger.error("Failed to upload asset %s: %s", name, e)
            continue
        logger.info("Uploaded asset %s", name)
    return uploaded
