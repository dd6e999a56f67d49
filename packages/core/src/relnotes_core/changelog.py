"""Keep-a-Changelog style CHANGELOG.md maintenance."""

from __future__ import annotations

import logging
import re
import shutil
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from relnotes_core.analysis import ChangeAnalysis
    from relnotes_core.gh.releases import ReleaseLinks
    from relnotes_core.versioning import VersionInfo

logger = logging.getLogger(__name__)

CHANGELOG_HEADING = "# Changelog"
# Lines at or before this index belong to the standard header block.
HEADER_BLOCK_END = 5

_VERSION_HEADING_RE = re.compile(r"^##\s+\[?\d+\.\d+\.\d+")
_VERSION_HEADING_MULTILINE_RE = re.compile(r"^##\s+\[?\d+\.\d+\.\d+", re.MULTILINE)
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
_BULLET_RE = re.compile(r"^[-*]\s*")

_FEATURE_KEYWORDS = ("feat", "add", "new")
_BUGFIX_KEYWORDS = ("fix", "bug", "resolve")

BREAKING_BANNER = (
    "\n### ⚠️ Breaking Changes\n- This release contains breaking changes. Please review the migration guide.\n"
)


@dataclass
class ChangelogResult:
    updated: bool
    path: str = ""
    entry: str = ""
    reason: str = ""


@dataclass
class ChangelogValidation:
    valid: bool
    issues: list[str] = field(default_factory=list)
    version_count: int = 0


def create_initial_changelog(repo_name: str = "") -> str:
    return (
        f"{CHANGELOG_HEADING}\n"
        "\n"
        f"All notable changes to {repo_name or 'Repository'} will be documented in this file.\n"
        "\n"
        "The format is based on [Keep a Changelog](https://keepachangelog.com/en/1.0.0/),\n"
        "and this project adheres to [Semantic Versioning](https://semver.org/spec/v2.0.0.html).\n"
        "\n"
    )


def ensure_changelog_exists(path: str | Path, repo_name: str = "") -> bool:
    """Create the changelog with the standard header if missing. Returns True if it was created."""
    path = Path(path)
    if path.exists():
        return False
    logger.info("Creating new changelog file: %s", path)
    path.write_text(create_initial_changelog(repo_name), encoding="utf-8")
    return True


def _section(release_notes: str, name: str) -> str:
    pattern = re.compile(rf"### {name}\s*\n(.*?)(?=\n### |\n---|\Z)", re.DOTALL)
    match = pattern.search(release_notes)
    return match.group(1).strip() if match else ""


def parse_release_note_sections(release_notes: str) -> dict[str, str]:
    """Pull the `### Public` and `### Internal` bodies out of release notes."""
    return {
        "public": _section(release_notes, "Public"),
        "internal": _section(release_notes, "Internal"),
    }


def _extract(content: str, keywords: tuple[str, ...], heading: str) -> str:
    matches = []
    for line in content.splitlines():
        lowered = line.lower()
        if any(k in lowered for k in keywords):
            matches.append(_BULLET_RE.sub("- ", line, count=1))
    return f"\n### {heading}\n" + "\n".join(matches) + "\n" if matches else ""


def extract_features(internal: str) -> str:
    """`### Added` block of internal lines that look like features, or ''."""
    return _extract(internal, _FEATURE_KEYWORDS, "Added")


def extract_bugfixes(internal: str) -> str:
    """`### Fixed` block of internal lines that look like fixes, or ''."""
    return _extract(internal, _BUGFIX_KEYWORDS, "Fixed")


def format_links(
    version_info: VersionInfo,
    links: ReleaseLinks | None,
    include_pr_links: bool = True,
) -> str:
    if links is None:
        return ""
    items = []
    if include_pr_links and links.pr_url:
        items.append(f"**Pull Request:** [#{links.pr_number}]({links.pr_url})")
    if version_info.previous_version and links.compare_url:
        items.append(
            f"**Full Changelog:** [{version_info.previous_version}...{version_info.tag_name}]({links.compare_url})"
        )
    if not items:
        return ""
    return "\n**Links:**\n" + "\n".join(f"- {item}" for item in items)


def format_entry(
    release_notes: str,
    version_info: VersionInfo,
    environment: str,
    analysis: ChangeAnalysis | None = None,
    links: ReleaseLinks | None = None,
    include_pr_links: bool = True,
    include_commit_links: bool = True,
    today: date | None = None,
) -> str:
    today = today or datetime.now(timezone.utc).date()
    env_suffix = "" if environment.upper() == "PROD" else f" [{environment}]"

    entry = f"## [{version_info.new_version}]{env_suffix} - {today.isoformat()}\n"

    sections = parse_release_note_sections(release_notes)
    if sections["public"]:
        entry += f"\n### Changed\n{sections['public']}\n"
    if sections["internal"]:
        entry += f"\n### Internal\n{sections['internal']}\n"

    if analysis is not None:
        if analysis.is_breaking_change:
            entry += BREAKING_BANNER
        if analysis.is_feature:
            entry += extract_features(sections["internal"])
        if analysis.is_bugfix:
            entry += extract_bugfixes(sections["internal"])

    if include_pr_links or include_commit_links:
        block = format_links(version_info, links, include_pr_links)
        if block:
            entry += f"\n{block}\n"

    return entry + "\n"


def find_insertion_point(lines: list[str]) -> int:
    """Index of the first existing version heading, else of the first content line past the header, else EOF."""
    for i, raw in enumerate(lines):
        line = raw.strip()
        if _VERSION_HEADING_RE.match(line):
            return i
        if i > HEADER_BLOCK_END and line and not line.startswith("#") and not line.startswith("The format is"):
            return i
    return len(lines)


def insert_entry(content: str, entry: str) -> str:
    lines = content.split("\n")
    lines.insert(find_insertion_point(lines), entry)
    return "\n".join(lines)


def update_changelog(
    path: str | Path,
    release_notes: str,
    version_info: VersionInfo,
    environment: str,
    analysis: ChangeAnalysis | None = None,
    links: ReleaseLinks | None = None,
    repo_name: str = "",
    include_pr_links: bool = True,
    include_commit_links: bool = True,
    today: date | None = None,
) -> ChangelogResult:
    """Splice a new entry into the changelog, creating the file first if needed."""
    path = Path(path)
    logger.info("Updating changelog: %s", path)
    try:
        ensure_changelog_exists(path, repo_name)
        current = path.read_text(encoding="utf-8")
        entry = format_entry(
            release_notes,
            version_info,
            environment,
            analysis=analysis,
            links=links,
            include_pr_links=include_pr_links,
            include_commit_links=include_commit_links,
            today=today,
        )
        path.write_text(insert_entry(current, entry), encoding="utf-8")
    except OSError as e:
        logger.error("Failed to update changelog: %s", e)
        return ChangelogResult(updated=False, reason=str(e))
    return ChangelogResult(updated=True, path=str(path), entry=entry)


def validate_changelog(path: str | Path) -> ChangelogValidation:
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        return ChangelogValidation(valid=False, issues=[f"Failed to read changelog: {e}"])

    issues = []
    if CHANGELOG_HEADING not in content:
        issues.append(f'Missing main heading "{CHANGELOG_HEADING}"')
    versions = _VERSION_HEADING_MULTILINE_RE.findall(content)
    if not versions:
        issues.append("No version entries found")
    if not _DATE_RE.search(content):
        issues.append("No dates found in version entries")
    return ChangelogValidation(valid=not issues, issues=issues, version_count=len(versions))


def backup_changelog(path: str | Path) -> str | None:
    """Copy the changelog to `<path>.backup.<epoch ms>`. Returns the backup path, or None on failure."""
    backup = f"{path}.backup.{int(time.time() * 1000)}"
    try:
        shutil.copyfile(path, backup)
    except OSError as e:
        logger.warning("Failed to back up changelog: %s", e)
        return None
    logger.info("Created changelog backup: %s", backup)
    return backup
