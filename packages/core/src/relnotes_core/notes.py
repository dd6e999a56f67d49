"""Release-note synthesis.

Two paths converge on one ReleaseNotes value:

    generation enabled ──► build_prompt ──► generator.generate ──► ReplyParser
            │                                     │ (any failure)
            └──────── disabled ───────────────────┴──► build_fallback_notes

The generated path uses a lenient contract: the reply is expected to carry
two sentinel-delimited blocks, but a reply without them is still usable.
Only a backend error or an empty reply sends the run to the template.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from relnotes_core.artifacts import (
    GENERATION_OUTPUT,
    GENERATION_PROMPT,
    NOTIFICATION_MESSAGE,
    RELEASE_NOTES,
    write_artifact,
)

if TYPE_CHECKING:
    from relnotes_core.analysis import ChangeAnalysis
    from relnotes_core.config import Config
    from relnotes_core.models import CommitRecord
    from relnotes_core.providers.base import BaseGenerator
    from relnotes_core.versioning import VersionInfo

logger = logging.getLogger(__name__)

RELEASE_NOTES_START = "RELEASE_NOTES_START"
RELEASE_NOTES_END = "RELEASE_NOTES_END"
SLACK_MESSAGE_START = "SLACK_MESSAGE_START"
SLACK_MESSAGE_END = "SLACK_MESSAGE_END"
BUILD_NUMBER_TOKEN = "BUILD_NUMBER"

MAX_PROMPT_COMMITS = 30
MAX_PROMPT_FILES = 10
SUMMARY_LINES = 5
NOTIFICATION_COMMITS = 3

PUBLIC_BREAKING = "Breaking changes - please review migration notes"
PUBLIC_FEATURE = "New features and enhancements"
PUBLIC_BUGFIX = "Bug fixes and stability improvements"
PUBLIC_GENERIC = "General improvements and bug fixes"
INTERNAL_GENERIC = "Various code improvements and maintenance"
NOTIFICATION_GENERIC = "Various improvements"


def _block_re(start: str, end: str) -> re.Pattern:
    return re.compile(rf"{start}\s*\n(.*?)\n\s*{end}", re.DOTALL)


_NOTES_RE = _block_re(RELEASE_NOTES_START, RELEASE_NOTES_END)
_MESSAGE_RE = _block_re(SLACK_MESSAGE_START, SLACK_MESSAGE_END)


@dataclass(frozen=True)
class ReleaseNotes:
    release_notes: str
    notification_message: str
    generated: bool
    build_number: str


# --------------------------------------------------------------------------- #
# Prompt construction                                                          #
# --------------------------------------------------------------------------- #


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _commit_summary(commits: Sequence[CommitRecord]) -> str:
    if not commits:
        return "No commit details available"
    return "\n".join(f"  - {c.first_line} ({c.short_id})" for c in list(commits)[:MAX_PROMPT_COMMITS])


def _files_summary(analysis: ChangeAnalysis) -> str:
    return ", ".join(analysis.files_changed[:MAX_PROMPT_FILES]) or "No files listed"


def _change_types(analysis: ChangeAnalysis) -> str:
    return ", ".join(analysis.ordered_change_types) or "general changes"


def build_default_prompt(
    analysis: ChangeAnalysis,
    commits: Sequence[CommitRecord],
    version_info: VersionInfo,
    environment: str,
) -> str:
    return f"""Analyze this pull request and write specific, concrete release notes.

PR DETAILS:
Title: {analysis.title}
Description: {analysis.body or 'No description'}
Type: {_change_types(analysis)}
Files ({len(analysis.files_changed)} changed): {_files_summary(analysis)}
Breaking: {_yes_no(analysis.is_breaking_change)}
Bug fix: {_yes_no(analysis.is_bugfix)}
Feature: {_yes_no(analysis.is_feature)}

COMMITS:
{_commit_summary(commits)}

Write release notes based on the ACTUAL changes above. Extract real information from the title,
description, files, and commits.

Example (do NOT copy this, write your own based on actual PR data):
If the PR title is "Add user authentication with OAuth", write:
"- Added OAuth-based authentication for user login"
NOT "- [Add authentication feature]" or "- User-facing authentication improvements"

Format EXACTLY as shown (but with real content):

{RELEASE_NOTES_START}
## {version_info.tag_name} - {BUILD_NUMBER_TOKEN} [{environment}]

### Public
- [Real user-facing change from PR title/description]
- [Another specific change if applicable]

### Internal
- [Specific technical change from commits/files]
- [Another technical detail]
{RELEASE_NOTES_END}

{SLACK_MESSAGE_START}
Hey team! Just deployed *{version_info.tag_name}* to *{environment}*.

*What changed:*
• [Specific change from PR - be concrete]
• [Another concrete change]

*Testing notes:*
• [Real testing instruction if needed, or remove this section]
{SLACK_MESSAGE_END}"""


def interpolate_template(
    template: str,
    analysis: ChangeAnalysis,
    commits: Sequence[CommitRecord],
    version_info: VersionInfo,
    environment: str,
) -> str:
    """Wrap a user-supplied prompt with PR context and substitute its ${placeholders}."""
    context = f"""
PR INFORMATION:
- Title: {analysis.title}
- Description: {analysis.body or 'No description'}
- Author: {analysis.author}
- Type: {_change_types(analysis)}
- Files changed: {_files_summary(analysis)}
- Breaking change: {_yes_no(analysis.is_breaking_change)}
- Bug fix: {_yes_no(analysis.is_bugfix)}
- New feature: {_yes_no(analysis.is_feature)}

COMMITS:
{_commit_summary(commits)}

USER INSTRUCTIONS:
{template}

Generate output in this format:

{RELEASE_NOTES_START}
[Your release notes here]
{RELEASE_NOTES_END}

{SLACK_MESSAGE_START}
[Your Slack message here]
{SLACK_MESSAGE_END}
"""
    placeholders = {
        "${version}": version_info.new_version,
        "${previousVersion}": version_info.previous_version,
        "${environment}": environment,
        "${buildNumber}": version_info.build_number,
        "${prTitle}": analysis.title,
        "${prAuthor}": analysis.author,
        "${changeTypes}": _change_types(analysis),
    }
    for placeholder, value in placeholders.items():
        context = context.replace(placeholder, value)
    return context


def build_prompt(
    config: Config,
    analysis: ChangeAnalysis,
    commits: Sequence[CommitRecord],
    version_info: VersionInfo,
) -> str:
    if config.custom_prompt:
        return interpolate_template(config.custom_prompt, analysis, commits, version_info, config.environment)
    return build_default_prompt(analysis, commits, version_info, config.environment)


# --------------------------------------------------------------------------- #
# Reply parsing                                                                #
# --------------------------------------------------------------------------- #


class ParseState(enum.Enum):
    BOTH_BLOCKS = "both_blocks"
    NOTES_ONLY = "notes_only"
    MESSAGE_ONLY = "message_only"
    NO_BLOCKS = "no_blocks"


@dataclass(frozen=True)
class ParsedReply:
    release_notes: str
    notification_message: str
    state: ParseState


def summarize_for_notification(text: str, build_number: str) -> str:
    """Short notification: a build announcement followed by the first few non-empty lines."""
    lines = [line for line in text.splitlines() if line.strip()]
    summary = "\n".join(lines[:SUMMARY_LINES])
    return f":rocket: Build {build_number} deployed\n\n{summary}"


class ReplyParser:
    """Extracts release notes and a notification message from a generated reply.

    The state is decided from which sentinel blocks are present; each state
    has one rule for filling in whatever is missing:

      BOTH_BLOCKS   use both blocks as-is
      NOTES_ONLY    summarize the notes block into a message
      MESSAGE_ONLY  use the reply outside the message block as notes
      NO_BLOCKS     use the whole reply as notes and summarize it
    """

    def parse(self, reply: str, build_number: str) -> ParsedReply:
        text = (reply or "").strip()
        if not text:
            raise ValueError("Cannot parse an empty reply")

        notes_match = _NOTES_RE.search(text)
        message_match = _MESSAGE_RE.search(text)
        notes = notes_match.group(1).strip() if notes_match else ""
        message = message_match.group(1).strip() if message_match else ""

        if notes and message:
            state = ParseState.BOTH_BLOCKS
        elif notes:
            state = ParseState.NOTES_ONLY
            message = summarize_for_notification(notes, build_number)
        elif message:
            state = ParseState.MESSAGE_ONLY
            remainder = _MESSAGE_RE.sub("", text).strip()
            notes = remainder or message
        else:
            state = ParseState.NO_BLOCKS
            logger.warning("Reply markers not found, using the full reply")
            notes = text
            message = summarize_for_notification(text, build_number)

        logger.debug("Parsed generated reply (%s, %d chars)", state.value, len(text))
        return ParsedReply(
            release_notes=notes.replace(BUILD_NUMBER_TOKEN, build_number),
            notification_message=message.replace(BUILD_NUMBER_TOKEN, build_number),
            state=state,
        )


# --------------------------------------------------------------------------- #
# Template fallback                                                            #
# --------------------------------------------------------------------------- #


def public_summary(analysis: ChangeAnalysis) -> str:
    """One line for the public section. Priority: breaking > feature > bugfix > generic."""
    if analysis.is_breaking_change:
        return PUBLIC_BREAKING
    if analysis.is_feature:
        return PUBLIC_FEATURE
    if analysis.is_bugfix:
        return PUBLIC_BUGFIX
    return PUBLIC_GENERIC


def build_fallback_notes(
    analysis: ChangeAnalysis,
    commits: Sequence[CommitRecord],
    version_info: VersionInfo,
    environment: str,
    max_commits: int = 10,
    include_commit_links: bool = False,
) -> tuple[str, str]:
    """Deterministic (release_notes, notification_message) built from the analysis and commits."""
    heading = f"{version_info.tag_name} - {version_info.build_number} [{environment}]"

    internal = []
    for commit in list(commits)[:max_commits]:
        line = commit.first_line
        if include_commit_links and commit.url:
            line += f" ([{commit.short_id}]({commit.url}))"
        internal.append(line)
    if not internal:
        internal = [INTERNAL_GENERIC]

    release_notes = "\n".join(
        [
            f"## {heading}",
            "",
            "### Public",
            f"- {public_summary(analysis)}",
            "",
            "### Internal",
            *(f"- {line}" for line in internal),
        ]
    )

    highlights = [c.first_line for c in list(commits)[:NOTIFICATION_COMMITS]] or [NOTIFICATION_GENERIC]
    notification = f":rocket: *{heading}*\n\n*Changes:*\n" + "\n".join(f"• {line}" for line in highlights)

    return release_notes, notification


# --------------------------------------------------------------------------- #
# Synthesis                                                                    #
# --------------------------------------------------------------------------- #


def _generate(
    generator: BaseGenerator,
    config: Config,
    analysis: ChangeAnalysis,
    commits: Sequence[CommitRecord],
    version_info: VersionInfo,
    workdir: str | Path,
) -> ParsedReply | None:
    prompt = build_prompt(config, analysis, commits, version_info)
    write_artifact(GENERATION_PROMPT, prompt, workdir)

    result = generator.generate(prompt)
    if not result.success:
        logger.warning("Generation failed (%s), falling back to the template", result.error or "no reply")
        return None

    write_artifact(GENERATION_OUTPUT, result.text, workdir)
    return ReplyParser().parse(result.text, version_info.build_number)


def synthesize_release_notes(
    config: Config,
    analysis: ChangeAnalysis,
    commits: Sequence[CommitRecord],
    version_info: VersionInfo,
    generator: BaseGenerator | None = None,
    workdir: str | Path = ".",
) -> ReleaseNotes:
    """Produce release notes, preferring the generator and falling back to the template.

    Errors on the generated path are logged and swallowed. Errors while
    building the template or writing the final artifacts propagate: at that
    point there is nothing left to fall back to.
    """
    parsed = None
    if generator is not None:
        try:
            parsed = _generate(generator, config, analysis, commits, version_info, workdir)
        except Exception as e:
            logger.warning("Generation error: %s, using the template", e)
            parsed = None

    if parsed is not None:
        notes = ReleaseNotes(
            release_notes=parsed.release_notes,
            notification_message=parsed.notification_message,
            generated=True,
            build_number=version_info.build_number,
        )
    else:
        release_notes, message = build_fallback_notes(
            analysis,
            commits,
            version_info,
            config.environment,
            max_commits=config.max_commits_fallback,
            include_commit_links=config.include_commit_links,
        )
        notes = ReleaseNotes(
            release_notes=release_notes,
            notification_message=message,
            generated=False,
            build_number=version_info.build_number,
        )

    write_artifact(RELEASE_NOTES, notes.release_notes, workdir)
    write_artifact(NOTIFICATION_MESSAGE, notes.notification_message, workdir)
    return notes
