"""Release pipeline orchestration.

run_release() is the single entry point. Everything before the side-effect
steps (trigger gate, token, PR fetch, versioning, note synthesis) is fatal
on error. The side-effect steps run in a fixed order and each one returns a
StepResult; an exception inside a step is recorded on that step and the
next step still runs.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from rich.console import Console

from relnotes_core.analysis import analyze_changes, suggest_increment
from relnotes_core.artifacts import cleanup
from relnotes_core.changelog import update_changelog
from relnotes_core.config import Config
from relnotes_core.context import ActionContext
from relnotes_core.gh.pull_request import fetch_pull_request, get_repo, save_analysis_files
from relnotes_core.gh.releases import (
    ReleaseAsset,
    ReleaseLinks,
    build_release_body,
    build_release_name,
    changelog_branch,
    changelog_commit_message,
    create_changelog_pull_request,
    create_release,
    upload_release_assets,
)
from relnotes_core.git import GitError, GitRepository
from relnotes_core.notes import ReleaseNotes, synthesize_release_notes
from relnotes_core.notify import send_notification
from relnotes_core.providers.anthropic import AnthropicGenerator
from relnotes_core.providers.base import BaseGenerator
from relnotes_core.providers.vertex import VertexGenerator
from relnotes_core.trigger import evaluate
from relnotes_core.versioning import VersionInfo, derive_version

console = Console()
logger = logging.getLogger(__name__)

# Stands in for the build commit id when HEAD cannot be read.
UNKNOWN_COMMIT = "unknown"

TAG_STEP = "tag"
CHANGELOG_STEP = "changelog"
RELEASE_STEP = "release"
CHANGELOG_PR_STEP = "changelog_pr"
NOTIFICATION_STEP = "notification"


class StepStatus(str, enum.Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class StepResult:
    name: str
    status: StepStatus
    reason: str = ""
    details: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is StepStatus.OK


@dataclass
class RunOutcome:
    """What a run did. Returned even when individual steps failed."""

    skipped: bool = False
    reason: str = ""
    version_info: VersionInfo | None = None
    notes: ReleaseNotes | None = None
    commits_analyzed: int = 0
    steps: list[StepResult] = field(default_factory=list)

    def step(self, name: str) -> StepResult | None:
        for result in self.steps:
            if result.name == name:
                return result
        return None

    def _ok(self, name: str) -> bool:
        result = self.step(name)
        return result is not None and result.ok

    @property
    def tag_created(self) -> bool:
        return self._ok(TAG_STEP)

    @property
    def changelog_updated(self) -> bool:
        return self._ok(CHANGELOG_STEP)

    @property
    def changelog_path(self) -> str:
        result = self.step(CHANGELOG_STEP)
        return result.details.get("path", "") if result else ""

    @property
    def release_created(self) -> bool:
        return self._ok(RELEASE_STEP)

    @property
    def release_url(self) -> str:
        result = self.step(RELEASE_STEP)
        return result.details.get("url", "") if result else ""

    @property
    def notification_sent(self) -> bool:
        return self._ok(NOTIFICATION_STEP)


def _get_generator(config: Config) -> BaseGenerator | None:
    backend = config.generator_backend
    if backend == "vertex":
        return VertexGenerator(project_id=config.gcp_project_id, region=config.gcp_region, model=config.model)
    if backend == "anthropic":
        return AnthropicGenerator(api_key=config.anthropic_api_key, model=config.model)
    return None


def _short_commit(git: GitRepository, context: ActionContext) -> str:
    try:
        short = git.short_commit()
    except (OSError, GitError) as e:
        logger.warning("Could not read the short commit id: %s", e)
        short = ""
    return short or context.sha[:7] or UNKNOWN_COMMIT


def _skipped(name: str, reason: str) -> StepResult:
    logger.info("Skipping %s: %s", name, reason)
    return StepResult(name=name, status=StepStatus.SKIPPED, reason=reason)


def _run_step(name: str, fn: Callable[[], StepResult]) -> StepResult:
    """Run one side-effect step, turning any exception into a FAILED result."""
    try:
        return fn()
    except Exception as e:
        logger.error("Step %s failed: %s", name, e)
        return StepResult(name=name, status=StepStatus.FAILED, reason=str(e))


# --------------------------------------------------------------------------- #
# Steps                                                                        #
# --------------------------------------------------------------------------- #


def _tag_step(git: GitRepository, version_info: VersionInfo, notes: ReleaseNotes) -> StepResult:
    tag = version_info.tag_name
    console.print(f"[cyan]Creating git tag {tag}...[/cyan]")
    if not git.create_tag(tag, f"Release {tag}\n\n{notes.release_notes}"):
        return StepResult(name=TAG_STEP, status=StepStatus.FAILED, reason=f"Failed to create tag {tag}")
    pushed = git.push_tag(tag)
    if not pushed:
        logger.warning("Tag %s created locally but failed to push to remote", tag)
    return StepResult(name=TAG_STEP, status=StepStatus.OK, details={"tag": tag, "pushed": pushed})


def _changelog_step(
    config: Config,
    context: ActionContext,
    git: GitRepository,
    version_info: VersionInfo,
    notes: ReleaseNotes,
    analysis,
    links: ReleaseLinks,
    workdir: Path,
) -> StepResult:
    console.print("[cyan]Updating changelog...[/cyan]")
    result = update_changelog(
        workdir / config.changelog_file,
        notes.release_notes,
        version_info,
        config.environment,
        analysis=analysis,
        links=links,
        repo_name=context.repository,
        include_pr_links=config.include_pr_links,
        include_commit_links=config.include_commit_links,
    )
    if not result.updated:
        return StepResult(name=CHANGELOG_STEP, status=StepStatus.FAILED, reason=result.reason)

    details = {"path": result.path, "committed": False}
    if config.is_release_grade:
        tag = version_info.tag_name
        details["committed"] = git.commit_and_push(
            [str(Path(result.path).resolve())],
            changelog_commit_message(tag),
            branch=changelog_branch(tag),
        )
        if details["committed"]:
            console.print(f"[green]Changelog committed to {changelog_branch(tag)}[/green]")
    return StepResult(name=CHANGELOG_STEP, status=StepStatus.OK, details=details)


def _release_step(
    config: Config,
    context: ActionContext,
    repo,
    version_info: VersionInfo,
    notes: ReleaseNotes,
    analysis,
    links: ReleaseLinks,
    assets: Iterable[ReleaseAsset],
) -> StepResult:
    console.print("[cyan]Creating GitHub release...[/cyan]")
    name = build_release_name(version_info, config.environment, analysis.title)
    body = build_release_body(
        notes.release_notes,
        version_info,
        config.environment,
        analysis,
        links,
        include_pr_links=config.include_pr_links,
        include_commit_links=config.include_commit_links,
    )
    result = create_release(
        repo,
        version_info.tag_name,
        name,
        body,
        target_commitish=context.sha or None,
        draft=config.release_draft,
        prerelease=config.release_prerelease or not config.is_release_grade,
    )
    if not result.created:
        return StepResult(name=RELEASE_STEP, status=StepStatus.FAILED, reason=result.reason)

    details = {"url": result.url, "updated": result.updated, "assets": []}
    assets = list(assets)
    if assets and result.release is not None:
        uploaded = upload_release_assets(result.release, assets)
        details["assets"] = [getattr(a, "name", "") for a in uploaded]
    return StepResult(name=RELEASE_STEP, status=StepStatus.OK, details=details)


def _changelog_pr_step(config: Config, repo, version_info: VersionInfo) -> StepResult:
    result = create_changelog_pull_request(repo, version_info.tag_name, config.target_branch)
    if not result.created:
        return StepResult(name=CHANGELOG_PR_STEP, status=StepStatus.FAILED, reason=result.reason)
    return StepResult(name=CHANGELOG_PR_STEP, status=StepStatus.OK, details={"url": result.url})


def _notification_step(
    config: Config, context: ActionContext, version_info: VersionInfo, notes: ReleaseNotes
) -> StepResult:
    console.print("[cyan]Sending Slack notification...[/cyan]")
    result = send_notification(config, notes.notification_message, version_info, context)
    if not result.sent:
        return StepResult(name=NOTIFICATION_STEP, status=StepStatus.FAILED, reason=result.reason)
    return StepResult(name=NOTIFICATION_STEP, status=StepStatus.OK, details={"status_code": result.status_code})


# --------------------------------------------------------------------------- #
# Entry point                                                                  #
# --------------------------------------------------------------------------- #


def _print_summary(outcome: RunOutcome) -> None:
    def label(result: StepResult | None, done: str) -> str:
        if result is None or result.status is StepStatus.SKIPPED:
            return "[dim]Skipped[/dim]"
        if result.ok:
            return f"[green]{done}[/green]"
        return f"[red]Failed[/red] ({result.reason})"

    console.print("\n[bold]Release summary[/bold]")
    console.print(f"  Version:        {outcome.version_info.new_version}")
    console.print(f"  Generated:      {'Yes' if outcome.notes.generated else 'No (template)'}")
    console.print(f"  Tag:            {label(outcome.step(TAG_STEP), 'Created')}")
    console.print(f"  Changelog:      {label(outcome.step(CHANGELOG_STEP), 'Updated')}")
    console.print(f"  GitHub release: {label(outcome.step(RELEASE_STEP), 'Created')}")
    console.print(f"  Changelog PR:   {label(outcome.step(CHANGELOG_PR_STEP), 'Opened')}")
    console.print(f"  Slack:          {label(outcome.step(NOTIFICATION_STEP), 'Sent')}")


def run_release(
    config: Config,
    context: ActionContext,
    token: str | None = None,
    *,
    git: GitRepository | None = None,
    repo_obj=None,
    generator: BaseGenerator | None = None,
    workdir: str | Path = ".",
    assets: Iterable[ReleaseAsset] = (),
    now: datetime | None = None,
) -> RunOutcome:
    """Run the release pipeline for one merged-PR event.

    Returns RunOutcome(skipped=True) when the trigger conditions are not
    met. Raises on fatal errors (no token, PR not found); the artifact
    files are cleaned up either way.
    """
    workdir = Path(workdir)
    try:
        decision = evaluate(context, config)
        if not decision.run:
            console.print(f"[yellow]Skipping release notes generation: {decision.reason}[/yellow]")
            return RunOutcome(skipped=True, reason=decision.reason)

        token = token or config.github_token
        if not token:
            raise ValueError("GitHub token is required. Set the 'token' input or GITHUB_TOKEN environment variable.")

        if git is None:
            git = GitRepository(
                cwd=str(workdir),
                fallback_count=config.max_commits_fallback,
                user_name=config.git_user_name,
                user_email=config.git_user_email,
            )
        repo = repo_obj if repo_obj is not None else get_repo(context.repository, token)

        console.print(f"[cyan]Analyzing pull request #{context.pr_number}...[/cyan]")
        data = fetch_pull_request(repo, context.pr_number)
        latest_tag = git.latest_tag()
        if not data.commits:
            logger.info("PR commit list is empty, using git history since %s", latest_tag)
            data.commits = git.commits_since(latest_tag)
            data.analysis = analyze_changes(data.raw, data.diff, data.commits)
        save_analysis_files(data, workdir)
        analysis = data.analysis

        increment = suggest_increment(config.version_strategy, analysis)
        logger.info("Version increment: %s", increment)
        short_commit = "" if config.is_release_grade else _short_commit(git, context)
        version_info = derive_version(
            latest_tag,
            short_commit,
            increment,
            config.is_release_grade,
            prefix=config.version_prefix,
            now=now,
        )
        console.print(
            f"[green]Version {version_info.new_version}[/green] "
            f"(previous: {version_info.previous_version}, build {version_info.build_number})"
        )

        if generator is None:
            try:
                generator = _get_generator(config)
            except Exception as e:
                logger.warning("Could not initialize generation backend: %s", e)
                generator = None

        notes = synthesize_release_notes(config, analysis, data.commits, version_info, generator, workdir)
        console.print(f"[green]Release notes generated {'by the model' if notes.generated else 'from template'}[/green]")

        outcome = RunOutcome(version_info=version_info, notes=notes, commits_analyzed=len(data.commits))
        links = ReleaseLinks(
            compare_url=context.compare_url(version_info.previous_version, version_info.tag_name),
            pr_number=data.number,
            pr_url=data.html_url,
            commits=data.commits,
        )

        if not config.is_release_grade:
            outcome.steps.append(_skipped(TAG_STEP, "not a release environment"))
        elif not config.is_release_enabled:
            outcome.steps.append(_skipped(TAG_STEP, "releases disabled"))
        else:
            outcome.steps.append(_run_step(TAG_STEP, lambda: _tag_step(git, version_info, notes)))

        if config.is_changelog_enabled:
            outcome.steps.append(
                _run_step(
                    CHANGELOG_STEP,
                    lambda: _changelog_step(config, context, git, version_info, notes, analysis, links, workdir),
                )
            )
        else:
            outcome.steps.append(_skipped(CHANGELOG_STEP, "changelog disabled"))

        if config.is_release_enabled:
            outcome.steps.append(
                _run_step(
                    RELEASE_STEP,
                    lambda: _release_step(config, context, repo, version_info, notes, analysis, links, assets),
                )
            )
        else:
            outcome.steps.append(_skipped(RELEASE_STEP, "releases disabled"))

        if outcome.changelog_updated and config.is_release_grade:
            outcome.steps.append(_run_step(CHANGELOG_PR_STEP, lambda: _changelog_pr_step(config, repo, version_info)))
        else:
            outcome.steps.append(_skipped(CHANGELOG_PR_STEP, "no release changelog to propose"))

        if config.is_slack_enabled:
            outcome.steps.append(
                _run_step(NOTIFICATION_STEP, lambda: _notification_step(config, context, version_info, notes))
            )
        else:
            outcome.steps.append(_skipped(NOTIFICATION_STEP, "Slack notifications disabled"))

        for result in outcome.steps:
            if result.status is StepStatus.FAILED:
                logger.warning("%s step failed: %s", result.name, result.reason)

        _print_summary(outcome)
        return outcome
    finally:
        cleanup(workdir)
