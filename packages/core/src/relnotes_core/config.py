import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "trigger_label": "",  # empty = run on every merged PR
    "target_branch": "main",
    "environment": "PROD",
    "version_strategy": "patch",
    "version_prefix": "v",
    "custom_prompt": None,
    "model": None,  # None = provider default
    "use_vertex_ai": False,
    "gcp_project_id": None,
    "gcp_region": "us-east5",
    "create_release": True,
    "release_draft": False,
    "release_prerelease": False,
    "update_changelog": True,
    "changelog_file": "CHANGELOG.md",
    "enable_slack": False,
    "slack_channel": None,
    "slack_mention_users": "",
    "slack_mention_groups": "",
    "git_user_name": "github-actions[bot]",
    "git_user_email": "github-actions[bot]@users.noreply.github.com",
    "skip_if_no_changes": False,
    "include_commit_links": True,
    "include_pr_links": True,
    "max_commits_fallback": 10,
}

VERSION_STRATEGIES = ("patch", "minor", "major", "auto")
RELEASE_ENVIRONMENTS = {"prod", "production"}

# GitHub Actions exposes `with:` inputs as INPUT_<NAME> environment variables.
_ACTION_INPUT_PREFIX = "INPUT_"

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off", ""}


class ConfigError(ValueError):
    """Raised when the merged configuration fails validation.

    Carries every problem found, not just the first one, so a CI run reports
    the full list in a single failure.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Configuration validation failed:\n" + "\n".join(f"- {e}" for e in self.errors))


def load_config(
    config_path: str = ".relnotes.yml",
    cli_overrides: Optional[dict] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .relnotes.yml in the current directory
      3. GitHub Actions inputs (INPUT_* environment variables)
      4. CLI argument overrides
    """
    env = os.environ if environ is None else environ
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    for key in DEFAULT_CONFIG:
        value = env.get(_ACTION_INPUT_PREFIX + key.upper())
        # Actions passes unset inputs as empty strings; treat those as absent.
        if value:
            config[key] = value

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = env.get("INPUT_TOKEN") or env.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = env.get("INPUT_ANTHROPIC_API_KEY") or env.get("ANTHROPIC_API_KEY")
    config["slack_webhook_url"] = (
        config.get("slack_webhook_url") or env.get("INPUT_SLACK_WEBHOOK_URL") or env.get("SLACK_WEBHOOK_URL")
    )

    return config


def _as_bool(value, key: str, errors: list[str]) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    errors.append(f"{key} must be a boolean, got {value!r}")
    return False


def _as_str(value) -> str:
    return "" if value is None else str(value).strip()


@dataclass(frozen=True)
class Config:
    """Validated, immutable run parameters.

    Built once at the entry point via from_dict() and passed explicitly to
    every component; nothing below the CLI reads os.environ.
    """

    trigger_label: str = ""
    target_branch: str = "main"
    environment: str = "PROD"
    version_strategy: str = "patch"
    version_prefix: str = "v"
    github_token: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    custom_prompt: Optional[str] = None
    model: Optional[str] = None
    use_vertex_ai: bool = False
    gcp_project_id: Optional[str] = None
    gcp_region: str = "us-east5"
    create_release: bool = True
    release_draft: bool = False
    release_prerelease: bool = False
    update_changelog: bool = True
    changelog_file: str = "CHANGELOG.md"
    enable_slack: bool = False
    slack_webhook_url: Optional[str] = None
    slack_channel: Optional[str] = None
    slack_mention_users: str = ""
    slack_mention_groups: str = ""
    git_user_name: str = "github-actions[bot]"
    git_user_email: str = "github-actions[bot]@users.noreply.github.com"
    skip_if_no_changes: bool = False
    include_commit_links: bool = True
    include_pr_links: bool = True
    max_commits_fallback: int = 10

    @classmethod
    def from_dict(cls, raw: Mapping) -> "Config":
        """Coerce and validate a merged config dict, raising ConfigError on any problem."""
        errors: list[str] = []
        values: dict = {}

        for f in fields(cls):
            if f.name not in raw:
                continue
            value = raw[f.name]
            if f.type is bool:
                value = _as_bool(value, f.name, errors)
            elif f.type is int:
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    errors.append(f"{f.name} must be an integer, got {value!r}")
                    continue
            elif f.type is str:
                value = _as_str(value)
            elif value is not None:
                value = _as_str(value) or None
            values[f.name] = value

        strategy = values.get("version_strategy", cls.version_strategy).lower()
        values["version_strategy"] = strategy
        if strategy not in VERSION_STRATEGIES:
            errors.append(f"Invalid version_strategy: {strategy}. Must be one of: {', '.join(VERSION_STRATEGIES)}")

        if values.get("enable_slack") and not values.get("slack_webhook_url"):
            errors.append("slack_webhook_url is required when enable_slack is true")

        if values.get("use_vertex_ai") and not values.get("gcp_project_id"):
            errors.append("gcp_project_id is required when use_vertex_ai is true")

        if values.get("max_commits_fallback", cls.max_commits_fallback) < 1:
            errors.append("max_commits_fallback must be at least 1")

        if values.get("update_changelog", cls.update_changelog) and values.get("changelog_file") == "":
            errors.append("changelog_file is required when update_changelog is true")

        if errors:
            raise ConfigError(errors)

        config = cls(**values)
        if config.generator_backend is None:
            logger.warning("No generation backend configured. Release notes will use the fallback template.")
        return config

    @property
    def is_release_grade(self) -> bool:
        return self.environment.strip().lower() in RELEASE_ENVIRONMENTS

    @property
    def is_release_enabled(self) -> bool:
        return self.create_release

    @property
    def is_changelog_enabled(self) -> bool:
        return self.update_changelog

    @property
    def is_slack_enabled(self) -> bool:
        return self.enable_slack and bool(self.slack_webhook_url)

    @property
    def generator_backend(self) -> Optional[str]:
        """Which generation backend to use: "vertex", "anthropic", or None for template only."""
        if self.use_vertex_ai:
            return "vertex"
        if self.anthropic_api_key:
            return "anthropic"
        return None
