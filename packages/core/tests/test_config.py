"""Tests for configuration loading and validation."""

import pytest

from relnotes_core.config import DEFAULT_CONFIG, Config, ConfigError, load_config


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"), environ={})
    assert config["version_strategy"] == "patch"
    assert config["environment"] == "PROD"
    assert config["changelog_file"] == "CHANGELOG.md"
    assert config["max_commits_fallback"] == 10
    assert config["github_token"] is None


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".relnotes.yml"
    cfg.write_text("version_strategy: minor\nenvironment: DEV\n")
    config = load_config(config_path=str(cfg), environ={})
    assert config["version_strategy"] == "minor"
    assert config["environment"] == "DEV"


def test_action_inputs_override_config_file(tmp_path):
    cfg = tmp_path / ".relnotes.yml"
    cfg.write_text("version_strategy: minor\n")
    config = load_config(config_path=str(cfg), environ={"INPUT_VERSION_STRATEGY": "major"})
    assert config["version_strategy"] == "major"


def test_empty_action_inputs_are_ignored(tmp_path):
    cfg = tmp_path / ".relnotes.yml"
    cfg.write_text("trigger_label: release\n")
    config = load_config(config_path=str(cfg), environ={"INPUT_TRIGGER_LABEL": ""})
    assert config["trigger_label"] == "release"


def test_cli_overrides_win(tmp_path):
    config = load_config(
        config_path=str(tmp_path / "nonexistent.yml"),
        cli_overrides={"environment": "STAGING"},
        environ={"INPUT_ENVIRONMENT": "DEV"},
    )
    assert config["environment"] == "STAGING"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".relnotes.yml"
    cfg.write_text("environment: DEV\n")
    config = load_config(config_path=str(cfg), cli_overrides={"environment": None}, environ={})
    assert config["environment"] == "DEV"


def test_credentials_resolved_from_env(tmp_path):
    config = load_config(
        config_path=str(tmp_path / "nonexistent.yml"),
        environ={
            "GITHUB_TOKEN": "gh-token",
            "ANTHROPIC_API_KEY": "ant-key",
            "SLACK_WEBHOOK_URL": "https://hooks.slack.com/services/A/B/c",
        },
    )
    assert config["github_token"] == "gh-token"
    assert config["anthropic_api_key"] == "ant-key"
    assert config["slack_webhook_url"] == "https://hooks.slack.com/services/A/B/c"


def test_input_token_preferred_over_github_token(tmp_path):
    config = load_config(
        config_path=str(tmp_path / "nonexistent.yml"),
        environ={"INPUT_TOKEN": "input", "GITHUB_TOKEN": "env"},
    )
    assert config["github_token"] == "input"


def test_defaults_dict_is_not_mutated(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"), cli_overrides={"environment": "DEV"}, environ={})
    assert config["environment"] == "DEV"
    assert DEFAULT_CONFIG["environment"] == "PROD"


class TestConfigFromDict:
    def test_builds_from_defaults(self):
        config = Config.from_dict(DEFAULT_CONFIG)
        assert config.version_strategy == "patch"
        assert config.is_release_grade is True
        assert config.generator_backend is None

    def test_coerces_string_booleans_and_ints(self):
        config = Config.from_dict({"create_release": "false", "enable_slack": "no", "max_commits_fallback": "5"})
        assert config.create_release is False
        assert config.enable_slack is False
        assert config.max_commits_fallback == 5

    def test_strategy_is_lowercased(self):
        assert Config.from_dict({"version_strategy": "MINOR"}).version_strategy == "minor"

    def test_invalid_strategy_raises(self):
        with pytest.raises(ConfigError) as exc:
            Config.from_dict({"version_strategy": "huge"})
        assert "Invalid version_strategy" in str(exc.value)

    def test_all_errors_aggregated(self):
        with pytest.raises(ConfigError) as exc:
            Config.from_dict(
                {
                    "version_strategy": "huge",
                    "enable_slack": True,
                    "use_vertex_ai": True,
                    "max_commits_fallback": 0,
                }
            )
        assert len(exc.value.errors) == 4
        assert str(exc.value).startswith("Configuration validation failed:")

    def test_slack_requires_webhook(self):
        with pytest.raises(ConfigError, match="slack_webhook_url"):
            Config.from_dict({"enable_slack": True})

    def test_vertex_requires_project(self):
        with pytest.raises(ConfigError, match="gcp_project_id"):
            Config.from_dict({"use_vertex_ai": True})

    def test_non_integer_fallback_count_raises(self):
        with pytest.raises(ConfigError, match="max_commits_fallback must be an integer"):
            Config.from_dict({"max_commits_fallback": "many"})

    def test_bad_boolean_raises(self):
        with pytest.raises(ConfigError, match="create_release must be a boolean"):
            Config.from_dict({"create_release": "sometimes"})

    def test_empty_changelog_file_raises_when_enabled(self):
        with pytest.raises(ConfigError, match="changelog_file"):
            Config.from_dict({"update_changelog": True, "changelog_file": ""})

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)

    def test_is_frozen(self):
        config = Config.from_dict({})
        with pytest.raises(Exception):
            config.environment = "DEV"


class TestConfigProperties:
    @pytest.mark.parametrize("env", ["PROD", "prod", "Production"])
    def test_release_grade_environments(self, env):
        assert Config.from_dict({"environment": env}).is_release_grade is True

    @pytest.mark.parametrize("env", ["DEV", "staging", "qa"])
    def test_development_environments(self, env):
        assert Config.from_dict({"environment": env}).is_release_grade is False

    def test_slack_enabled_needs_flag_and_url(self):
        url = "https://hooks.slack.com/services/A/B/c"
        assert Config.from_dict({"enable_slack": True, "slack_webhook_url": url}).is_slack_enabled is True
        assert Config.from_dict({"enable_slack": False, "slack_webhook_url": url}).is_slack_enabled is False

    def test_generator_backend_prefers_vertex(self):
        config = Config.from_dict({"use_vertex_ai": True, "gcp_project_id": "proj", "anthropic_api_key": "k"})
        assert config.generator_backend == "vertex"

    def test_generator_backend_anthropic_with_key(self):
        assert Config.from_dict({"anthropic_api_key": "k"}).generator_backend == "anthropic"

    def test_warns_when_no_backend(self, caplog):
        with caplog.at_level("WARNING"):
            Config.from_dict({})
        assert "No generation backend configured" in caplog.text
