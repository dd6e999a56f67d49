"""Tests for the trigger evaluator."""

from relnotes_core.config import Config
from relnotes_core.context import ActionContext
from relnotes_core.trigger import evaluate


def _ctx(event_name="pull_request", merged=True, base="main", labels=()):
    pr = {"merged": merged, "base": {"ref": base}, "labels": [{"name": n} for n in labels]}
    return ActionContext(event_name=event_name, payload={"pull_request": pr}, repository="acme/widgets")


class TestEvaluate:
    def test_non_pull_request_event_rejected(self):
        decision = evaluate(_ctx(event_name="push"), Config())
        assert decision.run is False
        assert decision.reason == "Not a pull request event"

    def test_missing_pr_payload_rejected(self):
        ctx = ActionContext(event_name="pull_request", payload={})
        assert evaluate(ctx, Config()).reason == "Not a pull request event"

    def test_unmerged_pr_rejected(self):
        decision = evaluate(_ctx(merged=False), Config())
        assert decision.run is False
        assert decision.reason == "PR is not merged"

    def test_branch_outside_allow_list_rejected(self):
        decision = evaluate(_ctx(base="feature/x"), Config(target_branch="main"))
        assert decision.run is False
        assert decision.reason == "Target branch feature/x not in allowed list"

    def test_configured_target_branch_accepted(self):
        assert evaluate(_ctx(base="release"), Config(target_branch="release")).run is True

    def test_allow_list_branch_accepted_even_when_not_target(self):
        assert evaluate(_ctx(base="development"), Config(target_branch="release")).run is True

    def test_missing_label_rejected(self):
        decision = evaluate(_ctx(labels=["bug"]), Config(trigger_label="release"))
        assert decision.run is False
        assert decision.reason == "Missing required label: release"

    def test_present_label_accepted(self):
        assert evaluate(_ctx(labels=["release", "bug"]), Config(trigger_label="release")).run is True

    def test_all_conditions_met(self):
        decision = evaluate(_ctx(), Config())
        assert decision.run is True
        assert decision.reason == "All conditions met"

    def test_skip_if_no_changes_does_not_block(self):
        assert evaluate(_ctx(), Config(skip_if_no_changes=True)).run is True

    def test_checks_are_ordered(self):
        # Unmerged and wrong branch: the merged check comes first.
        assert evaluate(_ctx(merged=False, base="feature/x"), Config()).reason == "PR is not merged"
