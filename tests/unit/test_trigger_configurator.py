"""Tests for the TriggerConfigurator: anchoring, event mapping, rejection."""

from __future__ import annotations

import re

import pytest

from pipeforge.core.errors import InvalidTriggerError
from pipeforge.core.trigger_configurator import (
    TriggerConfigurator,
    anchor_exact_branch,
    anchor_ref_pattern,
    filter_group,
)
from pipeforge.models.triggers import (
    EventKind,
    FilterType,
    MatchMode,
    TriggerConfiguration,
    TriggerSpec,
    WebhookFilter,
)


@pytest.fixture
def configurator() -> TriggerConfigurator:
    return TriggerConfigurator()


class TestConfigure:
    def test_develop_push_produces_exactly_two_filters(self, configurator: TriggerConfigurator):
        config = configurator.configure(TriggerSpec(), "develop")
        assert config.webhook is True
        assert config.build_type == "BUILD"
        assert config.filter_groups == [[
            WebhookFilter(type=FilterType.EVENT, pattern="PUSH"),
            WebhookFilter(type=FilterType.HEAD_REF, pattern="^refs/heads/develop$"),
        ]]

    def test_ref_pattern_takes_precedence_over_branch(self, configurator: TriggerConfigurator):
        config = configurator.configure(TriggerSpec(ref_pattern="main"), "develop")
        assert config.filter_groups[0][1].pattern == "^refs/heads/main$"

    def test_regex_alternation_stays_anchored(self, configurator: TriggerConfigurator):
        spec = TriggerSpec(ref_pattern="main|develop", match=MatchMode.REGEX)
        pattern = configurator.configure(spec, None).filter_groups[0][1].pattern
        assert re.search(pattern, "refs/heads/main-hotfix") is None

    def test_webhook_disabled_yields_empty_configuration(self, configurator: TriggerConfigurator):
        config = configurator.configure(TriggerSpec(webhook=False), "develop")
        assert config == TriggerConfiguration()
        assert config.filter_groups == []

    def test_no_trigger_yields_empty_configuration(self, configurator: TriggerConfigurator):
        assert configurator.configure(None, "develop").webhook is False

    def test_webhook_without_ref_is_an_error(self, configurator: TriggerConfigurator):
        with pytest.raises(InvalidTriggerError, match="no ref pattern"):
            configurator.configure(TriggerSpec(), None, location="Build.trigger")

    def test_webhook_with_blank_branch_is_an_error(self, configurator: TriggerConfigurator):
        with pytest.raises(InvalidTriggerError):
            configurator.configure(TriggerSpec(), "   ")

    def test_error_carries_location(self, configurator: TriggerConfigurator):
        with pytest.raises(InvalidTriggerError) as exc_info:
            configurator.configure(TriggerSpec(), "release.1", location="SiteBuild.trigger")
        assert exc_info.value.location == "SiteBuild.trigger"

    def test_pull_request_uses_base_ref(self, configurator: TriggerConfigurator):
        spec = TriggerSpec(event=EventKind.PULL_REQUEST_CREATED)
        config = configurator.configure(spec, "main")
        assert config.filter_groups == [[
            WebhookFilter(type=FilterType.EVENT, pattern="PULL_REQUEST_CREATED"),
            WebhookFilter(type=FilterType.BASE_REF, pattern="^refs/heads/main$"),
        ]]


class TestExactAnchoring:
    def test_bare_name_is_anchored(self):
        assert anchor_exact_branch("develop") == "^refs/heads/develop$"

    def test_qualified_ref_not_doubled(self):
        assert anchor_exact_branch("refs/heads/develop") == "^refs/heads/develop$"

    def test_slashes_allowed(self):
        assert anchor_exact_branch("feature/login") == "^refs/heads/feature/login$"

    def test_anchoring_excludes_similar_branches(self):
        pattern = anchor_exact_branch("develop")
        assert re.match(pattern, "refs/heads/develop")
        assert re.match(pattern, "refs/heads/develop-v2") is None
        assert re.match(pattern, "refs/heads/old-develop") is None

    @pytest.mark.parametrize("branch", ["release.1", "feat*", "v[12]", "a|b", "(x)", "^main"])
    def test_unescaped_metacharacters_rejected(self, branch: str):
        with pytest.raises(InvalidTriggerError, match="metacharacters"):
            anchor_exact_branch(branch)

    def test_escaped_metacharacters_accepted(self):
        assert anchor_exact_branch(r"release\.1") == r"^refs/heads/release\.1$"

    @pytest.mark.parametrize("branch", ["", "  ", "refs/heads/"])
    def test_empty_branch_rejected(self, branch: str):
        with pytest.raises(InvalidTriggerError, match="empty"):
            anchor_exact_branch(branch)


class TestRegexAnchoring:
    def test_bare_regex_qualified_and_anchored(self):
        assert anchor_ref_pattern("release/.*") == "^refs/heads/release/.*$"

    def test_existing_anchors_not_doubled(self):
        assert anchor_ref_pattern("^develop$") == "^refs/heads/develop$"

    def test_other_ref_namespaces_kept(self):
        assert anchor_ref_pattern("refs/tags/v.*") == "^refs/tags/v.*$"

    def test_uncompilable_regex_rejected(self):
        with pytest.raises(InvalidTriggerError, match="not a valid regular expression"):
            anchor_ref_pattern("release/(")

    def test_empty_regex_rejected(self):
        with pytest.raises(InvalidTriggerError):
            anchor_ref_pattern("^$")

    def test_alternation_grouped_before_anchoring(self):
        assert anchor_ref_pattern("main|develop") == "^refs/heads/(?:main|develop)$"

    def test_alternation_excludes_similar_branches(self):
        pattern = anchor_ref_pattern("main|develop")
        assert re.search(pattern, "refs/heads/main")
        assert re.search(pattern, "refs/heads/develop")
        for ref in ("refs/heads/main-hotfix", "refs/heads/feature-develop", "refs/tags/develop"):
            assert re.search(pattern, ref) is None, ref

    def test_qualified_alternation_grouped(self):
        pattern = anchor_ref_pattern("refs/heads/main|refs/tags/v.*")
        assert pattern == "^(?:refs/heads/main|refs/tags/v.*)$"
        assert re.search(pattern, "refs/heads/main-hotfix") is None

    @pytest.mark.parametrize("body", ["(main|develop)", "release-[a|b]", r"main\|develop"])
    def test_nested_or_escaped_bar_not_grouped(self, body: str):
        assert anchor_ref_pattern(body) == f"^refs/heads/{body}$"

    def test_regex_mode_through_filter_group(self):
        group = filter_group(EventKind.PUSH, "release/.*", MatchMode.REGEX)
        assert group[1].pattern == "^refs/heads/release/.*$"
        assert re.match(group[1].pattern, "refs/heads/release/1.2")
