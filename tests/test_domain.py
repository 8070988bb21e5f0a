"""Tests for domain objects: repositories, policies, working context, results."""

import pytest

from tomono.domain import (
    BranchFilter,
    BranchMergeResult,
    BranchState,
    ConsolidationSummary,
    InvalidStateTransition,
    OperationStatus,
    PathRewriteRule,
    PruneResult,
    SourceRepository,
    SourceResult,
    TagRenameResult,
    TargetRepository,
    WorkingContext,
)


class TestSourceRepository:
    """Tests for SourceRepository."""

    def test_refs(self):
        source = SourceRepository(url="u", name="alpha")

        assert source.ref("feature/x") == "refs/remotes/alpha/feature/x"
        assert source.scratch_branch("master") == "alpha-master"
        assert source.tag_namespace == "refs/tomono/alpha/tags/"

    def test_to_dict_sorts_sets(self):
        source = SourceRepository(url="u", name="alpha", branches={"b", "a"})

        assert source.to_dict()["branches"] == ["a", "b"]


class TestTargetRepository:
    """Tests for TargetRepository."""

    def test_name_from_path(self):
        assert TargetRepository(path="/tmp/work/core/", url="u").name == "core"


class TestPathRewriteRule:
    """Tests for PathRewriteRule."""

    def test_prefix_without_subdir(self):
        rule = PathRewriteRule.for_source("alpha")

        assert rule.prefix == "alpha/"
        assert rule.apply("src/main.c") == "alpha/src/main.c"

    def test_prefix_with_subdir(self):
        rule = PathRewriteRule.for_source("alpha", "libs")

        assert rule.components == ("libs", "alpha")
        assert rule.apply("a.txt") == "libs/alpha/a.txt"

    def test_subdir_slashes_are_normalised(self):
        assert PathRewriteRule.for_source("alpha", "/third/party/").prefix == "third/party/alpha/"


class TestBranchFilter:
    """Tests for BranchFilter."""

    def test_default_excludes_bazel_migration_branches(self):
        branch_filter = BranchFilter()

        assert branch_filter.is_excluded("bazel-mig-temp")
        assert branch_filter.is_excluded("feature/bazel-mig-2")
        assert not branch_filter.is_excluded("bazel-migration")
        assert not branch_filter.is_excluded("master")

    def test_from_tokens_deduplicates(self):
        branch_filter = BranchFilter.from_tokens(["wip-", "", "wip-", "tmp/"])

        assert branch_filter.exclude == ("wip-", "tmp/")

    def test_select_preserves_order(self):
        branch_filter = BranchFilter(("wip-",))

        included, excluded = branch_filter.select(["b", "wip-1", "a", "wip-2"])

        assert included == ["b", "a"]
        assert excluded == ["wip-1", "wip-2"]

    def test_no_tokens_excludes_nothing(self):
        assert not BranchFilter(()).is_excluded("bazel-mig-temp")


class TestWorkingContext:
    """Tests for the branch state machine."""

    def test_orphan_path(self):
        context = WorkingContext(path="/mono")
        context.begin("alpha", "feature", present=False)

        assert context.state is BranchState.NOT_PRESENT
        context.advance(BranchState.ORPHAN_CREATED)
        assert context.checked_out == "feature"
        context.advance(BranchState.HISTORY_REWRITTEN)
        context.advance(BranchState.MERGED)
        assert context.state is BranchState.MERGED

    def test_present_path(self):
        context = WorkingContext(path="/mono")
        context.begin("alpha", "master", present=True)

        context.advance(BranchState.CLEANED)
        context.advance(BranchState.HISTORY_REWRITTEN)
        context.advance(BranchState.MERGED)

    def test_rewrite_requires_prepared_branch(self):
        context = WorkingContext(path="/mono")
        context.begin("alpha", "master", present=True)

        with pytest.raises(InvalidStateTransition, match="alpha/master"):
            context.advance(BranchState.HISTORY_REWRITTEN)

    def test_merge_requires_rewrite(self):
        context = WorkingContext(path="/mono")
        context.begin("alpha", "master", present=False)
        context.advance(BranchState.ORPHAN_CREATED)

        with pytest.raises(InvalidStateTransition):
            context.advance(BranchState.MERGED)

    def test_cannot_clean_an_orphan(self):
        context = WorkingContext(path="/mono")
        context.begin("alpha", "master", present=False)

        with pytest.raises(InvalidStateTransition):
            context.advance(BranchState.CLEANED)

    def test_merged_is_terminal(self):
        context = WorkingContext(path="/mono")
        context.begin("alpha", "master", present=False)
        for state in (BranchState.ORPHAN_CREATED, BranchState.HISTORY_REWRITTEN,
                      BranchState.MERGED):
            context.advance(state)

        with pytest.raises(InvalidStateTransition):
            context.advance(BranchState.HISTORY_REWRITTEN)

    def test_next_branch_may_start_after_merge(self):
        context = WorkingContext(path="/mono")
        context.begin("alpha", "master", present=False)
        for state in (BranchState.ORPHAN_CREATED, BranchState.HISTORY_REWRITTEN,
                      BranchState.MERGED):
            context.advance(state)

        context.begin("alpha", "feature", present=False)

        assert context.branch == "feature"

    def test_cannot_start_mid_branch(self):
        context = WorkingContext(path="/mono")
        context.begin("alpha", "master", present=True)

        with pytest.raises(InvalidStateTransition):
            context.begin("beta", "master", present=True)
        with pytest.raises(InvalidStateTransition):
            context.detach_at("refs/remotes/beta/master")

    def test_require(self):
        context = WorkingContext(path="/mono")
        context.begin("alpha", "master", present=True)

        context.require(BranchState.PRESENT)
        with pytest.raises(InvalidStateTransition, match="expected merged"):
            context.require(BranchState.MERGED)

    def test_detach_at(self):
        context = WorkingContext(path="/mono")
        context.detach_at("refs/remotes/alpha/master")

        assert context.detached
        assert context.describe() == "refs/remotes/alpha/master"


class TestResults:
    """Tests for operation result objects."""

    def _summary(self):
        summary = ConsolidationSummary(target="mono", url="u", published=True)
        summary.add_source(SourceResult(
            name="alpha",
            url="ua",
            prune=PruneResult(source="alpha", baseline="master", merged=["old"], deleted=True),
            branches=[
                BranchMergeResult("alpha", "master", OperationStatus.SUCCESS, created=True),
                BranchMergeResult("alpha", "bazel-mig-x", OperationStatus.SKIPPED,
                                  reason="excluded"),
            ],
            tags=[TagRenameResult("alpha", "1-RC;.;1", "1-RC;alpha;1")],
        ))
        summary.add_source(SourceResult(
            name="beta",
            url="ub",
            prune=PruneResult(source="beta", baseline="master", merged=["x"], deleted=False),
            branches=[BranchMergeResult("beta", "master", OperationStatus.SUCCESS)],
        ))
        return summary

    def test_counts(self):
        summary = self._summary()

        assert summary.branches_merged == 2
        assert summary.branches_created == 1
        assert summary.branches_pruned == 1
        assert summary.tags_renamed == 1

    def test_to_dict(self):
        d = self._summary().to_dict()

        assert d['type'] == 'summary'
        assert d['sources'] == 2
        assert d['published'] is True

    def test_source_to_dict_only_lists_deleted_branches(self):
        summary = self._summary()

        assert summary.sources[0].to_dict()['pruned'] == ["old"]
        assert summary.sources[1].to_dict()['pruned'] == []

    def test_skipped_branch_reason(self):
        source = self._summary().sources[0]

        assert [b.branch for b in source.skipped] == ["bazel-mig-x"]
        assert source.skipped[0].to_dict()['reason'] == "excluded"

    def test_prune_empty(self):
        assert PruneResult(source="a", baseline="master").empty
