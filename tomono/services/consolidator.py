"""
Branch consolidation for tomono.

For one source repository at a time:

1. register it as a remote of the target and fetch it
2. check out its baseline branch (master)
3. delete source branches already merged into the baseline
4. for every other branch: prepare the target branch (existing, resumed
   from origin, or a new orphan), rewrite the source history under
   <subdir>/<name>/, and merge it in with --allow-unrelated-histories
5. publish its tags, renaming release candidates

All checkouts go through one WorkingContext, since the target has a
single working tree.
"""

import logging
from dataclasses import dataclass, field
from typing import Generator, Optional

from ..domain.context import BranchState, WorkingContext
from ..domain.operation import (
    BranchMergeResult,
    OperationStatus,
    PruneResult,
    SourceResult,
)
from ..domain.repository import (
    BranchFilter,
    PathRewriteRule,
    SourceRepository,
    TargetRepository,
)
from ..exit_codes import (
    CommandError,
    FetchFailure,
    MalformedEntry,
    PushFailure,
    UnexpectedMergeConflict,
)
from ..infra.git_client import GitClient, GitCommandError
from .history_rewriter import HistoryRewriter
from .tag_namespacer import TagNamespacer

logger = logging.getLogger(__name__)


@dataclass
class ConsolidationOptions:
    """Options for a consolidation run."""
    subdir: Optional[str] = None
    resume: bool = False
    baseline_branch: str = "master"
    prune_merged: bool = True
    branch_filter: BranchFilter = field(default_factory=BranchFilter)
    target_remote: str = "origin"
    fetch_jobs: int = 1  # Concurrent fetches before merging (1 = fetch inline)
    push: bool = True


class BranchConsolidator:
    """
    Folds source repositories into the target, one branch at a time.

    Example:
        consolidator = BranchConsolidator(git, target, context, options)
        for message in consolidator.consolidate(source):
            print(message)
    """

    def __init__(
        self,
        git_client: GitClient,
        target: TargetRepository,
        context: WorkingContext,
        options: ConsolidationOptions,
        rewriter: Optional[HistoryRewriter] = None,
        namespacer: Optional[TagNamespacer] = None,
    ):
        self.git = git_client
        self.target = target
        self.context = context
        self.options = options
        self.rewriter = rewriter or HistoryRewriter(git_client)
        self.namespacer = namespacer or TagNamespacer(git_client)

    # ------------------------------------------------------------------
    # Register & fetch
    # ------------------------------------------------------------------

    def register(self, source: SourceRepository) -> None:
        """Add source as a remote of the target, unless it already is."""
        existing = self.target.remotes.get(source.name) or self.git.remote_url(source.name)
        if existing == source.url:
            self.target.remotes[source.name] = source.url
            return
        if existing is not None:
            raise MalformedEntry(
                f"remote {source.name!r} already points to {existing}, not {source.url}",
                line=source.line,
            )
        self.git.add_remote(source.name, source.url)
        self.target.remotes[source.name] = source.url

    def fetch(self, source: SourceRepository, write_fetch_head: bool = True) -> None:
        """
        Fetch branches and tags of source.

        Raises:
            FetchFailure: network, auth or timeout
        """
        result = self.git.fetch(source.name, source.tag_namespace,
                                write_fetch_head=write_fetch_head)
        if not result.ok:
            raise FetchFailure(source.name, source.url, result.error)

    # ------------------------------------------------------------------
    # Baseline & pruning
    # ------------------------------------------------------------------

    def checkout_baseline(self, source: SourceRepository) -> Optional[str]:
        """Detach at the source's baseline branch; None if it has none."""
        ref = source.ref(self.options.baseline_branch)
        if not self.git.ref_exists(ref):
            logger.warning(
                f"{source.name} has no {self.options.baseline_branch} branch, "
                "skipping merged-branch pruning"
            )
            return None
        self.git.checkout(ref, detach=True)
        self.context.detach_at(ref)
        return ref

    def prune(self, source: SourceRepository, baseline: Optional[str]) -> PruneResult:
        """
        Delete source branches whose tip is already in the baseline.

        Branches are deleted on the source remote, never in the target.
        With pruning disabled the merged branches are only reported.

        Raises:
            PushFailure: the source remote refused the deletion
        """
        result = PruneResult(source=source.name, baseline=self.options.baseline_branch)
        if baseline is None:
            return result

        result.merged = [
            branch for branch in self.git.remote_branches(source.name, merged_into=baseline)
            if branch != self.options.baseline_branch
        ]
        if result.empty or not self.options.prune_merged:
            return result

        push = self.git.push_delete(source.name, result.merged)
        if not push.ok:
            raise PushFailure(source.name, source.url,
                              f"deleting {', '.join(result.merged)}: {push.error}")
        for branch in result.merged:
            ref = source.ref(branch)
            if self.git.ref_exists(ref):
                self.git.delete_ref(ref)
        result.deleted = True
        return result

    # ------------------------------------------------------------------
    # Per-branch merge
    # ------------------------------------------------------------------

    def prepare_branch(self, source: SourceRepository, branch: str) -> bool:
        """
        Check out the target branch that will receive source's branch.

        Returns:
            True if the branch was created as an orphan
        """
        published = f"refs/remotes/{self.options.target_remote}/{branch}"

        if self.git.ref_exists(f"refs/heads/{branch}"):
            self.context.begin(source.name, branch, present=True)
            self.git.checkout(branch)
            self.git.discard_changes()
            self.context.advance(BranchState.CLEANED)
            created = False
        elif self.git.ref_exists(published):
            # Published by an earlier run; continue from it
            self.context.begin(source.name, branch, present=True)
            self.git.checkout_new_branch(branch, published)
            self.git.discard_changes()
            self.context.advance(BranchState.CLEANED)
            created = False
        else:
            self.context.begin(source.name, branch, present=False)
            self.git.checkout_orphan(branch)
            self.git.remove_all()
            self.git.commit_empty(f"Root commit for {branch} branch")
            self.context.advance(BranchState.ORPHAN_CREATED)
            created = True

        self.target.branches.add(branch)
        return created

    def merge_branch(self, source: SourceRepository, branch: str) -> BranchMergeResult:
        """
        Rewrite source's branch under its prefix and merge it into the target.

        Raises:
            UnexpectedMergeConflict: the rewritten tree overlaps target content
        """
        scratch = source.scratch_branch(branch)
        if scratch in self.target.branches:
            raise CommandError(
                f"scratch branch {scratch} for {source.name}/{branch} "
                "clashes with a target branch"
            )

        created = self.prepare_branch(source, branch)

        rule = PathRewriteRule.for_source(source.name, self.options.subdir)
        self.git.create_branch(scratch, source.ref(branch), force=True)
        self.context.require(BranchState.ORPHAN_CREATED, BranchState.CLEANED)
        rewrite = self.rewriter.rewrite(f"refs/heads/{scratch}", rule)
        self.context.advance(BranchState.HISTORY_REWRITTEN)

        self.context.require(BranchState.HISTORY_REWRITTEN)
        before = self.git.rev_parse("HEAD")
        merge = self.git.merge_unrelated(scratch)
        if not merge.ok:
            conflicts = self.git.unmerged_paths()
            if conflicts:
                raise UnexpectedMergeConflict(source.name, branch, conflicts)
            raise GitCommandError(merge)
        after = self.git.rev_parse("HEAD")
        self.context.advance(BranchState.MERGED)

        self.git.delete_branch(scratch)

        return BranchMergeResult(
            source=source.name,
            branch=branch,
            status=OperationStatus.SUCCESS,
            created=created,
            already_up_to_date=before == after,
            commits_rewritten=rewrite.commits,
        )

    # ------------------------------------------------------------------
    # Whole source
    # ------------------------------------------------------------------

    def consolidate(
        self,
        source: SourceRepository,
        fetched: bool = False
    ) -> Generator[str, None, SourceResult]:
        """
        Fold one source into the target.

        Args:
            source: Source to consolidate
            fetched: Source was already registered and fetched

        Yields:
            Progress messages

        Returns:
            SourceResult
        """
        result = SourceResult(name=source.name, url=source.url)

        yield f"Merging in {source.url}.."
        if not fetched:
            self.register(source)
            self.fetch(source)

        baseline = self.checkout_baseline(source)
        result.prune = self.prune(source, baseline)
        if result.prune.deleted:
            for branch in result.prune.merged:
                yield f"  Deleted {source.name}/{branch} (already merged into {result.prune.baseline})"

        pruned = set(result.prune.merged) if result.prune.deleted else set()
        branches = [b for b in self.git.remote_branches(source.name) if b not in pruned]
        source.branches = set(branches)

        included, excluded = self.options.branch_filter.select(branches)
        for branch in excluded:
            yield f"  Skipping {source.name}/{branch} (excluded)"
            result.branches.append(BranchMergeResult(
                source=source.name,
                branch=branch,
                status=OperationStatus.SKIPPED,
                reason="excluded",
            ))

        for branch in included:
            yield f"  {source.name}/{branch} -> {branch}"
            detail = self.merge_branch(source, branch)
            result.branches.append(detail)
            if detail.created:
                yield f"    created orphan branch {branch}"
            if detail.already_up_to_date:
                yield "    already up to date"

        result.tags = self.namespacer.apply(source)
        for rename in result.tags:
            yield f"{rename.old} --> {rename.new}"
        yield "finished changing tags (not pushed yet)"

        return result

    def finish(self) -> None:
        """Leave the target checked out at its baseline branch, if it has one."""
        baseline = self.options.baseline_branch
        if self.git.ref_exists(f"refs/heads/{baseline}"):
            self.git.checkout(baseline)
            self.git.discard_changes()
            self.context.checked_out = baseline
            self.context.detached = False

    def publish(self) -> None:
        """
        Push all branches and tags to the target remote.

        Raises:
            PushFailure: push failed or timed out
        """
        remote = self.options.target_remote
        for push in (self.git.push_all, self.git.push_tags):
            result = push(remote)
            if not result.ok:
                raise PushFailure(remote, self.target.url, result.error)

