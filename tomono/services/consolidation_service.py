"""
Consolidation service for tomono.

Runs a whole consolidation: bootstrap the target, fold in every source in
registry order, then publish branches and tags once at the end. The
remote only changes at that final push; everything before it is local.
"""

import logging
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Generator, List, Optional

from ..config import load_config
from ..domain.operation import ConsolidationSummary
from ..domain.repository import BranchFilter, SourceRepository
from ..exit_codes import FetchFailure
from ..infra.git_client import GitClient
from .consolidator import BranchConsolidator, ConsolidationOptions
from .history_rewriter import HistoryRewriter
from .initializer import MonorepoInitializer
from .registry import RepositoryRegistry
from .tag_namespacer import TagNamespacer

logger = logging.getLogger(__name__)


def options_from_config(config: Dict[str, Any], **overrides) -> ConsolidationOptions:
    """
    Build ConsolidationOptions from the "consolidation" config section.

    Keyword overrides win over config values; None means "not given".
    Extra exclusion tokens are passed as ``exclude``.
    """
    section = config.get("consolidation", {})
    exclude = list(section.get("exclude_branches", ["bazel-mig-"]))
    exclude.extend(overrides.pop("exclude", None) or [])

    options = ConsolidationOptions(
        baseline_branch=section.get("baseline_branch", "master"),
        prune_merged=section.get("prune_merged", True),
        branch_filter=BranchFilter.from_tokens(exclude),
        target_remote=section.get("target_remote", "origin"),
    )
    for key, value in overrides.items():
        if value is not None:
            setattr(options, key, value)
    return options


class ConsolidationService:
    """
    Service that merges a list of repositories into one monorepo.

    Example:
        service = ConsolidationService()
        registry = RepositoryRegistry.parse(sys.stdin)
        options = ConsolidationOptions(subdir="libs")

        for progress in service.run(registry, url, "core", options):
            print(progress)

        summary = service.last_result
        print(f"Merged {summary.branches_merged} branches")
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        git_client: Optional[GitClient] = None
    ):
        """
        Initialize ConsolidationService.

        Args:
            config: Configuration dict (loads default if None)
            git_client: GitClient used to bootstrap the target
        """
        self.config = config or load_config()
        git_config = self.config.get("git", {})
        self.tmpdir = git_config.get("tmpdir")
        self.git = git_client or GitClient(timeout=git_config.get("timeout", 600))
        self.last_result: Optional[ConsolidationSummary] = None

    def run(
        self,
        registry: RepositoryRegistry,
        url: str,
        target_path: str,
        options: ConsolidationOptions
    ) -> Generator[str, None, ConsolidationSummary]:
        """
        Consolidate every source of registry into the repository at url.

        Args:
            registry: Sources in processing order
            url: Target (monorepo) remote URL
            target_path: Local directory of the target repository
            options: Run options

        Yields:
            Progress messages

        Returns:
            ConsolidationSummary
        """
        summary = ConsolidationSummary(target=target_path, url=url, resumed=options.resume)
        self.last_result = summary

        with tempfile.TemporaryDirectory(prefix="tomono-", dir=self.tmpdir) as scratch:
            logger.debug(f"Scratch directory: {scratch}")
            bootstrap = GitClient(self.git.path, timeout=self.git.timeout, tmpdir=scratch)
            initializer = MonorepoInitializer(bootstrap, remote=options.target_remote)

            yield f"mono-repo url: {url}"
            yield f"mono-repo name: {target_path}"
            if options.resume:
                target, context, git = initializer.resume(url, target_path)
            else:
                target, context, git = initializer.fresh(url, target_path)

            consolidator = BranchConsolidator(
                git, target, context, options,
                rewriter=HistoryRewriter(git, scratch_dir=scratch),
                namespacer=TagNamespacer(git),
            )

            fetched = False
            if options.fetch_jobs > 1 and len(registry) > 1:
                yield from self._prefetch(consolidator, list(registry), options.fetch_jobs)
                fetched = True

            for source in registry:
                result = yield from consolidator.consolidate(source, fetched=fetched)
                summary.add_source(result)

            consolidator.finish()

            if options.push:
                yield f"Pushing branches and tags to {url}"
                consolidator.publish()
                summary.published = True
            else:
                yield f"Not pushing; consolidated repository left in {target.path}"

        return summary

    def _prefetch(
        self,
        consolidator: BranchConsolidator,
        sources: List[SourceRepository],
        jobs: int
    ) -> Generator[str, None, None]:
        """Register every source, then fetch them concurrently."""
        for source in sources:
            consolidator.register(source)

        yield f"Fetching {len(sources)} repositories (parallel={jobs})..."

        def fetch_one(source):
            try:
                consolidator.fetch(source, write_fetch_head=False)
            except FetchFailure as e:
                return e
            return None

        with ThreadPoolExecutor(max_workers=jobs) as executor:
            failures = list(executor.map(fetch_one, sources))

        # Report the first failure in registry order
        for error in failures:
            if error is not None:
                raise error
