"""
tomono - Merge multiple git repositories into one monorepo.

Every branch of every source repository is migrated to the eponymous
branch of the monorepo, with all files (including in the history)
rewritten to live under a subdirectory named after the source.

Quick Start:
    from tomono import ConsolidationService, RepositoryRegistry, ConsolidationOptions

    registry = RepositoryRegistry.parse(open("repos.txt").read())
    service = ConsolidationService()
    for progress in service.run(registry, "git@example.com:org/core.git", "core",
                                ConsolidationOptions(subdir="libs")):
        print(progress)

    print(service.last_result.to_dict())

Command line:
    create-mono [--subdir DIR] [--continue] <target-url> <target-name> < repos.txt
"""

__version__ = "0.3.0"

from .domain import (
    SourceRepository,
    TargetRepository,
    PathRewriteRule,
    BranchFilter,
    ParsedTag,
    TagKind,
    WorkingContext,
    BranchState,
    ConsolidationSummary,
)

from .services import (
    RepositoryRegistry,
    MonorepoInitializer,
    HistoryRewriter,
    TagNamespacer,
    BranchConsolidator,
    ConsolidationOptions,
    ConsolidationService,
)

from .config import load_config

__all__ = [
    "__version__",
    # Domain objects
    "SourceRepository",
    "TargetRepository",
    "PathRewriteRule",
    "BranchFilter",
    "ParsedTag",
    "TagKind",
    "WorkingContext",
    "BranchState",
    "ConsolidationSummary",
    # Services
    "RepositoryRegistry",
    "MonorepoInitializer",
    "HistoryRewriter",
    "TagNamespacer",
    "BranchConsolidator",
    "ConsolidationOptions",
    "ConsolidationService",
    # Configuration
    "load_config",
]
