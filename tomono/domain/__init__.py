"""
Domain layer for tomono.

Contains pure domain objects with no I/O or side effects:
- SourceRepository / TargetRepository: the two sides of a consolidation
- PathRewriteRule / BranchFilter: per-run policies
- ParsedTag: release-candidate tag classifier
- WorkingContext: checked-out ref and branch state machine
- Operation results: what each step did
"""

from .repository import SourceRepository, TargetRepository, PathRewriteRule, BranchFilter
from .tag import ParsedTag, TagKind
from .context import WorkingContext, BranchState, InvalidStateTransition
from .operation import (
    OperationStatus,
    BranchMergeResult,
    PruneResult,
    TagRenameResult,
    SourceResult,
    ConsolidationSummary,
)

__all__ = [
    'SourceRepository',
    'TargetRepository',
    'PathRewriteRule',
    'BranchFilter',
    'ParsedTag',
    'TagKind',
    'WorkingContext',
    'BranchState',
    'InvalidStateTransition',
    'OperationStatus',
    'BranchMergeResult',
    'PruneResult',
    'TagRenameResult',
    'SourceResult',
    'ConsolidationSummary',
]
