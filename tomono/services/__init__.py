"""
Service layer for tomono.

Contains the consolidation logic that orchestrates domain objects and
infrastructure:
- RepositoryRegistry: Source list parsing
- MonorepoInitializer: Fresh or resumed target repository
- HistoryRewriter: Moves a branch's history under a prefix
- TagNamespacer: Release-candidate tag renaming
- BranchConsolidator: Per-source, per-branch merging
- ConsolidationService: A whole run, including publication
"""

from .registry import RepositoryRegistry
from .initializer import MonorepoInitializer
from .history_rewriter import HistoryRewriter, RewriteResult
from .tag_namespacer import TagNamespacer
from .consolidator import BranchConsolidator, ConsolidationOptions
from .consolidation_service import ConsolidationService, options_from_config

__all__ = [
    'RepositoryRegistry',
    'MonorepoInitializer',
    'HistoryRewriter',
    'RewriteResult',
    'TagNamespacer',
    'BranchConsolidator',
    'ConsolidationOptions',
    'ConsolidationService',
    'options_from_config',
]
