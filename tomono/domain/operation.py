"""
Operation result domain objects for tomono.

Every step of a consolidation reports what it did through these types, so
"found nothing to do" is an empty result rather than a swallowed error.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


class OperationStatus(Enum):
    """Status of an individual operation."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class BranchMergeResult:
    """Outcome of consolidating one source branch into the target."""
    source: str
    branch: str
    status: OperationStatus
    created: bool = False            # Target branch was bootstrapped as an orphan
    already_up_to_date: bool = False  # Merge added nothing (e.g. resumed run)
    commits_rewritten: int = 0
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'source': self.source,
            'branch': self.branch,
            'status': self.status.value,
            'created': self.created,
            'already_up_to_date': self.already_up_to_date,
            'commits_rewritten': self.commits_rewritten,
        }
        if self.reason:
            result['reason'] = self.reason
        return result


@dataclass
class PruneResult:
    """Source branches found fully merged into the baseline."""
    source: str
    baseline: str
    merged: List[str] = field(default_factory=list)
    deleted: bool = False  # False when pruning is disabled or nothing matched

    @property
    def empty(self) -> bool:
        return not self.merged

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'baseline': self.baseline,
            'merged': list(self.merged),
            'deleted': self.deleted,
        }


@dataclass
class TagRenameResult:
    """One tag moved into its source's namespace."""
    source: str
    old: str
    new: str
    created: bool = True  # False when the new tag already existed (resume)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'old': self.old,
            'new': self.new,
            'created': self.created,
        }


@dataclass
class SourceResult:
    """Everything that happened to one source repository."""
    name: str
    url: str
    prune: Optional[PruneResult] = None
    branches: List[BranchMergeResult] = field(default_factory=list)
    tags: List[TagRenameResult] = field(default_factory=list)

    @property
    def merged(self) -> List[BranchMergeResult]:
        return [b for b in self.branches if b.status == OperationStatus.SUCCESS]

    @property
    def skipped(self) -> List[BranchMergeResult]:
        return [b for b in self.branches if b.status == OperationStatus.SKIPPED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'source',
            'name': self.name,
            'url': self.url,
            'pruned': self.prune.merged if self.prune and self.prune.deleted else [],
            'branches': [b.to_dict() for b in self.branches],
            'tags': [t.to_dict() for t in self.tags],
        }


@dataclass
class ConsolidationSummary:
    """
    Summary of a whole consolidation run.

    Collects per-source results and whether the target was published.
    """
    target: str
    url: str
    resumed: bool = False
    published: bool = False
    sources: List[SourceResult] = field(default_factory=list)

    def add_source(self, result: SourceResult) -> None:
        self.sources.append(result)

    @property
    def branches_merged(self) -> int:
        return sum(len(s.merged) for s in self.sources)

    @property
    def branches_created(self) -> int:
        return sum(1 for s in self.sources for b in s.branches if b.created)

    @property
    def branches_pruned(self) -> int:
        return sum(len(s.prune.merged) for s in self.sources if s.prune and s.prune.deleted)

    @property
    def tags_renamed(self) -> int:
        return sum(len(s.tags) for s in self.sources)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'type': 'summary',
            'target': self.target,
            'url': self.url,
            'resumed': self.resumed,
            'published': self.published,
            'sources': len(self.sources),
            'branches_merged': self.branches_merged,
            'branches_created': self.branches_created,
            'branches_pruned': self.branches_pruned,
            'tags_renamed': self.tags_renamed,
        }
