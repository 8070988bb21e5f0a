"""
Repository domain objects for tomono.

SourceRepository and TargetRepository describe the two sides of a
consolidation. PathRewriteRule and BranchFilter are the per-run policies
applied to every source.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set, Tuple


@dataclass
class SourceRepository:
    """
    One repository to fold into the monorepo.

    Attributes:
        url: Anything git can fetch from
        name: Remote name in the target, and the subdirectory the files move to
        branches: Branch names discovered after fetching
        tags: Tag refnames advertised by the remote
        line: Line of the source list this entry came from
    """
    url: str
    name: str
    branches: Set[str] = field(default_factory=set)
    tags: Set[str] = field(default_factory=set)
    line: Optional[int] = None

    def ref(self, branch: str) -> str:
        """Remote-tracking ref of one of this source's branches."""
        return f"refs/remotes/{self.name}/{branch}"

    def scratch_branch(self, branch: str) -> str:
        return f"{self.name}-{branch}"

    @property
    def tag_namespace(self) -> str:
        """Where this source's tags are fetched before renaming."""
        return f"refs/tomono/{self.name}/tags/"

    def to_dict(self) -> dict:
        return {
            'url': self.url,
            'name': self.name,
            'branches': sorted(self.branches),
            'tags': sorted(self.tags),
        }


@dataclass
class TargetRepository:
    """The monorepo being built."""
    path: str
    url: str
    branches: Set[str] = field(default_factory=set)
    remotes: Dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.path.rstrip('/').rsplit('/', 1)[-1]

    def to_dict(self) -> dict:
        return {
            'path': self.path,
            'url': self.url,
            'branches': sorted(self.branches),
            'remotes': dict(self.remotes),
        }


@dataclass(frozen=True)
class PathRewriteRule:
    """
    Prefix applied to every path of every commit of one source.

    Examples:
        PathRewriteRule.for_source("alpha").prefix           -> "alpha/"
        PathRewriteRule.for_source("alpha", "libs").prefix   -> "libs/alpha/"
    """
    components: Tuple[str, ...]

    @classmethod
    def for_source(cls, name: str, subdir: Optional[str] = None) -> 'PathRewriteRule':
        parts = []
        if subdir:
            parts.extend(p for p in subdir.split('/') if p)
        parts.extend(p for p in name.split('/') if p)
        return cls(tuple(parts))

    @property
    def prefix(self) -> str:
        return ''.join(f"{part}/" for part in self.components)

    def apply(self, path: str) -> str:
        return self.prefix + path


@dataclass(frozen=True)
class BranchFilter:
    """
    Decides which source branches are consolidated.

    A branch is excluded when its name contains any of the exclusion tokens.
    """
    exclude: Tuple[str, ...] = ("bazel-mig-",)

    @classmethod
    def from_tokens(cls, tokens: Iterable[str]) -> 'BranchFilter':
        seen = []
        for token in tokens:
            if token and token not in seen:
                seen.append(token)
        return cls(tuple(seen))

    def is_excluded(self, branch: str) -> bool:
        return any(token in branch for token in self.exclude)

    def select(self, branches: Iterable[str]) -> Tuple[list, list]:
        """Split branches into (included, excluded), preserving order."""
        included, excluded = [], []
        for branch in branches:
            (excluded if self.is_excluded(branch) else included).append(branch)
        return included, excluded
