"""
Tag renaming for tomono.

A source's tags are fetched into a private namespace
(refs/tomono/<name>/tags/). From there each tag is published under
refs/tags, release-candidate tags under their namespaced name, and the
private ref is deleted.
"""

import logging
from typing import Dict, List, Optional

from ..domain.operation import TagRenameResult
from ..domain.repository import SourceRepository
from ..domain.tag import ParsedTag, tag_names
from ..exit_codes import TagCollision
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)


class TagNamespacer:
    """
    Moves a source's fetched tags into refs/tags.

    Remembers which source produced every renamed tag during a run, so two
    sources landing on the same name is reported as a TagCollision.

    Example:
        namespacer = TagNamespacer(git)
        for rename in namespacer.apply(source):
            print(f"{rename.old} --> {rename.new}")
    """

    def __init__(self, git_client: GitClient):
        self.git = git_client
        self.claimed: Dict[str, str] = {}

    def plan(self, source: SourceRepository, names: List[str]) -> Dict[str, str]:
        """
        Map each matched tag name to its new name.

        Args:
            source: Owning source
            names: Tag names or refnames; peeled "^{}" entries are ignored
        """
        plan = {}
        for name in tag_names(names):
            parsed = ParsedTag.parse(name)
            if parsed.matched:
                plan[parsed.raw] = parsed.renamed(source.name)
        return plan

    def _claim(self, source: SourceRepository, old: str, new: str) -> None:
        owner = self.claimed.get(new)
        if owner is not None and owner != source.name:
            raise TagCollision(source.name, old, new, owner=owner)
        self.claimed[new] = source.name

    def _publish(self, source: SourceRepository, old: str, new: str, oid: str) -> bool:
        """Point refs/tags/new at oid; False if it already did."""
        existing: Optional[str] = self.git.rev_parse(f"refs/tags/{new}")
        if existing is None:
            self.git.update_ref(f"refs/tags/{new}", oid)
            return True
        if existing != oid:
            raise TagCollision(source.name, old, new)
        return False

    def apply(self, source: SourceRepository) -> List[TagRenameResult]:
        """
        Publish every fetched tag of source, renaming release candidates.

        Returns:
            One result per renamed tag; unmatched tags are published as-is
            and not reported
        """
        namespace = source.tag_namespace
        refnames = self.git.refs(namespace)
        names = [ref[len(namespace):] for ref in refnames]
        source.tags = set(names)
        plan = self.plan(source, names)

        results = []
        for name in tag_names(names):
            private = namespace + name
            oid = self.git.rev_parse(private)
            if oid is None:
                continue

            new = plan.get(name, name)
            if name in plan:
                self._claim(source, name, new)
            created = self._publish(source, name, new, oid)
            self.git.delete_ref(private)

            if name in plan:
                logger.debug(f"{source.name}: tag {name} -> {new} (created={created})")
                results.append(TagRenameResult(source=source.name, old=name, new=new,
                                               created=created))

        if not results:
            logger.debug(f"{source.name}: no release-candidate tags to rename")
        return results
