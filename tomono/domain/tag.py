"""
Tag domain object for tomono.

Release-candidate tags embed a classifier of the form ``RC;<A>;<B>``:
- Sentinel: "1.0-RC;.;5"        (A is "." - not namespaced yet)
- Namespaced: "1.0-RC;beta;5"   (A is an existing namespace)

After consolidation several sources may carry the same tag, so the
classifier is rewritten to include the owning source:
- "1.0-RC;.;5"    from alpha -> "1.0-RC;alpha;5"
- "1.0-RC;beta;5" from alpha -> "1.0-RC;alpha/beta;5"

Anything else is left alone.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

RC_MARKER = "RC;"
SENTINEL = "."
TAG_REF_PREFIX = "refs/tags/"
PEELED_SUFFIX = "^{}"


class TagKind(Enum):
    """How a tag name relates to the RC classifier."""
    SENTINEL = "sentinel"
    NAMESPACED = "namespaced"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class ParsedTag:
    """
    A tag name split around its RC classifier.

    Examples:
        ParsedTag.parse("1.0-RC;.;5")     -> kind=SENTINEL, head="1.0-", tail="5"
        ParsedTag.parse("1.0-RC;beta;5")  -> kind=NAMESPACED, namespace="beta"
        ParsedTag.parse("v1.0")           -> kind=UNMATCHED

    Attributes:
        raw: Full tag name
        kind: Classification
        head: Text before "RC;"
        namespace: The A field (None for sentinel/unmatched)
        tail: The B field
    """

    raw: str
    kind: TagKind
    head: str = ""
    namespace: Optional[str] = None
    tail: str = ""

    @classmethod
    def parse(cls, name: str) -> 'ParsedTag':
        """
        Parse a tag name (with or without the refs/tags/ prefix).

        The leftmost "RC;" starts the classifier. For namespaced tags the
        namespace runs up to the last ";".
        """
        if name.startswith(TAG_REF_PREFIX):
            name = name[len(TAG_REF_PREFIX):]

        index = name.find(RC_MARKER)
        if index < 0:
            return cls(raw=name, kind=TagKind.UNMATCHED)

        head = name[:index]
        rest = name[index + len(RC_MARKER):]

        if rest.startswith(SENTINEL + ";"):
            return cls(raw=name, kind=TagKind.SENTINEL, head=head,
                       tail=rest[len(SENTINEL) + 1:])

        if ';' in rest:
            namespace, tail = rest.rsplit(';', 1)
            if namespace:
                return cls(raw=name, kind=TagKind.NAMESPACED, head=head,
                           namespace=namespace, tail=tail)

        return cls(raw=name, kind=TagKind.UNMATCHED)

    @property
    def matched(self) -> bool:
        return self.kind is not TagKind.UNMATCHED

    def renamed(self, source: str) -> str:
        """Name of this tag once owned by source; unchanged when unmatched."""
        if self.kind is TagKind.SENTINEL:
            return f"{self.head}{RC_MARKER}{source};{self.tail}"
        if self.kind is TagKind.NAMESPACED:
            return f"{self.head}{RC_MARKER}{source}/{self.namespace};{self.tail}"
        return self.raw

    def __str__(self) -> str:
        return self.raw


def is_peeled(refname: str) -> bool:
    """True for peeled entries ("^{}") naming the commit an annotated tag points to."""
    return refname.endswith(PEELED_SUFFIX)


def tag_names(refnames: List[str]) -> List[str]:
    """Tag names from refnames, peeled entries dropped, order kept."""
    names = []
    for refname in refnames:
        if is_peeled(refname):
            continue
        name = refname[len(TAG_REF_PREFIX):] if refname.startswith(TAG_REF_PREFIX) else refname
        if name not in names:
            names.append(name)
    return names
