"""
Source list parsing for tomono.

The source list has one repository per line:

    # comment
    git@example.com:team/alpha.git  alpha
    https://example.com/beta.git    beta   # trailing comment

Everything from "#" to the end of a line is ignored, as are blank lines.
"""

import logging
from typing import Iterable, List, Union

from ..domain.repository import SourceRepository
from ..exit_codes import MalformedEntry

logger = logging.getLogger(__name__)

RESERVED_NAMES = {"origin"}


class RepositoryRegistry:
    """
    Ordered, validated list of source repositories.

    Example:
        registry = RepositoryRegistry.parse(sys.stdin)
        for source in registry:
            print(source.name, source.url)
    """

    def __init__(self, sources: List[SourceRepository]):
        self.sources = sources

    @staticmethod
    def strip_comment(line: str) -> str:
        return line.split('#', 1)[0].strip()

    @classmethod
    def parse(cls, text: Union[str, Iterable[str]]) -> 'RepositoryRegistry':
        """
        Parse a source list.

        Args:
            text: Whole list as a string, or an iterable of lines

        Raises:
            MalformedEntry: missing name, extra tokens, duplicate, nested or reserved name
        """
        lines = text.splitlines() if isinstance(text, str) else text
        sources: List[SourceRepository] = []
        seen = {}

        for number, line in enumerate(lines, start=1):
            content = cls.strip_comment(line)
            if not content:
                continue

            tokens = content.split()
            if len(tokens) < 2:
                raise MalformedEntry(
                    f"expected '<url> <name>', got {content!r} "
                    "(pass REPOSITORY NAME pairs on stdin)",
                    line=number,
                )
            if len(tokens) > 2:
                raise MalformedEntry(
                    f"expected '<url> <name>', got {len(tokens)} fields in {content!r}",
                    line=number,
                )

            url, name = tokens
            if name in RESERVED_NAMES:
                raise MalformedEntry(f"name {name!r} is reserved for the target repository",
                                     line=number)
            if name in seen:
                raise MalformedEntry(f"name {name!r} already used on line {seen[name]}",
                                     line=number)
            # Remote-tracking refs of "a" would include those of "a/b"
            for other, other_line in seen.items():
                if name.startswith(other + '/') or other.startswith(name + '/'):
                    raise MalformedEntry(
                        f"name {name!r} overlaps {other!r} from line {other_line}",
                        line=number,
                    )
            seen[name] = number
            sources.append(SourceRepository(url=url, name=name, line=number))

        logger.debug(f"Loaded {len(sources)} source repositories")
        return cls(sources)

    def __iter__(self):
        return iter(self.sources)

    def __len__(self) -> int:
        return len(self.sources)

    def names(self) -> List[str]:
        return [source.name for source in self.sources]
