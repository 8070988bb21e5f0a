"""
History rewriting for tomono.

Moves every file of every commit on a branch under a path prefix, keeping
the commit graph, authorship, dates and messages. Works on git objects
directly instead of checking anything out:

1. ``rev-list --topo-order --reverse --parents`` lists commits parents-first.
2. Each commit's root tree is wrapped in one new tree per prefix component
   (``mktree``), so "a.txt" becomes "alpha/a.txt" without reading any blobs.
3. The raw commit object is re-emitted with the new tree and the already
   rewritten parents (``hash-object -t commit -w``).

Each commit and each distinct tree is rewritten once. The output only
depends on the input objects and the prefix, so rewriting the same history
twice gives the same commit ids.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..domain.repository import PathRewriteRule
from ..infra.git_client import EMPTY_TREE, TREE_MODE, GitClient

logger = logging.getLogger(__name__)

# Headers whose content no longer verifies once the tree changes
DROPPED_HEADERS = (b"gpgsig", b"gpgsig-sha256")


@dataclass
class RewriteResult:
    """Outcome of rewriting one branch."""
    ref: str
    old_head: str
    new_head: str
    commit_map: Dict[str, str] = field(default_factory=dict)
    revmap_path: Optional[str] = None

    @property
    def commits(self) -> int:
        return len(self.commit_map)


def split_commit(raw: bytes):
    """
    Split a raw commit object into header entries and message.

    Returns:
        (headers, message) where headers is a list of (key, value) with
        continuation lines folded into value
    """
    header_blob, sep, message = raw.partition(b"\n\n")
    if not sep:
        header_blob, message = raw.rstrip(b"\n"), b""
    headers = []
    for line in header_blob.split(b"\n"):
        if line.startswith(b" ") and headers:
            key, value = headers[-1]
            headers[-1] = (key, value + b"\n" + line)
            continue
        key, _, value = line.partition(b" ")
        headers.append((key, value))
    return headers, message


def build_commit(raw: bytes, tree: str, parents: List[str]) -> bytes:
    """Raw commit with its tree and parents replaced, everything else kept."""
    headers, message = split_commit(raw)
    out = [b"tree " + tree.encode("ascii")]
    out.extend(b"parent " + p.encode("ascii") for p in parents)
    for key, value in headers:
        if key in (b"tree", b"parent") or key in DROPPED_HEADERS:
            continue
        out.append(key + b" " + value)
    return b"\n".join(out) + b"\n\n" + message


class HistoryRewriter:
    """
    Rewrites a branch so every path lives under a prefix.

    Example:
        rewriter = HistoryRewriter(git)
        result = rewriter.rewrite("refs/heads/alpha-master",
                                  PathRewriteRule.for_source("alpha"))
        print(f"{result.commits} commits moved under alpha/")
    """

    def __init__(self, git_client: GitClient, scratch_dir: Optional[str] = None):
        self.git = git_client
        self.scratch_dir = scratch_dir

    def wrap_tree(self, tree: str, rule: PathRewriteRule, cache: Dict[str, str]) -> str:
        """Tree id of tree nested under the rule's prefix."""
        if tree == EMPTY_TREE or not rule.components:
            return tree
        if tree in cache:
            return cache[tree]
        wrapped = tree
        for component in reversed(rule.components):
            wrapped = self.git.mktree([(TREE_MODE, "tree", wrapped, component)])
        cache[tree] = wrapped
        return wrapped

    def rewrite(self, ref: str, rule: PathRewriteRule) -> RewriteResult:
        """
        Rewrite every commit reachable from ref and move ref to the new head.

        Args:
            ref: Full ref name (e.g. refs/heads/alpha-master)
            rule: Prefix to apply
        """
        old_head = self.git.rev_parse(ref)
        commits = self.git.rev_list_parents(ref)
        logger.debug(f"Rewriting {len(commits)} commits of {ref} under {rule.prefix}")

        commit_map: Dict[str, str] = {}
        tree_cache: Dict[str, str] = {}

        for commit, parents in commits:
            raw = self.git.cat_commit(commit)
            headers, _ = split_commit(raw)
            tree = next(v.decode("ascii") for k, v in headers if k == b"tree")
            new_tree = self.wrap_tree(tree, rule, tree_cache)
            new_parents = [commit_map[p] for p in parents]
            commit_map[commit] = self.git.write_commit(build_commit(raw, new_tree, new_parents))

        new_head = commit_map[old_head] if old_head in commit_map else old_head
        self.git.update_ref(ref, new_head)

        result = RewriteResult(ref=ref, old_head=old_head, new_head=new_head,
                               commit_map=commit_map)
        if self.scratch_dir:
            result.revmap_path = self._write_revmap(ref, commit_map)
        return result

    def _write_revmap(self, ref: str, commit_map: Dict[str, str]) -> str:
        name = ref.replace("refs/heads/", "").replace("/", "_") + ".revmap"
        path = os.path.join(self.scratch_dir, name)
        with open(path, "w") as f:
            for old, new in commit_map.items():
                f.write(f"{old} {new}\n")
        logger.debug(f"Wrote revmap for {ref} to {path}")
        return path
