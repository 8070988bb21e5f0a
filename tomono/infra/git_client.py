"""
Git client infrastructure for tomono.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from business logic

Network operations (clone, fetch, push) run with a timeout;
local operations do not.
"""

import os
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from ..exit_codes import CommandError

logger = logging.getLogger(__name__)

EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
TREE_MODE = "040000"


@dataclass
class GitResult:
    """Result of one git invocation."""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def lines(self) -> List[str]:
        return [line for line in self.stdout.splitlines() if line.strip()]

    @property
    def command(self) -> str:
        return "git " + " ".join(self.args)

    @property
    def error(self) -> str:
        """Best available description of a failure."""
        if self.timed_out:
            return self.stderr
        return self.stderr.strip() or self.stdout.strip() or f"exit status {self.returncode}"


class GitCommandError(CommandError):
    """Raised when a git command that must succeed fails."""
    def __init__(self, result: GitResult):
        super().__init__(f"{result.command} failed: {result.error}")
        self.result = result


class GitClient:
    """
    Abstraction over git commands, bound to one repository directory.

    Example:
        client = GitClient("/path/to/monorepo")
        if client.ref_exists("refs/heads/feature"):
            client.checkout("feature")
    """

    def __init__(self, path: Optional[str] = None, timeout: int = 600,
                 tmpdir: Optional[str] = None):
        """
        Initialize GitClient.

        Args:
            path: Repository working directory (default: current directory)
            timeout: Network command timeout in seconds
            tmpdir: Exported to git as TMPDIR when set
        """
        self.path = path or os.getcwd()
        self.timeout = timeout
        self.tmpdir = tmpdir

    def bind(self, path: str) -> 'GitClient':
        """Return a client with the same settings working in another directory."""
        return GitClient(path, timeout=self.timeout, tmpdir=self.tmpdir)

    def _env(self) -> Dict[str, str]:
        env = dict(os.environ)
        if self.tmpdir:
            env["TMPDIR"] = self.tmpdir
        return env

    def _run(
        self,
        *args: str,
        check: bool = True,
        network: bool = False,
        input: Optional[str] = None,
        cwd: Optional[str] = None,
    ) -> GitResult:
        """
        Run a git command.

        Args:
            args: Arguments after "git"
            check: Raise GitCommandError on non-zero exit
            network: Apply the network timeout
            input: Text fed to stdin
            cwd: Working directory (default: the bound repository)

        Returns:
            GitResult
        """
        argv = list(args)
        workdir = cwd or self.path
        logger.debug(f"Running git {' '.join(argv)} in {workdir}")
        try:
            proc = subprocess.run(
                ["git", *argv],
                cwd=workdir,
                input=input,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="surrogateescape",
                env=self._env(),
                timeout=self.timeout if network else None,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Git command timed out: git {' '.join(argv)}")
            result = GitResult(argv, -1, stderr=f"timed out after {self.timeout}s",
                               timed_out=True)
        else:
            result = GitResult(argv, proc.returncode, proc.stdout, proc.stderr)

        if check and not result.ok:
            raise GitCommandError(result)
        return result

    def _run_bytes(self, *args: str, input: Optional[bytes] = None) -> bytes:
        """Run a local git command with binary stdin/stdout."""
        argv = list(args)
        logger.debug(f"Running git {' '.join(argv)} in {self.path}")
        proc = subprocess.run(
            ["git", *argv],
            cwd=self.path,
            input=input,
            capture_output=True,
            env=self._env(),
        )
        if proc.returncode != 0:
            raise GitCommandError(GitResult(
                argv, proc.returncode,
                stderr=proc.stderr.decode("utf-8", errors="replace"),
            ))
        return proc.stdout

    # ------------------------------------------------------------------
    # Repository setup
    # ------------------------------------------------------------------

    def init(self) -> GitResult:
        os.makedirs(self.path, exist_ok=True)
        return self._run("init", "-q")

    def clone(self, url: str, dest: str, remote: str = "origin") -> GitResult:
        """Clone url into dest, naming its remote; runs from dest's parent directory."""
        parent = os.path.dirname(os.path.abspath(dest)) or "."
        return self._run("clone", "-q", "--origin", remote, url, dest,
                         check=False, network=True, cwd=parent)

    def remote_url(self, remote: str = "origin") -> Optional[str]:
        result = self._run("config", "--get", f"remote.{remote}.url", check=False)
        if result.ok and result.stdout.strip():
            return result.stdout.strip()
        return None

    def add_remote(self, name: str, url: str) -> GitResult:
        return self._run("remote", "add", name, url)

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    def fetch(self, remote: str, tag_namespace: str,
              write_fetch_head: bool = True) -> GitResult:
        """
        Fetch all branches of a remote, and its tags into tag_namespace.

        Tags are kept out of refs/tags so equally named tags of different
        remotes never clobber each other.
        """
        args = ["fetch", "-q", "--no-tags"]
        if not write_fetch_head:
            # Concurrent fetches into one repository
            args.extend(["--no-write-fetch-head", "--no-auto-gc"])
        return self._run(
            *args, remote,
            f"+refs/heads/*:refs/remotes/{remote}/*",
            f"+refs/tags/*:{tag_namespace.rstrip('/')}/*",
            check=False, network=True,
        )

    def push_delete(self, remote: str, branches: Sequence[str]) -> GitResult:
        return self._run("push", "-q", "--delete", remote, *branches,
                         check=False, network=True)

    def push_all(self, remote: str = "origin") -> GitResult:
        return self._run("push", "-q", "--all", remote, check=False, network=True)

    def push_tags(self, remote: str = "origin") -> GitResult:
        return self._run("push", "-q", "--tags", remote, check=False, network=True)

    # ------------------------------------------------------------------
    # Refs
    # ------------------------------------------------------------------

    def rev_parse(self, ref: str) -> Optional[str]:
        """Resolve ref to an object id, or None if it does not exist."""
        result = self._run("rev-parse", "-q", "--verify", ref, check=False)
        if result.ok and result.stdout.strip():
            return result.stdout.strip()
        return None

    def ref_exists(self, ref: str) -> bool:
        return self.rev_parse(ref) is not None

    def remote_branches(self, remote: str, merged_into: Optional[str] = None) -> List[str]:
        """
        Branch names of a remote's tracking refs, without the remote prefix.

        Args:
            remote: Remote name
            merged_into: Only branches whose tip is reachable from this ref
        """
        prefix = f"refs/remotes/{remote}/"
        args = ["for-each-ref", "--format=%(refname)"]
        if merged_into:
            args.append(f"--merged={merged_into}")
        result = self._run(*args, prefix)
        branches = []
        for refname in result.lines:
            name = refname[len(prefix):]
            if name != "HEAD":
                branches.append(name)
        return branches

    def local_branches(self) -> List[str]:
        result = self._run("for-each-ref", "--format=%(refname:short)", "refs/heads/")
        return result.lines

    def refs(self, prefix: str) -> List[str]:
        """Full refnames under prefix."""
        result = self._run("for-each-ref", "--format=%(refname)", prefix)
        return result.lines

    def create_branch(self, name: str, start: str, force: bool = False) -> GitResult:
        args = ["branch", "-q"]
        if force:
            args.append("-f")
        return self._run(*args, name, start)

    def delete_branch(self, name: str) -> GitResult:
        return self._run("branch", "-q", "-D", name)

    def update_ref(self, ref: str, new: str) -> GitResult:
        return self._run("update-ref", ref, new)

    def delete_ref(self, ref: str) -> GitResult:
        return self._run("update-ref", "-d", ref)

    def current_branch(self) -> Optional[str]:
        result = self._run("symbolic-ref", "-q", "--short", "HEAD", check=False)
        if result.ok and result.stdout.strip():
            return result.stdout.strip()
        return None

    # ------------------------------------------------------------------
    # Working tree
    # ------------------------------------------------------------------

    def checkout(self, ref: str, detach: bool = False) -> GitResult:
        args = ["checkout", "-q", "-f"]
        if detach:
            args.append("--detach")
        return self._run(*args, ref)

    def checkout_new_branch(self, name: str, start: str) -> GitResult:
        return self._run("checkout", "-q", "-f", "-b", name, start)

    def checkout_orphan(self, name: str) -> GitResult:
        return self._run("checkout", "-q", "--orphan", name)

    def discard_changes(self) -> None:
        """Drop staged, modified and untracked content."""
        self._run("reset", "-q", "--hard")
        self._run("clean", "-fdq")

    def remove_all(self) -> None:
        """Empty the index and working tree (used on a fresh orphan branch)."""
        self._run("rm", "-rfq", "--ignore-unmatch", ".")
        self._run("clean", "-fdq")

    def commit_empty(self, message: str) -> GitResult:
        return self._run("commit", "-q", "--allow-empty", "-m", message)

    def merge_unrelated(self, branch: str) -> GitResult:
        """Merge branch into HEAD, allowing histories with no common ancestor."""
        return self._run("merge", "-q", "--no-edit", "--allow-unrelated-histories",
                         branch, check=False)

    def unmerged_paths(self) -> List[str]:
        result = self._run("diff", "--name-only", "--diff-filter=U", check=False)
        return sorted(set(result.lines))

    # ------------------------------------------------------------------
    # Plumbing used by history rewriting
    # ------------------------------------------------------------------

    def rev_list_parents(self, ref: str) -> List[Tuple[str, List[str]]]:
        """All commits reachable from ref, parents before children."""
        result = self._run("rev-list", "--topo-order", "--reverse", "--parents", ref)
        commits = []
        for line in result.lines:
            parts = line.split()
            commits.append((parts[0], parts[1:]))
        return commits

    def cat_commit(self, commit: str) -> bytes:
        return self._run_bytes("cat-file", "commit", commit)

    def write_commit(self, raw: bytes) -> str:
        # --literally: old histories may carry objects fsck would reject
        return self._run_bytes("hash-object", "-t", "commit", "-w", "--literally",
                               "--stdin", input=raw).decode("ascii").strip()

    def mktree(self, entries: Sequence[Tuple[str, str, str, str]]) -> str:
        """
        Write a tree object.

        Args:
            entries: (mode, type, object id, name) tuples
        """
        text = "".join(f"{mode} {kind} {oid}\t{name}\n" for mode, kind, oid, name in entries)
        return self._run("mktree", input=text).stdout.strip()

