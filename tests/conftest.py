"""
Shared fixtures for tomono tests.

Integration tests build real git repositories under tmp_path: each source
is developed in a working repository and published as a bare repository,
which is what the consolidation fetches from and pushes to.
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from tomono.config import get_default_config
from tomono.services import (
    ConsolidationOptions,
    ConsolidationService,
    RepositoryRegistry,
)

GITCONFIG = """\
[user]
\tname = Test Author
\temail = author@example.com
[init]
\tdefaultBranch = master
[commit]
\tgpgsign = false
[tag]
\tgpgsign = false
"""


def git(cwd, *args: str) -> str:
    """Run git in cwd and return stripped stdout."""
    result = subprocess.run(
        ["git", *args], cwd=str(cwd), check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


def git_lines(cwd, *args: str) -> List[str]:
    output = git(cwd, *args)
    return [line for line in output.splitlines() if line]


@pytest.fixture
def git_env(tmp_path, monkeypatch):
    """Isolated git configuration with a fixed identity."""
    home = tmp_path / "home"
    home.mkdir()
    (home / ".gitconfig").write_text(GITCONFIG)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(home / ".gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for name in ("GIT_TMPDIR", "TOMONO_CONFIG", "GIT_DIR", "GIT_WORK_TREE"):
        monkeypatch.delenv(name, raising=False)
    return home


class SourceBuilder:
    """Builds one source repository and publishes it as a bare remote."""

    def __init__(self, root: Path, name: str):
        self.name = name
        self.work = root / "work" / name
        self.bare = root / "remotes" / f"{name}.git"
        self.work.mkdir(parents=True)
        git(self.work, "init", "-q", "-b", "master")

    def commit(self, files: Dict[str, str], message: str,
               branch: Optional[str] = None, date: Optional[str] = None) -> str:
        if branch:
            self.checkout(branch)
        for path, content in files.items():
            target = self.work / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
            git(self.work, "add", path)
        args = ["commit", "-q", "-m", message]
        if date:
            args.extend(["--date", date])
        git(self.work, *args)
        return self.head()

    def checkout(self, branch: str, start: Optional[str] = None) -> None:
        existing = git_lines(self.work, "branch", "--format=%(refname:short)")
        if branch in existing:
            git(self.work, "checkout", "-q", branch)
        else:
            git(self.work, "checkout", "-q", "-b", branch, *([start] if start else []))

    def tag(self, name: str, ref: str = "HEAD", message: Optional[str] = None) -> None:
        if message:
            git(self.work, "tag", "-a", name, "-m", message, ref)
        else:
            git(self.work, "tag", name, ref)

    def head(self, ref: str = "HEAD") -> str:
        return git(self.work, "rev-parse", ref)

    def publish(self) -> str:
        """Bare clone of the working repository; returns its URL."""
        self.bare.parent.mkdir(parents=True, exist_ok=True)
        git(self.bare.parent, "clone", "-q", "--bare", str(self.work), str(self.bare))
        return str(self.bare)

    def remote_branches(self) -> List[str]:
        return git_lines(self.bare, "for-each-ref", "--format=%(refname:short)", "refs/heads/")


class Workspace:
    """A consolidation playground: sources, a bare target and a runner."""

    def __init__(self, root: Path):
        self.root = root
        self.target_bare = root / "remotes" / "monorepo.git"
        self.target_bare.parent.mkdir(parents=True, exist_ok=True)
        git(self.target_bare.parent, "init", "-q", "--bare", str(self.target_bare))
        self.target_path = root / "mono"
        self.service: Optional[ConsolidationService] = None
        self.messages: List[str] = []

    @property
    def target_url(self) -> str:
        return str(self.target_bare)

    def source(self, name: str) -> SourceBuilder:
        return SourceBuilder(self.root, name)

    def run(self, sources, **option_values):
        """Consolidate (url, name) pairs; returns the ConsolidationSummary."""
        text = "\n".join(f"{url} {name}" for url, name in sources)
        registry = RepositoryRegistry.parse(text)
        options = ConsolidationOptions(**option_values)
        self.service = ConsolidationService(config=get_default_config())
        self.messages = list(self.service.run(registry, self.target_url,
                                              str(self.target_path), options))
        return self.service.last_result

    def published_branches(self) -> Dict[str, str]:
        refs = {}
        for line in git_lines(self.target_bare, "for-each-ref",
                              "--format=%(refname:short) %(objectname)", "refs/heads/"):
            name, oid = line.split()
            refs[name] = oid
        return refs

    def published_tags(self) -> Dict[str, str]:
        refs = {}
        for line in git_lines(self.target_bare, "for-each-ref",
                              "--format=%(objectname) %(refname)", "refs/tags/"):
            oid, refname = line.split(" ", 1)
            refs[refname[len("refs/tags/"):]] = oid
        return refs

    def files(self, branch: str) -> List[str]:
        return sorted(git_lines(self.target_bare, "ls-tree", "-r", "--name-only", branch))


@pytest.fixture
def workspace(tmp_path, git_env):
    return Workspace(tmp_path)
