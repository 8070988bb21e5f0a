"""
Target repository bootstrap for tomono.

Fresh mode creates an empty repository; resume mode throws away any local
copy and clones what has already been published, so a failed run can be
retried from the remote state.
"""

import logging
import os
import shutil
from typing import Optional, Tuple

from ..domain.context import WorkingContext
from ..domain.repository import TargetRepository
from ..exit_codes import CloneFailure, TargetAlreadyExists
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)


class MonorepoInitializer:
    """
    Establishes the target repository and its working context.

    Example:
        initializer = MonorepoInitializer(GitClient())
        target, context, git = initializer.fresh(url, "core")
    """

    def __init__(self, git_client: Optional[GitClient] = None, remote: str = "origin"):
        self.git = git_client or GitClient()
        self.remote = remote

    def fresh(self, url: str, path: str) -> Tuple[TargetRepository, WorkingContext, GitClient]:
        """
        Create an empty repository at path with url as its remote.

        Raises:
            TargetAlreadyExists: path is already occupied
        """
        path = os.path.abspath(path)
        if os.path.exists(path):
            raise TargetAlreadyExists(path)

        git = self.git.bind(path)
        git.init()
        git.add_remote(self.remote, url)
        logger.info(f"Initialized empty monorepo in {path}")

        target = TargetRepository(path=path, url=url, remotes={self.remote: url})
        return target, WorkingContext(path=path), git

    def resume(self, url: str, path: str) -> Tuple[TargetRepository, WorkingContext, GitClient]:
        """
        Replace any local copy at path with a fresh clone of url.

        Raises:
            CloneFailure: clone failed or timed out
        """
        path = os.path.abspath(path)
        if os.path.exists(path):
            logger.info(f"Removing local copy at {path}")
            shutil.rmtree(path)

        result = self.git.clone(url, path, remote=self.remote)
        if not result.ok:
            raise CloneFailure(self.remote, url, result.error)

        git = self.git.bind(path)
        branches = set(git.remote_branches(self.remote))
        branches.update(git.local_branches())
        logger.info(f"Resuming from {url} ({len(branches)} published branches)")

        target = TargetRepository(path=path, url=url, branches=branches,
                                  remotes={self.remote: url})
        context = WorkingContext(path=path, checked_out=git.current_branch())
        return target, context, git
