"""
Infrastructure layer for tomono.

Contains abstractions for external systems:
- GitClient: Git command execution (the VCS engine)

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient, GitResult, GitCommandError, EMPTY_TREE

__all__ = [
    'GitClient',
    'GitResult',
    'GitCommandError',
    'EMPTY_TREE',
]
