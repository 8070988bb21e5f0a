"""
Standard exit codes and error types for tomono.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional, Sequence

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
CONFIG_ERROR = 66        # Configuration file error
NETWORK_ERROR = 68       # Clone/fetch/push against a remote failed
DATA_ERROR = 70          # Malformed source list
TARGET_EXISTS = 72       # Fresh run requested but target directory exists
MERGE_CONFLICT = 73      # Rewritten history collided with target content
TAG_COLLISION = 74       # Two renamed tags landed on the same name
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for exceptions that are not CommandErrors
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'ConnectionError': NETWORK_ERROR,
    'TimeoutError': NETWORK_ERROR,
    'ValueError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: Exception) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class MalformedEntry(CommandError):
    """Raised when a line of the source list cannot be parsed."""
    def __init__(self, message: str, line: Optional[int] = None):
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message, DATA_ERROR)
        self.line = line


class TargetAlreadyExists(CommandError):
    """Raised when a fresh run would overwrite an existing target directory."""
    def __init__(self, path: str):
        super().__init__(
            f"Target repository directory {path} already exists "
            "(use --continue to resume from the published monorepo)",
            TARGET_EXISTS,
        )
        self.path = path


class RemoteFailure(CommandError):
    """Base for failures talking to a remote. Recover with --continue."""
    action = "talk to"

    def __init__(self, remote: str, url: str = "", detail: str = ""):
        message = f"Failed to {self.action} {remote}"
        if url:
            message += f" ({url})"
        if detail:
            message += f": {detail}"
        super().__init__(message, NETWORK_ERROR)
        self.remote = remote
        self.url = url
        self.detail = detail


class CloneFailure(RemoteFailure):
    """Raised when the published monorepo cannot be cloned."""
    action = "clone"


class FetchFailure(RemoteFailure):
    """Raised when a source repository cannot be fetched."""
    action = "fetch"


class PushFailure(RemoteFailure):
    """Raised when branches or tags cannot be pushed."""
    action = "push to"


class UnexpectedMergeConflict(CommandError):
    """Raised when merging a rewritten source branch leaves unmerged paths."""
    def __init__(self, source: str, branch: str, paths: Sequence[str] = ()):
        message = f"Merging {source}/{branch} into {branch} conflicted"
        if paths:
            message += ": " + ", ".join(paths)
        message += " (resolve manually in the target repository)"
        super().__init__(message, MERGE_CONFLICT)
        self.source = source
        self.branch = branch
        self.paths = list(paths)


class TagCollision(CommandError):
    """Raised when a renamed tag would replace a different existing tag."""
    def __init__(self, source: str, old: str, new: str, owner: Optional[str] = None):
        message = f"Renaming tag {old} from {source} to {new} collides with an existing tag"
        if owner:
            message += f" created for {owner}"
        super().__init__(message, TAG_COLLISION)
        self.source = source
        self.old = old
        self.new = new
        self.owner = owner
