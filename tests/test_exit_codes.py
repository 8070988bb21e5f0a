"""
Tests for exit codes and the error taxonomy.
"""

import pytest

from tomono import exit_codes
from tomono.domain.context import InvalidStateTransition
from tomono.exit_codes import (
    CloneFailure,
    CommandError,
    FetchFailure,
    MalformedEntry,
    PushFailure,
    TagCollision,
    TargetAlreadyExists,
    UnexpectedMergeConflict,
    get_exit_code_for_exception,
)


class TestExitCodes:
    """Each error maps to its own exit code."""

    @pytest.mark.parametrize("error, code", [
        (MalformedEntry("bad", line=3), exit_codes.DATA_ERROR),
        (TargetAlreadyExists("/tmp/mono"), exit_codes.TARGET_EXISTS),
        (CloneFailure("origin", "u"), exit_codes.NETWORK_ERROR),
        (FetchFailure("alpha", "u"), exit_codes.NETWORK_ERROR),
        (PushFailure("origin", "u"), exit_codes.NETWORK_ERROR),
        (UnexpectedMergeConflict("alpha", "master"), exit_codes.MERGE_CONFLICT),
        (TagCollision("alpha", "a", "b"), exit_codes.TAG_COLLISION),
        (CommandError("boom"), exit_codes.GENERAL_ERROR),
        (InvalidStateTransition("alpha/master is idle"), exit_codes.GENERAL_ERROR),
    ])
    def test_command_errors(self, error, code):
        assert get_exit_code_for_exception(error) == code

    def test_builtin_exceptions(self):
        assert get_exit_code_for_exception(TimeoutError()) == exit_codes.NETWORK_ERROR
        assert get_exit_code_for_exception(RuntimeError()) == exit_codes.GENERAL_ERROR


class TestMessages:
    """Error messages carry enough context to act on."""

    def test_fetch_failure(self):
        error = FetchFailure("alpha", "git@example.com:alpha.git", "timed out after 5s")

        assert str(error) == (
            "Failed to fetch alpha (git@example.com:alpha.git): timed out after 5s"
        )

    def test_push_failure(self):
        assert str(PushFailure("origin")) == "Failed to push to origin"

    def test_merge_conflict_lists_paths(self):
        error = UnexpectedMergeConflict("alpha", "feature", ["alpha/a.txt"])

        assert "alpha/feature" in str(error)
        assert "alpha/a.txt" in str(error)
        assert error.paths == ["alpha/a.txt"]

    def test_tag_collision(self):
        error = TagCollision("beta", "v1", "v1", owner="alpha")

        assert "beta" in str(error)
        assert "created for alpha" in str(error)

    def test_malformed_entry_line(self):
        assert str(MalformedEntry("missing name", line=7)) == "line 7: missing name"
