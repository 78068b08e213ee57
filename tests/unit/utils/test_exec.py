"""Tests for repocore.utils._exec module."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from repocore.exceptions import GitCommandError
from repocore.utils import (
    CommandResult,
    GitCommand,
    creation_flags,
    run_command,
    truncate_output,
)

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _python(cwd: Path, code: str, **kwargs: object) -> GitCommand:
    return GitCommand.build(sys.executable, cwd, "-c", code, **kwargs)  # pyright: ignore[reportArgumentType]


class TestTruncateOutput:
    def test_short_output_unchanged(self) -> None:
        assert truncate_output("hello") == "hello"

    def test_long_output_truncated(self) -> None:
        result = truncate_output("x" * 100, max_bytes=10)
        assert result.startswith("x" * 10)
        assert result.endswith("[output truncated]")

    def test_preserves_utf8_boundaries(self) -> None:
        result = truncate_output("é" * 10, max_bytes=5)
        assert result.startswith("éé\n")


class TestCreationFlags:
    @pytest.mark.skipif(sys.platform == "win32", reason="posix only")
    def test_zero_on_posix(self) -> None:
        assert creation_flags() == 0


class TestGitCommand:
    def test_build(self, tmp_path: Path) -> None:
        command = GitCommand.build("git", tmp_path, "status", "-z", env={"A": "1"})

        assert command.args == ("status", "-z")
        assert command.argv == ["git", "status", "-z"]
        assert command.env == {"A": "1"}
        assert str(command) == "git status -z"

    def test_full_env_overlays_inherited(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("REPOCORE_TEST_INHERITED", "yes")
        command = GitCommand.build("git", tmp_path, "status", env={"GIT_DIR": "x"})

        env = command.full_env()

        assert env["REPOCORE_TEST_INHERITED"] == "yes"
        assert env["GIT_DIR"] == "x"

    def test_with_env_returns_copy(self, tmp_path: Path) -> None:
        command = GitCommand.build("git", tmp_path, "fetch", env={"A": "1"})

        extended = command.with_env({"B": "2"})

        assert extended.env == {"A": "1", "B": "2"}
        assert command.env == {"A": "1"}

    def test_frozen(self, tmp_path: Path) -> None:
        command = GitCommand.build("git", tmp_path, "status")
        with pytest.raises(AttributeError):
            command.binary = "other"  # pyright: ignore[reportAttributeAccessIssue]


class TestRunCommand:
    def test_captures_output(self, tmp_path: Path) -> None:
        result = run_command(_python(tmp_path, "print('out')"))

        assert result == CommandResult(stdout="out\n", stderr="")

    def test_runs_in_cwd(self, tmp_path: Path) -> None:
        result = run_command(_python(tmp_path, "import os; print(os.getcwd())"))

        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    def test_pipes_stdin(self, tmp_path: Path) -> None:
        command = _python(
            tmp_path, "import sys; print(sys.stdin.read().upper())", stdin=b"blob"
        )

        assert run_command(command).stdout.strip() == "BLOB"

    def test_applies_env_overlay(self, tmp_path: Path) -> None:
        command = _python(
            tmp_path, "import os; print(os.environ['GIT_LITERAL_PATHSPECS'])",
            env={"GIT_LITERAL_PATHSPECS": "1"},
        )

        assert run_command(command).stdout.strip() == "1"

    def test_non_zero_exit_raises(self, tmp_path: Path) -> None:
        command = _python(
            tmp_path, "import sys; sys.stderr.write('fatal: bad\\n'); sys.exit(3)"
        )

        with pytest.raises(GitCommandError) as exc_info:
            run_command(command, error_message="Failed to stage file")

        error = exc_info.value
        assert str(error) == "Failed to stage file:\nfatal: bad\n"
        assert error.exit_code == 3
        assert error.stderr == "fatal: bad\n"
        assert error.command == tuple(command.argv)

    def test_default_error_message_names_subcommand(self, tmp_path: Path) -> None:
        command = _python(tmp_path, "import sys; sys.exit(1)")

        with pytest.raises(GitCommandError, match="git -c failed"):
            run_command(command)

    def test_missing_binary(self, tmp_path: Path) -> None:
        command = GitCommand.build(str(tmp_path / "missing-git"), tmp_path, "status")

        with pytest.raises(GitCommandError, match="Failed to run") as exc_info:
            run_command(command)

        assert exc_info.value.exit_code is None

    def test_logs_failures(self, tmp_path: Path, mocker: MockerFixture) -> None:
        logger = mocker.MagicMock()
        command = _python(tmp_path, "import sys; sys.exit(2)")

        with pytest.raises(GitCommandError):
            run_command(command, logger=logger)

        logger.debug.assert_called_once()
        assert logger.error.call_args.args == ("git_command_failed",)
        assert logger.error.call_args.kwargs["exit_code"] == 2
