"""Unit tests for LocalGitRepository command construction."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
from dulwich.repo import Repo

from repocore.config import Config, GitConfig
from repocore.enums import DiffType, PushOptions, ResetMode
from repocore.exceptions import (
    GitCommandError,
    GitObjectNotFoundError,
    RepositoryError,
    RepositoryNotFoundError,
)
from repocore.repository import (
    WORK_DIRECTORY_REPO_PATH,
    Branch,
    GitRepository,
    LocalGitRepository,
    Remote,
    RemoteCommandOutput,
    RepoPath,
    open_repository,
)
from repocore.utils import CommandResult, GitCommand
from tests.conftest import NeverResolves

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Create an empty non-bare repository with HEAD on trunk."""
    path = tmp_path / "project"
    path.mkdir()
    repo = Repo.init(str(path))
    repo.refs.set_symbolic_ref(b"HEAD", b"refs/heads/trunk")
    config = repo.get_config()
    config.set((b"remote", b"origin"), b"url", b"https://example.com/origin.git")
    config.set((b"branch", b"trunk"), b"remote", b"fork")
    config.write_to_path()
    repo.close()
    return path


@pytest.fixture
def repo(work_dir: Path) -> LocalGitRepository:
    return LocalGitRepository(work_dir, discover=False)


@pytest.fixture
def mock_run(mocker: MockerFixture) -> MagicMock:
    """Patch run_command so no git process is spawned."""
    return mocker.patch(
        "repocore.repository._repository.run_command",
        return_value=CommandResult(stdout="", stderr=""),
    )


def _last_command(mock_run: MagicMock) -> GitCommand:
    command = mock_run.call_args.args[0]
    assert isinstance(command, GitCommand)
    return command


class TestLocalGitRepositoryInit:
    def test_satisfies_protocol(self, repo: LocalGitRepository) -> None:
        assert isinstance(repo, GitRepository)

    def test_raises_when_not_a_repository(self, tmp_path: Path) -> None:
        with pytest.raises(RepositoryNotFoundError) as exc_info:
            LocalGitRepository(tmp_path, discover=False)

        assert exc_info.value.path == tmp_path

    def test_rejects_bare_repository(self, tmp_path: Path) -> None:
        bare = tmp_path / "bare.git"
        bare.mkdir()
        Repo.init_bare(str(bare)).close()

        with pytest.raises(RepositoryError, match="Bare repositories"):
            LocalGitRepository(bare, discover=False)

    def test_work_directory_and_paths(self, repo: LocalGitRepository, work_dir: Path) -> None:
        assert repo.work_directory == work_dir.resolve()
        assert repo.path() == (work_dir / ".git").resolve()
        assert repo.main_repository_path() == (work_dir / ".git").resolve()

    def test_context_manager_closes(self, work_dir: Path) -> None:
        with LocalGitRepository(work_dir, discover=False) as repo:
            assert repo.head_sha() is None

    def test_open_repository_uses_config(
        self, work_dir: Path, mock_run: MagicMock
    ) -> None:
        config = Config(git=GitConfig(binary_path="/usr/local/bin/git"))
        with open_repository(work_dir, config=config) as repo:
            repo.diff(DiffType.HEAD_TO_WORKTREE)

        assert _last_command(mock_run).binary == "/usr/local/bin/git"


class TestUnbornRepository:
    def test_no_head(self, repo: LocalGitRepository) -> None:
        assert repo.head_sha() is None
        assert repo.merge_head_shas() == []

    def test_committed_text_is_none(self, repo: LocalGitRepository) -> None:
        assert repo.load_committed_text(RepoPath("README.md")) is None

    def test_root_path_has_no_text(self, repo: LocalGitRepository) -> None:
        assert repo.load_index_text(WORK_DIRECTORY_REPO_PATH) is None
        assert repo.load_committed_text(WORK_DIRECTORY_REPO_PATH) is None

    def test_branches_fall_back_to_symbolic_head(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        assert repo.branches() == [Branch(is_head=True, name="trunk")]
        assert _last_command(mock_run).args[0] == "for-each-ref"

    def test_branch_does_not_exist(self, repo: LocalGitRepository) -> None:
        assert not repo.branch_exists("trunk")

    def test_show_unknown_revision(self, repo: LocalGitRepository) -> None:
        with pytest.raises(GitObjectNotFoundError) as exc_info:
            repo.show("HEAD")

        assert exc_info.value.revision == "HEAD"

    def test_check_for_pushed_commit_without_head(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        assert repo.check_for_pushed_commit() == []
        mock_run.assert_not_called()


class TestRemoteConfig:
    def test_remote_url(self, repo: LocalGitRepository) -> None:
        assert repo.remote_url("origin") == "https://example.com/origin.git"
        assert repo.remote_url("missing") is None

    def test_get_remotes_prefers_branch_remote(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        assert repo.get_remotes("trunk") == [Remote("fork")]
        mock_run.assert_not_called()

    def test_get_remotes_lists_all(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        mock_run.return_value = CommandResult(stdout="origin\nfork\n", stderr="")

        assert repo.get_remotes("other") == [Remote("origin"), Remote("fork")]
        assert _last_command(mock_run).args == ("remote",)


class TestCommandConstruction:
    def test_status_with_no_prefixes_skips_git(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        assert len(repo.status([])) == 0
        mock_run.assert_not_called()

    def test_status_uses_literal_pathspecs(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        mock_run.return_value = CommandResult(
            stdout=" M a/x.txt\x00?? a*/y.txt\x00", stderr=""
        )

        status = repo.status([RepoPath("a"), WORK_DIRECTORY_REPO_PATH])

        command = _last_command(mock_run)
        assert command.env["GIT_LITERAL_PATHSPECS"] == "1"
        assert command.args[-3:] == ("--", "a", ".")
        assert "--no-optional-locks" in command.args
        assert [str(e.repo_path) for e in status] == ["a/x.txt", "a*/y.txt"]

    def test_reset(self, repo: LocalGitRepository, mock_run: MagicMock) -> None:
        repo.reset("abc123", ResetMode.SOFT, {"GIT_TRACE": "0"})

        command = _last_command(mock_run)
        assert command.args == ("reset", "--soft", "abc123")
        assert command.env == {"GIT_TRACE": "0"}

    def test_checkout_files(self, repo: LocalGitRepository, mock_run: MagicMock) -> None:
        repo.checkout_files("HEAD~1", [RepoPath("a.txt"), RepoPath("d/b.txt")], {})

        assert _last_command(mock_run).args == ("checkout", "HEAD~1", "--", "a.txt", "d/b.txt")

    def test_empty_path_lists_are_noops(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        repo.checkout_files("HEAD", [], {})
        repo.stage_paths([], {})
        repo.unstage_paths([], {})

        mock_run.assert_not_called()

    def test_stage_paths_records_deletions(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        repo.stage_paths([RepoPath("a.txt")], {})

        assert _last_command(mock_run).args == ("update-index", "--add", "--remove", "--", "a.txt")

    def test_unstage_paths(self, repo: LocalGitRepository, mock_run: MagicMock) -> None:
        repo.unstage_paths([RepoPath("a.txt")], {})

        assert _last_command(mock_run).args == ("reset", "--quiet", "--", "a.txt")

    def test_commit_with_author(self, repo: LocalGitRepository, mock_run: MagicMock) -> None:
        repo.commit("msg", ("Ada", "ada@example.com"), {})

        assert _last_command(mock_run).args == (
            "commit",
            "--quiet",
            "-m",
            "msg",
            "--cleanup=strip",
            "--author",
            "Ada <ada@example.com>",
        )

    def test_set_index_text_writes_blob_then_index(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        mock_run.return_value = CommandResult(stdout="f" * 40 + "\n", stderr="")

        repo.set_index_text(RepoPath("a.txt"), "hello", {})

        first, second = (call.args[0] for call in mock_run.call_args_list)
        assert first.args == ("hash-object", "-w", "--stdin")
        assert first.stdin == b"hello"
        assert second.args == (
            "update-index",
            "--add",
            "--cacheinfo",
            "100644",
            "f" * 40,
            "a.txt",
        )

    def test_set_index_text_none_removes_entry(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        repo.set_index_text(RepoPath("a.txt"), None, {})

        assert _last_command(mock_run).args == ("update-index", "--force-remove", "a.txt")

    def test_set_index_text_failure_propagates(
        self, repo: LocalGitRepository, mock_run: MagicMock
    ) -> None:
        mock_run.side_effect = GitCommandError("Failed to write blob:\nboom", stderr="boom")

        with pytest.raises(GitCommandError, match="Failed to write blob"):
            repo.set_index_text(RepoPath("a.txt"), "x", {})

    def test_diff_staged(self, repo: LocalGitRepository, mock_run: MagicMock) -> None:
        repo.diff(DiffType.HEAD_TO_INDEX)
        assert _last_command(mock_run).args == ("diff", "--staged")


class TestNetworkCommands:
    @pytest.fixture
    def mock_remote(self, mocker: MockerFixture) -> MagicMock:
        return mocker.patch(
            "repocore.repository._repository.run_remote_command",
            return_value=RemoteCommandOutput(stderr="ok"),
        )

    def test_push_with_options(
        self, repo: LocalGitRepository, mock_remote: MagicMock
    ) -> None:
        session = NeverResolves()

        output = repo.push("main", "origin", PushOptions.FORCE, session, {"A": "1"})

        assert output == RemoteCommandOutput(stderr="ok")
        askpass, command = mock_remote.call_args.args
        assert askpass is session
        assert command.args == ("push", "--force-with-lease", "origin", "main:main")
        assert command.env == {"A": "1"}

    def test_push_without_options(
        self, repo: LocalGitRepository, mock_remote: MagicMock
    ) -> None:
        repo.push("main", "origin", None, NeverResolves(), {})

        assert mock_remote.call_args.args[1].args == ("push", "origin", "main:main")

    def test_pull(self, repo: LocalGitRepository, mock_remote: MagicMock) -> None:
        repo.pull("main", "upstream", NeverResolves(), {})

        assert mock_remote.call_args.args[1].args == ("pull", "upstream", "main")

    def test_fetch(self, repo: LocalGitRepository, mock_remote: MagicMock) -> None:
        repo.fetch(NeverResolves(), {})

        assert mock_remote.call_args.args[1].args == ("fetch", "--all")
