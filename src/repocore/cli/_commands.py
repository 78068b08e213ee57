# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: D415
"""Repository inspection commands."""

import sys
from datetime import UTC, datetime
from typing import Annotated, NoReturn

from cyclopts import App, Parameter
from rich.console import Console
from rich.table import Table

from repocore.enums import DiffType
from repocore.exceptions import RepoCoreError
from repocore.repository import (
    WORK_DIRECTORY_REPO_PATH,
    GitRepository,
    RepoPath,
    open_repository,
)

from ._context import CLIContext


def _get_repo(console: Console) -> GitRepository:
    """Open the repository selected by the global options.

    Raises:
        SystemExit: If no repository is found.
    """
    ctx = CLIContext.get_current()
    try:
        return open_repository(ctx.repo_path, config=ctx.config, logger=ctx.logger)
    except RepoCoreError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def _fail(console: Console, error: RepoCoreError) -> NoReturn:
    ctx = CLIContext.get_current()
    if ctx.logger is not None:
        ctx.logger.error("command_failed", error=str(error))
    console.print(f"[red]Error:[/red] {error}")
    sys.exit(1)


def _format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=UTC).strftime("%Y-%m-%d %H:%M")


def register_commands(app: App) -> None:
    """Register repository commands on an app."""

    @app.command(name="branches")
    def _branches() -> None:
        """List local branches, current branch first"""
        console = Console()
        with _get_repo(console) as repo:
            try:
                branches = repo.branches()
            except RepoCoreError as e:
                _fail(console, e)

        if not branches:
            console.print("[dim]No branches[/dim]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("")
        table.add_column("Branch")
        table.add_column("Upstream")
        table.add_column("Last commit")
        for branch in sorted(branches, key=lambda b: b.priority_key, reverse=True):
            upstream = ""
            if branch.upstream is not None:
                status = branch.tracking_status
                if branch.upstream.is_gone:
                    upstream = f"{branch.upstream.ref_name} [red](gone)[/red]"
                elif status is not None:
                    upstream = (
                        f"{branch.upstream.ref_name} "
                        f"[dim]+{status.ahead}/-{status.behind}[/dim]"
                    )
            commit = branch.most_recent_commit
            table.add_row(
                "[green]*[/green]" if branch.is_head else "",
                branch.name,
                upstream,
                (
                    f"{_format_timestamp(commit.commit_timestamp)} {commit.subject}"
                    if commit is not None
                    else "[dim]no commits[/dim]"
                ),
            )
        console.print(table)

    @app.command(name="status")
    def _status(
        *prefixes: Annotated[str, Parameter(help="Only show paths below these prefixes")],
    ) -> None:
        """Show working tree status"""
        console = Console()
        try:
            path_prefixes = [RepoPath(p) for p in prefixes] or [WORK_DIRECTORY_REPO_PATH]
        except RepoCoreError as e:
            _fail(console, e)

        with _get_repo(console) as repo:
            try:
                status = repo.status(path_prefixes)
            except RepoCoreError as e:
                _fail(console, e)

        if not status.entries:
            console.print("[dim]No changes[/dim]")
            return

        for entry in status:
            code = entry.status.code.replace(" ", ".")
            if entry.status.is_conflicted:
                style = "red"
            elif entry.status.is_untracked:
                style = "cyan"
            elif entry.status.is_staged:
                style = "green"
            else:
                style = "yellow"
            console.print(f"[{style}]{code}[/{style}] {entry.repo_path}", highlight=False)

    @app.command(name="show")
    def _show(commit: Annotated[str, Parameter(help="Revision to show")] = "HEAD") -> None:
        """Show commit details"""
        console = Console()
        with _get_repo(console) as repo:
            try:
                details = repo.show(commit)
            except RepoCoreError as e:
                _fail(console, e)

        console.print(f"[yellow]commit {details.sha}[/yellow]", highlight=False)
        console.print(f"Committer: {details.committer_name} <{details.committer_email}>")
        console.print(f"Date:      {_format_timestamp(details.commit_timestamp)}")
        console.print()
        console.print(details.message.rstrip("\n"), highlight=False, markup=False)

    @app.command(name="remotes")
    def _remotes(
        branch: Annotated[
            str | None,
            Parameter(name=["--branch", "-b"], help="Prefer the branch's configured remote"),
        ] = None,
    ) -> None:
        """List remotes"""
        console = Console()
        with _get_repo(console) as repo:
            try:
                remotes = repo.get_remotes(branch)
                urls = {remote.name: repo.remote_url(remote.name) for remote in remotes}
            except RepoCoreError as e:
                _fail(console, e)

        if not remotes:
            console.print("[dim]No remotes[/dim]")
            return
        for remote in remotes:
            console.print(f"{remote.name}\t[dim]{urls[remote.name] or ''}[/dim]")

    @app.command(name="pushed")
    def _pushed() -> None:
        """List remote refs that already contain HEAD"""
        console = Console()
        with _get_repo(console) as repo:
            try:
                refs = repo.check_for_pushed_commit()
            except RepoCoreError as e:
                _fail(console, e)

        if not refs:
            console.print("[dim]HEAD is not on any remote[/dim]")
            return
        for ref in refs:
            console.print(ref)

    @app.command(name="diff")
    def _diff(
        staged: Annotated[
            bool, Parameter(name="--staged", help="Compare HEAD with the index")
        ] = False,  # noqa: FBT002
    ) -> None:
        """Show changes as a unified diff"""
        console = Console()
        diff_type = DiffType.HEAD_TO_INDEX if staged else DiffType.HEAD_TO_WORKTREE
        with _get_repo(console) as repo:
            try:
                text = repo.diff(diff_type)
            except RepoCoreError as e:
                _fail(console, e)

        console.print(text, end="", highlight=False, markup=False)
