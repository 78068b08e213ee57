"""Remote operation execution engine.

Push, pull and fetch may block on a credential prompt served by an askpass
session. The engine races the session against the git process and reports a
single outcome: the process output, a process failure, or the session's
terminal state. The session wins when both finish in the same scheduling
step.
"""

import contextlib
import subprocess
from dataclasses import dataclass

import anyio
import anyio.abc
import anyio.lowlevel
from anyio.abc import ByteReceiveStream
from structlog.typing import FilteringBoundLogger

from repocore.enums import AskPassResult, RemoteOutcome
from repocore.exceptions import (
    REMOTE_CANCELLED_BY_USER,
    REMOTE_TIMED_OUT,
    GitCommandError,
    RemoteOperationError,
)
from repocore.repository._askpass import AskPassSession, askpass_env
from repocore.repository._models import RemoteCommandOutput
from repocore.utils._exec import GitCommand, creation_flags, truncate_output


@dataclass(slots=True)
class _ProcessResult:
    exit_code: int
    stdout: bytes
    stderr: bytes


@dataclass(slots=True)
class _RaceState:
    credential: AskPassResult | None = None
    process: _ProcessResult | None = None


async def _drain(stream: ByteReceiveStream | None, sink: bytearray) -> None:
    if stream is None:
        return
    async for chunk in stream:
        sink.extend(chunk)


async def _collect(process: anyio.abc.Process) -> _ProcessResult:
    stdout = bytearray()
    stderr = bytearray()
    async with anyio.create_task_group() as tg:
        tg.start_soon(_drain, process.stdout, stdout)
        tg.start_soon(_drain, process.stderr, stderr)
    exit_code = await process.wait()
    return _ProcessResult(exit_code=exit_code, stdout=bytes(stdout), stderr=bytes(stderr))


def _credential_error(result: AskPassResult) -> RemoteOperationError:
    match result:
        case AskPassResult.CANCELLED_BY_USER:
            return RemoteOperationError(
                REMOTE_CANCELLED_BY_USER, outcome=RemoteOutcome.CANCELLED_BY_USER
            )
        case AskPassResult.TIMED_OUT:
            return RemoteOperationError(REMOTE_TIMED_OUT, outcome=RemoteOutcome.TIMED_OUT)


async def _release(process: anyio.abc.Process) -> None:
    with anyio.CancelScope(shield=True):
        if process.returncode is None:
            # May have exited without being reaped yet.
            with contextlib.suppress(ProcessLookupError):
                process.kill()
        await process.aclose()


async def race_remote_command(
    askpass: AskPassSession,
    process: anyio.abc.Process,
    *,
    logger: FilteringBoundLogger | None = None,
) -> RemoteCommandOutput:
    """Race a credential session against a spawned network process.

    The process is always closed on return. If it is still running when the
    session wins, it is killed and reaped.

    Args:
        askpass: Session serving the process's credential prompts.
        process: Spawned git process with piped stdout and stderr.
        logger: Optional logger for outcome tracing.

    Returns:
        Captured output when the process exits with status 0.

    Raises:
        RemoteOperationError: If the user cancelled, the prompt timed out,
            or the process exited with a non-zero status.
    """
    state = _RaceState()

    try:
        async with anyio.create_task_group() as tg:

            async def watch_askpass() -> None:
                state.credential = await askpass.run()
                tg.cancel_scope.cancel()

            async def watch_process() -> None:
                result = await _collect(process)
                # Let a session that resolved in the same step record first.
                await anyio.lowlevel.cancel_shielded_checkpoint()
                state.process = result
                tg.cancel_scope.cancel()

            tg.start_soon(watch_askpass)
            tg.start_soon(watch_process)
    except ExceptionGroup as group:
        if len(group.exceptions) == 1:
            raise group.exceptions[0] from group
        raise
    finally:
        await _release(process)

    if state.credential is not None:
        if logger is not None:
            logger.info("remote_command_interrupted", outcome=str(state.credential))
        raise _credential_error(state.credential)

    if state.process is None:
        msg = "Remote command finished without a result"
        raise RuntimeError(msg)

    stdout = state.process.stdout.decode("utf-8", errors="replace")
    stderr = state.process.stderr.decode("utf-8", errors="replace")

    if state.process.exit_code != 0:
        if logger is not None:
            logger.error(
                "remote_command_failed",
                exit_code=state.process.exit_code,
                stderr=truncate_output(stderr),
            )
        raise RemoteOperationError(
            f"Operation failed:\n{stderr}",
            outcome=RemoteOutcome.FAILED,
            stderr=stderr,
        )

    return RemoteCommandOutput(stdout=stdout, stderr=stderr)


def run_remote_command(
    askpass: AskPassSession,
    command: GitCommand,
    *,
    logger: FilteringBoundLogger | None = None,
) -> RemoteCommandOutput:
    """Spawn a network git command and block until the race resolves.

    The command runs with the askpass environment applied on top of its own
    overlay, inside an event loop local to this call.

    Args:
        askpass: Session serving credential prompts.
        command: The push, pull or fetch invocation.
        logger: Optional logger for command tracing.

    Returns:
        Captured output on success.

    Raises:
        RemoteOperationError: See race_remote_command.
        GitCommandError: If git cannot be started.
    """
    command = command.with_env(askpass_env(askpass))

    async def spawn_and_race() -> RemoteCommandOutput:
        if logger is not None:
            logger.debug("remote_command", argv=command.argv, cwd=str(command.cwd))
        try:
            process = await anyio.open_process(
                command.argv,
                cwd=command.cwd,
                env=command.full_env(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                creationflags=creation_flags(),
            )
        except OSError as e:
            msg = f"Failed to run {command.binary}: {e}"
            raise GitCommandError(msg, command=command.argv) from e
        return await race_remote_command(askpass, process, logger=logger)

    return anyio.run(spawn_and_race)
