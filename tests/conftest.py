"""Shared test fixtures for repocore tests."""

from collections.abc import Iterator
from pathlib import Path

import anyio
import pytest
from anyio.streams.memory import MemoryObjectReceiveStream
from rich.console import Console

from repocore.enums import AskPassResult
from repocore.repository import FakeGitRepository

FAKE_GIT_DIR = Path("/fake/project/.git")
ASKPASS_SCRIPT = Path("/opt/askpass/prompt.sh")


class NeverResolves:
    """Askpass session for a command that never prompts."""

    @property
    def script_path(self) -> Path:
        return ASKPASS_SCRIPT

    async def run(self) -> AskPassResult:
        await anyio.sleep_forever()
        return AskPassResult.TIMED_OUT


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def repo_events() -> Iterator[tuple[FakeGitRepository, MemoryObjectReceiveStream[Path]]]:
    """Create a FakeGitRepository and the receiving end of its change stream."""
    send, receive = anyio.create_memory_object_stream[Path](64)
    repo = FakeGitRepository(FAKE_GIT_DIR, send)
    yield repo, receive
    send.close()
    receive.close()


@pytest.fixture
def fake_repo(
    repo_events: tuple[FakeGitRepository, MemoryObjectReceiveStream[Path]],
) -> FakeGitRepository:
    return repo_events[0]


def drain_events(receive: MemoryObjectReceiveStream[Path]) -> list[Path]:
    """Collect every event currently buffered on a change stream."""
    events: list[Path] = []
    while True:
        try:
            events.append(receive.receive_nowait())
        except anyio.WouldBlock:
            return events
