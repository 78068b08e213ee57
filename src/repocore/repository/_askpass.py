"""Credential prompt session protocol.

Network commands delegate interactive prompts to a callback script. The
session that serves the script is owned by the caller; the repository only
needs the script location and a way to wait for the session to end.
"""

from pathlib import Path
from typing import Final, Protocol, runtime_checkable

from repocore.enums import AskPassResult

ASKPASS_ENV_VARS: Final = ("GIT_ASKPASS", "SSH_ASKPASS")


@runtime_checkable
class AskPassSession(Protocol):
    """An interactive credential prompt side-channel.

    ``run`` resolves only when the session reaches a terminal state. A
    session that never needs to prompt may simply never resolve.
    """

    @property
    def script_path(self) -> Path:
        """Program git and ssh invoke to ask for credentials."""
        ...

    async def run(self) -> AskPassResult:
        """Wait until the user cancels the prompt or it times out."""
        ...


def askpass_env(session: AskPassSession) -> dict[str, str]:
    """Environment that routes git and ssh prompts to the session script.

    Example:
        >>> env = askpass_env(session)
        >>> env["SSH_ASKPASS_REQUIRE"]
        'force'
    """
    script = str(session.script_path)
    env = dict.fromkeys(ASKPASS_ENV_VARS, script)
    env["SSH_ASKPASS_REQUIRE"] = "force"
    return env
