"""The command-line interface for repocore."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from repocore.config import safe_load_config
from repocore.utils import create_logger

from ._commands import register_commands
from ._context import CLIContext

_HELP = "Inspect a git repository through the repocore backends."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Build the CLI app with global options.

    Args:
        console: Console for help and usage output.
        error_console: Console for parse errors.
        exit_on_error: Exit the process on parse errors.

    Returns:
        The meta app; call it with a token list to run a command.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="repocore",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        repo: Annotated[
            Path | None, Parameter(name="--repo", help="Directory inside the repository")
        ] = None,
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
    ) -> None:
        """Launch repocore CLI with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            repo: Directory inside the repository to operate on.
            config: Explicit path to config file.
        """
        loaded_config, config_error = safe_load_config(config_path=config)

        logger = create_logger(
            loaded_config.logging.level.value,
            log_format=loaded_config.logging.format.value,  # pyright: ignore[reportArgumentType]
            log_file=loaded_config.logging.file or None,
        )

        CLIContext.set_current(
            CLIContext(
                config=loaded_config,
                repo_path=repo,
                config_error=config_error,
                logger=logger,
            )
        )
        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the `repocore` CLI."""
    app = create_app()
    app.meta()


if __name__ == "__main__":
    main()
