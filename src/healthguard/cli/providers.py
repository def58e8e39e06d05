"""Factory functions for CLI.

Centralizes creation of settings, logging and the application context from
environment variables. Hides configuration details from command
implementations.
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

from ..config import Settings
from ..context import AppContext

# Default console for output
_console = Console()


def get_settings() -> Settings:
    """Read settings from the environment (see Settings.from_env)."""
    return Settings.from_env()


def setup_logging(level: str, console: Console | None = None) -> None:
    """Route package logging through Rich.

    Args:
        level: Logging level name such as 'INFO' or 'DEBUG'
        console: Optional Rich console for output
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or _console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def get_user_id(user: str | None, console: Console | None = None) -> str:
    """Resolve the user id from the --user option or HEALTHGUARD_USER.

    Raises:
        SystemExit: If no user is given
    """
    import typer

    con = console or _console
    user_id = user or os.getenv("HEALTHGUARD_USER")
    if not user_id:
        con.print("[red]Error: no user given; pass --user or set HEALTHGUARD_USER[/red]")
        raise typer.Exit(code=1)
    return user_id


def get_context(settings: Settings | None = None) -> AppContext:
    """Create the application context from settings."""
    return AppContext.from_settings(settings or get_settings())
