"""Console output for packsmith-cli.

All user-facing lines go through the module-level Rich console. Status
lines carry a colored marker; callers escape any interpolated paths.
``NO_COLOR`` in the environment and the ``--no-color`` flag both turn
colors off.
"""

from __future__ import annotations

import os
from typing import Any

from rich.console import Console

SUCCESS_MARK = "[green]✓[/green]"
ERROR_MARK = "[red]✗[/red]"
WARNING_MARK = "[yellow]⚠[/yellow]"


def create_console(no_color: bool = False) -> Console:
    """Create the Rich console used for command output.

    Args:
        no_color: Disable colors. ``NO_COLOR`` in the environment has the
            same effect.

    Returns:
        Console that never wraps long lines or highlights numbers.
    """
    plain = no_color or "NO_COLOR" in os.environ
    return Console(
        force_terminal=False if plain else None,
        no_color=plain,
        soft_wrap=True,
        highlight=False,
    )


console = create_console()


def _status(mark: str, message: str, **kwargs: Any) -> None:
    console.print(f"{mark} {message}", **kwargs)


def success(message: str, **kwargs: Any) -> None:
    """Print a completed step.

    Example:
        >>> success("Compiled 12 files in 40.1ms")
        ✓ Compiled 12 files in 40.1ms
    """
    _status(SUCCESS_MARK, message, **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print a failure."""
    _status(ERROR_MARK, message, **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print a recoverable problem, such as a file that failed to compile."""
    _status(WARNING_MARK, message, **kwargs)


def info(message: str, **kwargs: Any) -> None:
    """Print a plain line."""
    console.print(message, **kwargs)


def set_no_color(no_color: bool) -> None:
    """Replace the module console, enabling or disabling colors."""
    global console
    console = create_console(no_color=no_color)
