"""Exit codes and error reporting for the packsmith CLI.

Commands never print tracebacks. Engine exceptions are turned into a
:class:`CLIError`, which click catches at the top level and reports via
:meth:`CLIError.show`:

- exit 1: the user can fix it (bad compiler.config.json, missing pack
  directory, unknown install root)
- exit 2: the machine refused (permission denied, disk errors)
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click
from rich.markup import escape

from packsmith.errors import PacksmithError
from packsmith_cli.output import error

EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2


class CLIError(click.ClickException):
    """Error that ends a command with a status line and an exit code.

    Attributes:
        message: Line printed after the error marker.
        exit_code: Process exit status, EXIT_USER_ERROR unless given.
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        # click passes its own stream; output always goes to the shared console
        error(escape(self.format_message()))


def handle_packsmith_error(err: PacksmithError) -> NoReturn:
    """Re-raise an engine error as a user error exit."""
    raise CLIError(err.user_message) from err


def handle_os_error(err: OSError, operation: str = "build") -> NoReturn:
    """Re-raise a filesystem error as a system error exit.

    Args:
        err: Error raised while reading sources or writing outputs.
        operation: Verb for the message, e.g. ``build`` or ``create``.

    Example:
        >>> handle_os_error(PermissionError(13, "Permission denied", "dist/BP"))
        Traceback (most recent call last):
        CLIError: Permission denied: cannot build dist/BP
    """
    if isinstance(err, PermissionError):
        message = f"Permission denied: cannot {operation} {err.filename or 'destination'}"
    else:
        message = f"{operation.capitalize()} failed: {err.strerror or err}"
        if err.filename:
            message = f"{message} ({err.filename})"
    raise CLIError(message, exit_code=EXIT_SYSTEM_ERROR) from err


def exit_with_error(message: str, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print ``message`` as an error and exit the process immediately."""
    error(escape(message))
    sys.exit(exit_code)
