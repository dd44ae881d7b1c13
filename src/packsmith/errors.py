"""Exception hierarchy for packsmith.

- PacksmithError: base class; carries a message that is safe to print
- ConfigurationError: compiler.config.json missing or invalid, or a
  deployment target that needs an install root nobody provided
- TranspileError: a script could not be transformed (recoverable)
- WatcherError: the watcher was misused or cannot watch a root

Anything technical (validation dumps, absolute paths) goes in
``internal_details``, which is logged through structlog and kept out of
the printed message.

Filesystem failures are not wrapped. They surface as OSError and end
the pass that hit them.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


class PacksmithError(Exception):
    """Base exception for packsmith.

    Attributes:
        user_message: Message safe to show on the console.

    Example:
        >>> raise PacksmithError(
        ...     "Invalid configuration",
        ...     internal_details="packName: String should match pattern",
        ... )
    """

    def __init__(self, user_message: str, *, internal_details: str | None = None) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        if internal_details:
            logger.error(
                "packsmith_error",
                error_type=type(self).__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


def _with_context(message: str, file_path: str | None, field_path: str | None) -> str:
    context = []
    if file_path:
        context.append(f"in {file_path}")
    if field_path:
        context.append(f"field '{field_path}'")
    return f"{message} ({', '.join(context)})" if context else message


class ConfigurationError(PacksmithError):
    """Project configuration is missing, malformed, or incomplete.

    The printed message is suffixed with whichever of the file and field
    are known, e.g. ``Invalid configuration: ... (in compiler.config.json,
    field 'packName')``.

    Attributes:
        file_path: Configuration file the problem was found in.
        field_path: Dot-separated key of the offending field.
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        field_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(
            _with_context(user_message, file_path, field_path),
            internal_details=internal_details,
        )
        self.file_path = file_path
        self.field_path = field_path


class TranspileError(PacksmithError):
    """A script file could not be transformed.

    Raised by Transpiler implementations. The synchronization pass skips
    the file and carries on.

    Attributes:
        diagnostic: One-line description of the failure.
    """

    def __init__(self, diagnostic: str) -> None:
        super().__init__(diagnostic)
        self.diagnostic = diagnostic


class WatcherError(PacksmithError):
    """ProjectWatcher cannot start: already running, or a root is missing."""
