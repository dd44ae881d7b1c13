"""Script transpilation for packsmith.

This module wraps a pluggable transpiler capability:

- Transpiler: protocol for anything that turns TypeScript source text into
  JavaScript for a given dialect (es2020, es2021, esnext, ...)
- EsbuildTranspiler: default implementation driving the esbuild executable
- FileTranspiler: per-file adapter deciding between transpile and verbatim copy

Only ``.ts`` files are transpiled; every other file is copied byte for
byte. A transpile failure never aborts a pass: the file is skipped and
a diagnostic is logged.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

from packsmith.errors import TranspileError

logger = structlog.get_logger(__name__)

SCRIPT_SOURCE_SUFFIX = ".ts"
COMPILED_SCRIPT_SUFFIX = ".js"
DEFAULT_DIALECT = "es2021"


@runtime_checkable
class Transpiler(Protocol):
    """Protocol for script transpilers.

    Implementations receive the full source text and an opaque dialect
    identifier, and either return the transformed text or raise
    TranspileError.

    Example:
        >>> transpiler: Transpiler = EsbuildTranspiler()
        >>> transpiler.transform("const x: number = 1;", "es2021")
        'const x = 1;\\n'
    """

    def transform(self, source_text: str, dialect: str) -> str:
        """Transform TypeScript source into JavaScript.

        Raises:
            TranspileError: If the source cannot be transformed.
        """
        ...


class EsbuildTranspiler:
    """Transpiler backed by the esbuild command line tool.

    The source is piped through ``esbuild --loader=ts --target=<dialect>``.
    Type information is stripped; no bundling or type checking happens.

    Attributes:
        executable: Name or path of the esbuild executable.
    """

    def __init__(self, executable: str = "esbuild") -> None:
        self.executable = executable

    def is_available(self) -> bool:
        """Return True when the executable can be found."""
        return shutil.which(self.executable) is not None

    def transform(self, source_text: str, dialect: str) -> str:
        try:
            completed = subprocess.run(
                [self.executable, "--loader=ts", f"--target={dialect}", "--log-level=error"],
                input=source_text,
                capture_output=True,
                text=True,
                encoding="utf-8",
                check=False,
            )
        except FileNotFoundError as e:
            raise TranspileError(f"{self.executable} executable not found") from e

        if completed.returncode != 0:
            lines = [line.strip() for line in completed.stderr.splitlines() if line.strip()]
            raise TranspileError(lines[0] if lines else f"{self.executable} failed")

        return completed.stdout


class OutcomeKind(str, Enum):
    """How a single file was produced."""

    TRANSFORMED = "transformed"
    PASSTHROUGH = "passthrough"
    FAILED = "failed"


@dataclass(frozen=True)
class TranspileOutcome:
    """Result of processing one file.

    Attributes:
        kind: Whether the file was transformed, copied, or failed.
        source: Source file path.
        destination: Written file path, or None when the file failed.
        text: Transformed text (TRANSFORMED only).
        diagnostic: One-line failure description (FAILED only).
    """

    kind: OutcomeKind
    source: Path
    destination: Path | None = None
    text: str | None = None
    diagnostic: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is not OutcomeKind.FAILED


FailureCallback = Callable[[TranspileOutcome], None]


def is_script_source(name: str | Path) -> bool:
    """Return True when a file name carries the script source extension."""
    return str(name).endswith(SCRIPT_SOURCE_SUFFIX)


def output_name(name: str) -> str:
    """Return the destination file name for a source file name.

    Script sources have their ``.ts`` suffix rewritten to ``.js``; all
    other names are unchanged.

    Example:
        >>> output_name("main.ts")
        'main.js'
        >>> output_name("manifest.json")
        'manifest.json'
    """
    if is_script_source(name):
        return name[: -len(SCRIPT_SOURCE_SUFFIX)] + COMPILED_SCRIPT_SUFFIX
    return name


def shadowing_source(script: Path) -> Path | None:
    """Return the sibling source that owns a script's compiled name.

    ``helper.ts`` next to a real ``helper.js`` would compile onto the same
    destination file. The verbatim ``helper.js`` keeps the name and the
    script is skipped. Returns None when there is no such sibling.
    """
    if not is_script_source(script.name):
        return None
    sibling = script.with_name(output_name(script.name))
    return sibling if sibling.exists() else None


def shadowed_script(source: Path) -> Path | None:
    """Return the script that ``source`` keeps from compiling, if any."""
    if not source.name.endswith(COMPILED_SCRIPT_SUFFIX):
        return None
    script = source.with_name(source.name[: -len(COMPILED_SCRIPT_SUFFIX)] + SCRIPT_SOURCE_SUFFIX)
    return script if script.is_file() else None


def shadowed_diagnostic(owner: Path) -> str:
    return f"Compiled name {owner.name} is taken by a source file"


class FileTranspiler:
    """Copy-or-transpile adapter for single files.

    Attributes:
        transpiler: Underlying transpiler capability.
        on_failure: Optional callback invoked with every FAILED outcome.

    Example:
        >>> files = FileTranspiler(EsbuildTranspiler())
        >>> outcome = files.process(Path("BP/scripts/main.ts"), Path("dist/BP/scripts"))
        >>> outcome.destination
        PosixPath('dist/BP/scripts/main.js')
    """

    def __init__(
        self,
        transpiler: Transpiler,
        *,
        on_failure: FailureCallback | None = None,
    ) -> None:
        self.transpiler = transpiler
        self.on_failure = on_failure

    def transpile(
        self,
        source_text: str,
        dialect: str,
        source: Path | None = None,
    ) -> TranspileOutcome:
        """Transform source text, converting failures into a FAILED outcome."""
        source_path = source if source is not None else Path("<text>")
        try:
            text = self.transpiler.transform(source_text, dialect)
        except TranspileError as e:
            return TranspileOutcome(
                kind=OutcomeKind.FAILED,
                source=source_path,
                diagnostic=e.diagnostic,
            )
        return TranspileOutcome(kind=OutcomeKind.TRANSFORMED, source=source_path, text=text)

    def reject(self, source_file: Path, diagnostic: str) -> TranspileOutcome:
        """Record a script that produced no output.

        Logs ``transpile_failed`` and notifies ``on_failure``. Nothing is
        written for the file.
        """
        outcome = TranspileOutcome(
            kind=OutcomeKind.FAILED,
            source=source_file,
            diagnostic=diagnostic,
        )
        logger.warning(
            "transpile_failed",
            file=source_file.name,
            path=str(source_file),
            diagnostic=diagnostic,
        )
        if self.on_failure is not None:
            self.on_failure(outcome)
        return outcome

    def process(
        self,
        source_file: Path,
        destination_dir: Path,
        dialect: str = DEFAULT_DIALECT,
    ) -> TranspileOutcome:
        """Produce the destination image of one source file.

        A script whose compiled name is taken by a sibling source file, or
        whose bytes are not UTF-8, fails like a script with a syntax error.

        Args:
            source_file: File to process.
            destination_dir: Existing directory the output is written into.
            dialect: Dialect passed to the transpiler for script files.

        Returns:
            Outcome describing what was written.

        Raises:
            OSError: If reading or writing fails.
        """
        destination = destination_dir / output_name(source_file.name)

        if not is_script_source(source_file.name):
            shutil.copyfile(source_file, destination)
            return TranspileOutcome(
                kind=OutcomeKind.PASSTHROUGH,
                source=source_file,
                destination=destination,
            )

        shadow = shadowing_source(source_file)
        if shadow is not None:
            return self.reject(source_file, shadowed_diagnostic(shadow))

        try:
            source_text = source_file.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            return self.reject(
                source_file, f"Source is not valid UTF-8 ({e.reason} at byte {e.start})"
            )

        outcome = self.transpile(source_text, dialect, source_file)
        if not outcome.ok:
            return self.reject(source_file, outcome.diagnostic or "transpile failed")

        destination.write_text(outcome.text or "", encoding="utf-8")
        return TranspileOutcome(
            kind=OutcomeKind.TRANSFORMED,
            source=source_file,
            destination=destination,
            text=outcome.text,
        )
