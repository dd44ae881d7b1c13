"""Change routing for packsmith watch sessions.

This module turns one filesystem change into the minimal set of
destination updates:

1. Scope filter: paths outside every source root are ignored
2. Tree classification: the matching root decides the tree kind
3. Destination mapping via the TargetResolver
4. Existence probe on the source path:
   - gone, destination present: delete the destination recursively
   - gone, destination absent: nothing to do
   - file: copy or transpile that single file
   - directory: full resync of the subtree

Events are handled strictly one at a time, in arrival order, each to
completion. Bursts of events for the same path are not coalesced.
"""

from __future__ import annotations

import shutil
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog

from packsmith.synchronizer import TreeSynchronizer, elapsed_ms_since
from packsmith.targets import DeploymentTarget, TreeKind
from packsmith.transpiler import (
    DEFAULT_DIALECT,
    TranspileOutcome,
    is_script_source,
    output_name,
    shadowed_script,
    shadowing_source,
)

logger = structlog.get_logger(__name__)


class ChangeKind(str, Enum):
    """Kind of filesystem change reported by the watcher."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class ChangeEvent:
    """A single filesystem change.

    ``is_directory`` is a hint only. Removal events in particular carry no
    reliable type information, so routing always probes the source path.
    """

    path: Path
    kind: ChangeKind
    is_directory: bool = False


class RouteAction(str, Enum):
    """What the router did with an event."""

    IGNORED = "ignored"
    REMOVED = "removed"
    NOOP = "noop"
    UPDATED = "updated"
    RESYNCED = "resynced"


@dataclass(frozen=True)
class RouteResult:
    """Outcome of routing one ChangeEvent.

    Attributes:
        action: What was done.
        event: The routed event.
        tree: Tree the event belonged to (None when ignored).
        relative_path: Path relative to the tree's source root.
        file_count: Files processed (1 for UPDATED, subtree count for RESYNCED).
        elapsed_ms: Time spent handling the event.
        outcome: Per-file outcome for UPDATED events.
    """

    action: RouteAction
    event: ChangeEvent
    tree: TreeKind | None = None
    relative_path: Path | None = None
    file_count: int = 0
    elapsed_ms: float = 0.0
    outcome: TranspileOutcome | None = None


ResultCallback = Callable[[RouteResult], None]
ErrorCallback = Callable[[ChangeEvent, Exception], None]


class ChangeRouter:
    """Routes filesystem changes to destination updates.

    The deployment target, project name, and dialect are fixed for the
    lifetime of the router (one watch session).

    Example:
        >>> router = ChangeRouter(synchronizer, DeploymentTarget.STABLE, "Demo")
        >>> result = router.route(
        ...     ChangeEvent(Path("/work/demo/BP/scripts/main.ts"), ChangeKind.MODIFIED)
        ... )
        >>> result.action
        <RouteAction.UPDATED: 'updated'>
    """

    def __init__(
        self,
        synchronizer: TreeSynchronizer,
        target: DeploymentTarget,
        project_name: str,
        dialect: str = DEFAULT_DIALECT,
    ) -> None:
        self.synchronizer = synchronizer
        self.target = target
        self.project_name = project_name
        self.dialect = dialect
        self._log = logger.bind(target=target.value, project=project_name)

    def classify(self, path: Path | str) -> tuple[TreeKind, Path] | None:
        """Return the tree kind and relative path for ``path``.

        Returns None for paths not strictly below one of the source roots.
        The roots themselves are out of scope.
        """
        candidate = Path(path).absolute()
        roots = self.synchronizer.source_roots
        # Watch backends may report symlink-resolved paths (macOS /private/var),
        # so resolved paths are only compared once no root matched as given
        resolved = candidate.resolve()
        for observed, bases in (
            (candidate, roots),
            (resolved, {kind: root.resolve() for kind, root in roots.items()}),
        ):
            for kind, base in bases.items():
                if observed != base and observed.is_relative_to(base):
                    return kind, observed.relative_to(base)
        return None

    def route(self, event: ChangeEvent) -> RouteResult:
        """Handle one change event to completion.

        Raises:
            OSError: If a copy, write, or delete fails.
        """
        classified = self.classify(event.path)
        if classified is None:
            return RouteResult(action=RouteAction.IGNORED, event=event)

        kind, relative = classified
        start = time.perf_counter()
        source = self.synchronizer.source_root(kind) / relative
        destination = self.synchronizer.resolver.destination(
            self.target, kind, self.project_name, relative
        )

        # Probe the source itself; the event kind is not trusted
        if not source.exists():
            if not self._remove_destination(source, destination):
                return RouteResult(
                    action=RouteAction.NOOP, event=event, tree=kind, relative_path=relative
                )
            # The compiled name is free again for the script it was blocking
            script = shadowed_script(source)
            if script is not None:
                self.synchronizer.files.process(script, destination.parent, self.dialect)
            result = RouteResult(
                action=RouteAction.REMOVED,
                event=event,
                tree=kind,
                relative_path=relative,
                elapsed_ms=elapsed_ms_since(start),
            )
            self._log.info(
                "destination_removed",
                tree=kind.value,
                path=relative.as_posix(),
                elapsed_ms=round(result.elapsed_ms, 2),
            )
            return result

        if source.is_dir():
            count = self.synchronizer.sync(
                relative, self.target, kind, self.project_name, self.dialect
            )
            return RouteResult(
                action=RouteAction.RESYNCED,
                event=event,
                tree=kind,
                relative_path=relative,
                file_count=count,
                elapsed_ms=elapsed_ms_since(start),
            )

        destination.parent.mkdir(parents=True, exist_ok=True)
        outcome = self.synchronizer.files.process(source, destination.parent, self.dialect)
        result = RouteResult(
            action=RouteAction.UPDATED,
            event=event,
            tree=kind,
            relative_path=relative,
            file_count=1,
            elapsed_ms=elapsed_ms_since(start),
            outcome=outcome,
        )
        self._log.info(
            "file_updated",
            tree=kind.value,
            path=relative.as_posix(),
            outcome=outcome.kind.value,
            elapsed_ms=round(result.elapsed_ms, 2),
        )
        return result

    def _remove_destination(self, source: Path, destination: Path) -> bool:
        """Delete the destination image of a removed source entry.

        A removed script is mirrored by its compiled file, unless a live
        sibling source of that name owns it.
        """
        candidates = [destination]
        if is_script_source(source.name) and shadowing_source(source) is None:
            candidates.append(destination.with_name(output_name(destination.name)))

        removed = False
        for candidate in candidates:
            if candidate.is_dir() and not candidate.is_symlink():
                shutil.rmtree(candidate)
                removed = True
            elif candidate.exists() or candidate.is_symlink():
                candidate.unlink()
                removed = True
        return removed

    def run(
        self,
        events: Iterable[ChangeEvent],
        *,
        on_result: ResultCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[RouteResult]:
        """Route events sequentially, yielding each result.

        Each event is handled to completion before the next one is pulled
        from ``events``.

        Args:
            events: Event source, consumed in order.
            on_result: Optional callback for every non-ignored result.
            on_error: Optional callback for filesystem errors. When given,
                a failing event is reported and the loop continues; without
                it the error propagates and ends the loop.
        """
        for event in events:
            try:
                result = self.route(event)
            except OSError as e:
                if on_error is None:
                    raise
                self._log.error("route_failed", path=str(event.path), error=str(e))
                on_error(event, e)
                continue

            if result.action is not RouteAction.IGNORED and on_result is not None:
                on_result(result)
            yield result
