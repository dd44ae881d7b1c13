"""Full-resync tree synchronization for packsmith.

This module mirrors a source pack subtree into its destination:

1. Resolve the destination root for (target, tree kind, project name)
2. Destructively clear the destination subtree
3. Walk the source subtree: files are copied or transpiled on a bounded
   thread pool, directories recurse
4. Join the pool, re-raising the first I/O failure, and report the file count

Clearing before repopulating means no orphaned destination entry survives
a resync, at the cost of rewriting unchanged files. The pass is not
atomic: a failure part way through leaves a partially rebuilt destination.
"""

from __future__ import annotations

import os
import shutil
import time
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from packsmith.errors import ConfigurationError
from packsmith.targets import DeploymentTarget, TargetResolver, TreeKind
from packsmith.transpiler import (
    DEFAULT_DIALECT,
    FileTranspiler,
    TranspileOutcome,
    is_script_source,
    output_name,
    shadowed_diagnostic,
)

if TYPE_CHECKING:
    from packsmith.config import ProjectConfig

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BuildReport:
    """Summary of a whole-project build.

    Attributes:
        file_count: Number of files processed across all trees.
        elapsed_ms: Wall-clock duration of the build in milliseconds.
        trees: Trees that were built, in build order.
    """

    file_count: int
    elapsed_ms: float
    trees: tuple[TreeKind, ...]


def elapsed_ms_since(start: float) -> float:
    """Milliseconds elapsed since a ``time.perf_counter()`` reading."""
    return (time.perf_counter() - start) * 1000


def empty_directory(path: Path) -> None:
    """Ensure ``path`` is an existing, empty directory.

    Existing contents are deleted. A file occupying the path is replaced.
    Missing parents are created.
    """
    if path.is_dir():
        for child in path.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        return

    if path.exists() or path.is_symlink():
        path.unlink()
    path.mkdir(parents=True, exist_ok=True)


class TreeSynchronizer:
    """Mirrors source pack trees into their destinations.

    Attributes:
        resolver: Destination root resolver.
        files: Per-file copy-or-transpile adapter.
        max_workers: Upper bound on concurrent file operations per pass.

    Example:
        >>> synchronizer = TreeSynchronizer(
        ...     resolver=TargetResolver.for_project("."),
        ...     files=FileTranspiler(EsbuildTranspiler()),
        ...     source_roots={TreeKind.BEHAVIOR: Path("BP")},
        ... )
        >>> synchronizer.sync("", DeploymentTarget.PACKAGED, TreeKind.BEHAVIOR, "Demo")
        12
    """

    def __init__(
        self,
        resolver: TargetResolver,
        files: FileTranspiler,
        source_roots: Mapping[TreeKind, Path | str],
        *,
        max_workers: int | None = None,
    ) -> None:
        """Initialize TreeSynchronizer.

        Args:
            resolver: Destination root resolver.
            files: Per-file adapter used for every file entry.
            source_roots: Source root of each enabled tree.
            max_workers: Thread pool size; None uses the executor default.
        """
        self.resolver = resolver
        self.files = files
        self.max_workers = max_workers
        self._source_roots = {kind: Path(root).absolute() for kind, root in source_roots.items()}

    @property
    def source_roots(self) -> dict[TreeKind, Path]:
        """Source root of each enabled tree."""
        return dict(self._source_roots)

    def source_root(self, kind: TreeKind) -> Path:
        """Return the source root for a tree kind.

        Raises:
            ValueError: If no source root is configured for ``kind``.
        """
        try:
            return self._source_roots[kind]
        except KeyError:
            raise ValueError(f"No source root configured for the {kind.value} tree") from None

    def sync(
        self,
        relative_path: Path | str,
        target: DeploymentTarget,
        kind: TreeKind,
        project_name: str,
        dialect: str = DEFAULT_DIALECT,
    ) -> int:
        """Clear and repopulate one destination subtree.

        Args:
            relative_path: Subtree path relative to the tree's source root
                ("" for the whole tree).
            target: Deployment target.
            kind: Tree kind.
            project_name: Project name.
            dialect: Dialect passed to the transpiler.

        Returns:
            Number of file entries processed (directories not counted).

        Raises:
            OSError: If any copy, write, or delete fails. The pass stops
                at the first failure observed when joining workers.
        """
        start = time.perf_counter()
        relative = Path(relative_path)

        with ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="packsmith-sync",
        ) as pool:
            futures: list[Future[TranspileOutcome]] = []
            count = self._populate(relative, target, kind, project_name, dialect, pool, futures)
            try:
                for future in futures:
                    future.result()
            except BaseException:
                pool.shutdown(wait=True, cancel_futures=True)
                raise

        logger.info(
            "tree_synced",
            tree=kind.value,
            path=relative.as_posix(),
            files=count,
            elapsed_ms=round(elapsed_ms_since(start), 2),
        )
        return count

    def _populate(
        self,
        relative: Path,
        target: DeploymentTarget,
        kind: TreeKind,
        project_name: str,
        dialect: str,
        pool: ThreadPoolExecutor,
        futures: list[Future[TranspileOutcome]],
    ) -> int:
        source_dir = self.source_root(kind) / relative
        destination_dir = self.resolver.destination(target, kind, project_name, relative)
        empty_directory(destination_dir)

        count = 0
        with os.scandir(source_dir) as it:
            entries = sorted(it, key=lambda entry: entry.name)
        names = {entry.name for entry in entries}

        for entry in entries:
            if entry.is_file():
                count += 1
                # helper.js keeps its name over helper.ts
                owner = output_name(entry.name)
                if is_script_source(entry.name) and owner in names:
                    self.files.reject(Path(entry.path), shadowed_diagnostic(source_dir / owner))
                    continue
                futures.append(
                    pool.submit(self.files.process, Path(entry.path), destination_dir, dialect)
                )
            elif entry.is_dir():
                count += self._populate(
                    relative / entry.name,
                    target,
                    kind,
                    project_name,
                    dialect,
                    pool,
                    futures,
                )

        return count

    def build_project(
        self,
        config: ProjectConfig,
        target: DeploymentTarget,
        dialect: str = DEFAULT_DIALECT,
    ) -> BuildReport:
        """Fully rebuild every enabled tree of a project.

        Args:
            config: Project configuration.
            target: Deployment target.
            dialect: Dialect passed to the transpiler.

        Returns:
            BuildReport with the total file count and duration.

        Raises:
            ConfigurationError: If an enabled tree's source directory is missing.
        """
        start = time.perf_counter()
        trees = tuple(config.enabled_trees())
        logger.info("build_started", target=target.value, trees=[t.value for t in trees])

        count = 0
        for kind in trees:
            root = self.source_root(kind)
            if not root.is_dir():
                raise ConfigurationError(
                    f"Source directory for the {kind.value} pack not found: {root.name}",
                    internal_details=str(root),
                )
            count += self.sync("", target, kind, config.project_name, dialect)

        report = BuildReport(file_count=count, elapsed_ms=elapsed_ms_since(start), trees=trees)
        logger.info(
            "build_completed",
            target=target.value,
            files=report.file_count,
            elapsed_ms=round(report.elapsed_ms, 2),
        )
        return report
