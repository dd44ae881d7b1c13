"""packsmith: incremental build engine for Minecraft Bedrock add-on projects.

This package provides:
- Destination resolution for packaged, stable, and preview targets
- Full-resync mirroring of behavior and resource pack trees
- TypeScript transpilation through a pluggable transpiler
- Change routing and watchdog-based watching for live synchronization

Example:
    >>> from packsmith import ProjectConfig, TargetResolver, TreeSynchronizer
    >>>
    >>> config = ProjectConfig.from_json("compiler.config.json")
    >>> synchronizer = TreeSynchronizer(
    ...     resolver=TargetResolver.for_project("."),
    ...     files=FileTranspiler(EsbuildTranspiler()),
    ...     source_roots=config.source_roots("."),
    ... )
    >>> synchronizer.build_project(config, DeploymentTarget.PACKAGED)
"""

from __future__ import annotations

from packsmith.config import CONFIG_FILE_NAME, ProjectConfig
from packsmith.errors import (
    ConfigurationError,
    PacksmithError,
    TranspileError,
    WatcherError,
)
from packsmith.router import (
    ChangeEvent,
    ChangeKind,
    ChangeRouter,
    RouteAction,
    RouteResult,
)
from packsmith.synchronizer import BuildReport, TreeSynchronizer
from packsmith.targets import DeploymentTarget, TargetResolver, TreeKind
from packsmith.transpiler import (
    DEFAULT_DIALECT,
    EsbuildTranspiler,
    FileTranspiler,
    OutcomeKind,
    Transpiler,
    TranspileOutcome,
)
from packsmith.watcher import ProjectWatcher, WatcherState

__version__ = "1.0.1"

__all__ = [
    # Configuration
    "CONFIG_FILE_NAME",
    "ProjectConfig",
    # Targets
    "DeploymentTarget",
    "TargetResolver",
    "TreeKind",
    # Transpilation
    "DEFAULT_DIALECT",
    "EsbuildTranspiler",
    "FileTranspiler",
    "OutcomeKind",
    "Transpiler",
    "TranspileOutcome",
    # Synchronization
    "BuildReport",
    "TreeSynchronizer",
    # Watching
    "ChangeEvent",
    "ChangeKind",
    "ChangeRouter",
    "ProjectWatcher",
    "RouteAction",
    "RouteResult",
    "WatcherState",
    # Errors
    "ConfigurationError",
    "PacksmithError",
    "TranspileError",
    "WatcherError",
]
