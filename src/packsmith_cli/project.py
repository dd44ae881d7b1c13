"""Project loading and engine wiring shared by CLI commands.

Every command starts from compiler.config.json: the directory holding
it is the project directory, and pack paths are resolved against it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rich.markup import escape

from packsmith.config import ProjectConfig
from packsmith.errors import ConfigurationError
from packsmith.synchronizer import BuildReport, TreeSynchronizer
from packsmith.targets import DeploymentTarget, TargetResolver
from packsmith.transpiler import EsbuildTranspiler, FileTranspiler, TranspileOutcome
from packsmith_cli.errors import handle_os_error, handle_packsmith_error
from packsmith_cli.output import info, success, warning


@dataclass(frozen=True)
class Project:
    """A loaded project: its configuration and the directory holding it."""

    config: ProjectConfig
    directory: Path


def load_project(file_path: str | Path) -> Project:
    """Load compiler.config.json, exiting with a user error when invalid."""
    path = Path(file_path).absolute()
    try:
        config = ProjectConfig.from_json(path)
    except ConfigurationError as e:
        handle_packsmith_error(e)
    return Project(config=config, directory=path.parent)


def installed_target(preview: bool) -> DeploymentTarget:
    """Select the installed-application target from the --preview flag."""
    return DeploymentTarget.PREVIEW if preview else DeploymentTarget.STABLE


def require_install_root(install_root: str | None) -> Path:
    """Return the install data root, exiting with a user error when unset."""
    if not install_root:
        handle_packsmith_error(
            ConfigurationError(
                "LOCALAPPDATA is not set. Set it or pass --install-root."
            )
        )
    return Path(install_root)


def report_transpile_failure(outcome: TranspileOutcome) -> None:
    """Print the one-line diagnostic for a file that failed to compile."""
    name = escape(outcome.source.name)
    warning(f"Failed to compile {name}: {escape(outcome.diagnostic or '')}")


def build_synchronizer(
    project: Project,
    *,
    install_root: Path | None = None,
    esbuild_executable: str = "esbuild",
) -> TreeSynchronizer:
    """Wire a TreeSynchronizer for a loaded project.

    Args:
        project: Loaded project.
        install_root: Install data root for STABLE/PREVIEW targets.
        esbuild_executable: Name or path of the esbuild executable.
    """
    transpiler = EsbuildTranspiler(esbuild_executable)
    if not transpiler.is_available():
        warning(f"{escape(esbuild_executable)} not found; TypeScript files will not be compiled")

    return TreeSynchronizer(
        resolver=TargetResolver.for_project(project.directory, install_root),
        files=FileTranspiler(transpiler, on_failure=report_transpile_failure),
        source_roots=project.config.source_roots(project.directory),
    )


def format_ms(elapsed_ms: float) -> str:
    """Format a duration for progress lines."""
    return f"{elapsed_ms:.1f}ms"


def run_full_build(
    synchronizer: TreeSynchronizer,
    project: Project,
    target: DeploymentTarget,
    dialect: str,
) -> BuildReport:
    """Build every enabled tree, translating engine errors into CLI exits."""
    info("Starting addon compilation...")
    try:
        report = synchronizer.build_project(project.config, target, dialect)
    except ConfigurationError as e:
        handle_packsmith_error(e)
    except OSError as e:
        handle_os_error(e)

    success(f"Compiled {report.file_count} files in {format_ms(report.elapsed_ms)}")
    return report
