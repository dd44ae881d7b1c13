"""packsmith watch command - Build into the game and keep it in sync."""

from __future__ import annotations

import click
from rich.markup import escape

from packsmith.config import CONFIG_FILE_NAME
from packsmith.errors import WatcherError
from packsmith.router import ChangeEvent, ChangeRouter, RouteAction, RouteResult
from packsmith.transpiler import DEFAULT_DIALECT, OutcomeKind
from packsmith.watcher import ProjectWatcher
from packsmith_cli.errors import handle_packsmith_error
from packsmith_cli.output import error, info, success
from packsmith_cli.project import (
    build_synchronizer,
    format_ms,
    installed_target,
    load_project,
    require_install_root,
    run_full_build,
)


def report_route_result(result: RouteResult) -> None:
    """Print the progress line for a routed change."""
    relative = escape((result.relative_path.as_posix() if result.relative_path else ""))
    elapsed = format_ms(result.elapsed_ms)

    if result.action is RouteAction.REMOVED:
        success(f"Removed: \\[{relative}] in {elapsed}")
    elif result.action is RouteAction.UPDATED:
        if result.outcome is not None and result.outcome.kind is OutcomeKind.FAILED:
            return
        success(f"Updated: \\[{relative}] in {elapsed}")
    elif result.action is RouteAction.RESYNCED:
        success(f"Compiled {result.file_count} files in {elapsed}")


def report_route_error(event: ChangeEvent, err: Exception) -> None:
    """Print a failed change without ending the watch session."""
    error(f"Failed to apply change to {escape(str(event.path))}: {escape(str(err))}")


@click.command()
@click.option(
    "-f",
    "--file",
    "file_path",
    type=click.Path(exists=False, dir_okay=False),
    default=f"./{CONFIG_FILE_NAME}",
    help=f"Path to {CONFIG_FILE_NAME} [default: ./{CONFIG_FILE_NAME}]",
)
@click.option(
    "-t",
    "--target",
    "dialect",
    type=str,
    default=DEFAULT_DIALECT,
    help=f"JavaScript language level to compile to [default: {DEFAULT_DIALECT}]",
)
@click.option(
    "--preview",
    is_flag=True,
    default=False,
    help="Install into Minecraft Preview instead of the stable release.",
)
@click.option(
    "--install-root",
    "install_root",
    type=click.Path(file_okay=False),
    envvar="LOCALAPPDATA",
    default=None,
    help="Per-user application data directory [default: $LOCALAPPDATA]",
)
@click.option(
    "--esbuild",
    "esbuild_executable",
    type=str,
    envvar="PACKSMITH_ESBUILD",
    default="esbuild",
    help="esbuild executable used to compile TypeScript [default: esbuild]",
)
def watch(
    file_path: str,
    dialect: str,
    preview: bool,
    install_root: str | None,
    esbuild_executable: str,
) -> None:
    """Build into the game, then keep it in sync with your sources.

    Performs a full build into the installed game's development pack
    folders, then watches both pack trees and applies every change
    as it happens. Stop with Ctrl+C.

    Examples:

        packsmith watch

        packsmith watch --preview

        packsmith watch --target es2020
    """
    project = load_project(file_path)
    root = require_install_root(install_root)
    target = installed_target(preview)
    synchronizer = build_synchronizer(
        project, install_root=root, esbuild_executable=esbuild_executable
    )

    run_full_build(synchronizer, project, target, dialect)

    router = ChangeRouter(synchronizer, target, project.config.project_name, dialect)
    info("Starting watch mode...")
    try:
        with ProjectWatcher(synchronizer.source_roots) as watcher:
            for _ in router.run(
                watcher.events(),
                on_result=report_route_result,
                on_error=report_route_error,
            ):
                pass
    except WatcherError as e:
        handle_packsmith_error(e)
    except KeyboardInterrupt:
        info("Stopped watching")
