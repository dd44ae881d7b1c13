"""packsmith package command - Build into the local dist/ directory."""

from __future__ import annotations

import click

from packsmith.config import CONFIG_FILE_NAME
from packsmith.targets import DeploymentTarget
from packsmith.transpiler import DEFAULT_DIALECT
from packsmith_cli.project import build_synchronizer, load_project, run_full_build


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
    "--esbuild",
    "esbuild_executable",
    type=str,
    envvar="PACKSMITH_ESBUILD",
    default="esbuild",
    help="esbuild executable used to compile TypeScript [default: esbuild]",
)
def package(file_path: str, dialect: str, esbuild_executable: str) -> None:
    """Build both packs into dist/BP and dist/RP.

    The dist/ directory sits next to compiler.config.json and is
    cleared before every build.

    Examples:

        packsmith package

        packsmith package --target es2020
    """
    project = load_project(file_path)
    synchronizer = build_synchronizer(project, esbuild_executable=esbuild_executable)
    run_full_build(synchronizer, project, DeploymentTarget.PACKAGED, dialect)
