"""packsmith outdir command - Print the installed pack directories."""

from __future__ import annotations

import click
from rich.markup import escape

from packsmith.config import CONFIG_FILE_NAME
from packsmith.targets import TargetResolver, pack_suffix
from packsmith_cli.output import info
from packsmith_cli.project import installed_target, load_project, require_install_root


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
    "--preview",
    is_flag=True,
    default=False,
    help="Show Minecraft Preview directories instead of the stable release.",
)
@click.option(
    "--install-root",
    "install_root",
    type=click.Path(file_okay=False),
    envvar="LOCALAPPDATA",
    default=None,
    help="Per-user application data directory [default: $LOCALAPPDATA]",
)
def outdir(file_path: str, preview: bool, install_root: str | None) -> None:
    """Print where each enabled pack is installed.

    Examples:

        packsmith outdir

        packsmith outdir --preview
    """
    project = load_project(file_path)
    resolver = TargetResolver.for_project(project.directory, require_install_root(install_root))
    target = installed_target(preview)

    for kind in project.config.enabled_trees():
        path = resolver.resolve(target, kind, project.config.project_name)
        info(f'{pack_suffix(kind)}: "{escape(str(path))}"')
