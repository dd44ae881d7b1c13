"""packsmith scaffold command - Create a new add-on project."""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
from pydantic import ValidationError as PydanticValidationError
from rich.markup import escape

from packsmith.config import (
    CONFIG_FILE_NAME,
    DEFAULT_BEHAVIOR_PACK_PATH,
    DEFAULT_RESOURCE_PACK_PATH,
    ProjectConfig,
)
from packsmith_cli.errors import EXIT_SYSTEM_ERROR, EXIT_USER_ERROR, exit_with_error
from packsmith_cli.output import success, warning

GITIGNORE_CONTENT = "/dist/\n"

README_TEMPLATE = """\
# {{ name }}

A Minecraft Bedrock add-on built with packsmith.

## Layout

- `{{ behavior_path }}` - behavior pack (TypeScript in `scripts/` is compiled to JavaScript)
- `{{ resource_path }}` - resource pack

## Commands

```bash
packsmith watch            # build into Minecraft and keep it in sync
packsmith watch --preview  # same, for Minecraft Preview
packsmith package          # build into dist/
packsmith outdir           # show the installed pack folders
```
"""


def _init_git_repository(directory: Path) -> bool:
    """Run ``git init``; return False when git is unavailable or fails."""
    try:
        completed = subprocess.run(
            ["git", "init"],
            cwd=directory,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except FileNotFoundError:
        return False
    return completed.returncode == 0


@click.command()
@click.option(
    "-n",
    "--name",
    "name",
    type=str,
    prompt="Project Name",
    help="Project name, used to name the installed pack folders.",
)
@click.option(
    "--git/--no-git",
    "init_git",
    default=True,
    help="Initialize a git repository [default: git]",
)
def scaffold(name: str, init_git: bool) -> None:
    """Create a new add-on project in the current directory.

    Writes compiler.config.json, creates the BP/ and RP/ pack
    directories, a .gitignore for dist/, and a README.

    Examples:

        packsmith scaffold

        packsmith scaffold --name Demo

        packsmith scaffold --name Demo --no-git
    """
    project_dir = Path.cwd()
    config_path = project_dir / CONFIG_FILE_NAME

    # Never overwrite an existing project
    if config_path.exists():
        exit_with_error(f"{CONFIG_FILE_NAME} already found")

    try:
        config = ProjectConfig(
            project_name=name,
            behavior_pack_path=DEFAULT_BEHAVIOR_PACK_PATH,
            resource_pack_path=DEFAULT_RESOURCE_PACK_PATH,
        )
    except PydanticValidationError:
        exit_with_error(f"Invalid Pack Name: {name}", EXIT_USER_ERROR)

    try:
        from jinja2.sandbox import SandboxedEnvironment

        env = SandboxedEnvironment(trim_blocks=True, lstrip_blocks=True)
        readme_content = env.from_string(README_TEMPLATE).render(
            name=config.project_name,
            behavior_path=DEFAULT_BEHAVIOR_PACK_PATH.strip("/") + "/",
            resource_path=DEFAULT_RESOURCE_PACK_PATH.strip("/") + "/",
        )

        config.write(config_path)
        for kind in config.enabled_trees():
            config.source_root(kind, project_dir).mkdir(parents=True, exist_ok=True)
        (project_dir / ".gitignore").write_text(GITIGNORE_CONTENT)

        readme_path = project_dir / "README.md"
        if not readme_path.exists():
            readme_path.write_text(readme_content)

    except PermissionError:
        exit_with_error("Cannot write to current directory.", EXIT_SYSTEM_ERROR)

    success(f"Initialized Project {escape(config.project_name)} in directory")

    if not init_git:
        return
    if _init_git_repository(project_dir):
        success("Initialized Git Repository")
    else:
        warning("git is not available; skipped repository initialization")
