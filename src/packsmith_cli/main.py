"""CLI entry point for packsmith.

The top-level group resolves subcommands lazily: each one lives in
``packsmith_cli.commands.<name>`` as a click command of the same name,
and the module is imported only when the group first resolves that
command.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from packsmith_cli import __version__
from packsmith_cli.output import set_no_color

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True

COMMANDS_PACKAGE = "packsmith_cli.commands"
LAZY_COMMANDS = ("package", "outdir", "scaffold", "watch")


class LazyGroup(rclick.RichGroup):
    """Rich-click group whose subcommands are imported on first use.

    Attributes:
        lazy_subcommands: Names of subcommands resolved from
            ``<package>.<name>.<name>``.
        package: Package holding one module per subcommand.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: tuple[str, ...] = (),
        package: str = COMMANDS_PACKAGE,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_subcommands = lazy_subcommands
        self.package = package

    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted({*super().list_commands(ctx), *self.lazy_subcommands})

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        registered = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if registered is not None or cmd_name not in self.lazy_subcommands:
            return registered

        module = importlib.import_module(f"{self.package}.{cmd_name}")
        command = getattr(module, cmd_name)
        if not isinstance(command, click.Command):
            raise TypeError(f"{module.__name__}.{cmd_name} is not a click command")
        return command


def _disable_color(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if value:
        set_no_color(True)


def _configure_logging(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    from packsmith.observability import configure_logging

    configure_logging(log_level="DEBUG" if value else "WARNING")


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="packsmith", message="Version v%(version)s")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    is_eager=True,
    expose_value=False,
    callback=_disable_color,
    help="Disable colored output.",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    expose_value=False,
    callback=_configure_logging,
    help="Show debug logs from the build engine on stderr.",
)
def cli() -> None:
    """packsmith - Minecraft Bedrock add-on compiler.

    Compiles TypeScript in your behavior pack and mirrors both packs
    into the game, or into `dist/` for packaging.

    **Getting Started:**

    - `packsmith scaffold` - Create a new add-on project
    - `packsmith watch` - Build into the game and keep it in sync
    - `packsmith package` - Build into `dist/`
    - `packsmith outdir` - Show where the packs are installed
    """


if __name__ == "__main__":
    cli()
