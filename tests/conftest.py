"""Shared pytest fixtures for packsmith tests.

Provides a fake transpiler standing in for esbuild, a sample add-on
project on disk, wired engine objects, and CliRunner helpers.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from packsmith.config import CONFIG_FILE_NAME, ProjectConfig
from packsmith.errors import TranspileError
from packsmith.synchronizer import TreeSynchronizer
from packsmith.targets import TargetResolver
from packsmith.transpiler import FileTranspiler

PROJECT_NAME = "Demo"

MAIN_TS = 'import { world } from "@minecraft/server";\nconst ticks: number = 20;\n'
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\xff\x00binary\x00data"


class FakeTranspiler:
    """Deterministic transpiler used instead of esbuild.

    Strips ``: number`` annotations and prefixes a dialect banner.
    Sources containing ``SYNTAX ERROR`` fail.
    """

    def __init__(self, executable: str = "esbuild") -> None:
        self.executable = executable
        self.calls: list[tuple[str, str]] = []

    def is_available(self) -> bool:
        return True

    def transform(self, source_text: str, dialect: str) -> str:
        self.calls.append((source_text, dialect))
        if "SYNTAX ERROR" in source_text:
            raise TranspileError("Unexpected token at 1:6")
        return f"// compiled for {dialect}\n" + source_text.replace(": number", "")


def compiled(source_text: str, dialect: str = "es2021") -> str:
    """Expected FakeTranspiler output for a source text."""
    return f"// compiled for {dialect}\n" + source_text.replace(": number", "")


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def fake_transpiler() -> FakeTranspiler:
    """Return a fresh FakeTranspiler."""
    return FakeTranspiler()


@pytest.fixture
def fake_esbuild(monkeypatch: pytest.MonkeyPatch) -> type[FakeTranspiler]:
    """Make the CLI build its synchronizer around FakeTranspiler."""
    monkeypatch.setattr("packsmith_cli.project.EsbuildTranspiler", FakeTranspiler)
    return FakeTranspiler


def write_project(project_dir: Path) -> Path:
    """Create a sample add-on project under ``project_dir``."""
    bp = project_dir / "BP"
    rp = project_dir / "RP"
    (bp / "scripts" / "util").mkdir(parents=True)
    (bp / "items").mkdir(parents=True)
    (rp / "textures" / "items").mkdir(parents=True)

    (bp / "manifest.json").write_text(json.dumps({"format_version": 2}))
    (bp / "scripts" / "main.ts").write_text(MAIN_TS)
    (bp / "scripts" / "util" / "math.ts").write_text("export const two: number = 2;\n")
    (bp / "items" / "sword.json").write_text('{"minecraft:item": {}}')
    (rp / "manifest.json").write_text(json.dumps({"format_version": 2}))
    (rp / "textures" / "items" / "sword.png").write_bytes(PNG_BYTES)

    ProjectConfig(
        project_name=PROJECT_NAME,
        behavior_pack_path="/BP/",
        resource_pack_path="/RP/",
    ).write(project_dir / CONFIG_FILE_NAME)
    return project_dir


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Sample project with both pack trees and a compiler.config.json."""
    return write_project(tmp_path / "project")


@pytest.fixture
def install_root(tmp_path: Path) -> Path:
    """Stand-in for LOCALAPPDATA."""
    root = tmp_path / "appdata"
    root.mkdir()
    return root


@pytest.fixture
def resolver(project_dir: Path, install_root: Path) -> TargetResolver:
    """TargetResolver staging into <project>/dist and installing under install_root."""
    return TargetResolver.for_project(project_dir, install_root)


@pytest.fixture
def file_transpiler(fake_transpiler: FakeTranspiler) -> FileTranspiler:
    """FileTranspiler around the fake transpiler."""
    return FileTranspiler(fake_transpiler)


@pytest.fixture
def synchronizer(
    resolver: TargetResolver, file_transpiler: FileTranspiler, project_dir: Path
) -> TreeSynchronizer:
    """TreeSynchronizer over the sample project."""
    config = ProjectConfig.from_json(project_dir / CONFIG_FILE_NAME)
    return TreeSynchronizer(
        resolver=resolver,
        files=file_transpiler,
        source_roots=config.source_roots(project_dir),
        max_workers=4,
    )


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def isolated_runner(cli_runner: CliRunner) -> Generator[CliRunner, None, None]:
    """Create a Click test runner with an isolated filesystem."""
    with cli_runner.isolated_filesystem():
        yield cli_runner


@pytest.fixture
def expected_output() -> Callable[..., str]:
    """Return a function computing FakeTranspiler output for a source text."""
    return compiled
