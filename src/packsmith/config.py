"""Project configuration model for packsmith.

This module defines ProjectConfig, the validated form of a project's
``compiler.config.json``:

    {
        "packName": "Demo",
        "behaviourPackPath": "/BP/",
        "resourcePackPath": "/RP/"
    }

A pack tree is enabled only when its path key is present. Pack paths
are relative to the directory holding the configuration file; the
leading slash of the ``/BP/`` form is ignored.
"""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from packsmith.errors import ConfigurationError
from packsmith.targets import PACKAGED_DIR_NAME, TreeKind

CONFIG_FILE_NAME = "compiler.config.json"

DEFAULT_BEHAVIOR_PACK_PATH = "/BP/"
DEFAULT_RESOURCE_PACK_PATH = "/RP/"

# Project names become folder names under com.mojang
PROJECT_NAME_PATTERN = r'^[^\\/:*?"<>|]+$'


def pack_path_parts(value: str) -> tuple[str, ...]:
    """Split a configured pack path into project-relative parts.

    Example:
        >>> pack_path_parts("/BP/")
        ('BP',)
    """
    return PurePosixPath(value.replace("\\", "/").strip("/")).parts


class ProjectConfig(BaseModel):
    """Root configuration model for compiler.config.json.

    Attributes:
        project_name: Pack name, used to name installed pack folders.
        behavior_pack_path: Behavior pack source directory, or None to skip it.
        resource_pack_path: Resource pack source directory, or None to skip it.

    Example:
        >>> config = ProjectConfig(packName="Demo", behaviourPackPath="/BP/")
        >>> config.behavior_tree_enabled
        True
        >>> config.resource_tree_enabled
        False
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    project_name: str = Field(
        ...,
        alias="packName",
        min_length=1,
        max_length=100,
        pattern=PROJECT_NAME_PATTERN,
        description="Pack name",
    )
    behavior_pack_path: str | None = Field(
        default=None,
        alias="behaviourPackPath",
        description="Behavior pack source directory",
    )
    resource_pack_path: str | None = Field(
        default=None,
        alias="resourcePackPath",
        description="Resource pack source directory",
    )

    @field_validator("project_name")
    @classmethod
    def _strip_project_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("packName must not be blank")
        return stripped

    @field_validator("behavior_pack_path", "resource_pack_path")
    @classmethod
    def _check_pack_path(cls, value: str | None) -> str | None:
        if value is None:
            return None
        parts = pack_path_parts(value)
        if ".." in parts:
            raise ValueError("pack paths must stay inside the project directory")
        if not parts:
            raise ValueError("pack paths must name a subdirectory of the project")
        if parts[0] == PACKAGED_DIR_NAME:
            raise ValueError(f"pack paths must not be inside the {PACKAGED_DIR_NAME} directory")
        return value

    @model_validator(mode="after")
    def _reject_overlapping_packs(self) -> ProjectConfig:
        if self.behavior_pack_path is None or self.resource_pack_path is None:
            return self
        behavior = pack_path_parts(self.behavior_pack_path)
        resource = pack_path_parts(self.resource_pack_path)
        shared = min(len(behavior), len(resource))
        if behavior[:shared] == resource[:shared]:
            raise ValueError("behaviourPackPath and resourcePackPath must not overlap")
        return self

    @property
    def behavior_tree_enabled(self) -> bool:
        """Whether the behavior pack tree takes part in builds."""
        return self.behavior_pack_path is not None

    @property
    def resource_tree_enabled(self) -> bool:
        """Whether the resource pack tree takes part in builds."""
        return self.resource_pack_path is not None

    def enabled_trees(self) -> list[TreeKind]:
        """Return the enabled tree kinds, behavior first."""
        trees: list[TreeKind] = []
        if self.behavior_tree_enabled:
            trees.append(TreeKind.BEHAVIOR)
        if self.resource_tree_enabled:
            trees.append(TreeKind.RESOURCE)
        return trees

    def source_root(self, kind: TreeKind, project_dir: Path | str) -> Path:
        """Return the absolute source root of a pack tree.

        Args:
            kind: Tree kind.
            project_dir: Directory holding compiler.config.json.

        Raises:
            ValueError: If the tree is not enabled or kind is unknown.
        """
        if kind is TreeKind.BEHAVIOR:
            configured = self.behavior_pack_path
        elif kind is TreeKind.RESOURCE:
            configured = self.resource_pack_path
        else:
            raise ValueError(f"Unknown tree kind: {kind!r}")

        if configured is None:
            raise ValueError(f"The {kind.value} tree is not enabled")

        return Path(project_dir).absolute().joinpath(*pack_path_parts(configured))

    def source_roots(self, project_dir: Path | str) -> dict[TreeKind, Path]:
        """Return the source root of every enabled tree."""
        return {kind: self.source_root(kind, project_dir) for kind in self.enabled_trees()}

    @classmethod
    def from_json(cls, path: str | Path) -> ProjectConfig:
        """Load and validate ProjectConfig from a JSON file.

        Args:
            path: Path to compiler.config.json.

        Returns:
            Validated ProjectConfig instance.

        Raises:
            ConfigurationError: If the file is missing, is not valid JSON,
                or fails validation.

        Example:
            >>> config = ProjectConfig.from_json("compiler.config.json")
            >>> config.project_name
            'Demo'
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"{path.name} not found", file_path=str(path))

        try:
            data: Any = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}",
                file_path=path.name,
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError("Expected a JSON object", file_path=path.name)

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            raise ConfigurationError(
                f"Invalid configuration: {first['msg']}",
                file_path=path.name,
                field_path=".".join(str(x) for x in first["loc"]),
                internal_details=str(e),
            ) from e

    def to_json(self) -> str:
        """Serialize using the compiler.config.json key names."""
        return json.dumps(self.model_dump(by_alias=True, exclude_none=True), indent=4)

    def write(self, path: str | Path) -> Path:
        """Write the configuration to ``path`` and return it."""
        path = Path(path)
        path.write_text(self.to_json() + "\n", encoding="utf-8")
        return path
