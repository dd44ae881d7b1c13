"""Destination root resolution for packsmith.

This module maps a (deployment target, tree kind, project name) triple
to the directory a pack is mirrored into:

- PACKAGED: ``<packaged_root>/BP`` or ``<packaged_root>/RP``
- STABLE / PREVIEW: the development pack folders of the installed
  Minecraft application, under ``<install_data_root>/Packages/<app-id>/...``

The install data root (``LOCALAPPDATA`` on Windows) is injected at
construction. Nothing here reads the process environment.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from packsmith.errors import ConfigurationError

STABLE_APP_ID = "Microsoft.MinecraftUWP_8wekyb3d8bbwe"
PREVIEW_APP_ID = "Microsoft.MinecraftWindowsBeta_8wekyb3d8bbwe"
COM_MOJANG_PATH = Path("LocalState") / "games" / "com.mojang"

# Default staging directory for PACKAGED builds, relative to the project
PACKAGED_DIR_NAME = "dist"


class DeploymentTarget(str, Enum):
    """Destination root family a build or watch session writes into."""

    PACKAGED = "packaged"
    STABLE = "stable"
    PREVIEW = "preview"


class TreeKind(str, Enum):
    """Which of the two parallel pack trees an operation concerns."""

    BEHAVIOR = "behavior"
    RESOURCE = "resource"


def pack_suffix(kind: TreeKind) -> str:
    """Return the short pack suffix ("BP" or "RP") for a tree kind.

    Raises:
        ValueError: If kind is not a known TreeKind.
    """
    if kind is TreeKind.BEHAVIOR:
        return "BP"
    if kind is TreeKind.RESOURCE:
        return "RP"
    raise ValueError(f"Unknown tree kind: {kind!r}")


def development_folder(kind: TreeKind) -> str:
    """Return the com.mojang development folder name for a tree kind.

    Raises:
        ValueError: If kind is not a known TreeKind.
    """
    if kind is TreeKind.BEHAVIOR:
        return "development_behavior_packs"
    if kind is TreeKind.RESOURCE:
        return "development_resource_packs"
    raise ValueError(f"Unknown tree kind: {kind!r}")


class TargetResolver:
    """Resolves destination roots for pack trees.

    Resolution is a pure function of the constructor arguments and the
    requested triple. Nothing is cached.

    Attributes:
        packaged_root: Staging directory for PACKAGED builds.
        install_data_root: Per-user application data directory, or None
            when only PACKAGED builds are possible.

    Example:
        >>> resolver = TargetResolver(
        ...     packaged_root=Path("/work/demo/dist"),
        ...     install_data_root=Path("C:/Users/me/AppData/Local"),
        ... )
        >>> resolver.resolve(DeploymentTarget.PACKAGED, TreeKind.BEHAVIOR, "Demo")
        PosixPath('/work/demo/dist/BP')
    """

    def __init__(
        self,
        packaged_root: Path | str,
        install_data_root: Path | str | None = None,
    ) -> None:
        """Initialize the TargetResolver.

        Args:
            packaged_root: Directory PACKAGED builds are staged in.
            install_data_root: Root of per-application install data. Required
                for STABLE and PREVIEW targets.
        """
        self.packaged_root = Path(packaged_root).absolute()
        self.install_data_root = (
            Path(install_data_root).absolute() if install_data_root is not None else None
        )

    @classmethod
    def for_project(
        cls,
        project_dir: Path | str,
        install_data_root: Path | str | None = None,
    ) -> TargetResolver:
        """Create a resolver staging PACKAGED builds in ``<project_dir>/dist``."""
        return cls(Path(project_dir) / PACKAGED_DIR_NAME, install_data_root)

    def resolve(self, target: DeploymentTarget, kind: TreeKind, project_name: str) -> Path:
        """Resolve the destination root for a pack tree.

        Args:
            target: Deployment target.
            kind: Tree kind.
            project_name: Project name, used as the pack folder prefix.

        Returns:
            Absolute destination root path.

        Raises:
            ValueError: If target or kind is unknown.
            ConfigurationError: If an installed-application target is requested
                without an install data root.
        """
        suffix = pack_suffix(kind)

        if target is DeploymentTarget.PACKAGED:
            return self.packaged_root / suffix

        if target is DeploymentTarget.STABLE:
            app_id = STABLE_APP_ID
        elif target is DeploymentTarget.PREVIEW:
            app_id = PREVIEW_APP_ID
        else:
            raise ValueError(f"Unknown deployment target: {target!r}")

        if self.install_data_root is None:
            raise ConfigurationError(
                f"Cannot resolve the {target.value} destination: "
                "no install data root (LOCALAPPDATA) is configured"
            )

        return (
            self.install_data_root
            / "Packages"
            / app_id
            / COM_MOJANG_PATH
            / development_folder(kind)
            / f"{project_name} {suffix}"
        )

    def destination(
        self,
        target: DeploymentTarget,
        kind: TreeKind,
        project_name: str,
        relative_path: Path | str = "",
    ) -> Path:
        """Map a path relative to a source root onto its destination."""
        return self.resolve(target, kind, project_name) / relative_path
