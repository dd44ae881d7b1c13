"""Unit tests for packsmith.router."""

from __future__ import annotations

import shutil
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from packsmith.router import ChangeEvent, ChangeKind, ChangeRouter, RouteAction
from packsmith.synchronizer import TreeSynchronizer
from packsmith.targets import DeploymentTarget, TreeKind
from packsmith.transpiler import OutcomeKind


@pytest.fixture
def router(synchronizer: TreeSynchronizer) -> ChangeRouter:
    """Router over a fully built PACKAGED destination."""
    synchronizer.sync("", DeploymentTarget.PACKAGED, TreeKind.BEHAVIOR, "Demo")
    synchronizer.sync("", DeploymentTarget.PACKAGED, TreeKind.RESOURCE, "Demo")
    return ChangeRouter(synchronizer, DeploymentTarget.PACKAGED, "Demo")


@pytest.fixture
def dist(project_dir: Path) -> Path:
    return project_dir / "dist"


class TestClassify:
    """Tests for scope filtering and tree classification."""

    def test_behavior_path(self, router: ChangeRouter, project_dir: Path) -> None:
        result = router.classify(project_dir / "BP" / "scripts" / "main.ts")
        assert result == (TreeKind.BEHAVIOR, Path("scripts") / "main.ts")

    def test_resource_path(self, router: ChangeRouter, project_dir: Path) -> None:
        result = router.classify(project_dir / "RP" / "manifest.json")
        assert result == (TreeKind.RESOURCE, Path("manifest.json"))

    @pytest.mark.parametrize(
        "relative",
        ["compiler.config.json", "dist/BP/manifest.json", "BPX/file.json", "README.md"],
    )
    def test_outside_roots_is_ignored(
        self, router: ChangeRouter, project_dir: Path, relative: str
    ) -> None:
        assert router.classify(project_dir / relative) is None

    def test_root_itself_is_out_of_scope(self, router: ChangeRouter, project_dir: Path) -> None:
        assert router.classify(project_dir / "BP") is None

    def test_string_paths_accepted(self, router: ChangeRouter, project_dir: Path) -> None:
        result = router.classify(str(project_dir / "BP" / "items"))
        assert result == (TreeKind.BEHAVIOR, Path("items"))

    def test_symlink_into_other_tree_keeps_its_own_tree(
        self, router: ChangeRouter, project_dir: Path
    ) -> None:
        link = project_dir / "RP" / "shared"
        link.symlink_to(project_dir / "BP" / "items", target_is_directory=True)

        result = router.classify(link / "sword.json")

        assert result == (TreeKind.RESOURCE, Path("shared") / "sword.json")

    def test_resolved_path_falls_back_to_real_root(
        self, synchronizer: TreeSynchronizer, project_dir: Path, tmp_path: Path
    ) -> None:
        alias = tmp_path / "alias"
        alias.symlink_to(project_dir, target_is_directory=True)
        router = ChangeRouter(synchronizer, DeploymentTarget.PACKAGED, "Demo")

        result = router.classify(alias / "BP" / "manifest.json")

        assert result == (TreeKind.BEHAVIOR, Path("manifest.json"))


class TestRouteIgnored:
    """Out-of-scope events never touch any destination."""

    def test_ignored_event_changes_nothing(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        before = sorted(p.as_posix() for p in dist.rglob("*"))
        (project_dir / "notes.txt").write_text("hello")

        result = router.route(ChangeEvent(project_dir / "notes.txt", ChangeKind.CREATED))

        assert result.action is RouteAction.IGNORED
        assert result.tree is None
        assert sorted(p.as_posix() for p in dist.rglob("*")) == before


class TestRouteRemoval:
    """Tests for routing events whose source no longer exists."""

    def test_removed_file_deletes_destination(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        source = project_dir / "BP" / "items" / "sword.json"
        source.unlink()

        result = router.route(ChangeEvent(source, ChangeKind.REMOVED))

        assert result.action is RouteAction.REMOVED
        assert result.relative_path == Path("items") / "sword.json"
        assert not (dist / "BP" / "items" / "sword.json").exists()
        assert (dist / "BP" / "manifest.json").exists()

    def test_removed_script_deletes_compiled_output(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        source = project_dir / "BP" / "scripts" / "main.ts"
        source.unlink()

        result = router.route(ChangeEvent(source, ChangeKind.REMOVED))

        assert result.action is RouteAction.REMOVED
        assert not (dist / "BP" / "scripts" / "main.js").exists()
        assert (dist / "BP" / "scripts" / "util" / "math.js").exists()

    def test_removed_directory_deletes_subtree_only(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        shutil.rmtree(project_dir / "BP" / "scripts")

        result = router.route(
            ChangeEvent(project_dir / "BP" / "scripts", ChangeKind.REMOVED, is_directory=True)
        )

        assert result.action is RouteAction.REMOVED
        assert not (dist / "BP" / "scripts").exists()
        assert (dist / "BP" / "items" / "sword.json").exists()
        assert (dist / "RP" / "manifest.json").exists()

    def test_absent_destination_is_noop(self, router: ChangeRouter, project_dir: Path) -> None:
        result = router.route(ChangeEvent(project_dir / "BP" / "ghost.json", ChangeKind.REMOVED))
        assert result.action is RouteAction.NOOP
        assert result.tree is TreeKind.BEHAVIOR

    def test_event_kind_is_not_trusted(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        # A MODIFIED report for a path that is gone is still a removal
        source = project_dir / "RP" / "manifest.json"
        source.unlink()

        result = router.route(ChangeEvent(source, ChangeKind.MODIFIED))

        assert result.action is RouteAction.REMOVED
        assert not (dist / "RP" / "manifest.json").exists()

    def test_removed_script_keeps_output_of_live_sibling(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        scripts = project_dir / "BP" / "scripts"
        (scripts / "helper.js").write_text("export const plain = 1;\n")
        (scripts / "helper.ts").write_text("export const typed: number = 2;\n")
        router.synchronizer.sync("scripts", DeploymentTarget.PACKAGED, TreeKind.BEHAVIOR, "Demo")
        (scripts / "helper.ts").unlink()

        result = router.route(ChangeEvent(scripts / "helper.ts", ChangeKind.REMOVED))

        assert result.action is RouteAction.NOOP
        assert (dist / "BP" / "scripts" / "helper.js").read_text() == "export const plain = 1;\n"

    def test_removed_verbatim_js_frees_name_for_script(
        self,
        router: ChangeRouter,
        project_dir: Path,
        dist: Path,
        expected_output: Callable[..., str],
    ) -> None:
        scripts = project_dir / "BP" / "scripts"
        (scripts / "helper.js").write_text("export const plain = 1;\n")
        (scripts / "helper.ts").write_text("export const typed: number = 2;\n")
        router.synchronizer.sync("scripts", DeploymentTarget.PACKAGED, TreeKind.BEHAVIOR, "Demo")
        (scripts / "helper.js").unlink()

        result = router.route(ChangeEvent(scripts / "helper.js", ChangeKind.REMOVED))

        assert result.action is RouteAction.REMOVED
        compiled = (dist / "BP" / "scripts" / "helper.js").read_text()
        assert compiled == expected_output("export const typed: number = 2;\n")


class TestRouteFile:
    """Tests for routing events on existing files."""

    def test_modified_script_is_recompiled(
        self,
        router: ChangeRouter,
        project_dir: Path,
        dist: Path,
        expected_output: Callable[..., str],
    ) -> None:
        source = project_dir / "BP" / "scripts" / "main.ts"
        source.write_text("const speed: number = 5;\n")

        result = router.route(ChangeEvent(source, ChangeKind.MODIFIED))

        assert result.action is RouteAction.UPDATED
        assert result.file_count == 1
        assert result.outcome is not None
        assert result.outcome.kind is OutcomeKind.TRANSFORMED
        compiled = (dist / "BP" / "scripts" / "main.js").read_text()
        assert compiled == expected_output("const speed: number = 5;\n")

    def test_single_file_update_leaves_siblings_untouched(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        sibling = dist / "BP" / "scripts" / "util" / "math.js"
        sibling.write_text("marker")

        router.route(ChangeEvent(project_dir / "BP" / "scripts" / "main.ts", ChangeKind.MODIFIED))

        assert sibling.read_text() == "marker"

    def test_created_file_in_new_directory(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        # The directory's own event may not have been routed yet
        new_file = project_dir / "RP" / "texts" / "en_US.lang"
        new_file.parent.mkdir()
        new_file.write_text("item.sword=Sword")

        result = router.route(ChangeEvent(new_file, ChangeKind.CREATED))

        assert result.action is RouteAction.UPDATED
        assert (dist / "RP" / "texts" / "en_US.lang").read_text() == "item.sword=Sword"

    def test_failed_transpile_keeps_previous_output(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        previous = (dist / "BP" / "scripts" / "main.js").read_text()
        source = project_dir / "BP" / "scripts" / "main.ts"
        source.write_text("// SYNTAX ERROR\n")

        result = router.route(ChangeEvent(source, ChangeKind.MODIFIED))

        assert result.action is RouteAction.UPDATED
        assert result.outcome is not None
        assert result.outcome.kind is OutcomeKind.FAILED
        assert (dist / "BP" / "scripts" / "main.js").read_text() == previous

    def test_uses_router_dialect(self, synchronizer: TreeSynchronizer, project_dir: Path) -> None:
        synchronizer.sync("", DeploymentTarget.PACKAGED, TreeKind.BEHAVIOR, "Demo")
        router = ChangeRouter(synchronizer, DeploymentTarget.PACKAGED, "Demo", dialect="es2017")
        source = project_dir / "BP" / "scripts" / "main.ts"

        router.route(ChangeEvent(source, ChangeKind.MODIFIED))

        compiled = (project_dir / "dist" / "BP" / "scripts" / "main.js").read_text()
        assert "compiled for es2017" in compiled

    def test_undecodable_script_keeps_previous_output(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        previous = (dist / "BP" / "scripts" / "main.js").read_text()
        source = project_dir / "BP" / "scripts" / "main.ts"
        source.write_bytes(b"const x = '\xff\xfe';\n")
        on_error = MagicMock()

        results = list(router.run([ChangeEvent(source, ChangeKind.MODIFIED)], on_error=on_error))

        on_error.assert_not_called()
        assert [r.action for r in results] == [RouteAction.UPDATED]
        assert results[0].outcome is not None
        assert results[0].outcome.kind is OutcomeKind.FAILED
        assert (dist / "BP" / "scripts" / "main.js").read_text() == previous

    def test_script_shadowed_by_verbatim_js_is_not_written(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        scripts = project_dir / "BP" / "scripts"
        (scripts / "helper.js").write_text("export const plain = 1;\n")
        router.route(ChangeEvent(scripts / "helper.js", ChangeKind.CREATED))
        (scripts / "helper.ts").write_text("export const typed: number = 2;\n")

        result = router.route(ChangeEvent(scripts / "helper.ts", ChangeKind.CREATED))

        assert result.outcome is not None
        assert result.outcome.kind is OutcomeKind.FAILED
        assert (dist / "BP" / "scripts" / "helper.js").read_text() == "export const plain = 1;\n"


class TestRouteDirectory:
    """Tests for routing events on existing directories."""

    def test_directory_event_resyncs_subtree(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        sibling = dist / "BP" / "scripts" / "util" / "math.js"
        sibling.write_text("marker")
        (dist / "BP" / "scripts" / "orphan.js").write_text("stale")

        result = router.route(
            ChangeEvent(project_dir / "BP" / "scripts", ChangeKind.CREATED, is_directory=True)
        )

        assert result.action is RouteAction.RESYNCED
        assert result.file_count == 2
        assert sibling.read_text() != "marker"
        assert not (dist / "BP" / "scripts" / "orphan.js").exists()

    def test_directory_resync_does_not_touch_other_subtrees(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        (dist / "BP" / "items" / "keep.json").write_text("kept")

        router.route(ChangeEvent(project_dir / "BP" / "scripts", ChangeKind.MODIFIED))

        assert (dist / "BP" / "items" / "keep.json").read_text() == "kept"

    def test_moved_directory_resyncs_new_location(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        old = project_dir / "BP" / "scripts"
        new = project_dir / "BP" / "logic"
        old.rename(new)

        results = list(
            router.run(
                [
                    ChangeEvent(old, ChangeKind.REMOVED, is_directory=True),
                    ChangeEvent(new, ChangeKind.CREATED, is_directory=True),
                ]
            )
        )

        assert [r.action for r in results] == [RouteAction.REMOVED, RouteAction.RESYNCED]
        assert not (dist / "BP" / "scripts").exists()
        assert (dist / "BP" / "logic" / "main.js").exists()
        assert (dist / "BP" / "logic" / "util" / "math.js").exists()


class TestRun:
    """Tests for sequential event processing."""

    def test_results_follow_event_order(self, router: ChangeRouter, project_dir: Path) -> None:
        events = [
            ChangeEvent(project_dir / "BP" / "manifest.json", ChangeKind.MODIFIED),
            ChangeEvent(project_dir / "outside.txt", ChangeKind.CREATED),
            ChangeEvent(project_dir / "RP" / "manifest.json", ChangeKind.MODIFIED),
        ]

        results = list(router.run(events))

        assert [r.event for r in results] == events
        assert [r.action for r in results] == [
            RouteAction.UPDATED,
            RouteAction.IGNORED,
            RouteAction.UPDATED,
        ]

    def test_on_result_skips_ignored(self, router: ChangeRouter, project_dir: Path) -> None:
        on_result = MagicMock()
        events = [
            ChangeEvent(project_dir / "outside.txt", ChangeKind.CREATED),
            ChangeEvent(project_dir / "BP" / "manifest.json", ChangeKind.MODIFIED),
        ]

        list(router.run(events, on_result=on_result))

        on_result.assert_called_once()
        assert on_result.call_args.args[0].action is RouteAction.UPDATED

    def test_error_propagates_without_handler(
        self, router: ChangeRouter, project_dir: Path
    ) -> None:
        event = ChangeEvent(project_dir / "BP" / "manifest.json", ChangeKind.MODIFIED)
        with patch(
            "packsmith.transpiler.shutil.copyfile",
            side_effect=PermissionError(13, "Permission denied"),
        ):
            with pytest.raises(PermissionError):
                list(router.run([event]))

    def test_error_handler_keeps_loop_running(
        self, router: ChangeRouter, project_dir: Path, dist: Path
    ) -> None:
        on_error = MagicMock()
        failing = ChangeEvent(project_dir / "BP" / "manifest.json", ChangeKind.MODIFIED)
        removal_source = project_dir / "RP" / "manifest.json"
        removal_source.unlink()
        following = ChangeEvent(removal_source, ChangeKind.REMOVED)

        with patch(
            "packsmith.transpiler.shutil.copyfile",
            side_effect=PermissionError(13, "Permission denied"),
        ):
            results = list(router.run([failing, following], on_error=on_error))

        on_error.assert_called_once()
        assert on_error.call_args.args[0] == failing
        assert isinstance(on_error.call_args.args[1], PermissionError)
        assert [r.action for r in results] == [RouteAction.REMOVED]
        assert not (dist / "RP" / "manifest.json").exists()

    def test_events_are_pulled_lazily(self, router: ChangeRouter, project_dir: Path) -> None:
        pulled: list[int] = []

        def source() -> Iterator[ChangeEvent]:
            for index in range(3):
                pulled.append(index)
                yield ChangeEvent(project_dir / "BP" / "manifest.json", ChangeKind.MODIFIED)

        results = router.run(source())
        next(results)
        assert pulled == [0]
        next(results)
        assert pulled == [0, 1]
