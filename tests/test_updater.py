"""Tests for the transactional updater."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from agent_extensions.errors import (
    ExtensionInstallError,
    LinkNotUpdatableError,
    PostInstallVerificationError,
    RollbackError,
    UnknownExtensionTypeError,
)
from agent_extensions.installer import ExtensionInstaller
from agent_extensions.models import (
    Extension,
    ExtensionInstallMetadata,
    ExtensionUpdateInfo,
    InstallType,
)
from agent_extensions.state import ExtensionUpdateState, can_enter_updating
from agent_extensions.storage import ExtensionStorage
from agent_extensions.updater import update_extension
from helpers import snapshot_tree, write_manifest


@pytest.fixture
def tracked_tmp_dirs(
    storage: ExtensionStorage,
    monkeypatch: pytest.MonkeyPatch,
) -> list[Path]:
    """Record every temporary directory the storage hands out."""
    created: list[Path] = []
    original = storage.create_tmp_dir

    def _create() -> Path:
        path = original()
        created.append(path)
        return path

    monkeypatch.setattr(storage, "create_tmp_dir", _create)
    return created


class TestEarlyExits:
    @pytest.mark.asyncio
    async def test_already_updating_is_noop(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
    ) -> None:
        extension = install_local("demo")
        states: list[ExtensionUpdateState] = []

        result = await update_extension(
            extension, ExtensionUpdateState.UPDATING, states.append, installer
        )

        assert result is None
        assert states == []

    @pytest.mark.asyncio
    async def test_unknown_type(self, installer: ExtensionInstaller, tmp_path: Path) -> None:
        extension = Extension(name="mystery", version="1.0.0", path=tmp_path / "mystery")
        states: list[ExtensionUpdateState] = []

        with pytest.raises(UnknownExtensionTypeError, match="Extension mystery cannot be updated"):
            await update_extension(
                extension, ExtensionUpdateState.UPDATE_AVAILABLE, states.append, installer
            )

        assert states == [ExtensionUpdateState.ERROR]

    @pytest.mark.asyncio
    async def test_linked_extension_is_not_updatable(
        self,
        installer: ExtensionInstaller,
        tmp_path: Path,
    ) -> None:
        extension = Extension(
            name="linked",
            version="1.0.0",
            path=tmp_path / "linked",
            install_metadata=ExtensionInstallMetadata(
                type=InstallType.LINK, source=str(tmp_path / "src")
            ),
        )
        states: list[ExtensionUpdateState] = []

        with pytest.raises(
            LinkNotUpdatableError,
            match="Extension is linked so does not need to be updated",
        ):
            await update_extension(extension, None, states.append, installer)

        assert states == [ExtensionUpdateState.NOT_UPDATABLE]


class TestSuccessfulUpdate:
    @pytest.mark.asyncio
    async def test_replaces_content_and_reports_restart(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
        storage: ExtensionStorage,
        tracked_tmp_dirs: list[Path],
    ) -> None:
        extension = install_local("demo", "1.0.0")
        write_manifest(Path(extension.source), "demo", "2.0.0")
        states: list[ExtensionUpdateState] = []

        info = await update_extension(
            extension, ExtensionUpdateState.UPDATE_AVAILABLE, states.append, installer
        )

        assert info == ExtensionUpdateInfo(
            name="demo", original_version="1.0.0", updated_version="2.0.0"
        )
        assert states == [
            ExtensionUpdateState.UPDATING,
            ExtensionUpdateState.UPDATED_NEEDS_RESTART,
        ]
        reloaded = storage.load_extension(storage.get_extension_dir("demo"))
        assert reloaded is not None
        assert reloaded.version == "2.0.0"
        assert reloaded.install_metadata == extension.install_metadata
        assert tracked_tmp_dirs
        assert not any(path.exists() for path in tracked_tmp_dirs)

    @pytest.mark.asyncio
    async def test_runs_from_unprobed_state(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
    ) -> None:
        extension = install_local("demo")

        info = await update_extension(extension, None, lambda state: None, installer)

        assert info is not None
        assert info.name == "demo"


class TestRollback:
    @pytest.mark.asyncio
    async def test_install_failure_restores_original(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
        storage: ExtensionStorage,
        tracked_tmp_dirs: list[Path],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        extension = install_local("demo")
        before = snapshot_tree(extension.path)
        error = OSError("disk full")

        async def broken_install(
            metadata: ExtensionInstallMetadata,
            force: bool = False,
            expected_name: str | None = None,
        ) -> str:
            partial = storage.get_extension_dir("demo")
            partial.mkdir()
            (partial / "half-written.txt").write_text("partial")
            raise error

        monkeypatch.setattr(installer, "install", broken_install)
        states: list[ExtensionUpdateState] = []

        with pytest.raises(OSError) as excinfo:
            await update_extension(
                extension, ExtensionUpdateState.UPDATE_AVAILABLE, states.append, installer
            )

        assert excinfo.value is error
        assert states == [ExtensionUpdateState.UPDATING, ExtensionUpdateState.ERROR]
        assert snapshot_tree(extension.path) == before
        assert (extension.path / ".hidden").read_text() == "dotfile contents"
        assert not any(path.exists() for path in tracked_tmp_dirs)

    @pytest.mark.asyncio
    async def test_missing_source_restores_original(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
    ) -> None:
        extension = install_local("demo")
        before = snapshot_tree(extension.path)
        shutil.rmtree(extension.source)
        states: list[ExtensionUpdateState] = []

        with pytest.raises(ExtensionInstallError):
            await update_extension(
                extension, ExtensionUpdateState.UPDATE_AVAILABLE, states.append, installer
            )

        assert states[-1] is ExtensionUpdateState.ERROR
        assert snapshot_tree(extension.path) == before

    @pytest.mark.asyncio
    async def test_unloadable_result_fails_verification(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
        storage: ExtensionStorage,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        extension = install_local("demo")
        before = snapshot_tree(extension.path)

        async def install_without_manifest(
            metadata: ExtensionInstallMetadata,
            force: bool = False,
            expected_name: str | None = None,
        ) -> str:
            storage.get_extension_dir("demo").mkdir()
            return "demo"

        monkeypatch.setattr(installer, "install", install_without_manifest)
        states: list[ExtensionUpdateState] = []

        with pytest.raises(
            PostInstallVerificationError,
            match="Updated extension not found after installation.",
        ):
            await update_extension(
                extension, ExtensionUpdateState.UPDATE_AVAILABLE, states.append, installer
            )

        assert states[-1] is ExtensionUpdateState.ERROR
        assert snapshot_tree(extension.path) == before

    @pytest.mark.asyncio
    async def test_failed_backup_leaves_original_untouched(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
        storage: ExtensionStorage,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        extension = install_local("demo")
        before = snapshot_tree(extension.path)
        monkeypatch.setattr(storage, "copy_extension", AsyncMock(side_effect=OSError("no space")))
        uninstall = AsyncMock()
        monkeypatch.setattr(installer, "uninstall", uninstall)

        with pytest.raises(OSError, match="no space"):
            await update_extension(
                extension, ExtensionUpdateState.UPDATE_AVAILABLE, lambda s: None, installer
            )

        uninstall.assert_not_called()
        assert snapshot_tree(extension.path) == before

    @pytest.mark.asyncio
    async def test_restore_failure_propagates_after_cleanup(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
        storage: ExtensionStorage,
        tracked_tmp_dirs: list[Path],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        extension = install_local("demo")
        original_copy = storage.copy_extension
        calls = {"count": 0}

        async def copy_then_fail(source: Path, destination: Path) -> None:
            calls["count"] += 1
            if calls["count"] > 1:
                raise OSError("restore failed")
            await original_copy(source, destination)

        monkeypatch.setattr(storage, "copy_extension", copy_then_fail)
        monkeypatch.setattr(
            installer, "install", AsyncMock(side_effect=RuntimeError("install failed"))
        )

        with pytest.raises(RollbackError) as excinfo:
            await update_extension(
                extension, ExtensionUpdateState.UPDATE_AVAILABLE, lambda s: None, installer
            )

        assert isinstance(excinfo.value.__cause__, OSError)
        assert not any(path.exists() for path in tracked_tmp_dirs)

    @pytest.mark.asyncio
    async def test_workspace_creation_failure_reports_error(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
        storage: ExtensionStorage,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        extension = install_local("demo")
        before = snapshot_tree(extension.path)

        def no_space() -> Path:
            raise OSError("No space left on device")

        monkeypatch.setattr(storage, "create_tmp_dir", no_space)
        uninstall = AsyncMock()
        monkeypatch.setattr(installer, "uninstall", uninstall)
        states: list[ExtensionUpdateState] = []

        with pytest.raises(OSError, match="No space left on device"):
            await update_extension(
                extension, ExtensionUpdateState.UPDATE_AVAILABLE, states.append, installer
            )

        assert states == [ExtensionUpdateState.UPDATING, ExtensionUpdateState.ERROR]
        assert can_enter_updating(states[-1])
        uninstall.assert_not_called()
        assert snapshot_tree(extension.path) == before

    @pytest.mark.asyncio
    async def test_renamed_upstream_leaves_no_stray_install(
        self,
        install_local: Callable[..., Extension],
        installer: ExtensionInstaller,
        storage: ExtensionStorage,
        extensions_dir: Path,
        tracked_tmp_dirs: list[Path],
    ) -> None:
        extension = install_local("demo")
        before = snapshot_tree(extension.path)
        write_manifest(Path(extension.source), "demo-renamed", "2.0.0")
        states: list[ExtensionUpdateState] = []

        with pytest.raises(ExtensionInstallError, match="demo-renamed"):
            await update_extension(
                extension, ExtensionUpdateState.UPDATE_AVAILABLE, states.append, installer
            )

        assert states == [ExtensionUpdateState.UPDATING, ExtensionUpdateState.ERROR]
        assert sorted(p.name for p in extensions_dir.iterdir()) == ["demo"]
        assert snapshot_tree(extension.path) == before
        assert not any(path.exists() for path in tracked_tmp_dirs)
