"""Shared pytest fixtures for agent-extensions tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from agent_extensions.git import GitRemote
from agent_extensions.installer import ExtensionInstaller
from agent_extensions.models import (
    Extension,
    ExtensionInstallMetadata,
    InstallType,
    save_install_metadata,
)
from agent_extensions.storage import ExtensionStorage
from helpers import write_manifest


@pytest.fixture
def origin() -> GitRemote:
    return GitRemote(
        name="origin",
        fetch_url="http://my-repo.com",
        push_url="http://my-repo.com",
    )


@pytest.fixture
def extensions_dir(tmp_path: Path) -> Path:
    path = tmp_path / "extensions"
    path.mkdir()
    return path


@pytest.fixture
def storage(extensions_dir: Path) -> ExtensionStorage:
    return ExtensionStorage(extensions_dir)


@pytest.fixture
def installer(storage: ExtensionStorage) -> ExtensionInstaller:
    return ExtensionInstaller(storage)


@pytest.fixture
def git_extension(tmp_path: Path) -> Extension:
    """A git-installed extension (nothing on disk)."""
    return Extension(
        name="git-ext",
        version="1.0.0",
        path=tmp_path / "extensions" / "git-ext",
        install_metadata=ExtensionInstallMetadata(
            type=InstallType.GIT,
            source="http://my-repo.com",
        ),
    )


@pytest.fixture
def make_local_source(tmp_path: Path) -> Callable[..., Path]:
    """Factory for local extension source directories."""

    def _make(name: str, version: str = "1.0.0") -> Path:
        source = write_manifest(tmp_path / "sources" / name, name, version)
        (source / ".hidden").write_text("dotfile contents")
        (source / "lib").mkdir(exist_ok=True)
        (source / "lib" / "tool.py").write_text(f"VERSION = {version!r}\n")
        return source

    return _make


@pytest.fixture
def install_local(
    storage: ExtensionStorage,
    make_local_source: Callable[..., Path],
) -> Callable[..., Extension]:
    """Lay out an installed local extension directly on disk."""

    def _install(name: str, version: str = "1.0.0") -> Extension:
        source = make_local_source(name, version)
        destination = write_manifest(storage.get_extension_dir(name), name, version)
        (destination / ".hidden").write_text("dotfile contents")
        (destination / "lib").mkdir(exist_ok=True)
        (destination / "lib" / "tool.py").write_text(f"VERSION = {version!r}\n")
        save_install_metadata(
            destination,
            ExtensionInstallMetadata(type=InstallType.LOCAL, source=str(source)),
        )
        extension = storage.load_extension(destination)
        assert extension is not None
        return extension

    return _install
