"""
Install and uninstall extensions.
"""

from __future__ import annotations

from pathlib import Path

from agent_extensions.errors import ExtensionInstallError, ExtensionNotFoundError
from agent_extensions.git import GitFactory, GitSource, clone_from_git
from agent_extensions.logging import get_logger
from agent_extensions.models import (
    ExtensionInstallMetadata,
    InstallType,
    load_manifest,
    save_install_metadata,
)
from agent_extensions.storage import ExtensionStorage

logger = get_logger("installer")


class ExtensionInstaller:
    """
    Places extensions into the extensions directory.

    Sources:
    - ``git`` / ``github-release``: shallow clone of ``source`` at ``ref``
    - ``local``: copy of a local directory
    - ``link``: pointer to a local directory, read in place
    """

    def __init__(
        self,
        storage: ExtensionStorage,
        git_factory: GitFactory = GitSource,
    ) -> None:
        self.storage = storage
        self.git_factory = git_factory

    async def install(
        self,
        metadata: ExtensionInstallMetadata,
        force: bool = False,
        expected_name: str | None = None,
    ) -> str:
        """
        Install an extension and return its name.

        Args:
            metadata: Where to install from
            force: Replace an existing installation with the same name
            expected_name: Refuse a source whose manifest declares another name

        Raises:
            CloneError: The git source could not be cloned
            ExtensionInstallError: Missing source or manifest, name mismatch, or
                already installed
        """
        staging = self.storage.create_tmp_dir()
        try:
            if metadata.type.is_remote_tracked:
                await clone_from_git(metadata, staging, self.git_factory)
                manifest_dir = staging
            elif metadata.type is InstallType.LOCAL:
                source_dir = self._require_source_dir(metadata)
                await self.storage.copy_extension(source_dir, staging)
                manifest_dir = staging
            else:
                manifest_dir = self._require_source_dir(metadata)

            manifest = load_manifest(manifest_dir, self.storage.manifest_filename)
            if manifest is None:
                raise ExtensionInstallError(
                    f"No valid {self.storage.manifest_filename} found in {metadata.source}"
                )
            if expected_name is not None and manifest.name != expected_name:
                raise ExtensionInstallError(
                    f"Source {metadata.source} now declares extension {manifest.name}, "
                    f"expected {expected_name}"
                )

            destination = self.storage.get_extension_dir(manifest.name)
            if destination.exists() or destination.is_symlink():
                if not force:
                    raise ExtensionInstallError(
                        f"Extension {manifest.name} is already installed at {destination}"
                    )
                await self.storage.remove_dir(destination)

            destination.parent.mkdir(parents=True, exist_ok=True)
            if metadata.type is InstallType.LINK:
                destination.mkdir()
            else:
                await self.storage.copy_extension(staging, destination)
            save_install_metadata(destination, metadata)

            logger.info(
                "Installed extension %s %s (type=%s)",
                manifest.name,
                manifest.version,
                metadata.type.value,
            )
            return manifest.name
        finally:
            await self.storage.discard_tmp_dir(staging)

    async def uninstall(self, name: str) -> None:
        """Remove an installed extension's directory."""
        extension_dir = self.storage.get_extension_dir(name)
        if not extension_dir.exists() and not extension_dir.is_symlink():
            raise ExtensionNotFoundError(f"Extension {name} is not installed")
        await self.storage.remove_dir(extension_dir)
        logger.info("Uninstalled extension %s", name)

    @staticmethod
    def _require_source_dir(metadata: ExtensionInstallMetadata) -> Path:
        source_dir = Path(metadata.source).expanduser().resolve()
        if not source_dir.is_dir():
            raise ExtensionInstallError(f"Source directory not found: {metadata.source}")
        return source_dir
