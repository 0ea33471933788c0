"""
On-disk layout of installed extensions.

Each extension lives in ``<extensions_dir>/<name>/`` alongside its
``.install-metadata.json``. Linked extensions keep only the metadata file
there; their manifest is read from the linked source directory.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from pathlib import Path

from agent_extensions.logging import get_logger
from agent_extensions.models import (
    MANIFEST_FILENAME,
    Extension,
    InstallType,
    load_install_metadata,
    load_manifest,
)

logger = get_logger("storage")


class ExtensionStorage:
    """Filesystem helpers for the extensions directory."""

    def __init__(
        self,
        extensions_dir: Path,
        manifest_filename: str = MANIFEST_FILENAME,
    ) -> None:
        self.extensions_dir = Path(extensions_dir)
        self.manifest_filename = manifest_filename

    def get_extension_dir(self, name: str) -> Path:
        return self.extensions_dir / name

    def create_tmp_dir(self) -> Path:
        """Create a fresh, empty temporary directory owned by the caller."""
        return Path(tempfile.mkdtemp(prefix="agent-extension-"))

    async def copy_extension(self, source: Path, destination: Path) -> None:
        """Copy a directory tree verbatim, dotfiles and symlinks included."""
        await asyncio.to_thread(
            shutil.copytree,
            source,
            destination,
            symlinks=True,
            dirs_exist_ok=True,
        )

    async def remove_dir(self, path: Path) -> None:
        if path.is_symlink():
            path.unlink()
        elif path.exists():
            await asyncio.to_thread(shutil.rmtree, path)

    async def discard_tmp_dir(self, path: Path) -> None:
        """Best-effort removal of a temporary workspace."""
        await asyncio.to_thread(shutil.rmtree, path, ignore_errors=True)

    def load_extension(self, extension_dir: Path) -> Extension | None:
        """
        Build the runtime view of an installed extension.

        Returns None if the directory has no loadable manifest.
        """
        extension_dir = Path(extension_dir)
        if not extension_dir.is_dir():
            return None
        try:
            metadata = load_install_metadata(extension_dir)
        except Exception as e:
            logger.warning("Invalid install metadata in %s: %s", extension_dir, e)
            metadata = None

        manifest_dir = extension_dir
        if metadata is not None and metadata.type is InstallType.LINK:
            manifest_dir = Path(metadata.source)

        try:
            manifest = load_manifest(manifest_dir, self.manifest_filename)
        except Exception as e:
            logger.warning("Failed to read manifest in %s: %s", manifest_dir, e)
            return None
        if manifest is None:
            return None

        return Extension(
            name=manifest.name,
            version=manifest.version,
            path=extension_dir,
            install_metadata=metadata,
        )

    def load_all(self) -> list[Extension]:
        """Load every installed extension, sorted by directory name."""
        extensions: list[Extension] = []
        if not self.extensions_dir.is_dir():
            return extensions
        for item in sorted(self.extensions_dir.iterdir()):
            if not item.is_dir():
                continue
            extension = self.load_extension(item)
            if extension is None:
                logger.debug("Skipping %s: no manifest", item)
                continue
            extensions.append(extension)
        return extensions
