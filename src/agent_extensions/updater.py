"""
Transactional extension updater.

An update backs up the installed directory, reinstalls from the recorded
source and verifies the result. On any failure the directory is restored
from the backup before the error is re-raised, so the extension ends up
either fully updated or exactly as it was.
"""

from __future__ import annotations

from pathlib import Path

from agent_extensions.errors import (
    LinkNotUpdatableError,
    PostInstallVerificationError,
    RollbackError,
    UnknownExtensionTypeError,
)
from agent_extensions.installer import ExtensionInstaller
from agent_extensions.logging import get_logger
from agent_extensions.models import Extension, ExtensionUpdateInfo, InstallType
from agent_extensions.state import ExtensionUpdateState, StateReporter, can_enter_updating
from agent_extensions.storage import ExtensionStorage

logger = get_logger("updater")


async def _restore_from_backup(
    storage: ExtensionStorage,
    backup_dir: Path,
    target: Path,
) -> None:
    try:
        await storage.remove_dir(target)
        await storage.copy_extension(backup_dir, target)
    except Exception as e:
        raise RollbackError(f"Failed to restore {target} from backup: {e}") from e


async def update_extension(
    extension: Extension,
    current_state: ExtensionUpdateState | None,
    report: StateReporter,
    installer: ExtensionInstaller,
) -> ExtensionUpdateInfo | None:
    """
    Replace an installed extension with the newest content from its source.

    Returns None without reporting anything if an update is already running.

    Raises:
        UnknownExtensionTypeError: The extension has no install type
        LinkNotUpdatableError: The extension is linked, so it is never updated
        PostInstallVerificationError: The reinstalled extension did not load
        RollbackError: Restoring the backup failed
        Exception: Any install failure, re-raised after rollback
    """
    if not can_enter_updating(current_state):
        return None

    if extension.type is None:
        report(ExtensionUpdateState.ERROR)
        raise UnknownExtensionTypeError(
            f"Extension {extension.name} cannot be updated, type is unknown."
        )
    if extension.type is InstallType.LINK:
        report(ExtensionUpdateState.NOT_UPDATABLE)
        raise LinkNotUpdatableError(extension.name)

    report(ExtensionUpdateState.UPDATING)
    original_version = extension.version
    storage = installer.storage

    backup_dir: Path | None = None
    backed_up = False
    try:
        try:
            backup_dir = storage.create_tmp_dir()
            await storage.copy_extension(extension.path, backup_dir)
            backed_up = True
            await installer.uninstall(extension.name)
            await installer.install(
                extension.install_metadata,
                force=True,
                expected_name=extension.name,
            )

            updated = storage.load_extension(storage.get_extension_dir(extension.name))
            if updated is None:
                raise PostInstallVerificationError()
        except Exception as e:
            logger.error("Error updating extension %s, rolling back. %s", extension.name, e)
            report(ExtensionUpdateState.ERROR)
            # A failed backup copy means the original was never touched.
            if backed_up and backup_dir is not None:
                await _restore_from_backup(storage, backup_dir, extension.path)
            raise

        report(ExtensionUpdateState.UPDATED_NEEDS_RESTART)
        logger.info(
            "Updated extension %s from %s to %s",
            extension.name,
            original_version,
            updated.version,
        )
        return ExtensionUpdateInfo(
            name=extension.name,
            original_version=original_version,
            updated_version=updated.version,
        )
    finally:
        if backup_dir is not None:
            await storage.discard_tmp_dir(backup_dir)
