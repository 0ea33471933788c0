"""
High-level extension update service.

Binds configuration, storage, installer, state store and event bus so the
CLI (or a host application) can drive checks and updates with one object.
"""

from __future__ import annotations

from collections.abc import Sequence
from functools import partial

from agent_extensions.config import ExtensionsConfig
from agent_extensions.errors import ExtensionNotFoundError
from agent_extensions.events import EventBus
from agent_extensions.git import GitFactory, GitSource
from agent_extensions.installer import ExtensionInstaller
from agent_extensions.logging import get_logger
from agent_extensions.models import Extension, ExtensionInstallMetadata, ExtensionUpdateInfo
from agent_extensions.orchestrator import (
    check_for_all_extension_updates,
    update_all_updatable_extensions,
)
from agent_extensions.state import ExtensionUpdateState, UpdateStateStore
from agent_extensions.storage import ExtensionStorage
from agent_extensions.updater import update_extension

logger = get_logger("manager")


class ExtensionUpdateService:
    """
    Entry point for checking and applying extension updates.

    Example:
        service = ExtensionUpdateService(ExtensionsConfig())
        await service.check_all()
        updated = await service.update_all()
    """

    def __init__(
        self,
        config: ExtensionsConfig | None = None,
        store: UpdateStateStore | None = None,
        event_bus: EventBus | None = None,
        git_factory: GitFactory | None = None,
    ) -> None:
        self.config = config or ExtensionsConfig()
        self.event_bus = event_bus or EventBus()
        self.store = store or UpdateStateStore(event_bus=self.event_bus)
        self.storage = ExtensionStorage(
            self.config.extensions_dir,
            manifest_filename=self.config.manifest_filename,
        )
        self.git_factory: GitFactory = git_factory or partial(
            GitSource,
            executable=self.config.git_executable,
            timeout=self.config.git_timeout_seconds,
        )
        self.installer = ExtensionInstaller(self.storage, self.git_factory)

    def list_extensions(self) -> list[Extension]:
        return self.storage.load_all()

    def get_extension(self, name: str) -> Extension:
        for extension in self.list_extensions():
            if extension.name == name:
                return extension
        raise ExtensionNotFoundError(f"Extension {name} is not installed")

    async def check_all(
        self,
        extensions: Sequence[Extension] | None = None,
    ) -> dict[str, ExtensionUpdateState]:
        if extensions is None:
            extensions = self.list_extensions()
        return await check_for_all_extension_updates(extensions, self.store, self.git_factory)

    async def update_all(
        self,
        extensions: Sequence[Extension] | None = None,
    ) -> list[ExtensionUpdateInfo]:
        if extensions is None:
            extensions = self.list_extensions()
        return await update_all_updatable_extensions(
            extensions,
            self.store,
            self.installer,
            max_concurrency=self.config.max_concurrent_updates,
        )

    async def update(self, name: str) -> ExtensionUpdateInfo | None:
        """Update a single extension regardless of its probed state."""
        extension = self.get_extension(name)
        return await update_extension(
            extension,
            self.store.get(name),
            self.store.reporter_for(name),
            self.installer,
        )

    async def install(
        self,
        metadata: ExtensionInstallMetadata,
        force: bool = False,
    ) -> Extension:
        name = await self.installer.install(metadata, force=force)
        self.store.discard(name)
        extension = self.storage.load_extension(self.storage.get_extension_dir(name))
        if extension is None:
            raise ExtensionNotFoundError(f"Extension {name} not found after installation")
        return extension

    async def uninstall(self, name: str) -> None:
        await self.installer.uninstall(name)
        self.store.discard(name)
