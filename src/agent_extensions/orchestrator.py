"""
Batch probing and updating across all installed extensions.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from agent_extensions.events import (
    EXTENSION_UPDATE_FAILED,
    EXTENSION_UPDATED,
    ExtensionUpdatedEvent,
    ExtensionUpdateFailedEvent,
)
from agent_extensions.git import GitFactory, GitSource
from agent_extensions.installer import ExtensionInstaller
from agent_extensions.logging import get_logger
from agent_extensions.models import Extension, ExtensionUpdateInfo
from agent_extensions.probe import check_for_extension_update
from agent_extensions.state import ExtensionUpdateState, UpdateStateStore
from agent_extensions.updater import update_extension

logger = get_logger("orchestrator")


async def check_for_all_extension_updates(
    extensions: Sequence[Extension],
    store: UpdateStateStore,
    git_factory: GitFactory = GitSource,
) -> dict[str, ExtensionUpdateState]:
    """
    Probe every extension that has not been probed yet.

    Probes run one after another in input order; an extension that already
    has a state in ``store`` is skipped.

    Returns:
        A snapshot of the store after all probes finished
    """
    for extension in extensions:
        if extension.name in store:
            continue
        await check_for_extension_update(
            extension,
            store.reporter_for(extension.name),
            git_factory,
        )
    return store.snapshot()


async def update_all_updatable_extensions(
    extensions: Sequence[Extension],
    store: UpdateStateStore,
    installer: ExtensionInstaller,
    max_concurrency: int | None = None,
) -> list[ExtensionUpdateInfo]:
    """
    Update every extension whose state is ``UPDATE_AVAILABLE``.

    All updates run concurrently (bounded by ``max_concurrency`` when set).
    A failing update leaves its own extension rolled back in ``ERROR`` and
    does not affect the others.

    Returns:
        Infos of the updates that completed, in input order
    """
    targets = [
        (extension, store.get(extension.name))
        for extension in extensions
        if store.get(extension.name) is ExtensionUpdateState.UPDATE_AVAILABLE
    ]
    if not targets:
        return []

    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def _run(
        extension: Extension,
        current_state: ExtensionUpdateState | None,
    ) -> ExtensionUpdateInfo | None:
        report = store.reporter_for(extension.name)
        if semaphore is None:
            return await update_extension(extension, current_state, report, installer)
        async with semaphore:
            return await update_extension(extension, current_state, report, installer)

    logger.info("Updating %d extension(s)", len(targets))
    results = await asyncio.gather(
        *(_run(extension, state) for extension, state in targets),
        return_exceptions=True,
    )

    bus = store.event_bus
    updated: list[ExtensionUpdateInfo] = []
    for (extension, _), result in zip(targets, results):
        if isinstance(result, BaseException):
            logger.warning("Update of extension %s failed: %s", extension.name, result)
            if bus is not None:
                bus.emit(
                    EXTENSION_UPDATE_FAILED,
                    ExtensionUpdateFailedEvent(name=extension.name, error=str(result)),
                )
            continue
        if result is None:
            continue
        updated.append(result)
        if bus is not None:
            bus.emit(EXTENSION_UPDATED, ExtensionUpdatedEvent(info=result))
    return updated
