"""
Remote version probe.

Compares the revision advertised by an extension's upstream remote with the
revision checked out locally. Every failure is absorbed into the ``ERROR``
state and logged; nothing raised here reaches the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass

from agent_extensions.errors import HashParseError, NoRemoteFoundError, RefNotFoundError
from agent_extensions.git import DEFAULT_REF, GitFactory, GitSource, parse_ls_remote_hash
from agent_extensions.logging import get_logger
from agent_extensions.models import Extension
from agent_extensions.state import ExtensionUpdateState, StateReporter, TransitionStream

logger = get_logger("probe")


@dataclass
class ExtensionUpdateCheckResult:
    """Terminal probe state, with the reason when it is ``ERROR``."""

    state: ExtensionUpdateState
    error: str | None = None


async def _compare_revisions(
    extension: Extension,
    git_factory: GitFactory,
) -> ExtensionUpdateState:
    git = git_factory(extension.path)

    remotes = await git.list_remotes()
    if not remotes:
        raise NoRemoteFoundError(f"No git remotes found for extension {extension.name}.")
    remote_url = remotes[0].fetch_url
    if not remote_url:
        raise NoRemoteFoundError(f"No fetch URL found for git remote {remotes[0].name}.")

    # The remote is checked at the tracked ref; the local side is always HEAD.
    ref_to_check = extension.ref or DEFAULT_REF
    output = await git.list_remote(remote_url, ref_to_check)
    if not isinstance(output, str) or output.strip() == "":
        raise RefNotFoundError(f"Git ref {ref_to_check} not found.")

    remote_hash = parse_ls_remote_hash(output)
    if not remote_hash:
        raise HashParseError(f'Unable to parse hash from git ls-remote output "{output}"')

    local_hash = await git.revparse(DEFAULT_REF)
    if remote_hash == local_hash:
        return ExtensionUpdateState.UP_TO_DATE
    return ExtensionUpdateState.UPDATE_AVAILABLE


async def check_extension_update_result(
    extension: Extension,
    report: StateReporter | None = None,
    git_factory: GitFactory = GitSource,
) -> ExtensionUpdateCheckResult:
    """
    Probe one extension for an available update.

    Reports ``CHECKING_FOR_UPDATES`` and then exactly one terminal state.
    Extensions that are not remote-tracked resolve to ``NOT_UPDATABLE``
    without running git.
    """

    def _report(state: ExtensionUpdateState) -> None:
        if report is not None:
            report(state)

    _report(ExtensionUpdateState.CHECKING_FOR_UPDATES)

    if extension.type is None or not extension.type.is_remote_tracked:
        _report(ExtensionUpdateState.NOT_UPDATABLE)
        return ExtensionUpdateCheckResult(ExtensionUpdateState.NOT_UPDATABLE)

    try:
        state = await _compare_revisions(extension, git_factory)
    except (NoRemoteFoundError, RefNotFoundError, HashParseError) as e:
        logger.error("%s", e)
        _report(ExtensionUpdateState.ERROR)
        return ExtensionUpdateCheckResult(ExtensionUpdateState.ERROR, error=str(e))
    except Exception as e:
        message = f'Failed to check for updates for extension "{extension.name}": {e}'
        logger.error("%s", message)
        _report(ExtensionUpdateState.ERROR)
        return ExtensionUpdateCheckResult(ExtensionUpdateState.ERROR, error=message)

    logger.debug("Extension %s: %s", extension.name, state.value)
    _report(state)
    return ExtensionUpdateCheckResult(state)


async def check_for_extension_update(
    extension: Extension,
    report: StateReporter | None = None,
    git_factory: GitFactory = GitSource,
) -> ExtensionUpdateState:
    """Probe one extension and return only its terminal state."""
    result = await check_extension_update_result(extension, report, git_factory)
    return result.state


async def stream_extension_update_check(
    extension: Extension,
    git_factory: GitFactory = GitSource,
) -> AsyncIterator[ExtensionUpdateState]:
    """
    Probe one extension, yielding each state as it is reported.

    Example:
        async for state in stream_extension_update_check(ext):
            print(state.value)
    """
    stream = TransitionStream()

    async def _run() -> None:
        try:
            await check_for_extension_update(extension, stream.report, git_factory)
        finally:
            stream.close()

    task = asyncio.create_task(_run())
    try:
        async for state in stream:
            yield state
    finally:
        await task
