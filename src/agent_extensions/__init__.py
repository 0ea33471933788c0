"""
Agent Extensions - update management for extensions installed into an agent CLI.

Detects when an installed extension has newer content upstream and replaces
it in place, rolling back if anything goes wrong.

Example:
    from agent_extensions import ExtensionUpdateService, ExtensionsConfig

    service = ExtensionUpdateService(ExtensionsConfig())
    states = await service.check_all()
    updated = await service.update_all()
"""

from agent_extensions.config import ExtensionsConfig
from agent_extensions.errors import (
    CloneError,
    ExtensionError,
    ExtensionInstallError,
    ExtensionNotFoundError,
    GitCommandError,
    HashParseError,
    LinkNotUpdatableError,
    NoRemoteFoundError,
    PostInstallVerificationError,
    RefNotFoundError,
    RollbackError,
    UnknownExtensionTypeError,
)
from agent_extensions.events import (
    EXTENSION_UPDATE_FAILED,
    EXTENSION_UPDATED,
    UPDATE_STATE_CHANGED,
    EventBus,
    ExtensionUpdatedEvent,
    ExtensionUpdateFailedEvent,
    StateTransition,
)
from agent_extensions.git import GitRemote, GitSource, clone_from_git
from agent_extensions.installer import ExtensionInstaller
from agent_extensions.manager import ExtensionUpdateService
from agent_extensions.models import (
    Extension,
    ExtensionInstallMetadata,
    ExtensionManifest,
    ExtensionUpdateInfo,
    InstallType,
)
from agent_extensions.orchestrator import (
    check_for_all_extension_updates,
    update_all_updatable_extensions,
)
from agent_extensions.probe import (
    ExtensionUpdateCheckResult,
    check_extension_update_result,
    check_for_extension_update,
    stream_extension_update_check,
)
from agent_extensions.state import (
    ExtensionUpdateState,
    TransitionStream,
    UpdateStateStore,
    can_enter_updating,
)
from agent_extensions.storage import ExtensionStorage
from agent_extensions.updater import update_extension

__version__ = "0.1.0"

__all__ = [
    # Config
    "ExtensionsConfig",
    # Models
    "Extension",
    "ExtensionInstallMetadata",
    "ExtensionManifest",
    "ExtensionUpdateInfo",
    "InstallType",
    # State
    "ExtensionUpdateState",
    "TransitionStream",
    "UpdateStateStore",
    "can_enter_updating",
    # Events
    "EventBus",
    "StateTransition",
    "ExtensionUpdatedEvent",
    "ExtensionUpdateFailedEvent",
    "UPDATE_STATE_CHANGED",
    "EXTENSION_UPDATED",
    "EXTENSION_UPDATE_FAILED",
    # Git
    "GitRemote",
    "GitSource",
    "clone_from_git",
    # Operations
    "ExtensionUpdateCheckResult",
    "check_extension_update_result",
    "check_for_extension_update",
    "stream_extension_update_check",
    "update_extension",
    "check_for_all_extension_updates",
    "update_all_updatable_extensions",
    # Services
    "ExtensionStorage",
    "ExtensionInstaller",
    "ExtensionUpdateService",
    # Errors
    "ExtensionError",
    "GitCommandError",
    "NoRemoteFoundError",
    "RefNotFoundError",
    "HashParseError",
    "CloneError",
    "UnknownExtensionTypeError",
    "LinkNotUpdatableError",
    "PostInstallVerificationError",
    "RollbackError",
    "ExtensionInstallError",
    "ExtensionNotFoundError",
]
