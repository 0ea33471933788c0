"""
Exception types raised by the extension update subsystem.

Probe errors are raised internally and converted to the ``ERROR`` state
before they reach the caller. Update errors propagate to the caller after
rollback.
"""

from __future__ import annotations


class ExtensionError(Exception):
    """Base class for all extension management errors."""

    pass


class GitCommandError(ExtensionError):
    """Raised when the git CLI exits non-zero, is missing, or times out."""

    def __init__(
        self,
        args: list[str],
        exit_code: int | None = None,
        stderr: str = "",
        message: str | None = None,
    ) -> None:
        self.command = list(args)
        self.exit_code = exit_code
        self.stderr = stderr
        if message is None:
            detail = stderr.strip() or f"exit code {exit_code}"
            message = f"git {' '.join(self.command)} failed: {detail}"
        super().__init__(message)


class NoRemoteFoundError(ExtensionError):
    """The local checkout has no configured remotes."""

    pass


class RefNotFoundError(ExtensionError):
    """The remote does not advertise the requested ref."""

    pass


class HashParseError(ExtensionError):
    """The ls-remote output did not contain a revision hash."""

    pass


class CloneError(ExtensionError):
    """Cloning a source failed. The underlying cause is chained."""

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(f"Failed to clone Git repository from {source}")


class UnknownExtensionTypeError(ExtensionError):
    """The extension has no (or an unrecognized) install type."""

    pass


class LinkNotUpdatableError(ExtensionError):
    """Linked extensions track their source directly and are never updated."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        super().__init__("Extension is linked so does not need to be updated")


class PostInstallVerificationError(ExtensionError):
    """The reinstalled extension could not be loaded."""

    def __init__(self) -> None:
        super().__init__("Updated extension not found after installation.")


class RollbackError(ExtensionError):
    """Restoring an extension from its backup failed."""

    pass


class ExtensionInstallError(ExtensionError):
    """Installing an extension failed."""

    pass


class ExtensionNotFoundError(ExtensionError):
    """No installed extension has the requested name."""

    pass
