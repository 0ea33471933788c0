"""
Data models for installed extensions.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from agent_extensions.errors import UnknownExtensionTypeError

INSTALL_METADATA_FILENAME = ".install-metadata.json"
MANIFEST_FILENAME = "extension.yaml"


class InstallType(str, Enum):
    """Where an installed extension came from."""

    GIT = "git"
    GITHUB_RELEASE = "github-release"
    LOCAL = "local"
    LINK = "link"

    @property
    def is_remote_tracked(self) -> bool:
        """True if the source can be re-fetched to find newer content."""
        return self in (InstallType.GIT, InstallType.GITHUB_RELEASE)


@dataclass(frozen=True)
class ExtensionInstallMetadata:
    """
    Provenance of an installed extension.

    Persisted next to the extension as JSON::

        {"type": "git", "source": "https://github.com/acme/ext", "ref": "v1.2"}
    """

    type: InstallType
    source: str
    ref: str | None = None  # None tracks the default branch tip

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionInstallMetadata:
        raw_type = data.get("type")
        try:
            install_type = InstallType(raw_type)
        except ValueError:
            raise UnknownExtensionTypeError(
                f"Unknown extension install type: {raw_type!r}"
            ) from None
        return cls(
            type=install_type,
            source=data.get("source", ""),
            ref=data.get("ref") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "source": self.source}
        if self.ref:
            data["ref"] = self.ref
        return data


def load_install_metadata(extension_dir: Path) -> ExtensionInstallMetadata | None:
    """Read the install metadata file from an extension directory."""
    path = extension_dir / INSTALL_METADATA_FILENAME
    if not path.is_file():
        return None
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return ExtensionInstallMetadata.from_dict(data)


def save_install_metadata(extension_dir: Path, metadata: ExtensionInstallMetadata) -> None:
    """Write the install metadata file into an extension directory."""
    path = extension_dir / INSTALL_METADATA_FILENAME
    with open(path, "w", encoding="utf-8") as f:
        json.dump(metadata.to_dict(), f, indent=2)


@dataclass
class ExtensionManifest:
    """
    The extension's own manifest (``extension.yaml``).

    Example:
        name: github-tools
        version: 1.4.0
        description: GitHub helpers for the agent
    """

    name: str
    version: str = "0.0.0"
    description: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionManifest:
        known = {"name", "version", "description"}
        return cls(
            name=str(data.get("name", "")),
            version=str(data.get("version", "0.0.0")),
            description=data.get("description", "") or "",
            extra={k: v for k, v in data.items() if k not in known},
        )


def load_manifest(
    extension_dir: Path,
    filename: str = MANIFEST_FILENAME,
) -> ExtensionManifest | None:
    """Load a manifest from a directory. Returns None when absent or unnamed."""
    path = extension_dir / filename
    if not path.is_file():
        return None
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        return None
    manifest = ExtensionManifest.from_dict(data)
    if not manifest.name:
        return None
    return manifest


@dataclass
class Extension:
    """Runtime view of an installed extension."""

    name: str
    version: str
    path: Path
    install_metadata: ExtensionInstallMetadata | None = None

    @property
    def type(self) -> InstallType | None:
        return self.install_metadata.type if self.install_metadata else None

    @property
    def source(self) -> str | None:
        return self.install_metadata.source if self.install_metadata else None

    @property
    def ref(self) -> str | None:
        return self.install_metadata.ref if self.install_metadata else None


@dataclass
class ExtensionUpdateInfo:
    """Outcome of a successful update."""

    name: str
    original_version: str
    updated_version: str
