"""
Configuration for the extension manager.

Loaded from YAML or constructed programmatically.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from agent_extensions.models import MANIFEST_FILENAME


def get_default_extensions_dir() -> Path:
    """Extensions directory from ``AGENT_EXTENSIONS_DIR``, defaulting to ~/.agent/extensions."""
    val = os.environ.get("AGENT_EXTENSIONS_DIR")
    if val:
        return Path(val).expanduser()
    return Path.home() / ".agent" / "extensions"


@dataclass
class ExtensionsConfig:
    """
    Main configuration for extension management.

    Example YAML:
        extensions_dir: ~/.agent/extensions
        git_executable: git
        git_timeout_seconds: 60
        max_concurrent_updates: 4
    """

    extensions_dir: Path = field(default_factory=get_default_extensions_dir)

    # Git
    git_executable: str = "git"
    git_timeout_seconds: float = 60.0

    # Updates (None = update every available extension at once)
    max_concurrent_updates: int | None = None

    manifest_filename: str = MANIFEST_FILENAME

    def __post_init__(self) -> None:
        if self.max_concurrent_updates is not None and self.max_concurrent_updates < 1:
            raise ValueError("max_concurrent_updates must be a positive integer or None")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionsConfig:
        """Create config from a dictionary."""
        extensions_dir = (
            Path(data["extensions_dir"]).expanduser()
            if data.get("extensions_dir")
            else get_default_extensions_dir()
        )
        return cls(
            extensions_dir=extensions_dir,
            git_executable=data.get("git_executable", "git"),
            git_timeout_seconds=float(data.get("git_timeout_seconds", 60.0)),
            max_concurrent_updates=data.get("max_concurrent_updates"),
            manifest_filename=data.get("manifest_filename", MANIFEST_FILENAME),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> ExtensionsConfig:
        """Load config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> ExtensionsConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "extensions_dir": str(self.extensions_dir),
            "git_executable": self.git_executable,
            "git_timeout_seconds": self.git_timeout_seconds,
            "max_concurrent_updates": self.max_concurrent_updates,
            "manifest_filename": self.manifest_filename,
        }
