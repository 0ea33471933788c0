"""Test helpers shared across test modules."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent
from unittest.mock import AsyncMock, MagicMock

from agent_extensions.git import GitRemote


def write_manifest(directory: Path, name: str, version: str = "1.0.0") -> Path:
    """Write an extension.yaml into ``directory`` (created if needed)."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "extension.yaml").write_text(
        dedent(f"""
        name: {name}
        version: "{version}"
        description: Test extension {name}
        """).strip()
    )
    return directory


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Map every file under ``root`` (relative path) to its bytes."""
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def make_git(
    remotes: list[GitRemote] | None = None,
    ls_remote: object = "",
    revparse: str = "",
) -> MagicMock:
    """A stand-in for GitSource with async methods."""
    git = MagicMock()
    git.clone = AsyncMock()
    git.fetch = AsyncMock()
    git.checkout = AsyncMock()
    git.list_remotes = AsyncMock(return_value=remotes if remotes is not None else [])
    git.list_remote = AsyncMock(return_value=ls_remote)
    git.revparse = AsyncMock(return_value=revparse)
    return git
