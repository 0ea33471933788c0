"""
Git source adapter.

Thin async wrapper over the ``git`` CLI scoped to one local checkout. Every
call spawns a subprocess; nothing is cached between calls.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from agent_extensions.errors import CloneError, GitCommandError, NoRemoteFoundError
from agent_extensions.logging import get_logger
from agent_extensions.models import ExtensionInstallMetadata

logger = get_logger("git")

DEFAULT_REF = "HEAD"
FETCH_HEAD = "FETCH_HEAD"


@dataclass
class GitRemote:
    """A configured remote of a local checkout."""

    name: str
    fetch_url: str = ""
    push_url: str = ""


class GitSource:
    """
    Request/response access to a single git checkout.

    Args:
        path: Working directory of the checkout (or clone destination)
        executable: git binary to invoke
        timeout: Per-command timeout in seconds
    """

    def __init__(
        self,
        path: str | Path,
        executable: str = "git",
        timeout: float = 60.0,
    ) -> None:
        self.path = Path(path)
        self.executable = executable
        self.timeout = timeout

    async def _run(self, *args: str) -> str:
        argv = [self.executable, *args]
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        logger.debug("Running %s in %s", " ".join(argv), self.path)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.path),
                env=env,
            )
        except OSError as e:
            raise GitCommandError(list(args), message=f"Unable to run {self.executable}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise GitCommandError(
                list(args),
                message=f"git {args[0]} timed out after {self.timeout}s",
            ) from None

        if process.returncode != 0:
            raise GitCommandError(
                list(args),
                exit_code=process.returncode,
                stderr=stderr.decode("utf-8", errors="replace"),
            )
        return stdout.decode("utf-8", errors="replace")

    async def clone(self, remote_url: str, destination: str = ".") -> None:
        """Shallow clone (depth 1) ``remote_url`` into ``destination``."""
        await self._run("clone", "--depth", "1", remote_url, destination)

    async def list_remotes(self) -> list[GitRemote]:
        """List remotes in the order git reports them."""
        output = await self._run("remote", "-v")
        return parse_remotes(output)

    async def fetch(self, remote: str, ref: str) -> None:
        """Fetch one ref from one remote without merging."""
        await self._run("fetch", remote, ref)

    async def checkout(self, target: str) -> None:
        await self._run("checkout", target)

    async def list_remote(self, remote_url: str, ref: str) -> str:
        """Raw ``git ls-remote`` output: ``"<hash>\\t<ref>"`` lines or empty."""
        return await self._run("ls-remote", remote_url, ref)

    async def revparse(self, ref: str = DEFAULT_REF) -> str:
        """Resolve a local ref to its revision hash."""
        output = await self._run("rev-parse", ref)
        return output.strip()


GitFactory = Callable[[Path], GitSource]


def parse_remotes(output: str) -> list[GitRemote]:
    """
    Parse ``git remote -v`` output.

    Each remote appears on a fetch line and a push line::

        origin\thttps://github.com/acme/ext.git (fetch)
        origin\thttps://github.com/acme/ext.git (push)
    """
    remotes: dict[str, GitRemote] = {}
    for line in output.splitlines():
        if "\t" not in line:
            continue
        name, rest = line.split("\t", 1)
        # URLs may contain spaces; only the trailing "(fetch)"/"(push)" is split off.
        url, kind = rest, "(fetch)"
        head, _, tail = rest.rpartition(" ")
        if head and tail in ("(fetch)", "(push)"):
            url, kind = head, tail
        url = url.strip()
        if not name or not url:
            continue
        remote = remotes.setdefault(name, GitRemote(name=name))
        if kind == "(push)":
            remote.push_url = url
        else:
            remote.fetch_url = url
    return list(remotes.values())


def parse_ls_remote_hash(output: str) -> str:
    """Return the revision hash from an ls-remote line (text before the first tab)."""
    return output.split("\t", 1)[0].strip()


async def clone_from_git(
    metadata: ExtensionInstallMetadata,
    destination: str | Path,
    git_factory: GitFactory = GitSource,
) -> None:
    """
    Clone ``metadata.source`` into ``destination`` and check out its ref.

    Fetches ``metadata.ref`` (or ``HEAD``) from the first remote and checks
    out ``FETCH_HEAD``. Any failure is raised as :class:`CloneError`.
    """
    destination = Path(destination)
    try:
        destination.mkdir(parents=True, exist_ok=True)
        git = git_factory(destination)
        await git.clone(metadata.source, ".")

        remotes = await git.list_remotes()
        if not remotes:
            raise NoRemoteFoundError(f"No remotes found after cloning {metadata.source}")

        ref = metadata.ref or DEFAULT_REF
        await git.fetch(remotes[0].name, ref)
        await git.checkout(FETCH_HEAD)
    except Exception as e:
        logger.debug("Clone of %s failed: %s", metadata.source, e)
        raise CloneError(metadata.source) from e
