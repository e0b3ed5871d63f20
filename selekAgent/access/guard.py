"""Read-before-write access discipline over the workspace filesystem.

Every agent keeps a ReadSet of the paths it has read during this process.
Writing a path outside that set is allowed only after a remedial read, except
that sub-agents may never write orchestrator-protected paths at all.

All I/O for a given path is serialised through a per-path ``asyncio.Lock``
shared with the orchestration log, so read-modify-write sequences (see
``update``) cannot interleave.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterable, Set, Union

from selekAgent.access.identity import AgentIdentity
from selekAgent.utils.error_handler import NotAccessibleError, ProtectedResourceError

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PathLockRegistry:
    """One lock per resolved path, created on first use."""

    def __init__(self) -> None:
        self._locks: Dict[Path, asyncio.Lock] = {}

    def lock_for(self, path: Path) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        return lock


def _read_text(path: Path) -> str:
    if not path.is_file():
        raise NotAccessibleError(str(path), "not a file" if path.exists() else "file not found")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise NotAccessibleError(str(path), str(e)) from e


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class AccessGuard:
    """Enforces read-before-write per agent identity.

    A path is orchestrator-protected when any component of it, relative to the
    workspace root, matches ``protected_pattern``, or when it lies under one of
    ``protected_dirs``.
    """

    def __init__(
        self,
        workspace_root: PathLike = ".",
        protected_pattern: str = r"^orchestrator",
        locks: PathLockRegistry | None = None,
        protected_dirs: Iterable[PathLike] = (),
    ):
        self.workspace_root = Path(workspace_root).resolve()
        self._protected = re.compile(protected_pattern, re.IGNORECASE)
        self.protected_dirs = tuple(self.resolve(d) for d in protected_dirs)
        self.locks = locks or PathLockRegistry()
        self._read_sets: Dict[str, Set[Path]] = {}

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def resolve(self, path: PathLike) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.workspace_root / candidate
        return candidate.resolve()

    def is_protected(self, path: PathLike) -> bool:
        """Whether ``path`` is owned by the orchestrator."""
        target = self.resolve(path)
        if any(target.is_relative_to(d) for d in self.protected_dirs):
            return True
        if target.is_relative_to(self.workspace_root):
            target = target.relative_to(self.workspace_root)
        return any(self._protected.search(part) for part in target.parts)

    def has_read(self, agent: AgentIdentity, path: PathLike) -> bool:
        return self.resolve(path) in self._read_sets.get(agent.name, ())

    def read_set(self, agent: AgentIdentity) -> FrozenSet[Path]:
        """Snapshot of the paths ``agent`` has read."""
        return frozenset(self._read_sets.get(agent.name, ()))

    def _record(self, agent: AgentIdentity, target: Path) -> None:
        self._read_sets.setdefault(agent.name, set()).add(target)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def read(self, agent: AgentIdentity, path: PathLike) -> str:
        """Read ``path`` for ``agent`` and record it in the agent's ReadSet.

        Raises:
            NotAccessibleError: path does not exist or cannot be read
        """
        target = self.resolve(path)
        async with self.locks.lock_for(target):
            content = await asyncio.to_thread(_read_text, target)
            self._record(agent, target)
        LOGGER.debug(f"{agent.name} read {target} ({len(content)} chars)")
        return content

    async def write(self, agent: AgentIdentity, path: PathLike, content: str) -> Path:
        """Write ``content`` to ``path`` on behalf of ``agent``.

        Raises:
            ProtectedResourceError: sub-agent targeting an orchestrator-owned file.
                No I/O is performed.
        """
        target = self.resolve(path)
        async with self.locks.lock_for(target):
            await self._ensure_writable(agent, target)
            await asyncio.to_thread(_write_text, target, content)
            self._record(agent, target)
        LOGGER.info(f"{agent.name} wrote {target} ({len(content)} chars)")
        return target

    async def update(
        self,
        agent: AgentIdentity,
        path: PathLike,
        transform: Callable[[str], str],
    ) -> str:
        """Atomically replace the file content with ``transform(current)``.

        A missing file is treated as empty. Returns the new content.
        """
        target = self.resolve(path)
        async with self.locks.lock_for(target):
            await self._ensure_writable(agent, target)
            current = await asyncio.to_thread(_read_text, target) if target.exists() else ""
            updated = transform(current)
            await asyncio.to_thread(_write_text, target, updated)
            self._record(agent, target)
        return updated

    async def _ensure_writable(self, agent: AgentIdentity, target: Path) -> None:
        # Caller holds the path lock.
        if agent.is_sub_agent and self.is_protected(target):
            LOGGER.warning(f"Blocked write by sub-agent {agent.name} to protected file {target}")
            raise ProtectedResourceError(agent.name, str(target))

        if target in self._read_sets.get(agent.name, ()):
            return

        if not target.exists():
            # Nothing to read yet; creating a new file is always allowed.
            return

        LOGGER.warning(f"{agent.name} writing {target} without a prior read; reading it first")
        await asyncio.to_thread(_read_text, target)
        self._record(agent, target)


__all__ = ["AccessGuard", "PathLockRegistry"]
