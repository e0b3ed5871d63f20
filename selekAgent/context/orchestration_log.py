"""Shared, append-only orchestration context log.

The file starts with a fixed three-heading skeleton and only ever grows by
appended ``## {title}`` sections. Appends are read-modify-write sequences run
under the AccessGuard's per-path lock, so concurrent appenders never lose a
section.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from selekAgent.access.guard import AccessGuard
from selekAgent.access.identity import AgentIdentity

LOGGER = logging.getLogger(__name__)

SKELETON = "# Context\n\n# Sub-agent Responses\n\n# Original Content\n"
SUB_AGENT_SUMMARY_TITLE = "Sub-agent Summary"


def format_section(title: str, body: str) -> str:
    return f"\n## {title}\n{body}\n"


def _claim_file(base: Path, stem: str) -> Path:
    # Exclusive create, so concurrent logs never share a file.
    base.mkdir(parents=True, exist_ok=True)
    candidate = base / f"{stem}.md"
    suffix = 1
    while True:
        try:
            candidate.open("x", encoding="utf-8").close()
            return candidate
        except FileExistsError:
            candidate = base / f"{stem}_{suffix}.md"
            suffix += 1


class OrchestrationLog:
    """Context log owned by the orchestrator agent."""

    def __init__(self, guard: AccessGuard, owner: AgentIdentity, context_dir: str = ".local-agent"):
        self.guard = guard
        self.owner = owner
        self.context_dir = context_dir
        self._path: Optional[Path] = None

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError("OrchestrationLog used before initialize()")
        return self._path

    @property
    def initialized(self) -> bool:
        return self._path is not None

    async def initialize(self, root_dir: Union[str, Path, None] = None) -> Path:
        """Create a fresh log file under ``<root_dir>/<context_dir>`` and write the skeleton."""
        base = self.guard.resolve(root_dir or self.guard.workspace_root) / self.context_dir
        stamp = datetime.now().strftime("%Y%m%dT%H%M%S%f")
        candidate = await asyncio.to_thread(_claim_file, base, f"orchestrator_{stamp}")

        await self.guard.read(self.owner, candidate)
        await self.guard.write(self.owner, candidate, SKELETON)
        self._path = candidate
        LOGGER.info(f"Orchestration log initialized: {candidate}")
        return candidate

    async def append_section(self, title: str, body: str) -> None:
        section = format_section(title, body)
        await self.guard.update(self.owner, self.path, lambda current: current + section)
        LOGGER.debug(f"Appended section '{title}' ({len(body)} chars) to {self.path.name}")

    async def ingest_sub_agent_summary(self, path: Union[str, Path]) -> None:
        """Append the full content of a sub-agent's output file."""
        content = await self.guard.read(self.owner, path)
        await self.append_section(SUB_AGENT_SUMMARY_TITLE, content)

    async def read(self) -> str:
        return await self.guard.read(self.owner, self.path)


__all__ = ["OrchestrationLog", "SKELETON", "SUB_AGENT_SUMMARY_TITLE", "format_section"]
