"""Agent identities used by the access guard."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional


class AgentRole(str, Enum):
    ADMIN = "admin"
    WRITER = "writer"
    ANALYST = "analyst"
    SUB_AGENT = "sub-agent"


@dataclass(frozen=True)
class AgentIdentity:
    """A named actor performing file I/O and tool calls.

    Immutable for the agent's lifetime. ``allowed_tools`` of ``None`` means
    no tool restriction.
    """

    name: str
    role: AgentRole
    allowed_tools: Optional[FrozenSet[str]] = None

    @classmethod
    def create(
        cls,
        name: str,
        role: AgentRole | str,
        allowed_tools: Optional[Iterable[str]] = None,
    ) -> "AgentIdentity":
        tools = frozenset(allowed_tools) if allowed_tools is not None else None
        return cls(name=name, role=AgentRole(role), allowed_tools=tools)

    @property
    def is_sub_agent(self) -> bool:
        return self.role is AgentRole.SUB_AGENT

    def can_use(self, tool_name: str) -> bool:
        return self.allowed_tools is None or tool_name in self.allowed_tools


__all__ = ["AgentRole", "AgentIdentity"]
