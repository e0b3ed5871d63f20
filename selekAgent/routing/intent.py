"""Classified user intents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Union


@dataclass(frozen=True)
class CommandIntent:
    name: str
    args: List[str] = field(default_factory=list)

    kind = "command"


@dataclass(frozen=True)
class TaskIntent:
    description: str
    domain: str
    required_agents: List[str] = field(default_factory=list)

    kind = "task"


@dataclass(frozen=True)
class QueryIntent:
    question: str

    kind = "query"


Intent = Union[CommandIntent, TaskIntent, QueryIntent]

__all__ = ["CommandIntent", "TaskIntent", "QueryIntent", "Intent"]
