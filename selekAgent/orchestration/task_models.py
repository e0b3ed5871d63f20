"""Task runner request/result types and the agent registry record."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Tuple


class AgentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskRequest:
    """One task for the runner; ``required_agents`` never holds duplicates."""

    description: str
    domain: str
    required_agents: Tuple[str, ...] = ("implementation",)
    auto_execute: bool = False
    parallel: bool = False

    def __post_init__(self):
        object.__setattr__(self, "required_agents", tuple(dict.fromkeys(self.required_agents)))

    @classmethod
    def for_agents(cls, description: str, domain: str, agents: Iterable[str], **kwargs) -> "TaskRequest":
        return cls(description=description, domain=domain, required_agents=tuple(agents), **kwargs)


@dataclass
class TaskResult:
    task_description: str
    plans: Dict[str, str] = field(default_factory=dict)
    """Agent id -> plan file path, in spawn order."""
    summary: str = ""


@dataclass
class AgentRecord:
    agent_id: str
    agent_type: str
    domain: str
    task: str
    plan_file: str
    timestamp: str
    status: AgentStatus = AgentStatus.COMPLETED
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentRecord":
        return cls(
            agent_id=data["agent_id"],
            agent_type=data.get("agent_type", data["agent_id"].rsplit("-", 1)[0]),
            domain=data.get("domain", ""),
            task=data.get("task", ""),
            plan_file=data.get("plan_file", ""),
            timestamp=data.get("timestamp", ""),
            status=AgentStatus(data.get("status", AgentStatus.COMPLETED.value)),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class PlanOutput:
    """What one planning agent produced."""

    agent_id: str
    agent_type: str
    domain: str
    plan_file: str
    plan_content: str
    metadata: Dict[str, Any]
    execution_time: float
    missing_sections: Tuple[str, ...] = ()


__all__ = ["AgentStatus", "TaskRequest", "TaskResult", "AgentRecord", "PlanOutput"]
