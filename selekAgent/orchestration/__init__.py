"""Task orchestration: task runner, planning agents, coordinator, plan previews."""

from .agent_prompts import PROFILES, VALID_AGENT_TYPES, AgentProfile, domain_for_type, get_profile
from .coordinator import TaskExecutionCoordinator, TaskRunner
from .preview import DEFAULT_HEADINGS, extract_plan_preview
from .task_models import AgentRecord, AgentStatus, PlanOutput, TaskRequest, TaskResult
from .task_runner import PlanningTaskRunner

__all__ = [
    "PROFILES",
    "VALID_AGENT_TYPES",
    "AgentProfile",
    "domain_for_type",
    "get_profile",
    "TaskExecutionCoordinator",
    "TaskRunner",
    "DEFAULT_HEADINGS",
    "extract_plan_preview",
    "AgentRecord",
    "AgentStatus",
    "PlanOutput",
    "TaskRequest",
    "TaskResult",
    "PlanningTaskRunner",
]
