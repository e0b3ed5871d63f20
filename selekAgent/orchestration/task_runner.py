"""Multi-agent planning task runner.

Spawns one specialized planning agent per requested agent type, asks the chat
model for a plan, stores the plan through the AccessGuard as that sub-agent,
records the agent in a JSON registry and lets the orchestrator ingest the
plan into the shared context log.
"""

from __future__ import annotations

import json
import logging
import re
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from selekAgent.access.guard import AccessGuard
from selekAgent.access.identity import AgentIdentity, AgentRole
from selekAgent.context.orchestration_log import OrchestrationLog
from selekAgent.orchestration.agent_prompts import extract_plan_metadata, get_profile
from selekAgent.orchestration.planning_graph import build_planning_graph
from selekAgent.orchestration.task_models import (
    AgentRecord,
    AgentStatus,
    PlanOutput,
    TaskRequest,
    TaskResult,
)
from selekAgent.tracking.tool_tracker import ToolInvocationTracker
from selekAgent.utils.error_handler import (
    NotAccessibleError,
    OrchestrationFailure,
    PlanGenerationError,
    SelekError,
)
from selekAgent.utils.logging_utils import log_task_request

LOGGER = logging.getLogger(__name__)

DEPENDENCY_CONTEXT_CHARS = 4000
_AGENT_ID_RE = re.compile(r"^(?P<type>.+)-(?P<num>\d+)$")


def _slugify(text: str, limit: int = 30) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower())[:limit]


def _message_text(content) -> str:
    if isinstance(content, str):
        return content
    return "".join(
        block.get("text", "") if isinstance(block, dict) else str(block) for block in content or []
    )


class PlanningTaskRunner:
    """Task runner backed by a LangGraph planning graph."""

    def __init__(
        self,
        model: BaseChatModel,
        guard: AccessGuard,
        plans_dir: Path = Path("plans"),
        orchestration_log: Optional[OrchestrationLog] = None,
        registry_file: str = "agent-registry.json",
        require_sections: bool = False,
        tracker: Optional[ToolInvocationTracker] = None,
    ):
        self.model = model
        self.guard = guard
        self.plans_dir = guard.resolve(plans_dir)
        self.registry_path = self.plans_dir / registry_file
        self.log = orchestration_log
        self.require_sections = require_sections
        self.tracker = tracker
        self.identity = AgentIdentity.create("task-runner", AgentRole.WRITER)
        self._registry: List[AgentRecord] = []
        self._counter = 0
        self._graph = build_planning_graph(self)

    async def initialize(self) -> None:
        """Load the agent registry from disk, starting fresh when absent or unreadable."""
        if not self.registry_path.exists():
            self._registry = []
            await self._save_registry()
            return

        try:
            data = json.loads(await self.guard.read(self.identity, self.registry_path))
            self._registry = [AgentRecord.from_dict(r) for r in data.get("agents", [])]
        except (NotAccessibleError, ValueError, KeyError) as e:
            LOGGER.warning(f"Agent registry unreadable, starting fresh: {e}")
            self._registry = []
            await self._save_registry()

        for record in self._registry:
            match = _AGENT_ID_RE.match(record.agent_id)
            if match:
                self._counter = max(self._counter, int(match.group("num")))
        LOGGER.info(f"Loaded agent registry with {len(self._registry)} agents")

    # ------------------------------------------------------------------
    # Task execution
    # ------------------------------------------------------------------

    async def execute_task(self, request: TaskRequest) -> TaskResult:
        """Run every required agent and return their plan files.

        Raises:
            OrchestrationFailure: any agent failed; the whole task is failed
        """
        log_task_request(LOGGER, request)
        for agent_type in request.required_agents:
            try:
                get_profile(agent_type)
            except KeyError as e:
                raise OrchestrationFailure(str(e.args[0])) from e

        if request.auto_execute:
            LOGGER.info("auto_execute requested; plans are generated but not executed")

        if self.log is not None and self.log.initialized:
            await self.log.append_section(
                "Task Request",
                f"{request.description}\n\nDomain: {request.domain}\n"
                f"Agents: {', '.join(request.required_agents)}",
            )

        try:
            state = await self._graph.ainvoke(
                {"request": request, "remaining": list(request.required_agents)},
                config={"recursion_limit": 10 + 2 * len(request.required_agents)},
            )
        except SelekError as e:
            raise OrchestrationFailure(
                f'Task "{request.description}" failed: {e}', e.user_message
            ) from e
        except Exception as e:
            LOGGER.exception("Planning graph failed", exc_info=e)
            raise OrchestrationFailure(f'Task "{request.description}" failed: {e}') from e

        return TaskResult(
            task_description=request.description,
            plans=dict(state.get("plans", {})),
            summary=state.get("summary", ""),
        )

    def next_agent_id(self, agent_type: str) -> str:
        self._counter += 1
        return f"{agent_type}-{self._counter:03d}"

    async def run_agent(
        self,
        agent_type: str,
        request: TaskRequest,
        dependencies: Sequence[str] = (),
    ) -> PlanOutput:
        """Spawn one planning agent and store its plan.

        Raises:
            PlanGenerationError: the model failed, returned nothing, or (when
                sections are required) left out required sections
        """
        profile = get_profile(agent_type)
        agent_id = self.next_agent_id(agent_type)
        agent = AgentIdentity.create(agent_id, AgentRole.SUB_AGENT)
        started = time.perf_counter()
        LOGGER.info(f"Spawning {agent_type} agent {agent_id}")

        try:
            messages = await self._build_messages(agent, profile, request, dependencies)
            plan = await self._generate(agent_id, agent_type, messages)

            missing = profile.missing_sections(plan)
            if missing:
                if self.require_sections:
                    raise PlanGenerationError(
                        f"{agent_type} plan is missing sections: {', '.join(missing)}"
                    )
                LOGGER.warning(f"{agent_id} plan is missing sections: {', '.join(missing)}")

            plan_path = await self.guard.write(agent, self._plan_path(agent_type, agent_id, request.description), plan)
        except SelekError as e:
            await self._register_failure(agent_id, agent_type, request, str(e))
            raise PlanGenerationError(
                f'{agent_type} agent failed to generate plan for task "{request.description}": {e}',
                e.user_message,
            ) from e
        except Exception as e:
            await self._register_failure(agent_id, agent_type, request, str(e))
            raise PlanGenerationError(
                f'{agent_type} agent failed to generate plan for task "{request.description}": {e}'
            ) from e

        metadata = extract_plan_metadata(plan, agent_id, request.domain)
        await self._register(AgentRecord(
            agent_id=agent_id,
            agent_type=agent_type,
            domain=request.domain,
            task=request.description,
            plan_file=str(plan_path),
            timestamp=datetime.now().isoformat(),
            status=AgentStatus.COMPLETED,
            metadata=metadata,
        ))

        if self.log is not None and self.log.initialized:
            await self.log.ingest_sub_agent_summary(plan_path)

        elapsed = time.perf_counter() - started
        LOGGER.info(f"{agent_id} completed in {elapsed:.2f}s: {plan_path}")
        return PlanOutput(
            agent_id=agent_id,
            agent_type=agent_type,
            domain=request.domain,
            plan_file=str(plan_path),
            plan_content=plan,
            metadata=metadata,
            execution_time=elapsed,
            missing_sections=tuple(missing),
        )

    async def _build_messages(self, agent, profile, request, dependencies) -> List[BaseMessage]:
        messages: List[BaseMessage] = [
            SystemMessage(content=profile.system_prompt(request.domain)),
            HumanMessage(content=profile.task_prompt(request.description, dependencies)),
        ]
        for dep in dependencies:
            try:
                content = await self.guard.read(agent, dep)
            except NotAccessibleError:
                LOGGER.warning(f"Dependency file not found: {dep}")
                continue
            excerpt = content[:DEPENDENCY_CONTEXT_CHARS]
            messages.append(HumanMessage(content=f"=== {Path(dep).name} ===\n{excerpt}"))
        return messages

    async def _generate(self, agent_id: str, agent_type: str, messages: List[BaseMessage]) -> str:
        if self.tracker is None:
            response = await self.model.ainvoke(messages)
        else:
            async with self.tracker.track(
                "generate_plan", {"agent_type": agent_type}, called_by=agent_id
            ) as call:
                response = await self.model.ainvoke(messages)
                call.result = f"{len(_message_text(response.content))} chars"

        plan = _message_text(response.content).strip()
        if not plan:
            raise PlanGenerationError(f"{agent_id} returned an empty plan")
        return plan + "\n"

    def _plan_path(self, agent_type: str, agent_id: str, task: str) -> Path:
        date = datetime.now().strftime("%Y-%m-%d")
        base = self.plans_dir / agent_type
        path = base / f"{agent_type}-plan-{date}-{_slugify(task)}.md"
        if path.exists():
            path = base / f"{agent_type}-plan-{date}-{_slugify(task)}-{agent_id}.md"
        return path

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    @staticmethod
    def generate_summary(request: TaskRequest, plans: dict) -> str:
        lines = [
            "# Multi-Agent Execution Summary",
            "",
            f"**Task:** {request.description}",
            f"**Domain:** {request.domain}",
            f"**Date:** {datetime.now().isoformat()}",
            "",
            "## Generated Plans",
            "",
        ]
        lines += [f"- **{agent_id}**: `{plan_file}`" for agent_id, plan_file in plans.items()]
        lines += ["", "## Next Steps", ""]
        if plans:
            lines += ["1. Review the generated plans", "2. Implement the plans step by step"]
        else:
            lines += ["1. No plans were generated; check the logs"]
        return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def get_agent_registry(self) -> List[AgentRecord]:
        return list(self._registry)

    def get_agents_by_status(self, status: AgentStatus | str) -> List[AgentRecord]:
        status = AgentStatus(status)
        return [r for r in self._registry if r.status is status]

    def get_agents_for_task(self, keywords: str) -> List[AgentRecord]:
        needle = keywords.lower()
        return [r for r in self._registry if needle in r.task.lower()]

    async def _register(self, record: AgentRecord) -> None:
        self._registry.append(record)
        await self._save_registry()

    async def _register_failure(self, agent_id: str, agent_type: str, request: TaskRequest, error: str) -> None:
        LOGGER.error(f"{agent_id} failed: {error}")
        await self._register(AgentRecord(
            agent_id=agent_id,
            agent_type=agent_type,
            domain=request.domain,
            task=request.description,
            plan_file="",
            timestamp=datetime.now().isoformat(),
            status=AgentStatus.FAILED,
            metadata={"error": error},
        ))

    async def _save_registry(self) -> None:
        payload = {
            "agents": [r.to_dict() for r in self._registry],
            "last_updated": datetime.now().isoformat(),
        }
        await self.guard.write(self.identity, self.registry_path, json.dumps(payload, ensure_ascii=False, indent=2))


__all__ = ["PlanningTaskRunner"]
