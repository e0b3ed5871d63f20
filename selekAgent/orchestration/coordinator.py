"""Turns task intents and agent commands into task-runner calls and plan previews.

Every flow is an async generator of stream events. Failures never escape:
they become an ``ErrorEvent`` and the failure text is saved as the
assistant's turn.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional, Protocol, Sequence

from selekAgent.access.guard import AccessGuard
from selekAgent.access.identity import AgentIdentity
from selekAgent.config.settings import PreviewSettings
from selekAgent.history.conversation_store import ConversationHistoryManager
from selekAgent.orchestration.agent_prompts import VALID_AGENT_TYPES, domain_for_type
from selekAgent.orchestration.preview import extract_plan_preview
from selekAgent.orchestration.task_models import AgentRecord, AgentStatus, TaskRequest, TaskResult
from selekAgent.routing.intent import TaskIntent
from selekAgent.streaming.events import DoneEvent, ErrorEvent, StreamEvent, TokenEvent
from selekAgent.utils.error_handler import (
    AgentNotFoundError,
    InvalidAgentTypeError,
    OrchestrationFailure,
    PlanReadFailure,
    SelekError,
)
from selekAgent.utils.logging_utils import log_agent_response

LOGGER = logging.getLogger(__name__)


class TaskRunner(Protocol):
    async def execute_task(self, request: TaskRequest) -> TaskResult: ...

    def get_agent_registry(self) -> List[AgentRecord]: ...

    def get_agents_by_status(self, status: AgentStatus) -> List[AgentRecord]: ...


class TaskExecutionCoordinator:
    """Delegates to the task runner and renders per-agent plan previews."""

    def __init__(
        self,
        runner: TaskRunner,
        history: ConversationHistoryManager,
        guard: AccessGuard,
        reader: AgentIdentity,
        preview: Optional[PreviewSettings] = None,
        valid_agent_types: Sequence[str] = VALID_AGENT_TYPES,
    ):
        self.runner = runner
        self.history = history
        self.guard = guard
        self.reader = reader
        self.preview = preview or PreviewSettings()
        self.valid_agent_types = tuple(valid_agent_types)

    async def execute_task(self, conversation_id: str, intent: TaskIntent) -> AsyncIterator[StreamEvent]:
        yield TokenEvent("🤖 Analyzing task and coordinating agents...\n\n")

        request = TaskRequest.for_agents(
            intent.description, intent.domain, intent.required_agents,
            auto_execute=False, parallel=False,
        )
        try:
            result = await self.runner.execute_task(request)
        except Exception as e:
            yield await self._fail(conversation_id, e, "Task execution failed")
            return

        response = "✅ Task analysis complete!\n\n**Agents Assigned:**\n"
        response += await self._render_plans(
            result, self.preview.task_max_lines, self.preview.task_max_chars, "Plan Preview"
        )

        yield TokenEvent(response)
        await self._save(conversation_id, response)
        yield DoneEvent(response)

    async def spawn(self, conversation_id: str, agent_type: str, task: str) -> AsyncIterator[StreamEvent]:
        """Run a single agent of ``agent_type``. Ends without a done event."""
        agent_type = agent_type.lower()
        if agent_type not in self.valid_agent_types:
            yield await self._fail(conversation_id, InvalidAgentTypeError(agent_type, self.valid_agent_types))
            return

        yield TokenEvent(f"🚀 Spawning {agent_type} agent...\n\n")

        request = TaskRequest.for_agents(task, domain_for_type(agent_type), [agent_type])
        try:
            result = await self.runner.execute_task(request)
        except Exception as e:
            yield await self._fail(conversation_id, e, "Failed to spawn agent")
            return

        response = f"✅ Agent spawned successfully!\n\n**Agent:** {agent_type}\n**Task:** {task}\n\n"
        response += await self._render_plans(
            result, self.preview.spawn_max_lines, self.preview.spawn_max_chars, "Plan"
        )

        yield TokenEvent(response)
        await self._save(conversation_id, response, command="spawn")

    async def kill(self, conversation_id: str, agent_id: str) -> AsyncIterator[StreamEvent]:
        """Acknowledge a termination request; running agents are not interrupted."""
        record = next((r for r in self.runner.get_agent_registry() if r.agent_id == agent_id), None)
        if record is None:
            yield await self._fail(conversation_id, AgentNotFoundError(agent_id))
            return

        response = (
            f"⚠️ Termination acknowledged for agent: {agent_id} [{record.status.value}]\n\n"
            "Note: agents are not interrupted; a running agent finishes its current plan.\n"
        )
        yield TokenEvent(response)
        await self._save(conversation_id, response, command="kill")

    async def _render_plans(self, result: TaskResult, max_lines: int, max_chars: int, label: str) -> str:
        blocks: List[str] = []
        for agent_id, plan_file in result.plans.items():
            block = f"\n🤖 **{agent_id}**\n📄 Plan file: `{plan_file}`\n\n"
            try:
                content = await self.guard.read(self.reader, plan_file)
            except SelekError as e:
                failure = PlanReadFailure(agent_id, plan_file, str(e))
                LOGGER.warning(str(failure))
                block += f"⚠️  Could not read plan file: {e.user_message}\n"
            else:
                preview = extract_plan_preview(content, max_lines, max_chars, self.preview.headings)
                block += f"**{label}:**\n{preview}\n\n"
            blocks.append(block)
        return "".join(blocks)

    async def _save(self, conversation_id: str, content: str, command: Optional[str] = None) -> None:
        metadata = {"agent_id": self.reader.name}
        if command:
            metadata["command"] = command
        await self.history.save_message(conversation_id, "assistant", content, metadata)
        log_agent_response(LOGGER, content)

    async def _fail(self, conversation_id: str, error: BaseException, prefix: str = "") -> ErrorEvent:
        if not isinstance(error, SelekError):
            LOGGER.exception("Orchestration flow failed", exc_info=error)
            error = OrchestrationFailure(str(error))
        if prefix:
            error.user_message = f"{prefix}: {error.user_message}"
        await self.history.save_message(
            conversation_id, "assistant", f"❌ {error.user_message}",
            {"agent_id": self.reader.name, "error": str(error)},
        )
        return ErrorEvent(error)


__all__ = ["TaskExecutionCoordinator", "TaskRunner"]
