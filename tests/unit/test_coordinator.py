"""Tests for TaskExecutionCoordinator flows."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from selekAgent.orchestration import PlanningTaskRunner, TaskExecutionCoordinator, TaskResult
from selekAgent.routing import TaskIntent
from selekAgent.streaming import DoneEvent, ErrorEvent, TokenEvent
from selekAgent.utils.error_handler import (
    AgentNotFoundError,
    InvalidAgentTypeError,
    OrchestrationFailure,
)


def tokens(events):
    return "".join(e.data for e in events if isinstance(e, TokenEvent))


def stub_runner(result=None, error=None, registry=()):
    runner = MagicMock()
    runner.execute_task = AsyncMock(return_value=result, side_effect=error)
    runner.get_agent_registry.return_value = list(registry)
    return runner


class TestExecuteTask:

    @pytest.mark.asyncio
    async def test_task_flow_renders_previews_and_saves(self, coordinator, history, conversation_id, collect):
        intent = TaskIntent("Create a login API", "Software Development", ["implementation"])

        events = await collect(coordinator.execute_task(conversation_id, intent))

        assert events[0] == TokenEvent("🤖 Analyzing task and coordinating agents...\n\n")
        assert isinstance(events[-1], DoneEvent)
        text = tokens(events)
        assert "**implementation-001**" in text
        assert "**Plan Preview:**\n## Implementation Steps\n1. Create the user model" in text
        assert "## Error Handling Strategy" not in text

        [saved] = await history.get_history(conversation_id)
        assert saved.role == "assistant"
        assert saved.content == events[-1].final

    @pytest.mark.asyncio
    async def test_runner_failure_is_terminal_error(self, history, guard, orchestrator, conversation_id, collect):
        runner = stub_runner(error=OrchestrationFailure("boom", "Agent implementation failed"))
        coordinator = TaskExecutionCoordinator(runner, history, guard, orchestrator)

        events = await collect(coordinator.execute_task(
            conversation_id, TaskIntent("Build it", "Software Development", ["implementation"])
        ))

        assert isinstance(events[-1], ErrorEvent)
        assert not any(isinstance(e, DoneEvent) for e in events)
        assert events[-1].message == "Task execution failed: Agent implementation failed"
        [saved] = await history.get_history(conversation_id)
        assert saved.content == "❌ Task execution failed: Agent implementation failed"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, history, guard, orchestrator, conversation_id, collect):
        runner = stub_runner(error=RuntimeError("socket closed"))
        coordinator = TaskExecutionCoordinator(runner, history, guard, orchestrator)

        events = await collect(coordinator.execute_task(
            conversation_id, TaskIntent("Build it", "Software Development", ["implementation"])
        ))

        assert isinstance(events[-1].error, OrchestrationFailure)
        assert "socket closed" in events[-1].message

    @pytest.mark.asyncio
    async def test_unreadable_plan_is_reported_inline(self, history, guard, orchestrator, workspace, conversation_id, collect):
        good = workspace / "good.md"
        good.write_text("## Steps\nok", encoding="utf-8")
        result = TaskResult("t", plans={"implementation-001": str(workspace / "gone.md"), "security-002": str(good)})
        coordinator = TaskExecutionCoordinator(stub_runner(result), history, guard, orchestrator)

        events = await collect(coordinator.execute_task(
            conversation_id, TaskIntent("t", "Software Development", ["implementation", "security"])
        ))

        text = tokens(events)
        assert "⚠️  Could not read plan file" in text
        assert "## Steps\nok" in text
        assert isinstance(events[-1], DoneEvent)


class TestSpawn:

    @pytest.mark.asyncio
    async def test_spawn_security_agent(self, guard, orchestration_log, history, orchestrator, conversation_id, security_plan, collect):
        runner = PlanningTaskRunner(FakeListChatModel(responses=[security_plan]), guard, orchestration_log=orchestration_log)
        await runner.initialize()
        coordinator = TaskExecutionCoordinator(runner, history, guard, orchestrator)

        events = await collect(coordinator.spawn(conversation_id, "security", "audit login flow"))

        assert events[0].data == "🚀 Spawning security agent...\n\n"
        text = tokens(events)
        assert "**Agent:** security\n**Task:** audit login flow" in text
        assert "🤖 **security-001**" in text
        # No steps heading in a security review, so the preview is the opening text.
        assert "**Plan:**\n# Login Flow Security Review" in text
        assert not any(isinstance(e, (DoneEvent, ErrorEvent)) for e in events)

        [record] = runner.get_agent_registry()
        assert record.domain == "Application Security"
        [saved] = await history.get_history(conversation_id)
        assert saved.metadata["command"] == "spawn"

    @pytest.mark.asyncio
    async def test_invalid_type_lists_valid_types(self, history, guard, orchestrator, conversation_id, collect):
        runner = stub_runner()
        coordinator = TaskExecutionCoordinator(runner, history, guard, orchestrator)

        events = await collect(coordinator.spawn(conversation_id, "bogus-type", "do X"))

        [event] = events
        assert isinstance(event.error, InvalidAgentTypeError)
        assert event.error.valid_types == ["implementation", "security", "performance"]
        assert "Valid types: implementation, security, performance" in event.message
        runner.execute_task.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_agent_type_is_case_insensitive(self, history, guard, orchestrator, conversation_id, collect):
        runner = stub_runner(TaskResult("t"))
        coordinator = TaskExecutionCoordinator(runner, history, guard, orchestrator)

        await collect(coordinator.spawn(conversation_id, "Performance", "tune queries"))

        request = runner.execute_task.await_args.args[0]
        assert request.required_agents == ("performance",)
        assert request.domain == "Performance Optimization"


class TestKill:

    @pytest.mark.asyncio
    async def test_kill_unknown_agent(self, coordinator, orchestration_log, history, conversation_id, collect):
        before = await orchestration_log.read()

        events = await collect(coordinator.kill(conversation_id, "nonexistent-id"))

        [event] = events
        assert isinstance(event.error, AgentNotFoundError)
        assert event.message == "Agent not found: nonexistent-id"
        assert await orchestration_log.read() == before
        [saved] = await history.get_history(conversation_id)
        assert saved.content == "❌ Agent not found: nonexistent-id"

    @pytest.mark.asyncio
    async def test_kill_known_agent_is_acknowledged(self, coordinator, runner, conversation_id, collect):
        await collect(coordinator.spawn(conversation_id, "implementation", "Create a login API"))

        events = await collect(coordinator.kill(conversation_id, "implementation-001"))

        assert "Termination acknowledged for agent: implementation-001 [completed]" in tokens(events)
        assert [r.agent_id for r in runner.get_agent_registry()] == ["implementation-001"]
