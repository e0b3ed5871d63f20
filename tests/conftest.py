"""Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and ensures proper test environment setup.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio
from langchain_core.language_models.fake_chat_models import FakeListChatModel, GenericFakeChatModel

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from selekAgent.access import AccessGuard, AgentIdentity, AgentRole, PathLockRegistry  # noqa: E402
from selekAgent.context import OrchestrationLog  # noqa: E402
from selekAgent.history import ConversationHistoryManager  # noqa: E402
from selekAgent.orchestration import PlanningTaskRunner, TaskExecutionCoordinator  # noqa: E402
from selekAgent.tracking import ToolInvocationTracker  # noqa: E402


IMPLEMENTATION_PLAN = """# Login API Implementation Plan

**Plan ID:** implementation-login-api
**Domain:** Software Development
**Complexity:** Standard
**Estimated Effort:** 2 days
**Dependencies:** None

## Context Summary
Add a login endpoint.

## Implementation Steps
1. Create the user model
2. Add the /login route
3. Issue session tokens

## Error Handling Strategy
Raise AuthError on bad credentials.
"""

SECURITY_PLAN = """# Login Flow Security Review

**Domain:** Application Security
**Complexity:** Complex

## Threat Analysis
Credential stuffing and session fixation.

## Mitigation Strategies
Rate limit the login endpoint.
"""


class ToolCallingFakeModel(GenericFakeChatModel):
    """Scripted replies that may carry tool calls; binding tools is a no-op."""

    def bind_tools(self, tools, **kwargs):
        return self


@pytest.fixture
def workspace(tmp_path) -> Path:
    """Empty workspace directory for file-touching tests."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def guard(workspace) -> AccessGuard:
    return AccessGuard(workspace, locks=PathLockRegistry())


@pytest.fixture
def orchestrator() -> AgentIdentity:
    return AgentIdentity.create("orchestrator", AgentRole.ADMIN)


@pytest.fixture
def sub_agent() -> AgentIdentity:
    return AgentIdentity.create("implementation-001", AgentRole.SUB_AGENT)


@pytest.fixture
def tracker() -> ToolInvocationTracker:
    return ToolInvocationTracker(max_history_size=50)


@pytest.fixture
def plan_model() -> FakeListChatModel:
    """Chat model that answers every plan request with the implementation plan."""
    return FakeListChatModel(responses=[IMPLEMENTATION_PLAN])


@pytest_asyncio.fixture
async def orchestration_log(guard, orchestrator) -> OrchestrationLog:
    log = OrchestrationLog(guard, orchestrator)
    await log.initialize()
    return log


@pytest_asyncio.fixture
async def history() -> ConversationHistoryManager:
    manager = ConversationHistoryManager()
    await manager.initialize()
    return manager


@pytest_asyncio.fixture
async def conversation_id(history) -> str:
    return await history.create_conversation("Test conversation")


@pytest_asyncio.fixture
async def runner(plan_model, guard, orchestration_log, tracker) -> PlanningTaskRunner:
    task_runner = PlanningTaskRunner(
        plan_model,
        guard,
        orchestration_log=orchestration_log,
        tracker=tracker,
    )
    await task_runner.initialize()
    return task_runner


@pytest.fixture
def coordinator(runner, history, guard, orchestrator) -> TaskExecutionCoordinator:
    return TaskExecutionCoordinator(runner, history, guard, orchestrator)


async def _drain(flow):
    return [event async for event in flow]


@pytest.fixture
def collect():
    """Drain an async event flow into a list: ``events = await collect(flow)``."""
    return _drain


@pytest.fixture
def implementation_plan() -> str:
    return IMPLEMENTATION_PLAN


@pytest.fixture
def security_plan() -> str:
    return SECURITY_PLAN


@pytest.fixture
def tool_calling_model():
    """Build a model that answers with the given replies in order."""
    def make(*replies):
        return ToolCallingFakeModel(messages=iter(replies))
    return make
