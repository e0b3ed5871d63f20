"""Runtime assembly for the Selek orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from langchain_core.language_models import BaseChatModel

from selekAgent.access import AccessGuard, AgentIdentity, AgentRole, PathLockRegistry, build_file_tools
from selekAgent.bridge import CommandDispatcher, OrchestratorBridge
from selekAgent.config import Settings, get_settings
from selekAgent.config.project_root import default_permission_rules_path
from selekAgent.context import OrchestrationLog
from selekAgent.history import ConversationHistoryManager
from selekAgent.hitl import ApprovalChecker, PermissionGate, PermissionManager
from selekAgent.orchestration import PlanningTaskRunner, TaskExecutionCoordinator
from selekAgent.routing import IntentRouter
from selekAgent.streaming import StreamingClient
from selekAgent.tracking import ToolInvocationTracker
from .model_resolver import resolve_chat_model

LOGGER = logging.getLogger(__name__)


@dataclass
class Application:
    """Everything a front end needs to drive one orchestrator session."""

    settings: Settings
    bridge: OrchestratorBridge
    guard: AccessGuard
    orchestrator: AgentIdentity
    orchestration_log: OrchestrationLog
    tracker: ToolInvocationTracker
    gate: PermissionGate
    permissions: PermissionManager
    history: ConversationHistoryManager
    runner: PlanningTaskRunner

    def orchestrator_tools(self):
        """File tools bound to the model in the query flow, tracked and consent-gated."""
        return list(self.bridge.tools)


def _rules_path(settings: Settings) -> Path:
    if settings.permissions.rules_path:
        return Path(settings.permissions.rules_path)
    return default_permission_rules_path()


async def build_application(
    settings: Optional[Settings] = None,
    model: Optional[BaseChatModel] = None,
) -> Application:
    """Wire every component and initialise on-disk state.

    Args:
        settings: Application settings, defaults to ``get_settings()``
        model: Chat model override, used by tests to inject fakes

    Returns:
        A ready-to-use ``Application``
    """
    settings = settings or get_settings()
    orch = settings.orchestration

    model = model or resolve_chat_model(settings.models)

    # One lock registry so the log's appends and plan writes share per-path locks
    locks = PathLockRegistry()
    guard = AccessGuard(
        orch.workspace_root, orch.protected_pattern, locks=locks, protected_dirs=[orch.context_dir]
    )
    orchestrator = AgentIdentity.create(orch.orchestrator_name, AgentRole.ADMIN)

    orchestration_log = OrchestrationLog(guard, orchestrator, context_dir=orch.context_dir)
    log_path = await orchestration_log.initialize()
    LOGGER.info(f"Orchestration log: {log_path}")

    tracker = ToolInvocationTracker(max_history_size=settings.tracking.history_size)

    rules_path = _rules_path(settings)
    LOGGER.info(f"Loading permission rules from {rules_path}")
    checker = ApprovalChecker(config_path=rules_path)
    gate = PermissionGate(policy=settings.permissions.conflict_policy)
    permissions = PermissionManager(
        gate,
        checker,
        prompt_risk_levels=settings.permissions.prompt_risk_levels,
        history_limit=settings.permissions.history_limit,
    )

    history = ConversationHistoryManager(
        max_messages_per_conversation=settings.history.max_messages_per_conversation,
        context_max_tokens=settings.history.context_max_tokens,
        storage_dir=settings.history.storage_dir,
    )
    await history.initialize()

    runner = PlanningTaskRunner(
        model,
        guard,
        plans_dir=Path(orch.plans_dir),
        orchestration_log=orchestration_log,
        registry_file=orch.registry_file,
        require_sections=orch.require_plan_sections,
        tracker=tracker,
    )
    await runner.initialize()

    coordinator = TaskExecutionCoordinator(runner, history, guard, orchestrator, preview=settings.preview)
    dispatcher = CommandDispatcher(
        coordinator, history, runner, tracker=tracker, export_dir=guard.resolve(settings.history.export_dir)
    )
    bridge = OrchestratorBridge(
        IntentRouter(),
        dispatcher,
        coordinator,
        StreamingClient(model, max_tool_rounds=orch.max_tool_rounds),
        history,
        tools=build_file_tools(guard, orchestrator, tracker=tracker, permissions=permissions),
    )

    LOGGER.info("Selek application assembled")
    return Application(
        settings=settings,
        bridge=bridge,
        guard=guard,
        orchestrator=orchestrator,
        orchestration_log=orchestration_log,
        tracker=tracker,
        gate=gate,
        permissions=permissions,
        history=history,
        runner=runner,
    )


__all__ = ["Application", "build_application"]
