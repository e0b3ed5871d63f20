"""Unified error handling for Selek orchestration flows and tools."""

from __future__ import annotations

import functools
import logging
from typing import Any, AsyncIterator, Callable, Iterable, Optional

LOGGER = logging.getLogger(__name__)


class SelekError(Exception):
    """Base exception for Selek errors."""

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class NotAccessibleError(SelekError):
    """Path does not exist or cannot be read."""

    def __init__(self, path: str, reason: str = ""):
        detail = f": {reason}" if reason else ""
        super().__init__(f"Path not accessible: {path}{detail}", f"Cannot read {path}")
        self.path = path


class ProtectedResourceError(SelekError):
    """A sub-agent tried to mutate orchestrator-owned state."""

    def __init__(self, agent_name: str, path: str):
        super().__init__(
            f"Agent '{agent_name}' may not write protected resource {path}",
            f"Sub-agents cannot modify orchestrator files ({path})",
        )
        self.agent_name = agent_name
        self.path = path


class UnknownCommandError(SelekError):
    """Command name not in the command surface."""

    def __init__(self, command: str):
        super().__init__(
            f"Unknown command: /{command}",
            f"Unknown command: /{command}. Type /help for available commands.",
        )
        self.command = command


class InvalidAgentTypeError(SelekError):
    """Agent type outside the allow-list."""

    def __init__(self, agent_type: str, valid_types: Iterable[str]):
        self.valid_types = list(valid_types)
        super().__init__(
            f"Invalid agent type: {agent_type}. Valid types: {', '.join(self.valid_types)}"
        )
        self.agent_type = agent_type


class AgentNotFoundError(SelekError):
    """Agent id not present in the registry."""

    def __init__(self, agent_id: str):
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


class PlanReadFailure(SelekError):
    """A single agent's plan file could not be read."""

    def __init__(self, agent_id: str, plan_file: str, reason: str = ""):
        super().__init__(
            f"Failed to read plan for {agent_id} ({plan_file})" + (f": {reason}" if reason else ""),
            f"Could not read plan file for {agent_id}",
        )
        self.agent_id = agent_id
        self.plan_file = plan_file


class OrchestrationFailure(SelekError):
    """Delegation to the task runner failed as a whole."""
    pass


class CommandUsageError(SelekError):
    """Command called with missing or malformed arguments."""
    pass


class PermissionConflictError(SelekError):
    """A permission request arrived while another is pending (reject policy)."""

    def __init__(self, context_id: str, pending_id: str):
        super().__init__(
            f"Permission request already pending for context '{context_id}' ({pending_id})",
            "Another permission request is awaiting a decision",
        )
        self.context_id = context_id
        self.pending_id = pending_id


class PlanGenerationError(SelekError):
    """A planning agent failed to produce a usable plan."""
    pass


def user_message_for(error: BaseException) -> str:
    """Convert any exception to the text shown to the user."""
    if isinstance(error, SelekError):
        return error.user_message
    return f"{type(error).__name__}: {error}"


def with_error_boundary(flow_name: str, on_error: Optional[Callable[..., Any]] = None):
    """Decorator to add an error boundary to an event-producing async generator.

    Any exception escaping the wrapped flow is logged and converted into a
    terminal event sequence built by ``on_error``. Nothing propagates to the
    consumer except ``asyncio.CancelledError``.

    Args:
        flow_name: Name of the flow for logging
        on_error: Async generator function called with the wrapped call's
            arguments plus ``error=`` the exception, yielding terminal events.

    Example:
        @with_error_boundary("process_message", on_error=_flow_failed)
        async def process_message(self, conversation_id, message):
            yield TokenEvent("...")
    """
    def decorator(func: Callable[..., AsyncIterator[Any]]) -> Callable[..., AsyncIterator[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> AsyncIterator[Any]:
            try:
                async for event in func(*args, **kwargs):
                    yield event
            except SelekError as e:
                LOGGER.error(f"{flow_name} failed: {e}")
                if on_error is None:
                    raise
                async for event in on_error(*args, error=e, **kwargs):
                    yield event
            except Exception as e:
                LOGGER.exception(f"{flow_name} unexpected error", exc_info=e)
                if on_error is None:
                    raise
                async for event in on_error(*args, error=e, **kwargs):
                    yield event
        return wrapper
    return decorator


def safe_tool_call(tool_name: str):
    """Decorator for safe tool execution with error handling.

    Failures are returned as ``Error: ...`` strings, the way tools report
    problems back to a model.

    Example:
        @tool
        @safe_tool_call("read_file")
        async def read_file(path: str) -> str:
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> str:
            try:
                return await func(*args, **kwargs)
            except SelekError as e:
                LOGGER.warning(f"Tool {tool_name} refused: {e}")
                return f"Error: {e.user_message}"
            except Exception as e:
                LOGGER.exception(f"Tool {tool_name} failed", exc_info=e)
                return f"Error: {str(e)}"
        return wrapper
    return decorator


__all__ = [
    "SelekError",
    "NotAccessibleError",
    "ProtectedResourceError",
    "UnknownCommandError",
    "InvalidAgentTypeError",
    "AgentNotFoundError",
    "PlanReadFailure",
    "OrchestrationFailure",
    "CommandUsageError",
    "PermissionConflictError",
    "PlanGenerationError",
    "user_message_for",
    "with_error_boundary",
    "safe_tool_call",
]
