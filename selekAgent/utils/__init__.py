"""Utility helpers."""

from .error_handler import (
    AgentNotFoundError,
    CommandUsageError,
    InvalidAgentTypeError,
    NotAccessibleError,
    OrchestrationFailure,
    PermissionConflictError,
    PlanGenerationError,
    PlanReadFailure,
    ProtectedResourceError,
    SelekError,
    UnknownCommandError,
    safe_tool_call,
    user_message_for,
    with_error_boundary,
)
from .logging_utils import (
    get_logger,
    log_permission_decision,
    log_agent_response,
    log_error,
    log_routing_decision,
    log_task_request,
    log_tool_call,
    log_tool_result,
    log_user_message,
    setup_logging,
)

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
    "safe_tool_call",
    "user_message_for",
    "with_error_boundary",
    "log_permission_decision",
    "setup_logging",
    "get_logger",
    "log_tool_call",
    "log_tool_result",
    "log_error",
    "log_user_message",
    "log_agent_response",
    "log_routing_decision",
    "log_task_request",
]
