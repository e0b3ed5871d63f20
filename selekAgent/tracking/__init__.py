"""Tool invocation tracking."""

from .tool_tracker import (
    DEFAULT_HISTORY_SIZE,
    ToolExecutionEvent,
    ToolInvocationTracker,
    ToolStatus,
    ToolUsageStats,
    TrackedCall,
)

__all__ = [
    "DEFAULT_HISTORY_SIZE",
    "ToolExecutionEvent",
    "ToolInvocationTracker",
    "ToolStatus",
    "ToolUsageStats",
    "TrackedCall",
]
