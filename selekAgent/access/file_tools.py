"""LangChain file tools bound to one agent identity.

All I/O goes through the AccessGuard, so the read-before-write discipline and
the protected-resource rule apply to anything a model does with these tools.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator, Dict, List, Optional

from langchain_core.tools import BaseTool, tool

from selekAgent.access.guard import AccessGuard
from selekAgent.access.identity import AgentIdentity
from selekAgent.hitl.models import OperationType
from selekAgent.hitl.permission_manager import PermissionManager
from selekAgent.tracking.tool_tracker import ToolInvocationTracker, TrackedCall
from selekAgent.utils.error_handler import safe_tool_call

LOGGER = logging.getLogger(__name__)


def build_file_tools(
    guard: AccessGuard,
    agent: AgentIdentity,
    tracker: Optional[ToolInvocationTracker] = None,
    permissions: Optional[PermissionManager] = None,
    context_id: str = "default",
) -> List[BaseTool]:
    """Create ``read_file``/``write_file`` tools acting as ``agent``.

    Tools outside ``agent.allowed_tools`` are left out.
    """

    @asynccontextmanager
    async def tracked(tool_name: str, params: Dict[str, Any]) -> AsyncIterator[TrackedCall]:
        if tracker is None:
            yield TrackedCall(event_id=tool_name)
            return
        async with tracker.track(tool_name, params, called_by=agent.name) as call:
            yield call

    @tool
    @safe_tool_call("read_file")
    async def read_file(
        path: Annotated[str, "File path, absolute or relative to the workspace root"]
    ) -> str:
        """Read a text file from the workspace.

        Reading a file also allows this agent to write it afterwards.
        """
        async with tracked("read_file", {"path": path}) as call:
            content = await guard.read(agent, path)
            call.result = f"{len(content)} chars"
        return content

    @tool
    @safe_tool_call("write_file")
    async def write_file(
        path: Annotated[str, "File path, absolute or relative to the workspace root"],
        content: Annotated[str, "Full new file content"],
    ) -> str:
        """Write (overwrite) a text file in the workspace.

        Orchestrator-owned files cannot be written by sub-agents.
        """
        async with tracked("write_file", {"path": path, "size": len(content)}) as call:
            if permissions is not None:
                decision = await permissions.request_permission(
                    OperationType.FILE_WRITE,
                    f"Write {path}",
                    {"path": path, "size": len(content)},
                    requested_by=agent.name,
                    context_id=context_id,
                )
                if not decision.allowed:
                    call.result = "denied"
                    return f"Error: Permission denied for writing {path}"
            target = await guard.write(agent, path, content)
            call.result = str(target)
        return f"Wrote {len(content)} chars to {path}"

    tools = [t for t in (read_file, write_file) if agent.can_use(t.name)]
    LOGGER.debug(f"Built file tools for {agent.name}: {[t.name for t in tools]}")
    return tools


__all__ = ["build_file_tools"]
