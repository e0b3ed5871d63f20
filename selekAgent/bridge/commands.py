"""Slash-command surface.

Every command yields zero or more token events, an error event on failure,
and always ends with a ``DoneEvent``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, List, Optional

from selekAgent.history.conversation_store import EXPORT_FORMATS, ConversationHistoryManager
from selekAgent.orchestration.agent_prompts import VALID_AGENT_TYPES
from selekAgent.orchestration.coordinator import TaskExecutionCoordinator, TaskRunner
from selekAgent.orchestration.task_models import AgentStatus
from selekAgent.routing.intent import CommandIntent
from selekAgent.streaming.events import DoneEvent, ErrorEvent, StreamEvent, TokenEvent
from selekAgent.tracking.tool_tracker import ToolInvocationTracker
from selekAgent.utils.error_handler import CommandUsageError, SelekError, UnknownCommandError

LOGGER = logging.getLogger(__name__)

EXPORT_PREVIEW_CHARS = 500
EXPORT_EXTENSIONS = {"json": "json", "markdown": "md", "txt": "txt"}

HELP_TEXT = """
📖 **Selek Help**

**Available Commands:**
- /help - Show this help message
- /agents - List agents and their status
- /spawn <type> <task> - Manually spawn an agent
  Types: {types}
  Example: /spawn implementation Create a login API
- /kill <agent-id> - Request termination of an agent (acknowledgement only)
- /clear - Clear conversation history
- /stats - Show conversation, agent and tool statistics
- /export [format] - Export conversation (json|markdown|txt)
- /quit - Exit application (or use Ctrl+C)

**Usage:**
- Just type naturally to chat with the AI
- Mention tasks like "implement X" to plan them with agents
- Use /spawn for manual agent control
- Use /agents to monitor agents

**Examples:**
- "Implement a user authentication system" (auto-spawns agents)
- "/spawn security Audit the login flow" (manual spawn)
- "/kill implementation-001"
""".format(types=", ".join(VALID_AGENT_TYPES))


CommandHandler = Callable[[str, List[str]], AsyncIterator[StreamEvent]]


class CommandDispatcher:
    """Maps command names to async handlers."""

    def __init__(
        self,
        coordinator: TaskExecutionCoordinator,
        history: ConversationHistoryManager,
        runner: TaskRunner,
        tracker: Optional[ToolInvocationTracker] = None,
        export_dir: Path = Path("data/exports"),
    ):
        self.coordinator = coordinator
        self.history = history
        self.runner = runner
        self.tracker = tracker
        self.export_dir = Path(export_dir)
        self.handlers: Dict[str, CommandHandler] = {
            "help": self._help,
            "agents": self._agents,
            "spawn": self._spawn,
            "kill": self._kill,
            "clear": self._clear,
            "stats": self._stats,
            "export": self._export,
        }

    async def dispatch(self, conversation_id: str, intent: CommandIntent) -> AsyncIterator[StreamEvent]:
        handler = self.handlers.get(intent.name.lower())
        if handler is None:
            LOGGER.info(f"Unknown command: /{intent.name}")
            yield await self._failed(conversation_id, intent, UnknownCommandError(intent.name))
        else:
            try:
                async for event in handler(conversation_id, intent.args):
                    yield event
            except SelekError as e:
                LOGGER.warning(f"/{intent.name} failed: {e}")
                yield await self._failed(conversation_id, intent, e)
            except Exception as e:
                LOGGER.exception(f"/{intent.name} crashed", exc_info=e)
                yield await self._failed(conversation_id, intent, e)

        yield DoneEvent("")

    async def _failed(self, conversation_id: str, intent: CommandIntent, error: BaseException) -> ErrorEvent:
        """Record a failed command in the conversation and wrap it as an event."""
        event = ErrorEvent(error)
        await self.history.save_message(
            conversation_id, "assistant", f"❌ {event.message}",
            {"command": intent.name, "error": str(error)},
        )
        return event

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _help(self, conversation_id: str, args: List[str]) -> AsyncIterator[StreamEvent]:
        yield TokenEvent(HELP_TEXT)

    async def _agents(self, conversation_id: str, args: List[str]) -> AsyncIterator[StreamEvent]:
        agents = self.runner.get_agent_registry()
        text = "🤖 **Agents:**\n\n"
        if not agents:
            text += "No agents currently active.\n"
        for agent in agents:
            text += f"• **{agent.agent_id}** [{agent.status.value}]\n"
            text += f"  Task: {agent.task}\n"
            text += f"  Created: {agent.timestamp}\n\n"
        yield TokenEvent(text)

    async def _spawn(self, conversation_id: str, args: List[str]) -> AsyncIterator[StreamEvent]:
        if len(args) < 2:
            raise CommandUsageError(
                "Usage: /spawn <type> <task description>\n"
                f"Types: {', '.join(VALID_AGENT_TYPES)}"
            )
        async for event in self.coordinator.spawn(conversation_id, args[0], " ".join(args[1:])):
            yield event

    async def _kill(self, conversation_id: str, args: List[str]) -> AsyncIterator[StreamEvent]:
        if not args:
            raise CommandUsageError("Usage: /kill <agent-id>\nUse /agents to see agents")
        async for event in self.coordinator.kill(conversation_id, args[0]):
            yield event

    async def _clear(self, conversation_id: str, args: List[str]) -> AsyncIterator[StreamEvent]:
        await self.history.delete_conversation(conversation_id)
        await self.history.create_conversation(
            f"Chat {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}", conversation_id=conversation_id
        )
        yield TokenEvent("✅ Conversation cleared. Starting fresh!\n")

    async def _stats(self, conversation_id: str, args: List[str]) -> AsyncIterator[StreamEvent]:
        stats = await self.history.get_statistics()
        current = await self.history.get_conversation(conversation_id)

        text = "📊 **System Statistics:**\n\n**Agents:**\n"
        text += f"  • Total: {len(self.runner.get_agent_registry())}\n"
        for status in AgentStatus:
            text += f"  • {status.value.capitalize()}: {len(self.runner.get_agents_by_status(status))}\n"

        text += "\n**Conversations:**\n"
        text += f"  • This conversation: {current.message_count if current else 0} messages\n"
        text += f"  • Total Messages: {stats.total_messages}\n"
        text += f"  • Total Conversations: {stats.total_conversations}\n"
        text += f"  • Average: {stats.average_messages_per_conversation:.1f} msgs/conv\n"

        if self.tracker is not None:
            tool_stats = self.tracker.get_all_stats()
            text += "\n**Tools:**\n"
            if not tool_stats:
                text += "  • No tool calls yet\n"
            for name, s in tool_stats.items():
                text += (
                    f"  • {name}: {s.total_calls} calls, {s.success_count} ok, "
                    f"{s.failure_count} failed, avg {s.average_duration_ms:.0f}ms\n"
                )
            active = self.tracker.get_active()
            if active:
                text += f"  • Running now: {len(active)}\n"

        yield TokenEvent(text)

    async def _export(self, conversation_id: str, args: List[str]) -> AsyncIterator[StreamEvent]:
        fmt = args[0].lower() if args else "markdown"
        if fmt not in EXPORT_FORMATS:
            raise CommandUsageError(f"Usage: /export [{'|'.join(EXPORT_FORMATS)}]")

        exported = await self.history.export(conversation_id, fmt)
        target = self.export_dir / f"conversation-{int(time.time() * 1000)}.{EXPORT_EXTENSIONS[fmt]}"
        await asyncio.to_thread(_write_export, target, exported)
        LOGGER.info(f"Exported conversation {conversation_id[:8]} to {target}")

        yield TokenEvent(
            f"✅ Conversation exported to {target}\n\n{exported[:EXPORT_PREVIEW_CHARS]}...\n"
        )


def _write_export(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


__all__ = ["CommandDispatcher", "HELP_TEXT"]
