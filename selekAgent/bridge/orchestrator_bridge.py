"""Message entry point: persist, classify, route.

    user message → history → IntentRouter ─┬→ Command → CommandDispatcher
                                           ├→ Task    → TaskExecutionCoordinator
                                           └→ Query   → StreamingClient (direct answer, file tools bound)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncIterator, List, Mapping, Sequence

from langchain_core.tools import BaseTool

from selekAgent.bridge.commands import CommandDispatcher
from selekAgent.history.conversation_store import ConversationHistoryManager
from selekAgent.orchestration.coordinator import TaskExecutionCoordinator
from selekAgent.routing.intent import CommandIntent, TaskIntent
from selekAgent.routing.intent_router import IntentRouter
from selekAgent.streaming.client import StreamingClient
from selekAgent.streaming.events import DoneEvent, ErrorEvent, StreamEvent, TokenEvent
from selekAgent.utils.error_handler import OrchestrationFailure, SelekError, with_error_boundary
from selekAgent.utils.logging_utils import log_agent_response, log_error, log_user_message

LOGGER = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are Selek, a software engineering assistant that coordinates planning agents. "
    "Answer questions directly and concisely. You can inspect and edit workspace files with "
    "the read_file and write_file tools. For implementation work, suggest phrasing "
    "the request as a task (e.g. \"implement ...\") or using /spawn."
)


async def _flow_failed(
    bridge: "OrchestratorBridge", conversation_id: str, message: str, *, error: Exception
) -> AsyncIterator[StreamEvent]:
    if not isinstance(error, SelekError):
        error = OrchestrationFailure(str(error), f"Something went wrong: {error}")
    log_error(LOGGER, error, f"conversation {conversation_id[:8]}")
    try:
        await bridge.history.save_message(
            conversation_id, "assistant", f"❌ {error.user_message}", {"error": str(error)}
        )
    except SelekError as save_error:
        LOGGER.error(f"Could not record failure in history: {save_error}")
    yield ErrorEvent(error)


class OrchestratorBridge:
    """Routes each user message to the command, task or query flow."""

    def __init__(
        self,
        router: IntentRouter,
        dispatcher: CommandDispatcher,
        coordinator: TaskExecutionCoordinator,
        streaming: StreamingClient,
        history: ConversationHistoryManager,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        tools: Sequence[BaseTool] = (),
    ):
        self.router = router
        self.dispatcher = dispatcher
        self.coordinator = coordinator
        self.streaming = streaming
        self.history = history
        self.system_prompt = system_prompt
        self.tools = list(tools)

    async def start_conversation(self, title: str = None) -> str:
        return await self.history.create_conversation(
            title or f"Chat {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        )

    @with_error_boundary("process_message", on_error=_flow_failed)
    async def process_message(self, conversation_id: str, message: str) -> AsyncIterator[StreamEvent]:
        if not await self.history.conversation_exists(conversation_id):
            await self.history.create_conversation(
                f"Chat {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}", conversation_id=conversation_id
            )

        log_user_message(LOGGER, message)
        await self.history.save_message(conversation_id, "user", message)

        intent = self.router.classify(message)

        if isinstance(intent, CommandIntent):
            flow = self.dispatcher.dispatch(conversation_id, intent)
        elif isinstance(intent, TaskIntent):
            flow = self.coordinator.execute_task(conversation_id, intent)
        else:
            flow = self.stream_response(conversation_id)

        async for event in flow:
            yield event

    async def stream_response(self, conversation_id: str) -> AsyncIterator[StreamEvent]:
        """Stream a direct answer, letting the model call the bridge tools.

        The answer is saved before ``DoneEvent`` is yielded.
        """
        context = await self.history.get_context(conversation_id)
        messages: List[Mapping[str, str]] = [m.as_chat() for m in context]
        if not any(m["role"] == "system" for m in messages):
            messages.insert(0, {"role": "system", "content": self.system_prompt})

        pieces: List[str] = []
        async for event in self.streaming.stream_with_tools(messages, self.tools):
            if isinstance(event, TokenEvent):
                pieces.append(event.data)
                yield event
            elif isinstance(event, DoneEvent):
                answer = "".join(pieces)
                await self.history.save_message(conversation_id, "assistant", answer)
                log_agent_response(LOGGER, answer)
                yield event
            else:
                await self.history.save_message(
                    conversation_id, "assistant", f"❌ {event.message}", {"error": str(event.error)}
                )
                yield event


__all__ = ["OrchestratorBridge", "DEFAULT_SYSTEM_PROMPT"]
