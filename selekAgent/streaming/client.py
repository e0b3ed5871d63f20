"""Token streaming over a LangChain chat model, with an optional tool-calling loop."""

from __future__ import annotations

import logging
import re
from typing import AsyncIterator, Dict, Iterable, List, Mapping, Sequence, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.messages.tool import ToolCall
from langchain_core.tools import BaseTool

from selekAgent.streaming.events import DoneEvent, ErrorEvent, StreamEvent, TokenEvent
from selekAgent.utils.error_handler import SelekError

LOGGER = logging.getLogger(__name__)

RoleMessage = Union[Mapping[str, str], BaseMessage]

DEFAULT_MAX_TOOL_ROUNDS = 10


class ModelStreamError(SelekError):
    """The chat model failed while streaming."""
    pass


class ToolRoundsExceeded(SelekError):
    """The model kept requesting tools past the round limit."""

    def __init__(self, max_rounds: int):
        super().__init__(
            f"Tool loop did not finish within {max_rounds} rounds",
            f"Stopped after {max_rounds} rounds of tool calls without a final answer.",
        )
        self.max_rounds = max_rounds


def to_langchain_messages(messages: Iterable[RoleMessage]) -> List[BaseMessage]:
    """Convert ``{"role", "content"}`` mappings (or message objects) to LangChain messages.

    Tool messages are passed to the model as assistant turns.
    """
    converted: List[BaseMessage] = []
    for msg in messages:
        if isinstance(msg, BaseMessage):
            converted.append(msg)
            continue
        role = msg.get("role", "user")
        content = msg.get("content", "")
        if role == "system":
            converted.append(SystemMessage(content=content))
        elif role in ("assistant", "tool"):
            converted.append(AIMessage(content=content))
        else:
            converted.append(HumanMessage(content=content))
    return converted


def _chunk_text(content) -> str:
    if isinstance(content, str):
        return content
    # Content blocks: [{"type": "text", "text": "..."}]
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class StreamingClient:
    """Turns ``model.astream`` into a finite token/done/error event sequence."""

    def __init__(self, model: BaseChatModel, max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS):
        self.model = model
        self.max_tool_rounds = max_tool_rounds

    async def stream(self, messages: Iterable[RoleMessage]) -> AsyncIterator[StreamEvent]:
        lc_messages = to_langchain_messages(messages)
        pieces: List[str] = []
        try:
            async for chunk in self.model.astream(lc_messages):
                text = _chunk_text(chunk.content)
                if text:
                    pieces.append(text)
                    yield TokenEvent(text)
        except Exception as e:
            LOGGER.exception("Model stream failed", exc_info=e)
            yield ErrorEvent(ModelStreamError(str(e), f"AI model call failed: {e}"))
            return

        yield DoneEvent("".join(pieces))

    async def stream_with_tools(
        self, messages: Iterable[RoleMessage], tools: Sequence[BaseTool]
    ) -> AsyncIterator[StreamEvent]:
        """Answer with tools bound to the model, running requested calls between rounds.

        Each round asks the model once. Its text is streamed word by word, and
        every tool call it makes is executed and fed back as a ``ToolMessage``.
        The flow ends when a round makes no tool calls, or with
        ``ToolRoundsExceeded`` after ``max_tool_rounds`` rounds. Models that
        cannot bind tools fall back to plain ``stream``.
        """
        if not tools:
            async for event in self.stream(messages):
                yield event
            return

        try:
            bound = self.model.bind_tools(list(tools))
        except NotImplementedError:
            LOGGER.warning(f"{type(self.model).__name__} does not support tool calling, streaming without tools")
            async for event in self.stream(messages):
                yield event
            return

        by_name: Dict[str, BaseTool] = {t.name: t for t in tools}
        conversation = to_langchain_messages(messages)
        pieces: List[str] = []

        for round_no in range(1, self.max_tool_rounds + 1):
            try:
                reply = await bound.ainvoke(conversation)
            except Exception as e:
                LOGGER.exception("Model call failed", exc_info=e)
                yield ErrorEvent(ModelStreamError(str(e), f"AI model call failed: {e}"))
                return

            for token in re.split(r"(\s+)", _chunk_text(reply.content)):
                if token:
                    pieces.append(token)
                    yield TokenEvent(token)

            if not reply.tool_calls:
                yield DoneEvent("".join(pieces))
                return

            LOGGER.info(f"Tool round {round_no}: {[c['name'] for c in reply.tool_calls]}")
            conversation.append(reply)
            for call in reply.tool_calls:
                result = await self._run_tool(by_name, call)
                conversation.append(ToolMessage(content=result, tool_call_id=call.get("id") or call["name"]))

        LOGGER.warning(f"Tool loop stopped after {self.max_tool_rounds} rounds")
        yield ErrorEvent(ToolRoundsExceeded(self.max_tool_rounds))

    async def _run_tool(self, by_name: Dict[str, BaseTool], call: ToolCall) -> str:
        tool = by_name.get(call["name"])
        if tool is None:
            LOGGER.warning(f"Model requested unknown tool: {call['name']}")
            return f"Error: Unknown tool {call['name']}. Available: {', '.join(by_name)}"
        try:
            return str(await tool.ainvoke(call["args"]))
        except Exception as e:
            # Bad arguments fail validation before the tool body runs.
            LOGGER.exception(f"Tool {call['name']} could not run", exc_info=e)
            return f"Error: {e}"


__all__ = [
    "StreamingClient",
    "ModelStreamError",
    "ToolRoundsExceeded",
    "DEFAULT_MAX_TOOL_ROUNDS",
    "to_langchain_messages",
]
