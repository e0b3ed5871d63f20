"""Conversation history storage.

In-memory by default. With a ``storage_dir`` every conversation is also kept
as ``<storage_dir>/<conversation_id>.json`` and the whole file is rewritten
on each mutation.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from selekAgent.utils.error_handler import SelekError

LOGGER = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "markdown", "txt")
ROLE_ICONS = {"user": "👤", "assistant": "🤖", "tool": "🔧"}
CHARS_PER_TOKEN = 4


class ConversationNotFoundError(SelekError):
    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


@dataclass
class Message:
    role: str
    content: str
    conversation_id: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def as_chat(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class Conversation:
    id: str
    title: str
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    message_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchResult:
    message: Message
    score: float
    highlights: List[str]


@dataclass
class ConversationStats:
    total_conversations: int
    total_messages: int
    average_messages_per_conversation: float
    oldest_conversation: Optional[float] = None
    newest_conversation: Optional[float] = None


def _fmt_time(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def _estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class ConversationHistoryManager:
    """Conversations and their bounded message lists."""

    def __init__(
        self,
        max_messages_per_conversation: int = 1000,
        context_max_tokens: int = 8000,
        storage_dir: Optional[Path] = None,
    ):
        self.max_messages = max_messages_per_conversation
        self.context_max_tokens = context_max_tokens
        self.storage_dir = Path(storage_dir) if storage_dir else None
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, List[Message]] = {}

    async def initialize(self) -> None:
        """Load persisted conversations, if a storage directory is configured."""
        if self.storage_dir is None:
            return
        loaded = await asyncio.to_thread(self._load_all)
        LOGGER.info(f"Loaded {loaded} conversations from {self.storage_dir}")

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def create_conversation(
        self,
        title: str,
        metadata: Optional[Dict[str, Any]] = None,
        conversation_id: Optional[str] = None,
    ) -> str:
        conversation_id = conversation_id or str(uuid.uuid4())
        self._conversations[conversation_id] = Conversation(
            id=conversation_id, title=title, metadata=dict(metadata or {})
        )
        self._messages[conversation_id] = []
        await self._persist(conversation_id)
        LOGGER.debug(f"Created conversation {conversation_id[:8]}: {title}")
        return conversation_id

    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self._conversations.get(conversation_id)

    async def conversation_exists(self, conversation_id: str) -> bool:
        return conversation_id in self._conversations

    async def delete_conversation(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)
        self._messages.pop(conversation_id, None)
        if self.storage_dir is not None:
            await asyncio.to_thread(self._file_for(conversation_id).unlink, True)
        LOGGER.debug(f"Deleted conversation {conversation_id[:8]}")

    async def list_conversations(self) -> List[Conversation]:
        """Most recently updated first."""
        return sorted(self._conversations.values(), key=lambda c: c.updated_at, reverse=True)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def save_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        conversation = self._require(conversation_id)
        message = Message(
            role=role,
            content=content,
            conversation_id=conversation_id,
            metadata=dict(metadata or {}),
        )
        messages = self._messages.setdefault(conversation_id, [])
        messages.append(message)
        if len(messages) > self.max_messages:
            del messages[: len(messages) - self.max_messages]

        conversation.message_count = len(messages)
        conversation.updated_at = time.time()
        await self._persist(conversation_id)
        return message.id

    async def get_history(self, conversation_id: str, limit: Optional[int] = None) -> List[Message]:
        """Messages in chronological order; the last ``limit`` when given."""
        messages = list(self._messages.get(conversation_id, []))
        if limit and limit > 0:
            return messages[-limit:]
        return messages

    async def get_context(self, conversation_id: str, max_tokens: Optional[int] = None) -> List[Message]:
        """Newest messages that fit in ``max_tokens``, plus the first system message.

        Token counts are estimated at four characters per token.
        """
        budget = max_tokens or self.context_max_tokens
        history = await self.get_history(conversation_id)

        used = 0
        system = next((m for m in history if m.role == "system"), None)
        if system is not None:
            used += _estimate_tokens(system.content)

        recent: List[Message] = []
        for message in reversed(history):
            if message.role == "system":
                continue
            cost = _estimate_tokens(message.content)
            if used + cost > budget:
                break
            recent.append(message)
            used += cost

        recent.reverse()
        return ([system] if system is not None else []) + recent

    # ------------------------------------------------------------------
    # Search / export / import
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        conversation_id: Optional[str] = None,
        role: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[SearchResult]:
        """Case-insensitive substring search, best score first.

        Score is ten per occurrence plus a recency bonus decaying over days.
        """
        needle = query.lower()
        now = time.time()
        results: List[SearchResult] = []

        for conv_id, messages in self._messages.items():
            if conversation_id and conv_id != conversation_id:
                continue
            for message in messages:
                if role and message.role != role:
                    continue
                content = message.content.lower()
                if needle not in content:
                    continue
                occurrences = content.count(needle)
                recency = 1 / (1 + (now - message.timestamp) / 86400)
                results.append(SearchResult(
                    message=message,
                    score=occurrences * 10 + recency,
                    highlights=self._highlights(message.content, query),
                ))

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:limit] if limit and limit > 0 else results

    @staticmethod
    def _highlights(content: str, query: str) -> List[str]:
        words = query.lower().split()
        sentences = re.split(r"[.!?]+", content)
        return [s.strip() for s in sentences if any(w in s.lower() for w in words)][:3]

    async def export(self, conversation_id: str, fmt: str = "markdown") -> str:
        """Render a conversation as ``json``, ``markdown`` or ``txt``.

        Raises:
            ValueError: unsupported format
            ConversationNotFoundError: unknown conversation
        """
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported format: {fmt}. Use one of: {', '.join(EXPORT_FORMATS)}")
        conversation = self._require(conversation_id)
        messages = await self.get_history(conversation_id)

        if fmt == "json":
            return json.dumps({
                "version": "1.0",
                "conversation": asdict(conversation),
                "messages": [asdict(m) for m in messages],
                "exported_at": datetime.now().isoformat(),
            }, ensure_ascii=False, indent=2, default=str)

        if fmt == "markdown":
            lines = [f"# {conversation.title}", "", f"*Created: {_fmt_time(conversation.created_at)}*", "", "---", ""]
            for m in messages:
                lines += [
                    f"## {ROLE_ICONS.get(m.role, '⚙️')} {m.role.upper()}",
                    f"*{_fmt_time(m.timestamp)}*",
                    "",
                    m.content,
                    "",
                    "---",
                    "",
                ]
            return "\n".join(lines)

        lines = [conversation.title, "=" * len(conversation.title), ""]
        for m in messages:
            lines += [f"[{_fmt_time(m.timestamp)}] {m.role}:", m.content, ""]
        return "\n".join(lines)

    async def import_conversation(self, data: str) -> str:
        """Create a new conversation from a JSON export. Returns its id."""
        payload = json.loads(data)
        source = payload["conversation"]
        new_id = await self.create_conversation(
            f"{source.get('title', 'Conversation')} (imported)", source.get("metadata")
        )
        for m in payload.get("messages", []):
            await self.save_message(new_id, m["role"], m["content"], m.get("metadata"))
        return new_id

    async def get_statistics(self, conversation_id: Optional[str] = None) -> ConversationStats:
        if conversation_id:
            conversation = self._require(conversation_id)
            return ConversationStats(
                total_conversations=1,
                total_messages=conversation.message_count,
                average_messages_per_conversation=float(conversation.message_count),
                oldest_conversation=conversation.created_at,
                newest_conversation=conversation.updated_at,
            )

        conversations = list(self._conversations.values())
        total = sum(c.message_count for c in conversations)
        return ConversationStats(
            total_conversations=len(conversations),
            total_messages=total,
            average_messages_per_conversation=total / len(conversations) if conversations else 0.0,
            oldest_conversation=min((c.created_at for c in conversations), default=None),
            newest_conversation=max((c.updated_at for c in conversations), default=None),
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _require(self, conversation_id: str) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def _file_for(self, conversation_id: str) -> Path:
        return self.storage_dir / f"{conversation_id}.json"

    async def _persist(self, conversation_id: str) -> None:
        if self.storage_dir is None:
            return
        payload = {
            "conversation": asdict(self._conversations[conversation_id]),
            "messages": [asdict(m) for m in self._messages.get(conversation_id, [])],
        }
        await asyncio.to_thread(self._write_file, self._file_for(conversation_id), payload)

    @staticmethod
    def _write_file(path: Path, payload: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2, default=str), encoding="utf-8")

    def _load_all(self) -> int:
        if not self.storage_dir.exists():
            return 0
        count = 0
        for file in sorted(self.storage_dir.glob("*.json")):
            try:
                payload = json.loads(file.read_text(encoding="utf-8"))
                conversation = Conversation(**payload["conversation"])
                messages = [Message(**m) for m in payload.get("messages", [])]
            except (OSError, ValueError, KeyError, TypeError) as e:
                LOGGER.warning(f"Skipping unreadable conversation file {file.name}: {e}")
                continue
            self._conversations[conversation.id] = conversation
            self._messages[conversation.id] = messages
            count += 1
        return count


__all__ = [
    "ConversationHistoryManager",
    "ConversationNotFoundError",
    "Conversation",
    "ConversationStats",
    "Message",
    "SearchResult",
    "EXPORT_FORMATS",
]
