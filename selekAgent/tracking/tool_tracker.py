"""Lifecycle tracking for concurrently running tool invocations.

Each invocation is RUNNING from ``start`` until exactly one of ``complete``,
``fail`` or ``cancel`` moves it into a bounded history. Subscribers are
notified on start and on the terminal transition; a failing subscriber is
logged and never affects the tracker or the caller.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, AsyncIterator, Callable, Deque, Dict, List, Optional

from selekAgent.utils.logging_utils import log_tool_call, log_tool_result

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 100


class ToolStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not ToolStatus.RUNNING


@dataclass
class ToolExecutionEvent:
    id: str
    tool_name: str
    parameters: Dict[str, Any]
    status: ToolStatus
    start_time: float
    end_time: Optional[float] = None
    duration_ms: Optional[float] = None
    result: Any = None
    error: Optional[str] = None
    called_by: Optional[str] = None


@dataclass
class ToolUsageStats:
    tool_name: str
    total_calls: int
    success_count: int
    failure_count: int
    average_duration_ms: float
    last_used: float


@dataclass
class TrackedCall:
    """Handle yielded by ``ToolInvocationTracker.track``; set ``result`` before exit."""

    event_id: str
    result: Any = None


ToolListener = Callable[[ToolExecutionEvent], None]


class ToolInvocationTracker:
    """Active map plus bounded circular history of tool invocations."""

    def __init__(self, max_history_size: int = DEFAULT_HISTORY_SIZE):
        if max_history_size < 1:
            raise ValueError("max_history_size must be >= 1")
        self._lock = threading.RLock()
        self._active: Dict[str, ToolExecutionEvent] = {}
        self._history: Deque[ToolExecutionEvent] = deque(maxlen=max_history_size)
        self._listeners: List[ToolListener] = []

    @property
    def max_history_size(self) -> int:
        return self._history.maxlen

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        event_id: str,
        tool_name: str,
        parameters: Optional[Dict[str, Any]] = None,
        called_by: Optional[str] = None,
    ) -> ToolExecutionEvent:
        """Register a RUNNING invocation.

        Raises:
            ValueError: ``event_id`` is already active
        """
        with self._lock:
            if event_id in self._active:
                raise ValueError(f"Tool execution '{event_id}' is already running")
            event = ToolExecutionEvent(
                id=event_id,
                tool_name=tool_name,
                parameters=dict(parameters or {}),
                status=ToolStatus.RUNNING,
                start_time=time.time(),
                called_by=called_by,
            )
            self._active[event_id] = event
            snapshot = replace(event)

        LOGGER.debug(f"Tool started: {tool_name} ({event_id}) by {called_by or 'unknown'}")
        self._notify(snapshot)
        return snapshot

    def complete(self, event_id: str, result: Any = None) -> Optional[ToolExecutionEvent]:
        return self._finish(event_id, ToolStatus.SUCCESS, result=result)

    def fail(self, event_id: str, error: str) -> Optional[ToolExecutionEvent]:
        return self._finish(event_id, ToolStatus.FAILED, error=error)

    def cancel(self, event_id: str) -> Optional[ToolExecutionEvent]:
        return self._finish(event_id, ToolStatus.CANCELLED)

    def _finish(
        self,
        event_id: str,
        status: ToolStatus,
        result: Any = None,
        error: Optional[str] = None,
    ) -> Optional[ToolExecutionEvent]:
        with self._lock:
            event = self._active.pop(event_id, None)
            if event is None:
                # Unknown or already finished.
                return None
            event.end_time = time.time()
            event.duration_ms = (event.end_time - event.start_time) * 1000
            event.status = status
            event.result = result
            event.error = error
            self._history.append(event)
            snapshot = replace(event)

        LOGGER.debug(
            f"Tool {status.value}: {event.tool_name} ({event_id}) in {event.duration_ms:.1f}ms"
        )
        self._notify(snapshot)
        return snapshot

    @asynccontextmanager
    async def track(
        self,
        tool_name: str,
        parameters: Optional[Dict[str, Any]] = None,
        called_by: Optional[str] = None,
        event_id: Optional[str] = None,
    ) -> AsyncIterator[TrackedCall]:
        """Track the enclosed block as one invocation.

        Example:
            async with tracker.track("read_file", {"path": p}, called_by="writer") as call:
                call.result = await guard.read(agent, p)
        """
        event_id = event_id or f"{tool_name}-{uuid.uuid4().hex[:12]}"
        self.start(event_id, tool_name, parameters, called_by)
        log_tool_call(LOGGER, tool_name, parameters or {})
        call = TrackedCall(event_id=event_id)
        try:
            yield call
        except asyncio.CancelledError:
            self.cancel(event_id)
            raise
        except Exception as e:
            self.fail(event_id, str(e) or type(e).__name__)
            log_tool_result(LOGGER, tool_name, e, success=False)
            raise
        else:
            self.complete(event_id, call.result)
            log_tool_result(LOGGER, tool_name, call.result)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_active(self) -> List[ToolExecutionEvent]:
        with self._lock:
            return [replace(e) for e in self._active.values()]

    def get_history(self, limit: Optional[int] = None) -> List[ToolExecutionEvent]:
        """Finished invocations, newest first."""
        with self._lock:
            events = [replace(e) for e in reversed(self._history)]
        return events[:limit] if limit is not None else events

    def get_event(self, event_id: str) -> Optional[ToolExecutionEvent]:
        with self._lock:
            event = self._active.get(event_id)
            if event is None:
                event = next((e for e in reversed(self._history) if e.id == event_id), None)
            return replace(event) if event is not None else None

    def stats(self, tool_name: str) -> Optional[ToolUsageStats]:
        """Aggregate finished invocations of ``tool_name``; ``None`` when there are none."""
        with self._lock:
            events = [e for e in self._history if e.tool_name == tool_name]
        if not events:
            return None

        successes = [e for e in events if e.status is ToolStatus.SUCCESS]
        failures = [e for e in events if e.status is ToolStatus.FAILED]
        average = (
            sum(e.duration_ms or 0.0 for e in successes) / len(successes) if successes else 0.0
        )
        return ToolUsageStats(
            tool_name=tool_name,
            total_calls=len(events),
            success_count=len(successes),
            failure_count=len(failures),
            average_duration_ms=average,
            last_used=max(e.start_time for e in events),
        )

    def get_all_stats(self) -> Dict[str, ToolUsageStats]:
        with self._lock:
            names = {e.tool_name for e in self._history}
        return {name: self.stats(name) for name in sorted(names)}

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    def set_max_history_size(self, size: int) -> None:
        """Change history capacity, keeping the newest entries."""
        if size < 1:
            raise ValueError("max_history_size must be >= 1")
        with self._lock:
            self._history = deque(self._history, maxlen=size)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: ToolListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: ToolExecutionEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                LOGGER.exception(f"Tool listener failed for {event.tool_name} ({event.id})")


__all__ = [
    "ToolStatus",
    "ToolExecutionEvent",
    "ToolUsageStats",
    "TrackedCall",
    "ToolInvocationTracker",
    "DEFAULT_HISTORY_SIZE",
]
