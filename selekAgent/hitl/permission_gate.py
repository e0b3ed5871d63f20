"""Suspends operations until an external party grants or denies consent.

At most one request per conversation context is pending at a time. A second
request for the same context is either queued behind it (``queue`` policy,
FIFO) or refused with ``PermissionConflictError`` (``reject`` policy). No
waiting caller is ever dropped: every queued request eventually becomes
pending and receives its own decision.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Literal, Optional

from selekAgent.hitl.models import GateEvent, PermissionDecision, PermissionRequest
from selekAgent.utils.error_handler import PermissionConflictError

LOGGER = logging.getLogger(__name__)

ConflictPolicy = Literal["queue", "reject"]
GateListener = Callable[[GateEvent], None]


@dataclass(eq=False)
class _Waiter:
    request: PermissionRequest
    future: "asyncio.Future[PermissionDecision]"


class PermissionGate:
    """Future-based consent gate keyed by conversation context."""

    def __init__(self, policy: ConflictPolicy = "queue"):
        if policy not in ("queue", "reject"):
            raise ValueError(f"Unknown conflict policy: {policy}")
        self.policy = policy
        self._pending: Dict[str, _Waiter] = {}
        self._queued: Dict[str, Deque[_Waiter]] = {}
        self._listeners: List[GateListener] = []

    async def request(self, req: PermissionRequest) -> PermissionDecision:
        """Suspend until a decision for ``req`` is delivered through ``decide``.

        Raises:
            PermissionConflictError: ``reject`` policy and another request is
                pending for the same context
        """
        waiter = _Waiter(req, asyncio.get_running_loop().create_future())
        current = self._pending.get(req.context_id)

        if current is None:
            self._activate(waiter)
        elif self.policy == "reject":
            LOGGER.warning(
                f"Rejecting permission request {req.id}: {current.request.id} already pending "
                f"for context {req.context_id}"
            )
            raise PermissionConflictError(req.context_id, current.request.id)
        else:
            LOGGER.info(f"Queueing permission request {req.id} behind {current.request.id}")
            self._queued.setdefault(req.context_id, deque()).append(waiter)

        try:
            return await waiter.future
        except asyncio.CancelledError:
            self._discard(waiter)
            raise

    def decide(self, decision: PermissionDecision) -> bool:
        """Deliver ``decision`` to the pending request it names.

        Returns False (and does nothing) when no pending request has that id.
        """
        context_id = next(
            (ctx for ctx, w in self._pending.items() if w.request.id == decision.request_id),
            None,
        )
        if context_id is None:
            LOGGER.debug(f"Ignoring decision for unknown request {decision.request_id}")
            return False

        waiter = self._pending.pop(context_id)
        if not waiter.future.done():
            waiter.future.set_result(decision)
        LOGGER.info(f"Permission {decision.response.value} for {waiter.request.id}")
        self._notify(GateEvent("resolved", waiter.request, decision))
        self._promote(context_id)
        return True

    def pending(self, context_id: Optional[str] = None) -> List[PermissionRequest]:
        """Requests currently awaiting a decision."""
        if context_id is not None:
            waiter = self._pending.get(context_id)
            return [waiter.request] if waiter else []
        return [w.request for w in self._pending.values()]

    def queued_count(self, context_id: str) -> int:
        return len(self._queued.get(context_id, ()))

    def subscribe(self, listener: GateListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _activate(self, waiter: _Waiter) -> None:
        self._pending[waiter.request.context_id] = waiter
        LOGGER.info(
            f"Awaiting permission {waiter.request.id}: {waiter.request.operation.value} "
            f"({waiter.request.risk_level.value}) {waiter.request.description}"
        )
        self._notify(GateEvent("pending", waiter.request))

    def _promote(self, context_id: str) -> None:
        queue = self._queued.get(context_id)
        while queue:
            waiter = queue.popleft()
            if not waiter.future.done():
                self._activate(waiter)
                break
        if queue is not None and not queue:
            self._queued.pop(context_id, None)

    def _discard(self, waiter: _Waiter) -> None:
        context_id = waiter.request.context_id
        if self._pending.get(context_id) is waiter:
            del self._pending[context_id]
            LOGGER.info(f"Permission request {waiter.request.id} cancelled while pending")
            self._promote(context_id)
            return
        queue = self._queued.get(context_id)
        if queue and waiter in queue:
            queue.remove(waiter)
            LOGGER.info(f"Permission request {waiter.request.id} cancelled while queued")

    def _notify(self, event: GateEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                LOGGER.exception(f"Permission listener failed on {event.kind} {event.request.id}")


__all__ = ["PermissionGate", "ConflictPolicy"]
