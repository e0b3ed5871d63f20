"""Permission policy on top of the gate: risk assessment and session rules."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional, Set

from selekAgent.hitl.approval_checker import ApprovalChecker
from selekAgent.hitl.models import (
    OperationType,
    PermissionDecision,
    PermissionRequest,
    PermissionResponse,
    RiskLevel,
)
from selekAgent.hitl.permission_gate import PermissionGate
from selekAgent.utils.logging_utils import log_permission_decision

LOGGER = logging.getLogger(__name__)

DEFAULT_PROMPT_LEVELS = ("medium", "high", "critical")


class PermissionManager:
    """Decides whether an operation may proceed, asking a human when needed.

    An operation is allowed without prompting when a session rule covers its
    type in the same context, or when its assessed risk level is not one of
    ``prompt_risk_levels``. Everything else waits on the gate.
    """

    def __init__(
        self,
        gate: PermissionGate,
        checker: Optional[ApprovalChecker] = None,
        prompt_risk_levels: Iterable[str] = DEFAULT_PROMPT_LEVELS,
        history_limit: int = 200,
    ):
        self.gate = gate
        self.checker = checker or ApprovalChecker()
        self.prompt_risk_levels = {RiskLevel(level) for level in prompt_risk_levels}
        self._session_rules: Dict[str, Set[OperationType]] = {}
        self._history: Deque[PermissionDecision] = deque(maxlen=history_limit)

    def build_request(
        self,
        operation: OperationType,
        description: str,
        details: Optional[Dict[str, Any]] = None,
        requested_by: str = "unknown",
        context_id: str = "default",
    ) -> PermissionRequest:
        operation = OperationType(operation)
        details = dict(details or {})
        assessment = self.checker.check(operation, details)
        return PermissionRequest(
            operation=operation,
            description=description,
            risk_level=assessment.risk_level,
            details=details,
            requested_by=requested_by,
            context_id=context_id,
            reason=assessment.reason,
        )

    async def request_permission(
        self,
        operation: OperationType,
        description: str,
        details: Optional[Dict[str, Any]] = None,
        requested_by: str = "unknown",
        context_id: str = "default",
    ) -> PermissionDecision:
        req = self.build_request(operation, description, details, requested_by, context_id)

        if req.operation in self._session_rules.get(context_id, ()):
            decision = PermissionDecision(
                req.id, PermissionResponse.ALLOW_SESSION, "Session rule", decided_by="session"
            )
        elif req.risk_level not in self.prompt_risk_levels:
            decision = PermissionDecision(
                req.id, PermissionResponse.ALLOW_ONCE,
                f"Auto-approved ({req.risk_level.value} risk)", decided_by="policy",
            )
        else:
            decision = await self.gate.request(req)
            if decision.response is PermissionResponse.ALLOW_SESSION:
                self.add_session_rule(context_id, req.operation)

        self._history.append(decision)
        log_permission_decision(
            LOGGER, req.operation.value, requested_by, decision.response.value, decision.decided_by
        )
        return decision

    def add_session_rule(self, context_id: str, operation: OperationType) -> None:
        self._session_rules.setdefault(context_id, set()).add(OperationType(operation))

    def clear_session_rules(self, context_id: Optional[str] = None) -> None:
        if context_id is None:
            self._session_rules.clear()
        else:
            self._session_rules.pop(context_id, None)

    def get_history(self, limit: Optional[int] = None) -> List[PermissionDecision]:
        """Recent decisions, newest first."""
        decisions = list(reversed(self._history))
        return decisions[:limit] if limit is not None else decisions


__all__ = ["PermissionManager", "DEFAULT_PROMPT_LEVELS"]
