"""Human-in-the-loop consent: risk rules, permission gate, permission manager."""

from .approval_checker import ApprovalChecker, ApprovalDecision
from .models import (
    GateEvent,
    OperationType,
    PermissionDecision,
    PermissionRequest,
    PermissionResponse,
    RiskLevel,
)
from .permission_gate import PermissionGate
from .permission_manager import PermissionManager

__all__ = [
    "ApprovalChecker",
    "ApprovalDecision",
    "GateEvent",
    "OperationType",
    "PermissionDecision",
    "PermissionRequest",
    "PermissionResponse",
    "RiskLevel",
    "PermissionGate",
    "PermissionManager",
]
