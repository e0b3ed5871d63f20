"""Permission request/decision types."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class OperationType(str, Enum):
    FILE_READ = "file_read"
    FILE_WRITE = "file_write"
    FILE_DELETE = "file_delete"
    COMMAND_EXEC = "command_exec"
    NETWORK_REQUEST = "network_request"
    INSTALL_PACKAGE = "install_package"
    GIT_OPERATION = "git_operation"
    ENV_ACCESS = "env_access"
    SYSTEM_INFO = "system_info"


class RiskLevel(str, Enum):
    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(RiskLevel).index(self)


class PermissionResponse(str, Enum):
    ALLOW_ONCE = "allow_once"
    ALLOW_SESSION = "allow_session"
    DENY = "deny"


@dataclass
class PermissionRequest:
    operation: OperationType
    description: str
    risk_level: RiskLevel = RiskLevel.MEDIUM
    details: Dict[str, Any] = field(default_factory=dict)
    requested_by: str = "unknown"
    context_id: str = "default"
    reason: str = ""
    id: str = field(default_factory=lambda: f"perm-{uuid.uuid4().hex[:12]}")
    created_at: float = field(default_factory=time.time)


@dataclass
class PermissionDecision:
    request_id: str
    response: PermissionResponse
    reason: str = ""
    decided_by: str = "user"
    decided_at: float = field(default_factory=time.time)

    @property
    def allowed(self) -> bool:
        return self.response is not PermissionResponse.DENY


@dataclass
class GateEvent:
    """Notification sent to gate subscribers.

    ``kind`` is ``"pending"`` when a request starts awaiting a decision and
    ``"resolved"`` when its decision has been delivered.
    """

    kind: str
    request: PermissionRequest
    decision: Optional[PermissionDecision] = None


__all__ = [
    "OperationType",
    "RiskLevel",
    "PermissionResponse",
    "PermissionRequest",
    "PermissionDecision",
    "GateEvent",
]
