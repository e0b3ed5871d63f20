"""Risk assessment for operations that may need human consent."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

import yaml

from selekAgent.hitl.models import OperationType, RiskLevel

LOGGER = logging.getLogger(__name__)

SENSITIVE_FILE_MARKERS = (".env", "credentials", "secrets", "password", "token", "config.json")
DANGEROUS_COMMAND_MARKERS = ("rm -rf", "sudo", "chmod", "curl", "wget", "dd ", "mkfs", "format")
TRUSTED_HOSTS = ("github.com", "npmjs.com", "anthropic.com", "openai.com", "localhost")


@dataclass
class ApprovalDecision:
    """Risk assessment result."""

    needs_approval: bool
    reason: str = ""
    risk_level: RiskLevel = RiskLevel.LOW


class ApprovalChecker:
    """Operation risk checker.

    Four rule layers, highest priority first:
    1. Custom checkers registered per operation (code)
    2. Global risk patterns (matched against every argument value)
    3. Per-operation patterns from the YAML config
    4. Built-in defaults per operation type
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Args:
            config_path: Risk rule YAML file (optional)
        """
        self.config_path = config_path
        self.rules = self._load_config() if config_path else {}
        self.custom_checkers: Dict[OperationType, Callable[[dict], ApprovalDecision]] = {}
        self.global_patterns = self._load_global_patterns()

    def _load_config(self) -> dict:
        if not self.config_path or not Path(self.config_path).exists():
            return {}

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            LOGGER.warning(f"Failed to load permission rules from {self.config_path}: {e}")
            return {}

    def _load_global_patterns(self) -> Dict[str, Any]:
        global_config = self.rules.get("global", {})
        if not global_config.get("enabled", True):
            return {}
        risk_patterns = global_config.get("risk_patterns", {})

        patterns_by_level = {}
        for level, pattern_config in risk_patterns.items():
            if isinstance(pattern_config, dict):
                patterns_by_level[level] = {
                    "patterns": pattern_config.get("patterns", []),
                    "action": pattern_config.get("action", "require_approval"),
                    "reason": pattern_config.get("reason", f"Matched global {level} risk pattern"),
                }

        return patterns_by_level

    def register_checker(
        self, operation: OperationType, checker: Callable[[dict], ApprovalDecision]
    ) -> None:
        """Register a custom checker for an operation type.

        Args:
            operation: Operation type
            checker: Receives the operation details, returns an ApprovalDecision
        """
        self.custom_checkers[OperationType(operation)] = checker

    def check(self, operation: OperationType, details: Optional[dict] = None) -> ApprovalDecision:
        """Assess the risk of ``operation`` with ``details``."""
        operation = OperationType(operation)
        details = details or {}

        if operation in self.custom_checkers:
            return self.custom_checkers[operation](details)

        global_decision = self._check_global_patterns(details)
        if global_decision.needs_approval:
            return global_decision

        if operation.value in self.rules.get("operations", {}):
            decision = self._check_config_rules(operation, details)
            if decision.needs_approval:
                return decision

        return self._check_builtin_rules(operation, details)

    def _check_global_patterns(self, details: dict) -> ApprovalDecision:
        if not self.global_patterns:
            return ApprovalDecision(needs_approval=False)

        details_str = " ".join(str(v) for v in details.values())

        for risk_level in ("critical", "high", "medium", "low"):
            if risk_level not in self.global_patterns:
                continue

            pattern_config = self.global_patterns[risk_level]
            for pattern in pattern_config["patterns"]:
                if re.search(pattern, details_str, re.IGNORECASE):
                    if pattern_config["action"] == "require_approval":
                        return ApprovalDecision(
                            needs_approval=True,
                            reason=pattern_config["reason"],
                            risk_level=RiskLevel(risk_level),
                        )

        return ApprovalDecision(needs_approval=False)

    def _check_config_rules(self, operation: OperationType, details: dict) -> ApprovalDecision:
        op_config = self.rules["operations"][operation.value]

        if not op_config.get("enabled", True):
            return ApprovalDecision(needs_approval=False)

        details_str = " ".join(str(v) for v in details.values())
        for risk_level, pattern_list in op_config.get("patterns", {}).items():
            for pattern in pattern_list:
                if re.search(pattern, details_str, re.IGNORECASE):
                    action = op_config.get("actions", {}).get(risk_level, "require_approval")
                    if action == "require_approval":
                        return ApprovalDecision(
                            needs_approval=True,
                            reason=f"Matched {risk_level} risk pattern: {pattern}",
                            risk_level=RiskLevel(risk_level),
                        )

        return ApprovalDecision(needs_approval=False)

    def _check_builtin_rules(self, operation: OperationType, details: dict) -> ApprovalDecision:
        if operation in (OperationType.FILE_READ, OperationType.SYSTEM_INFO):
            return self._decision(RiskLevel.SAFE, "Read-only operation")

        if operation is OperationType.FILE_WRITE:
            path = str(details.get("path", "")).lower()
            if any(marker in path for marker in SENSITIVE_FILE_MARKERS):
                return self._decision(RiskLevel.HIGH, "Writing a sensitive file")
            return self._decision(RiskLevel.LOW, "File write")

        if operation is OperationType.FILE_DELETE:
            return self._decision(RiskLevel.HIGH, "File deletion")

        if operation is OperationType.COMMAND_EXEC:
            command = str(details.get("command", "")).lower()
            if any(marker in command for marker in DANGEROUS_COMMAND_MARKERS):
                return self._decision(RiskLevel.CRITICAL, "Dangerous command")
            return self._decision(RiskLevel.MEDIUM, "Command execution")

        if operation is OperationType.INSTALL_PACKAGE:
            return self._decision(RiskLevel.MEDIUM, "Package installation")

        if operation is OperationType.GIT_OPERATION:
            command = str(details.get("command", ""))
            if re.search(r"push\s+(--force|-f)\b", command):
                return self._decision(RiskLevel.HIGH, "Force push")
            return self._decision(RiskLevel.LOW, "Git operation")

        if operation is OperationType.NETWORK_REQUEST:
            return self._check_network(str(details.get("url", "")))

        # ENV_ACCESS
        return self._decision(RiskLevel.CRITICAL, "Environment variable access")

    def _check_network(self, url: str) -> ApprovalDecision:
        host = (urlparse(url).hostname or url).lower()
        trusted = any(host == h or host.endswith("." + h) for h in TRUSTED_HOSTS)
        if trusted:
            return self._decision(RiskLevel.MEDIUM, "Request to trusted host")
        return self._decision(RiskLevel.CRITICAL, f"Request to untrusted host {host or '?'}")

    @staticmethod
    def _decision(risk_level: RiskLevel, reason: str) -> ApprovalDecision:
        return ApprovalDecision(
            needs_approval=risk_level.rank >= RiskLevel.MEDIUM.rank,
            reason=reason,
            risk_level=risk_level,
        )


__all__ = ["ApprovalChecker", "ApprovalDecision"]
