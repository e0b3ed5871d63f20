"""Classifies incoming messages into command, task or query intents."""

from __future__ import annotations

import logging
import re
from typing import List, Sequence, Tuple

from selekAgent.routing.intent import CommandIntent, Intent, QueryIntent, TaskIntent
from selekAgent.utils.logging_utils import log_routing_decision

LOGGER = logging.getLogger(__name__)

COMMAND_PREFIX = "/"

TASK_VERBS = (
    "implement", "create", "build", "develop", "write",
    "optimize", "refactor", "test", "deploy", "fix",
    "add", "remove", "update", "modify", "generate",
)

# First match wins.
DOMAIN_KEYWORDS: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("security", "auth", "permission"), "Application Security"),
    (("performance", "optimize", "speed"), "Performance Optimization"),
    (("test", "testing"), "Testing"),
)
DEFAULT_DOMAIN = "Software Development"

SECURITY_KEYWORDS = ("security", "auth")
PERFORMANCE_KEYWORDS = ("performance", "optimize")

# Verb plus simple inflections: "fix", "fixes", "fixed", "fixing", "creating".
_TASK_PATTERN = re.compile(
    r"\b(?:" + "|".join(v.rstrip("e") + "e?" for v in TASK_VERBS) + r")(?:s|es|ed|d|ing)?\b",
    re.IGNORECASE,
)


class IntentRouter:
    """Stateless message classifier."""

    def __init__(self, command_prefix: str = COMMAND_PREFIX):
        self.command_prefix = command_prefix

    def classify(self, message: str) -> Intent:
        trimmed = message.strip()

        if trimmed.startswith(self.command_prefix):
            parts = trimmed[len(self.command_prefix):].split()
            name = parts[0].lower() if parts else ""
            intent: Intent = CommandIntent(name=name, args=parts[1:])
            log_routing_decision(LOGGER, "intent_router", "command", f"/{name} {parts[1:]}")
            return intent

        if self.is_task(trimmed):
            intent = TaskIntent(
                description=message,
                domain=self.infer_domain(message),
                required_agents=self.infer_agents(message),
            )
            log_routing_decision(
                LOGGER, "intent_router", "task",
                f"domain={intent.domain} agents={intent.required_agents}",
            )
            return intent

        log_routing_decision(LOGGER, "intent_router", "query")
        return QueryIntent(question=message)

    @staticmethod
    def is_task(message: str) -> bool:
        return _TASK_PATTERN.search(message) is not None

    @staticmethod
    def infer_domain(message: str) -> str:
        lower = message.lower()
        for keywords, domain in DOMAIN_KEYWORDS:
            if any(k in lower for k in keywords):
                return domain
        return DEFAULT_DOMAIN

    @staticmethod
    def infer_agents(message: str) -> List[str]:
        lower = message.lower()
        agents = ["implementation"]
        if any(k in lower for k in SECURITY_KEYWORDS):
            agents.append("security")
        if any(k in lower for k in PERFORMANCE_KEYWORDS):
            agents.append("performance")
        return agents


__all__ = [
    "IntentRouter",
    "TASK_VERBS",
    "DOMAIN_KEYWORDS",
    "DEFAULT_DOMAIN",
    "COMMAND_PREFIX",
]
