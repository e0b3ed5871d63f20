"""Intent classification."""

from .intent import CommandIntent, Intent, QueryIntent, TaskIntent
from .intent_router import DEFAULT_DOMAIN, IntentRouter

__all__ = ["CommandIntent", "TaskIntent", "QueryIntent", "Intent", "IntentRouter", "DEFAULT_DOMAIN"]
