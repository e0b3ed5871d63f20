"""Message entry point and command surface."""

from .commands import HELP_TEXT, CommandDispatcher
from .orchestrator_bridge import OrchestratorBridge

__all__ = ["CommandDispatcher", "HELP_TEXT", "OrchestratorBridge"]
