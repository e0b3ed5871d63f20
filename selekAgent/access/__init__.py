"""Agent identities and read-before-write file access."""

from .file_tools import build_file_tools
from .guard import AccessGuard, PathLockRegistry
from .identity import AgentIdentity, AgentRole

__all__ = ["AccessGuard", "PathLockRegistry", "AgentIdentity", "AgentRole", "build_file_tools"]
