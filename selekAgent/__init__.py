"""Selek - agent task orchestration with permission-gated execution.

Subpackages:
- access: per-agent read-before-write file access (AccessGuard)
- context: shared append-only orchestration context log
- tracking: lifecycle tracking for in-flight tool invocations
- hitl: permission gate and consent policy
- routing: intent classification for incoming messages
- orchestration: task delegation, planning agents and plan previews
- bridge: message entry point and slash-command surface
"""

__version__ = "0.1.0"
