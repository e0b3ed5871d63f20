"""Orchestration context log."""

from .orchestration_log import SKELETON, SUB_AGENT_SUMMARY_TITLE, OrchestrationLog

__all__ = ["OrchestrationLog", "SKELETON", "SUB_AGENT_SUMMARY_TITLE"]
