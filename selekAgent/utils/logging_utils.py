"""Logging setup and structured log helpers for Selek.

Every module logs through ``logging.getLogger(__name__)``; ``setup_logging``
attaches the handlers once, on the ``selekAgent`` package logger, so all of
them end up in the same session file.
"""

import json
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "selekAgent"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"
PREVIEW_CHARS = 100
RESULT_CHARS = 500


def _clip(text: str, limit: int, marker: str = "...") -> str:
    return text if len(text) <= limit else text[:limit] + marker


def setup_logging(level: int = logging.INFO, log_dir: Optional[Path] = None) -> logging.Logger:
    """Attach a session log file and a quiet console handler.

    The file always receives DEBUG output. The console only shows warnings, so
    log lines never interleave with streamed answers. ``level`` lowers the
    package logger threshold further when it is below DEBUG.

    Returns:
        The ``selekAgent`` package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(min(level, logging.DEBUG))
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_dir = Path(log_dir or "logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"selek_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(max(level, logging.WARNING))
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    logger.info(f"Selek session started, logging to {log_file}")
    return logger


@lru_cache(maxsize=1)
def get_logger() -> logging.Logger:
    """The ``selekAgent`` package logger, set up with defaults if nothing configured it yet."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    return logger if logger.handlers else setup_logging()


# ----------------------------------------------------------------------
# Conversation
# ----------------------------------------------------------------------

def log_user_message(logger: logging.Logger, content: str) -> None:
    logger.info(f"User input: {_clip(content, PREVIEW_CHARS)}")


def log_agent_response(logger: logging.Logger, content: str) -> None:
    logger.info(f"Agent response ({len(content)} chars): {_clip(content, PREVIEW_CHARS)}")


def log_routing_decision(logger: logging.Logger, source: str, decision: str, reason: str = "") -> None:
    """Record which flow a message was routed to; ``reason`` goes to DEBUG."""
    logger.info(f"Routing decision from {source}: → {decision}")
    if reason:
        logger.debug(f"  Reason: {reason}")


def log_error(logger: logging.Logger, error: BaseException, context: str = "") -> None:
    where = f" ({context})" if context else ""
    logger.error(f"{type(error).__name__}{where}: {error}")
    logger.debug("Full traceback:", exc_info=error)


# ----------------------------------------------------------------------
# Tools and tasks
# ----------------------------------------------------------------------

def log_tool_call(logger: logging.Logger, tool_name: str, args: Dict[str, Any]) -> None:
    logger.info(f"Tool call: {tool_name}")
    logger.debug(f"  Arguments: {json.dumps(args, ensure_ascii=False, default=str)}")


def log_tool_result(logger: logging.Logger, tool_name: str, result: Any, success: bool = True) -> None:
    """Log the outcome of a tool call. Long results are clipped in the DEBUG line."""
    logger.info(f"Tool result: {tool_name} - {'✓ Success' if success else '✗ Failed'}")
    logger.debug(f"  Result: {_clip(str(result), RESULT_CHARS, '... (truncated)')}")


def log_task_request(logger: logging.Logger, request: Any) -> None:
    """Log a task request handed to the task runner."""
    mode = "parallel" if getattr(request, "parallel", False) else "sequential"
    logger.info(
        f"Task request [{getattr(request, 'domain', 'N/A')}] "
        f"agents={list(getattr(request, 'required_agents', []))} ({mode})"
    )
    logger.debug(f"  Description: {getattr(request, 'description', '')}")


def log_permission_decision(
    logger: logging.Logger, operation: str, requested_by: str, response: str, decided_by: str
) -> None:
    logger.info(f"Permission {operation} for {requested_by}: {response} ({decided_by})")
