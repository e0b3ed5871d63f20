"""Events produced by every streamed flow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from selekAgent.utils.error_handler import user_message_for


@dataclass
class TokenEvent:
    data: str

    type = "token"


@dataclass
class DoneEvent:
    final: str = ""

    type = "done"


@dataclass
class ErrorEvent:
    error: BaseException

    type = "error"

    @property
    def message(self) -> str:
        return user_message_for(self.error)


StreamEvent = Union[TokenEvent, DoneEvent, ErrorEvent]

__all__ = ["TokenEvent", "DoneEvent", "ErrorEvent", "StreamEvent"]
