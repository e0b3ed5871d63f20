"""Runtime assembly."""

from .app import Application, build_application
from .model_resolver import resolve_chat_model

__all__ = ["Application", "build_application", "resolve_chat_model"]
