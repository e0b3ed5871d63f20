"""Chat model wiring from environment-derived settings.

The resolver is the only place that knows about the concrete provider; every
other component takes a ``BaseChatModel`` so tests can inject fakes.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from selekAgent.config import ModelSettings

LOGGER = logging.getLogger(__name__)


def _chat_kwargs(model: str, api_key: Optional[str], base_url: Optional[str], temperature: float) -> Dict[str, object]:
    if not api_key:
        raise RuntimeError(f"Missing API key for model {model}. Set MODEL_CHAT_API_KEY in .env.")
    kwargs: Dict[str, object] = {"model": model, "api_key": api_key, "temperature": temperature}
    if base_url:
        kwargs["base_url"] = base_url
    return kwargs


def resolve_chat_model(settings: ModelSettings) -> BaseChatModel:
    """Build the chat model used for direct answers and plan generation.

    Raises:
        RuntimeError: If no API key is configured
    """
    kwargs = _chat_kwargs(settings.chat, settings.chat_api_key, settings.chat_base_url, settings.temperature)
    LOGGER.info(f"Using chat model {settings.chat}" + (f" at {settings.chat_base_url}" if settings.chat_base_url else ""))
    return ChatOpenAI(**kwargs)


__all__ = ["resolve_chat_model"]
