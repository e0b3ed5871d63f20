"""Environment-bound configuration objects.

This module provides Pydantic BaseSettings-based configuration loading from .env files.
Each settings group loads its own environment variables, and the root ``Settings``
object nests them.

Example:
    from selekAgent.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    capacity = settings.tracking.history_size
    policy = settings.permissions.conflict_policy
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)


class ModelSettings(BaseSettings):
    """Chat model used for direct answers and plan generation.

    Loads MODEL_CHAT_ID / MODEL_CHAT_API_KEY / MODEL_CHAT_BASE_URL, with the
    OpenAI-style names accepted as fallbacks.
    """

    chat: str = Field(
        default="chat-mid",
        validation_alias=AliasChoices("MODEL_CHAT", "MODEL_CHAT_ID"),
    )
    chat_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_CHAT_API_KEY", "OPENAI_API_KEY"),
    )
    chat_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_CHAT_URL", "MODEL_CHAT_BASE_URL", "OPENAI_BASE_URL"),
    )
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, alias="MODEL_TEMPERATURE")

    model_config = _ENV_CONFIG


class OrchestrationSettings(BaseSettings):
    """Filesystem layout and ownership rules for orchestration state.

    - workspace_root: directory all relative paths resolve against
    - context_dir: subdirectory holding orchestrator context logs
    - plans_dir: directory planning agents write their plan files into
    - protected_pattern: regex matched against each workspace-relative path component
    - max_tool_rounds: model rounds a tool-calling answer may take
    """

    workspace_root: Path = Field(default=Path("."), alias="SELEK_WORKSPACE_ROOT")
    context_dir: str = Field(default=".local-agent", alias="SELEK_CONTEXT_DIR")
    plans_dir: str = Field(default="plans", alias="SELEK_PLANS_DIR")
    protected_pattern: str = Field(default=r"^orchestrator", alias="SELEK_PROTECTED_PATTERN")
    orchestrator_name: str = Field(default="orchestrator", alias="SELEK_ORCHESTRATOR_NAME")
    registry_file: str = Field(default="agent-registry.json", alias="SELEK_REGISTRY_FILE")
    require_plan_sections: bool = Field(default=False, alias="SELEK_REQUIRE_PLAN_SECTIONS")
    max_tool_rounds: int = Field(default=10, ge=1, alias="SELEK_MAX_TOOL_ROUNDS")

    model_config = _ENV_CONFIG


class PreviewSettings(BaseSettings):
    """Plan preview extraction limits.

    The task flow shows a longer preview than a single-agent spawn.
    """

    headings: List[str] = Field(default_factory=lambda: ["## implementation", "## steps", "## plan"])
    task_max_lines: int = Field(default=30, ge=1)
    task_max_chars: int = Field(default=500, ge=1)
    spawn_max_lines: int = Field(default=25, ge=1)
    spawn_max_chars: int = Field(default=400, ge=1)

    model_config = _ENV_CONFIG


class TrackingSettings(BaseSettings):
    """Tool invocation tracking."""

    history_size: int = Field(default=100, ge=1, alias="TOOL_HISTORY_SIZE")

    model_config = _ENV_CONFIG


class PermissionSettings(BaseSettings):
    """Consent policy.

    - conflict_policy: what happens when a second request arrives for a context
      that already has one pending ("queue" waits FIFO, "reject" refuses it)
    - rules_path: optional YAML file with risk patterns (see permission_rules.yaml)
    - prompt_risk_levels: risk levels that always need a human decision
    """

    conflict_policy: Literal["queue", "reject"] = Field(default="queue", alias="PERMISSION_CONFLICT_POLICY")
    rules_path: Optional[Path] = Field(default=None, alias="PERMISSION_RULES_PATH")
    prompt_risk_levels: List[str] = Field(default_factory=lambda: ["medium", "high", "critical"])
    history_limit: int = Field(default=200, ge=1)

    model_config = _ENV_CONFIG


class HistorySettings(BaseSettings):
    """Conversation history storage."""

    max_messages_per_conversation: int = Field(default=1000, ge=1)
    context_max_tokens: int = Field(default=8000, ge=1)
    storage_dir: Optional[Path] = Field(default=None, alias="HISTORY_STORAGE_DIR")
    export_dir: Path = Field(default=Path("data/exports"), alias="HISTORY_EXPORT_DIR")

    model_config = _ENV_CONFIG


class ObservabilitySettings(BaseSettings):
    """Logging configuration."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: Path = Field(default=Path("logs"), alias="LOG_DIR")

    model_config = _ENV_CONFIG


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    models: ModelSettings = Field(default_factory=ModelSettings)
    orchestration: OrchestrationSettings = Field(default_factory=OrchestrationSettings)
    preview: PreviewSettings = Field(default_factory=PreviewSettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    permissions: PermissionSettings = Field(default_factory=PermissionSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance."""
    return Settings()
