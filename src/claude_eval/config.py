"""Environment-based configuration."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings

from claude_eval.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

# Permission modes accepted by the Claude Code CLI
PERMISSION_MODES = frozenset(
    {"default", "acceptEdits", "plan", "bypassPermissions"}
)


class Settings(BaseSettings):
    """Reads from .env file and CLAUDE_EVAL_* environment variables."""

    # Models
    model: str = "sonnet"
    judge_model: str = "haiku"
    permission_mode: str = "default"

    # Execution
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    concurrency: int = DEFAULT_CONCURRENCY

    # Logging
    log_level: str = "WARNING"

    @field_validator("model", "judge_model", mode="before")
    @classmethod
    def _strip_model(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("model name must not be empty")
        return v

    @field_validator("permission_mode")
    @classmethod
    def _validate_permission_mode(cls, v: str) -> str:
        if v not in PERMISSION_MODES:
            raise ValueError(
                f"permission_mode must be one of: "
                f"{sorted(PERMISSION_MODES)}"
            )
        if v == "bypassPermissions":
            logger.warning(
                "event=permission_bypass_enabled "
                "eval prompts may run tools without confirmation"
            )
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v

    @field_validator("concurrency")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("concurrency must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CLAUDE_EVAL_",
        "extra": "ignore",
    }
