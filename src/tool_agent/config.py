# config.py
# Runtime configuration. Values come from the environment (and .env via
# python-dotenv); everything has a working default except the API key.

import math
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Sentinel for "no iteration cap". The loop then relies on the model
# emitting a final decision or the host interrupting the process.
UNBOUNDED = math.inf

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "anthropic/claude-3.5-haiku"


def agent_home() -> Path:
    """Per-user data location. Resolved on every call so tests can redirect it."""
    override = os.getenv("TOOL_AGENT_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".tool-agent"


def parse_max_iterations(value: "int | float | str") -> "int | float":
    """Accept a positive integer or the literal 'unbounded'."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("unbounded", "unlimited", "inf"):
            return UNBOUNDED
        value = int(text)
    if value == UNBOUNDED:
        return UNBOUNDED
    if isinstance(value, bool) or not float(value).is_integer() or value < 1:
        raise ValueError(f"max_iterations must be a positive integer or UNBOUNDED, got {value!r}")
    return int(value)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class AgentConfig(BaseModel):
    """Settings shared by every task an Orchestrator runs."""

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    max_iterations: int | float = Field(default=10)
    safe_mode: bool = True
    timeout: float = Field(default=120.0, gt=0)
    count_denied_iterations: bool = True
    verbose: bool = True

    @field_validator("max_iterations", mode="before")
    @classmethod
    def _check_max_iterations(cls, value):
        return parse_max_iterations(value)

    @classmethod
    def from_env(cls, **overrides) -> "AgentConfig":
        load_dotenv()
        values = {
            "api_key": os.getenv("OPENROUTER_API_KEY", ""),
            "base_url": os.getenv("TOOL_AGENT_BASE_URL", DEFAULT_BASE_URL),
            "model": os.getenv("TOOL_AGENT_MODEL", DEFAULT_MODEL),
            "max_iterations": os.getenv("TOOL_AGENT_MAX_ITERATIONS", "10"),
            "safe_mode": _env_flag("TOOL_AGENT_SAFE_MODE", True),
            "timeout": float(os.getenv("TOOL_AGENT_TIMEOUT", "120")),
        }
        values.update(overrides)
        return cls(**values)
