"""Configuration schemas for ask-finance.

This module defines Pydantic models for validating configuration data.
"""

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator

# Length of the omission placeholder turn is bounded by this reserve
PLACEHOLDER_RESERVE_CHARS = 200


class LLMConfig(BaseModel):
    """Configuration for the reasoning-model endpoint."""

    endpoint: Optional[str] = Field(default=None, description="API base URL (None for the provider default)")
    model: str = Field(default="gpt-4o", description="Model identifier")
    api_key_env: str = Field(default="OPENAI_API_KEY", description="Environment variable name containing API key")
    api_type: Literal["openai", "deepseek", "glm", "ollama", "custom"] = Field(
        default="openai", description="API type"
    )
    temperature: float = Field(default=0.3, ge=0, le=2, description="Sampling temperature")
    max_tokens: int | None = Field(default=4096, ge=1, description="Maximum tokens to generate")
    request_timeout: float = Field(default=60.0, gt=0, description="Per-call provider timeout (seconds)")
    max_retries: int = Field(default=3, ge=1, description="Attempts for transient provider errors")


class ContextConfig(BaseModel):
    """Character budgets for the context window.

    The history budget is whatever remains of ``max_total_chars`` after the
    system instruction and the knowledge block are accounted for.
    """

    max_total_chars: int = Field(default=60_000, ge=1_000, description="Cap for the whole bundle")
    recent_turns: int = Field(default=6, ge=1, description="Turns kept at the recent (larger) cap")
    recent_message_chars: int = Field(default=12_000, ge=100, description="Per-message cap for recent turns")
    older_message_chars: int = Field(default=2_000, ge=50, description="Per-message cap for older turns")
    knowledge_chars: int = Field(default=8_000, ge=0, description="Cap for the knowledge-context block")
    system_reserve_chars: int = Field(
        default=8_000, ge=0, description="Budget held back for the system instruction"
    )
    cache_epoch_seconds: int = Field(default=300, ge=1, description="Width of the prompt-cache epoch")

    @model_validator(mode="after")
    def check_budgets(self) -> "ContextConfig":
        """Ensure the newest turn can always be placed."""
        if self.older_message_chars > self.recent_message_chars:
            raise ValueError("older_message_chars must not exceed recent_message_chars")
        history_budget = self.max_total_chars - self.system_reserve_chars - self.knowledge_chars
        if self.recent_message_chars + PLACEHOLDER_RESERVE_CHARS > history_budget:
            raise ValueError(
                "recent_message_chars plus the omission placeholder must fit inside the history budget "
                f"({history_budget} chars)"
            )
        return self


class LoopConfig(BaseModel):
    """Configuration for the tool-calling loop."""

    max_iterations: int = Field(default=5, ge=1, le=50, description="Maximum tool round trips")
    request_timeout_seconds: float = Field(default=90.0, gt=0, description="Overall wall-clock budget")
    tool_timeout_seconds: float | None = Field(default=45.0, gt=0, description="Per-tool execution timeout")


class PatternConfig(BaseModel):
    """Configuration for the multi-step reasoning engines."""

    min_subtasks: int = Field(default=2, ge=1, description="Minimum subtasks produced by decomposition")
    max_subtasks: int = Field(default=4, ge=1, description="Maximum subtasks produced by decomposition")
    parallel_workers: bool = Field(default=True, description="Run subtasks concurrently")
    max_improve_iterations: int = Field(default=3, ge=1, le=10, description="Evaluate-improve iteration cap")

    @model_validator(mode="after")
    def check_subtask_range(self) -> "PatternConfig":
        if self.min_subtasks > self.max_subtasks:
            raise ValueError("min_subtasks must not exceed max_subtasks")
        return self


class ImageConfig(BaseModel):
    """Configuration for image generation."""

    model: str = Field(default="gpt-image-1", description="Image model identifier")
    size: str = Field(default="1024x1024", description="Image size")


class ServerConfig(BaseModel):
    """Configuration for the HTTP surface."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class EngineConfig(BaseModel):
    """Top-level configuration for the orchestration engine."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    loop: LoopConfig = Field(default_factory=LoopConfig)
    patterns: PatternConfig = Field(default_factory=PatternConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    spreadsheet_root: Path = Field(default=Path("."), description="Directory spreadsheet reads are confined to")
    threads_file: Optional[Path] = Field(
        default=None, description="JSON file the CLI keeps threads in (defaults under the config directory)"
    )


def validate_engine_config(data: dict[str, Any]) -> EngineConfig:
    """Validate engine configuration data.

    Args:
        data: Raw configuration dictionary

    Returns:
        Validated EngineConfig object

    Raises:
        ValidationError: If the configuration is invalid
    """
    return EngineConfig(**data)
