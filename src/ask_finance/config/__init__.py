"""Configuration management for ask-finance."""

from .loader import get_default_config_dir, load_config_file, load_engine_config
from .schemas import (
    ContextConfig,
    EngineConfig,
    ImageConfig,
    LLMConfig,
    LoopConfig,
    PatternConfig,
    ServerConfig,
)

__all__ = [
    # Loader
    "load_engine_config",
    "load_config_file",
    "get_default_config_dir",
    # Schemas
    "EngineConfig",
    "LLMConfig",
    "ContextConfig",
    "LoopConfig",
    "PatternConfig",
    "ImageConfig",
    "ServerConfig",
]
