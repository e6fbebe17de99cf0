"""Context window management for ask-finance."""

from .window import (
    ContextBundle,
    ContextWindowManager,
    build_knowledge_block,
    cache_epoch,
    omission_notice,
    truncate_text,
)

__all__ = [
    "ContextBundle",
    "ContextWindowManager",
    "build_knowledge_block",
    "cache_epoch",
    "omission_notice",
    "truncate_text",
]
