"""Utility modules for ask-finance."""

from .id import generate_call_id, generate_request_id, generate_thread_id, generate_uuid
from .logging import ColoredFormatter, LogEntry, LogLevel, StructuredFormatter, get_logger, setup_logging
from .parsing import extract_all, extract_tag, parse_bullets, parse_json_block
from .retry import async_retry_with_exponential_backoff, is_retryable_error
from .timeout import TimeoutError, wait_with_timeout

__all__ = [
    # ID generation
    "generate_uuid",
    "generate_thread_id",
    "generate_call_id",
    "generate_request_id",
    # Retry
    "async_retry_with_exponential_backoff",
    "is_retryable_error",
    # Timeout
    "wait_with_timeout",
    "TimeoutError",
    # Parsing
    "extract_tag",
    "extract_all",
    "parse_json_block",
    "parse_bullets",
    # Logging
    "setup_logging",
    "get_logger",
    "LogLevel",
    "LogEntry",
    "StructuredFormatter",
    "ColoredFormatter",
]
