"""ID generation utilities for ask-finance.

This module provides UUID v4 generation for unique identifiers.
"""

import uuid


def generate_uuid() -> str:
    """Generate a UUID v4 as a string.

    Returns:
        UUID v4 string (without dashes)
    """
    return uuid.uuid4().hex


def generate_thread_id() -> str:
    """Generate a conversation thread identifier.

    Returns:
        UUID v4 string with standard dashed format
    """
    return str(uuid.uuid4())


def generate_call_id() -> str:
    """Generate a tool call identifier for calls the provider left unnamed.

    Returns:
        Call ID prefixed with "call_"
    """
    return f"call_{generate_uuid()[:24]}"


def generate_request_id() -> str:
    """Generate a request identifier used to correlate log lines.

    Returns:
        Request ID prefixed with "req_"
    """
    return f"req_{generate_uuid()[:16]}"
