"""Unit tests for utility helpers."""

import asyncio
import json
import logging

import pytest

from ask_finance.utils import (
    TimeoutError,
    async_retry_with_exponential_backoff,
    extract_all,
    extract_tag,
    is_retryable_error,
    parse_bullets,
    parse_json_block,
    wait_with_timeout,
)
from ask_finance.utils.logging import StructuredFormatter


class StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"status {status_code}")
        self.status_code = status_code


class TestParsing:
    """Tests for tagged-block parsing."""

    def test_extract_tag(self):
        """Test first-block extraction, case-insensitive, with attributes."""
        text = '<Summary type="short">\n  Revenue up\n</Summary><summary>second</summary>'
        assert extract_tag(text, "summary") == "Revenue up"
        assert extract_tag(text, "missing") == ""

    def test_extract_all(self):
        """Test that every block is returned in order."""
        assert extract_all("<t>a</t> <t>b</t>", "t") == ["a", "b"]

    @pytest.mark.parametrize(
        "text,expected",
        [
            ('{"a": 1}', {"a": 1}),
            ('```json\n{"a": 1}\n```', {"a": 1}),
            ('Scores follow: {"a": 1} thanks', {"a": 1}),
            ("[1, 2]", [1, 2]),
            ("no json here", None),
            ("", None),
        ],
    )
    def test_parse_json_block(self, text, expected):
        """Test lenient JSON decoding."""
        assert parse_json_block(text, None) == expected

    def test_parse_bullets(self):
        """Test bulleted and numbered lists."""
        assert parse_bullets("- one\n* two\n3. three\n\n4) four") == ["one", "two", "three", "four"]


class TestRetry:
    """Tests for async retry."""

    def test_is_retryable_error(self):
        """Test classification of provider errors."""
        assert is_retryable_error(StatusError(429))
        assert is_retryable_error(StatusError(503))
        assert not is_retryable_error(StatusError(400))
        assert is_retryable_error(ConnectionError("connect failed"))
        assert not is_retryable_error(ValueError("bad input"))

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        """Test that transient errors are retried."""
        attempts = []

        @async_retry_with_exponential_backoff(max_attempts=3, base_delay=0.001, jitter=False)
        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise StatusError(503)
            return "ok"

        assert await flaky() == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self):
        """Test that client errors are not retried."""
        attempts = []

        @async_retry_with_exponential_backoff(max_attempts=3, base_delay=0.001)
        async def broken():
            attempts.append(1)
            raise StatusError(400)

        with pytest.raises(StatusError):
            await broken()
        assert len(attempts) == 1


class TestTimeout:
    """Tests for wait_with_timeout."""

    @pytest.mark.asyncio
    async def test_times_out(self):
        """Test that a slow coroutine raises TimeoutError."""
        with pytest.raises(TimeoutError):
            await wait_with_timeout(asyncio.sleep(1), 0.01)

    @pytest.mark.asyncio
    async def test_no_timeout(self):
        """Test that None waits for completion."""
        assert await wait_with_timeout(asyncio.sleep(0, result=7), None) == 7


class TestStructuredFormatter:
    """Tests for JSON log formatting."""

    def test_extra_fields(self):
        """Test that extra fields land in the JSON record."""
        record = logging.LogRecord("ask_finance.test", logging.INFO, __file__, 1, "hello", None, None)
        record.tool = "search_documents"
        payload = json.loads(StructuredFormatter().format(record))

        assert payload["message"] == "hello"
        assert payload["context"]["tool"] == "search_documents"
