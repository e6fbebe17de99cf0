"""Unit tests for context window assembly."""

import pytest

from ask_finance.config import ContextConfig
from ask_finance.context import (
    ContextWindowManager,
    build_knowledge_block,
    cache_epoch,
    omission_notice,
    truncate_text,
)
from ask_finance.context.window import TRUNCATION_SUFFIX
from ask_finance.models import KnowledgeSummary, Turn

SYSTEM_PROMPT = "You are a careful financial assistant."


def make_history(count: int, size: int) -> list[Turn]:
    return [
        Turn(role="user" if i % 2 == 0 else "assistant", text=f"{i:03d}" + "x" * (size - 3))
        for i in range(count)
    ]


@pytest.fixture
def small_config():
    return ContextConfig(
        max_total_chars=3_000,
        recent_turns=2,
        recent_message_chars=800,
        older_message_chars=200,
        knowledge_chars=500,
        system_reserve_chars=1_000,
    )


@pytest.fixture
def manager(small_config):
    return ContextWindowManager(small_config, SYSTEM_PROMPT)


class TestHelpers:
    """Tests for the module-level helpers."""

    def test_truncate_text_keeps_short_text(self):
        """Test that text within the limit is unchanged."""
        assert truncate_text("hello", 10) == "hello"

    def test_truncate_text_marks_cut(self):
        """Test that truncated text ends with the marker and respects the limit."""
        result = truncate_text("a" * 100, 40)
        assert len(result) == 40
        assert result.endswith(TRUNCATION_SUFFIX)

    def test_cache_epoch_buckets(self):
        """Test that the epoch is floor(now / width)."""
        assert cache_epoch(599.9, 300) == 1
        assert cache_epoch(600, 300) == 2

    def test_omission_notice_counts(self):
        """Test the placeholder wording."""
        assert "1 earlier message was omitted" in omission_notice(1)
        assert "4 earlier messages were omitted" in omission_notice(4)


class TestKnowledgeBlock:
    """Tests for the knowledge-context block."""

    def test_none_when_unavailable(self):
        """Test that a missing summary produces no block."""
        assert build_knowledge_block(None, 500) is None

    def test_full_text_when_it_fits(self):
        """Test that the full synthesis is preferred."""
        summary = KnowledgeSummary(summary_text="short", full_text="full synthesis", document_count=3)
        block = build_knowledge_block(summary, 500)
        assert block.startswith("<document_context>")
        assert block.endswith("</document_context>")
        assert "full synthesis" in block
        assert "3 document(s)" in block

    def test_summary_when_full_text_too_long(self):
        """Test fallback to the short summary within the cap."""
        summary = KnowledgeSummary(summary_text="short summary", full_text="f" * 5_000, document_count=9)
        block = build_knowledge_block(summary, 500)
        assert "short summary" in block
        assert len(block) <= 500


class TestContextWindowManager:
    """Tests for ContextWindowManager.build."""

    def test_rejects_oversized_system_prompt(self, small_config):
        """Test that a system prompt beyond its reserve is refused."""
        with pytest.raises(ValueError):
            ContextWindowManager(small_config, "s" * 2_000)

    def test_zero_history(self, manager):
        """Test that an empty history yields system plus the new turn."""
        bundle = manager.build([], "What was Q3 revenue?", epoch=7)

        assert bundle.turns == [Turn(role="user", text="What was Q3 revenue?")]
        assert bundle.omitted == 0
        messages = bundle.to_messages()
        assert [m.role for m in messages] == ["system", "user"]
        assert messages[0].content.startswith("[cache-epoch 7]\n")

    def test_same_epoch_same_system_text(self, manager):
        """Test that the system instruction only depends on the epoch."""
        first = manager.build([], "a", epoch=42)
        second = manager.build(make_history(3, 50), "b", epoch=42)
        assert first.system == second.system
        assert manager.build([], "a", epoch=43).system != first.system

    def test_newest_turn_truncated_never_dropped(self, manager, small_config):
        """Test that an oversized newest message is cut to the recent cap."""
        bundle = manager.build(make_history(4, 100), "q" * 5_000, epoch=1)

        assert bundle.newest.role == "user"
        assert len(bundle.newest.text) <= small_config.recent_message_chars
        assert bundle.newest.text.endswith(TRUNCATION_SUFFIX)

    def test_recent_turns_keep_more_than_older(self, manager):
        """Test that older turns are truncated harder than recent ones."""
        history = make_history(4, 600)
        bundle = manager.build(history, "next question", epoch=1)

        assert bundle.omitted == 0
        # turns: 4 history turns, then the new one
        assert bundle.turns[-2].text == history[-1].text
        assert len(bundle.turns[0].text) == 200
        assert bundle.turns[0].text.endswith(TRUNCATION_SUFFIX)

    def test_older_history_dropped_with_placeholder(self, manager, small_config):
        """Test that history beyond the budget is replaced by a placeholder turn."""
        history = make_history(30, 600)
        bundle = manager.build(history, "next question", epoch=1)

        assert bundle.omitted > 0
        assert bundle.turns[0] == Turn(role="user", text=omission_notice(bundle.omitted))
        assert len(bundle.turns) == 1 + (30 - bundle.omitted) + 1
        assert bundle.total_chars <= small_config.max_total_chars
        # The kept turns are the newest ones, in order
        assert bundle.turns[-2].text == history[-1].text

    def test_knowledge_block_included(self, manager):
        """Test that knowledge context is added to the system text."""
        summary = KnowledgeSummary(summary_text="s", full_text="Revenue trends across filings", document_count=2)
        bundle = manager.build([], "hi", knowledge=summary, epoch=1)

        assert bundle.knowledge is not None
        assert "Revenue trends across filings" in bundle.system_text

    @pytest.mark.parametrize(
        "count,size,message_size",
        [(0, 10, 10), (1, 5_000, 5_000), (5, 300, 10), (12, 1_000, 700), (50, 50, 2_000), (100, 900, 900)],
    )
    def test_total_within_cap(self, manager, small_config, count, size, message_size):
        """Test that every bundle stays within the total budget."""
        summary = KnowledgeSummary(summary_text="k" * 2_000, full_text="", document_count=1)
        bundle = manager.build(make_history(count, size), "m" * message_size, knowledge=summary, epoch=1)

        assert bundle.total_chars <= small_config.max_total_chars
        assert len(bundle.newest.text) <= small_config.recent_message_chars

    def test_long_message_with_long_history_defaults(self):
        """Test a 10,000-character message with 20 large prior turns."""
        config = ContextConfig()
        manager = ContextWindowManager(config, SYSTEM_PROMPT)
        bundle = manager.build(make_history(20, 5_000), "z" * 10_000, epoch=1)

        assert bundle.omitted > 0
        assert "omitted" in bundle.turns[0].text
        assert bundle.newest.text == "z" * 10_000
        assert bundle.total_chars <= config.max_total_chars
