"""Unit tests for the conversation stores."""

import pytest

from ask_finance.models import TableData, TableOutput, Turn
from ask_finance.services import InMemoryConversationStore, JsonFileConversationStore, StoredTurn


def table_turn():
    return StoredTurn(
        turn=Turn(role="assistant", text="Revenue beat budget."),
        citations=[{"documentName": "Q3 Report.pdf", "pageNumber": 2}],
        canvas=TableOutput(data=TableData(title="Budget vs Actual", columns=["line"], rows=[{"line": "Revenue"}])),
        tool_calls=[{"name": "generate_table", "input": {"title": "Budget vs Actual"}}],
    )


class TestInMemoryConversationStore:
    """Tests for rename and delete on the in-memory store."""

    @pytest.mark.asyncio
    async def test_rename(self):
        """Test that renaming keeps the ID and bumps the update time."""
        store = InMemoryConversationStore()
        thread = await store.create_thread("u-1", "Untitled")

        renamed = await store.rename_thread(thread.id, "u-1", "Cash runway")

        assert renamed.id == thread.id
        assert renamed.title == "Cash runway"
        assert renamed.updated_at >= thread.updated_at
        assert (await store.get_thread(thread.id, "u-1")).title == "Cash runway"

    @pytest.mark.asyncio
    async def test_rename_other_user(self):
        """Test that only the owner can rename a thread."""
        store = InMemoryConversationStore()
        thread = await store.create_thread("u-1", "Untitled")

        assert await store.rename_thread(thread.id, "u-2", "Mine") is None
        assert (await store.get_thread(thread.id, "u-1")).title == "Untitled"

    @pytest.mark.asyncio
    async def test_delete(self):
        """Test that deleting removes the thread and its turns."""
        store = InMemoryConversationStore()
        thread = await store.create_thread("u-1", "Old")
        await store.append_turn(thread.id, StoredTurn(turn=Turn(role="user", text="hi")))

        assert await store.delete_thread(thread.id, "u-2") is False
        assert await store.delete_thread(thread.id, "u-1") is True

        assert await store.get_thread(thread.id, "u-1") is None
        assert await store.list_turns(thread.id) == []
        assert await store.delete_thread(thread.id, "u-1") is False


class TestJsonFileConversationStore:
    """Tests for the JSON file store."""

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        """Test that threads and turns written by one instance are read by the next."""
        path = tmp_path / "state" / "threads.json"
        first = JsonFileConversationStore(path)
        thread = await first.create_thread("u-1", "Q3 review")
        await first.append_turn(thread.id, StoredTurn(turn=Turn(role="user", text="Compare budget and actual")))
        await first.append_turn(thread.id, table_turn())

        second = JsonFileConversationStore(path)
        reopened = await second.get_thread(thread.id, "u-1")
        turns = await second.list_turns(thread.id)

        assert reopened.title == "Q3 review"
        assert [stored.turn.text for stored in turns] == ["Compare budget and actual", "Revenue beat budget."]
        assert isinstance(turns[1].canvas, TableOutput)
        assert turns[1].canvas.data.title == "Budget vs Actual"
        assert turns[1].citations == [{"documentName": "Q3 Report.pdf", "pageNumber": 2}]
        assert turns[1].tool_calls[0]["name"] == "generate_table"
        assert not path.with_suffix(".json.tmp").exists()

    @pytest.mark.asyncio
    async def test_rename_and_delete_are_saved(self, tmp_path):
        """Test that rename and delete reach the file."""
        path = tmp_path / "threads.json"
        store = JsonFileConversationStore(path)
        kept = await store.create_thread("u-1", "Untitled")
        dropped = await store.create_thread("u-1", "Old")
        await store.rename_thread(kept.id, "u-1", "Cash runway")
        await store.delete_thread(dropped.id, "u-1")

        reopened = JsonFileConversationStore(path)

        assert [t.title for t in await reopened.list_threads("u-1")] == ["Cash runway"]

    def test_missing_file_is_empty(self, tmp_path):
        """Test that a store without a file starts empty and writes nothing."""
        path = tmp_path / "threads.json"
        JsonFileConversationStore(path)

        assert not path.exists()

    def test_corrupt_file(self, tmp_path):
        """Test that an unreadable file is reported."""
        path = tmp_path / "threads.json"
        path.write_text('{"threads": "nope"}', encoding="utf-8")

        with pytest.raises(ValueError, match="Failed to load conversation store"):
            JsonFileConversationStore(path)
