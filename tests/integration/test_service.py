"""Integration tests for ChatService: threads, context and persistence."""

from contextlib import aclosing

import pytest
from conftest import FakeDocumentAnalyzer, FakeImageGenerator, ScriptedModel, text_response, tool_response

from ask_finance.errors import ModelCallError, RequestValidationError, ThreadNotFoundError
from ask_finance.models import DoneEvent, ErrorEvent, KnowledgeSummary, ThreadEvent
from ask_finance.service import build_service, thread_title
from ask_finance.services import InMemoryKnowledgeProvider

CHART_ARGS = {
    "chartType": "line",
    "title": "Revenue Trend",
    "data": [{"q": "Q2", "v": 3.9}, {"q": "Q3", "v": 4.2}],
    "xAxisKey": "q",
    "yAxisKeys": ["v"],
}


class BrokenKnowledge:
    async def fetch_summary(self, user_id):
        raise ConnectionError("knowledge service offline")


def make_service(engine_config, model, store, retrieval=None, knowledge=None):
    service = build_service(
        engine_config,
        model=model,
        store=store,
        knowledge=knowledge,
        retrieval=retrieval,
        image_generator=FakeImageGenerator(),
        document_analyzer=FakeDocumentAnalyzer(),
    )
    service.clock = lambda: 600.0
    return service


async def collect(service, payload, user_id="u-1"):
    return [event async for event in service.stream(payload, user_id)]


class TestThreadTitle:
    """Tests for thread titles."""

    def test_short_message(self):
        """Test that short messages are used as-is."""
        assert thread_title("  Q3 summary ") == "Q3 summary"

    def test_long_message(self):
        """Test ellipsizing at 50 characters."""
        title = thread_title("x" * 80)
        assert title == "x" * 50 + "..."


class TestChatService:
    """Tests for ChatService."""

    @pytest.mark.asyncio
    async def test_new_thread_persists_both_turns(self, engine_config, store):
        """Test thread creation, event order and persistence of a successful request."""
        message = "Summarize our third quarter financial performance for the board please"
        model = ScriptedModel([text_response("Q3 was strong.")])
        service = make_service(engine_config, model, store)

        events = await collect(service, {"message": message, "sessionId": "s-1"})

        assert isinstance(events[0], ThreadEvent)
        assert isinstance(events[-1], DoneEvent)
        assert events[-1].session_id == "s-1"

        thread = await store.get_thread(events[0].thread_id, "u-1")
        assert thread.title == message[:50] + "..."
        turns = await store.list_turns(thread.id)
        assert [(t.turn.role, t.turn.text) for t in turns] == [("user", message), ("assistant", "Q3 was strong.")]

    @pytest.mark.asyncio
    async def test_continuing_thread_includes_history(self, engine_config, store):
        """Test that earlier turns reach the model on a follow-up."""
        model = ScriptedModel([text_response("Revenue was $4.2M."), text_response("Up 12%.")])
        service = make_service(engine_config, model, store)

        first = await collect(service, {"message": "What was Q3 revenue?"})
        thread_id = first[0].thread_id
        second = await collect(service, {"message": "And growth?", "threadId": thread_id})

        assert second[0].thread_id == thread_id
        roles_and_text = [(m.role, m.content) for m in model.complete_calls[1][1:]]
        assert roles_and_text == [
            ("user", "What was Q3 revenue?"),
            ("assistant", "Revenue was $4.2M."),
            ("user", "And growth?"),
        ]
        assert len(await store.list_turns(thread_id)) == 4

    @pytest.mark.asyncio
    async def test_cache_epoch_in_system_text(self, engine_config, store):
        """Test that the system message carries the request's cache epoch."""
        model = ScriptedModel([text_response("ok")])
        await collect(make_service(engine_config, model, store), {"message": "hi"})

        assert model.complete_calls[0][0].content.startswith("[cache-epoch 2]\n")

    @pytest.mark.asyncio
    async def test_unknown_thread(self, engine_config, store):
        """Test that an unknown thread fails before any event."""
        service = make_service(engine_config, ScriptedModel(), store)
        with pytest.raises(ThreadNotFoundError):
            await service.prepare({"message": "hi", "threadId": "missing"}, "u-1")

    @pytest.mark.asyncio
    async def test_thread_of_other_user(self, engine_config, store):
        """Test that threads are scoped to their owner."""
        thread = await store.create_thread("someone-else", "Private")
        service = make_service(engine_config, ScriptedModel(), store)
        with pytest.raises(ThreadNotFoundError):
            await service.prepare({"message": "hi", "threadId": thread.id}, "u-1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"message": ""}, {"message": "   "}])
    async def test_invalid_message(self, engine_config, store, payload):
        """Test that a missing or blank message is rejected without side effects."""
        service = make_service(engine_config, ScriptedModel(), store)
        with pytest.raises(RequestValidationError):
            await service.prepare(payload, "u-1")
        assert await store.list_threads("u-1") == []

    @pytest.mark.asyncio
    async def test_knowledge_summary_reaches_model(self, engine_config, store):
        """Test that the knowledge block is part of the system message."""
        knowledge = InMemoryKnowledgeProvider(
            {"u-1": KnowledgeSummary(summary_text="s", full_text="Margins expanded in FY24", document_count=4)}
        )
        model = ScriptedModel([text_response("ok")])
        await collect(make_service(engine_config, model, store, knowledge=knowledge), {"message": "hi"})

        assert "Margins expanded in FY24" in model.complete_calls[0][0].content

    @pytest.mark.asyncio
    async def test_knowledge_failure_is_not_fatal(self, engine_config, store):
        """Test that a failing knowledge service is treated as unavailable."""
        model = ScriptedModel([text_response("ok")])
        events = await collect(make_service(engine_config, model, store, knowledge=BrokenKnowledge()), {"message": "hi"})

        assert isinstance(events[-1], DoneEvent)
        assert "<document_context>" not in model.complete_calls[0][0].content

    @pytest.mark.asyncio
    async def test_canvas_and_tool_log_persisted(self, engine_config, store):
        """Test that the last artifact and the tool calls are stored with the answer."""
        model = ScriptedModel(
            [tool_response(("generate_chart", CHART_ARGS)), text_response("Here is the trend.")]
        )
        events = await collect(make_service(engine_config, model, store), {"message": "Chart revenue"})

        stored = (await store.list_turns(events[0].thread_id))[-1]
        assert stored.turn.text == "Here is the trend."
        assert stored.canvas.type == "chart"
        assert stored.tool_calls[0]["name"] == "generate_chart"
        assert stored.tool_calls[0]["output"]["type"] == "chart"

    @pytest.mark.asyncio
    async def test_failure_keeps_gathered_citations(self, engine_config, store, retrieval):
        """Test that citations gathered before a model failure are persisted."""
        model = ScriptedModel(
            [tool_response(("search_documents", {"query": "Q3 revenue"})), ModelCallError("provider down")]
        )
        service = make_service(engine_config, model, store, retrieval=retrieval)
        events = await collect(service, {"message": "What was Q3 revenue?"})

        assert isinstance(events[-1], ErrorEvent)
        assert events[-1].kind == "model_error"
        stored = (await store.list_turns(events[0].thread_id))[-1]
        assert stored.turn.role == "assistant"
        assert stored.turn.text == ""
        assert stored.citations[0]["documentName"] == "Q3 Report.pdf"

    @pytest.mark.asyncio
    async def test_failure_without_content_saves_only_user_turn(self, engine_config, store):
        """Test that an empty failed answer is not persisted."""
        model = ScriptedModel([ModelCallError("provider down")])
        events = await collect(make_service(engine_config, model, store), {"message": "hi"})

        turns = await store.list_turns(events[0].thread_id)
        assert [t.turn.role for t in turns] == ["user"]

    @pytest.mark.asyncio
    async def test_consumer_stops_early(self, engine_config, store):
        """Test that closing the stream early cancels the loop and still settles."""
        model = ScriptedModel([text_response("never streamed")])
        service = make_service(engine_config, model, store)
        prepared = await service.prepare({"message": "hi"}, "u-1")

        async with aclosing(service.run(prepared)) as events:
            async for event in events:
                assert isinstance(event, ThreadEvent)
                break

        turns = await store.list_turns(prepared.thread.id)
        assert [t.turn.role for t in turns] == ["user"]
