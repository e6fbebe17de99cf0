"""Unit tests for data models."""

import pytest
from pydantic import ValidationError

from ask_finance.models import (
    TOOL_OUTPUT_ADAPTER,
    ChartOutput,
    ChatRequest,
    Citation,
    ErrorOutput,
    EvaluationScore,
    EvaluationVerdict,
    LoopOutcome,
    LoopState,
    SearchOutput,
    SubTaskType,
    ToolCall,
    Usage,
    derive_verdict,
)
from ask_finance.models.tool import ToolResult


class TestVerdict:
    """Tests for verdict derivation."""

    @pytest.mark.parametrize(
        "scores,expected",
        [
            ({"accuracy": 8, "completeness": 5, "clarity": 9, "actionability": 6}, EvaluationVerdict.NEEDS_IMPROVEMENT),
            ({"accuracy": 7, "completeness": 7, "clarity": 10, "actionability": 8}, EvaluationVerdict.PASS),
            ({"accuracy": 9, "completeness": 3, "clarity": 9, "actionability": 9}, EvaluationVerdict.FAIL),
            ({"accuracy": 1}, EvaluationVerdict.FAIL),
            ({}, EvaluationVerdict.NEEDS_IMPROVEMENT),
        ],
    )
    def test_derive_verdict(self, scores, expected):
        """Test the PASS / NEEDS_IMPROVEMENT / FAIL rules."""
        assert derive_verdict(scores) == expected
        assert EvaluationScore(scores=scores).verdict == expected


class TestSubTaskType:
    """Tests for SubTaskType parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("variance_analysis", SubTaskType.VARIANCE),
            ("Variance", SubTaskType.VARIANCE),
            ("risk-assessment", SubTaskType.RISK),
            ("executive summary", SubTaskType.SUMMARY),
            ("forecast", SubTaskType.FORECAST),
            ("tarot", None),
            ("", None),
        ],
    )
    def test_parse(self, raw, expected):
        """Test long and short type names."""
        assert SubTaskType.parse(raw) == expected


class TestChatRequest:
    """Tests for ChatRequest."""

    def test_aliases(self):
        """Test that camelCase input is accepted."""
        request = ChatRequest.model_validate({"message": "hi", "threadId": "t-1", "sessionId": "s"})
        assert request.thread_id == "t-1"
        assert request.session_id == "s"

    @pytest.mark.parametrize("message", ["", "   \n"])
    def test_blank_message_rejected(self, message):
        """Test that an empty message is invalid."""
        with pytest.raises(ValidationError):
            ChatRequest(message=message)


class TestToolOutputs:
    """Tests for the closed output variant set."""

    def test_discriminated_by_type(self):
        """Test that the union picks the variant from ``type``."""
        output = TOOL_OUTPUT_ADAPTER.validate_python({"type": "error", "error": "boom"})
        assert isinstance(output, ErrorOutput)

    def test_unknown_type_rejected(self):
        """Test that unknown variants fail validation."""
        with pytest.raises(ValidationError):
            TOOL_OUTPUT_ADAPTER.validate_python({"type": "hologram", "data": {}})

    def test_chart_wire_form(self):
        """Test camelCase serialization and default colors."""
        chart = ChartOutput.model_validate(
            {
                "data": {
                    "chartType": "line",
                    "title": "Revenue",
                    "data": [{"m": "Jan", "v": 1}],
                    "xAxisKey": "m",
                    "yAxisKeys": ["v"],
                }
            }
        )
        wire = chart.to_wire()
        assert wire["type"] == "chart"
        assert wire["data"]["xAxisKey"] == "m"
        assert "xAxisLabel" not in wire["data"]
        assert len(wire["data"]["colors"]) == 5

    def test_tool_result_routing_flags(self):
        """Test canvas and citation detection on a result."""
        citation = Citation(document_id="d", document_name="Report.pdf", page_number=2)
        search = SearchOutput.model_validate({"data": {"results": [], "citations": [citation], "message": "ok"}})
        result = ToolResult(call_id="c1", name="search_documents", output=search)

        assert not result.is_canvas
        assert not result.is_error
        assert result.citations == [citation]


class TestLoopOutcome:
    """Tests for LoopOutcome."""

    def test_has_content(self):
        """Test that failures with partial content are still persistable."""
        outcome = LoopOutcome(state=LoopState.FAILED, error="timeout")
        assert not outcome.has_content()
        outcome.citations.append(Citation(document_id="d", document_name="n"))
        assert outcome.has_content()
        assert outcome.citation_payload() == [{"documentId": "d", "documentName": "n", "excerpt": ""}]

    def test_terminal_states(self):
        """Test which loop states are terminal."""
        assert LoopState.DONE.is_terminal
        assert LoopState.FAILED.is_terminal
        assert not LoopState.AWAITING_MODEL.is_terminal


class TestUsage:
    """Tests for Usage accounting."""

    def test_add(self):
        """Test that usage sums across calls."""
        total = Usage(input_tokens=3, output_tokens=4).add(Usage(input_tokens=1, output_tokens=1))
        assert total.total_tokens == 9


class TestToolCall:
    """Tests for ToolCall."""

    def test_frozen(self):
        """Test that calls are immutable once requested."""
        call = ToolCall(id="c1", name="generate_chart")
        with pytest.raises(ValidationError):
            call.name = "other"
