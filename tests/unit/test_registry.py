"""Unit tests for tool registry and dispatch."""

import asyncio
from typing import Any

import pytest
from conftest import ScriptedModel, make_registry
from pydantic import BaseModel

from ask_finance.models import ChartOutput, ErrorOutput, ToolCall
from ask_finance.tools import FinanceTool, ToolRegistry
from ask_finance.tools.builtin import GenerateChartTool, GenerateTableTool


class EmptyInput(BaseModel):
    pass


class BrokenTool(FinanceTool):
    input_model = EmptyInput

    @property
    def name(self) -> str:
        return "broken"

    @property
    def description(self) -> str:
        return "Always raises"

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    async def run(self, params: EmptyInput):
        raise RuntimeError("database unreachable")


class SlowTool(BrokenTool):
    @property
    def name(self) -> str:
        return "slow"

    async def run(self, params: EmptyInput):
        await asyncio.sleep(5)


class ShapelessTool(BrokenTool):
    @property
    def name(self) -> str:
        return "shapeless"

    async def run(self, params: EmptyInput):
        return {"type": "hologram", "data": {}}


CHART_ARGS = {
    "chartType": "bar",
    "title": "Revenue by Quarter",
    "data": [{"quarter": "Q1", "revenue": 10}, {"quarter": "Q2", "revenue": 12}],
    "xAxisKey": "quarter",
    "yAxisKeys": ["revenue"],
}


@pytest.fixture
def registry():
    registry = ToolRegistry(tool_timeout=0.2)
    for tool in (GenerateChartTool(), GenerateTableTool(), BrokenTool(), SlowTool(), ShapelessTool()):
        registry.register(tool)
    return registry


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_register_duplicate_fails(self, registry):
        """Test that a name can only be registered once."""
        with pytest.raises(ValueError):
            registry.register(GenerateChartTool())

    def test_to_llm_list(self, registry):
        """Test export in function-calling format."""
        exported = registry.to_llm_list()
        names = [item["function"]["name"] for item in exported]
        assert names[:2] == ["generate_chart", "generate_table"]
        assert all(item["type"] == "function" for item in exported)
        assert exported[0]["function"]["parameters"]["required"] == [
            "chartType",
            "title",
            "data",
            "xAxisKey",
            "yAxisKeys",
        ]

    @pytest.mark.asyncio
    async def test_dispatch_success(self, registry):
        """Test a valid call produces the chart variant."""
        result = await registry.dispatch(ToolCall(id="c1", name="generate_chart", arguments=CHART_ARGS))

        assert result.call_id == "c1"
        assert isinstance(result.output, ChartOutput)
        assert result.is_canvas
        assert result.output.data.title == "Revenue by Quarter"

    @pytest.mark.asyncio
    async def test_unknown_tool_is_error_result(self, registry):
        """Test that unknown names produce an error output, not an exception."""
        result = await registry.dispatch(ToolCall(id="c1", name="teleport", arguments={}))

        assert isinstance(result.output, ErrorOutput)
        assert result.error == "unknown tool: teleport"

    @pytest.mark.asyncio
    async def test_invalid_input_is_error_result(self, registry):
        """Test that schema violations are reported to the model."""
        result = await registry.dispatch(
            ToolCall(id="c1", name="generate_chart", arguments={"chartType": "radar", "title": "x"})
        )

        assert result.is_error
        assert "Invalid input for generate_chart" in result.error
        assert "chartType" in result.error

    @pytest.mark.asyncio
    async def test_executor_exception_is_error_result(self, registry):
        """Test that an executor exception is captured."""
        result = await registry.dispatch(ToolCall(id="c1", name="broken", arguments={}))

        assert result.is_error
        assert result.error == "database unreachable"

    @pytest.mark.asyncio
    async def test_timeout_is_error_result(self, registry):
        """Test that a slow tool is cut off by the per-tool timeout."""
        result = await registry.dispatch(ToolCall(id="c1", name="slow", arguments={}))

        assert result.is_error
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_unknown_output_variant_is_error_result(self, registry):
        """Test that outputs outside the closed variant set are rejected."""
        result = await registry.dispatch(ToolCall(id="c1", name="shapeless", arguments={}))

        assert result.is_error
        assert "invalid output" in result.error

    @pytest.mark.parametrize("tool_name,parameter", [("evaluate_report", "maxIterations"), ("search_documents", "limit")])
    def test_whole_number_parameters_declared_as_integer(self, tool_name, parameter):
        """Test that count parameters are declared with the type their input model accepts."""
        declared = make_registry(ScriptedModel()).get(tool_name).parameters["properties"][parameter]
        assert declared["type"] == "integer"

    @pytest.mark.asyncio
    async def test_fractional_count_is_error_result(self):
        """Test that a fractional iteration count is rejected before the engine runs."""
        model = ScriptedModel()
        call = ToolCall(id="c1", name="evaluate_report", arguments={"report": "Q3 draft", "maxIterations": 2.5})

        result = await make_registry(model).dispatch(call)

        assert result.is_error
        assert "maxIterations" in result.error
        assert model.prompts == []

    @pytest.mark.asyncio
    async def test_pure_tool_same_shape_twice(self, registry):
        """Test that repeating a chart call yields the same structure."""
        call = ToolCall(id="c1", name="generate_chart", arguments=CHART_ARGS)
        first = await registry.dispatch(call)
        second = await registry.dispatch(call)

        assert first.output.to_wire().keys() == second.output.to_wire().keys()
        assert first.output.to_wire()["data"].keys() == second.output.to_wire()["data"].keys()
