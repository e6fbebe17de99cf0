"""Chart and table generation tools.

Both are pure transformations of their input into a canvas artifact.
"""

from typing import Any, Literal, Optional

from pydantic import Field

from ...models import CHART_COLORS, ChartData, ChartOutput, TableData, TableOutput, WireModel
from ..base import FinanceTool


class ChartInput(WireModel):
    chart_type: Literal["line", "bar", "pie", "area", "composed"]
    title: str
    data: list[dict[str, Any]]
    x_axis_key: str
    y_axis_keys: list[str] = Field(..., min_length=1)
    x_axis_label: Optional[str] = None
    y_axis_label: Optional[str] = None


class TableInput(WireModel):
    title: str
    columns: list[str] = Field(..., min_length=1)
    rows: list[dict[str, Any]]
    highlight_column: Optional[str] = None


class GenerateChartTool(FinanceTool):
    input_model = ChartInput

    @property
    def name(self) -> str:
        return "generate_chart"

    @property
    def description(self) -> str:
        return "Generate a chart visualization. ALWAYS use this for every financial response to provide visual context."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "chartType": {
                    "type": "string",
                    "enum": ["line", "bar", "pie", "area", "composed"],
                    "description": "Type of chart to generate",
                },
                "title": {"type": "string", "description": "Chart title"},
                "data": {
                    "type": "array",
                    "items": {"type": "object"},
                    "description": "Data points for the chart. Each object should have a name/label and numeric values.",
                },
                "xAxisKey": {
                    "type": "string",
                    "description": 'Key for X-axis values (e.g., "name", "month", "category")',
                },
                "yAxisKeys": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": 'Keys for Y-axis values (e.g., ["value", "revenue", "cost"])',
                },
                "xAxisLabel": {"type": "string", "description": "X-axis label"},
                "yAxisLabel": {"type": "string", "description": "Y-axis label"},
            },
            "required": ["chartType", "title", "data", "xAxisKey", "yAxisKeys"],
        }

    async def run(self, params: ChartInput) -> ChartOutput:
        return ChartOutput(
            data=ChartData(
                chart_type=params.chart_type,
                title=params.title,
                data=params.data,
                x_axis_key=params.x_axis_key,
                y_axis_keys=params.y_axis_keys,
                x_axis_label=params.x_axis_label,
                y_axis_label=params.y_axis_label,
                colors=list(CHART_COLORS),
            )
        )


class GenerateTableTool(FinanceTool):
    input_model = TableInput

    @property
    def name(self) -> str:
        return "generate_table"

    @property
    def description(self) -> str:
        return "Generate a formatted data table. ALWAYS use this to show structured financial data."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Table title"},
                "columns": {"type": "array", "items": {"type": "string"}, "description": "Column names"},
                "rows": {
                    "type": "array",
                    "items": {"type": "object"},
                    "description": "Row data as objects with column keys",
                },
                "highlightColumn": {"type": "string", "description": "Column to highlight (optional)"},
            },
            "required": ["title", "columns", "rows"],
        }

    async def run(self, params: TableInput) -> TableOutput:
        return TableOutput(
            data=TableData(
                title=params.title,
                columns=params.columns,
                rows=params.rows,
                highlight_column=params.highlight_column,
            )
        )
