"""Tool output variants for ask-finance.

Every tool returns one member of a closed set of variants discriminated by
``type``. The registry validates executor output against the union, so the
stream emitter and callers can route payloads without tool-specific
knowledge.
"""

import json
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from .base import WireModel

CHART_COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6"]


class Citation(WireModel):
    """A reference to a knowledge-base excerpt supporting an answer."""

    document_id: str
    document_name: str
    page_number: Optional[int] = None
    excerpt: str = ""
    storage_path: Optional[str] = None


class ToolOutputBase(WireModel):
    """Common behaviour of all output variants."""

    canvas: ClassVar[bool] = False

    def collect_citations(self) -> list[Citation]:
        """Citations carried by this output (none by default)."""
        return []

    def to_content(self) -> str:
        """Format for the model feedback turn.

        Returns:
            JSON text of the wire form
        """
        return json.dumps(self.to_wire(), ensure_ascii=False)


# --- Visual artifacts -------------------------------------------------------


class ChartData(WireModel):
    chart_type: Literal["line", "bar", "pie", "area", "composed"]
    title: str
    data: list[dict[str, Any]]
    x_axis_key: str
    y_axis_keys: list[str]
    x_axis_label: Optional[str] = None
    y_axis_label: Optional[str] = None
    colors: list[str] = Field(default_factory=lambda: list(CHART_COLORS))


class ChartOutput(ToolOutputBase):
    canvas: ClassVar[bool] = True

    type: Literal["chart"] = "chart"
    data: ChartData


class TableData(WireModel):
    title: str
    columns: list[str]
    rows: list[dict[str, Any]]
    highlight_column: Optional[str] = None


class TableOutput(ToolOutputBase):
    canvas: ClassVar[bool] = True

    type: Literal["table"] = "table"
    data: TableData


class ImageData(WireModel):
    title: str
    image_data: str = Field(..., description="Base64 image bytes")
    mime_type: str = "image/png"
    prompt: str


class ImageOutput(ToolOutputBase):
    canvas: ClassVar[bool] = True

    type: Literal["image"] = "image"
    data: ImageData

    def to_content(self) -> str:
        """Wire form with the image bytes elided; the model only needs to know it exists."""
        wire = self.to_wire()
        wire["data"]["imageData"] = f"<{len(self.data.image_data)} base64 characters>"
        return json.dumps(wire, ensure_ascii=False)


class SheetSpec(WireModel):
    name: str
    columns: list[str]
    rows: list[dict[str, Any]]


class SlideSpec(WireModel):
    title: str
    content: Optional[str] = None
    chart_data: Optional[dict[str, Any]] = None
    table_data: Optional[dict[str, Any]] = None


class ExportData(WireModel):
    format: Literal["excel", "powerpoint"]
    filename: str
    title: str
    sheets: Optional[list[SheetSpec]] = None
    slides: Optional[list[SlideSpec]] = None
    download_ready: bool = True
    message: str


class ExportOutput(ToolOutputBase):
    canvas: ClassVar[bool] = True

    type: Literal["export"] = "export"
    data: ExportData


# --- Analytical results -----------------------------------------------------


class WorkerFinding(WireModel):
    type: str
    description: str
    findings: str
    metrics: Optional[dict[str, Any]] = None
    degraded: bool = False


class AnalysisData(WireModel):
    summary: str
    analysis: str
    worker_results: list[WorkerFinding]


class AnalysisOutput(ToolOutputBase):
    type: Literal["analysis"] = "analysis"
    data: AnalysisData


class EvaluationData(WireModel):
    status: str
    scores: dict[str, int]
    feedback: dict[str, str]
    passed: bool
    iterations: int = 0
    max_iterations: Optional[int] = None
    initial_status: Optional[str] = None
    initial_scores: Optional[dict[str, int]] = None
    optimized_report: Optional[str] = None


class EvaluationOutput(ToolOutputBase):
    type: Literal["evaluation"] = "evaluation"
    data: EvaluationData


class ExtractedChart(WireModel):
    title: str
    type: str = "other"
    data_points: list[dict[str, Any]] = Field(default_factory=list)
    insights: str = ""


class ExtractedTable(WireModel):
    title: str
    headers: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)


class KeyMetric(WireModel):
    name: str
    value: Union[str, float, int]
    change: Optional[float] = None
    period: Optional[str] = None
    source: Optional[str] = None


class DocumentAnalysisData(WireModel):
    summary: str
    document_type: Optional[str] = None
    time_period: Optional[str] = None
    charts: list[ExtractedChart] = Field(default_factory=list)
    tables: list[ExtractedTable] = Field(default_factory=list)
    key_metrics: list[KeyMetric] = Field(default_factory=list)
    narration: Optional[str] = None
    answer: Optional[str] = None


class DocumentAnalysisOutput(ToolOutputBase):
    type: Literal["document_analysis"] = "document_analysis"
    data: DocumentAnalysisData


class CalculationData(WireModel):
    operation: str
    result: Union[float, str]
    formula: str
    details: dict[str, Any] = Field(default_factory=dict)


class CalculationOutput(ToolOutputBase):
    type: Literal["calculation"] = "calculation"
    data: CalculationData


class SpreadsheetData(WireModel):
    action: str
    message: str
    columns: list[str] = Field(default_factory=list)
    row_count: int = 0
    preview: list[dict[str, Any]] = Field(default_factory=list)
    summary: Optional[dict[str, dict[str, Optional[float]]]] = None


class SpreadsheetOutput(ToolOutputBase):
    type: Literal["spreadsheet"] = "spreadsheet"
    data: SpreadsheetData


class SearchResultItem(WireModel):
    document_id: str
    document_name: str
    excerpt: str
    score: float
    page_number: Optional[int] = None


class SearchData(WireModel):
    results: list[SearchResultItem]
    citations: list[Citation]
    message: str
    placeholder: bool = False


class SearchOutput(ToolOutputBase):
    type: Literal["search"] = "search"
    data: SearchData

    def collect_citations(self) -> list[Citation]:
        return list(self.data.citations)


class ErrorOutput(ToolOutputBase):
    """A tool-level failure the model can react to."""

    type: Literal["error"] = "error"
    error: str
    data: Optional[dict[str, Any]] = None


ToolOutput = Annotated[
    Union[
        ChartOutput,
        TableOutput,
        ImageOutput,
        ExportOutput,
        AnalysisOutput,
        EvaluationOutput,
        DocumentAnalysisOutput,
        CalculationOutput,
        SpreadsheetOutput,
        SearchOutput,
        ErrorOutput,
    ],
    Field(discriminator="type"),
]

TOOL_OUTPUT_ADAPTER: TypeAdapter[ToolOutput] = TypeAdapter(ToolOutput)
