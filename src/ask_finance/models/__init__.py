"""Data models for ask-finance."""

from .analysis import (
    CRITERION_QUESTIONS,
    AnalysisResult,
    Criterion,
    Evaluation,
    EvaluationScore,
    EvaluationVerdict,
    ImprovementResult,
    SubTask,
    SubTaskType,
    WorkerResult,
    derive_verdict,
)
from .base import WireModel
from .events import (
    STREAM_EVENT_ADAPTER,
    CanvasEvent,
    CitationsEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TextEvent,
    ThreadEvent,
    ToolResultEvent,
    ToolStartEvent,
)
from .outputs import (
    CHART_COLORS,
    TOOL_OUTPUT_ADAPTER,
    AnalysisData,
    AnalysisOutput,
    CalculationData,
    CalculationOutput,
    ChartData,
    ChartOutput,
    Citation,
    DocumentAnalysisData,
    DocumentAnalysisOutput,
    ErrorOutput,
    EvaluationData,
    EvaluationOutput,
    ExportData,
    ExportOutput,
    ExtractedChart,
    ExtractedTable,
    ImageData,
    ImageOutput,
    KeyMetric,
    SearchData,
    SearchOutput,
    SearchResultItem,
    SheetSpec,
    SlideSpec,
    SpreadsheetData,
    SpreadsheetOutput,
    TableData,
    TableOutput,
    ToolOutput,
    WorkerFinding,
)
from .request import AnalysisOptions, AnalysisRequest, ChatRequest, LoopOutcome, LoopState
from .state import KnowledgeSummary, Message, ToolCall, Turn, Usage
from .tool import ToolResult

__all__ = [
    # Conversation
    "Turn",
    "Message",
    "ToolCall",
    "Usage",
    "KnowledgeSummary",
    "WireModel",
    # Request / loop
    "AnalysisOptions",
    "AnalysisRequest",
    "ChatRequest",
    "LoopState",
    "LoopOutcome",
    # Tool results
    "ToolResult",
    "ToolOutput",
    "TOOL_OUTPUT_ADAPTER",
    "CHART_COLORS",
    "Citation",
    "ChartOutput",
    "ChartData",
    "TableOutput",
    "TableData",
    "ImageOutput",
    "ImageData",
    "ExportOutput",
    "ExportData",
    "SheetSpec",
    "SlideSpec",
    "AnalysisOutput",
    "AnalysisData",
    "WorkerFinding",
    "EvaluationOutput",
    "EvaluationData",
    "DocumentAnalysisOutput",
    "DocumentAnalysisData",
    "ExtractedChart",
    "ExtractedTable",
    "KeyMetric",
    "CalculationOutput",
    "CalculationData",
    "SpreadsheetOutput",
    "SpreadsheetData",
    "SearchOutput",
    "SearchData",
    "SearchResultItem",
    "ErrorOutput",
    # Stream events
    "StreamEvent",
    "STREAM_EVENT_ADAPTER",
    "ThreadEvent",
    "TextEvent",
    "ToolStartEvent",
    "ToolResultEvent",
    "CitationsEvent",
    "CanvasEvent",
    "DoneEvent",
    "ErrorEvent",
    # Reasoning engines
    "SubTask",
    "SubTaskType",
    "WorkerResult",
    "AnalysisResult",
    "Criterion",
    "CRITERION_QUESTIONS",
    "EvaluationScore",
    "EvaluationVerdict",
    "Evaluation",
    "ImprovementResult",
    "derive_verdict",
]
