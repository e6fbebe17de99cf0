"""Built-in finance tools.

This module provides the ten tools the reasoning model can call:
- search_documents: knowledge-base retrieval with citations
- generate_chart / generate_table / generate_image / export_file: canvas artifacts
- financial_calculation / spreadsheet_operation: deterministic number work
- analyze_document: PDF and image extraction
- complex_analysis / evaluate_report: multi-step reasoning engines

Example:
    >>> registry = build_default_registry(retrieval=..., image_generator=..., ...)
    >>> print([t["function"]["name"] for t in registry.to_llm_list()])
"""

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ...services.base import DocumentAnalyzer, ImageGenerator, RetrievalProvider
from ..registry import ToolRegistry
from .analysis import ComplexAnalysisTool, EvaluateReportTool
from .calculation import FinancialCalculationTool
from .document import AnalyzeDocumentTool
from .export import ExportFileTool
from .image import GenerateImageTool
from .search import SearchDocumentsTool
from .spreadsheet import SpreadsheetOperationTool
from .visuals import GenerateChartTool, GenerateTableTool

if TYPE_CHECKING:
    from ...agent.patterns import DecomposeSynthesizePattern, EvaluateImprovePattern

__all__ = [
    "AnalyzeDocumentTool",
    "ComplexAnalysisTool",
    "EvaluateReportTool",
    "ExportFileTool",
    "FinancialCalculationTool",
    "GenerateChartTool",
    "GenerateImageTool",
    "GenerateTableTool",
    "SearchDocumentsTool",
    "SpreadsheetOperationTool",
    "build_default_registry",
]


def build_default_registry(
    *,
    retrieval: RetrievalProvider,
    image_generator: ImageGenerator,
    document_analyzer: DocumentAnalyzer,
    decomposer: "DecomposeSynthesizePattern",
    evaluator: "EvaluateImprovePattern",
    spreadsheet_root: Path = Path("."),
    tool_timeout: Optional[float] = None,
) -> ToolRegistry:
    """Register every built-in tool and return the registry.

    Args:
        retrieval: Knowledge-base search backend
        image_generator: Image generation backend
        document_analyzer: Document extraction backend
        decomposer: Decompose-execute-synthesize engine
        evaluator: Evaluate-improve engine
        spreadsheet_root: Directory spreadsheet reads are confined to
        tool_timeout: Per-call timeout in seconds

    Returns:
        ToolRegistry with all ten tools registered
    """
    registry = ToolRegistry(tool_timeout=tool_timeout)
    for tool in (
        SearchDocumentsTool(retrieval),
        GenerateChartTool(),
        GenerateTableTool(),
        GenerateImageTool(image_generator),
        ExportFileTool(),
        FinancialCalculationTool(),
        SpreadsheetOperationTool(spreadsheet_root),
        AnalyzeDocumentTool(document_analyzer),
        ComplexAnalysisTool(decomposer),
        EvaluateReportTool(evaluator),
    ):
        registry.register(tool)
    return registry
