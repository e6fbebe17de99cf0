"""Document analysis tool (PDF and images)."""

from typing import Any, Optional

from ...models import DocumentAnalysisOutput, ErrorOutput, WireModel
from ...services.base import DocumentAnalyzer
from ..base import FinanceTool


class DocumentInput(WireModel):
    document_base64: str
    mime_type: str
    extract_charts: bool = False
    extract_tables: bool = False
    generate_narration: bool = False
    question: Optional[str] = None


def is_supported(mime_type: str) -> bool:
    return mime_type == "application/pdf" or mime_type.startswith("image/")


class AnalyzeDocumentTool(FinanceTool):
    input_model = DocumentInput

    def __init__(self, analyzer: DocumentAnalyzer) -> None:
        self.analyzer = analyzer

    @property
    def name(self) -> str:
        return "analyze_document"

    @property
    def description(self) -> str:
        return (
            "Analyze a PDF document or image for financial insights. Extracts charts, tables, "
            "key metrics, and can generate narration for search indexing."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "documentBase64": {"type": "string", "description": "Base64 encoded document data"},
                "mimeType": {"type": "string", "description": "Document MIME type (application/pdf or image/*)"},
                "extractCharts": {"type": "boolean", "description": "Extract chart data from the document"},
                "extractTables": {"type": "boolean", "description": "Extract table data from the document"},
                "generateNarration": {"type": "boolean", "description": "Generate text narration for indexing"},
                "question": {"type": "string", "description": "Specific question to answer from the document"},
            },
            "required": ["documentBase64", "mimeType"],
        }

    async def run(self, params: DocumentInput) -> DocumentAnalysisOutput | ErrorOutput:
        if not is_supported(params.mime_type):
            return ErrorOutput(error=f"Unsupported document type: {params.mime_type}")

        data = await self.analyzer.analyze(
            params.document_base64,
            params.mime_type,
            extract_charts=params.extract_charts,
            extract_tables=params.extract_tables,
            generate_narration=params.generate_narration,
            question=params.question,
        )
        return DocumentAnalysisOutput(data=data)
