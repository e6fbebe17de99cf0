"""Multimodal document analysis for financial PDFs and images.

The analyzer sends the document inline (base64) to the reasoning model
and asks for tagged sections, then decodes them leniently: a section that
is missing or malformed becomes an empty list rather than an error.
"""

from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ValidationError

from ..models import DocumentAnalysisData, ExtractedChart, ExtractedTable, KeyMetric
from ..utils import extract_tag, get_logger, parse_json_block

if TYPE_CHECKING:
    from ..agent.llm import ReasoningModel

logger = get_logger(__name__)

SUMMARY_PROMPT = """Analyze this financial document and provide:

<summary>
A comprehensive summary of the document's key points, focusing on financial data and insights.
</summary>

<document_type>
The type of document (earnings report, financial statement, presentation, etc.)
</document_type>

<time_period>
The time period covered by the document
</time_period>

<key_metrics>
JSON array of key metrics found:
[{"name": "metric_name", "value": "value", "change": percent_change, "period": "period"}]
</key_metrics>"""

CHARTS_PROMPT = """Identify and extract data from all charts and graphs in this document.

<charts>
[{"title": "Chart title", "type": "bar|line|pie|area|scatter|other",
  "dataPoints": [{"label": "...", "value": 0}], "insights": "Key insights from this chart"}]
</charts>

Be precise with numbers. If you can't read exact values, provide your best estimate with a note."""

TABLES_PROMPT = """Extract all tables from this document.

<tables>
[{"title": "Table title or description", "headers": ["column1", "column2"],
  "rows": [{"column1": "value1", "column2": "value2"}]}]
</tables>

Preserve exact values and formatting where possible."""

NARRATION_PROMPT = """You are narrating this financial document as if presenting to stakeholders.

Describe everything visible: all text, every chart and graph with its data points, every
table with its values, page by page. The narration is used for search indexing.

<narration>
<page id="1">...</page>
</narration>"""

IMAGE_PROMPT = """Analyze this financial chart or image.

Describe the type of visualization, all visible data points (be precise with numbers),
trends or patterns, and key insights.

<description>
Your detailed description
</description>

<key_metrics>
JSON array of metrics read from the image:
[{"name": "metric_name", "value": "value", "change": percent_change, "period": "period"}]
</key_metrics>"""


def validate_items(raw: Any, model: type[BaseModel]) -> list[Any]:
    if not isinstance(raw, list):
        return []
    items = []
    for entry in raw:
        try:
            items.append(model.model_validate(entry))
        except ValidationError:
            logger.debug(f"Skipping malformed {model.__name__} entry: {entry!r}")
    return items


class ModelDocumentAnalyzer:
    """Document analyzer backed by a multimodal reasoning model."""

    def __init__(self, model: "ReasoningModel") -> None:
        self.model = model

    @staticmethod
    def document_part(document_base64: str, mime_type: str) -> dict[str, Any]:
        """Build the inline content part carrying the document.

        Raises:
            ValueError: If the MIME type is neither PDF nor an image
        """
        if mime_type == "application/pdf":
            return {
                "type": "file",
                "file": {
                    "filename": "document.pdf",
                    "file_data": f"data:application/pdf;base64,{document_base64}",
                },
            }
        if mime_type.startswith("image/"):
            return {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{document_base64}"}}
        raise ValueError(f"Unsupported document type: {mime_type}")

    async def _ask(self, part: dict[str, Any], prompt: str, max_tokens: Optional[int] = None) -> str:
        return await self.model.generate([part, {"type": "text", "text": prompt}], max_tokens=max_tokens)

    async def analyze(
        self,
        document_base64: str,
        mime_type: str,
        extract_charts: bool = False,
        extract_tables: bool = False,
        generate_narration: bool = False,
        question: Optional[str] = None,
    ) -> DocumentAnalysisData:
        """Analyze a PDF or image.

        Args:
            document_base64: Document bytes, base64 encoded
            mime_type: application/pdf or image/*
            extract_charts: Extract chart data (PDF only)
            extract_tables: Extract table data (PDF only)
            generate_narration: Produce a page-by-page narration (PDF only)
            question: Specific question to answer from the document

        Returns:
            Extracted analysis

        Raises:
            ValueError: If the MIME type is unsupported
        """
        part = self.document_part(document_base64, mime_type)
        if mime_type.startswith("image/"):
            return await self._analyze_image(part, question)

        text = await self._ask(part, SUMMARY_PROMPT)
        data = DocumentAnalysisData(
            summary=extract_tag(text, "summary") or text.strip(),
            document_type=extract_tag(text, "document_type") or None,
            time_period=extract_tag(text, "time_period") or None,
            key_metrics=validate_items(parse_json_block(extract_tag(text, "key_metrics"), []), KeyMetric),
        )

        if extract_charts:
            charts_text = await self._ask(part, CHARTS_PROMPT, max_tokens=8192)
            data.charts = validate_items(parse_json_block(extract_tag(charts_text, "charts"), []), ExtractedChart)

        if extract_tables:
            tables_text = await self._ask(part, TABLES_PROMPT, max_tokens=8192)
            data.tables = validate_items(parse_json_block(extract_tag(tables_text, "tables"), []), ExtractedTable)

        if generate_narration:
            narration_text = await self._ask(part, NARRATION_PROMPT)
            data.narration = extract_tag(narration_text, "narration") or narration_text.strip()

        if question:
            data.answer = (await self._ask(part, question, max_tokens=1024)).strip()

        return data

    async def _analyze_image(self, part: dict[str, Any], question: Optional[str]) -> DocumentAnalysisData:
        text = await self._ask(part, IMAGE_PROMPT)
        data = DocumentAnalysisData(
            summary=extract_tag(text, "description") or text.strip(),
            document_type="image",
            key_metrics=validate_items(parse_json_block(extract_tag(text, "key_metrics"), []), KeyMetric),
        )
        if question:
            data.answer = (await self._ask(part, question, max_tokens=1024)).strip()
        return data
