"""Excel / PowerPoint export tool.

Produces the export descriptor the client renders into a file; no file is
created server-side.
"""

import re
from datetime import date
from typing import Any, Callable, Literal, Optional

from ...models import ExportData, ExportOutput, SheetSpec, SlideSpec, WireModel
from ..base import FinanceTool

EXTENSIONS = {"excel": "xlsx", "powerpoint": "pptx"}
LABELS = {"excel": "Excel", "powerpoint": "PowerPoint"}


class ExportPayload(WireModel):
    sheets: Optional[list[SheetSpec]] = None
    slides: Optional[list[SlideSpec]] = None


class ExportInput(WireModel):
    format: Literal["excel", "powerpoint"]
    title: str
    data: ExportPayload
    filename: Optional[str] = None


def base_filename(title: str, filename: Optional[str] = None) -> str:
    """Custom filename, or the title lower-cased with whitespace runs as dashes."""
    if filename:
        return filename
    return re.sub(r"\s+", "-", title.strip().lower())


class ExportFileTool(FinanceTool):
    input_model = ExportInput

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self.today = today

    @property
    def name(self) -> str:
        return "export_file"

    @property
    def description(self) -> str:
        return (
            "Export financial data to Excel (.xlsx) or PowerPoint (.pptx) format. "
            "Use this when the user asks to download, export, or create a file."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "format": {
                    "type": "string",
                    "enum": ["excel", "powerpoint"],
                    "description": "Export format - excel for .xlsx, powerpoint for .pptx",
                },
                "title": {"type": "string", "description": "Title for the exported file"},
                "data": {
                    "type": "object",
                    "properties": {
                        "sheets": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "name": {"type": "string"},
                                    "columns": {"type": "array", "items": {"type": "string"}},
                                    "rows": {"type": "array", "items": {"type": "object"}},
                                },
                            },
                            "description": "For Excel: array of sheets with columns and rows",
                        },
                        "slides": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "title": {"type": "string"},
                                    "content": {"type": "string"},
                                    "chartData": {"type": "object"},
                                    "tableData": {"type": "object"},
                                },
                            },
                            "description": "For PowerPoint: array of slides with content",
                        },
                    },
                    "description": "Data to export",
                },
                "filename": {"type": "string", "description": "Custom filename (without extension)"},
            },
            "required": ["format", "title", "data"],
        }

    async def run(self, params: ExportInput) -> ExportOutput:
        stamp = self.today().isoformat()
        filename = f"{base_filename(params.title, params.filename)}-{stamp}.{EXTENSIONS[params.format]}"
        message = f'{LABELS[params.format]} file "{filename}" is ready for download'

        if params.format == "excel":
            sheets = params.data.sheets or [
                SheetSpec(
                    name="Sheet1",
                    columns=["Column1", "Column2"],
                    rows=[{"Column1": "No data provided", "Column2": ""}],
                )
            ]
            data = ExportData(format="excel", filename=filename, title=params.title, sheets=sheets, message=message)
        else:
            slides = params.data.slides or [SlideSpec(title=params.title, content="No content provided")]
            data = ExportData(
                format="powerpoint", filename=filename, title=params.title, slides=slides, message=message
            )
        return ExportOutput(data=data)
