"""Spreadsheet tool backed by pandas.

Reads are confined to the configured spreadsheet root and support CSV and
JSON files. ``write`` and ``transform`` work on inline data only and return
a preview; nothing is written to disk.
"""

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Literal, Optional

import pandas as pd
from pydantic import Field

from ...models import SpreadsheetData, SpreadsheetOutput, WireModel
from ..base import FinanceTool

PREVIEW_ROWS = 10
_CELL = re.compile(r"^([A-Za-z]+)(\d+)$")


class SpreadsheetInput(WireModel):
    action: Literal["read", "write", "analyze", "transform"]
    file_path: Optional[str] = None
    sheet: Optional[str] = None
    range: Optional[str] = None
    data: Optional[list[list[Any]]] = Field(default=None, description="Rows; the first row is the header")


def column_index(letters: str) -> int:
    """Zero-based index of a spreadsheet column name (A=0, Z=25, AA=26)."""
    index = 0
    for char in letters.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def apply_range(frame: pd.DataFrame, cell_range: str) -> pd.DataFrame:
    """Select an A1-style range. Row 1 is the header row.

    Raises:
        ValueError: If the range is malformed
    """
    parts = cell_range.replace("$", "").split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid range: {cell_range}")
    start, end = _CELL.match(parts[0].strip()), _CELL.match(parts[1].strip())
    if not start or not end:
        raise ValueError(f"Invalid range: {cell_range}")

    first_col, last_col = column_index(start.group(1)), column_index(end.group(1))
    first_row, last_row = int(start.group(2)), int(end.group(2))
    if first_col > last_col or first_row > last_row:
        raise ValueError(f"Invalid range: {cell_range}")

    # Data row r lives on sheet row r + 2
    row_start = max(first_row - 2, 0)
    row_stop = max(last_row - 1, 0)
    return frame.iloc[row_start:row_stop, first_col : last_col + 1]


def records(frame: pd.DataFrame, limit: int = PREVIEW_ROWS) -> list[dict[str, Any]]:
    """JSON-safe row preview (NaN becomes None)."""
    return json.loads(frame.head(limit).to_json(orient="records", date_format="iso"))


def numeric_summary(frame: pd.DataFrame) -> dict[str, dict[str, Optional[float]]]:
    """min/max/mean/sum for every numeric column."""
    summary: dict[str, dict[str, Optional[float]]] = {}
    for column in frame.select_dtypes(include="number").columns:
        series = frame[column].dropna()
        if series.empty:
            summary[str(column)] = {"min": None, "max": None, "mean": None, "sum": None}
            continue
        summary[str(column)] = {
            "min": float(series.min()),
            "max": float(series.max()),
            "mean": round(float(series.mean()), 4),
            "sum": float(series.sum()),
        }
    return summary


def frame_from_rows(rows: list[list[Any]]) -> pd.DataFrame:
    """Build a frame from inline rows, the first row being the header."""
    if not rows:
        raise ValueError("data must contain at least a header row")
    header = [str(name) for name in rows[0]]
    body = [list(row) + [None] * (len(header) - len(row)) for row in rows[1:]]
    return pd.DataFrame([row[: len(header)] for row in body], columns=header)


def coerce_numeric(frame: pd.DataFrame) -> pd.DataFrame:
    """Convert columns whose every non-null value is numeric."""
    result = frame.copy()
    for column in result.columns:
        converted = pd.to_numeric(result[column], errors="coerce")
        if converted.notna().sum() == result[column].notna().sum():
            result[column] = converted
    return result


class SpreadsheetOperationTool(FinanceTool):
    """Reads, analyzes and previews tabular data."""

    input_model = SpreadsheetInput

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()

    @property
    def name(self) -> str:
        return "spreadsheet_operation"

    @property
    def description(self) -> str:
        return "Read, write, or analyze CSV/JSON spreadsheet data"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["read", "write", "analyze", "transform"],
                    "description": "The operation to perform",
                },
                "filePath": {"type": "string", "description": "Path to the spreadsheet file"},
                "sheet": {"type": "string", "description": "Sheet name (for multi-sheet sources)"},
                "range": {"type": "string", "description": "Cell range (e.g., A1:D10)"},
                "data": {
                    "type": "array",
                    "items": {"type": "array"},
                    "description": "Rows for write/transform; the first row is the header",
                },
            },
            "required": ["action"],
        }

    def resolve(self, file_path: str) -> Path:
        """Resolve a path inside the spreadsheet root.

        Raises:
            ValueError: If the path escapes the root
            FileNotFoundError: If the file does not exist
        """
        path = (self.root / file_path).resolve()
        if path != self.root and self.root not in path.parents:
            raise ValueError(f"Path is outside the spreadsheet root: {file_path}")
        if not path.is_file():
            raise FileNotFoundError(f"Spreadsheet not found: {file_path}")
        return path

    @staticmethod
    def load(path: Path) -> pd.DataFrame:
        suffix = path.suffix.lower()
        if suffix == ".csv":
            return pd.read_csv(path)
        if suffix == ".json":
            return pd.read_json(path)
        raise ValueError(f"Unsupported spreadsheet format: {suffix or path.name}")

    async def _read_frame(self, params: SpreadsheetInput) -> pd.DataFrame:
        if not params.file_path:
            raise ValueError(f"filePath is required for {params.action}")
        path = self.resolve(params.file_path)
        frame = await asyncio.to_thread(self.load, path)
        if params.range:
            frame = apply_range(frame, params.range)
        return frame

    async def run(self, params: SpreadsheetInput) -> SpreadsheetOutput:
        if params.action in ("read", "analyze"):
            frame = await self._read_frame(params)
            data = SpreadsheetData(
                action=params.action,
                message=f"Read {len(frame)} rows from {params.file_path}",
                columns=[str(c) for c in frame.columns],
                row_count=len(frame),
                preview=records(frame),
            )
            if params.action == "analyze":
                data.summary = numeric_summary(frame)
                data.message = f"Analyzed {len(frame)} rows from {params.file_path}"
            return SpreadsheetOutput(data=data)

        if not params.data:
            raise ValueError(f"data is required for {params.action}")
        frame = frame_from_rows(params.data)

        if params.action == "transform":
            frame = coerce_numeric(frame)
            return SpreadsheetOutput(
                data=SpreadsheetData(
                    action=params.action,
                    message=f"Transformed {len(frame)} rows",
                    columns=[str(c) for c in frame.columns],
                    row_count=len(frame),
                    preview=records(frame),
                    summary=numeric_summary(frame),
                )
            )

        target = params.file_path or "new spreadsheet"
        return SpreadsheetOutput(
            data=SpreadsheetData(
                action=params.action,
                message=f"Prepared {len(frame)} rows for {target}",
                columns=[str(c) for c in frame.columns],
                row_count=len(frame),
                preview=records(frame),
            )
        )
