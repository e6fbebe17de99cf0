"""Tool result entity for ask-finance."""

from typing import Optional

from pydantic import BaseModel, Field

from .outputs import Citation, ErrorOutput, ToolOutput


class ToolResult(BaseModel):
    """Result of dispatching one tool call.

    One-to-one with the ToolCall it answers; fed back to the model as a
    tool message carrying ``output.to_content()``.

    Attributes:
        call_id: ID of the answered call
        name: Tool name as requested by the model
        output: Validated output variant
        duration_ms: Execution time
    """

    call_id: str = Field(..., description="ID of the answered call")
    name: str = Field(..., description="Tool name")
    output: ToolOutput = Field(..., description="Validated output variant")
    duration_ms: int = Field(default=0, ge=0, description="Execution time in milliseconds")

    @property
    def error(self) -> Optional[str]:
        """Error message if the tool failed."""
        if isinstance(self.output, ErrorOutput):
            return self.output.error
        return None

    @property
    def is_error(self) -> bool:
        return isinstance(self.output, ErrorOutput)

    @property
    def is_canvas(self) -> bool:
        """Whether the output is a visual artifact for progressive rendering."""
        return self.output.canvas

    @property
    def citations(self) -> list[Citation]:
        return self.output.collect_citations()
