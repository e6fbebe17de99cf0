"""Request and loop-outcome models for ask-finance."""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .base import WireModel
from .outputs import Citation, ToolOutput
from .state import Usage


class ChatRequest(WireModel):
    """Inbound chat request.

    Attributes:
        thread_id: Conversation to continue (None creates a new one)
        message: The user's message
        session_id: Opaque session hint echoed back on completion
    """

    thread_id: Optional[str] = Field(None, description="Conversation ID; absent means create new")
    message: str = Field(..., description="User message")
    session_id: Optional[str] = Field(None, description="Opaque session hint")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be empty")
        return value


class AnalysisOptions(WireModel):
    """Options of a direct analysis request."""

    target_audience: Optional[Literal["executive", "analyst", "general"]] = None
    evaluation_criteria: Optional[dict[str, bool]] = None
    extract_charts: bool = False
    extract_tables: bool = False
    generate_narration: bool = False
    max_iterations: Optional[int] = Field(default=None, ge=1, le=10)


class AnalysisRequest(WireModel):
    """Direct request to one of the analysis engines.

    Attributes:
        type: Engine to run (orchestrated, evaluate, document)
        query: Question for orchestrated analysis, or for the document
        report: Draft to evaluate
        context: Document or historical context shared with the workers
        thread_id: Thread whose conversation is added to the context
        document_base64: Document bytes, base64 encoded
        document_mime_type: MIME type of the document
        options: Engine options
    """

    type: Literal["orchestrated", "evaluate", "document"]
    query: Optional[str] = None
    report: Optional[str] = None
    context: Optional[str] = None
    thread_id: Optional[str] = None
    document_base64: Optional[str] = None
    document_mime_type: str = "application/pdf"
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)

    @model_validator(mode="after")
    def check_required_input(self) -> "AnalysisRequest":
        if self.type == "orchestrated" and not (self.query or "").strip():
            raise ValueError("Query is required for orchestrated analysis")
        if self.type == "evaluate" and not (self.report or "").strip():
            raise ValueError("Report is required for evaluation")
        if self.type == "document":
            if not self.document_base64:
                raise ValueError("Document data is required")
            mime = self.document_mime_type
            if mime != "application/pdf" and not mime.startswith("image/"):
                raise ValueError(f"Unsupported document type: {mime}")
        return self


class LoopState(str, Enum):
    """States of the tool-calling loop."""

    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (LoopState.DONE, LoopState.FAILED)


class LoopOutcome(BaseModel):
    """Everything a finished loop run hands to the persistence step.

    Populated on both success and failure: citations and artifacts gathered
    before a failure are kept.

    Attributes:
        state: Terminal state (done or failed)
        text: Final answer text as streamed
        citations: Citations gathered across all tool rounds
        artifacts: Canvas artifacts in emission order
        usage: Token usage over all model calls
        iterations: Tool rounds executed
        error: Terminal error message (failed only)
        error_kind: Machine-readable failure class (failed only)
    """

    state: LoopState
    text: str = ""
    citations: list[Citation] = Field(default_factory=list)
    artifacts: list[ToolOutput] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)
    iterations: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == LoopState.DONE

    @property
    def last_artifact(self) -> Optional[ToolOutput]:
        return self.artifacts[-1] if self.artifacts else None

    def has_content(self) -> bool:
        """Whether there is anything worth persisting."""
        return bool(self.text or self.citations or self.artifacts)

    def citation_payload(self) -> list[dict[str, Any]]:
        return [citation.to_wire() for citation in self.citations]
