"""Conversation entities for ask-finance.

This module defines the turn, message and tool-call entities that flow
between the context window manager, the tool-calling loop and the
reasoning model.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .base import WireModel


class Turn(BaseModel):
    """One persisted message in a conversation.

    Attributes:
        role: Author of the turn
        text: Turn content
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"] = Field(..., description="Author of the turn")
    text: str = Field(..., description="Turn content")

    @property
    def length(self) -> int:
        return len(self.text)


class ToolCall(BaseModel):
    """A tool invocation requested by the reasoning model.

    Attributes:
        id: Provider call ID, echoed back on the matching result
        name: Tool name
        arguments: Parsed tool arguments
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Provider call ID")
    name: str = Field(..., description="Tool name")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool parameters")


class Message(BaseModel):
    """A message in the model-facing conversation.

    Attributes:
        role: Message role ("system", "user", "assistant", "tool")
        content: Message content
        tool_calls: Tool invocations (assistant only)
        tool_call_id: Call this message answers (tool only)
    """

    role: Literal["system", "user", "assistant", "tool"] = Field(..., description="Message role")
    content: str = Field(default="", description="Message content")
    tool_calls: list[ToolCall] = Field(default_factory=list, description="Tool invocations")
    tool_call_id: Optional[str] = Field(None, description="Call this message answers")

    @classmethod
    def from_turn(cls, turn: Turn) -> "Message":
        return cls(role=turn.role, content=turn.text)


class KnowledgeSummary(BaseModel):
    """Synthesized knowledge base of one user.

    Attributes:
        summary_text: Short synthesis
        full_text: Full synthesis
        document_count: Documents the synthesis covers
    """

    summary_text: str = ""
    full_text: str = ""
    document_count: int = Field(default=0, ge=0)


class Usage(WireModel):
    """Token accounting across all model calls of one request."""

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def add(self, other: "Usage") -> "Usage":
        """Return the sum of two usage records."""
        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )
