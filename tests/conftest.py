"""Test configuration and fixtures for ask-finance tests.

This module provides scripted reasoning-model fakes and in-memory
collaborators shared by the unit and integration tests.
"""

from pathlib import Path
from typing import Any, Callable, Optional, Union

import pytest

from ask_finance.agent import DecomposeSynthesizePattern, EvaluateImprovePattern, ModelResponse
from ask_finance.config import ContextConfig, EngineConfig, LoopConfig, PatternConfig
from ask_finance.models import DocumentAnalysisData, Message, ToolCall, Usage
from ask_finance.services import GeneratedImage, InMemoryConversationStore, InMemoryRetrievalProvider
from ask_finance.tools import build_default_registry

Scripted = Union[ModelResponse, Exception]
Generation = Union[str, Exception, Callable[[Any], str]]


def text_response(text: str, chunks: Optional[list[str]] = None, tokens: int = 10) -> ModelResponse:
    """A final (tool-free) model response."""
    return ModelResponse(
        text=text,
        text_chunks=chunks if chunks is not None else [text],
        usage=Usage(input_tokens=tokens, output_tokens=tokens),
        finish_reason="stop",
    )


def tool_response(*calls: tuple[str, dict[str, Any]], text: str = "", start: int = 1) -> ModelResponse:
    """A model response requesting the given (name, arguments) calls."""
    return ModelResponse(
        text=text,
        text_chunks=[text] if text else [],
        tool_calls=[
            ToolCall(id=f"call_{index}", name=name, arguments=arguments)
            for index, (name, arguments) in enumerate(calls, start=start)
        ],
        usage=Usage(input_tokens=5, output_tokens=5),
        finish_reason="tool_calls",
    )


class ScriptedModel:
    """ReasoningModel fake.

    ``complete`` pops queued responses; ``generate`` pops queued generations,
    or delegates to ``responder`` when one is given. Exceptions in either
    queue are raised.
    """

    def __init__(
        self,
        responses: Optional[list[Scripted]] = None,
        generations: Optional[list[Generation]] = None,
        responder: Optional[Callable[[Any], str]] = None,
    ) -> None:
        self.responses = list(responses or [])
        self.generations = list(generations or [])
        self.responder = responder
        self.complete_calls: list[list[Message]] = []
        self.offered_tools: list[Optional[list[dict[str, Any]]]] = []
        self.prompts: list[Any] = []

    async def complete(
        self,
        messages: list[Message],
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> ModelResponse:
        self.complete_calls.append(list(messages))
        self.offered_tools.append(tools)
        if not self.responses:
            raise AssertionError("ScriptedModel ran out of responses")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def generate(self, prompt: Any, system: Optional[str] = None, max_tokens: Optional[int] = None) -> str:
        self.prompts.append(prompt)
        if self.responder is not None:
            return self.responder(prompt)
        if not self.generations:
            raise AssertionError("ScriptedModel ran out of generations")
        item = self.generations.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(prompt)
        return item


class FakeImageGenerator:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> GeneratedImage:
        self.prompts.append(prompt)
        return GeneratedImage(image_data="aW1hZ2U=", prompt=prompt)


class FakeDocumentAnalyzer:
    async def analyze(self, document_base64: str, mime_type: str, **kwargs: Any) -> DocumentAnalysisData:
        return DocumentAnalysisData(summary=f"Analyzed {mime_type}", document_type="report")


def make_registry(model: ScriptedModel, retrieval: Any = None, root: Path = Path("."), tool_timeout: float = 5.0):
    """Registry with all ten tools wired to fakes."""
    patterns = PatternConfig()
    return build_default_registry(
        retrieval=retrieval or InMemoryRetrievalProvider(),
        image_generator=FakeImageGenerator(),
        document_analyzer=FakeDocumentAnalyzer(),
        decomposer=DecomposeSynthesizePattern(model, patterns),
        evaluator=EvaluateImprovePattern(model, patterns),
        spreadsheet_root=root,
        tool_timeout=tool_timeout,
    )


@pytest.fixture
def context_config():
    """Context budgets at their defaults."""
    return ContextConfig()


@pytest.fixture
def loop_config():
    """Loop settings with a short overall budget."""
    return LoopConfig(max_iterations=5, request_timeout_seconds=5.0, tool_timeout_seconds=2.0)


@pytest.fixture
def engine_config(tmp_path, loop_config):
    """Engine configuration rooted in a temporary directory."""
    return EngineConfig(loop=loop_config, spreadsheet_root=tmp_path)


@pytest.fixture
def retrieval():
    """Retrieval index holding one quarterly report."""
    provider = InMemoryRetrievalProvider()
    provider.add_document(
        "doc-1",
        "Q3 Report.pdf",
        [
            "Q3 revenue grew 12% year over year to $4.2M driven by subscription sales.",
            "Operating expenses rose 8% while EBITDA margin improved to 21%.",
        ],
    )
    return provider


@pytest.fixture
def store():
    """Empty in-memory conversation store."""
    return InMemoryConversationStore()
