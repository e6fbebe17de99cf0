"""Agent module for ask-finance."""

from .llm import LLMClient, ModelResponse, ReasoningModel, to_openai_message
from .loop import ToolCallingLoop
from .patterns import (
    DecomposeSynthesizePattern,
    EvaluateImprovePattern,
    clamp_score,
    parse_feedback,
    parse_scores,
    resolve_criteria,
)
from .prompts import FINANCE_SYSTEM_PROMPT
from .state_machine import LOOP_GRAPH, LoopStateMachine, build_loop_graph

__all__ = [
    "LLMClient",
    "ModelResponse",
    "ReasoningModel",
    "to_openai_message",
    "ToolCallingLoop",
    "LoopStateMachine",
    "LOOP_GRAPH",
    "build_loop_graph",
    "DecomposeSynthesizePattern",
    "EvaluateImprovePattern",
    "clamp_score",
    "parse_feedback",
    "parse_scores",
    "resolve_criteria",
    "FINANCE_SYSTEM_PROMPT",
]
