"""Entities of the multi-step reasoning engines.

Decompose-execute-synthesize works on SubTask and WorkerResult; the
evaluate-improve engine works on EvaluationScore and EvaluationVerdict.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SubTaskType(str, Enum):
    """Fixed enumeration of analysis approaches."""

    VARIANCE = "variance_analysis"
    TREND = "trend_analysis"
    RATIO = "ratio_analysis"
    COMPARISON = "comparison"
    FORECAST = "forecast"
    RISK = "risk_assessment"
    SUMMARY = "executive_summary"

    @classmethod
    def parse(cls, value: str) -> Optional["SubTaskType"]:
        """Resolve a type name in either long or short form.

        Accepts ``variance_analysis`` as well as ``variance``; returns None
        for anything outside the enumeration.
        """
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        return _SHORT_NAMES.get(normalized)


_SHORT_NAMES = {
    "risk": SubTaskType.RISK,
    "summary": SubTaskType.SUMMARY,
    "variance": SubTaskType.VARIANCE,
    "trend": SubTaskType.TREND,
    "ratio": SubTaskType.RATIO,
}


class SubTask(BaseModel):
    """A decomposed unit of a complex analytical request.

    Attributes:
        type: Analysis approach
        priority: 1 is highest
        description: Instructions for the worker
    """

    model_config = ConfigDict(frozen=True)

    type: SubTaskType
    priority: int = Field(default=1, ge=1)
    description: str


class WorkerResult(BaseModel):
    """Finding produced by executing one SubTask.

    Attributes:
        type: Type of the originating SubTask
        description: Description of the originating SubTask
        narrative: Analysis text (placeholder when degraded)
        metrics: Optional structured metrics
        degraded: Whether execution failed and this is a placeholder
    """

    type: SubTaskType
    description: str
    narrative: str
    metrics: Optional[dict[str, Any]] = None
    degraded: bool = False


class AnalysisResult(BaseModel):
    """Output of the decompose-execute-synthesize engine."""

    analysis: str = Field(default="", description="Decomposition rationale")
    subtasks: list[SubTask]
    worker_results: list[WorkerResult]
    synthesis: str


class Criterion(str, Enum):
    """Report evaluation criteria."""

    ACCURACY = "accuracy"
    COMPLETENESS = "completeness"
    CLARITY = "clarity"
    ACTIONABILITY = "actionability"


CRITERION_QUESTIONS = {
    Criterion.ACCURACY: "Are numbers and calculations correct?",
    Criterion.COMPLETENESS: "Does it cover all relevant aspects?",
    Criterion.CLARITY: "Is it easy to understand for the target audience?",
    Criterion.ACTIONABILITY: "Does it provide clear recommendations?",
}


class EvaluationVerdict(str, Enum):
    PASS = "PASS"
    NEEDS_IMPROVEMENT = "NEEDS_IMPROVEMENT"
    FAIL = "FAIL"


PASS_THRESHOLD = 7
FAIL_THRESHOLD = 3


def derive_verdict(scores: dict[str, int]) -> EvaluationVerdict:
    """Derive the verdict from criterion scores.

    FAIL if any score is at or below 3, PASS if every score is at least 7,
    otherwise NEEDS_IMPROVEMENT. An empty score set cannot pass.
    """
    if not scores:
        return EvaluationVerdict.NEEDS_IMPROVEMENT
    if any(score <= FAIL_THRESHOLD for score in scores.values()):
        return EvaluationVerdict.FAIL
    if all(score >= PASS_THRESHOLD for score in scores.values()):
        return EvaluationVerdict.PASS
    return EvaluationVerdict.NEEDS_IMPROVEMENT


class EvaluationScore(BaseModel):
    """Criterion scores (1-10) for one draft."""

    scores: dict[str, int] = Field(default_factory=dict)

    @property
    def verdict(self) -> EvaluationVerdict:
        return derive_verdict(self.scores)


class Evaluation(BaseModel):
    """One evaluation of a draft artifact.

    Attributes:
        score: Criterion scores
        feedback: Free-text feedback keyed by criterion
        parsed: Whether the structured scores block was readable
    """

    score: EvaluationScore
    feedback: dict[str, str] = Field(default_factory=dict)
    parsed: bool = True

    @property
    def verdict(self) -> EvaluationVerdict:
        return self.score.verdict

    @property
    def passed(self) -> bool:
        return self.verdict == EvaluationVerdict.PASS

    def feedback_text(self) -> str:
        """Feedback flattened to one block, one criterion per paragraph."""
        return "\n\n".join(f"{name}: {text}" for name, text in self.feedback.items() if text)


class ImprovementResult(BaseModel):
    """Terminal output of the evaluate-improve engine.

    Attributes:
        report: Final artifact text
        iterations: Improvement rounds actually performed
        max_iterations: Configured cap
        initial: Evaluation of the original draft
        final: Evaluation of the returned artifact
    """

    report: str
    iterations: int = Field(default=0, ge=0)
    max_iterations: int
    initial: Evaluation
    final: Evaluation

    @property
    def passed(self) -> bool:
        return self.final.passed

    @property
    def gave_up(self) -> bool:
        """True when the cap was reached without a passing verdict."""
        return not self.passed and self.iterations >= self.max_iterations
