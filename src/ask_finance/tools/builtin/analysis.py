"""Tools backed by the multi-step reasoning engines."""

from typing import TYPE_CHECKING, Any, Literal, Optional

from pydantic import Field, field_validator

from ...models import (
    AnalysisData,
    AnalysisOutput,
    Criterion,
    EvaluationData,
    EvaluationOutput,
    WireModel,
    WorkerFinding,
)
from ..base import FinanceTool

if TYPE_CHECKING:
    from ...agent.patterns import DecomposeSynthesizePattern, EvaluateImprovePattern


class ComplexAnalysisInput(WireModel):
    query: str = Field(..., min_length=1)
    target_audience: Optional[Literal["executive", "analyst", "general"]] = None


class ComplexAnalysisTool(FinanceTool):
    input_model = ComplexAnalysisInput

    def __init__(self, engine: "DecomposeSynthesizePattern") -> None:
        self.engine = engine

    @property
    def name(self) -> str:
        return "complex_analysis"

    @property
    def description(self) -> str:
        return (
            "Perform comprehensive multi-perspective financial analysis. Breaks complex questions into "
            "specialized analyses (variance, trend, ratio, comparison, forecast, risk) and synthesizes "
            "the findings. Use for questions that need more than one analytical angle."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The complex financial question to analyze"},
                "targetAudience": {
                    "type": "string",
                    "enum": ["executive", "analyst", "general"],
                    "description": "Who the analysis is for",
                },
            },
            "required": ["query"],
        }

    async def run(self, params: ComplexAnalysisInput) -> AnalysisOutput:
        result = await self.engine.run(params.query, params.target_audience)
        findings = [
            WorkerFinding(
                type=worker.type.value,
                description=worker.description,
                findings=worker.narrative,
                metrics=worker.metrics,
                degraded=worker.degraded,
            )
            for worker in result.worker_results
        ]
        return AnalysisOutput(
            data=AnalysisData(summary=result.synthesis, analysis=result.analysis, worker_results=findings)
        )


class EvaluateReportInput(WireModel):
    report: str = Field(..., min_length=1)
    optimize: bool = False
    max_iterations: Optional[int] = Field(default=None, ge=1, le=10)
    criteria: Optional[dict[str, bool]] = None

    @field_validator("criteria")
    @classmethod
    def at_least_one_criterion(cls, v: Optional[dict[str, bool]]) -> Optional[dict[str, bool]]:
        if v is None:
            return v
        known = {criterion.value for criterion in Criterion}
        unknown = set(v) - known
        if unknown:
            raise ValueError(f"unknown criteria: {', '.join(sorted(unknown))}")
        if not any(v.get(name, True) for name in known):
            raise ValueError("at least one criterion must be enabled")
        return v

    def enabled_criteria(self) -> list[Criterion]:
        toggles = self.criteria or {}
        return [criterion for criterion in Criterion if toggles.get(criterion.value, True)]


class EvaluateReportTool(FinanceTool):
    input_model = EvaluateReportInput

    def __init__(self, engine: "EvaluateImprovePattern") -> None:
        self.engine = engine

    @property
    def name(self) -> str:
        return "evaluate_report"

    @property
    def description(self) -> str:
        return (
            "Evaluate a financial report for accuracy, completeness, clarity and actionability, scoring "
            "each 1-10. Set optimize to iteratively improve the report until it passes."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "report": {"type": "string", "description": "The report text to evaluate"},
                "optimize": {"type": "boolean", "description": "Iteratively improve the report"},
                "maxIterations": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 10,
                    "description": "Maximum improvement iterations (default 3)",
                },
                "criteria": {
                    "type": "object",
                    "properties": {criterion.value: {"type": "boolean"} for criterion in Criterion},
                    "description": "Criteria to evaluate (all enabled by default)",
                },
            },
            "required": ["report"],
        }

    async def run(self, params: EvaluateReportInput) -> EvaluationOutput:
        result = await self.engine.run(
            params.report,
            optimize=params.optimize,
            max_iterations=params.max_iterations,
            criteria=params.enabled_criteria(),
        )
        final = result.final
        data = EvaluationData(
            status=final.verdict.value,
            scores=final.score.scores,
            feedback=final.feedback,
            passed=result.passed,
        )
        if params.optimize:
            data.iterations = result.iterations
            data.max_iterations = result.max_iterations
            data.initial_status = result.initial.verdict.value
            data.initial_scores = result.initial.score.scores
            data.optimized_report = result.report
        return EvaluationOutput(data=data)
