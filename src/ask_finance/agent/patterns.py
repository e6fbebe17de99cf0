"""Multi-step reasoning patterns for ask-finance.

This module provides the two engines the loop reaches through tools:

- DecomposeSynthesizePattern: orchestrator splits a request into typed
  subtasks, workers analyze each independently, a synthesis step merges
  the findings.
- EvaluateImprovePattern: scores a draft against fixed criteria and
  rewrites it until it passes or the iteration cap is reached.

Malformed model output never raises here; it degrades to defaults.
"""

import asyncio
import re
from typing import Any, Mapping, Optional, Sequence

from ..config.schemas import PatternConfig
from ..models import (
    AnalysisResult,
    Criterion,
    Evaluation,
    EvaluationScore,
    ImprovementResult,
    SubTask,
    SubTaskType,
    WorkerResult,
)
from ..utils import extract_all, extract_tag, get_logger, parse_bullets, parse_json_block
from .llm import ReasoningModel
from .prompts import (
    DEFAULT_SUBTASKS,
    evaluation_prompt,
    improve_prompt,
    orchestrator_prompt,
    synthesis_prompt,
    worker_prompt,
)

logger = get_logger(__name__)

DEFAULT_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10


def _parse_priority(raw: str, default: int) -> int:
    match = re.search(r"\d+", raw or "")
    if not match:
        return default
    return max(int(match.group()), 1)


def _normalize(text: str) -> str:
    return re.sub(r"[^a-z0-9 ]", "", re.sub(r"\s+", " ", text.lower())).strip()


def dedupe(items: Sequence[str]) -> list[str]:
    """Drop repeated items, comparing case- and punctuation-insensitively."""
    seen: set[str] = set()
    unique = []
    for item in items:
        key = _normalize(item)
        if key and key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


class DecomposeSynthesizePattern:
    """Decompose-Execute-Synthesize engine.

    Attributes:
        model: Reasoning model used for every step
        config: Subtask bounds and worker parallelism
    """

    def __init__(self, model: ReasoningModel, config: Optional[PatternConfig] = None) -> None:
        self.model = model
        self.config = config or PatternConfig()

    @property
    def name(self) -> str:
        return "decompose_synthesize"

    def parse_tasks(self, text: str) -> list[SubTask]:
        """Parse ``<task>`` blocks into subtasks sorted by priority.

        Unknown task types and blocks without a description are skipped.
        The result is cut to ``max_subtasks`` and padded to ``min_subtasks``
        with default subtasks.
        """
        tasks_xml = extract_tag(text, "tasks") or text
        subtasks: list[SubTask] = []
        for position, block in enumerate(extract_all(tasks_xml, "task"), start=1):
            task_type = SubTaskType.parse(extract_tag(block, "type"))
            description = extract_tag(block, "description")
            if task_type is None or not description:
                logger.debug(f"Skipping malformed task block: {block[:80]!r}")
                continue
            priority = _parse_priority(extract_tag(block, "priority"), default=position)
            subtasks.append(SubTask(type=task_type, priority=priority, description=description))

        subtasks.sort(key=lambda task: task.priority)
        subtasks = subtasks[: self.config.max_subtasks]
        return self._pad(subtasks)

    def _pad(self, subtasks: list[SubTask]) -> list[SubTask]:
        if len(subtasks) >= self.config.min_subtasks:
            return subtasks

        if not subtasks:
            logger.warning("Decomposition produced no usable subtasks, using defaults")
        padded = list(subtasks)
        used = {task.type for task in padded}
        next_priority = max((task.priority for task in padded), default=0) + 1
        for task_type, description in DEFAULT_SUBTASKS:
            if len(padded) >= self.config.min_subtasks:
                break
            if task_type in used:
                continue
            padded.append(SubTask(type=task_type, priority=next_priority, description=description))
            next_priority += 1
        return padded

    async def decompose(self, query: str, target_audience: Optional[str] = None) -> tuple[str, list[SubTask]]:
        """Split the request into subtasks.

        Returns:
            Tuple of (decomposition rationale, subtasks sorted by priority)
        """
        text = await self.model.generate(
            orchestrator_prompt(query, target_audience, self.config.min_subtasks, self.config.max_subtasks)
        )
        subtasks = self.parse_tasks(text)
        logger.info(f"[Orchestrator] Identified {len(subtasks)} analysis approaches")
        return extract_tag(text, "analysis"), subtasks

    async def execute(self, query: str, subtask: SubTask, context: Optional[str] = None) -> WorkerResult:
        """Run one worker. Errors propagate; see ``execute_safely``."""
        logger.debug(f"[Worker] Processing: {subtask.type.value}")
        text = await self.model.generate(worker_prompt(query, subtask, context))

        narrative = extract_tag(text, "analysis") or text.strip()
        recommendation = extract_tag(text, "recommendation")
        if recommendation:
            narrative = f"{narrative}\n\nRecommendation: {recommendation}"

        metrics = parse_json_block(extract_tag(text, "metrics"), None)
        return WorkerResult(
            type=subtask.type,
            description=subtask.description,
            narrative=narrative or f"No findings returned for {subtask.type.value}.",
            metrics=metrics if isinstance(metrics, dict) and metrics else None,
        )

    async def execute_safely(self, query: str, subtask: SubTask, context: Optional[str] = None) -> WorkerResult:
        """Run one worker, degrading failures to a placeholder result."""
        try:
            return await self.execute(query, subtask, context)
        except Exception as e:
            logger.warning(f"[Worker] {subtask.type.value} failed: {e}")
            return WorkerResult(
                type=subtask.type,
                description=subtask.description,
                narrative=f"Analysis unavailable: the {subtask.type.value} step could not be completed.",
                degraded=True,
            )

    async def synthesize(
        self,
        query: str,
        results: Sequence[WorkerResult],
        target_audience: Optional[str] = None,
    ) -> str:
        """Merge worker results into one narrative.

        Falls back to the raw response when the expected sections are missing.
        """
        text = await self.model.generate(synthesis_prompt(query, results, target_audience))

        summary = extract_tag(text, "executive_summary")
        if not summary:
            logger.warning("Synthesis response had no executive summary block, using raw text")
            return text.strip() or self._fallback_synthesis(results)

        sections = [summary]
        insights = dedupe(parse_bullets(extract_tag(text, "key_insights")))
        if insights:
            sections.append("Key Insights:\n" + "\n".join(f"- {item}" for item in insights))
        conflicts = extract_tag(text, "conflicts")
        if conflicts and _normalize(conflicts) not in ("none", "no conflicts"):
            sections.append(f"Reconciled Conflicts:\n{conflicts}")
        recommendations = extract_tag(text, "recommendations")
        if recommendations:
            sections.append(f"Recommendations:\n{recommendations}")
        return "\n\n".join(sections)

    @staticmethod
    def _fallback_synthesis(results: Sequence[WorkerResult]) -> str:
        return "\n\n".join(f"{r.type.value}: {r.narrative}" for r in results)

    async def run(
        self,
        query: str,
        target_audience: Optional[str] = None,
        context: Optional[str] = None,
    ) -> AnalysisResult:
        """Decompose, execute every subtask, then synthesize.

        Args:
            query: The user's analytical request
            target_audience: Optional audience hint (executive, analyst, general)
            context: Optional shared document context for the workers

        Returns:
            AnalysisResult with one WorkerResult per SubTask
        """
        analysis, subtasks = await self.decompose(query, target_audience)

        if self.config.parallel_workers:
            results = list(
                await asyncio.gather(*(self.execute_safely(query, task, context) for task in subtasks))
            )
        else:
            results = [await self.execute_safely(query, task, context) for task in subtasks]

        synthesis = await self.synthesize(query, results, target_audience)
        return AnalysisResult(analysis=analysis, subtasks=subtasks, worker_results=results, synthesis=synthesis)


def resolve_criteria(toggles: Optional[Mapping[str, bool]] = None) -> list[Criterion]:
    """Criteria enabled by the caller; every criterion is on unless set False.

    Raises:
        ValueError: If every criterion is disabled
    """
    toggles = toggles or {}
    enabled = [criterion for criterion in Criterion if toggles.get(criterion.value, True)]
    if not enabled:
        raise ValueError("At least one evaluation criterion must be enabled")
    return enabled


def clamp_score(value: Any) -> int:
    """Coerce a model-provided score into 1-10, defaulting to 5."""
    if isinstance(value, list) and value:
        value = value[0]
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return DEFAULT_SCORE
    return min(max(score, MIN_SCORE), MAX_SCORE)


def parse_scores(text: str, criteria: Sequence[Criterion]) -> tuple[dict[str, int], bool]:
    """Read the ``<scores>`` block.

    Returns:
        Tuple of (score per enabled criterion, whether the block was readable)
    """
    raw = parse_json_block(extract_tag(text, "scores"), None)
    if not isinstance(raw, dict):
        return {criterion.value: DEFAULT_SCORE for criterion in criteria}, False
    lowered = {str(key).lower(): value for key, value in raw.items()}
    return {criterion.value: clamp_score(lowered.get(criterion.value)) for criterion in criteria}, True


def parse_feedback(text: str, criteria: Sequence[Criterion]) -> dict[str, str]:
    """Read the ``<feedback>`` block as criterion -> text.

    Unstructured feedback is kept whole under ``general``.
    """
    block = extract_tag(text, "feedback")
    raw = parse_json_block(block, None)
    if isinstance(raw, dict):
        lowered = {str(key).lower(): value for key, value in raw.items()}
        feedback = {c.value: str(lowered[c.value]) for c in criteria if lowered.get(c.value)}
        if feedback:
            return feedback
    return {"general": block} if block else {}


class EvaluateImprovePattern:
    """Evaluate-Improve engine.

    Strictly sequential: each rewrite is evaluated before the next one.
    """

    def __init__(self, model: ReasoningModel, config: Optional[PatternConfig] = None) -> None:
        self.model = model
        self.config = config or PatternConfig()

    @property
    def name(self) -> str:
        return "evaluate_improve"

    async def evaluate(self, report: str, criteria: Optional[Sequence[Criterion]] = None) -> Evaluation:
        """Score a draft against the enabled criteria."""
        criteria = list(criteria or Criterion)
        text = await self.model.generate(evaluation_prompt(report, criteria))
        scores, parsed = parse_scores(text, criteria)
        if not parsed:
            logger.warning("Evaluation response had no readable scores, defaulting to 5")
        evaluation = Evaluation(
            score=EvaluationScore(scores=scores),
            feedback=parse_feedback(text, criteria),
            parsed=parsed,
        )
        logger.debug(f"[Evaluator] {evaluation.verdict.value} {scores}")
        return evaluation

    async def improve(self, report: str, evaluation: Evaluation) -> str:
        """Rewrite the draft to address the evaluation feedback."""
        feedback = evaluation.feedback_text() or "Improve accuracy, completeness, clarity and actionability."
        text = await self.model.generate(improve_prompt(report, feedback))
        return extract_tag(text, "improved_report") or text.strip() or report

    async def run(
        self,
        report: str,
        optimize: bool = False,
        max_iterations: Optional[int] = None,
        criteria: Optional[Sequence[Criterion]] = None,
    ) -> ImprovementResult:
        """Evaluate, and when asked, improve until passing or capped.

        Args:
            report: Draft artifact
            optimize: Whether to rewrite a non-passing draft
            max_iterations: Improvement cap (defaults to the configured cap)
            criteria: Enabled criteria (all by default)

        Returns:
            ImprovementResult with the final artifact and evaluation
        """
        criteria = list(criteria or Criterion)
        cap = max_iterations if max_iterations is not None else self.config.max_improve_iterations
        cap = max(cap, 1)

        initial = await self.evaluate(report, criteria)
        current, evaluation, iterations = report, initial, 0

        if optimize:
            while not evaluation.passed and iterations < cap:
                current = await self.improve(current, evaluation)
                iterations += 1
                evaluation = await self.evaluate(current, criteria)
                logger.info(f"[Optimizer] Iteration {iterations}/{cap}: {evaluation.verdict.value}")

        return ImprovementResult(
            report=current,
            iterations=iterations,
            max_iterations=cap,
            initial=initial,
            final=evaluation,
        )
