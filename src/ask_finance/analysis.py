"""Direct access to the analysis engines.

AnalysisService answers one analysis request without the tool-calling
loop: orchestrated analysis goes to the decompose-synthesize engine,
evaluation to the evaluate-improve engine, and documents to the document
analyzer. It also extracts metrics from free text.
"""

from typing import Any, Optional

from pydantic import ValidationError

from .agent import DecomposeSynthesizePattern, EvaluateImprovePattern, ReasoningModel, resolve_criteria
from .agent.prompts import metrics_prompt
from .context import truncate_text
from .errors import RequestValidationError, ThreadNotFoundError
from .models import AnalysisRequest, Evaluation, KeyMetric, WorkerFinding
from .services import ConversationStore, DocumentAnalyzer
from .services.documents import validate_items
from .tools.base import format_validation_error
from .utils import extract_tag, get_logger, parse_json_block

logger = get_logger(__name__)

HISTORY_CONTEXT_CHARS = 8000


def evaluation_payload(evaluation: Evaluation) -> dict[str, Any]:
    return {
        "status": evaluation.verdict.value,
        "scores": evaluation.score.scores,
        "feedback": evaluation.feedback,
        "passed": evaluation.passed,
    }


class AnalysisService:
    """Routes analysis requests to the engines.

    Attributes:
        model: Reasoning model (used for metric extraction)
        decomposer: Decompose-execute-synthesize engine
        evaluator: Evaluate-improve engine
        document_analyzer: Document extraction backend
        store: Conversation store, for thread history context
    """

    def __init__(
        self,
        model: ReasoningModel,
        decomposer: DecomposeSynthesizePattern,
        evaluator: EvaluateImprovePattern,
        document_analyzer: DocumentAnalyzer,
        store: ConversationStore,
    ) -> None:
        self.model = model
        self.decomposer = decomposer
        self.evaluator = evaluator
        self.document_analyzer = document_analyzer
        self.store = store

    @staticmethod
    def validate(payload: AnalysisRequest | dict[str, Any]) -> AnalysisRequest:
        """Validate an inbound analysis request.

        Raises:
            RequestValidationError: If the type is unknown or its input is missing
        """
        if isinstance(payload, AnalysisRequest):
            return payload
        try:
            return AnalysisRequest.model_validate(payload)
        except ValidationError as e:
            raise RequestValidationError(format_validation_error(e)) from e

    async def run(self, payload: AnalysisRequest | dict[str, Any], user_id: str) -> dict[str, Any]:
        """Run one analysis request.

        Args:
            payload: Inbound request
            user_id: Authenticated user

        Returns:
            JSON-compatible result with camelCase keys

        Raises:
            RequestValidationError: If the request is malformed
            ThreadNotFoundError: If the context thread does not exist for this user
            ModelCallError: If a model call the engine cannot degrade fails
        """
        request = self.validate(payload)
        logger.info(f"Running {request.type} analysis")

        if request.type == "orchestrated":
            return await self._orchestrated(request, user_id)
        if request.type == "evaluate":
            return await self._evaluate(request)
        return await self._document(request)

    async def build_context(self, request: AnalysisRequest, user_id: str) -> Optional[str]:
        """Shared worker context: the request's own context plus the thread history."""
        parts = [request.context.strip()] if request.context and request.context.strip() else []

        if request.thread_id:
            thread = await self.store.get_thread(request.thread_id, user_id)
            if thread is None:
                raise ThreadNotFoundError(f"Thread not found: {request.thread_id}")
            turns = await self.store.list_turns(thread.id)
            history = "\n".join(f"{stored.turn.role}: {stored.turn.text}" for stored in turns if stored.turn.text)
            if history:
                # Keep the most recent part of long conversations
                recent = history[-HISTORY_CONTEXT_CHARS:]
                parts.append(f"Conversation so far ({thread.title}):\n{recent}")

        return "\n\n".join(parts) or None

    async def _orchestrated(self, request: AnalysisRequest, user_id: str) -> dict[str, Any]:
        context = await self.build_context(request, user_id)
        result = await self.decomposer.run(request.query, request.options.target_audience, context)
        findings = [
            WorkerFinding(
                type=worker.type.value,
                description=worker.description,
                findings=worker.narrative,
                metrics=worker.metrics,
                degraded=worker.degraded,
            ).to_wire()
            for worker in result.worker_results
        ]
        return {
            "success": True,
            "analysis": result.analysis,
            "workerResults": findings,
            "synthesis": result.synthesis,
        }

    async def _evaluate(self, request: AnalysisRequest) -> dict[str, Any]:
        try:
            criteria = resolve_criteria(request.options.evaluation_criteria)
        except ValueError as e:
            raise RequestValidationError(str(e)) from e

        # A request without maxIterations is scored only
        max_iterations = request.options.max_iterations
        result = await self.evaluator.run(
            request.report,
            optimize=max_iterations is not None,
            max_iterations=max_iterations,
            criteria=criteria,
        )
        if max_iterations is None or result.initial.passed:
            return {"success": True, "evaluation": evaluation_payload(result.initial)}

        return {
            "success": True,
            "initialEvaluation": evaluation_payload(result.initial),
            "optimizedReport": result.report,
            "iterations": result.iterations,
            "finalScore": result.final.score.scores,
            "finalEvaluation": evaluation_payload(result.final),
        }

    async def _document(self, request: AnalysisRequest) -> dict[str, Any]:
        options = request.options
        data = await self.document_analyzer.analyze(
            request.document_base64,
            request.document_mime_type,
            extract_charts=options.extract_charts,
            extract_tables=options.extract_tables,
            generate_narration=options.generate_narration,
            question=request.query,
        )
        return {"success": True, **data.to_wire()}

    async def extract_metrics(self, text: str, focus: Optional[str] = None) -> list[KeyMetric]:
        """Financial metrics mentioned in free text.

        Raises:
            RequestValidationError: If the text is blank
        """
        if not text.strip():
            raise RequestValidationError("Text parameter is required")
        response = await self.model.generate(metrics_prompt(truncate_text(text, HISTORY_CONTEXT_CHARS), focus))
        return validate_items(parse_json_block(extract_tag(response, "metrics"), []), KeyMetric)
