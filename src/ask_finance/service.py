"""Request handling for ask-finance.

ChatService ties the collaborators together for one chat request:

1. validate the request (before any event is produced)
2. get or create the thread, load its history, save the user turn
3. assemble the ContextBundle with the request's cache epoch
4. run the tool-calling loop, yielding its events
5. hand the answer text, citations and last canvas artifact to the store
"""

import asyncio
import time
from typing import Any, AsyncIterator, Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from .agent import (
    FINANCE_SYSTEM_PROMPT,
    DecomposeSynthesizePattern,
    EvaluateImprovePattern,
    LLMClient,
    ReasoningModel,
    ToolCallingLoop,
)
from .analysis import AnalysisService
from .config.schemas import EngineConfig
from .context import ContextBundle, ContextWindowManager, cache_epoch
from .errors import RequestValidationError, ThreadNotFoundError
from .models import (
    ChatRequest,
    KnowledgeSummary,
    LoopOutcome,
    LoopState,
    StreamEvent,
    ToolResultEvent,
    ToolStartEvent,
    Turn,
)
from .services import (
    ConversationStore,
    DocumentAnalyzer,
    ImageGenerator,
    InMemoryConversationStore,
    InMemoryRetrievalProvider,
    KnowledgeProvider,
    ModelDocumentAnalyzer,
    OpenAIImageGenerator,
    RetrievalProvider,
    StoredTurn,
    Thread,
)
from .streaming import StreamEmitter
from .tools import ToolRegistry, build_default_registry
from .tools.base import format_validation_error
from .utils import generate_request_id, get_logger

logger = get_logger(__name__)

TITLE_CHARS = 50


def thread_title(message: str) -> str:
    """First 50 characters of the opening message, ellipsized."""
    message = message.strip()
    if len(message) > TITLE_CHARS:
        return message[:TITLE_CHARS] + "..."
    return message


def tool_call_log(emitter: StreamEmitter) -> list[dict[str, Any]]:
    """Tool invocations of one request, paired with their outputs, in call order."""
    calls: dict[str, dict[str, Any]] = {}
    for event in emitter.history:
        if isinstance(event, ToolStartEvent):
            calls[event.call_id] = {"name": event.tool, "input": event.input}
        elif isinstance(event, ToolResultEvent) and event.call_id in calls:
            calls[event.call_id]["output"] = event.result.to_wire()
    return list(calls.values())


class PreparedChat(BaseModel):
    """A validated request whose user turn is saved and whose context is built."""

    request: ChatRequest
    thread: Thread
    bundle: ContextBundle
    created: bool = False
    request_id: str = Field(default_factory=generate_request_id)

    def log_context(self) -> dict[str, str]:
        return {"thread_id": self.thread.id, "request_id": self.request_id}


class ChatService:
    """Runs chat requests end to end.

    Attributes:
        loop: Tool-calling loop
        context: Context window manager
        store: Conversation store
        knowledge: Optional knowledge-summary provider
        analysis: Direct access to the analysis engines
    """

    def __init__(
        self,
        loop: ToolCallingLoop,
        context: ContextWindowManager,
        store: ConversationStore,
        knowledge: Optional[KnowledgeProvider] = None,
        clock: Callable[[], float] = time.time,
        analysis: Optional[AnalysisService] = None,
    ) -> None:
        self.loop = loop
        self.context = context
        self.store = store
        self.knowledge = knowledge
        self.clock = clock
        self.analysis = analysis

    @property
    def registry(self) -> ToolRegistry:
        return self.loop.registry

    @staticmethod
    def validate(payload: ChatRequest | dict[str, Any]) -> ChatRequest:
        """Validate an inbound request.

        Raises:
            RequestValidationError: If the message is missing or blank
        """
        if isinstance(payload, ChatRequest):
            return payload
        try:
            return ChatRequest.model_validate(payload)
        except ValidationError as e:
            raise RequestValidationError(format_validation_error(e)) from e

    async def prepare(self, payload: ChatRequest | dict[str, Any], user_id: str) -> PreparedChat:
        """Everything that happens before the first stream event.

        Args:
            payload: Inbound request
            user_id: Authenticated user

        Returns:
            PreparedChat ready to run

        Raises:
            RequestValidationError: If the request is malformed
            ThreadNotFoundError: If the thread does not exist for this user
        """
        request = self.validate(payload)

        created = False
        if request.thread_id:
            thread = await self.store.get_thread(request.thread_id, user_id)
            if thread is None:
                raise ThreadNotFoundError(f"Thread not found: {request.thread_id}")
        else:
            thread = await self.store.create_thread(user_id, thread_title(request.message))
            created = True

        # History is read before the new user turn is saved
        history = [stored.turn for stored in await self.store.list_turns(thread.id)]
        knowledge = await self._fetch_knowledge(user_id)
        epoch = cache_epoch(self.clock(), self.context.config.cache_epoch_seconds)
        bundle = self.context.build(history, request.message, knowledge=knowledge, epoch=epoch)

        await self.store.append_turn(thread.id, StoredTurn(turn=Turn(role="user", text=request.message)))
        return PreparedChat(request=request, thread=thread, bundle=bundle, created=created)

    async def _fetch_knowledge(self, user_id: str) -> Optional[KnowledgeSummary]:
        if self.knowledge is None:
            return None
        try:
            return await self.knowledge.fetch_summary(user_id)
        except Exception as e:
            logger.warning(f"Knowledge summary unavailable for {user_id}: {e}")
            return None

    async def run(
        self,
        prepared: PreparedChat,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Run the loop and yield its events as they are emitted.

        If the consumer stops early, the loop task is cancelled. Whatever was
        gathered is persisted in every case.
        """
        emitter = StreamEmitter(prepared.thread.id)
        logger.info(
            f"Running chat request with {len(prepared.bundle.turns)} turn(s), "
            f"{prepared.bundle.omitted} omitted",
            extra=prepared.log_context(),
        )
        task = asyncio.create_task(
            self.loop.run(prepared.bundle, emitter, cancel_event, session_id=prepared.request.session_id)
        )
        try:
            async for event in emitter:
                yield event
        finally:
            if not task.done():
                task.cancel()
            outcome = await self._settle(task, emitter)
            await self.persist(prepared, outcome, emitter)

    @staticmethod
    async def _settle(task: "asyncio.Task[LoopOutcome]", emitter: StreamEmitter) -> LoopOutcome:
        try:
            return await task
        except asyncio.CancelledError:
            logger.info("Request cancelled before the loop finished")
            return LoopOutcome(
                state=LoopState.FAILED,
                text=emitter.text,
                citations=list(emitter.citations),
                artifacts=list(emitter.artifacts),
                error="Request cancelled",
                error_kind="cancelled",
            )

    async def persist(self, prepared: PreparedChat, outcome: LoopOutcome, emitter: StreamEmitter) -> None:
        """Save the assistant turn when there is any text or side artifact."""
        if not outcome.has_content():
            logger.debug(f"Nothing to persist for thread {prepared.thread.id}")
            return

        stored = StoredTurn(
            turn=Turn(role="assistant", text=outcome.text),
            citations=outcome.citation_payload(),
            canvas=outcome.last_artifact,
            tool_calls=tool_call_log(emitter),
        )
        await self.store.append_turn(prepared.thread.id, stored)
        await self.store.touch_thread(prepared.thread.id)
        logger.debug(
            f"Persisted assistant turn for thread {prepared.thread.id} "
            f"({len(outcome.text)} chars, {len(outcome.citations)} citations, state={outcome.state.value})",
            extra=prepared.log_context(),
        )

    async def stream(
        self,
        payload: ChatRequest | dict[str, Any],
        user_id: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Prepare and run one request.

        Validation and thread errors are raised before the first event.
        """
        prepared = await self.prepare(payload, user_id)
        async for event in self.run(prepared, cancel_event):
            yield event


def build_service(
    config: EngineConfig,
    *,
    model: Optional[ReasoningModel] = None,
    store: Optional[ConversationStore] = None,
    knowledge: Optional[KnowledgeProvider] = None,
    retrieval: Optional[RetrievalProvider] = None,
    image_generator: Optional[ImageGenerator] = None,
    document_analyzer: Optional[DocumentAnalyzer] = None,
) -> ChatService:
    """Wire a ChatService from configuration.

    Collaborators not given are built from the configuration, with
    in-memory stores for local runs.
    """
    model = model or LLMClient(config.llm)
    store = store or InMemoryConversationStore()
    document_analyzer = document_analyzer or ModelDocumentAnalyzer(model)
    decomposer = DecomposeSynthesizePattern(model, config.patterns)
    evaluator = EvaluateImprovePattern(model, config.patterns)
    registry = build_default_registry(
        retrieval=retrieval or InMemoryRetrievalProvider(),
        image_generator=image_generator or OpenAIImageGenerator(config.images, config.llm),
        document_analyzer=document_analyzer,
        decomposer=decomposer,
        evaluator=evaluator,
        spreadsheet_root=config.spreadsheet_root,
        tool_timeout=config.loop.tool_timeout_seconds,
    )
    logger.info(f"Registered {len(registry.list_all())} tools")
    return ChatService(
        loop=ToolCallingLoop(model, registry, config.loop),
        context=ContextWindowManager(config.context, FINANCE_SYSTEM_PROMPT),
        store=store,
        knowledge=knowledge,
        analysis=AnalysisService(model, decomposer, evaluator, document_analyzer, store),
    )
