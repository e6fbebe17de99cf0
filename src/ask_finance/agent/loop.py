"""Bounded tool-calling loop.

The loop alternates between a model call and a round of tool execution
until the model answers without requesting tools, or a failure ends it:

    awaiting_model -> executing_tools -> awaiting_model -> ... -> done | failed

Every transition is checked against the state graph in ``state_machine``.
All events reach the caller through a StreamEmitter; exactly one terminal
event is emitted per run.
"""

import asyncio
from typing import Optional

from ..config.schemas import LoopConfig
from ..context import ContextBundle
from ..errors import MaxIterationsExceededError, ModelCallError, RequestCancelledError, RequestTimeoutError
from ..models import LoopOutcome, LoopState, Message, ToolCall, ToolResult, Usage
from ..streaming import StreamEmitter
from ..streaming.emitter import ErrorKind
from ..tools import ToolRegistry
from ..utils import TimeoutError, get_logger, wait_with_timeout
from .llm import ReasoningModel
from .state_machine import LoopStateMachine

logger = get_logger(__name__)


class _RunProgress:
    """Mutable counters of one run, kept outside the timeout boundary."""

    def __init__(self) -> None:
        self.usage = Usage()
        self.iterations = 0


class ToolCallingLoop:
    """Runs one request against the reasoning model and the tool registry.

    Attributes:
        model: Reasoning model
        registry: Tools offered to the model
        config: Iteration cap and timeouts
    """

    def __init__(
        self,
        model: ReasoningModel,
        registry: ToolRegistry,
        config: Optional[LoopConfig] = None,
    ) -> None:
        self.model = model
        self.registry = registry
        self.config = config or LoopConfig()

    async def run(
        self,
        bundle: ContextBundle,
        emitter: StreamEmitter,
        cancel_event: Optional[asyncio.Event] = None,
        session_id: Optional[str] = None,
    ) -> LoopOutcome:
        """Run the loop to a terminal state.

        Terminal failures are reported through a single ``error`` event and
        the returned outcome; they are not raised. Citations and artifacts
        gathered before a failure stay in the outcome.

        Args:
            bundle: Bounded context for the first model call
            emitter: Event channel of this request
            cancel_event: Set by the caller to stop at the next suspension point
            session_id: Opaque hint echoed on the ``done`` event

        Returns:
            LoopOutcome in state done or failed
        """
        machine = LoopStateMachine()
        progress = _RunProgress()

        try:
            await self._bounded(bundle, emitter, machine, progress, cancel_event)
        except MaxIterationsExceededError as e:
            return self._fail(machine, progress, emitter, str(e), "max_iterations")
        except ModelCallError as e:
            return self._fail(machine, progress, emitter, str(e), "model_error")
        except RequestCancelledError as e:
            return self._fail(machine, progress, emitter, str(e), "cancelled")
        except RequestTimeoutError as e:
            return self._fail(machine, progress, emitter, str(e), "timeout")
        except asyncio.CancelledError:
            emitter.close_with_error("Request cancelled", "cancelled")
            raise
        except Exception as e:
            logger.exception(f"Tool-calling loop crashed: {e}")
            return self._fail(machine, progress, emitter, f"Internal error: {e}", "internal")

        emitter.done(progress.usage, iterations=progress.iterations, session_id=session_id)
        logger.info(
            f"Loop done after {progress.iterations} tool round(s), "
            f"{progress.usage.total_tokens} tokens"
        )
        return self._outcome(LoopState.DONE, progress, emitter)

    async def _bounded(
        self,
        bundle: ContextBundle,
        emitter: StreamEmitter,
        machine: LoopStateMachine,
        progress: _RunProgress,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        """Drive the loop under the overall wall-clock budget."""
        budget = self.config.request_timeout_seconds
        try:
            await wait_with_timeout(self._drive(bundle, emitter, machine, progress, cancel_event), budget)
        except TimeoutError as e:
            raise RequestTimeoutError(f"Request exceeded {budget} seconds") from e

    async def _drive(
        self,
        bundle: ContextBundle,
        emitter: StreamEmitter,
        machine: LoopStateMachine,
        progress: _RunProgress,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        messages = bundle.to_messages()
        tools = self.registry.to_llm_list() or None

        while True:
            self._check_cancelled(cancel_event)
            logger.debug(f"Model call after {progress.iterations} tool round(s)")
            response = await self.model.complete(messages, tools=tools)
            progress.usage = progress.usage.add(response.usage)

            if not response.wants_tools:
                machine.transition(LoopState.DONE)
                # Only the final response is shown as the answer body
                chunks = response.text_chunks or ([response.text] if response.text else [])
                for chunk in chunks:
                    emitter.text_delta(chunk)
                return

            if progress.iterations >= self.config.max_iterations:
                raise MaxIterationsExceededError(self.config.max_iterations)

            machine.transition(LoopState.EXECUTING_TOOLS)
            self._check_cancelled(cancel_event)
            results = await self._execute_round(response.tool_calls, emitter)
            progress.iterations += 1

            messages.append(Message(role="assistant", content=response.text, tool_calls=response.tool_calls))
            messages.extend(
                Message(role="tool", content=result.output.to_content(), tool_call_id=result.call_id)
                for result in results
            )
            machine.transition(LoopState.AWAITING_MODEL)

    async def _execute_round(self, calls: list[ToolCall], emitter: StreamEmitter) -> list[ToolResult]:
        """Execute one round concurrently.

        ``tool_start`` events go out for every call first; each result is
        emitted as soon as it completes. The returned list follows call order.
        """
        for call in calls:
            emitter.tool_start(call)

        async def run_one(call: ToolCall) -> ToolResult:
            result = await self.registry.dispatch(call)
            if result.is_error:
                logger.warning(f"Tool {call.name} returned error: {result.error}")
            emitter.tool_result(result)
            return result

        return list(await asyncio.gather(*(run_one(call) for call in calls)))

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise RequestCancelledError("Request cancelled by the caller")

    def _fail(
        self,
        machine: LoopStateMachine,
        progress: _RunProgress,
        emitter: StreamEmitter,
        message: str,
        kind: ErrorKind,
    ) -> LoopOutcome:
        logger.error(f"Loop failed ({kind}) after {progress.iterations} tool round(s): {message}")
        if not machine.is_terminal:
            machine.transition(LoopState.FAILED)
        emitter.close_with_error(message, kind)
        return self._outcome(LoopState.FAILED, progress, emitter, error=message, error_kind=kind)

    @staticmethod
    def _outcome(
        state: LoopState,
        progress: _RunProgress,
        emitter: StreamEmitter,
        error: Optional[str] = None,
        error_kind: Optional[str] = None,
    ) -> LoopOutcome:
        return LoopOutcome(
            state=state,
            text=emitter.text,
            citations=list(emitter.citations),
            artifacts=list(emitter.artifacts),
            usage=progress.usage,
            iterations=progress.iterations,
            error=error,
            error_kind=error_kind,
        )
