"""Exception hierarchy for ask-finance."""


class AskFinanceError(Exception):
    """Base class for all ask-finance errors."""

    pass


class RequestValidationError(AskFinanceError):
    """Raised when an inbound chat request is malformed.

    Raised before any stream event is produced.
    """

    pass


class ThreadNotFoundError(RequestValidationError):
    """Raised when a request names a thread the user does not own."""

    pass


class ModelCallError(AskFinanceError):
    """Raised when a reasoning-model inference request fails."""

    pass


class ContextLimitError(ModelCallError):
    """Raised when the provider rejects a request for exceeding its context window."""

    pass


class MaxIterationsExceededError(AskFinanceError):
    """Raised when the model keeps requesting tools past the iteration cap."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(f"Max iterations exceeded: model still requested tools after {max_iterations} rounds")
        self.max_iterations = max_iterations


class RequestTimeoutError(AskFinanceError):
    """Raised when a request exceeds its overall wall-clock budget."""

    pass


class RequestCancelledError(AskFinanceError):
    """Raised when the caller aborts an in-flight request."""

    pass


class StreamClosedError(AskFinanceError):
    """Raised when an event is emitted after the terminal event."""

    pass


class ToolInputError(AskFinanceError):
    """Raised when tool input fails its declared contract."""

    pass


class IllegalTransitionError(AskFinanceError):
    """Raised when the loop attempts a transition its state graph does not allow."""

    pass
