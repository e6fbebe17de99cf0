"""Ask Finance.

A financial assistant engine that answers questions by iteratively calling
declared tools, streaming its progress as typed events, with multi-step
analysis and report-evaluation engines exposed as tools.
"""

__version__ = "0.1.0"

from .agent import DecomposeSynthesizePattern, EvaluateImprovePattern, LLMClient, ToolCallingLoop
from .config import EngineConfig, load_engine_config
from .context import ContextBundle, ContextWindowManager
from .errors import AskFinanceError
from .models import ChatRequest, LoopOutcome, StreamEvent, ToolCall, ToolResult, Turn
from .service import ChatService, build_service
from .streaming import StreamEmitter
from .tools import ToolRegistry, build_default_registry

__all__ = [
    # Version
    "__version__",
    # Core entities
    "Turn",
    "ToolCall",
    "ToolResult",
    "StreamEvent",
    "ChatRequest",
    "LoopOutcome",
    "AskFinanceError",
    # Configuration
    "EngineConfig",
    "load_engine_config",
    # Engine
    "ContextBundle",
    "ContextWindowManager",
    "ToolRegistry",
    "build_default_registry",
    "ToolCallingLoop",
    "StreamEmitter",
    "DecomposeSynthesizePattern",
    "EvaluateImprovePattern",
    "LLMClient",
    # Request handling
    "ChatService",
    "build_service",
]
