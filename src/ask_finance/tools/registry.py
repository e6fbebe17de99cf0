"""Tool registry and dispatch for ask-finance.

Dispatch never raises for tool-level problems: unknown names, invalid input,
executor exceptions, timeouts and malformed outputs all become an
``error`` output the model can react to.
"""

import time
from typing import Any, Optional

from pydantic import ValidationError

from ..errors import ToolInputError
from ..models import TOOL_OUTPUT_ADAPTER, ErrorOutput, ToolCall, ToolOutput, ToolResult
from ..utils import get_logger, wait_with_timeout
from ..utils.timeout import TimeoutError
from .base import FinanceTool

logger = get_logger(__name__)


class ToolRegistry:
    """Fixed mapping from tool name to tool.

    Attributes:
        tool_timeout: Per-call timeout in seconds (None disables it)
    """

    def __init__(self, tool_timeout: Optional[float] = None) -> None:
        self._tools: dict[str, FinanceTool] = {}
        self.tool_timeout = tool_timeout

    def register(self, tool: FinanceTool) -> None:
        """Register a tool instance.

        Args:
            tool: Tool to register

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[FinanceTool]:
        return self._tools.get(name)

    def list_all(self) -> list[FinanceTool]:
        return list(self._tools.values())

    def to_llm_list(self) -> list[dict[str, Any]]:
        """Export all tools in OpenAI function calling format.

        Returns:
            List of {"type": "function", "function": {name, description, parameters}}
        """
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
            }
            for tool in self._tools.values()
        ]

    async def dispatch(self, call: ToolCall) -> ToolResult:
        """Execute one tool call.

        Args:
            call: Call requested by the model

        Returns:
            ToolResult answering the call; failures carry an error output
        """
        started = time.perf_counter()
        output = await self._run(call)
        duration_ms = int((time.perf_counter() - started) * 1000)
        return ToolResult(call_id=call.id, name=call.name, output=output, duration_ms=duration_ms)

    async def _run(self, call: ToolCall) -> ToolOutput:
        tool = self.get(call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {call.name}")
            return ErrorOutput(error=f"unknown tool: {call.name}")

        try:
            raw = await wait_with_timeout(tool.execute(**call.arguments), self.tool_timeout)
        except ToolInputError as e:
            logger.warning(str(e), extra={"tool": call.name})
            return ErrorOutput(error=str(e))
        except TimeoutError:
            logger.warning(f"Tool {call.name} timed out after {self.tool_timeout}s", extra={"tool": call.name})
            return ErrorOutput(error=f"Tool {call.name} timed out after {self.tool_timeout} seconds")
        except Exception as e:
            logger.warning(f"Tool {call.name} failed: {e}", extra={"tool": call.name})
            return ErrorOutput(error=str(e) or type(e).__name__)

        try:
            return TOOL_OUTPUT_ADAPTER.validate_python(raw)
        except ValidationError as e:
            logger.error(f"Tool {call.name} returned an invalid output: {e}", extra={"tool": call.name})
            return ErrorOutput(error=f"Tool {call.name} returned an invalid output")
