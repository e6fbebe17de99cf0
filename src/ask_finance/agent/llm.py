"""Reasoning-model client for ask-finance.

This module wraps OpenAI-compatible chat-completions APIs behind the small
ReasoningModel protocol the loop and the pattern engines depend on.
"""

import json
import os
from typing import Any, Optional, Protocol, Union

from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from ..config.schemas import LLMConfig
from ..errors import ContextLimitError, ModelCallError
from ..models import Message, ToolCall, Usage
from ..utils import async_retry_with_exponential_backoff, generate_call_id, get_logger

logger = get_logger(__name__)

Prompt = Union[str, list[dict[str, Any]]]


class ModelResponse(BaseModel):
    """One completed model response.

    Attributes:
        text: Full response text
        text_chunks: Text as delivered by the provider, in order
        tool_calls: Requested tool invocations, in emission order
        usage: Token usage of this call
        finish_reason: Provider finish reason
    """

    text: str = ""
    text_chunks: list[str] = Field(default_factory=list)
    tool_calls: list[ToolCall] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)
    finish_reason: Optional[str] = None

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


class ReasoningModel(Protocol):
    """What the loop and the pattern engines need from a model."""

    async def complete(
        self,
        messages: list[Message],
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> ModelResponse: ...

    async def generate(
        self,
        prompt: Prompt,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str: ...


def to_openai_message(message: Message) -> dict[str, Any]:
    """Convert a Message to the chat-completions wire format."""
    if message.role == "tool":
        return {"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content}
    if message.role == "assistant" and message.tool_calls:
        return {
            "role": "assistant",
            "content": message.content or None,
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                }
                for call in message.tool_calls
            ],
        }
    return {"role": message.role, "content": message.content}


def _is_context_limit(error: Exception) -> bool:
    error_str = str(error).lower()
    return ("context" in error_str and ("limit" in error_str or "length" in error_str)) or (
        "maximum" in error_str and "tokens" in error_str
    )


class LLMClient:
    """LLM client wrapper for OpenAI-compatible APIs.

    Supports OpenAI, DeepSeek, GLM, Ollama, and custom endpoints. Transient
    errors are retried with exponential backoff; anything left is raised as
    ModelCallError.
    """

    def __init__(self, config: LLMConfig, client: Optional[AsyncOpenAI] = None) -> None:
        """Initialize the LLM client.

        Args:
            config: LLM configuration
            client: Pre-built client (built from config when omitted)
        """
        self.config = config

        if client is None:
            api_key = os.environ.get(config.api_key_env, "")
            if not api_key and config.api_type not in ["ollama", "custom"]:
                logger.warning(f"API key not found for {config.api_key_env}")

            # Retries are handled here, not by the SDK
            client = AsyncOpenAI(
                base_url=config.endpoint,
                api_key=api_key if api_key else "not-needed",
                timeout=config.request_timeout,
                max_retries=0,
            )
        self.client = client

    def _base_params(self, max_tokens: Optional[int] = None) -> dict[str, Any]:
        params: dict[str, Any] = {"model": self.config.model}
        if self.config.temperature:
            params["temperature"] = self.config.temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        elif self.config.max_tokens:
            params["max_tokens"] = self.config.max_tokens
        return params

    async def _call(self, func: Any, *args: Any) -> Any:
        retrying = async_retry_with_exponential_backoff(max_attempts=self.config.max_retries)(func)
        try:
            return await retrying(*args)
        except Exception as e:
            if _is_context_limit(e):
                raise ContextLimitError(f"LLM context limit exceeded: {e}") from e
            logger.error(f"LLM completion error: {e}")
            raise ModelCallError(f"Model call failed: {e}") from e

    async def complete(
        self,
        messages: list[Message],
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> ModelResponse:
        """Run one streamed chat completion.

        Args:
            messages: Conversation, system message first
            tools: Tool schemas offered to the model

        Returns:
            Reassembled response

        Raises:
            ContextLimitError: If the provider rejects the context size
            ModelCallError: If the call fails after retries
        """
        params = self._base_params()
        params["messages"] = [to_openai_message(m) for m in messages]
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"
        return await self._call(self._stream_completion, params)

    async def _stream_completion(self, params: dict[str, Any]) -> ModelResponse:
        stream = await self.client.chat.completions.create(
            **params,
            stream=True,
            stream_options={"include_usage": True},
        )

        chunks: list[str] = []
        fragments: dict[int, dict[str, str]] = {}
        usage = Usage()
        finish_reason: Optional[str] = None

        async for chunk in stream:
            if chunk.usage:
                usage = Usage(
                    input_tokens=chunk.usage.prompt_tokens or 0,
                    output_tokens=chunk.usage.completion_tokens or 0,
                )
            if not chunk.choices:
                continue

            choice = chunk.choices[0]
            delta = choice.delta
            if delta is not None:
                if delta.content:
                    chunks.append(delta.content)
                # Tool-call arguments arrive in fragments keyed by index
                for fragment in delta.tool_calls or []:
                    slot = fragments.setdefault(fragment.index, {"id": "", "name": "", "arguments": ""})
                    if fragment.id:
                        slot["id"] = fragment.id
                    if fragment.function is not None:
                        slot["name"] += fragment.function.name or ""
                        slot["arguments"] += fragment.function.arguments or ""
            if choice.finish_reason:
                finish_reason = choice.finish_reason

        tool_calls = [
            ToolCall(
                id=slot["id"] or generate_call_id(),
                name=slot["name"],
                arguments=self._parse_function_args(slot["arguments"]),
            )
            for _, slot in sorted(fragments.items())
        ]
        return ModelResponse(
            text="".join(chunks),
            text_chunks=chunks,
            tool_calls=tool_calls,
            usage=usage,
            finish_reason=finish_reason,
        )

    async def generate(
        self,
        prompt: Prompt,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Single-turn completion without tools.

        Args:
            prompt: User content (text, or multimodal content parts)
            system: Optional system instruction
            max_tokens: Output cap for this call

        Returns:
            Response text
        """
        params = self._base_params(max_tokens)
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        params["messages"] = messages
        return await self._call(self._generate_once, params)

    async def _generate_once(self, params: dict[str, Any]) -> str:
        response = await self.client.chat.completions.create(**params)
        return response.choices[0].message.content or ""

    def _parse_function_args(self, args_str: str) -> dict[str, Any]:
        """Parse function arguments from JSON string.

        Args:
            args_str: JSON string of arguments

        Returns:
            Parsed arguments dictionary
        """
        if not args_str:
            return {}
        try:
            parsed = json.loads(args_str)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse function arguments: {args_str}")
            return {}
        return parsed if isinstance(parsed, dict) else {}
