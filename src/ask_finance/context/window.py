"""Context window assembly for ask-finance.

The manager turns the persisted history of a conversation and the new user
message into a bounded ContextBundle. Budgets are measured in characters:

- the newest user message is truncated to ``recent_message_chars`` and is
  never dropped,
- the next ``recent_turns - 1`` turns keep the same cap, older turns are
  cut to ``older_message_chars``,
- once a turn no longer fits, it and everything older are dropped and a
  placeholder turn tells the model how many messages were omitted.
"""

import time
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from ..config.schemas import PLACEHOLDER_RESERVE_CHARS, ContextConfig
from ..models import KnowledgeSummary, Message, Turn
from ..utils import get_logger

logger = get_logger(__name__)

TRUNCATION_SUFFIX = "\n[...truncated]"
KNOWLEDGE_OPEN = "<document_context>\n"
KNOWLEDGE_CLOSE = "\n</document_context>"


def cache_epoch(now: Optional[float] = None, epoch_seconds: int = 300) -> int:
    """Compute the prompt-cache epoch for a request.

    Args:
        now: Wall-clock seconds (defaults to the current time)
        epoch_seconds: Width of one epoch

    Returns:
        floor(now / epoch_seconds)
    """
    if now is None:
        now = time.time()
    return int(now // epoch_seconds)


def truncate_text(text: str, limit: int) -> str:
    """Cut text to at most ``limit`` characters, marking the cut."""
    if len(text) <= limit:
        return text
    if limit <= len(TRUNCATION_SUFFIX):
        return text[:limit]
    return text[: limit - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX


def omission_notice(count: int) -> str:
    noun = "message was" if count == 1 else "messages were"
    return f"[Note: {count} earlier {noun} omitted to fit the context window.]"


def build_knowledge_block(summary: Optional[KnowledgeSummary], limit: int) -> Optional[str]:
    """Render the knowledge-context block within ``limit`` characters.

    The full synthesis is used when it fits, otherwise the short summary,
    truncated if needed.

    Returns:
        The block, or None when there is nothing to add
    """
    if summary is None or limit <= 0:
        return None

    header = f"Knowledge base synthesized from {summary.document_count} document(s).\n\n"
    room = limit - len(KNOWLEDGE_OPEN) - len(KNOWLEDGE_CLOSE) - len(header)
    if room <= 0:
        return None

    if summary.full_text and len(summary.full_text) <= room:
        body = summary.full_text
    else:
        body = truncate_text(summary.summary_text or summary.full_text, room)
    if not body.strip():
        return None
    return f"{KNOWLEDGE_OPEN}{header}{body}{KNOWLEDGE_CLOSE}"


class ContextBundle(BaseModel):
    """Bounded set of turns plus system and knowledge context for one request.

    Attributes:
        system: System instruction, epoch-prefixed
        knowledge: Optional knowledge-context block
        turns: Ordered turns, oldest first, ending with the new user turn
        omitted: Number of history turns dropped
        epoch: Cache epoch the system instruction was built for
    """

    system: str
    knowledge: Optional[str] = None
    turns: list[Turn] = Field(default_factory=list)
    omitted: int = 0
    epoch: int = 0

    @property
    def system_text(self) -> str:
        if self.knowledge:
            return f"{self.system}\n\n{self.knowledge}"
        return self.system

    @property
    def total_chars(self) -> int:
        return len(self.system_text) + sum(turn.length for turn in self.turns)

    @property
    def newest(self) -> Turn:
        return self.turns[-1]

    def to_messages(self) -> list[Message]:
        """Convert to the model-facing message list."""
        messages = [Message(role="system", content=self.system_text)]
        messages.extend(Message.from_turn(turn) for turn in self.turns)
        return messages


class ContextWindowManager:
    """Builds ContextBundles under a fixed character budget.

    Attributes:
        config: Context budgets
        system_prompt: Stable system instruction
    """

    def __init__(self, config: ContextConfig, system_prompt: str) -> None:
        """Initialize the manager.

        Args:
            config: Context budgets
            system_prompt: Stable system instruction

        Raises:
            ValueError: If the system instruction exceeds its reserve
        """
        self.config = config
        self.system_prompt = system_prompt
        # Leave room for the epoch prefix line
        if len(system_prompt) + 32 > config.system_reserve_chars:
            raise ValueError(
                f"System prompt ({len(system_prompt)} chars) exceeds system_reserve_chars "
                f"({config.system_reserve_chars})"
            )

    def system_for_epoch(self, epoch: int) -> str:
        return f"[cache-epoch {epoch}]\n{self.system_prompt}"

    def build(
        self,
        history: Sequence[Turn],
        message: str,
        knowledge: Optional[KnowledgeSummary] = None,
        epoch: Optional[int] = None,
    ) -> ContextBundle:
        """Assemble the bundle for one request.

        Args:
            history: Persisted turns, oldest first (without the new message)
            message: The new user message
            knowledge: Optional synthesized knowledge of the user
            epoch: Cache epoch; computed from the clock when omitted

        Returns:
            ContextBundle within ``max_total_chars``
        """
        cfg = self.config
        if epoch is None:
            epoch = cache_epoch(epoch_seconds=cfg.cache_epoch_seconds)

        system = self.system_for_epoch(epoch)
        knowledge_block = build_knowledge_block(knowledge, cfg.knowledge_chars)

        fixed = len(system) + (len(knowledge_block) + 2 if knowledge_block else 0)
        remaining = cfg.max_total_chars - fixed

        newest = Turn(role="user", text=truncate_text(message, cfg.recent_message_chars))
        remaining -= newest.length

        kept: list[Turn] = []
        omitted = 0
        for index, turn in enumerate(reversed(history)):
            # Position 0 is the new message itself
            position = index + 1
            cap = cfg.recent_message_chars if position < cfg.recent_turns else cfg.older_message_chars
            text = truncate_text(turn.text, cap)

            older_left = index < len(history) - 1
            needed = len(text) + (PLACEHOLDER_RESERVE_CHARS if older_left else 0)
            if needed > remaining:
                omitted = len(history) - index
                break

            kept.append(Turn(role=turn.role, text=text))
            remaining -= len(text)

        kept.reverse()
        turns: list[Turn] = []
        if omitted:
            turns.append(Turn(role="user", text=omission_notice(omitted)))
        turns.extend(kept)
        turns.append(newest)

        bundle = ContextBundle(
            system=system,
            knowledge=knowledge_block,
            turns=turns,
            omitted=omitted,
            epoch=epoch,
        )
        logger.debug(
            f"Context assembled: {len(kept)} history turns kept, {omitted} omitted, "
            f"{bundle.total_chars}/{cfg.max_total_chars} chars"
        )
        return bundle
