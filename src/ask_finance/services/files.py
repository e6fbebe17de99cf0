"""File-backed conversation store.

Keeps the in-memory store's behavior and writes the whole store to one
JSON file after every change, so threads survive between CLI runs.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from ..utils import get_logger
from .base import StoredTurn, Thread
from .memory import InMemoryConversationStore

logger = get_logger(__name__)


class StoreSnapshot(BaseModel):
    """On-disk form of the conversation store."""

    threads: list[Thread] = Field(default_factory=list)
    turns: dict[str, list[StoredTurn]] = Field(default_factory=dict)


class JsonFileConversationStore(InMemoryConversationStore):
    """Conversation store persisted to a JSON file.

    Attributes:
        path: Store file (created on the first write)
    """

    def __init__(self, path: Path | str) -> None:
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            snapshot = StoreSnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValidationError as e:
            raise ValueError(f"Failed to load conversation store from {self.path}: {e}") from e
        self._threads = {thread.id: thread for thread in snapshot.threads}
        self._turns = {thread.id: list(snapshot.turns.get(thread.id, [])) for thread in snapshot.threads}
        logger.debug(f"Loaded {len(self._threads)} thread(s) from {self.path}")

    def _save(self) -> None:
        snapshot = StoreSnapshot(threads=list(self._threads.values()), turns=self._turns)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Write to a temporary file first, then rename
        temp_path = self.path.with_suffix(f"{self.path.suffix}.tmp")
        temp_path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        temp_path.replace(self.path)

    async def create_thread(self, user_id: str, title: str) -> Thread:
        thread = await super().create_thread(user_id, title)
        self._save()
        return thread

    async def append_turn(self, thread_id: str, stored: StoredTurn) -> None:
        await super().append_turn(thread_id, stored)
        self._save()

    async def touch_thread(self, thread_id: str) -> None:
        await super().touch_thread(thread_id)
        self._save()

    async def rename_thread(self, thread_id: str, user_id: str, title: str) -> Optional[Thread]:
        thread = await super().rename_thread(thread_id, user_id, title)
        if thread is not None:
            self._save()
        return thread

    async def delete_thread(self, thread_id: str, user_id: str) -> bool:
        deleted = await super().delete_thread(thread_id, user_id)
        if deleted:
            self._save()
        return deleted
