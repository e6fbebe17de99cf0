"""In-memory collaborator implementations.

Used for local runs and tests. None of them lock: two concurrent requests
on the same thread may interleave their appended turns.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models import KnowledgeSummary
from ..utils import generate_thread_id, get_logger
from .base import RetrievedChunk, StoredTurn, Thread

logger = get_logger(__name__)

_WORD = re.compile(r"[a-z0-9]+")


def _tokens(text: str) -> set[str]:
    return set(_WORD.findall(text.lower()))


class InMemoryConversationStore:
    """Threads and turns kept in process memory."""

    def __init__(self) -> None:
        self._threads: dict[str, Thread] = {}
        self._turns: dict[str, list[StoredTurn]] = {}

    async def get_thread(self, thread_id: str, user_id: str) -> Optional[Thread]:
        thread = self._threads.get(thread_id)
        if thread is None or thread.user_id != user_id:
            return None
        return thread

    async def create_thread(self, user_id: str, title: str) -> Thread:
        thread = Thread(id=generate_thread_id(), user_id=user_id, title=title)
        self._threads[thread.id] = thread
        self._turns[thread.id] = []
        logger.debug(f"Created thread {thread.id}")
        return thread

    async def list_turns(self, thread_id: str) -> list[StoredTurn]:
        return list(self._turns.get(thread_id, []))

    async def append_turn(self, thread_id: str, stored: StoredTurn) -> None:
        if thread_id not in self._threads:
            raise KeyError(f"Unknown thread: {thread_id}")
        self._turns[thread_id].append(stored)

    async def touch_thread(self, thread_id: str) -> None:
        thread = self._threads.get(thread_id)
        if thread is not None:
            self._threads[thread_id] = thread.model_copy(update={"updated_at": datetime.now()})

    async def list_threads(self, user_id: str) -> list[Thread]:
        return sorted(
            (t for t in self._threads.values() if t.user_id == user_id),
            key=lambda t: t.updated_at,
            reverse=True,
        )

    async def rename_thread(self, thread_id: str, user_id: str, title: str) -> Optional[Thread]:
        thread = await self.get_thread(thread_id, user_id)
        if thread is None:
            return None
        renamed = thread.model_copy(update={"title": title, "updated_at": datetime.now()})
        self._threads[thread_id] = renamed
        return renamed

    async def delete_thread(self, thread_id: str, user_id: str) -> bool:
        """Delete a thread and all of its turns."""
        if await self.get_thread(thread_id, user_id) is None:
            return False
        del self._threads[thread_id]
        self._turns.pop(thread_id, None)
        logger.debug(f"Deleted thread {thread_id}")
        return True


class InMemoryKnowledgeProvider:
    """Knowledge summaries keyed by user ID."""

    def __init__(self, summaries: Optional[dict[str, KnowledgeSummary]] = None) -> None:
        self._summaries = dict(summaries or {})

    async def fetch_summary(self, user_id: str) -> Optional[KnowledgeSummary]:
        return self._summaries.get(user_id)


class IndexedChunk(BaseModel):
    """A document excerpt held by the in-memory index."""

    document_id: str
    document_name: str
    text: str
    document_type: str = "pdf"
    page_number: Optional[int] = None
    storage_path: Optional[str] = None
    tokens: frozenset[str] = Field(default_factory=frozenset)


class InMemoryRetrievalProvider:
    """Keyword-overlap retrieval over registered excerpts.

    A chunk scores the fraction of distinct query words it contains; chunks
    scoring below ``min_score`` are not returned.
    """

    def __init__(self, min_score: float = 0.2) -> None:
        self.min_score = min_score
        self._chunks: list[IndexedChunk] = []

    def add_document(
        self,
        document_id: str,
        document_name: str,
        pages: list[str],
        document_type: str = "pdf",
        storage_path: Optional[str] = None,
    ) -> None:
        """Index a document, one chunk per page."""
        for number, text in enumerate(pages, start=1):
            self._chunks.append(
                IndexedChunk(
                    document_id=document_id,
                    document_name=document_name,
                    text=text,
                    document_type=document_type,
                    page_number=number,
                    storage_path=storage_path,
                    tokens=frozenset(_tokens(text)),
                )
            )

    async def search(
        self,
        query: str,
        limit: int = 5,
        document_type: Optional[str] = None,
    ) -> list[RetrievedChunk]:
        query_tokens = _tokens(query)
        if not query_tokens:
            return []

        hits: list[RetrievedChunk] = []
        for chunk in self._chunks:
            if document_type and document_type != "all" and chunk.document_type != document_type:
                continue
            score = len(query_tokens & chunk.tokens) / len(query_tokens)
            if score < self.min_score:
                continue
            hits.append(
                RetrievedChunk(
                    document_id=chunk.document_id,
                    document_name=chunk.document_name,
                    excerpt=chunk.text,
                    score=round(score, 4),
                    page_number=chunk.page_number,
                    storage_path=chunk.storage_path,
                )
            )

        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:limit]
