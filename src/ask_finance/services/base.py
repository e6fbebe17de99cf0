"""Collaborator interfaces consumed by the orchestration engine.

The engine treats storage, retrieval, knowledge synthesis, image generation
and document analysis as opaque services behind these narrow protocols.
"""

from datetime import datetime
from typing import Any, Optional, Protocol

from pydantic import BaseModel, Field

from ..models import DocumentAnalysisData, KnowledgeSummary, ToolOutput, Turn


class RetrievedChunk(BaseModel):
    """One ranked retrieval hit.

    Attributes:
        document_id: Source document ID
        document_name: Source document name
        excerpt: Matching text
        score: Similarity score (higher is better)
        page_number: Page the excerpt comes from
        storage_path: Where the source file is stored
    """

    document_id: str
    document_name: str
    excerpt: str
    score: float = 0.0
    page_number: Optional[int] = None
    storage_path: Optional[str] = None


class Thread(BaseModel):
    """A conversation owned by one user."""

    id: str
    user_id: str
    title: str
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class StoredTurn(BaseModel):
    """A persisted turn plus the side artifacts gathered while producing it.

    Attributes:
        turn: Role and text
        citations: Citation payloads (assistant turns)
        canvas: Last canvas artifact (assistant turns)
        tool_calls: Tool invocations made while answering
        created_at: Persist time
    """

    turn: Turn
    citations: list[dict[str, Any]] = Field(default_factory=list)
    canvas: Optional[ToolOutput] = None
    tool_calls: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)


class GeneratedImage(BaseModel):
    image_data: str
    mime_type: str = "image/png"
    prompt: str


class KnowledgeProvider(Protocol):
    async def fetch_summary(self, user_id: str) -> Optional[KnowledgeSummary]:
        """Synthesized knowledge of a user, or None if unavailable."""
        ...


class RetrievalProvider(Protocol):
    async def search(
        self,
        query: str,
        limit: int = 5,
        document_type: Optional[str] = None,
    ) -> list[RetrievedChunk]:
        """Ranked excerpts matching ``query``."""
        ...


class ConversationStore(Protocol):
    async def get_thread(self, thread_id: str, user_id: str) -> Optional[Thread]: ...

    async def create_thread(self, user_id: str, title: str) -> Thread: ...

    async def list_threads(self, user_id: str) -> list[Thread]: ...

    async def list_turns(self, thread_id: str) -> list[StoredTurn]: ...

    async def append_turn(self, thread_id: str, stored: StoredTurn) -> None: ...

    async def touch_thread(self, thread_id: str) -> None: ...

    async def rename_thread(self, thread_id: str, user_id: str, title: str) -> Optional[Thread]: ...

    async def delete_thread(self, thread_id: str, user_id: str) -> bool: ...

class ImageGenerator(Protocol):
    async def generate(self, prompt: str) -> GeneratedImage: ...


class DocumentAnalyzer(Protocol):
    async def analyze(
        self,
        document_base64: str,
        mime_type: str,
        extract_charts: bool = False,
        extract_tables: bool = False,
        generate_narration: bool = False,
        question: Optional[str] = None,
    ) -> DocumentAnalysisData: ...
