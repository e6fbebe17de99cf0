"""External collaborators of the orchestration engine."""

from .base import (
    ConversationStore,
    DocumentAnalyzer,
    GeneratedImage,
    ImageGenerator,
    KnowledgeProvider,
    RetrievalProvider,
    RetrievedChunk,
    StoredTurn,
    Thread,
)
from .documents import ModelDocumentAnalyzer
from .files import JsonFileConversationStore
from .images import OpenAIImageGenerator
from .memory import InMemoryConversationStore, InMemoryKnowledgeProvider, InMemoryRetrievalProvider

__all__ = [
    # Interfaces
    "ConversationStore",
    "DocumentAnalyzer",
    "ImageGenerator",
    "KnowledgeProvider",
    "RetrievalProvider",
    # Entities
    "GeneratedImage",
    "RetrievedChunk",
    "StoredTurn",
    "Thread",
    # Implementations
    "InMemoryConversationStore",
    "JsonFileConversationStore",
    "InMemoryKnowledgeProvider",
    "InMemoryRetrievalProvider",
    "ModelDocumentAnalyzer",
    "OpenAIImageGenerator",
]
