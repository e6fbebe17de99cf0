"""Knowledge-base search tool."""

from typing import Any, Literal, Optional

from pydantic import Field

from ...models import Citation, SearchData, SearchOutput, SearchResultItem, WireModel
from ...services.base import RetrievalProvider, RetrievedChunk
from ...utils import get_logger
from ..base import FinanceTool

logger = get_logger(__name__)

RESULT_EXCERPT_CHARS = 200
CITATION_EXCERPT_CHARS = 150


class SearchInput(WireModel):
    query: str = Field(..., min_length=1)
    limit: int = Field(default=5, ge=1, le=20)
    document_type: Optional[Literal["pdf", "excel", "csv", "image", "all"]] = None


def placeholder_output(query: str, reason: str) -> SearchOutput:
    """Clearly labelled stand-in used when retrieval yields nothing.

    Carries no citations, so nothing unsupported is attributed to a source.
    """
    return SearchOutput(
        data=SearchData(
            results=[
                SearchResultItem(
                    document_id="placeholder",
                    document_name="No matching documents",
                    excerpt=(
                        f'No knowledge-base documents matched "{query}". '
                        "Answer from general financial knowledge and say that no sources were found."
                    ),
                    score=0.0,
                )
            ],
            citations=[],
            message=f'No documents found for "{query}" ({reason})',
            placeholder=True,
        )
    )


class SearchDocumentsTool(FinanceTool):
    """Searches the knowledge base through the retrieval collaborator."""

    input_model = SearchInput

    def __init__(self, retrieval: RetrievalProvider) -> None:
        self.retrieval = retrieval

    @property
    def name(self) -> str:
        return "search_documents"

    @property
    def description(self) -> str:
        return (
            "Search the knowledge base for relevant financial documents and data. "
            "Always use this first to find context and citations."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query to find relevant documents"},
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 20,
                    "description": "Maximum number of results to return",
                    "default": 5,
                },
                "documentType": {
                    "type": "string",
                    "enum": ["pdf", "excel", "csv", "image", "all"],
                    "description": "Filter by document type",
                },
            },
            "required": ["query"],
        }

    async def run(self, params: SearchInput) -> SearchOutput:
        try:
            hits = await self.retrieval.search(params.query, params.limit, params.document_type)
        except Exception as e:
            logger.warning(f"Retrieval failed for '{params.query}': {e}", extra={"tool": self.name})
            return placeholder_output(params.query, "search unavailable")

        if not hits:
            return placeholder_output(params.query, "no results")

        return SearchOutput(
            data=SearchData(
                results=[self._result(hit) for hit in hits],
                citations=[self._citation(hit) for hit in hits],
                message=f"Found {len(hits)} relevant document sections",
            )
        )

    @staticmethod
    def _result(hit: RetrievedChunk) -> SearchResultItem:
        return SearchResultItem(
            document_id=hit.document_id,
            document_name=hit.document_name,
            excerpt=hit.excerpt[:RESULT_EXCERPT_CHARS],
            score=hit.score,
            page_number=hit.page_number,
        )

    @staticmethod
    def _citation(hit: RetrievedChunk) -> Citation:
        return Citation(
            document_id=hit.document_id,
            document_name=hit.document_name,
            page_number=hit.page_number,
            excerpt=hit.excerpt[:CITATION_EXCERPT_CHARS],
            storage_path=hit.storage_path,
        )
