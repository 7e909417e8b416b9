import logging
from typing import Protocol

from qdrant_client import AsyncQdrantClient, models

from ..embedding.openai_embedder import OpenAIEmbedder
from ..models import MemoryItem, SearchMatch

logger = logging.getLogger(__name__)


class SimilaritySearch(Protocol):
    """
    Semantic search over active memory items.

    Results are scoped to the item's own type (and chat when scope_filter is
    given) and never include the query item itself.
    """

    async def search(
        self,
        item: MemoryItem,
        scope_filter: int | None,
        threshold: float,
        top_k: int,
    ) -> list[SearchMatch]: ...


class QdrantSearch:
    """
    Qdrant-based similarity search.

    Point payloads carry: content, type, status, chat_id, created_at.
    Point ids are the memory item ids.
    """

    def __init__(
        self,
        embedder: OpenAIEmbedder,
        host: str = "localhost",
        port: int = 6333,
        collection: str = "memory",
        client: AsyncQdrantClient | None = None,
    ) -> None:
        self.embedder = embedder
        self.host = host
        self.port = port
        self.collection = collection
        self._client = client

    def _get_client(self) -> AsyncQdrantClient:
        if self._client is None:
            self._client = AsyncQdrantClient(host=self.host, port=self.port)
            logger.info("[QdrantSearch] client initialized: host=%s port=%s", self.host, self.port)
        return self._client

    @staticmethod
    def _build_filter(item: MemoryItem, scope_filter: int | None) -> models.Filter:
        must: list[models.Condition] = [
            models.FieldCondition(key="type", match=models.MatchValue(value=item.type)),
            models.FieldCondition(key="status", match=models.MatchValue(value="active")),
        ]
        if scope_filter is not None:
            must.append(
                models.FieldCondition(key="chat_id", match=models.MatchValue(value=scope_filter))
            )
        return models.Filter(
            must=must,
            must_not=[models.HasIdCondition(has_id=[item.id])],
        )

    async def search(
        self,
        item: MemoryItem,
        scope_filter: int | None,
        threshold: float,
        top_k: int,
    ) -> list[SearchMatch]:
        vector = await self.embedder.embed_one(item.content)
        resp = await self._get_client().query_points(
            collection_name=self.collection,
            query=vector,
            query_filter=self._build_filter(item, scope_filter),
            score_threshold=threshold,
            limit=top_k,
            with_payload=True,
        )

        matches: list[SearchMatch] = []
        for point in resp.points:
            payload = point.payload or {}
            matches.append(
                SearchMatch(
                    id=str(point.id),
                    content=payload.get("content", ""),
                    type=payload.get("type", item.type),
                    created_at=payload.get("created_at", ""),
                    similarity=float(point.score),
                )
            )
        return matches

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
