"""Pinecone implementation of vector store.

Writes go to a pre-existing Pinecone index whose dimensionality matches
``vector_dimension``; index lifecycle (create/delete) is managed elsewhere.

Connection management
- The Pinecone client and index handle are created lazily on first use
- The SDK is synchronous, index host lookup included, so connecting and
  every call run in a worker thread via
  ``asyncio.to_thread`` to keep the event loop free
- Every backend failure is wrapped in ``StoreUnavailableError``
"""

import asyncio
from typing import Any, Optional

import structlog
from pinecone import Pinecone

from .base import (
    DEFAULT_VECTOR_DIMENSION,
    IngestionRecord,
    StoreUnavailableError,
    UpsertResult,
    VectorStore,
)

logger = structlog.get_logger("vector_store.pinecone")


class PineconeVectorStore(VectorStore):
    """Pinecone implementation of vector store."""

    def __init__(
        self,
        index_name: str,
        api_key: Optional[str] = None,
        host: Optional[str] = None,
        vector_dimension: int = DEFAULT_VECTOR_DIMENSION,
        index: Any = None,
    ):
        """Configure a Pinecone-backed vector store.

        Parameters
        - index_name: Name of the existing Pinecone index
        - api_key: Pinecone API key; required unless ``index`` is supplied
        - host: Optional index host, skips the control-plane host lookup
        - vector_dimension: Dimensionality the index was created with
        - index: Pre-built index handle (anything with ``upsert``/``fetch``)
        """
        super().__init__(vector_dimension=vector_dimension)
        self.index_name = index_name
        self.api_key = api_key
        self.host = host
        self._client: Optional[Pinecone] = None
        self._index = index

    def _get_index(self) -> Any:
        """Get or create the index handle."""
        if self._index is None:
            if not self.api_key:
                raise StoreUnavailableError("Pinecone API key is not configured")
            try:
                self._client = Pinecone(api_key=self.api_key)
                if self.host:
                    self._index = self._client.Index(host=self.host)
                else:
                    self._index = self._client.Index(self.index_name)
                logger.info("Connected to Pinecone index", index_name=self.index_name)
            except Exception as e:
                logger.error("Failed to connect to Pinecone index", index_name=self.index_name, error=str(e))
                raise StoreUnavailableError(f"Failed to connect to Pinecone index {self.index_name}: {e}") from e
        return self._index

    async def _connect(self) -> Any:
        if self._index is not None:
            return self._index
        return await asyncio.to_thread(self._get_index)

    async def _write(self, record: IngestionRecord) -> UpsertResult:
        index = await self._connect()
        payload = [{
            "id": record.id,
            "values": record.vector,
            "metadata": record.metadata,
        }]

        try:
            response = await asyncio.to_thread(
                index.upsert,
                vectors=payload,
                namespace=record.namespace,
            )
        except Exception as e:
            logger.error(
                "Pinecone upsert failed",
                id=record.id,
                namespace=record.namespace,
                error=str(e),
            )
            raise StoreUnavailableError(f"Upsert failed: {e}") from e

        upserted_count = getattr(response, "upserted_count", None)
        if upserted_count is None and isinstance(response, dict):
            upserted_count = response.get("upserted_count", response.get("upsertedCount"))

        return UpsertResult(
            id=record.id,
            namespace=record.namespace,
            upserted_count=upserted_count if upserted_count is not None else 1,
            acknowledgement=response,
        )

    async def fetch_record(self, id: str, namespace: str = "") -> Optional[IngestionRecord]:
        index = await self._connect()
        try:
            response = await asyncio.to_thread(index.fetch, ids=[id], namespace=namespace)
        except Exception as e:
            logger.error("Pinecone fetch failed", id=id, namespace=namespace, error=str(e))
            raise StoreUnavailableError(f"Fetch failed: {e}") from e

        vectors = getattr(response, "vectors", None)
        if vectors is None and isinstance(response, dict):
            vectors = response.get("vectors")
        if not vectors or id not in vectors:
            return None

        stored = vectors[id]
        if isinstance(stored, dict):
            values = stored.get("values")
            metadata = stored.get("metadata")
        else:
            values = getattr(stored, "values", None)
            metadata = getattr(stored, "metadata", None)

        return IngestionRecord(
            id=id,
            vector=[float(v) for v in values or []],
            namespace=namespace,
            metadata=dict(metadata or {}),
        )

    async def health_check(self) -> bool:
        """Check the index answers a stats request."""
        try:
            index = await self._connect()
            await asyncio.to_thread(index.describe_index_stats)
            return True
        except Exception as e:
            logger.error("Pinecone health check failed", error=str(e))
            return False
