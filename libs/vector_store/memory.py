"""In-memory implementation of vector store.

Keeps records in a dict keyed by ``(namespace, id)``. Intended for local
runs (``ML_VECTOR_BACKEND=memory``) and tests; contents vanish with the
process.
"""

import copy
from typing import Dict, Optional, Tuple

import structlog

from .base import DEFAULT_VECTOR_DIMENSION, IngestionRecord, UpsertResult, VectorStore

logger = structlog.get_logger("vector_store.memory")


class InMemoryVectorStore(VectorStore):
    """Process-local vector store with last-write-wins overwrite."""

    def __init__(self, vector_dimension: int = DEFAULT_VECTOR_DIMENSION):
        super().__init__(vector_dimension=vector_dimension)
        self._records: Dict[Tuple[str, str], IngestionRecord] = {}

    async def _write(self, record: IngestionRecord) -> UpsertResult:
        # A single dict assignment, so readers see the old record or the new
        # one and never a mix of both.
        self._records[(record.namespace, record.id)] = copy.deepcopy(record)
        logger.debug("Stored record in memory", id=record.id, namespace=record.namespace)
        return UpsertResult(
            id=record.id,
            namespace=record.namespace,
            upserted_count=1,
            acknowledgement={"upsertedCount": 1},
        )

    async def fetch_record(self, id: str, namespace: str = "") -> Optional[IngestionRecord]:
        record = self._records.get((namespace, id))
        return copy.deepcopy(record) if record is not None else None

    async def count(self, namespace: Optional[str] = None) -> int:
        """Count stored records, optionally within one namespace."""
        if namespace is None:
            return len(self._records)
        return sum(1 for ns, _ in self._records if ns == namespace)

    async def health_check(self) -> bool:
        return True
