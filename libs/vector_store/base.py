"""Base vector store interface.

Defines the contract the ingestion service depends on, independent of the
backing implementation (Pinecone, in-memory, etc.).

``VectorStore.upsert`` validates the vector before any backend call, in a
fixed order, and only then hands a fully-formed ``IngestionRecord`` to the
backend's ``_write``. Backends therefore never see malformed input.

All I/O methods are asynchronous so one slow store call never blocks
unrelated ingestion requests.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, List, Optional

import numpy as np
import structlog

logger = structlog.get_logger("vector_store.base")

DEFAULT_VECTOR_DIMENSION = 1280
IMAGE_SOURCE_METADATA = {"source": "image"}


@dataclass
class IngestionRecord:
    """A vector persisted under a caller-supplied identifier."""

    id: str
    vector: List[float]
    namespace: str = ""
    metadata: Dict[str, Any] = field(default_factory=lambda: dict(IMAGE_SOURCE_METADATA))


@dataclass
class UpsertResult:
    """Outcome of a successful upsert.

    ``acknowledgement`` is whatever the backend returned; it is opaque to
    callers and kept only for logging and diagnostics.
    """

    id: str
    namespace: str
    upserted_count: int = 1
    acknowledgement: Any = None


class VectorStoreError(Exception):
    """Base exception for vector store operations."""
    pass


class ValidationError(VectorStoreError):
    """The vector or identifier is malformed; nothing was sent to the store."""
    pass


class VectorTypeError(ValidationError):
    """The vector is not a sequence."""

    def __init__(self, observed_type: str):
        self.observed_type = observed_type
        super().__init__(f"Vector must be a sequence of numbers, got {observed_type}.")


class DimensionMismatchError(ValidationError):
    """The vector length differs from the index dimensionality."""

    def __init__(self, observed: int, expected: int):
        self.observed = observed
        self.expected = expected
        super().__init__(
            f"Vector length ({observed}) does not match index dimension ({expected})."
        )


class NonNumericElementError(ValidationError):
    """An element of the vector is not a finite real number."""

    def __init__(self, position: int, value: Any):
        self.position = position
        self.value = value
        super().__init__(
            f"All elements in the vector must be numbers; element {position} is {value!r}."
        )


class InvalidIdentifierError(ValidationError):
    """The record identifier is empty or not a string."""
    pass


class StoreUnavailableError(VectorStoreError):
    """The store could not be reached or rejected the write."""
    pass


def validate_vector(vector: Any, expected_dimension: int) -> List[float]:
    """Validate an embedding and return it as a list of floats.

    Checks run in order and the first failure short-circuits the rest:
    1. ``vector`` is a sequence (strings, bytes and mappings are not)
    2. its length equals ``expected_dimension``
    3. every element is a finite real number (``bool`` is rejected)
    """
    if isinstance(vector, np.ndarray):
        if vector.ndim != 1:
            raise VectorTypeError(f"ndarray of shape {vector.shape}")
        vector = vector.tolist()
    elif not isinstance(vector, Sequence) or isinstance(vector, (str, bytes, bytearray)):
        raise VectorTypeError(type(vector).__name__)

    if len(vector) != expected_dimension:
        raise DimensionMismatchError(observed=len(vector), expected=expected_dimension)

    values = []
    for position, value in enumerate(vector):
        if isinstance(value, (bool, np.bool_)) or not isinstance(value, (Real, np.integer, np.floating)):
            raise NonNumericElementError(position, value)
        value = float(value)
        # NaN and inf count as non-numeric
        if not math.isfinite(value):
            raise NonNumericElementError(position, value)
        values.append(value)

    return values


def validate_identifier(record_id: Any) -> str:
    if not isinstance(record_id, str) or not record_id:
        raise InvalidIdentifierError(f"Record id must be a non-empty string, got {record_id!r}.")
    return record_id


class VectorStore(ABC):
    """Abstract base class for vector stores.

    Implementations provide ``_write`` with overwrite-or-nothing semantics:
    re-upserting an identifier replaces its vector and metadata entirely
    (last write wins). No per-identifier locking is done here; concurrent
    upserts for the same id race and the store decides the final state.
    """

    def __init__(self, vector_dimension: int = DEFAULT_VECTOR_DIMENSION):
        self.vector_dimension = vector_dimension

    async def upsert(self, vector: Any, id: str, namespace: str = "") -> UpsertResult:
        """Validate ``vector`` and write it under ``id``.

        Raises
        - ``ValidationError`` subtype when the input is malformed (no I/O done)
        - ``StoreUnavailableError`` when the backend call fails
        """
        values = validate_vector(vector, self.vector_dimension)
        record_id = validate_identifier(id)

        record = IngestionRecord(
            id=record_id,
            vector=values,
            namespace=namespace,
            metadata=dict(IMAGE_SOURCE_METADATA),
        )
        result = await self._write(record)

        logger.info(
            "Upserted vector",
            id=record_id,
            namespace=namespace,
            dimension=len(values),
        )
        return result

    @abstractmethod
    async def _write(self, record: IngestionRecord) -> UpsertResult:
        """Persist a validated record, replacing any record with the same id."""
        pass

    @abstractmethod
    async def fetch_record(self, id: str, namespace: str = "") -> Optional[IngestionRecord]:
        """Point lookup of a stored record; ``None`` when absent."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the vector store is healthy."""
        pass

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
        return None
