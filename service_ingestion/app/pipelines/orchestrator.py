"""Ingestion pipeline orchestrator.

Runs fetch -> decode -> preprocess -> extract -> upsert for one image. The
first failing stage ends the run; the caller gets a single ``Failure``
whose error is an ``IngestionError`` naming that stage. The upsert is the
last stage, so a failed run never leaves anything in the vector store.

Execution model
- One coroutine per request; no shared mutable state besides the model
  handle (read-only) and the store client
- CPU-bound stages run in worker threads via ``run_stage``
- No retries and no per-identifier locking: two concurrent requests for
  the same id race and the store keeps whichever write lands last
"""

from typing import Any, Callable, Optional

import numpy as np
import structlog

from libs.common.metrics import MetricsCollector
from libs.vector_store.base import IngestionRecord, StoreUnavailableError, VectorStore

from .decoder import decode_image
from .errors import IngestionError
from .fetcher import ImageFetcher
from .preprocessor import preprocess
from .stages import (
    DECODE,
    EXTRACT,
    FETCH,
    PREPROCESS,
    UPSERT,
    Failure,
    StageResult,
    Success,
    run_stage,
)

logger = structlog.get_logger("ingestion.orchestrator")


class IngestionPipeline:
    """Sequence the ingestion stages for one image at a time.

    Parameters
    - fetcher: Object with ``async fetch(url) -> bytes``
    - extractor: Object with ``extract(tensor) -> list of floats``
    - vector_store: ``VectorStore`` receiving the upsert
    - namespace: Namespace for every upsert made by this pipeline
    - decoder / preprocessor: Overridable stage callables
    - metrics_collector: Optional ``MetricsCollector`` for stage metrics
    """

    def __init__(
        self,
        fetcher: ImageFetcher,
        extractor: Any,
        vector_store: VectorStore,
        namespace: str = "",
        decoder: Callable[[bytes], np.ndarray] = decode_image,
        preprocessor: Callable[[np.ndarray], np.ndarray] = preprocess,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self.fetcher = fetcher
        self.extractor = extractor
        self.vector_store = vector_store
        self.namespace = namespace
        self.decoder = decoder
        self.preprocessor = preprocessor
        self.metrics_collector = metrics_collector

    async def fetch(self, image_url: str) -> StageResult:
        return await self._run(FETCH, self.fetcher.fetch, image_url)

    async def decode(self, data: bytes) -> StageResult:
        return await self._run(DECODE, self.decoder, data)

    async def preprocess(self, pixels: np.ndarray) -> StageResult:
        return await self._run(PREPROCESS, self.preprocessor, pixels)

    async def extract(self, tensor: np.ndarray) -> StageResult:
        return await self._run(EXTRACT, self.extractor.extract, tensor)

    async def upsert(self, vector: Any, image_id: str) -> StageResult:
        return await self._run(UPSERT, self.vector_store.upsert, vector, image_id, self.namespace)

    async def ingest(self, image_url: str, image_id: str) -> StageResult:
        """Ingest one image.

        Returns ``Success`` whose value is the stored ``IngestionRecord``, or
        ``Failure`` whose error is an ``IngestionError``.
        """
        log = logger.bind(image_id=image_id, image_url=image_url)

        result = await self.fetch(image_url)
        for next_stage in (self.decode, self.preprocess, self.extract):
            if isinstance(result, Failure):
                return self._fail(result, log)
            result = await next_stage(result.value)
        if isinstance(result, Failure):
            return self._fail(result, log)

        vector = result.value
        result = await self.upsert(vector, image_id)
        if isinstance(result, Failure):
            return self._fail(result, log)

        record = IngestionRecord(
            id=result.value.id,
            vector=list(vector),
            namespace=result.value.namespace,
        )

        if self.metrics_collector:
            self.metrics_collector.record_ingestion("success")
            self.metrics_collector.record_vector_store_operation("upsert", "success")
        log.info("Image ingested", namespace=record.namespace, dimension=len(record.vector))

        return Success(stage=UPSERT, value=record)

    async def _run(self, stage: str, func: Callable[..., Any], *args: Any) -> StageResult:
        result = await run_stage(stage, func, *args)
        if self.metrics_collector:
            self.metrics_collector.record_stage(stage, result.duration)
        return result

    def _fail(self, failure: Failure, log: Any) -> Failure:
        error = IngestionError(failure.stage, failure.error)

        if self.metrics_collector:
            self.metrics_collector.record_ingestion("failure")
            self.metrics_collector.record_stage_failure(failure.stage, error.error_type)
            if isinstance(failure.error, StoreUnavailableError):
                self.metrics_collector.record_vector_store_operation("upsert", "failure")

        log.warning(
            "Image ingestion failed",
            stage=failure.stage,
            error_type=error.error_type,
            category=error.category,
            error=str(failure.error),
        )
        return Failure(stage=failure.stage, error=error, duration=failure.duration)
