"""Shared fixtures and fakes for the ingestion tests."""

import io
from typing import Callable, Dict, List, Tuple

import httpx
import numpy as np
import pytest
from PIL import Image

from libs.common.metrics import MetricsCollector
from libs.vector_store.base import IngestionRecord, StoreUnavailableError, UpsertResult
from libs.vector_store.memory import InMemoryVectorStore
from service_ingestion.app.pipelines.fetcher import ImageFetcher
from service_ingestion.app.pipelines.orchestrator import IngestionPipeline
from service_ingestion.app.pipelines.preprocessor import INPUT_SHAPE

IMAGE_URL = "https://images.example.com/cat.jpg"


def make_image_bytes(width: int = 64, height: int = 48, mode: str = "RGB",
                     fmt: str = "JPEG", color=(200, 120, 40)) -> bytes:
    """Encode a solid-colour image in memory."""
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


class FakeExtractor:
    """Deterministic stand-in for ``EmbeddingExtractor``.

    Output depends on the tensor's mean so different images give different
    vectors; ``dimension`` can be set wrong to simulate a model fault.
    """

    def __init__(self, dimension: int = 1280):
        self.dimension = dimension
        self.calls = 0

    def extract(self, tensor: np.ndarray) -> List[float]:
        assert tensor.shape == INPUT_SHAPE
        self.calls += 1
        base = float(tensor.mean())
        return (np.linspace(0.0, 1.0, self.dimension) + base).tolist()


class RecordingVectorStore(InMemoryVectorStore):
    """In-memory store that counts backend writes."""

    def __init__(self, vector_dimension: int = 1280):
        super().__init__(vector_dimension=vector_dimension)
        self.writes = 0

    async def _write(self, record: IngestionRecord) -> UpsertResult:
        self.writes += 1
        return await super()._write(record)


class UnavailableVectorStore(RecordingVectorStore):
    """Store whose backend is down."""

    async def _write(self, record: IngestionRecord) -> UpsertResult:
        self.writes += 1
        raise StoreUnavailableError("connection refused")


def make_fetcher(routes: Dict[str, Tuple[int, bytes]]) -> ImageFetcher:
    """Build a fetcher whose HTTP client answers from ``routes``."""

    def handler(request: httpx.Request) -> httpx.Response:
        status, content = routes.get(str(request.url), (404, b"not found"))
        return httpx.Response(status, content=content)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ImageFetcher(client=client)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def vector_store() -> RecordingVectorStore:
    return RecordingVectorStore()


@pytest.fixture
def metrics_collector() -> MetricsCollector:
    return MetricsCollector("test-ingestion")


@pytest.fixture
def build_pipeline(vector_store, metrics_collector) -> Callable[..., IngestionPipeline]:
    """Factory for pipelines wired to fakes; override any collaborator by keyword."""

    def _build(routes: Dict[str, Tuple[int, bytes]] = None, **overrides) -> IngestionPipeline:
        kwargs = {
            "fetcher": make_fetcher(routes or {}),
            "extractor": FakeExtractor(),
            "vector_store": vector_store,
            "metrics_collector": metrics_collector,
        }
        kwargs.update(overrides)
        return IngestionPipeline(**kwargs)

    return _build
