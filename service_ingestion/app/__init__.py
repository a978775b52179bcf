"""Ingestion service package.

Layout:
- ``api``: FastAPI route handlers and request/response models.
- ``encoders``: ``ImageFeatureModel`` and ``EmbeddingExtractor``.
- ``pipelines``: fetch, decode, preprocess stages and the orchestrator.
- ``runtime``: service-local metrics and runtime helpers.

Import convenience:
- from service_ingestion.app.pipelines.orchestrator import IngestionPipeline
"""
