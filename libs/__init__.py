"""Shared libraries for the ingestion service.

Subpackages:
- ``libs.common``: configuration, logging, and metrics.
- ``libs.vector_store``: vector store abstraction, validation and backends.

Notes:
- Avoid service-specific logic; keep modules cohesive and broadly useful.
"""
