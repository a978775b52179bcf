"""Tests for the image ingestion service.

Covers configuration, vector validation and storage, the individual
pipeline stages, the orchestrator end to end and the HTTP upload route.
External services are replaced with in-process fakes.
"""
