"""Image ingestion service: image URL to embedding to vector index."""
