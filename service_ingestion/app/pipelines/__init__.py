"""Image ingestion pipelines.

The modules in this package implement the ingestion stages (fetch, decode,
preprocess) and the orchestrator that sequences them with extraction and
the vector store upsert.

Highlights
- Each stage returns a tagged ``Success``/``Failure`` result
- The first failure ends the run; nothing is retried
"""
