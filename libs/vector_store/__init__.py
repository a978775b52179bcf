"""Vector store adapters and utilities.

Primary components:
- ``base``: abstract ``VectorStore`` interface, vector validation and the
  store's exception taxonomy.
- ``pinecone``: Pinecone implementation of the interface.
- ``memory``: in-process implementation for local runs and tests.
- ``factory``: helpers to construct a store from typed config or env.

Guidance:
- Prefer constructing via ``factory.create_vector_store_from_env`` so runtime
  services remain decoupled from specific backends.
"""
