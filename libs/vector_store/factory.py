"""Vector store factory for creating different implementations.

Centralizes creation of concrete ``VectorStore`` backends so callers don't
depend on implementation details. New stores can be added without changing
call sites.
"""

from typing import Any, Dict
from enum import Enum
import structlog

from .base import DEFAULT_VECTOR_DIMENSION, VectorStore
from .memory import InMemoryVectorStore
from .pinecone import PineconeVectorStore

logger = structlog.get_logger("vector_store.factory")


class VectorStoreType(Enum):
    """Supported vector store types."""
    PINECONE = "pinecone"
    MEMORY = "memory"


class VectorStoreFactory:
    """Factory for creating vector store instances."""

    @staticmethod
    def create(
        store_type: VectorStoreType,
        config: Dict[str, Any],
        **kwargs: Any
    ) -> VectorStore:
        """Create a vector store instance.

        Parameters
        - store_type: A ``VectorStoreType`` enum value
        - config: Backend-specific parameters (e.g., API key for Pinecone)
        - kwargs: Additional optional overrides forwarded to implementation
        """
        vector_dimension = config.get("vector_dimension", DEFAULT_VECTOR_DIMENSION)

        if store_type == VectorStoreType.PINECONE:
            index_name = config.get("index_name")
            if not index_name:
                raise ValueError("Pinecone requires 'index_name' in config")
            if not config.get("api_key") and "index" not in kwargs:
                raise ValueError("Pinecone requires 'api_key' in config")

            return PineconeVectorStore(
                index_name=index_name,
                api_key=config.get("api_key"),
                host=config.get("host"),
                vector_dimension=vector_dimension,
                **kwargs
            )

        elif store_type == VectorStoreType.MEMORY:
            return InMemoryVectorStore(vector_dimension=vector_dimension)

        else:
            raise ValueError(f"Unsupported vector store type: {store_type}")

    @staticmethod
    def create_from_config(config: Dict[str, Any]) -> VectorStore:
        """Create vector store from configuration dictionary.

        Expects a ``type`` key and any implementation-specific fields.
        """
        store_type_str = config.get("type", "pinecone")

        try:
            store_type = VectorStoreType(store_type_str)
        except ValueError:
            raise ValueError(f"Unsupported vector store type: {store_type_str}")

        return VectorStoreFactory.create(store_type, config)


def create_vector_store_from_env(env_config: Dict[str, str]) -> VectorStore:
    """Create vector store from environment configuration.

    Parameters
    - env_config: A flat mapping of environment variable names to values

    Returns
    - A ``VectorStore`` configured to talk to the backing datastore
    """
    backend = env_config.get("ML_VECTOR_BACKEND", "pinecone")
    vector_dimension = int(env_config.get("ML_VECTOR_DIMENSION", str(DEFAULT_VECTOR_DIMENSION)))

    if backend == "pinecone":
        config = {
            "type": "pinecone",
            "api_key": env_config.get("ML_PINECONE_API_KEY"),
            "index_name": env_config.get("ML_PINECONE_INDEX", "adv-vector-research"),
            "host": env_config.get("ML_PINECONE_HOST"),
            "vector_dimension": vector_dimension,
        }

        if not config["api_key"]:
            raise ValueError("ML_PINECONE_API_KEY environment variable is required")

        return VectorStoreFactory.create_from_config(config)

    elif backend == "memory":
        logger.warning("Using in-memory vector store; records are not persisted")
        return VectorStoreFactory.create_from_config({
            "type": "memory",
            "vector_dimension": vector_dimension,
        })

    else:
        raise ValueError(f"Unsupported vector backend: {backend}")
