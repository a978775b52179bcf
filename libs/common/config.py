"""Configuration management for the image ingestion service.

This module centralizes environment-driven configuration. It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults.

Highlights
- Strongly-typed settings with sensible defaults
- One place to discover commonly used environment variables
- Small service-specific subclasses to keep concerns clear

Usage
- Inject the appropriate config in your service entrypoint:
  ``config = IngestionConfig()``
- Or select dynamically: ``config = get_config("ingestion")``
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class for all services.

    Field names double as environment variable names (case-insensitive),
    so ``ml_log_level`` is read from ``ML_LOG_LEVEL``.

    Notes
    - Add new shared settings here so downstream services inherit them.
    - Prefer a typed field over reading ``os.environ`` directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ml_env: str = Field(default="local")

    # Logging
    ml_log_level: str = Field(default="INFO")
    ml_log_format: str = Field(default="json")

    # Vector store
    ml_vector_backend: str = Field(default="pinecone")
    ml_vector_dimension: int = Field(default=1280)
    ml_vector_namespace: str = Field(default="")

    # Pinecone
    ml_pinecone_api_key: Optional[str] = Field(default=None)
    ml_pinecone_index: str = Field(default="adv-vector-research")
    ml_pinecone_host: Optional[str] = Field(default=None)


class IngestionConfig(BaseConfig):
    """Configuration for the image ingestion service.

    Extends ``BaseConfig`` with the feature model selection, the image
    fetch timeout and the HTTP bind address.
    """

    ml_image_model: str = Field(default="mobilenet_v2")
    ml_image_model_pretrained: bool = Field(default=True)
    ml_fetch_timeout_seconds: float = Field(default=30.0)
    ml_ingestion_host: str = Field(default="0.0.0.0")
    ml_ingestion_port: int = Field(default=3000)

    def vector_store_env(self) -> Dict[str, str]:
        """Flatten vector store settings into the env mapping the factory reads."""
        env_config = {
            "ML_VECTOR_BACKEND": self.ml_vector_backend,
            "ML_VECTOR_DIMENSION": str(self.ml_vector_dimension),
            "ML_PINECONE_INDEX": self.ml_pinecone_index,
        }
        if self.ml_pinecone_api_key:
            env_config["ML_PINECONE_API_KEY"] = self.ml_pinecone_api_key
        if self.ml_pinecone_host:
            env_config["ML_PINECONE_HOST"] = self.ml_pinecone_host
        return env_config


def get_config(service_name: str) -> BaseConfig:
    """Get configuration for a specific service.

    Parameters
    - service_name: Literal name, currently only ``ingestion``.

    Returns
    - A concrete ``BaseConfig`` subclass pre-wired to read the right env vars.
    """
    config_map = {
        "ingestion": IngestionConfig,
    }

    # Default to ``BaseConfig`` to avoid surprising crashes for unknown names.
    config_class = config_map.get(service_name, BaseConfig)
    return config_class()

