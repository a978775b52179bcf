"""Tests for common utilities."""

import pytest
import structlog

from libs.common.config import BaseConfig, IngestionConfig, get_config
from libs.common.logging import bind_request_context, clear_request_context, configure_logging
from libs.common.metrics import MetricsCollector, get_metrics_collector


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host ML_* variables from leaking into config defaults."""
    for name in (
        "ML_VECTOR_DIMENSION",
        "ML_VECTOR_BACKEND",
        "ML_PINECONE_API_KEY",
        "ML_PINECONE_HOST",
        "ML_LOG_LEVEL",
        "ML_INGESTION_PORT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_config_loading():
    """Test configuration defaults."""
    config = BaseConfig()
    assert config.ml_env == "local"
    assert config.ml_log_level == "INFO"
    assert config.ml_vector_dimension == 1280
    assert config.ml_vector_namespace == ""
    assert config.ml_pinecone_index == "adv-vector-research"


def test_ingestion_config():
    """Test ingestion service configuration."""
    config = IngestionConfig()
    assert config.ml_image_model == "mobilenet_v2"
    assert config.ml_image_model_pretrained is True
    assert config.ml_ingestion_port == 3000
    assert config.ml_fetch_timeout_seconds == 30.0


def test_config_reads_environment(monkeypatch):
    monkeypatch.setenv("ML_VECTOR_DIMENSION", "512")
    monkeypatch.setenv("ML_VECTOR_BACKEND", "memory")

    config = IngestionConfig()
    assert config.ml_vector_dimension == 512
    assert config.ml_vector_backend == "memory"


def test_get_config():
    assert isinstance(get_config("ingestion"), IngestionConfig)
    unknown = get_config("unknown-service")
    assert type(unknown) is BaseConfig


def test_vector_store_env_omits_unset_secrets():
    env = IngestionConfig().vector_store_env()
    assert env["ML_VECTOR_DIMENSION"] == "1280"
    assert "ML_PINECONE_API_KEY" not in env

    env = IngestionConfig(ml_pinecone_api_key="secret").vector_store_env()
    assert env["ML_PINECONE_API_KEY"] == "secret"


def test_logging_configuration():
    """Test logging configuration."""
    # This should not raise an exception
    configure_logging("test-service", "INFO", "json")
    configure_logging("test-service", "debug", "console")


@pytest.mark.parametrize("level, fmt", [("LOUD", "json"), ("INFO", "xml")])
def test_logging_rejects_unknown_settings(level, fmt):
    with pytest.raises(ValueError):
        configure_logging("test-service", level, fmt)


def test_request_context_binding():
    configure_logging("test-service", "INFO", "json")
    bind_request_context(image_id="img-1")
    assert structlog.contextvars.get_contextvars()["image_id"] == "img-1"

    clear_request_context("image_id")
    context = structlog.contextvars.get_contextvars()
    assert "image_id" not in context
    assert context["service"] == "test-service"


def test_metrics_collector():
    """Test metrics collector."""
    collector = MetricsCollector("test-service")
    assert collector.service_name == "test-service"

    collector.record_http_request("POST", "/upload", 200, 0.1)
    collector.record_stage("fetch", 0.05)
    collector.record_stage_failure("decode", "DecodeError")
    collector.record_ingestion("failure")
    collector.record_vector_store_operation("upsert", "success")
    collector.set_model_loaded("mobilenet_v2", True)

    metrics = collector.get_metrics()
    assert isinstance(metrics, str)
    assert "http_requests_total" in metrics
    assert 'ml_ingestion_stage_failures_total{stage="decode",error_type="DecodeError"} 1.0' in metrics
    assert 'ml_model_loaded{model_name="mobilenet_v2"} 1.0' in metrics


def test_metrics_collector_is_process_wide():
    assert get_metrics_collector("svc") is get_metrics_collector("svc")
