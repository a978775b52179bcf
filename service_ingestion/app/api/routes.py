"""API routes for the ingestion service."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PayloadError
import structlog

from libs.common.logging import bind_request_context, clear_request_context

from ..pipelines.errors import IngestionError
from ..pipelines.orchestrator import IngestionPipeline

logger = structlog.get_logger("ingestion_service.api")

router = APIRouter()

MISSING_FIELDS_MESSAGE = "Missing 'imageUrl' or 'id' in request body."

# HTTP status reported for each failure category.
CATEGORY_STATUS = {
    "fetch": 502,
    "decode": 422,
    "preprocess": 422,
    "validation": 500,
    "extraction": 500,
    "store": 503,
}


class UploadRequest(BaseModel):
    """Request model for the upload endpoint.

    Both fields are optional at the schema level so that a missing field is
    answered with the service's own 400 message instead of a 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    image_url: Optional[str] = Field(None, alias="imageUrl", description="URL of the image to ingest")
    id: Optional[str] = Field(None, description="Identifier to store the vector under")


class UploadResponse(BaseModel):
    """Response model for a successful upload."""
    message: str = Field(..., description="Human-readable outcome")
    id: str = Field(..., description="Stored identifier")
    namespace: str = Field(..., description="Namespace the vector was written to")


def get_pipeline(request: Request) -> IngestionPipeline:
    """Get the ingestion pipeline from application state."""
    return request.app.state.pipeline


def error_response(error: IngestionError) -> JSONResponse:
    return JSONResponse(
        status_code=CATEGORY_STATUS.get(error.category, 500),
        content={
            "error": str(error.cause),
            "stage": error.stage,
            "category": error.category,
        },
    )


@router.post("/upload", response_model=UploadResponse)
async def upload(
    payload: Optional[Dict[str, Any]] = Body(None),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """Download an image, embed it and upsert the vector under ``id``."""
    try:
        body = UploadRequest.model_validate(payload or {})
    except PayloadError:
        return JSONResponse(
            status_code=400,
            content={"error": "'imageUrl' and 'id' must be strings."},
        )
    if not body.image_url or not body.id:
        return JSONResponse(status_code=400, content={"error": MISSING_FIELDS_MESSAGE})

    bind_request_context(image_id=body.id)
    try:
        result = await pipeline.ingest(body.image_url, body.id)
    finally:
        clear_request_context("image_id")

    if not result.ok:
        return error_response(result.error)

    record = result.value
    logger.info("Upload completed", image_id=record.id, namespace=record.namespace)
    return UploadResponse(
        message=f"Vector for {record.id} upserted successfully!",
        id=record.id,
        namespace=record.namespace,
    )
