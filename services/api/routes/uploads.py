from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from modules.inference.errors import ConfigurationError, ValidationError
from modules.storage.uploads import store_asset
from services.api.config import Settings
from services.api.deps import get_app_settings
from services.api.metrics import UPLOADS
from services.api.schemas.errors import ErrorResponse
from services.api.schemas.uploads import UploadResponse


router = APIRouter(prefix="", tags=["uploads"])


@router.post(
    "/uploads",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_file(
    file: UploadFile | None = File(default=None),
    kind: str | None = Form(default=None),
    settings: Settings = Depends(get_app_settings),
) -> UploadResponse:
    if file is None:
        raise ValidationError("file is required")
    cfg = settings.s3_config()
    if cfg is None:
        raise ConfigurationError("Object storage is not configured (TRYON_S3_BUCKET)")

    data = await file.read()
    asset = await run_in_threadpool(
        store_asset,
        cfg,
        data,
        kind=kind or "file",
        filename=file.filename,
        content_type=file.content_type,
    )
    UPLOADS.labels(kind=asset.kind).inc()
    return UploadResponse(url=asset.url, kind=asset.kind, filename=asset.filename)
