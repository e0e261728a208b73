from __future__ import annotations

from fastapi import APIRouter, File, Response, UploadFile
from fastapi.concurrency import run_in_threadpool

from modules.imaging.mask import clothing_mask_png
from modules.inference.errors import ValidationError
from services.api.schemas.errors import ErrorResponse


router = APIRouter(prefix="", tags=["mask"])


@router.post(
    "/mask",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}, 400: {"model": ErrorResponse}},
)
async def make_mask(image: UploadFile | None = File(default=None)) -> Response:
    """Rectangle clothing mask matching the uploaded photo's size."""
    if image is None:
        raise ValidationError("image is required")
    data = await image.read()
    png = await run_in_threadpool(clothing_mask_png, data)
    return Response(png, media_type="image/png", headers={"Cache-Control": "no-store"})
