from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile

from modules.inference.errors import ConfigurationError
from modules.inference.payload import ImageFile, Uploader, parse_generation_request, parse_tryon_request
from modules.inference.replicate import ReplicateClient
from modules.inference.service import generate_image, tryon_image
from services.api.config import ProviderConfig, Settings
from services.api.deps import get_app_settings, get_provider, get_replicate_client, get_uploader
from services.api.metrics import GENERATIONS
from services.api.schemas.errors import ErrorResponse
from services.api.schemas.generate import GenerateResponse


router = APIRouter(prefix="", tags=["generate"])

_ERRORS = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


async def read_upload(upload: UploadFile | None) -> ImageFile | None:
    # Browsers post an empty, unnamed part for an untouched file input.
    if upload is None:
        return None
    data = await upload.read()
    if not data and not upload.filename:
        return None
    return ImageFile(data=data, content_type=upload.content_type, filename=upload.filename)


@router.post("/generate", response_model=GenerateResponse, responses=_ERRORS)
async def generate(
    prompt: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    mask: UploadFile | None = File(default=None),
    image_url: str | None = Form(default=None, alias="imageUrl"),
    mask_url: str | None = Form(default=None, alias="maskUrl"),
    aspect_ratio: str | None = Form(default=None),
    magic_prompt_option: str | None = Form(default=None),
    style_type: str | None = Form(default=None),
    negative_prompt: str | None = Form(default=None),
    seed: int | None = Form(default=None),
    provider: ProviderConfig = Depends(get_provider),
    replicate: ReplicateClient = Depends(get_replicate_client),
    upload: Uploader | None = Depends(get_uploader),
    settings: Settings = Depends(get_app_settings),
) -> GenerateResponse:
    req = parse_generation_request(
        prompt,
        image=await read_upload(image),
        mask=await read_upload(mask),
        image_url=image_url,
        mask_url=mask_url,
        parameters={
            "aspect_ratio": aspect_ratio,
            "magic_prompt_option": magic_prompt_option,
            "style_type": style_type,
            "negative_prompt": negative_prompt,
            "seed": seed,
        },
    )
    async with replicate:
        result = await generate_image(
            replicate,
            provider.generate,
            req,
            policy=settings.retry_policy,
            transport=settings.image_transport,
            upload=upload,
            sync_wait_s=settings.sync_wait_s,
        )
    GENERATIONS.labels(endpoint="generate").inc()
    return GenerateResponse(image_url=result.image_url)


@router.post("/tryon", response_model=GenerateResponse, responses=_ERRORS)
async def tryon(
    person: UploadFile | None = File(default=None),
    top: UploadFile | None = File(default=None),
    bottom: UploadFile | None = File(default=None),
    provider: ProviderConfig = Depends(get_provider),
    replicate: ReplicateClient = Depends(get_replicate_client),
    upload: Uploader | None = Depends(get_uploader),
    settings: Settings = Depends(get_app_settings),
) -> GenerateResponse:
    if provider.tryon is None:
        raise ConfigurationError("Missing TRYON_TRYON_MODEL_VERSION")
    req = parse_tryon_request(await read_upload(person), await read_upload(top), await read_upload(bottom))
    async with replicate:
        result = await tryon_image(
            replicate,
            provider.tryon,
            req,
            policy=settings.retry_policy,
            transport=settings.image_transport,
            upload=upload,
        )
    GENERATIONS.labels(endpoint="tryon").inc()
    return GenerateResponse(image_url=result.image_url)
