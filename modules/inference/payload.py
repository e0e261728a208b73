from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal, Union
from urllib.parse import urlparse

from .catalog import ModelSpec
from .errors import ConfigurationError, ValidationError


log = logging.getLogger(__name__)

Primitive = Union[str, int, float, bool]
Transport = Literal["inline", "upload"]


@dataclass
class ImageFile:
    data: bytes
    content_type: str | None = None
    filename: str | None = None


ImageSource = Union[ImageFile, str]

# Stores one file under a kind tag and returns its public URL.
Uploader = Callable[[ImageFile, str], Awaitable[str]]


@dataclass
class GenerationRequest:
    prompt: str
    image: ImageSource | None = None
    mask: ImageSource | None = None
    parameters: dict[str, Primitive] = field(default_factory=dict)

    @property
    def is_edit(self) -> bool:
        return self.image is not None


@dataclass
class TryOnRequest:
    person: ImageFile
    top: ImageFile
    bottom: ImageFile | None = None


def _check_url(slot: str, value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationError(f"{slot}Url must be an absolute http(s) URL")
    return value


def parse_generation_request(
    prompt: str | None,
    *,
    image: ImageFile | None = None,
    mask: ImageFile | None = None,
    image_url: str | None = None,
    mask_url: str | None = None,
    parameters: dict[str, Any] | None = None,
) -> GenerationRequest:
    """Validate raw form values into a GenerationRequest.

    Runs before any upload or provider call: prompt must be non-blank, image and
    mask come as a pair, and a pair is either two files or two URLs.
    """
    text = (prompt or "").strip()
    if not text:
        raise ValidationError("prompt is required")

    image_url = (image_url or "").strip() or None
    mask_url = (mask_url or "").strip() or None
    if image is not None and image_url:
        raise ValidationError("Provide either image or imageUrl, not both")
    if mask is not None and mask_url:
        raise ValidationError("Provide either mask or maskUrl, not both")

    img: ImageSource | None = image if image is not None else image_url
    msk: ImageSource | None = mask if mask is not None else mask_url
    if (img is None) != (msk is None):
        raise ValidationError("To edit/inpaint, provide BOTH image and mask")
    if img is not None and isinstance(img, str) != isinstance(msk, str):
        raise ValidationError("image and mask must both be files or both be URLs")
    if isinstance(img, str):
        _check_url("image", img)
    if isinstance(msk, str):
        _check_url("mask", msk)

    params: dict[str, Primitive] = {}
    for key, value in (parameters or {}).items():
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        params[key] = value.strip() if isinstance(value, str) else value
    return GenerationRequest(prompt=text, image=img, mask=msk, parameters=params)


def parse_tryon_request(
    person: ImageFile | None, top: ImageFile | None, bottom: ImageFile | None = None
) -> TryOnRequest:
    if person is None or top is None:
        raise ValidationError("person and top images are required")
    return TryOnRequest(person=person, top=top, bottom=bottom)


def to_data_url(image: ImageFile, default_mime: str = "image/png") -> str:
    mime = image.content_type or default_mime
    encoded = base64.b64encode(image.data).decode("ascii")
    return f"data:{mime};base64,{encoded}"


async def resolve_files(
    files: dict[str, ImageFile],
    *,
    transport: Transport,
    upload: Uploader | None = None,
    default_mime: str = "image/png",
) -> dict[str, str]:
    """Turn binary inputs into references the provider accepts.

    ``inline`` encodes each file as a data URL; ``upload`` stores all files in
    parallel and returns their public URLs. One strategy per call.
    """
    if not files:
        return {}
    if transport == "inline":
        return {slot: to_data_url(f, default_mime) for slot, f in files.items()}
    if upload is None:
        raise ConfigurationError("Upload transport requires object storage settings")
    slots = list(files)
    urls = await asyncio.gather(*(upload(files[s], s) for s in slots))
    return dict(zip(slots, urls))


async def resolve_request_images(
    req: GenerationRequest,
    *,
    transport: Transport,
    upload: Uploader | None = None,
) -> tuple[str | None, str | None]:
    if req.image is None or req.mask is None:
        return None, None
    if isinstance(req.image, str) and isinstance(req.mask, str):
        return req.image, req.mask
    if not (isinstance(req.image, ImageFile) and isinstance(req.mask, ImageFile)):
        raise ValidationError("image and mask must both be files or both be URLs")
    refs = await resolve_files({"image": req.image, "mask": req.mask}, transport=transport, upload=upload)
    return refs["image"], refs["mask"]


def _allow(spec: ModelSpec, candidate: dict[str, Any]) -> dict[str, Any]:
    dropped = sorted(k for k in candidate if k not in spec.input_keys)
    if dropped:
        log.debug("dropping inputs not accepted by %s: %s", spec.ref, dropped)
    return {k: v for k, v in candidate.items() if k in spec.input_keys}


def build_generation_input(
    spec: ModelSpec,
    req: GenerationRequest,
    image_ref: str | None = None,
    mask_ref: str | None = None,
) -> dict[str, Any]:
    if req.is_edit and not {"image", "mask"} <= spec.input_keys:
        raise ValidationError(f"Model {spec.ref} does not support image editing")
    candidate: dict[str, Any] = dict(req.parameters)
    candidate["prompt"] = req.prompt
    candidate.pop("image", None)
    candidate.pop("mask", None)
    if req.is_edit:
        if not image_ref or not mask_ref:
            raise ValidationError("To edit/inpaint, provide BOTH image and mask")
        candidate["image"] = image_ref
        candidate["mask"] = mask_ref
    return _allow(spec, candidate)


def build_tryon_input(spec: ModelSpec, refs: dict[str, str]) -> dict[str, Any]:
    candidate = {
        "person_image": refs["person"],
        "garment_image": refs["top"],
    }
    if refs.get("bottom"):
        candidate["garment_image_2"] = refs["bottom"]
    return _allow(spec, candidate)
