from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .catalog import ModelSpec
from .errors import UpstreamError
from .normalize import normalize_output
from .payload import (
    GenerationRequest,
    TryOnRequest,
    Transport,
    Uploader,
    build_generation_input,
    build_tryon_input,
    resolve_files,
    resolve_request_images,
)
from .polling import RemoteJob, RetryPolicy, poll_until_terminal
from .replicate import ReplicateClient


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedResult:
    image_url: str


async def submit_and_wait(
    client: ReplicateClient,
    spec: ModelSpec,
    model_input: dict[str, Any],
    policy: RetryPolicy,
    *,
    sync_wait_s: int = 60,
) -> RemoteJob:
    """Submit ``model_input`` and return the job once it succeeded.

    Sync-mode models usually come back finished; if the provider-side wait
    elapses first, the job is polled like an async one.
    """
    if spec.mode == "sync":
        job = await client.run(spec.ref, model_input, wait_s=sync_wait_s)
    else:
        job = await client.create(spec.ref, model_input)
    if not job.is_terminal and not job.id:
        raise UpstreamError("Inference provider returned a running job without an id", status=job.status)
    return await poll_until_terminal(job, client.get, policy)


async def generate_image(
    client: ReplicateClient,
    spec: ModelSpec,
    req: GenerationRequest,
    *,
    policy: RetryPolicy,
    transport: Transport = "inline",
    upload: Uploader | None = None,
    sync_wait_s: int = 60,
) -> NormalizedResult:
    image_ref, mask_ref = await resolve_request_images(req, transport=transport, upload=upload)
    model_input = build_generation_input(spec, req, image_ref, mask_ref)
    log.info("generate model=%s mode=%s edit=%s keys=%s", spec.ref, spec.mode, req.is_edit, sorted(model_input))
    job = await submit_and_wait(client, spec, model_input, policy, sync_wait_s=sync_wait_s)
    return NormalizedResult(image_url=normalize_output(job.output))


async def tryon_image(
    client: ReplicateClient,
    spec: ModelSpec,
    req: TryOnRequest,
    *,
    policy: RetryPolicy,
    transport: Transport = "inline",
    upload: Uploader | None = None,
) -> NormalizedResult:
    files = {"person": req.person, "top": req.top}
    if req.bottom is not None:
        files["bottom"] = req.bottom
    refs = await resolve_files(files, transport=transport, upload=upload, default_mime="image/jpeg")
    model_input = build_tryon_input(spec, refs)
    log.info("tryon model=%s garments=%d", spec.ref, len(files) - 1)
    job = await submit_and_wait(client, spec, model_input, policy)
    return NormalizedResult(image_url=normalize_output(job.output))
