from __future__ import annotations

from typing import Callable

import httpx
from fastapi import Depends, Request
from fastapi.concurrency import run_in_threadpool

from modules.inference.errors import ConfigurationError
from modules.inference.payload import ImageFile, Uploader
from modules.inference.replicate import ReplicateClient
from modules.storage.uploads import store_asset
from services.api.config import ProviderConfig, Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_provider(request: Request) -> ProviderConfig:
    outcome = request.app.state.provider
    if isinstance(outcome, ConfigurationError):
        raise ConfigurationError(outcome.message, **outcome.diagnostics)
    return outcome


def get_replicate_client(provider: ProviderConfig = Depends(get_provider)) -> ReplicateClient:
    return ReplicateClient(provider.token, base_url=provider.base_url, timeout_s=provider.timeout_s)


def get_uploader(settings: Settings = Depends(get_app_settings)) -> Uploader | None:
    cfg = settings.s3_config()
    if cfg is None:
        return None

    async def _upload(image: ImageFile, kind: str) -> str:
        asset = await run_in_threadpool(
            store_asset,
            cfg,
            image.data,
            kind=kind,
            filename=image.filename,
            content_type=image.content_type,
        )
        return asset.url

    return _upload


def get_http_client_factory(settings: Settings = Depends(get_app_settings)) -> Callable[[], httpx.AsyncClient]:
    def _factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=settings.http_timeout_s, follow_redirects=True)

    return _factory
