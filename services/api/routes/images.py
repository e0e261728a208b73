from __future__ import annotations

import logging
from typing import Callable
from urllib.parse import urlparse

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from modules.inference.errors import ProxyError, TryOnError, UpstreamError, ValidationError
from services.api.deps import get_http_client_factory
from services.api.metrics import PROXY_RESPONSES
from services.api.utils.streaming import has_body, iter_upstream


log = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["images"])

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
    "Cache-Control": "no-store",
}

CACHE_FOREVER = "public, max-age=31536000, immutable"


async def _open(client: httpx.AsyncClient, url: str) -> httpx.Response:
    try:
        upstream = await client.send(client.build_request("GET", url, headers=BROWSER_HEADERS), stream=True)
    except Exception as exc:  # noqa: BLE001
        raise ProxyError(f"Proxy error: {exc}") from exc
    if not upstream.is_success or not has_body(upstream):
        status = upstream.status_code
        await upstream.aclose()
        raise UpstreamError("Upstream fetch failed", upstreamStatus=status)
    return upstream


@router.get(
    "/img",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"image/*": {}}},
        400: {"content": {"text/plain": {}}},
        502: {"content": {"text/plain": {}}},
        500: {"content": {"text/plain": {}}},
    },
)
async def proxy_image(
    url: str | None = None,
    client_factory: Callable[[], httpx.AsyncClient] = Depends(get_http_client_factory),
) -> Response:
    client: httpx.AsyncClient | None = None
    try:
        if not url:
            raise ValidationError("Missing url")
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValidationError("url must be an absolute http(s) URL")
        client = client_factory()
        upstream = await _open(client, url)
    except TryOnError as exc:
        if client is not None:
            await client.aclose()
        log.warning("proxy %s -> %d: %s", url, exc.status_code, exc.message)
        PROXY_RESPONSES.labels(status=str(exc.status_code)).inc()
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    headers = {
        "Cache-Control": CACHE_FOREVER,
        "Access-Control-Allow-Origin": "*",
    }
    length = upstream.headers.get("content-length")
    # aiter_bytes decodes content-encoding, so the upstream length only holds for identity bodies.
    if length and not upstream.headers.get("content-encoding"):
        headers["Content-Length"] = length
    PROXY_RESPONSES.labels(status="200").inc()
    return StreamingResponse(
        iter_upstream(upstream, client),
        status_code=200,
        media_type=upstream.headers.get("content-type") or "image/jpeg",
        headers=headers,
    )
