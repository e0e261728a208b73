from __future__ import annotations

from typing import AsyncIterator

import httpx


CHUNK_SIZE = 64 * 1024


async def iter_upstream(
    resp: httpx.Response,
    client: httpx.AsyncClient | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    # At most chunk_size bytes are held per iteration. Upstream is closed however iteration ends.
    try:
        async for chunk in resp.aiter_bytes(chunk_size):
            yield chunk
    finally:
        await close_upstream(resp, client)


async def close_upstream(resp: httpx.Response, client: httpx.AsyncClient | None = None) -> None:
    try:
        await resp.aclose()
    finally:
        if client is not None:
            await client.aclose()


def has_body(resp: httpx.Response) -> bool:
    if resp.status_code in (204, 304) or resp.request.method == "HEAD":
        return False
    return resp.headers.get("content-length") != "0"
