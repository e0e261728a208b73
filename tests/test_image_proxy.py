from typing import AsyncIterator, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from services.api.app import create_app
from services.api.config import Settings
from services.api.deps import get_http_client_factory
from services.api.routes.images import CACHE_FOREVER
from services.api.utils.streaming import iter_upstream

IMG = "https://replicate.delivery/xezq/out-0.webp"


def make_client(handler) -> tuple[TestClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    app = create_app(Settings())

    def _factory() -> Callable[[], httpx.AsyncClient]:
        return lambda: httpx.AsyncClient(transport=httpx.MockTransport(_record))

    app.dependency_overrides[get_http_client_factory] = _factory
    return TestClient(app), seen


def test_proxy_streams_upstream_with_cache_headers() -> None:
    client, seen = make_client(
        lambda request: httpx.Response(200, content=b"RIFF....WEBP", headers={"content-type": "image/webp"})
    )
    r = client.get("/v1/img", params={"url": IMG})
    assert r.status_code == 200
    assert r.content == b"RIFF....WEBP"
    assert r.headers["content-type"] == "image/webp"
    assert r.headers["content-length"] == str(len(b"RIFF....WEBP"))
    assert r.headers["cache-control"] == CACHE_FOREVER
    assert r.headers["access-control-allow-origin"] == "*"

    upstream_req = seen[0]
    assert upstream_req.headers["cache-control"] == "no-store"
    assert upstream_req.headers["user-agent"].startswith("Mozilla/5.0")


def test_proxy_defaults_content_type_to_jpeg() -> None:
    client, _ = make_client(lambda request: httpx.Response(200, content=b"\xff\xd8\xff"))
    r = client.get("/v1/img", params={"url": IMG})
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/jpeg"


def test_proxy_missing_url_is_400() -> None:
    client, seen = make_client(lambda request: httpx.Response(200, content=b"x"))
    r = client.get("/v1/img")
    assert r.status_code == 400
    assert r.text == "Missing url"
    assert seen == []


def test_proxy_rejects_non_http_urls() -> None:
    client, seen = make_client(lambda request: httpx.Response(200, content=b"x"))
    r = client.get("/v1/img", params={"url": "file:///etc/passwd"})
    assert r.status_code == 400
    assert seen == []


@pytest.mark.parametrize("status", [404, 403, 500])
def test_proxy_upstream_failure_is_502(status: int) -> None:
    client, _ = make_client(lambda request: httpx.Response(status, content=b"nope"))
    r = client.get("/v1/img", params={"url": IMG})
    assert r.status_code == 502
    assert r.text == "Upstream fetch failed"


def test_proxy_empty_upstream_body_is_502() -> None:
    client, _ = make_client(lambda request: httpx.Response(204))
    r = client.get("/v1/img", params={"url": IMG})
    assert r.status_code == 502


def test_proxy_connection_error_is_500() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("name resolution failed", request=request)

    client, _ = make_client(handler)
    r = client.get("/v1/img", params={"url": IMG})
    assert r.status_code == 500
    assert r.text.startswith("Proxy error:")


async def _synthetic_body(total: int, piece: int) -> AsyncIterator[bytes]:
    sent = 0
    while sent < total:
        n = min(piece, total - sent)
        sent += n
        yield b"\0" * n


@pytest.mark.asyncio
@pytest.mark.parametrize("total", [10 * 1024, 8 * 1024 * 1024])
async def test_streaming_chunks_are_bounded_regardless_of_size(total: int) -> None:
    resp = httpx.Response(200, content=_synthetic_body(total, piece=1024 * 1024))
    largest = 0
    received = 0
    async for chunk in iter_upstream(resp, chunk_size=16 * 1024):
        largest = max(largest, len(chunk))
        received += len(chunk)
    assert received == total
    assert largest <= 16 * 1024


async def _breaks_after_first_chunk() -> AsyncIterator[bytes]:
    yield b"\0" * 1000
    raise httpx.ReadError("connection reset")


@pytest.mark.asyncio
async def test_upstream_read_error_closes_response_and_client() -> None:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=_breaks_after_first_chunk()))
    )
    upstream = await client.send(client.build_request("GET", IMG), stream=True)
    received = 0
    with pytest.raises(httpx.ReadError):
        async for chunk in iter_upstream(upstream, client):
            received += len(chunk)
    assert received == 1000
    assert upstream.is_closed
    assert client.is_closed


def test_proxy_closes_its_client_after_streaming() -> None:
    opened: list[httpx.AsyncClient] = []
    app = create_app(Settings())

    def _factory() -> Callable[[], httpx.AsyncClient]:
        def _make() -> httpx.AsyncClient:
            c = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"img")))
            opened.append(c)
            return c

        return _make

    app.dependency_overrides[get_http_client_factory] = _factory
    r = TestClient(app).get("/v1/img", params={"url": IMG})
    assert r.status_code == 200
    assert r.content == b"img"
    assert len(opened) == 1
    assert opened[0].is_closed
