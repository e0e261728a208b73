import json

import httpx
from fastapi import Depends
from fastapi.testclient import TestClient

from modules.inference.replicate import ReplicateClient
from services.api.app import create_app
from services.api.config import ProviderConfig, Settings
from services.api.deps import get_provider, get_replicate_client

VERSION = "c871bb9b046607b680449ecbae55fd8c6d945e0a1948644bf2361b3d021d3ff4"


def make_client(handler, **settings) -> TestClient:
    settings.setdefault("replicate_api_token", "r8_test")
    settings.setdefault("poll_interval_s", 0)
    app = create_app(Settings(**settings))
    transport = httpx.MockTransport(handler)

    def _client(cfg: ProviderConfig = Depends(get_provider)) -> ReplicateClient:
        return ReplicateClient(cfg.token, base_url=cfg.base_url, transport=transport)

    app.dependency_overrides[get_replicate_client] = _client
    return TestClient(app)


def test_tryon_creates_prediction_and_polls() -> None:
    seen: list[httpx.Request] = []
    statuses = iter(["processing", "succeeded"])

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "POST":
            return httpx.Response(201, json={"id": "t1", "status": "starting"})
        status = next(statuses)
        body = {"id": "t1", "status": status}
        if status == "succeeded":
            body["output"] = "https://replicate.delivery/tryon.jpg"
        return httpx.Response(200, json=body)

    client = make_client(handler, tryon_model_version=VERSION)
    r = client.post(
        "/v1/tryon",
        files={
            "person": ("me.jpg", b"person", "image/jpeg"),
            "top": ("shirt.jpg", b"shirt", "image/jpeg"),
            "bottom": ("chinos.jpg", b"chinos", "image/jpeg"),
        },
    )
    assert r.status_code == 200
    assert r.json() == {"imageUrl": "https://replicate.delivery/tryon.jpg"}

    body = json.loads(seen[0].content)
    assert seen[0].url.path == "/v1/predictions"
    assert body["version"] == VERSION
    assert sorted(body["input"]) == ["garment_image", "garment_image_2", "person_image"]
    assert body["input"]["person_image"].startswith("data:image/jpeg;base64,")
    assert [r.method for r in seen] == ["POST", "GET", "GET"]


def test_tryon_requires_person_and_top() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    client = make_client(handler, tryon_model_version=VERSION)
    r = client.post("/v1/tryon", files={"person": ("me.jpg", b"person", "image/jpeg")})
    assert r.status_code == 400
    assert r.json()["error"] == "person and top images are required"
    assert calls == []


def test_tryon_without_model_version_is_configuration_error() -> None:
    client = make_client(lambda request: httpx.Response(500))
    r = client.post(
        "/v1/tryon",
        files={"person": ("me.jpg", b"p", "image/jpeg"), "top": ("t.jpg", b"t", "image/jpeg")},
    )
    assert r.status_code == 500
    assert r.json()["code"] == "configuration"


def test_tryon_canceled_job_reports_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(201, json={"id": "t1", "status": "starting"})
        return httpx.Response(200, json={"id": "t1", "status": "canceled", "logs": None})

    client = make_client(handler, tryon_model_version=VERSION)
    r = client.post(
        "/v1/tryon",
        files={"person": ("me.jpg", b"p", "image/jpeg"), "top": ("t.jpg", b"t", "image/jpeg")},
    )
    assert r.status_code == 500
    assert r.json()["code"] == "generation_failed"
    assert r.json()["status"] == "canceled"
