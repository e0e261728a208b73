from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

import httpx

from .errors import UpstreamError
from .polling import RemoteJob


log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.replicate.com/v1"
USER_AGENT = "tryon-studio/0.1"
_MAX_WAIT_S = 60
_DETAIL_CHARS = 500


def _submit_target(ref: str) -> tuple[str, dict[str, Any]]:
    """Endpoint path and body skeleton for a model ref.

    ``owner/name`` goes to the model's predictions endpoint (latest version);
    ``owner/name:version`` and bare version ids go to ``/predictions``.
    """
    if ":" in ref:
        return "/predictions", {"version": ref.split(":", 1)[1]}
    if "/" in ref:
        owner, name = ref.split("/", 1)
        return f"/models/{owner}/{name}/predictions", {}
    return "/predictions", {"version": ref}


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:_DETAIL_CHARS]
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("title") or body.get("error")
        if detail:
            return str(detail)[:_DETAIL_CHARS]
    return resp.text[:_DETAIL_CHARS]


class ReplicateClient:
    """Minimal async client for the hosted prediction API.

    Use as ``async with ReplicateClient(token) as rc: ...``; one HTTP connection
    pool is held for the duration of the block.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ReplicateClient":
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._token}",
                "User-Agent": USER_AGENT,
            },
            timeout=self._timeout_s,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        if self._http is None:
            raise RuntimeError("ReplicateClient used outside 'async with'")
        try:
            resp = await self._http.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            log.warning("provider %s %s failed: %s", method, path, exc)
            raise UpstreamError(f"Inference provider unreachable: {exc}") from exc

        if resp.status_code >= 400:
            detail = _error_detail(resp)
            log.warning("provider %s %s -> %d: %s", method, path, resp.status_code, detail)
            raise UpstreamError(
                f"Inference provider returned {resp.status_code}",
                providerStatus=resp.status_code,
                detail=detail,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError("Inference provider returned a non-JSON body", providerStatus=resp.status_code) from exc
        if not isinstance(data, dict):
            raise UpstreamError("Inference provider returned an unexpected body", providerStatus=resp.status_code)
        return data

    async def run(self, ref: str, model_input: dict[str, Any], *, wait_s: int = _MAX_WAIT_S) -> RemoteJob:
        """Submit and block on the provider side for up to ``wait_s`` seconds."""
        wait = max(1, min(int(wait_s), _MAX_WAIT_S))
        path, body = _submit_target(ref)
        data = await self._request(
            "POST", path, json={**body, "input": model_input}, headers={"Prefer": f"wait={wait}"}
        )
        job = RemoteJob.from_payload(data)
        log.info("submitted %s (sync) -> job %s status=%s", ref, job.id or "-", job.status)
        return job

    async def create(self, ref: str, model_input: dict[str, Any]) -> RemoteJob:
        path, body = _submit_target(ref)
        data = await self._request("POST", path, json={**body, "input": model_input})
        job = RemoteJob.from_payload(data)
        if not job.id and not job.is_terminal:
            raise UpstreamError("Inference provider did not return a job id", status=job.status)
        log.info("submitted %s (async) -> job %s status=%s", ref, job.id, job.status)
        return job

    async def get(self, job_id: str) -> RemoteJob:
        data = await self._request("GET", f"/predictions/{job_id}")
        return RemoteJob.from_payload(data)
