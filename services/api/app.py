from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from modules.inference.errors import ConfigurationError, TryOnError, ValidationError
from modules.storage import s3 as s3mod
from .config import Settings, get_settings, load_provider_config
from .metrics import ERRORS, HEALTH_HITS, READY_GAUGE, REGISTRY
from .routes import router as v1_router


log = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _check_s3(settings: Settings) -> None:
    cfg = settings.s3_config()
    if cfg is None:
        raise RuntimeError("S3 readiness requested but TRYON_S3_BUCKET is not set")
    s3mod.check_bucket(cfg)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(title="Try-On Studio API", version="0.1.0", docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.provider = load_provider_config(settings)
    if isinstance(app.state.provider, ConfigurationError):
        log.warning("generation endpoints disabled: %s", app.state.provider.message)

    @app.exception_handler(TryOnError)
    async def tryon_error(request: Request, exc: TryOnError) -> JSONResponse:
        ERRORS.labels(code=exc.code).inc()
        log.info("%s %s -> %d %s: %s", request.method, request.url.path, exc.status_code, exc.code, exc.message)
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        fields = [".".join(str(p) for p in e.get("loc", ()) if p not in ("body", "query")) for e in errors]
        message = f"{fields[0]}: {errors[0].get('msg')}" if errors else "Invalid request"
        return await tryon_error(request, ValidationError(message, fields=fields))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        ERRORS.labels(code="internal").inc()
        log.exception("%s %s failed", request.method, request.url.path)
        return JSONResponse({"error": str(exc) or "Unknown error", "code": "internal"}, status_code=500)

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        HEALTH_HITS.inc()
        return {"status": "ok", "ts": int(time.time())}

    @app.get("/readyz")
    def readyz() -> Any:
        checks = {c.strip() for c in settings.ready_checks.split(",") if c.strip()}
        try:
            if "provider" in checks and isinstance(app.state.provider, ConfigurationError):
                raise RuntimeError(app.state.provider.message)
            if "s3" in checks:
                _check_s3(settings)
            READY_GAUGE.set(1)
            return {"status": "ready"}
        except Exception as exc:  # noqa: BLE001
            READY_GAUGE.set(0)
            return Response(content=f"not ready: {exc}", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    @app.get("/metrics")
    def metrics() -> Response:
        output = generate_latest(REGISTRY)
        return Response(output, media_type=CONTENT_TYPE_LATEST)

    app.include_router(v1_router)

    return app


app = create_app()
