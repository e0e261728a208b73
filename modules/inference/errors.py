from __future__ import annotations

from typing import Any


class TryOnError(Exception):
    """Base error carrying the wire code, HTTP status and extra diagnostics.

    Every handler-level failure is a subclass; the API converts them into
    ``{"error": message, "code": code, **diagnostics}``.
    """

    code = "internal"
    status_code = 500

    def __init__(self, message: str, **diagnostics: Any) -> None:
        super().__init__(message)
        self.message = message
        self.diagnostics: dict[str, Any] = diagnostics

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, **self.diagnostics}


class ConfigurationError(TryOnError):
    code = "configuration"
    status_code = 500


class ValidationError(TryOnError):
    code = "invalid_input"
    status_code = 400


class UpstreamError(TryOnError):
    code = "upstream"
    status_code = 502


class UnexpectedOutputError(TryOnError):
    code = "unexpected_output"
    status_code = 500


class GenerationTimeoutError(TryOnError):
    code = "timeout"
    status_code = 504


class UploadError(TryOnError):
    code = "upload_failed"
    status_code = 500


class GenerationFailed(TryOnError):
    code = "generation_failed"
    status_code = 500


class ProxyError(TryOnError):
    code = "proxy"
    status_code = 500
