from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal, Union

from pydantic import BaseModel, Field

from modules.inference.catalog import ModelSpec, generate_spec, tryon_spec
from modules.inference.errors import ConfigurationError
from modules.inference.polling import RetryPolicy
from modules.storage.s3 import S3Config


class Settings(BaseModel):
    env: Literal["dev", "test", "staging", "prod"] = Field(
        default="dev", description="Deployment environment label"
    )

    # Readiness checks: comma-separated list of checks to perform: provider,s3
    ready_checks: str = Field(default="", description="Comma-separated readiness checks: provider,s3")
    log_level: str = "INFO"

    # Inference provider
    replicate_api_token: str | None = Field(default=None, description="Provider API token (REPLICATE_API_TOKEN)")
    replicate_base_url: str = "https://api.replicate.com/v1"
    generate_model: str = "ideogram-ai/ideogram-v2"
    tryon_model_version: str | None = None
    image_transport: Literal["inline", "upload"] = "inline"
    poll_interval_s: float = Field(default=1.5, ge=0)
    poll_max_attempts: int = Field(default=80, ge=1)
    sync_wait_s: int = Field(default=60, ge=1, le=60)
    http_timeout_s: float = Field(default=120.0, gt=0)

    # Object storage (S3-compatible)
    s3_endpoint: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_region: str | None = None
    s3_bucket: str | None = None
    s3_public_base_url: str | None = None
    s3_prefix: str = "uploads"
    s3_public_acl: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        mapping = {
            "env": "TRYON_ENV",
            "ready_checks": "TRYON_READY_CHECKS",
            "log_level": "TRYON_LOG_LEVEL",
            "replicate_api_token": "REPLICATE_API_TOKEN",
            "replicate_base_url": "TRYON_REPLICATE_BASE_URL",
            "generate_model": "TRYON_GENERATE_MODEL",
            "tryon_model_version": "TRYON_TRYON_MODEL_VERSION",
            "image_transport": "TRYON_IMAGE_TRANSPORT",
            "poll_interval_s": "TRYON_POLL_INTERVAL_S",
            "poll_max_attempts": "TRYON_POLL_MAX_ATTEMPTS",
            "sync_wait_s": "TRYON_SYNC_WAIT_S",
            "http_timeout_s": "TRYON_HTTP_TIMEOUT_S",
            "s3_endpoint": "TRYON_S3_ENDPOINT",
            "s3_access_key": "TRYON_S3_ACCESS_KEY",
            "s3_secret_key": "TRYON_S3_SECRET_KEY",
            "s3_region": "TRYON_S3_REGION",
            "s3_bucket": "TRYON_S3_BUCKET",
            "s3_public_base_url": "TRYON_S3_PUBLIC_BASE_URL",
            "s3_prefix": "TRYON_S3_PREFIX",
            "s3_public_acl": "TRYON_S3_PUBLIC_ACL",
        }
        values = {field: os.environ[var] for field, var in mapping.items() if os.getenv(var)}
        return cls(**values)

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(interval_s=self.poll_interval_s, max_attempts=self.poll_max_attempts)

    def s3_config(self) -> S3Config | None:
        if not self.s3_bucket:
            return None
        return S3Config(
            bucket=self.s3_bucket,
            endpoint=self.s3_endpoint,
            access_key=self.s3_access_key,
            secret_key=self.s3_secret_key,
            region=self.s3_region,
            public_base_url=self.s3_public_base_url,
            prefix=self.s3_prefix,
            public_acl=self.s3_public_acl,
        )


@dataclass(frozen=True)
class ProviderConfig:
    token: str
    base_url: str
    timeout_s: float
    generate: ModelSpec
    tryon: ModelSpec | None


ProviderOutcome = Union[ProviderConfig, ConfigurationError]


def load_provider_config(settings: Settings) -> ProviderOutcome:
    """Validate provider settings once; the error is returned, not raised."""
    token = (settings.replicate_api_token or "").strip()
    if not token:
        return ConfigurationError("Missing REPLICATE_API_TOKEN")
    return ProviderConfig(
        token=token,
        base_url=settings.replicate_base_url,
        timeout_s=settings.http_timeout_s,
        generate=generate_spec(settings.generate_model),
        tryon=tryon_spec(settings.tryon_model_version) if settings.tryon_model_version else None,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
