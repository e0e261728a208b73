from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

import boto3


@dataclass
class S3Config:
    bucket: str
    endpoint: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    region: str | None = None
    public_base_url: str | None = None
    prefix: str = "uploads"
    public_acl: bool = True


def client(cfg: S3Config):
    sess = boto3.session.Session()
    return sess.client(
        "s3",
        endpoint_url=cfg.endpoint,
        aws_access_key_id=cfg.access_key,
        aws_secret_access_key=cfg.secret_key,
        region_name=cfg.region,
    )


def object_key(cfg: S3Config, name: str) -> str:
    prefix = cfg.prefix.strip("/")
    return f"{prefix}/{name}" if prefix else name


def public_url(cfg: S3Config, key: str) -> str:
    """Publicly readable URL for ``key``.

    Uses TRYON_S3_PUBLIC_BASE_URL when set (CDN or public bucket domain); otherwise
    a path-style URL on the custom endpoint, or the virtual-hosted AWS URL.
    """
    path = quote(key)
    if cfg.public_base_url:
        return f"{cfg.public_base_url.rstrip('/')}/{path}"
    if cfg.endpoint:
        return f"{cfg.endpoint.rstrip('/')}/{cfg.bucket}/{path}"
    region = cfg.region or "us-east-1"
    return f"https://{cfg.bucket}.s3.{region}.amazonaws.com/{path}"


def upload_public(cfg: S3Config, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
    s3 = client(cfg)
    extra = {"ACL": "public-read"} if cfg.public_acl else {}
    s3.put_object(Bucket=cfg.bucket, Key=key, Body=data, ContentType=content_type, **extra)
    return public_url(cfg, key)


def check_bucket(cfg: S3Config) -> None:
    client(cfg).head_bucket(Bucket=cfg.bucket)
