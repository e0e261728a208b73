from __future__ import annotations

import logging
import re
import secrets
import time
from dataclasses import dataclass

from botocore.exceptions import BotoCoreError, ClientError

from modules.inference.errors import UploadError
from modules.storage import s3 as s3mod


log = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_KIND_STRIP = re.compile(r"[^a-z0-9_-]+")
_EXT_STRIP = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class StoredAsset:
    url: str
    kind: str
    filename: str
    key: str
    content_type: str


def sanitize_kind(kind: str | None) -> str:
    cleaned = _KIND_STRIP.sub("", (kind or "").strip().lower())
    return cleaned or "file"


def infer_extension(filename: str | None, content_type: str | None) -> str:
    if filename and "." in filename:
        ext = _EXT_STRIP.sub("", filename.rsplit(".", 1)[1].lower())[:8]
        if ext:
            return ext
    return "png" if "png" in (content_type or "") else "jpg"


def make_filename(
    kind: str | None,
    filename: str | None,
    content_type: str | None,
    *,
    now_ms: int | None = None,
    suffix: str | None = None,
) -> str:
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    rand = suffix or secrets.token_hex(6)
    return f"{sanitize_kind(kind)}-{ts}-{rand}.{infer_extension(filename, content_type)}"


def store_asset(
    cfg: s3mod.S3Config,
    data: bytes,
    *,
    kind: str | None = "file",
    filename: str | None = None,
    content_type: str | None = None,
) -> StoredAsset:
    """Store ``data`` under a generated unique name with public read access."""
    name = make_filename(kind, filename, content_type)
    key = s3mod.object_key(cfg, name)
    ctype = content_type or DEFAULT_CONTENT_TYPE
    try:
        url = s3mod.upload_public(cfg, key, data, content_type=ctype)
    except (BotoCoreError, ClientError) as exc:
        log.warning("upload of %s failed: %s", key, exc)
        raise UploadError(f"Upload failed: {exc}") from exc
    log.info("stored %s (%d bytes, %s)", key, len(data), ctype)
    return StoredAsset(url=url, kind=sanitize_kind(kind), filename=name, key=key, content_type=ctype)
