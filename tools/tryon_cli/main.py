from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path

from modules.imaging.mask import clothing_mask_png
from modules.inference.catalog import CATALOG
from modules.inference.errors import ConfigurationError, TryOnError
from modules.inference.payload import ImageFile, Primitive, Uploader, parse_generation_request
from modules.inference.replicate import ReplicateClient
from modules.inference.service import generate_image
from modules.storage.uploads import store_asset
from services.api.config import Settings, load_provider_config


def _emit(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False))


def _read_image(path: str) -> ImageFile:
    p = Path(path)
    ctype, _ = mimetypes.guess_type(p.name)
    return ImageFile(data=p.read_bytes(), content_type=ctype, filename=p.name)


def _coerce(value: str) -> Primitive:
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            pass
    return value


def _parse_params(items: list[str] | None) -> dict[str, Primitive]:
    out: dict[str, Primitive] = {}
    for item in items or []:
        if "=" not in item:
            raise SystemExit(f"invalid --param {item!r}; expected key=value")
        key, value = item.split("=", 1)
        out[key.strip()] = _coerce(value.strip())
    return out


def cmd_mask(args: argparse.Namespace) -> int:
    png = clothing_mask_png(Path(args.photo).read_bytes())
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(png)
    _emit({"mask": str(out), "bytes": len(png)})
    return 0


def cmd_upload(args: argparse.Namespace) -> int:
    cfg = Settings.from_env().s3_config()
    if cfg is None:
        raise ConfigurationError("Object storage is not configured (TRYON_S3_BUCKET)")
    img = _read_image(args.file)
    asset = store_asset(cfg, img.data, kind=args.kind, filename=img.filename, content_type=img.content_type)
    _emit({"url": asset.url, "kind": asset.kind, "filename": asset.filename})
    return 0


def _cli_uploader(settings: Settings) -> Uploader | None:
    cfg = settings.s3_config()
    if cfg is None:
        return None

    async def _upload(image: ImageFile, kind: str) -> str:
        asset = await asyncio.to_thread(
            store_asset, cfg, image.data, kind=kind, filename=image.filename, content_type=image.content_type
        )
        return asset.url

    return _upload


def cmd_generate(args: argparse.Namespace) -> int:
    settings = Settings.from_env()
    provider = load_provider_config(settings)
    if isinstance(provider, ConfigurationError):
        raise provider

    image = _read_image(args.image) if args.image else None
    mask = _read_image(args.mask) if args.mask else None
    if args.auto_mask:
        if image is None:
            raise SystemExit("--auto-mask requires --image")
        mask = ImageFile(data=clothing_mask_png(image.data), content_type="image/png", filename="mask.png")
    req = parse_generation_request(args.prompt, image=image, mask=mask, parameters=_parse_params(args.param))

    async def _run() -> str:
        async with ReplicateClient(provider.token, base_url=provider.base_url, timeout_s=provider.timeout_s) as rc:
            result = await generate_image(
                rc,
                provider.generate,
                req,
                policy=settings.retry_policy,
                transport=settings.image_transport,
                upload=_cli_uploader(settings),
                sync_wait_s=settings.sync_wait_s,
            )
        return result.image_url

    _emit({"imageUrl": asyncio.run(_run())})
    return 0


def cmd_models(args: argparse.Namespace) -> int:  # noqa: ARG001
    models = [
        {"ref": s.ref, "mode": s.mode, "input_keys": sorted(s.input_keys), "description": s.description}
        for s in CATALOG.values()
    ]
    _emit({"models": models})
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tryon-cli", description="Try-On Studio operator CLI")
    sub = p.add_subparsers(dest="cmd", required=True)

    m = sub.add_parser("mask", help="Write the rectangle clothing mask for a photo")
    m.add_argument("photo")
    m.add_argument("--out", default="mask.png")
    m.set_defaults(func=cmd_mask)

    u = sub.add_parser("upload", help="Store a file in object storage")
    u.add_argument("file")
    u.add_argument("--kind", default="file")
    u.set_defaults(func=cmd_upload)

    g = sub.add_parser("generate", help="Run a generation and print the image URL")
    g.add_argument("--prompt", required=True)
    g.add_argument("--image")
    g.add_argument("--mask")
    g.add_argument("--auto-mask", action="store_true", help="Derive the mask from --image")
    g.add_argument("--param", action="append", help="Extra model input key=value (repeatable; numbers and true/false are typed)")
    g.set_defaults(func=cmd_generate)

    ls = sub.add_parser("models", help="List catalog models")
    ls.set_defaults(func=cmd_models)
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return int(args.func(args))
    except TryOnError as exc:
        _emit(exc.to_payload())
        return 2


if __name__ == "__main__":
    sys.exit(main())
