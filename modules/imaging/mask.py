from __future__ import annotations

import io

from PIL import Image, ImageDraw

from modules.inference.errors import ValidationError


# Fractions of width/height: x, y, w, h of the region to repaint (torso and legs).
CLOTHING_BOX = (0.18, 0.18, 0.64, 0.72)


def box_for(width: int, height: int, box: tuple[float, float, float, float] = CLOTHING_BOX) -> tuple[int, int, int, int]:
    fx, fy, fw, fh = box
    x0 = int(round(width * fx))
    y0 = int(round(height * fy))
    x1 = int(round(width * (fx + fw)))
    y1 = int(round(height * (fy + fh)))
    return x0, y0, x1, y1


def render_mask(width: int, height: int, box: tuple[float, float, float, float] = CLOTHING_BOX) -> Image.Image:
    """White (preserve) canvas with a black (inpaint) rectangle."""
    mask = Image.new("RGB", (width, height), "white")
    x0, y0, x1, y1 = box_for(width, height, box)
    # PIL rectangles include the end coordinate.
    ImageDraw.Draw(mask).rectangle((x0, y0, x1 - 1, y1 - 1), fill="black")
    return mask


def clothing_mask_png(image_bytes: bytes) -> bytes:
    """PNG mask sized to the given photo."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            width, height = img.size
    except (OSError, ValueError) as exc:
        raise ValidationError("image is not a readable picture") from exc
    bio = io.BytesIO()
    render_mask(width, height).save(bio, format="PNG")
    return bio.getvalue()
