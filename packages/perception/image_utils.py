from __future__ import annotations

import base64
from io import BytesIO
from pathlib import Path

from PIL import Image

_DATA_URL_PREFIX = "data:image/"


def strip_data_url(screenshot_base64: str) -> str:
    if screenshot_base64.startswith(_DATA_URL_PREFIX) and "," in screenshot_base64:
        return screenshot_base64.split(",", 1)[1]
    return screenshot_base64


def decode_base64_image(screenshot_base64: str) -> Image.Image:
    """Accepts bare base64 or a ``data:image/...;base64,`` URL."""
    raw = base64.b64decode(strip_data_url(screenshot_base64))
    return Image.open(BytesIO(raw)).convert("RGB")


def encode_image_to_base64(image: Image.Image, fmt: str = "PNG") -> str:
    out = BytesIO()
    image.save(out, format=fmt)
    return base64.b64encode(out.getvalue()).decode("ascii")


def to_logical_size(image: Image.Image, scale_factor: float) -> Image.Image:
    """Downscale a physical-pixel capture to logical pixels."""
    if scale_factor <= 0 or scale_factor == 1:
        return image
    width = max(1, round(image.width / scale_factor))
    height = max(1, round(image.height / scale_factor))
    return image.resize((width, height), Image.Resampling.LANCZOS)


def save_base64_png(screenshot_base64: str, path: Path) -> None:
    decode_base64_image(screenshot_base64).save(path, format="PNG")
