from __future__ import annotations

import logging

from PIL import ImageGrab

from packages.contracts.errors import ScreenshotError
from packages.contracts.models import ScreenshotOutput
from packages.perception.image_utils import encode_image_to_base64, to_logical_size

logger = logging.getLogger("runner.screen")


def capture_screen(scale_factor: float = 1.0) -> ScreenshotOutput:
    """Grab every monitor and report the frame in logical pixels."""
    try:
        image = ImageGrab.grab(all_screens=True)
    except OSError as exc:
        raise ScreenshotError(f"screen capture failed: {exc}") from exc

    image = to_logical_size(image, scale_factor)
    width, height = image.size
    logger.debug("captured screen width=%s height=%s scale=%s", width, height, scale_factor)
    return ScreenshotOutput(
        base64=encode_image_to_base64(image),
        width=width,
        height=height,
        scale_factor=scale_factor,
    )
