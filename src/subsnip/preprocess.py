"""Subtitle isolation preprocessing for live OCR.

Crops the selected region out of a frame, upscales it, and optionally
binarizes it so near-white subtitle text becomes black on a white page.
"""

import cv2
import numpy as np
from numpy.typing import NDArray

from .models import CropRegion

# Defaults (overridable through Config)
DEFAULT_UPSCALE_FACTOR = 2.0
DEFAULT_ISOLATION_LIMIT = 45.0

BLACK = 0
WHITE = 255


def crop_bounds(region: CropRegion, frame_width: int, frame_height: int) -> tuple[int, int, int, int] | None:
    """Absolute pixel bounds (x0, y0, x1, y1) of a region on a frame.

    Returns:
        The bounds, or None when the crop has no pixels.
    """
    rect = region.to_pixels(frame_width, frame_height)
    x0 = min(max(int(rect.x), 0), frame_width)
    y0 = min(max(int(rect.y), 0), frame_height)
    x1 = min(x0 + int(rect.width), frame_width)
    y1 = min(y0 + int(rect.height), frame_height)
    if x1 - x0 <= 0 or y1 - y0 <= 0:
        return None
    return x0, y0, x1, y1


def crop(frame: NDArray[np.uint8], region: CropRegion) -> NDArray[np.uint8] | None:
    """Cut a fractional region out of a frame (no scaling)."""
    h, w = frame.shape[:2]
    bounds = crop_bounds(region, w, h)
    if bounds is None:
        return None
    x0, y0, x1, y1 = bounds
    return frame[y0:y1, x0:x1]


def upscale(image: NDArray[np.uint8], factor: float, smooth: bool = False) -> NDArray[np.uint8]:
    """Resize an image by a fixed factor.

    Nearest-neighbour keeps hard edges for thresholded output; bicubic is
    used when the image will go to OCR unthresholded.
    """
    if factor == 1.0:
        return image
    h, w = image.shape[:2]
    new_w = max(1, int(round(w * factor)))
    new_h = max(1, int(round(h * factor)))
    interpolation = cv2.INTER_CUBIC if smooth else cv2.INTER_NEAREST
    return cv2.resize(image, (new_w, new_h), interpolation=interpolation)


def is_binarized(image: NDArray[np.uint8]) -> bool:
    """True when every pixel is pure black or pure white, with some white.

    An all-black image is treated as a dark frame (e.g. an empty letterbox
    bar) rather than isolated output.
    """
    color = image[:, :, :3]
    black = np.all(color == BLACK, axis=2)
    white = np.all(color == WHITE, axis=2)
    return bool(np.all(black | white) and white.any())


def isolate_subtitles(image: NDArray[np.uint8], limit: float = DEFAULT_ISOLATION_LIMIT) -> NDArray[np.uint8]:
    """Binarize an image around near-white foreground text.

    Pixels whose Euclidean distance to pure white is below ``limit`` are
    treated as subtitle text and painted black; everything else is painted
    white. A frame that is already black text on a white page is returned
    unchanged, so the operation is idempotent. An all-black frame has no
    subtitle and comes out all white.

    Args:
        image: BGRA (or BGR) uint8 image.
        limit: Color distance threshold.

    Returns:
        New image with the same shape, alpha forced opaque.
    """
    if is_binarized(image):
        return image.copy()

    # Channel order doesn't matter: distance to (255, 255, 255) is symmetric
    color = image[:, :, :3].astype(np.float32)
    distance = np.sqrt(np.sum((WHITE - color) ** 2, axis=2))
    foreground = distance < limit

    out = np.full_like(image, WHITE)
    out[foreground, :3] = BLACK
    return out


def preprocess(
    frame: NDArray[np.uint8],
    region: CropRegion,
    upscale_factor: float = DEFAULT_UPSCALE_FACTOR,
    isolate: bool = True,
    limit: float = DEFAULT_ISOLATION_LIMIT,
) -> NDArray[np.uint8] | None:
    """Crop, upscale and (optionally) isolate subtitles.

    Args:
        frame: Full BGRA frame.
        region: Fractional crop region.
        upscale_factor: Resize factor applied after cropping.
        isolate: Whether to run the color-distance binarization.
        limit: Color distance threshold for isolation.

    Returns:
        The processed image, or None if the crop is empty (skip this sample).
    """
    cropped = crop(frame, region)
    if cropped is None:
        return None

    scaled = upscale(cropped, upscale_factor, smooth=not isolate)
    if not isolate:
        return np.ascontiguousarray(scaled)
    return isolate_subtitles(scaled, limit)
