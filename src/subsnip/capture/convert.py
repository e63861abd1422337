"""Frame format conversion utilities.

Capture streams store frames as numpy arrays in native BGRA format.
These helpers move frames in and out of encoded image bytes.
"""

import cv2
import numpy as np
from numpy.typing import NDArray

# Type alias for BGRA frame (height, width, 4 channels)
BGRAFrame = NDArray[np.uint8]


def encode_png(frame: BGRAFrame) -> bytes:
    """Encode a frame as PNG bytes for the OCR engines.

    Raises:
        ValueError: If the frame cannot be encoded (e.g. empty).
    """
    success, buf = cv2.imencode(".png", frame)
    if not success:
        raise ValueError(f"Failed to encode frame of shape {frame.shape} as PNG")
    return buf.tobytes()


def decode_image(data: bytes) -> BGRAFrame:
    """Decode PNG/JPEG bytes into a BGRA frame.

    Raises:
        ValueError: If the bytes are not a decodable image.
    """
    array = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(array, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError("Image data could not be decoded")
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image


def make_thumbnail(frame: BGRAFrame, max_w: int = 300, max_h: int = 300) -> bytes:
    """Downscale a frame to fit within max_w x max_h and encode as PNG."""
    h, w = frame.shape[:2]

    # Calculate scale to fit within max size while preserving aspect ratio
    scale = min(max_w / w, max_h / h)
    if scale < 1.0:
        new_w = max(1, int(w * scale))
        new_h = max(1, int(h * scale))
        frame = cv2.resize(frame, (new_w, new_h), interpolation=cv2.INTER_AREA)

    return encode_png(frame)
