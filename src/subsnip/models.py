"""Core data types shared by the capture, dispatch and pipeline modules."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

# Tolerance for fractional bounds checks (float rounding from pixel math)
_EPSILON = 1e-9


class SubsnipError(Exception):
    """Base class for all subsnip errors."""


class CaptureError(SubsnipError):
    """Screen source could not be opened or stopped producing frames."""


class OCRError(SubsnipError):
    """An OCR engine failed to recognize an image."""


class TranslationError(SubsnipError):
    """A translation backend failed."""


class ModelLoadError(SubsnipError):
    """An engine could not be initialized."""


class Mode(Enum):
    """Pipeline invocation mode."""

    SNIP = "snip"
    LIVE = "live"


class NoticeKind(Enum):
    """User-visible notices raised by the pipeline."""

    QUOTA = "quota"
    CAPTURE = "capture"


@dataclass(frozen=True)
class PixelRect:
    """Rectangle in pixel space (floats, not yet truncated)."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class CropRegion:
    """Rectangle expressed as fractions of a frame's width and height.

    Resolution independent: the same region can be applied to frames of
    any size.
    """

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        if self.x < 0 or self.y < 0:
            raise ValueError(f"crop origin must be non-negative, got ({self.x}, {self.y})")
        if self.width < 0 or self.height < 0:
            raise ValueError(f"crop size must be non-negative, got {self.width}x{self.height}")
        if self.x + self.width > 1 + _EPSILON or self.y + self.height > 1 + _EPSILON:
            raise ValueError(f"crop region exceeds frame bounds: {self}")

    @property
    def is_empty(self) -> bool:
        """True when the region has no area."""
        return self.width <= 0 or self.height <= 0

    def to_pixels(self, frame_width: int, frame_height: int) -> PixelRect:
        """Scale the region to a frame of the given size."""
        return PixelRect(
            x=self.x * frame_width,
            y=self.y * frame_height,
            width=self.width * frame_width,
            height=self.height * frame_height,
        )

    @classmethod
    def from_pixels(cls, rect: PixelRect, frame_width: int, frame_height: int) -> "CropRegion":
        """Build a fractional region from a pixel rectangle on a frame."""
        if frame_width <= 0 or frame_height <= 0:
            raise ValueError(f"frame size must be positive, got {frame_width}x{frame_height}")
        return cls(
            x=rect.x / frame_width,
            y=rect.y / frame_height,
            width=rect.width / frame_width,
            height=rect.height / frame_height,
        )

    @classmethod
    def full(cls) -> "CropRegion":
        """Region covering the whole frame."""
        return cls(0.0, 0.0, 1.0, 1.0)


@dataclass(frozen=True)
class Settings:
    """User settings snapshot, read once per pipeline invocation."""

    ai_model: str = "gemini-2.5-flash"
    target_language: str = "Vietnamese"
    auto_translate: bool = True


@dataclass(frozen=True)
class Extraction:
    """Outcome of an OCR dispatch."""

    text: str
    used_fallback: bool = False


@dataclass
class PipelineResult:
    """Image plus its extracted and translated text."""

    image: NDArray[np.uint8]
    extracted_text: str
    translated_text: str
    used_local_ocr: bool
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
