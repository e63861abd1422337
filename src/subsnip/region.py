"""Region selection over a displayed still image.

The user drags a rectangle over a (possibly scaled) rendering of a still
frame. The rectangle is tracked in displayed pixels and converted to a
fractional CropRegion so it can be reapplied to frames of any resolution.
"""

import numpy as np
from numpy.typing import NDArray

from . import log
from .models import CropRegion, PixelRect

logger = log.get_logger()

# Selections smaller than this (displayed pixels, either side) are rejected
MIN_SELECTION_SIZE = 10


class RegionSelector:
    """Tracks a pointer drag and turns it into a CropRegion.

    Usage:
        selector = RegionSelector(natural_size=(1920, 1080), displayed_size=(960, 540))
        selector.press(100, 400)
        selector.move(700, 500)
        selector.release()
        region = selector.confirm()  # None if too small or nothing drawn
    """

    def __init__(
        self,
        natural_size: tuple[int, int],
        displayed_size: tuple[int, int] | None = None,
        min_size: int = MIN_SELECTION_SIZE,
    ):
        """Initialize the selector.

        Args:
            natural_size: (width, height) of the still frame in pixels.
            displayed_size: (width, height) the still is rendered at.
                Defaults to the natural size.
            min_size: Minimum selection size in displayed pixels.
        """
        natural_w, natural_h = natural_size
        displayed_w, displayed_h = displayed_size or natural_size
        if natural_w <= 0 or natural_h <= 0 or displayed_w <= 0 or displayed_h <= 0:
            raise ValueError(f"image sizes must be positive: natural={natural_size} displayed={displayed_size}")

        self._natural = (natural_w, natural_h)
        self._displayed = (displayed_w, displayed_h)
        self._min_size = min_size
        self._start: tuple[float, float] | None = None
        self._rect: PixelRect | None = None
        self._dragging = False

    @property
    def selection(self) -> PixelRect | None:
        """Current rectangle in displayed pixels."""
        return self._rect

    def press(self, x: float, y: float) -> None:
        """Start a new drag at a displayed-pixel position."""
        x, y = self._clamp(x, y)
        self._start = (x, y)
        self._rect = PixelRect(x, y, 0.0, 0.0)
        self._dragging = True

    def move(self, x: float, y: float) -> None:
        """Extend the drag to a displayed-pixel position."""
        if not self._dragging or self._start is None:
            return
        x, y = self._clamp(x, y)
        start_x, start_y = self._start
        self._rect = PixelRect(
            x=min(x, start_x),
            y=min(y, start_y),
            width=abs(x - start_x),
            height=abs(y - start_y),
        )

    def release(self) -> None:
        """End the drag (pointer up or pointer left the image)."""
        self._dragging = False

    def cancel(self) -> None:
        """Discard the current selection."""
        self._start = None
        self._rect = None
        self._dragging = False

    def can_confirm(self) -> bool:
        """True when the selection is large enough to use."""
        rect = self._rect
        return rect is not None and rect.width >= self._min_size and rect.height >= self._min_size

    def natural_rect(self) -> PixelRect | None:
        """Selection scaled to the still's natural pixels."""
        if self._rect is None:
            return None
        scale_x = self._natural[0] / self._displayed[0]
        scale_y = self._natural[1] / self._displayed[1]
        rect = self._rect
        return PixelRect(
            x=rect.x * scale_x,
            y=rect.y * scale_y,
            width=rect.width * scale_x,
            height=rect.height * scale_y,
        )

    def confirm(self) -> CropRegion | None:
        """Convert the selection to a fractional region.

        Returns:
            The CropRegion, or None if nothing usable was selected.
        """
        if not self.can_confirm():
            logger.debug("selection rejected", selection=self._rect, min_size=self._min_size)
            return None

        region = CropRegion.from_pixels(self.natural_rect(), *self._natural)
        logger.info(
            "region selected",
            x=f"{region.x:.3f}",
            y=f"{region.y:.3f}",
            width=f"{region.width:.3f}",
            height=f"{region.height:.3f}",
        )
        return region

    def crop(self, still: NDArray[np.uint8]) -> NDArray[np.uint8] | None:
        """Cut the selection out of the still at natural resolution."""
        if not self.can_confirm():
            return None
        rect = self.natural_rect()
        x0, y0 = int(rect.x), int(rect.y)
        x1, y1 = int(rect.x + rect.width), int(rect.y + rect.height)
        return still[y0:y1, x0:x1].copy()

    def _clamp(self, x: float, y: float) -> tuple[float, float]:
        displayed_w, displayed_h = self._displayed
        return min(max(x, 0.0), displayed_w), min(max(y, 0.0), displayed_h)


def select_region(
    still: NDArray[np.uint8],
    start: tuple[float, float],
    end: tuple[float, float],
    displayed_size: tuple[int, int] | None = None,
) -> CropRegion | None:
    """Select a region from a single drag gesture over a still frame.

    Args:
        still: The still frame, (H, W, C).
        start: Drag start in displayed pixels.
        end: Drag end in displayed pixels.
        displayed_size: Rendered (width, height); defaults to natural size.

    Returns:
        The CropRegion, or None if the drag was too small.
    """
    h, w = still.shape[:2]
    selector = RegionSelector(natural_size=(w, h), displayed_size=displayed_size)
    selector.press(*start)
    selector.move(*end)
    selector.release()
    return selector.confirm()
