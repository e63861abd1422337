"""Platform-agnostic screen capture interface."""

import asyncio
import time
from dataclasses import dataclass
from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from .. import log
from ..models import CaptureError
from .screen import ScreenCaptureStream, get_monitor_list

logger = log.get_logger()

# Poll cadence while waiting for a stream's first frame (seconds)
READY_POLL_INTERVAL = 0.05


class FrameHandle(Protocol):
    """A live, continuously updating frame surface for one source."""

    source_id: str

    @property
    def failed(self) -> bool:
        """True once the source has stopped producing frames for good."""
        ...

    def is_ready(self) -> bool:
        """True when a sized frame is available."""
        ...

    def get_frame(self) -> NDArray[np.uint8] | None:
        """Latest frame, (H, W, 4) BGRA, or None."""
        ...

    def stop(self, wait: bool = True) -> None:
        """Stop capture and release resources.

        With wait=False the call must not block on the capture thread.
        """
        ...


class CaptureAdapter(Protocol):
    """Source listing plus open/grab/close for live frame handles."""

    def list_sources(self) -> list["CaptureSource"]:
        ...

    def open_source(self, source_id: str) -> FrameHandle:
        ...

    def grab_still_frame(self, handle: FrameHandle) -> NDArray[np.uint8] | None:
        ...

    def close(self, handle: FrameHandle) -> None:
        ...


@dataclass
class CaptureSource:
    """A capturable screen as shown to the user."""

    id: str
    name: str
    thumbnail: bytes = b""


class ScreenCaptureAdapter:
    """Capture adapter backed by mss monitor streams."""

    def list_sources(self) -> list[CaptureSource]:
        """List the available screens."""
        try:
            monitors = get_monitor_list()
        except Exception as e:
            raise CaptureError(f"Could not enumerate screens: {e}") from e
        return [CaptureSource(id=m["id"], name=m["name"], thumbnail=m["thumbnail"]) for m in monitors]

    def open_source(self, source_id: str) -> ScreenCaptureStream:
        """Open a live stream for a source.

        Raises:
            CaptureError: If the source cannot be captured.
        """
        stream = ScreenCaptureStream(source_id)
        stream.start()
        return stream

    def grab_still_frame(self, handle: FrameHandle) -> NDArray[np.uint8] | None:
        """Copy of the handle's latest frame, or None if not ready."""
        if not handle.is_ready():
            return None
        return handle.get_frame()

    def close(self, handle: FrameHandle) -> None:
        """Release a handle without blocking the event loop."""
        handle.stop(wait=False)


async def wait_for_frame(
    adapter: CaptureAdapter,
    handle: FrameHandle,
    timeout: float = 5.0,
    settle: float = 0.5,
) -> NDArray[np.uint8]:
    """Wait for a fresh stream to produce a frame, then grab a still.

    Args:
        adapter: Adapter that opened the handle.
        handle: Live frame handle.
        timeout: Seconds to wait for the first frame.
        settle: Extra seconds to let the stream stabilize before grabbing.

    Returns:
        The grabbed still frame.

    Raises:
        CaptureError: If no frame arrives in time or the stream fails.
    """
    deadline = time.monotonic() + timeout
    while not handle.is_ready():
        if handle.failed:
            raise CaptureError(f"Capture source {handle.source_id} failed")
        if time.monotonic() >= deadline:
            raise CaptureError(f"Timed out waiting for frames from {handle.source_id}")
        await asyncio.sleep(READY_POLL_INTERVAL)

    if settle > 0:
        await asyncio.sleep(settle)

    frame = adapter.grab_still_frame(handle)
    if frame is None:
        raise CaptureError(f"Capture source {handle.source_id} stopped producing frames")
    logger.debug("still frame grabbed", source=handle.source_id, size=f"{frame.shape[1]}x{frame.shape[0]}")
    return frame


__all__ = [
    "CaptureAdapter",
    "CaptureSource",
    "FrameHandle",
    "ScreenCaptureAdapter",
    "ScreenCaptureStream",
    "wait_for_frame",
]
