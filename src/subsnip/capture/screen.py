"""Monitor capture using mss.

mss keeps thread-local device contexts, so each capture thread creates its
own instance instead of sharing one across threads.
"""

import threading
import time

import mss
import numpy as np
from numpy.typing import NDArray

from .. import log
from ..models import CaptureError
from .base import StreamStatsMixin
from .convert import make_thumbnail

logger = log.get_logger()

# Background grab cadence (10 FPS is plenty for subtitle sampling)
CAPTURE_INTERVAL = 0.1

# Source ids look like "screen:1"; mss monitors[0] is the virtual "all monitors" screen
SOURCE_PREFIX = "screen:"

# Seconds to wait for the capture thread on stop()
STOP_JOIN_TIMEOUT = 2.0


def source_id_for(monitor_index: int) -> str:
    """Build the source id for an mss monitor index."""
    return f"{SOURCE_PREFIX}{monitor_index}"


def parse_source_id(source_id: str) -> int:
    """Extract the mss monitor index from a source id.

    Raises:
        CaptureError: If the id is not a screen source.
    """
    if not source_id.startswith(SOURCE_PREFIX):
        raise CaptureError(f"Unknown capture source: {source_id!r}")
    try:
        return int(source_id[len(SOURCE_PREFIX):])
    except ValueError as e:
        raise CaptureError(f"Unknown capture source: {source_id!r}") from e


def get_monitor_list() -> list[dict]:
    """List physical monitors with a thumbnail of their current content.

    Returns:
        List of dicts with keys: id, name, thumbnail (PNG bytes).
    """
    monitors = []
    with mss.mss() as sct:
        for index, mon in enumerate(sct.monitors):
            if index == 0:
                continue
            try:
                frame = np.array(sct.grab(mon))
                thumbnail = make_thumbnail(frame)
            except Exception as e:
                logger.warning("thumbnail failed", monitor=index, err=str(e))
                thumbnail = b""
            monitors.append({
                "id": source_id_for(index),
                "name": f"Screen {index} ({mon['width']}x{mon['height']})",
                "thumbnail": thumbnail,
            })
    return monitors


def _get_monitor_bounds(monitor_index: int) -> dict:
    """Look up mss bounds for a monitor index.

    Raises:
        CaptureError: If the monitor does not exist or mss cannot start.
    """
    try:
        with mss.mss() as sct:
            monitors = sct.monitors
    except Exception as e:
        raise CaptureError(f"Screen capture unavailable: {e}") from e

    if monitor_index < 1 or monitor_index >= len(monitors):
        raise CaptureError(f"Monitor {monitor_index} not found ({len(monitors) - 1} available)")
    return dict(monitors[monitor_index])


class ScreenCaptureStream(StreamStatsMixin):
    """Continuously captures one monitor on a background thread.

    The latest frame is kept in memory; get_frame() returns it without
    blocking on the capture itself.
    """

    def __init__(self, source_id: str, capture_interval: float = CAPTURE_INTERVAL):
        """Initialize the capture stream.

        Args:
            source_id: Source id of the monitor to capture ("screen:N").
            capture_interval: Seconds between background grabs.
        """
        self.source_id = source_id
        self._monitor_index = parse_source_id(source_id)
        self._bounds: dict | None = None
        self._capture_interval = capture_interval

        self._frame: NDArray[np.uint8] | None = None
        self._frame_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._error: str | None = None
        self._init_stats()

    @property
    def bounds(self) -> dict | None:
        """Monitor bounds (x, y, width, height) once started."""
        if self._bounds is None:
            return None
        return {
            "x": self._bounds["left"],
            "y": self._bounds["top"],
            "width": self._bounds["width"],
            "height": self._bounds["height"],
        }

    @property
    def failed(self) -> bool:
        """True once the capture thread has hit an unrecoverable error."""
        return self._error is not None

    def start(self) -> None:
        """Start the background capture thread.

        Raises:
            CaptureError: If the monitor cannot be captured.
        """
        if self._thread is not None:
            return

        self._bounds = _get_monitor_bounds(self._monitor_index)
        # Fresh event per run so a thread left over from stop(wait=False) stays stopped
        self._stop_event = threading.Event()
        self._error = None
        self._init_stats()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), daemon=True, name=f"capture-{self.source_id}"
        )
        self._thread.start()
        logger.info("capture stream started", source=self.source_id, bounds=self.bounds)

    def stop(self, wait: bool = True) -> None:
        """Stop capture and release resources. Safe to call repeatedly.

        Args:
            wait: Join the capture thread. With False the thread exits on
                its own within one capture interval and closes mss itself.
        """
        thread = self._thread
        if thread is None:
            return
        self._thread = None
        self._stop_event.set()
        if wait and thread is not threading.current_thread():
            thread.join(timeout=STOP_JOIN_TIMEOUT)
        with self._frame_lock:
            self._frame = None
        logger.info("capture stream stopped", source=self.source_id, frames=self.frames_captured, fps=f"{self.fps:.1f}")

    def is_ready(self) -> bool:
        """True when a non-empty frame is available."""
        with self._frame_lock:
            frame = self._frame
        return frame is not None and frame.shape[0] > 0 and frame.shape[1] > 0

    def get_frame(self) -> NDArray[np.uint8] | None:
        """Get the latest captured frame.

        Returns:
            Numpy array (H, W, 4) in BGRA format, or None if no frame available.
        """
        with self._frame_lock:
            if self._frame is None:
                return None
            return self._frame.copy()

    def _run(self, stop_event: threading.Event) -> None:
        """Capture thread main loop."""
        try:
            sct = mss.mss()
        except Exception as e:
            self._error = str(e)
            logger.error("capture thread failed to start", source=self.source_id, err=str(e))
            return

        try:
            while not stop_event.is_set():
                t0 = time.monotonic()
                try:
                    frame = np.array(sct.grab(self._bounds))
                    with self._frame_lock:
                        if stop_event.is_set():
                            break
                        self._frame = frame
                        self._record_frame()
                except Exception as e:
                    gave_up = self._record_error()
                    logger.warning("grab failed", source=self.source_id, err=str(e), count=self.consecutive_errors)
                    if gave_up:
                        self._error = str(e)
                        return

                elapsed = time.monotonic() - t0
                stop_event.wait(max(0.0, self._capture_interval - elapsed))
        finally:
            sct.close()
