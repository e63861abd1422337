"""Health bookkeeping shared by capture streams."""

import threading
import time

# Consecutive failed grabs after which a stream gives up
MAX_CONSECUTIVE_ERRORS = 10


class StreamStatsMixin:
    """Frame rate and grab-failure tracking for a background capture stream.

    The capture thread reports every grab through _record_frame() or
    _record_error(); readers query fps and frames_captured.

    Usage:
        class MyStream(StreamStatsMixin):
            def __init__(self):
                self._frame_lock = threading.Lock()
                self._init_stats()
    """

    _frame_lock: threading.Lock

    def _init_stats(self) -> None:
        """Reset counters. Call in __init__ and start()."""
        self._window_frames = 0
        self._window_start = time.monotonic()
        self._fps = 0.0
        self._frames_captured = 0
        self._consecutive_errors = 0

    def _record_frame(self) -> None:
        """Count a successful grab. Call inside frame_lock."""
        self._frames_captured += 1
        self._consecutive_errors = 0
        self._window_frames += 1
        now = time.monotonic()
        elapsed = now - self._window_start
        if elapsed >= 1.0:
            self._fps = self._window_frames / elapsed
            self._window_frames = 0
            self._window_start = now

    def _record_error(self) -> bool:
        """Count a failed grab.

        Returns:
            True once the failure streak means the source is gone.
        """
        self._consecutive_errors += 1
        return self._consecutive_errors >= MAX_CONSECUTIVE_ERRORS

    @property
    def consecutive_errors(self) -> int:
        return self._consecutive_errors

    @property
    def frames_captured(self) -> int:
        with self._frame_lock:
            return self._frames_captured

    @property
    def fps(self) -> float:
        """Frames per second grabbed by the background thread."""
        with self._frame_lock:
            return self._fps
