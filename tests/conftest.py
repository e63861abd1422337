"""Shared fakes for pipeline tests."""

from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from subsnip.config import Config
from subsnip.history import HistorySink
from subsnip.models import CaptureError
from subsnip.pipeline import Pipeline


def make_frame(width: int = 640, height: int = 360, value: int = 40) -> np.ndarray:
    """Solid dark BGRA frame."""
    frame = np.full((height, width, 4), value, dtype=np.uint8)
    frame[:, :, 3] = 255
    return frame


class FakeHandle:
    """In-memory frame handle."""

    def __init__(self, source_id: str, frame: np.ndarray | None):
        self.source_id = source_id
        self.frame = frame
        self.failed = False
        self.stopped = False

    def is_ready(self) -> bool:
        return self.frame is not None and self.frame.shape[0] > 0 and self.frame.shape[1] > 0

    def get_frame(self):
        return None if self.frame is None else self.frame.copy()

    def stop(self, wait: bool = True) -> None:
        self.stopped = True


class FakeCapture:
    """Capture adapter handing out FakeHandles."""

    def __init__(self, frame: np.ndarray | None = None, open_error: str | None = None):
        self.frame = make_frame() if frame is None else frame
        self.open_error = open_error
        self.handles: list[FakeHandle] = []
        self.closed: list[FakeHandle] = []

    def list_sources(self):
        return []

    def open_source(self, source_id: str) -> FakeHandle:
        if self.open_error:
            raise CaptureError(self.open_error)
        handle = FakeHandle(source_id, self.frame)
        self.handles.append(handle)
        return handle

    def grab_still_frame(self, handle: FakeHandle):
        if not handle.is_ready():
            return None
        return handle.get_frame()

    def close(self, handle: FakeHandle) -> None:
        self.closed.append(handle)
        handle.stop()


def make_engines():
    """Async mocks standing in for the four engines."""
    network = MagicMock()
    network.recognize = AsyncMock(return_value="Hello world")
    local = MagicMock()
    local.recognize = AsyncMock(return_value="Hello world")
    ai = MagicMock()
    ai.translate = AsyncMock(return_value="Xin chào thế giới")
    free = MagicMock()
    free.translate = AsyncMock(return_value="Xin chào thế giới")
    return network, local, ai, free


@pytest.fixture
def config():
    return Config(
        live_interval=0.01,
        capture_timeout=0.2,
        capture_settle=0.0,
        api_key="test-key",
    )


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def sink():
    return HistorySink()


@pytest.fixture
def engines():
    return make_engines()


@pytest.fixture
def pipeline(config, capture, engines, sink):
    network, local, ai, free = engines
    return Pipeline(
        config=config,
        capture=capture,
        network_ocr=network,
        local_ocr=local,
        ai_translator=ai,
        free_translator=free,
        sink=sink,
    )
