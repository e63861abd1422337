"""Result sinks: in-memory history and the current display state."""

from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from . import log
from .models import NoticeKind, PipelineResult

logger = log.get_logger()


class ResultSink(Protocol):
    """Receives everything the pipeline publishes."""

    def on_frame(self, image: NDArray[np.uint8]) -> None:
        """The displayed image changed."""
        ...

    def on_result(self, result: PipelineResult, history_worthy: bool) -> None:
        """A pipeline run produced text."""
        ...

    def on_notice(self, kind: NoticeKind, message: str) -> None:
        """Something the user should be told about."""
        ...


class History:
    """Process-lifetime list of results, most recent first."""

    def __init__(self):
        self._items: list[PipelineResult] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    @property
    def items(self) -> list[PipelineResult]:
        return list(self._items)

    def add(self, result: PipelineResult) -> None:
        self._items.insert(0, result)

    def get(self, result_id: str) -> PipelineResult | None:
        for item in self._items:
            if item.id == result_id:
                return item
        return None

    def remove(self, result_id: str) -> bool:
        """Delete an entry. Returns False if the id is unknown."""
        for i, item in enumerate(self._items):
            if item.id == result_id:
                del self._items[i]
                return True
        return False


class HistorySink:
    """Sink that keeps the current display state and the history list."""

    def __init__(self, history: History | None = None):
        self.history = history if history is not None else History()
        self.current_image: NDArray[np.uint8] | None = None
        self.current_result: PipelineResult | None = None
        self.notices: list[tuple[NoticeKind, str]] = []

    def on_frame(self, image: NDArray[np.uint8]) -> None:
        self.current_image = image

    def on_result(self, result: PipelineResult, history_worthy: bool) -> None:
        self.current_result = result
        if history_worthy:
            self.history.add(result)
        logger.info(
            "result",
            text=result.extracted_text,
            translation=result.translated_text,
            local_ocr=result.used_local_ocr,
        )

    def on_notice(self, kind: NoticeKind, message: str) -> None:
        self.notices.append((kind, message))
        logger.warning("notice", kind=kind.value, message=message)

    def select(self, result_id: str) -> PipelineResult | None:
        """Show a history entry as the current result."""
        item = self.history.get(result_id)
        if item is not None:
            self.current_image = item.image
            self.current_result = item
        return item
