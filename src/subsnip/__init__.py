"""subsnip - Screen subtitle OCR and translation.

Captures a region of the screen, isolates white subtitle text, extracts it
with a network OCR model (falling back to Tesseract) and translates it. Runs
either as a one-shot snip or as a live loop sampling the region on a timer.
"""

__version__ = "0.1.0"

from .config import Config
from .history import History, HistorySink, ResultSink
from .live import LiveLoopController, LoopState
from .models import CropRegion, Mode, NoticeKind, PipelineResult
from .pipeline import Pipeline

__all__ = [
    "Config",
    "CropRegion",
    "History",
    "HistorySink",
    "LiveLoopController",
    "LoopState",
    "Mode",
    "NoticeKind",
    "Pipeline",
    "PipelineResult",
    "ResultSink",
    "__version__",
]
