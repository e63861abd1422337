"""OCR backend implementations."""

from .gemini import GeminiOCRBackend
from .tesseract import TesseractOCRBackend

__all__ = [
    "GeminiOCRBackend",
    "TesseractOCRBackend",
]
