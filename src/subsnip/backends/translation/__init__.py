"""Translation backend implementations."""

from .gemini import GeminiTranslationBackend
from .google_free import GoogleFreeTranslationBackend

__all__ = [
    "GeminiTranslationBackend",
    "GoogleFreeTranslationBackend",
]
