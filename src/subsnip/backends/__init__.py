"""Pluggable backends for OCR and translation."""

from .base import (
    Language,
    OCRBackend,
    OCRBackendInfo,
    TranslationBackend,
    TranslationBackendInfo,
    language_code,
)

__all__ = [
    "Language",
    "OCRBackend",
    "OCRBackendInfo",
    "TranslationBackend",
    "TranslationBackendInfo",
    "language_code",
]
