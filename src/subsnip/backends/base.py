"""Abstract base classes for OCR and translation backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class Language(Enum):
    """Target languages understood by the free translator."""

    VIETNAMESE = "vi"
    ENGLISH = "en"
    CHINESE = "zh"
    JAPANESE = "ja"
    KOREAN = "ko"
    SPANISH = "es"
    FRENCH = "fr"
    GERMAN = "de"
    RUSSIAN = "ru"
    THAI = "th"
    INDONESIAN = "id"

    @property
    def display_name(self) -> str:
        """Human-readable name for the language."""
        return self.name.capitalize()


# Used when a language name matches nothing in the table
DEFAULT_LANGUAGE = Language.VIETNAMESE


def language_code(name: str, default: Language = DEFAULT_LANGUAGE) -> str:
    """Map a language name to its ISO 639-1 code.

    Matching is a case-insensitive substring test against the display names,
    so "Vietnamese", "vietnamese" and "Vietnamese (Vietnam)" all give "vi".

    Args:
        name: Language name as shown in settings.
        default: Language to use when nothing matches.

    Returns:
        Two-letter language code.
    """
    lowered = name.lower()
    for language in Language:
        if language.display_name.lower() in lowered:
            return language.value
    return default.value


@dataclass
class OCRBackendInfo:
    """Metadata about an OCR backend."""

    id: str
    name: str
    is_network: bool
    license: str
    description: str = ""


@dataclass
class TranslationBackendInfo:
    """Metadata about a translation backend."""

    id: str
    name: str
    is_network: bool
    is_free: bool
    description: str = ""


class OCRBackend(ABC):
    """Abstract base class for OCR backends."""

    @abstractmethod
    def load(self) -> None:
        """Load the OCR engine.

        Raises:
            ModelLoadError: If the engine fails to load.
        """
        pass

    @abstractmethod
    async def recognize(self, image: bytes, model: str | None = None) -> str:
        """Recognize text in an encoded image.

        Args:
            image: PNG-encoded image bytes.
            model: Model id for backends that support several models.

        Returns:
            Recognized text, or "" when the image contains none.

        Raises:
            OCRError: If recognition fails.
        """
        pass

    @abstractmethod
    def is_loaded(self) -> bool:
        """Check if the engine is loaded."""
        pass

    @classmethod
    @abstractmethod
    def get_info(cls) -> OCRBackendInfo:
        """Get metadata about this backend."""
        pass


class TranslationBackend(ABC):
    """Abstract base class for translation backends."""

    @abstractmethod
    async def translate(self, text: str, target_language: str, model: str | None = None) -> str:
        """Translate text.

        Args:
            text: Source text to translate.
            target_language: Target language, as the backend expects it
                (a display name for AI backends, a code for the free one).
            model: Model id for backends that support several models.

        Returns:
            Translated text.

        Raises:
            TranslationError: If translation fails.
        """
        pass

    @classmethod
    @abstractmethod
    def get_info(cls) -> TranslationBackendInfo:
        """Get metadata about this backend."""
        pass
