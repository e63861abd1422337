"""OCR and translation dispatch.

Routing is a pure function of the pipeline mode and of whether the network
OCR had to fall back:

    mode   network OCR ok?   OCR engine        translator
    ----   ---------------   ---------------   ----------
    LIVE   (not attempted)   local             free
    SNIP   yes               network           AI
    SNIP   no (fallback)     network -> local  free

Paid recognition is paired with paid translation and the live loop never
spends quota.
"""

from collections.abc import Callable
from enum import Enum

from . import log
from .backends.base import OCRBackend, TranslationBackend, language_code
from .models import Extraction, Mode

logger = log.get_logger()

# Substrings (lowercase) that mark an OCR failure as quota / rate limiting
QUOTA_MARKERS = ("quota", "429", "exceeded")

QUOTA_NOTICE = "Network OCR quota exceeded, switched to local OCR"

DEFAULT_MIN_TEXT_LENGTH = 2


class OcrStrategy(Enum):
    """Which OCR path a request takes."""

    NETWORK_WITH_FALLBACK = "network"
    LOCAL = "local"


class TranslateStrategy(Enum):
    """Which translator a request uses."""

    AI = "ai"
    FREE = "free"


def select_ocr_strategy(mode: Mode) -> OcrStrategy:
    """Live sampling always stays local; snips try the network first."""
    if mode is Mode.LIVE:
        return OcrStrategy.LOCAL
    return OcrStrategy.NETWORK_WITH_FALLBACK


def select_translation_strategy(mode: Mode, used_fallback: bool) -> TranslateStrategy:
    """Free translation whenever the text came from the local engine."""
    if mode is Mode.LIVE or used_fallback:
        return TranslateStrategy.FREE
    return TranslateStrategy.AI


def is_quota_error(error: BaseException) -> bool:
    """Check whether an OCR failure signals quota or rate limiting."""
    message = str(error).lower()
    return any(marker in message for marker in QUOTA_MARKERS)


def is_noise(text: str, history_worthy: bool, min_length: int = DEFAULT_MIN_TEXT_LENGTH) -> bool:
    """True when extracted text is too short to be worth translating.

    History-worthy runs (manual snips) are never discarded.
    """
    return not history_worthy and len(text.strip()) < min_length


class OCRDispatcher:
    """Routes images to the network or local OCR engine."""

    def __init__(
        self,
        network: OCRBackend,
        local: OCRBackend,
        on_quota: Callable[[str], None] | None = None,
    ):
        """Initialize the dispatcher.

        Args:
            network: High-accuracy engine used for snips.
            local: Local engine used for live ticks and as fallback.
            on_quota: Called with a user-facing message when the network
                engine reports a quota problem.
        """
        self._network = network
        self._local = local
        self._on_quota = on_quota

    async def extract(self, image: bytes, mode: Mode, model: str | None = None) -> Extraction:
        """Recognize text in a PNG image.

        Never raises for engine failures: a total failure yields empty text.

        Args:
            image: PNG-encoded image bytes.
            mode: Pipeline mode (selects the strategy).
            model: Network model id.

        Returns:
            Extraction with the text and whether the local fallback was used.
        """
        if select_ocr_strategy(mode) is OcrStrategy.LOCAL:
            return Extraction(text=await self._recognize_local(image), used_fallback=False)

        try:
            text = await self._network.recognize(image, model)
            return Extraction(text=text, used_fallback=False)
        except Exception as e:
            if is_quota_error(e):
                logger.warning("network OCR quota exceeded, using local OCR", err=str(e))
                if self._on_quota is not None:
                    self._on_quota(QUOTA_NOTICE)
            else:
                logger.warning("network OCR failed, using local OCR", err=str(e))

        return Extraction(text=await self._recognize_local(image), used_fallback=True)

    async def _recognize_local(self, image: bytes) -> str:
        try:
            return await self._local.recognize(image)
        except Exception as e:
            logger.error("OCR failed", err=str(e))
            return ""


class TranslationDispatcher:
    """Routes text to the AI or the free translator."""

    def __init__(self, ai: TranslationBackend, free: TranslationBackend):
        self._ai = ai
        self._free = free

    async def translate(
        self,
        text: str,
        target_language: str,
        mode: Mode,
        used_fallback: bool,
        model: str | None = None,
    ) -> str:
        """Translate extracted text.

        Never raises for backend failures: they yield "".

        Args:
            text: Extracted text.
            target_language: Target language name, e.g. "Vietnamese".
            mode: Pipeline mode.
            used_fallback: Whether OCR fell back to the local engine.
            model: AI model id.

        Returns:
            Translated text, or "" for empty input or failure.
        """
        if not text or not text.strip():
            return ""

        strategy = select_translation_strategy(mode, used_fallback)
        try:
            if strategy is TranslateStrategy.FREE:
                code = language_code(target_language)
                return await self._free.translate(text, code)
            return await self._ai.translate(text, target_language, model)
        except Exception as e:
            logger.error("translation failed", strategy=strategy.value, err=str(e))
            return ""
