"""Tesseract OCR backend (local engine)."""

import asyncio
import io

from ... import log
from ...models import ModelLoadError, OCRError
from ..base import OCRBackend, OCRBackendInfo

logger = log.get_logger()

# Default language packs (English + Vietnamese)
DEFAULT_LANGUAGES = "eng+vie"

# Assume a uniform block of text
TESSERACT_CONFIG = "--psm 6"


class TesseractOCRBackend(OCRBackend):
    """Extracts text from images using Tesseract OCR.

    Runs locally with no quota, so it serves live sampling and acts as the
    fallback when the network engine fails. The engine is verified lazily
    on the first call; a failed call resets it so the next one retries.
    """

    def __init__(self, languages: str = DEFAULT_LANGUAGES):
        """Initialize Tesseract backend.

        Args:
            languages: Tesseract language packs, "+"-separated.
        """
        self._languages = languages
        self._loaded = False

    @classmethod
    def get_info(cls) -> OCRBackendInfo:
        """Get metadata about this backend."""
        return OCRBackendInfo(
            id="tesseract",
            name="Tesseract",
            is_network=False,
            license="Apache-2.0",
            description="Local general-purpose OCR",
        )

    def load(self) -> None:
        """Load/verify Tesseract is available.

        Raises:
            ModelLoadError: If Tesseract is not installed.
        """
        if self._loaded:
            return

        logger.info("loading tesseract", languages=self._languages)

        try:
            import pytesseract

            # Verify Tesseract is installed by getting version
            version = pytesseract.get_tesseract_version()
            logger.info("tesseract ready", version=str(version), languages=self._languages)
            self._loaded = True
        except Exception as e:
            raise ModelLoadError(
                "Tesseract OCR is not installed or not in PATH. "
                "Please install Tesseract: https://github.com/tesseract-ocr/tesseract"
            ) from e

    def is_loaded(self) -> bool:
        """Check if Tesseract is available."""
        return self._loaded

    async def recognize(self, image: bytes, model: str | None = None) -> str:
        """Recognize text in a PNG image.

        Args:
            image: PNG-encoded image bytes.
            model: Ignored.

        Returns:
            Extracted text ("" if none).

        Raises:
            OCRError: If Tesseract fails.
        """
        try:
            if not self._loaded:
                await asyncio.to_thread(self.load)
            return await asyncio.to_thread(self._recognize_sync, image)
        except Exception as e:
            # Force re-initialization on the next call
            self._loaded = False
            logger.error("local OCR failed", err=str(e))
            raise OCRError(f"Tesseract failed: {e}") from e

    def _recognize_sync(self, image: bytes) -> str:
        import pytesseract
        from PIL import Image

        with Image.open(io.BytesIO(image)) as pil_image:
            text = pytesseract.image_to_string(
                pil_image.convert("RGB"),
                lang=self._languages,
                config=TESSERACT_CONFIG,
            )

        return self._clean_text(text)

    def _clean_text(self, text: str) -> str:
        """Clean extracted text.

        Collapses runs of whitespace within each line and drops blank lines.
        """
        if not text:
            return ""

        lines = (" ".join(line.split()) for line in text.splitlines())
        return "\n".join(line for line in lines if line).strip()
