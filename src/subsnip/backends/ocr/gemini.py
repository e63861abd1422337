"""Gemini OCR backend (network engine)."""

from google import genai
from google.genai import types

from ... import log
from ...models import OCRError
from ..base import OCRBackend, OCRBackendInfo
from ..gemini import DEFAULT_MODEL, create_client

logger = log.get_logger()

OCR_PROMPT = (
    "Perform OCR on this image. Return ONLY the text found in the image. "
    "Preserve the original layout and line breaks where possible. "
    "If no text is found, return an empty string."
)


class GeminiOCRBackend(OCRBackend):
    """Extracts text from images with a Gemini multimodal model.

    Highest accuracy, but every call costs quota and a network round trip,
    so it is only used for one-shot snips.
    """

    def __init__(self, api_key: str | None = None, client: genai.Client | None = None):
        """Initialize the backend (client is created lazily).

        Args:
            api_key: Gemini API key.
            client: Pre-built client (tests, shared clients).
        """
        self._api_key = api_key
        self._client = client

    @classmethod
    def get_info(cls) -> OCRBackendInfo:
        """Get metadata about this backend."""
        return OCRBackendInfo(
            id="gemini",
            name="Gemini",
            is_network=True,
            license="proprietary",
            description="Network multimodal OCR",
        )

    def load(self) -> None:
        """Create the API client.

        Raises:
            ModelLoadError: If no API key is configured.
        """
        if self._client is None:
            self._client = create_client(self._api_key)

    def is_loaded(self) -> bool:
        return self._client is not None

    async def recognize(self, image: bytes, model: str | None = None) -> str:
        """Recognize text in a PNG image.

        Args:
            image: PNG-encoded image bytes.
            model: Gemini model id.

        Returns:
            Extracted text ("" if none).

        Raises:
            OCRError: On any API failure. The message of the underlying error
                is kept so quota failures can be told apart.
        """
        model = model or DEFAULT_MODEL
        try:
            self.load()
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=[
                    types.Part.from_bytes(data=image, mime_type="image/png"),
                    OCR_PROMPT,
                ],
            )
        except Exception as e:
            raise OCRError(str(e)) from e

        text = (response.text or "").strip()
        logger.debug("network OCR complete", model=model, chars=len(text))
        return text
