"""Gemini translation backend (network AI translator)."""

from google import genai

from ... import log
from ...models import TranslationError
from ..base import TranslationBackend, TranslationBackendInfo
from ..gemini import DEFAULT_MODEL, create_client

logger = log.get_logger()

TRANSLATE_PROMPT = (
    "Translate the following text into {language}. IMPORTANT: Return ONLY the "
    "translated text, do not add any introductory or concluding remarks. "
    "Maintain the tone and formatting of the original text:\n\n{text}"
)


class GeminiTranslationBackend(TranslationBackend):
    """Translates text with a Gemini model.

    Produces contextual translations at a per-call cost. Paired with network
    OCR so paid recognition gets paid translation.
    """

    def __init__(self, api_key: str | None = None, client: genai.Client | None = None):
        self._api_key = api_key
        self._client = client

    @classmethod
    def get_info(cls) -> TranslationBackendInfo:
        """Get metadata about this backend."""
        return TranslationBackendInfo(
            id="gemini",
            name="Gemini",
            is_network=True,
            is_free=False,
            description="Network AI translation",
        )

    async def translate(self, text: str, target_language: str, model: str | None = None) -> str:
        """Translate text into a named language.

        Args:
            text: Source text.
            target_language: Language name, e.g. "Vietnamese".
            model: Gemini model id.

        Raises:
            TranslationError: On any API failure.
        """
        if not text.strip():
            return ""

        model = model or DEFAULT_MODEL
        try:
            if self._client is None:
                self._client = create_client(self._api_key)
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=TRANSLATE_PROMPT.format(language=target_language, text=text),
            )
        except Exception as e:
            raise TranslationError(str(e)) from e

        translated = (response.text or "").strip()
        logger.debug("network translation complete", model=model, language=target_language)
        return translated
