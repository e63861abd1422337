"""Free Google Translate backend (public GTX endpoint).

Needs no key and costs nothing, so it serves every live tick and any snip
whose OCR had to fall back. Best effort: on failure it returns the source
text instead of raising.
"""

import httpx

from ... import log
from ..base import TranslationBackend, TranslationBackendInfo

logger = log.get_logger()

GTX_URL = "https://translate.googleapis.com/translate_a/single"

# Seconds per request
DEFAULT_TIMEOUT = 10.0


def parse_gtx_response(data, fallback: str) -> str:
    """Join the translated segments of a GTX response.

    The endpoint returns nested arrays; data[0] holds one
    [translated, original, ...] entry per sentence.
    """
    if not data or not isinstance(data, list) or not data[0]:
        return fallback
    return "".join(segment[0] for segment in data[0] if segment and segment[0])


class GoogleFreeTranslationBackend(TranslationBackend):
    """Translates text through the public Google Translate endpoint."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = DEFAULT_TIMEOUT):
        """Initialize the backend.

        Args:
            client: Shared HTTP client. When None a short-lived client is
                created per request.
            timeout: Request timeout in seconds.
        """
        self._client = client
        self._timeout = timeout

    @classmethod
    def get_info(cls) -> TranslationBackendInfo:
        """Get metadata about this backend."""
        return TranslationBackendInfo(
            id="google_free",
            name="Google Translate (free)",
            is_network=True,
            is_free=True,
            description="Keyless public translation endpoint",
        )

    async def translate(self, text: str, target_language: str, model: str | None = None) -> str:
        """Translate text into a language code.

        Args:
            text: Source text (source language is auto-detected).
            target_language: ISO 639-1 code, e.g. "vi".
            model: Ignored.

        Returns:
            Translated text, or the original text if the request fails.
        """
        if not text or not text.strip():
            return ""

        params = {
            "client": "gtx",
            "sl": "auto",
            "tl": target_language,
            "dt": "t",
            "q": text,
        }

        try:
            if self._client is not None:
                response = await self._client.get(GTX_URL, params=params, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(GTX_URL, params=params)
            response.raise_for_status()
            translated = parse_gtx_response(response.json(), fallback=text)
        except (httpx.HTTPError, ValueError, TypeError, IndexError) as e:
            logger.warning("free translation failed", err=str(e), language=target_language)
            return text

        logger.debug("free translation complete", language=target_language, chars=len(translated))
        return translated
