"""Shared Gemini client construction for the network backends."""

from google import genai

from .. import log
from ..models import ModelLoadError

logger = log.get_logger()

DEFAULT_MODEL = "gemini-2.5-flash"


def create_client(api_key: str | None) -> genai.Client:
    """Create a Gemini API client.

    Args:
        api_key: Gemini API key.

    Raises:
        ModelLoadError: If no key is configured or the client cannot be built.
    """
    if not api_key:
        raise ModelLoadError("No Gemini API key configured (set GEMINI_API_KEY)")
    try:
        client = genai.Client(api_key=api_key)
    except Exception as e:
        raise ModelLoadError(f"Failed to create Gemini client: {e}") from e
    logger.debug("gemini client created")
    return client
