import logging
from typing import Any, Dict

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)


class GeminiClientError(RuntimeError):
    """Raised when the Gemini SDK client cannot be created."""


def create_genai_client(api_key: str) -> genai.Client:
    try:
        client = genai.Client(api_key=api_key)
    except Exception as exc:
        logger.exception("Failed to create Gemini client")
        raise GeminiClientError("Unable to create Gemini API client.") from exc
    return client


class GeminiVideoBackend:
    """Thin adapter over the two SDK calls the generator needs."""

    def __init__(self, client: genai.Client):
        self._client = client

    def submit(self, request: Dict[str, Any]) -> types.GenerateVideosOperation:
        logger.info("Submitting video generation request to %s", request.get("model"))
        return self._client.models.generate_videos(**request)

    def poll(self, operation: types.GenerateVideosOperation) -> types.GenerateVideosOperation:
        return self._client.operations.get(operation)
