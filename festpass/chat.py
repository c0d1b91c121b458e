from abc import ABC, abstractmethod
import logging
import os
from typing import Optional

import httpx

from .content import CHAT_PREAMBLE
from .errors import ChatNotConfigured, InvalidRequest, UpstreamError

logger = logging.getLogger(__name__)

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash-lite")
GEMINI_BASE_URL = os.environ.get(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)

MAX_MESSAGE_LENGTH = 500


def clean_message(message) -> str:
    if not isinstance(message, str) or not message.strip():
        raise InvalidRequest("Message is required")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise InvalidRequest(
            f"Message must be {MAX_MESSAGE_LENGTH} characters or less"
        )
    return message.strip()


# ----------------------------
# Text backend interface
# ----------------------------
class TextGenerator(ABC):
    @abstractmethod
    async def generate(self, preamble: str, message: str) -> str: ...


# ----------------------------
# Gemini implementation
# ----------------------------
class GeminiGenerator(TextGenerator):

    def __init__(self, http: httpx.AsyncClient, *,
                 api_key: Optional[str] = None,
                 model: str = GEMINI_MODEL,
                 base_url: str = GEMINI_BASE_URL) -> None:
        self.http = http
        self.api_key = GEMINI_API_KEY if api_key is None else api_key
        self.model = model
        self.base_url = base_url.rstrip("/")

    async def generate(self, preamble: str, message: str) -> str:
        if not self.api_key:
            logger.error("GEMINI_API_KEY is not configured")
            raise ChatNotConfigured("Chat assistant not configured")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "systemInstruction": {"parts": [{"text": preamble}]},
            "contents": [{"role": "user", "parts": [{"text": message}]}],
        }
        try:
            resp = await self.http.post(
                url, json=body, headers={"x-goog-api-key": self.api_key}
            )
        except httpx.TransportError as e:
            raise UpstreamError(f"chat backend unreachable: {e}") from e
        if resp.status_code >= 400:
            logger.error("Gemini API error %d: %s",
                         resp.status_code, resp.text[:500])
            raise UpstreamError(
                f"chat backend returned {resp.status_code}"
            )

        try:
            data = resp.json()
            parts = data["candidates"][0]["content"]["parts"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise UpstreamError("chat backend returned no answer")
        text = "".join(p.get("text", "") for p in parts
                       if isinstance(p, dict))
        if not text:
            raise UpstreamError("chat backend returned no answer")
        return text


class ChatProxy:
    """Stateless pass-through: validate, prepend the event preamble, forward."""

    def __init__(self, generator: TextGenerator,
                 preamble: str = CHAT_PREAMBLE) -> None:
        self.generator = generator
        self.preamble = preamble

    async def reply(self, message) -> str:
        return await self.generator.generate(
            self.preamble, clean_message(message)
        )
