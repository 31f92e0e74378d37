"""
Chat API clients for the visibility platforms.
Each client sends one prompt and returns the answer text, raising
TransportError or MalformedResponseError when it cannot.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List

import anthropic
import google.generativeai as genai
import openai
from google.api_core import exceptions as google_exceptions
from openai import AsyncOpenAI

from services.config import VisibilityConfig
from services.errors import ConfigurationError, MalformedResponseError, TransportError

logger = logging.getLogger(__name__)


CHATGPT_SYSTEM_PROMPT = (
    "You are a knowledgeable assistant with expertise in local business landscapes. "
    "When discussing businesses in a specific area, mention any companies you know about, "
    "including their names, services, and locations. Be comprehensive and include both "
    "well-known and smaller local businesses."
)


class ChatClient(ABC):
    """Sends a single prompt to a chat platform."""

    name = "chat"

    @abstractmethod
    async def complete(self, prompt: str, attempt: int = 0) -> str:
        """Return the answer text for one prompt."""


def _openai_content(resp: Any, platform: str) -> str:
    choices = getattr(resp, "choices", None)
    if not choices:
        raise MalformedResponseError(f"{platform} response had no choices")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None) if message else None
    if not content:
        raise MalformedResponseError(f"{platform} response had no message content")
    return content


class OpenAIChatClient(ChatClient):
    """ChatGPT through the OpenAI chat completions API."""

    name = "ChatGPT"

    def __init__(self, api_key: str, model: str):
        self.model = model
        self._client = AsyncOpenAI(api_key=api_key)

    def build_messages(self, prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": CHATGPT_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    def request_options(self, attempt: int) -> Dict[str, Any]:
        return {
            "max_tokens": 1200,
            "temperature": 0.1,
            "presence_penalty": 0.1,
            "frequency_penalty": 0.1,
        }

    async def complete(self, prompt: str, attempt: int = 0) -> str:
        try:
            resp = await self._client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(prompt),
                **self.request_options(attempt)
            )
        except openai.APIStatusError as e:
            raise TransportError(f"{self.name} API error: {e.status_code}", e.status_code) from e
        except openai.APIError as e:
            raise TransportError(f"{self.name} request failed: {e}") from e
        return _openai_content(resp, self.name)


class PerplexityChatClient(OpenAIChatClient):
    """Perplexity through its OpenAI-compatible endpoint."""

    name = "Perplexity"

    def __init__(self, api_key: str, model: str, base_url: str):
        self.model = model
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    def build_messages(self, prompt: str) -> List[Dict[str, str]]:
        return [{"role": "user", "content": prompt}]

    def request_options(self, attempt: int) -> Dict[str, Any]:
        # Nudge the temperature up on retries so the second answer differs.
        return {
            "max_tokens": 800,
            "temperature": round(0.3 + attempt * 0.1, 2),
        }


class GeminiChatClient(ChatClient):
    """Gemini through google-generativeai."""

    name = "Gemini"

    def __init__(self, api_key: str, model: str):
        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(model)

    async def complete(self, prompt: str, attempt: int = 0) -> str:
        try:
            response = await self._model.generate_content_async(prompt)
        except google_exceptions.GoogleAPICallError as e:
            status_code = int(e.code) if e.code is not None else None
            raise TransportError(f"{self.name} API error: {status_code}", status_code) from e
        except google_exceptions.GoogleAPIError as e:
            raise TransportError(f"{self.name} request failed: {e}") from e

        candidates = getattr(response, "candidates", None)
        if not candidates:
            raise MalformedResponseError("Invalid Gemini response: no candidates")
        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) if content else None
        if not parts or not getattr(parts[0], "text", None):
            raise MalformedResponseError("Invalid Gemini response: no content parts")
        return parts[0].text


class ClaudeChatClient(ChatClient):
    """Claude through the Anthropic messages API."""

    name = "Claude"

    def __init__(self, api_key: str, model: str):
        self.model = model
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    async def complete(self, prompt: str, attempt: int = 0) -> str:
        try:
            resp = await self._client.messages.create(
                model=self.model,
                max_tokens=500,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIStatusError as e:
            raise TransportError(f"{self.name} API error: {e.status_code}", e.status_code) from e
        except anthropic.APIError as e:
            raise TransportError(f"{self.name} request failed: {e}") from e

        blocks = getattr(resp, "content", None)
        if not blocks or not getattr(blocks[0], "text", None):
            raise MalformedResponseError("Invalid Claude response: no text content")
        return blocks[0].text


def _build_chatgpt(config: VisibilityConfig) -> ChatClient:
    return OpenAIChatClient(config.openai_api_key, config.openai_model)


def _build_gemini(config: VisibilityConfig) -> ChatClient:
    return GeminiChatClient(config.gemini_api_key, config.gemini_model)


def _build_perplexity(config: VisibilityConfig) -> ChatClient:
    return PerplexityChatClient(
        config.perplexity_api_key, config.perplexity_model, config.perplexity_base_url
    )


def _build_claude(config: VisibilityConfig) -> ChatClient:
    return ClaudeChatClient(config.anthropic_api_key, config.claude_model)


CLIENT_FACTORIES: Dict[str, Callable[[VisibilityConfig], ChatClient]] = {
    "chatgpt": _build_chatgpt,
    "gemini": _build_gemini,
    "perplexity": _build_perplexity,
    "claude": _build_claude,
}


def build_chat_client(platform: str, config: VisibilityConfig) -> ChatClient:
    """Create the client for a platform key, or raise ConfigurationError."""
    factory = CLIENT_FACTORIES.get(platform)
    if factory is None:
        raise ConfigurationError(f"Unknown platform: {platform}")
    client = factory(config)
    logger.info("%s client configured", client.name)
    return client
