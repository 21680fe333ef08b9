"""Manga assistant chat and image generation on the shared LLM client."""

import base64
import getpass
from dataclasses import replace
from typing import AsyncIterator, Callable, Literal, Optional, Protocol

import openai

from .client import create_async_client
from src.utils.config import TranslatorConfig
from src.utils.logger import logger as LOGGER


ASSISTANT_SYSTEM_PROMPT = (
    "You are a knowledgeable anime and manga assistant. You help users find series, "
    "understand lore, and discuss plot points. Be enthusiastic and helpful."
)

ImageSize = Literal["1K", "2K", "4K"]

IMAGE_SIZES: dict[str, str] = {
    "1K": "1024x1024",
    "2K": "2048x2048",
    "4K": "4096x4096",
}

KEY_REJECTED_MARKER = "Requested entity was not found"


class ImageGenerationError(Exception):
    """Raised when no image could be produced for a prompt."""

    pass


class ApiKeyRejectedError(ImageGenerationError):
    """Raised when the provider rejects the selected key; a new key is needed."""

    pass


class ChatSession:
    """Multi-turn conversation with the manga assistant.

    Only completed turns are kept in the history, so a failed request can be
    resent without leaving a dangling user message behind.
    """

    def __init__(
        self,
        config: TranslatorConfig,
        client: Optional[openai.AsyncOpenAI] = None,
        system_prompt: str = ASSISTANT_SYSTEM_PROMPT,
    ):
        self.config = config
        self.client = client or create_async_client(config)
        self.history: list[dict] = [{"role": "system", "content": system_prompt}]

    async def send_message_stream(self, text: str) -> AsyncIterator[str]:
        """Send a user message and yield the reply as it streams in."""
        messages = self.history + [{"role": "user", "content": text}]
        stream = await self.client.chat.completions.create(
            model=self.config.chat_model or self.config.model,
            messages=messages,
            temperature=self.config.temperature,
            stream=True,
        )

        reply = []
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                reply.append(delta)
                yield delta

        self.history = messages + [{"role": "assistant", "content": "".join(reply)}]

    async def send_message(self, text: str) -> str:
        parts = [part async for part in self.send_message_stream(text)]
        return "".join(parts)

    def reset(self) -> None:
        self.history = self.history[:1]


def create_chat_session(config: TranslatorConfig, client: Optional[openai.AsyncOpenAI] = None) -> ChatSession:
    return ChatSession(config, client=client)


class KeySelector(Protocol):
    """Host capability that owns the API key used for image generation."""

    async def has_selected_key(self) -> bool:
        ...

    async def select_key(self) -> None:
        ...

    def current_key(self) -> Optional[str]:
        ...

    def forget_key(self) -> None:
        ...


class PromptKeySelector:
    """KeySelector that starts from the configured key and asks on the terminal otherwise."""

    def __init__(self, initial_key: str = "", prompt: Callable[[str], str] = getpass.getpass):
        self._key = initial_key
        self._prompt = prompt

    async def has_selected_key(self) -> bool:
        return bool(self._key)

    async def select_key(self) -> None:
        self._key = self._prompt("API key for image generation: ").strip()

    def current_key(self) -> Optional[str]:
        return self._key or None

    def forget_key(self) -> None:
        self._key = ""


def image_data_url(b64_data: str, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{b64_data}"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into (mime type, raw bytes)."""
    header, _, encoded = data_url.partition(";base64,")
    return header.removeprefix("data:"), base64.b64decode(encoded)


class MangaImageGenerator:
    """Generates square images from a text prompt.

    The key is never read from ambient state: it comes from the injected
    KeySelector, which is asked to select one when none is present.
    """

    def __init__(
        self,
        config: TranslatorConfig,
        key_selector: KeySelector,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.config = config
        self.key_selector = key_selector
        self._client = client

    async def ensure_key(self) -> str:
        """Return the selected key, asking the selector for one if needed.

        Raises:
            ApiKeyRejectedError: If no key is available after selection.
        """
        if not await self.key_selector.has_selected_key():
            await self.key_selector.select_key()
        key = self.key_selector.current_key()
        if not key:
            raise ApiKeyRejectedError("No API key selected")
        return key

    def _client_for(self, key: str) -> openai.AsyncOpenAI:
        if self._client is not None:
            return self._client
        return create_async_client(replace(self.config, api_key=key))

    async def generate(self, prompt: str, size: ImageSize = "1K") -> str:
        """Generate one image.

        Returns:
            The image as a ``data:`` URL

        Raises:
            ValueError: If the prompt is empty or the size is unknown.
            ApiKeyRejectedError: If the provider does not accept the key.
            ImageGenerationError: If the response carries no image.
        """
        if not prompt.strip():
            raise ValueError("Prompt is empty")
        if size not in IMAGE_SIZES:
            raise ValueError(f"Unknown image size {size!r}, expected one of {', '.join(IMAGE_SIZES)}")

        key = await self.ensure_key()
        client = self._client_for(key)

        try:
            response = await client.images.generate(
                model=self.config.image_model,
                prompt=prompt,
                size=IMAGE_SIZES[size],
                n=1,
                response_format="b64_json",
            )
        except Exception as e:
            if isinstance(e, openai.NotFoundError) or KEY_REJECTED_MARKER in str(e):
                LOGGER.error(f"Image generation rejected the API key: {e}")
                self.key_selector.forget_key()
                raise ApiKeyRejectedError("API key session expired or invalid. Please select your key again.") from e
            LOGGER.error(f"Image generation failed: {e}")
            raise ImageGenerationError("Failed to generate image. Please try a different prompt.") from e

        for item in response.data or []:
            if getattr(item, "b64_json", None):
                return image_data_url(item.b64_json)

        raise ImageGenerationError("No image data found in response")
