"""Series identification and context lookup."""

from typing import Optional, Protocol

import openai

from .client import create_async_client
from src.ingestion.page import ContextSource, SeriesContext
from src.utils.config import TranslatorConfig
from src.utils.logger import logger as LOGGER


UNKNOWN_SERIES = "Unknown Series"

IDENTIFY_PROMPT = (
    "Identify the manga series shown in this image. Return ONLY the exact title of the series. "
    f"If you cannot identify it with certainty, return '{UNKNOWN_SERIES}'."
)


class ContextLookupError(Exception):
    """Raised when series context cannot be fetched."""

    pass


class ContextProvider(Protocol):
    async def identify_title(self, image_base64: str, mime_type: str) -> str:
        ...

    async def lookup(self, title: str) -> SeriesContext:
        ...


def build_lookup_prompt(title: str) -> str:
    return (
        f'Search for the manga series "{title}". Provide a structured summary including:\n'
        "1. A brief plot summary (max 2 sentences).\n"
        "2. A list of main character names with their official localized spellings.\n"
        "3. Key terminology, specific glossary terms, or lore definitions.\n"
        "4. The genre and general tone (e.g., comedic, dark, formal).\n"
        "Keep the total output under 400 words."
    )


def sources_from_annotations(message) -> list[ContextSource]:
    """Collect url_citation annotations from a chat completion message."""
    sources = []
    seen = set()
    for annotation in getattr(message, "annotations", None) or []:
        citation = getattr(annotation, "url_citation", None)
        if citation is None or citation.url in seen:
            continue
        seen.add(citation.url)
        sources.append(ContextSource(uri=citation.url, title=citation.title or citation.url))
    return sources


class LLMContextProvider:
    """ContextProvider backed by an OpenAI-compatible chat completions API."""

    def __init__(self, config: TranslatorConfig, client: Optional[openai.AsyncOpenAI] = None):
        self.config = config
        self.client = client or create_async_client(config)

    async def identify_title(self, image_base64: str, mime_type: str) -> str:
        """Guess the series title, falling back to 'Unknown Series' on any failure."""
        try:
            completion = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{image_base64}"}},
                            {"type": "text", "text": IDENTIFY_PROMPT},
                        ],
                    }
                ],
            )
        except Exception as e:
            LOGGER.error(f"Identification failed: {e}")
            return UNKNOWN_SERIES

        content = completion.choices[0].message.content if completion.choices else None
        return (content or "").strip() or UNKNOWN_SERIES

    async def lookup(self, title: str) -> SeriesContext:
        """Fetch plot, character and glossary notes for a series.

        Raises:
            ContextLookupError: If the request fails.
        """
        api_args = {
            "model": self.config.search_model or self.config.model,
            "messages": [{"role": "user", "content": build_lookup_prompt(title)}],
        }
        if self.config.web_search:
            api_args["web_search_options"] = {}

        try:
            completion = await self.client.chat.completions.create(**api_args)
        except Exception as e:
            LOGGER.error(f"Context search failed: {e}")
            raise ContextLookupError(f"Context search failed for {title!r}: {e}") from e

        if not completion.choices:
            return SeriesContext(title=title, info="No context found.")

        message = completion.choices[0].message
        return SeriesContext(
            title=title,
            info=message.content or "No context found.",
            sources=sources_from_annotations(message),
        )
