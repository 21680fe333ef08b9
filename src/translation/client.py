"""Vision LLM client that translates a whole manga page in one request."""

import json
import re
from typing import List, Optional, Protocol, Union

import httpx
import openai
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.ingestion.page import AnalysisResult, BoundingBox, TranslatedBubble
from src.utils.config import TranslatorConfig
from src.utils.logger import logger as LOGGER


class PageTranslationError(Exception):
    """Raised when the model response cannot be turned into a page result."""

    pass


class BubbleElement(BaseModel):
    id: str = Field(..., description="Unique identifier for the bubble, e.g. 'b1'.")
    originalText: str = Field(..., description="The original text detected.")
    translatedText: str = Field(..., description="The translation of the text.")
    speaker: Optional[str] = Field(None, description="Inferred speaker or 'SFX' for sound effects.")
    boundingBox: Optional[List[float]] = Field(
        None, description="[ymin, xmin, ymax, xmax] normalized to 0-1000, tight around the text."
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Union[str, int]) -> str:
        return str(value)


class PageTranslationResponse(BaseModel):
    summary: str = Field("", description="A brief summary of what is happening on this page.")
    bubbles: List[BubbleElement] = Field(
        default_factory=list, description="All text bubbles and sound effects detected."
    )


class PageTranslator(Protocol):
    """Translation collaborator used by the translation session."""

    async def translate(
        self, image_base64: str, mime_type: str, context: Optional[str], target_language: str
    ) -> AnalysisResult:
        """Translate every text element on a page."""
        ...


def extract_json(raw_content: str) -> str:
    """Strip markdown fences or surrounding prose from a JSON reply."""
    text = raw_content.strip()
    match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL)
    if match:
        return match.group(1)
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start : end + 1]
    return text


def to_analysis_result(response: PageTranslationResponse) -> AnalysisResult:
    """Map the validated schema onto the internal result type."""
    bubbles = []
    for element in response.bubbles:
        box = None
        if element.boundingBox and len(element.boundingBox) == 4:
            box = BoundingBox(*element.boundingBox)
        bubbles.append(
            TranslatedBubble(
                id=element.id,
                original_text=element.originalText,
                translated_text=element.translatedText,
                speaker=element.speaker,
                bounding_box=box,
            )
        )
    return AnalysisResult(summary=response.summary, bubbles=bubbles)


def parse_page_translation(raw_content: Optional[str]) -> AnalysisResult:
    """Validate a raw model reply.

    Raises:
        PageTranslationError: If the reply is empty or does not match the schema.
    """
    if not raw_content:
        raise PageTranslationError("No response text from model")
    try:
        data = json.loads(extract_json(raw_content))
        validated = PageTranslationResponse.model_validate(data)
    except (ValidationError, json.JSONDecodeError) as e:
        LOGGER.debug(f"Raw JSON content from API: {raw_content}")
        raise PageTranslationError(f"Failed to parse model response: {e}") from e
    return to_analysis_result(validated)


def build_translation_prompt(target_language: str, context: Optional[str]) -> str:
    context_block = ""
    if context:
        context_block = (
            "=== SERIES CONTEXT & GLOSSARY ===\n"
            f"{context}\n"
            "=================================\n"
            "INSTRUCTION:\n"
            "- You MUST use the character names and terminology provided in the context above.\n"
            "- Match the tone described in the context.\n\n"
        )

    return (
        "You are an expert Manga Translator and Localizer.\n\n"
        f"TARGET LANGUAGE: {target_language}\n\n"
        f"{context_block}"
        "TASK:\n"
        "Analyze the provided manga page image.\n"
        "1. Detect ALL text elements: speech bubbles, narration boxes, floating text, and sound effects (SFX).\n"
        f"2. Extract original text and translate to {target_language}.\n"
        "3. Return STRICT JSON of the form "
        '{"summary": "...", "bubbles": [{"id": "b1", "originalText": "...", "translatedText": "...", '
        '"speaker": "...", "boundingBox": [ymin, xmin, ymax, xmax]}]}.\n\n'
        "RULES:\n"
        "1. ONE VISUAL BUBBLE = ONE JSON OBJECT. Never merge text from separate bubbles.\n"
        "2. Bounding boxes use a 0-1000 scale and must frame the TEXT closely.\n"
        '3. Include small handwriting and sound effects. Label the speaker "SFX" for sound effects.\n'
        "4. Do not invent text that is not visually present.\n"
    )


def create_async_client(config: TranslatorConfig) -> openai.AsyncOpenAI:
    """Build an OpenAI-compatible client for the configured provider."""
    if config.proxy:
        http_client = httpx.AsyncClient(proxy=config.proxy)
    else:
        http_client = httpx.AsyncClient()

    LOGGER.debug(f"Initializing client for {config.provider} with key {config.masked_key} at {config.base_url}")
    return openai.AsyncOpenAI(api_key=config.api_key, base_url=config.base_url, http_client=http_client)


class LLMPageTranslator:
    """PageTranslator backed by an OpenAI-compatible chat completions API."""

    def __init__(self, config: TranslatorConfig, client: Optional[openai.AsyncOpenAI] = None):
        self.config = config
        self.client = client or create_async_client(config)

    async def translate(
        self, image_base64: str, mime_type: str, context: Optional[str], target_language: str
    ) -> AnalysisResult:
        system_prompt = (
            f"You are a professional manga translator. You provide accurate translations in {target_language}. "
            "You NEVER merge distinct text bubbles. Each visual text area gets its own bounding box."
        )
        messages = [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{image_base64}"}},
                    {"type": "text", "text": build_translation_prompt(target_language, context)},
                ],
            },
        ]

        completion = await self.client.chat.completions.create(
            model=self.config.model,
            messages=messages,
            temperature=self.config.temperature,
            response_format={"type": "json_object"},
        )

        content = None
        if completion.choices and completion.choices[0].message:
            content = completion.choices[0].message.content
        return parse_page_translation(content)
