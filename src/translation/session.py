"""Translation session: single-page translation and series context."""

import asyncio
from typing import Optional

from .client import PageTranslator
from .context import ContextLookupError, ContextProvider
from src.ingestion.page import SeriesContext
from src.ingestion.store import PageStore
from src.utils.logger import logger as LOGGER


TRANSLATION_TIMEOUT_SECONDS = 60.0
RETRY_MESSAGE = "Translation failed. Click to retry."


class TranslationSession:
    """Owns the translation settings and drives per-page state changes.

    Collaborators are injected; the session never keeps a copy of a page and
    re-reads the store after every await.
    """

    def __init__(
        self,
        store: PageStore,
        translator: PageTranslator,
        context_provider: Optional[ContextProvider] = None,
        target_language: str = "English",
        timeout: float = TRANSLATION_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.translator = translator
        self.context_provider = context_provider
        self.target_language = target_language
        self.timeout = timeout
        self.series_context: Optional[SeriesContext] = None

    def context_string(self) -> Optional[str]:
        if self.series_context is None:
            return None
        return self.series_context.as_prompt()

    async def translate_page(self, page_id: str) -> bool:
        """Translate one page.

        Returns:
            True if a collaborator round trip happened, False for a no-op
            (unknown page, or a translation already in flight).
        """
        page = self.store.get(page_id)
        if page is None or page.status == "analyzing":
            return False

        self.store.update(page_id, status="analyzing")
        image_base64, mime_type = page.base64, page.mime_type

        try:
            result = await asyncio.wait_for(
                self.translator.translate(image_base64, mime_type, self.context_string(), self.target_language),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            LOGGER.error(f"Translation of {page.source_name} timed out after {self.timeout:.0f} seconds")
            self._finish(page_id, status="error", error=RETRY_MESSAGE)
            return True
        except Exception as e:
            LOGGER.error(f"Translation of {page.source_name} failed: {e}")
            self._finish(page_id, status="error", error=RETRY_MESSAGE)
            return True

        self._finish(page_id, status="complete", result=result)
        return True

    async def translate_current(self) -> bool:
        page = self.store.current
        if page is None:
            return False
        return await self.translate_page(page.id)

    def _finish(self, page_id: str, **changes) -> None:
        if self.store.get(page_id) is None:
            LOGGER.info(f"Page {page_id} was removed during translation, dropping result")
            return
        self.store.update(page_id, **changes)

    # --- Series context ---

    async def detect_context(self, page_id: Optional[str] = None) -> Optional[SeriesContext]:
        """Identify the series from a page and look up its context.

        Failures are logged and leave the current context untouched.
        """
        if self.context_provider is None:
            LOGGER.warning("No context provider configured")
            return None

        page = self.store.get(page_id) if page_id else self.store.current
        if page is None:
            return None

        try:
            title = await self.context_provider.identify_title(page.base64, page.mime_type)
            context = await self.context_provider.lookup(title)
        except ContextLookupError as e:
            LOGGER.error(f"Failed to detect context: {e}")
            return None

        self.series_context = context
        return context

    def set_manual_context(self, title: str = "", info: str = "") -> SeriesContext:
        self.series_context = SeriesContext(title=title, info=info)
        return self.series_context

    def clear_context(self) -> None:
        self.series_context = None
