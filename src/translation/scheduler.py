"""Cooperative bulk translation of pending pages."""

import asyncio
from typing import Optional

from .session import TranslationSession
from src.utils.logger import logger as LOGGER


THROTTLE_SECONDS = 0.5
POLL_SECONDS = 1.0


class BulkTranslationScheduler:
    """Translates every pending page, one at a time, until none are left.

    The loop always takes the lowest-index pending page. When nothing is
    pending but the store is still ingesting, it waits and scans again. A stop
    request is honored between pages only; the page being translated always
    reaches ``complete`` or ``error`` first.
    """

    def __init__(
        self,
        session: TranslationSession,
        throttle: float = THROTTLE_SECONDS,
        poll_interval: float = POLL_SECONDS,
    ):
        self.session = session
        self.throttle = throttle
        self.poll_interval = poll_interval
        self._stop_requested = False
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def cancel(self) -> None:
        """Ask the loop to stop before the next page."""
        if self._running:
            LOGGER.info("Stopping bulk translation after the current page")
            self._stop_requested = True

    def _begin(self) -> bool:
        # a start while running is a stop request
        if self._running:
            self.cancel()
            return False
        self._running = True
        self._stop_requested = False
        return True

    def start(self) -> Optional[asyncio.Task]:
        """Start the loop as a task, or request a stop if it is already running."""
        if not self._begin():
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._loop())
        return self._task

    def toggle(self) -> Optional[asyncio.Task]:
        return self.start()

    async def run(self) -> int:
        """Run the loop in the current task.

        Returns:
            Number of pages sent to the translation collaborator, or 0 if
            the loop is already running elsewhere
        """
        if self._running:
            return 0
        self._begin()
        return await self._loop()

    async def _loop(self) -> int:
        store = self.session.store
        translated = 0

        try:
            while True:
                if self._stop_requested:
                    break

                page = store.first_pending()
                if page is None:
                    if store.ingesting:
                        await asyncio.sleep(self.poll_interval)
                        continue
                    break

                if await self.session.translate_page(page.id):
                    translated += 1
                await asyncio.sleep(self.throttle)
        finally:
            self._running = False
            self._stop_requested = False

        LOGGER.info(f"Bulk translation finished: {translated} pages processed")
        return translated
