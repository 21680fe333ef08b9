"""Incremental batch emission of extracted pages into the page store."""

import asyncio
from typing import Iterator

from .page import ExtractOutcome, PageRecord
from .store import PageStore
from src.utils.logger import logger as LOGGER


BATCH_SIZE = 20
BATCH_YIELD_SECONDS = 0.05


async def emit_batches(
    outcomes: Iterator[ExtractOutcome],
    store: PageStore,
    source_name: str,
    batch_size: int = BATCH_SIZE,
) -> tuple[int, bool]:
    """Drain extraction outcomes into the store in batches.

    Outcomes are pulled lazily, so nothing past the page ceiling is decoded.
    A batch is flushed every ``batch_size`` pages or as soon as the store plus
    the pending batch reaches the ceiling, then control is yielded to the
    event loop. The store size is re-read on every iteration.

    Args:
        outcomes: Lazy iterator of per-entry extraction results
        store: Destination page store
        source_name: File name, for log messages
        batch_size: Pages per flush

    Returns:
        (pages added to the store, whether extraction stopped at the ceiling
        before the file was exhausted)
    """
    batch: list[PageRecord] = []
    added = 0
    exhausted = False

    try:
        while len(store) + len(batch) < store.max_pages:
            outcome = next(outcomes, None)
            if outcome is None:
                exhausted = True
                break

            if outcome.kind == "fatal":
                LOGGER.error(f"Cannot extract {source_name}: {outcome.reason}")
                exhausted = True
                break
            if outcome.kind == "skip":
                LOGGER.warning(f"{source_name}: {outcome.reason}")
            else:
                batch.append(outcome.page)

            if len(batch) >= batch_size or len(store) + len(batch) >= store.max_pages:
                added += store.extend(batch)
                batch = []
                await asyncio.sleep(BATCH_YIELD_SECONDS)
            else:
                await asyncio.sleep(0)
    finally:
        close = getattr(outcomes, "close", None)
        if close is not None:
            close()
        if batch:
            added += store.extend(batch)

    truncated = not exhausted
    if truncated:
        LOGGER.warning(f"{source_name}: stopped at the {store.max_pages} page limit")
    return added, truncated
