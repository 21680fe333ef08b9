"""Ordered, capped page collection shared by ingestion and translation."""

from typing import Literal, Optional

from .page import PageRecord, PageStatus
from src.utils.logger import logger as LOGGER


MAX_PAGES = 40

ALLOWED_TRANSITIONS: dict[PageStatus, set[PageStatus]] = {
    "pending": {"analyzing"},
    "analyzing": {"complete", "error"},
    "complete": {"analyzing"},
    "error": {"analyzing"},
}


class InvalidTransitionError(ValueError):
    """Raised when a page status change is not part of the lifecycle."""

    pass


class PageStore:
    """Single source of truth for extracted pages.

    All reads go straight to the underlying list, so a caller resuming after an
    ``await`` always sees the latest committed state. The ``ingesting`` flag is
    set by the dispatcher while files are being extracted and read by the bulk
    scheduler to decide whether more pending pages may still arrive.
    """

    def __init__(self, max_pages: int = MAX_PAGES):
        self.max_pages = max_pages
        self.ingesting = False
        self._pages: list[PageRecord] = []
        self._current_index = 0

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self):
        return iter(list(self._pages))

    @property
    def pages(self) -> tuple[PageRecord, ...]:
        return tuple(self._pages)

    @property
    def remaining(self) -> int:
        return max(0, self.max_pages - len(self._pages))

    def is_full(self) -> bool:
        return len(self._pages) >= self.max_pages

    @property
    def pending_count(self) -> int:
        return sum(1 for page in self._pages if page.status == "pending")

    # --- Insertion ---

    def append(self, page: PageRecord) -> bool:
        """Append one page if a slot is free."""
        return self.extend([page]) == 1

    def extend(self, batch: list[PageRecord]) -> int:
        """Append a batch, dropping whatever does not fit under the ceiling.

        Returns:
            Number of pages actually added
        """
        accepted = batch[: self.remaining]
        if len(accepted) < len(batch):
            LOGGER.debug(f"Dropped {len(batch) - len(accepted)} pages over the {self.max_pages} page limit")
        self._pages.extend(accepted)
        return len(accepted)

    # --- Lookup ---

    def index_of(self, page_id: str) -> Optional[int]:
        for index, page in enumerate(self._pages):
            if page.id == page_id:
                return index
        return None

    def get(self, page_id: str) -> Optional[PageRecord]:
        index = self.index_of(page_id)
        return None if index is None else self._pages[index]

    def first_pending(self) -> Optional[PageRecord]:
        """Lowest-index page still waiting for translation."""
        for page in self._pages:
            if page.status == "pending":
                return page
        return None

    # --- Mutation ---

    def update(self, page_id: str, **changes) -> PageRecord:
        """Merge-patch a page. Unspecified fields are left unchanged.

        Raises:
            KeyError: If no page has this id.
            InvalidTransitionError: If the status change is not allowed.
            AttributeError: If a field does not exist on PageRecord.
        """
        page = self.get(page_id)
        if page is None:
            raise KeyError(page_id)

        for name in changes:
            if not hasattr(page, name) or name == "id":
                raise AttributeError(f"PageRecord has no updatable field {name!r}")

        new_status = changes.get("status", page.status)
        if new_status != page.status:
            if new_status not in ALLOWED_TRANSITIONS[page.status]:
                raise InvalidTransitionError(f"Page {page_id}: {page.status} -> {new_status} is not allowed")
            # result only lives on complete pages, error only on failed ones
            if page.status == "complete":
                page.result = None
            if page.status == "error":
                page.error = None

        for name, value in changes.items():
            setattr(page, name, value)
        return page

    def remove(self, index: int) -> PageRecord:
        """Remove the page at ``index`` and keep the selection consistent."""
        if index < 0 or index >= len(self._pages):
            raise IndexError(f"Page index {index} out of range")

        is_current = index == self._current_index
        is_last = index == len(self._pages) - 1
        removed = self._pages.pop(index)

        if is_current:
            if is_last and index > 0:
                self._current_index = index - 1
        elif index < self._current_index:
            self._current_index -= 1
        return removed

    # --- Selection ---

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current(self) -> Optional[PageRecord]:
        if 0 <= self._current_index < len(self._pages):
            return self._pages[self._current_index]
        return None

    def select(self, index: int) -> None:
        if index < 0 or index >= len(self._pages):
            raise IndexError(f"Page index {index} out of range")
        self._current_index = index

    def navigate(self, direction: Literal["prev", "next"]) -> int:
        """Move the selection one page, clamped to the list bounds."""
        if direction == "prev":
            self._current_index = max(0, self._current_index - 1)
        else:
            self._current_index = min(max(len(self._pages) - 1, 0), self._current_index + 1)
        return self._current_index
