"""Format detection and sequential ingestion of user-supplied files."""

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional

from .archive import extract_zip
from .image import add_image
from .kindle import extract_kindle
from .pdf import extract_pdf
from .store import PageStore
from src.utils.logger import logger as LOGGER


FormatKind = Literal["pdf", "zip", "kindle", "image"]

GENERIC_MEDIA_TYPES = {"", "application/octet-stream", "binary/octet-stream"}
ZIP_MEDIA_TYPES = {
    "application/epub+zip",
    "application/x-cbz",
    "application/zip",
    "application/x-zip-compressed",
    "application/vnd.comicbook+zip",
}
ZIP_EXTENSIONS = {".epub", ".cbz"}
KINDLE_EXTENSIONS = {".azw3", ".mobi", ".azw"}


@dataclass
class SourceFile:
    """A file submitted for ingestion."""
    name: str
    data: bytes
    media_type: str = ""

    @classmethod
    def from_path(cls, path: Path) -> "SourceFile":
        path = Path(path)
        media_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, data=path.read_bytes(), media_type=media_type or "")

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower()


@dataclass
class IngestReport:
    """Outcome of one ingestion request."""
    pages_added: int = 0
    files_processed: int = 0
    files_skipped: list[str] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)


def classify(source: SourceFile) -> Optional[FormatKind]:
    """Pick the extractor for a file from its declared type or extension."""
    media_type = (source.media_type or "").lower()
    ext = source.extension
    generic = media_type in GENERIC_MEDIA_TYPES

    if ext in KINDLE_EXTENSIONS:
        return "kindle"
    if media_type == "application/pdf" or (generic and ext == ".pdf"):
        return "pdf"
    if media_type in ZIP_MEDIA_TYPES or ext in ZIP_EXTENSIONS:
        return "zip"
    if media_type.startswith("image/"):
        return "image"
    if generic:
        guessed, _ = mimetypes.guess_type(source.name)
        if guessed and guessed.startswith("image/"):
            return "image"
    return None


class FormatDispatcher:
    """Routes files to extractors and enforces the page ceiling across a batch.

    Files are processed strictly one after another so the store size read
    before each file is meaningful.
    """

    def __init__(self, store: PageStore):
        self.store = store

    async def ingest_file(self, source: SourceFile) -> Optional[tuple[int, bool]]:
        """Extract one file into the store.

        Returns:
            (pages added, stopped at the ceiling), or None if the file type
            is not recognized
        """
        kind = classify(source)
        if kind is None:
            return None

        LOGGER.debug(f"Ingesting {source.name} as {kind}")
        if kind == "pdf":
            return await extract_pdf(source.data, source.name, self.store)
        if kind == "zip":
            return await extract_zip(source.data, source.name, self.store)
        if kind == "kindle":
            return await extract_kindle(source.data, source.name, self.store)
        return add_image(source.data, source.name, self.store, source.media_type), False

    async def ingest(self, sources: list[SourceFile]) -> IngestReport:
        """Ingest files in submission order.

        Nothing raised while extracting a file escapes; the file is logged and
        the next one is processed.
        """
        report = IngestReport()
        limit_notice = f"Maximum limit of {self.store.max_pages} pages reached."
        self.store.ingesting = True
        try:
            for source in sources:
                if self.store.is_full():
                    LOGGER.warning(f"{limit_notice} Skipping {source.name} and remaining files.")
                    if limit_notice not in report.notices:
                        report.notices.append(limit_notice)
                    break

                try:
                    outcome = await self.ingest_file(source)
                except Exception as e:
                    LOGGER.error(f"Failed to process {source.name}: {e}")
                    report.notices.append(f"Failed to process {source.name}.")
                    report.files_processed += 1
                    continue

                if outcome is None:
                    LOGGER.debug(f"Skipping unrecognized file {source.name}")
                    report.files_skipped.append(source.name)
                    continue

                added, truncated = outcome
                report.files_processed += 1
                if truncated and limit_notice not in report.notices:
                    report.notices.append(limit_notice)
                report.pages_added += added
                LOGGER.info(f"{source.name}: {added} pages")
        finally:
            self.store.ingesting = False

        return report
