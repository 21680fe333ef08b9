"""Page extraction from ZIP-based containers (CBZ, EPUB)."""

import io
import zipfile
from pathlib import PurePosixPath
from typing import Iterator

from natsort import natsorted, ns

from .batching import emit_batches
from .page import ExtractOutcome, PageRecord
from .store import PageStore


IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


def list_image_entries(archive: zipfile.ZipFile) -> list[zipfile.ZipInfo]:
    """Image entries of the archive in natural reading order.

    Numeric runs in entry names compare as integers and case is ignored, so
    ``page2.png`` sorts before ``page10.png``.
    """
    entries = [
        info
        for info in archive.infolist()
        if not info.is_dir() and PurePosixPath(info.filename).suffix.lower() in IMAGE_MIME_TYPES
    ]
    return natsorted(entries, key=lambda info: info.filename, alg=ns.IGNORECASE)


def iter_zip_images(data: bytes, file_name: str) -> Iterator[ExtractOutcome]:
    """Yield one outcome per image entry, reading entries one at a time."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, OSError) as e:
        yield ExtractOutcome.fatal(f"not a readable ZIP archive: {e}")
        return

    with archive:
        for info in list_image_entries(archive):
            try:
                image_data = archive.read(info)
            except Exception as e:
                yield ExtractOutcome.skip(f"Failed to load zip entry {info.filename}: {e}")
                continue

            suffix = PurePosixPath(info.filename).suffix.lower()
            yield ExtractOutcome.ok(
                PageRecord(
                    image_data=image_data,
                    mime_type=IMAGE_MIME_TYPES[suffix],
                    source_name=info.filename,
                )
            )


async def extract_zip(data: bytes, file_name: str, store: PageStore) -> tuple[int, bool]:
    """Extract image entries from a CBZ/EPUB file into the store."""
    return await emit_batches(iter_zip_images(data, file_name), store, file_name)
