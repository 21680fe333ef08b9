"""Image extraction from Kindle (MOBI/AZW/AZW3) PalmDOC record tables."""

import struct
from typing import Iterator, Optional

from .batching import emit_batches
from .page import ExtractOutcome, PageRecord
from .store import PageStore


MIN_BUFFER_LENGTH = 80
RECORD_COUNT_OFFSET = 76
RECORD_TABLE_OFFSET = 78
RECORD_ENTRY_SIZE = 8
MIN_IMAGE_RECORD_SIZE = 2048

JPEG_SIGNATURE = b"\xff\xd8"
PNG_SIGNATURE = b"\x89PNG"


def read_record_offsets(data: bytes) -> list[int]:
    """Read record start offsets from the PalmDOC header.

    A table that runs past the end of the buffer is truncated to the entries
    that fit, and offsets pointing outside the buffer are dropped.

    Returns:
        Sorted, de-duplicated record boundaries ending with len(data),
        or an empty list if the buffer is too short to hold a header.
    """
    if len(data) < MIN_BUFFER_LENGTH:
        return []

    (num_records,) = struct.unpack_from(">H", data, RECORD_COUNT_OFFSET)
    fits = (len(data) - RECORD_TABLE_OFFSET) // RECORD_ENTRY_SIZE
    num_records = min(num_records, fits)

    offsets = set()
    for i in range(num_records):
        (offset,) = struct.unpack_from(">I", data, RECORD_TABLE_OFFSET + i * RECORD_ENTRY_SIZE)
        if offset < len(data):
            offsets.add(offset)

    offsets.add(len(data))
    return sorted(offsets)


def sniff_image_type(record: bytes) -> Optional[tuple[str, str]]:
    """Return (mime type, extension) for JPEG or PNG records."""
    if record.startswith(JPEG_SIGNATURE):
        return "image/jpeg", "jpg"
    if record.startswith(PNG_SIGNATURE):
        return "image/png", "png"
    return None


def iter_kindle_images(data: bytes, file_name: str) -> Iterator[ExtractOutcome]:
    """Yield one outcome per image record, in record scan order.

    Non-image and undersized records are passed over silently; they are the
    text, index and thumbnail records every Kindle file carries.
    """
    offsets = read_record_offsets(data)
    images_found = 0

    for start, end in zip(offsets, offsets[1:]):
        if end - start <= MIN_IMAGE_RECORD_SIZE:
            continue

        record = data[start:end]
        image_type = sniff_image_type(record)
        if image_type is None:
            continue

        mime_type, ext = image_type
        images_found += 1
        yield ExtractOutcome.ok(
            PageRecord(
                image_data=bytes(record),
                mime_type=mime_type,
                source_name=f"{file_name} - Img {images_found}.{ext}",
            )
        )


async def extract_kindle(data: bytes, file_name: str, store: PageStore) -> tuple[int, bool]:
    """Extract embedded images from a Kindle file into the store."""
    return await emit_batches(iter_kindle_images(data, file_name), store, file_name)
