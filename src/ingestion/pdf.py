"""Page rasterization for PDF documents."""

import io
from typing import Iterator

import fitz  # PyMuPDF
from PIL import Image

from .batching import emit_batches
from .page import ExtractOutcome, PageRecord
from .store import PageStore


RENDER_SCALE = 1.5
JPEG_QUALITY = 80


def render_page_jpeg(page: "fitz.Page", scale: float = RENDER_SCALE, quality: int = JPEG_QUALITY) -> bytes:
    """Rasterize a PDF page and encode it as JPEG."""
    pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
    img = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)

    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def iter_pdf_pages(data: bytes, file_name: str) -> Iterator[ExtractOutcome]:
    """Yield one outcome per page, rendering each page only when requested."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        yield ExtractOutcome.fatal(f"not a readable PDF: {e}")
        return

    with doc:
        if doc.page_count == 0:
            yield ExtractOutcome.fatal("document has no pages")
            return

        for page_number in range(1, doc.page_count + 1):
            try:
                jpeg = render_page_jpeg(doc[page_number - 1])
            except Exception as e:
                yield ExtractOutcome.skip(f"Error rendering PDF page {page_number}: {e}")
                continue

            yield ExtractOutcome.ok(
                PageRecord(
                    image_data=jpeg,
                    mime_type="image/jpeg",
                    source_name=f"{file_name} - Page {page_number}",
                )
            )


async def extract_pdf(data: bytes, file_name: str, store: PageStore) -> tuple[int, bool]:
    """Rasterize a PDF into the store, stopping at the page ceiling."""
    return await emit_batches(iter_pdf_pages(data, file_name), store, file_name)
