"""Tests for single image pages."""

import base64
import io

from PIL import Image

from src.ingestion.image import add_image, decode_image, detect_image_mime
from src.ingestion.page import PageRecord
from src.ingestion.store import PageStore


def make_image(fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (40, 60), color=(10, 200, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


def test_declared_type_used():
    page = decode_image(make_image(), "cover.png", "image/png")

    assert page.mime_type == "image/png"
    assert page.source_name == "cover.png"
    assert page.status == "pending"


def test_type_sniffed_without_declaration():
    assert detect_image_mime(make_image("JPEG"), "upload.bin") == "image/jpeg"
    assert detect_image_mime(make_image("PNG"), "upload") == "image/png"


def test_non_image_rejected():
    assert decode_image(b"plain text", "notes.txt") is None


def test_preview_round_trip():
    """The data URL decodes back to the exact source bytes."""
    source = make_image("JPEG")
    page = decode_image(source, "page.jpg", "image/jpeg")

    header, encoded = page.data_url.split(";base64,")
    decoded = base64.b64decode(encoded)

    assert header == "data:image/jpeg"
    assert decoded == source
    assert base64.b64decode(page.base64) == source
    with Image.open(io.BytesIO(decoded)) as img:
        assert img.size == (40, 60)


def test_add_image_respects_single_slot():
    store = PageStore(max_pages=1)

    assert add_image(make_image(), "a.png", store, "image/png") == 1
    assert add_image(make_image(), "b.png", store, "image/png") == 0
    assert len(store) == 1


def test_page_ids_unique():
    ids = {PageRecord(image_data=b"x", mime_type="image/png", source_name="x").id for _ in range(200)}
    assert len(ids) == 200
