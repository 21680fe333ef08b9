"""Single image files as pages."""

import io
import mimetypes
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .page import PageRecord
from .store import PageStore


def detect_image_mime(data: bytes, file_name: str, declared_type: Optional[str] = None) -> Optional[str]:
    """Best-effort mime type: declared type, then Pillow, then the file name."""
    if declared_type and declared_type.startswith("image/"):
        return declared_type

    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
            if mime:
                return mime
    except (UnidentifiedImageError, OSError):
        pass

    guessed, _ = mimetypes.guess_type(file_name)
    if guessed and guessed.startswith("image/"):
        return guessed
    return None


def decode_image(data: bytes, file_name: str, declared_type: Optional[str] = None) -> Optional[PageRecord]:
    """Wrap one image file as a pending page, or None if it is not an image."""
    mime_type = detect_image_mime(data, file_name, declared_type)
    if mime_type is None:
        return None
    return PageRecord(image_data=data, mime_type=mime_type, source_name=file_name)


def add_image(data: bytes, file_name: str, store: PageStore, declared_type: Optional[str] = None) -> int:
    """Append a single image page if the store has a free slot."""
    if store.is_full():
        return 0
    page = decode_image(data, file_name, declared_type)
    if page is None:
        return 0
    return 1 if store.append(page) else 0
