"""Page records and translation result structures."""

import base64
import uuid
from dataclasses import dataclass, field
from typing import Literal, Optional


PageStatus = Literal["pending", "analyzing", "complete", "error"]
OutcomeKind = Literal["ok", "skip", "fatal"]


@dataclass
class BoundingBox:
    """Bubble location, normalized to a 0-1000 frame."""
    ymin: float
    xmin: float
    ymax: float
    xmax: float


@dataclass
class TranslatedBubble:
    """A single speech bubble, caption or sound effect."""
    id: str
    original_text: str
    translated_text: str
    speaker: Optional[str] = None
    bounding_box: Optional[BoundingBox] = None


@dataclass
class AnalysisResult:
    """Structured translation of one page."""
    summary: str
    bubbles: list[TranslatedBubble] = field(default_factory=list)


@dataclass
class ContextSource:
    """Attribution for series context found through web search."""
    uri: str
    title: str


@dataclass
class SeriesContext:
    """Glossary and lore applied to every translation while present."""
    title: str = ""
    info: str = ""
    sources: list[ContextSource] = field(default_factory=list)

    def as_prompt(self) -> str:
        return f"Series Title: {self.title}\nKey Context & Terminology:\n{self.info}"


def new_page_id() -> str:
    """Return an opaque identifier for a freshly extracted page."""
    return uuid.uuid4().hex[:12]


@dataclass
class PageRecord:
    """One extracted page image plus its translation lifecycle state."""

    image_data: bytes
    mime_type: str
    source_name: str
    preview: Optional[bytes] = None
    id: str = field(default_factory=new_page_id)

    # Lifecycle
    status: PageStatus = "pending"
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    def __post_init__(self):
        if self.preview is None:
            self.preview = self.image_data

    @property
    def base64(self) -> str:
        """Clean base64 payload, as sent to the translation collaborator."""
        return base64.b64encode(self.image_data).decode("ascii")

    @property
    def data_url(self) -> str:
        """Display-ready data URL of the preview."""
        encoded = base64.b64encode(self.preview).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass
class ExtractOutcome:
    """Result of extracting one entry from a source file.

    ``ok`` carries a page, ``skip`` means the entry was dropped and extraction
    goes on, ``fatal`` means nothing more can be read from the file.
    """

    kind: OutcomeKind
    page: Optional[PageRecord] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, page: PageRecord) -> "ExtractOutcome":
        return cls(kind="ok", page=page)

    @classmethod
    def skip(cls, reason: str) -> "ExtractOutcome":
        return cls(kind="skip", reason=reason)

    @classmethod
    def fatal(cls, reason: str) -> "ExtractOutcome":
        return cls(kind="fatal", reason=reason)
