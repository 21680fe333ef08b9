"""JSON export of translated pages."""

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from src.ingestion.page import SeriesContext
from src.ingestion.store import PageStore


def build_results(store: PageStore, target_language: str, series_context: Optional[SeriesContext] = None) -> dict:
    """Collect page states and results into a serializable dict."""
    pages = []
    for index, page in enumerate(store):
        pages.append(
            {
                "index": index,
                "id": page.id,
                "source_name": page.source_name,
                "mime_type": page.mime_type,
                "status": page.status,
                "error": page.error,
                "result": asdict(page.result) if page.result else None,
            }
        )

    return {
        "target_language": target_language,
        "series_context": asdict(series_context) if series_context else None,
        "page_count": len(pages),
        "pages": pages,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


def write_results(results: dict, output_path: Path) -> None:
    """Write results to a JSON file.

    Args:
        results: Dict from build_results
        output_path: Path to write JSON file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(results, f, indent=2, ensure_ascii=False)
