"""Ingestion CLI commands."""

import asyncio
from pathlib import Path

from src.ingestion.dispatcher import FormatDispatcher, SourceFile
from src.ingestion.store import PageStore


def read_sources(paths: list[str]) -> list[SourceFile]:
    """Load files from disk, reporting the ones that cannot be read."""
    sources = []
    for raw_path in paths:
        path = Path(raw_path)
        try:
            sources.append(SourceFile.from_path(path))
        except OSError as e:
            print(f"Cannot read {path}: {e}")
    return sources


def cmd_ingest(args):
    """Extract pages from files and list them."""
    sources = read_sources(args.files)
    if not sources:
        print("No readable input files")
        return 1

    store = PageStore()
    report = asyncio.run(FormatDispatcher(store).ingest(sources))

    for index, page in enumerate(store):
        print(f"{index + 1:3d}. {page.source_name} ({page.mime_type}, {len(page.image_data)} bytes)")

    print(f"\n{report.pages_added} pages from {report.files_processed} files")
    for name in report.files_skipped:
        print(f"  Skipped unsupported file: {name}")
    for notice in report.notices:
        print(f"  {notice}")

    return 0


def setup_ingest_commands(subparsers):
    """Setup ingestion subcommands."""
    ingest_parser = subparsers.add_parser("ingest", help="Extract page images from files")
    ingest_parser.add_argument("files", nargs="+", help="PDF, EPUB, CBZ, AZW3/MOBI/AZW or image files")
    ingest_parser.set_defaults(func=cmd_ingest)
