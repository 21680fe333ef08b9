"""Translation CLI commands."""

import asyncio
import json
from pathlib import Path

from .ingest import read_sources
from src.ingestion.dispatcher import FormatDispatcher
from src.ingestion.page import ContextSource, SeriesContext
from src.ingestion.store import PageStore
from src.translation.client import LLMPageTranslator
from src.translation.context import LLMContextProvider
from src.translation.export import build_results, write_results
from src.translation.languages import LANGUAGES, resolve_language
from src.translation.scheduler import BulkTranslationScheduler
from src.translation.session import TranslationSession
from src.utils.config import load_config


def load_context_file(path: Path) -> SeriesContext:
    """Read a series context JSON file: {"title", "info", "sources"}."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    sources = [ContextSource(uri=s["uri"], title=s.get("title", s["uri"])) for s in data.get("sources", [])]
    return SeriesContext(title=data.get("title", ""), info=data.get("info", ""), sources=sources)


async def translate_files(sources, session: TranslationSession, scheduler: BulkTranslationScheduler, detect_context: bool):
    """Ingest and translate concurrently.

    Ingestion is scheduled first so the store is flagged as ingesting before
    the scheduler's first scan.
    """
    dispatcher = FormatDispatcher(session.store)
    ingest_task = asyncio.ensure_future(dispatcher.ingest(sources))
    # let the ingest task run up to its first suspension, which sets store.ingesting
    await asyncio.sleep(0)

    if detect_context:
        while len(session.store) == 0 and not ingest_task.done():
            await asyncio.sleep(0.05)
        if len(session.store) > 0:
            context = await session.detect_context(session.store.pages[0].id)
            if context:
                print(f"Series context: {context.title}")

    translated = await scheduler.run()
    report = await ingest_task
    return report, translated


def cmd_translate(args):
    """Ingest files and translate all pages."""
    config = load_config(Path(args.config) if args.config else None)
    if not config.api_key:
        print("Error: no API key configured (set MANGATL_API_KEY or api_key in the config file)")
        return 1

    target_language = resolve_language(args.lang or config.target_language)
    if target_language is None:
        print(f"Unknown target language: {args.lang}")
        return 1

    sources = read_sources(args.files)
    if not sources:
        print("No readable input files")
        return 1

    store = PageStore()
    session = TranslationSession(
        store,
        LLMPageTranslator(config),
        context_provider=LLMContextProvider(config),
        target_language=target_language,
        timeout=config.request_timeout,
    )
    if args.context_file:
        try:
            session.series_context = load_context_file(Path(args.context_file))
        except (OSError, ValueError, KeyError, TypeError) as e:
            print(f"Failed to read context file: {e}")
            return 1

    scheduler = BulkTranslationScheduler(session, throttle=config.throttle_delay, poll_interval=config.poll_interval)

    print(f"Translating to {target_language}...")
    try:
        report, translated = asyncio.run(translate_files(sources, session, scheduler, args.detect_context))
    except KeyboardInterrupt:
        print("Interrupted")
        return 1

    for notice in report.notices:
        print(f"  {notice}")

    failed = [page for page in store if page.status == "error"]
    print(f"✓ Translated {translated - len(failed)} of {len(store)} pages")
    for page in failed:
        print(f"  ✗ {page.source_name}: {page.error}")

    output_path = Path(args.output)
    write_results(build_results(store, target_language, session.series_context), output_path)
    print(f"  Results: {output_path}")

    return 0 if not failed else 1


def cmd_languages(args):
    """List supported target languages."""
    for code, name in LANGUAGES.items():
        print(f"  {code:6s} {name}")
    return 0


def setup_translate_commands(subparsers):
    """Setup translation subcommands."""
    translate_parser = subparsers.add_parser("translate", help="Ingest files and translate every page")
    translate_parser.add_argument("files", nargs="+", help="PDF, EPUB, CBZ, AZW3/MOBI/AZW or image files")
    translate_parser.add_argument("--lang", help="Target language code or name (default from config)")
    translate_parser.add_argument("--context-file", help="JSON file with series title, info and sources")
    translate_parser.add_argument("--detect-context", action="store_true", help="Identify the series from the first page")
    translate_parser.add_argument("--output", default="results.json", help="Where to write the results JSON")
    translate_parser.set_defaults(func=cmd_translate)

    languages_parser = subparsers.add_parser("languages", help="List supported target languages")
    languages_parser.set_defaults(func=cmd_languages)
