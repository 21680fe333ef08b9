"""Tests for the bulk translation scheduler."""

import asyncio

import pytest

from src.ingestion.page import AnalysisResult, PageRecord
from src.ingestion.store import PageStore
from src.translation.scheduler import BulkTranslationScheduler
from src.translation.session import TranslationSession


class RecordingTranslator:
    """Translator that records page order and can fail or block on demand."""

    def __init__(self, fail_on=(), block=False):
        self.order = []
        self.fail_on = set(fail_on)
        self.release = asyncio.Event()
        self.started = asyncio.Event()
        if not block:
            self.release.set()

    async def translate(self, image_base64, mime_type, context, target_language):
        self.order.append(image_base64)
        self.started.set()
        await self.release.wait()
        if image_base64 in self.fail_on:
            raise RuntimeError("model returned garbage")
        return AnalysisResult(summary="done")


def make_page(name: str) -> PageRecord:
    return PageRecord(image_data=name.encode(), mime_type="image/png", source_name=name)


def make_scheduler(store, translator):
    session = TranslationSession(store, translator)
    return BulkTranslationScheduler(session, throttle=0, poll_interval=0.01)


@pytest.mark.asyncio
async def test_translates_all_pending_in_index_order():
    store = PageStore()
    store.extend([make_page(f"p{i}") for i in range(4)])
    translator = RecordingTranslator()
    scheduler = make_scheduler(store, translator)

    translated = await scheduler.run()

    assert translated == 4
    assert [p.status for p in store.pages] == ["complete"] * 4
    assert translator.order == [p.base64 for p in store.pages]
    assert scheduler.running is False


@pytest.mark.asyncio
async def test_skips_non_pending_pages():
    store = PageStore()
    store.extend([make_page(f"p{i}") for i in range(3)])
    store.update(store.pages[1].id, status="analyzing")
    store.update(store.pages[1].id, status="complete", result=AnalysisResult(summary="old"))
    translator = RecordingTranslator()

    translated = await make_scheduler(store, translator).run()

    assert translated == 2
    assert store.pages[1].result.summary == "old"


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_batch():
    store = PageStore()
    store.extend([make_page(f"p{i}") for i in range(3)])
    translator = RecordingTranslator(fail_on={store.pages[1].base64})

    await make_scheduler(store, translator).run()

    assert [p.status for p in store.pages] == ["complete", "error", "complete"]


@pytest.mark.asyncio
async def test_cancel_finishes_current_page_only():
    store = PageStore()
    store.extend([make_page(f"p{i}") for i in range(3)])
    translator = RecordingTranslator(block=True)
    scheduler = make_scheduler(store, translator)

    task = scheduler.start()
    await translator.started.wait()
    assert store.pages[0].status == "analyzing"

    scheduler.cancel()
    translator.release.set()
    translated = await task

    assert translated == 1
    assert store.pages[0].status == "complete"
    assert [p.status for p in store.pages[1:]] == ["pending", "pending"]
    assert scheduler.running is False


@pytest.mark.asyncio
async def test_start_while_running_requests_stop():
    store = PageStore()
    store.extend([make_page(f"p{i}") for i in range(3)])
    translator = RecordingTranslator(block=True)
    scheduler = make_scheduler(store, translator)

    task = scheduler.start()
    await translator.started.wait()
    assert scheduler.running is True

    assert scheduler.start() is task
    assert scheduler.stop_requested is True

    translator.release.set()
    await task
    assert store.pending_count == 2


@pytest.mark.asyncio
async def test_waits_for_pages_still_being_ingested():
    store = PageStore()
    store.ingesting = True
    translator = RecordingTranslator()
    scheduler = make_scheduler(store, translator)

    task = scheduler.start()
    await asyncio.sleep(0.03)
    assert scheduler.running is True

    store.extend([make_page("late1"), make_page("late2")])
    await asyncio.sleep(0.03)
    store.extend([make_page("late3")])
    store.ingesting = False

    translated = await asyncio.wait_for(task, timeout=2)

    assert translated == 3
    assert [p.status for p in store.pages] == ["complete"] * 3


@pytest.mark.asyncio
async def test_stops_when_nothing_pending_and_not_ingesting():
    store = PageStore()
    translator = RecordingTranslator()

    assert await make_scheduler(store, translator).run() == 0
    assert translator.order == []


@pytest.mark.asyncio
async def test_can_restart_after_cancel():
    store = PageStore()
    store.extend([make_page(f"p{i}") for i in range(2)])
    translator = RecordingTranslator(block=True)
    scheduler = make_scheduler(store, translator)

    task = scheduler.start()
    await translator.started.wait()
    scheduler.cancel()
    translator.release.set()
    await task

    assert await scheduler.run() == 1
    assert store.pending_count == 0


@pytest.mark.asyncio
async def test_run_while_running_leaves_loop_alone():
    store = PageStore()
    store.extend([make_page(f"p{i}") for i in range(3)])
    translator = RecordingTranslator(block=True)
    scheduler = make_scheduler(store, translator)

    task = scheduler.start()
    await translator.started.wait()

    assert await scheduler.run() == 0
    assert scheduler.stop_requested is False

    translator.release.set()
    assert await task == 3
    assert store.pending_count == 0
