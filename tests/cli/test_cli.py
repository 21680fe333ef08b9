"""Tests for the command line interface."""

import base64
import io
import json
import tempfile
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from PIL import Image

from src.cli.main import main
from src.ingestion.page import AnalysisResult, TranslatedBubble


@pytest.fixture
def workdir(monkeypatch):
    monkeypatch.delenv("MANGATL_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    with tempfile.TemporaryDirectory() as path:
        yield Path(path)


def write_png(path: Path) -> Path:
    buffer = io.BytesIO()
    Image.new("RGB", (20, 30), color=(0, 0, 255)).save(buffer, format="PNG")
    path.write_bytes(buffer.getvalue())
    return path


def write_fast_config(path: Path) -> Path:
    path.write_text(json.dumps({"throttle_delay": 0, "poll_interval": 0.01}))
    return path


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_languages(capsys):
    assert main(["languages"]) == 0
    out = capsys.readouterr().out
    assert "pt-br" in out
    assert "Portuguese (Brazil)" in out


def test_ingest_lists_pages(workdir, capsys):
    first = write_png(workdir / "001.png")
    second = write_png(workdir / "002.png")

    assert main(["ingest", str(first), str(second), str(workdir / "missing.png")]) == 0

    out = capsys.readouterr().out
    assert "001.png (image/png" in out
    assert "Cannot read" in out
    assert "2 pages from 2 files" in out


def test_ingest_without_readable_files(workdir, capsys):
    assert main(["ingest", str(workdir / "missing.png")]) == 1


def test_translate_requires_api_key(workdir, capsys):
    config = write_fast_config(workdir / "config.json")
    page = write_png(workdir / "001.png")

    assert main(["--config", str(config), "translate", str(page)]) == 1
    assert "no API key" in capsys.readouterr().out


def test_translate_unknown_language(workdir, monkeypatch, capsys):
    monkeypatch.setenv("MANGATL_API_KEY", "test-key")
    config = write_fast_config(workdir / "config.json")
    page = write_png(workdir / "001.png")

    assert main(["--config", str(config), "translate", str(page), "--lang", "klingon"]) == 1
    assert "Unknown target language" in capsys.readouterr().out


def test_translate_writes_results(workdir, monkeypatch, capsys):
    monkeypatch.setenv("MANGATL_API_KEY", "test-key")
    config = write_fast_config(workdir / "config.json")
    pages = [write_png(workdir / "001.png"), write_png(workdir / "002.png")]
    output = workdir / "results.json"

    translator = MagicMock()
    translator.translate = AsyncMock(
        return_value=AnalysisResult(
            summary="Quiet scene.",
            bubbles=[TranslatedBubble(id="b1", original_text="...", translated_text="...")],
        )
    )

    with patch("src.cli.commands.translate.LLMPageTranslator", return_value=translator), patch(
        "src.cli.commands.translate.LLMContextProvider"
    ):
        code = main(
            ["--config", str(config), "translate", *map(str, pages), "--lang", "de", "--output", str(output)]
        )

    assert code == 0
    assert translator.translate.await_count == 2
    assert translator.translate.call_args.args[3] == "German"
    results = json.loads(output.read_text(encoding="utf-8"))
    assert [p["status"] for p in results["pages"]] == ["complete", "complete"]
    assert "Translated 2 of 2 pages" in capsys.readouterr().out


def test_translate_reports_failures(workdir, monkeypatch, capsys):
    monkeypatch.setenv("MANGATL_API_KEY", "test-key")
    config = write_fast_config(workdir / "config.json")
    page = write_png(workdir / "001.png")
    output = workdir / "results.json"

    translator = MagicMock()
    translator.translate = AsyncMock(side_effect=RuntimeError("quota exceeded"))

    with patch("src.cli.commands.translate.LLMPageTranslator", return_value=translator), patch(
        "src.cli.commands.translate.LLMContextProvider"
    ):
        code = main(["--config", str(config), "translate", str(page), "--output", str(output)])

    assert code == 1
    out = capsys.readouterr().out
    assert "001.png: Translation failed. Click to retry." in out
    assert json.loads(output.read_text())["pages"][0]["status"] == "error"


def test_translate_rejects_non_object_context_file(workdir, monkeypatch, capsys):
    monkeypatch.setenv("MANGATL_API_KEY", "test-key")
    config = write_fast_config(workdir / "config.json")
    page = write_png(workdir / "001.png")
    context_file = workdir / "context.json"
    context_file.write_text(json.dumps(["Blue Harbor", "Kenji"]))

    with patch("src.cli.commands.translate.LLMPageTranslator"), patch("src.cli.commands.translate.LLMContextProvider"):
        code = main(["--config", str(config), "translate", str(page), "--context-file", str(context_file)])

    assert code == 1
    assert "Failed to read context file" in capsys.readouterr().out


def test_chat_single_message(workdir, monkeypatch, capsys):
    monkeypatch.setenv("MANGATL_API_KEY", "test-key")

    async def reply():
        for text in ("Read ", "Blue Harbor."):
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])

    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=reply())

    with patch("src.translation.assistant.create_async_client", return_value=client):
        code = main(["--config", str(workdir / "none.json"), "chat", "-m", "Any sea manga?"])

    assert code == 0
    assert "Read Blue Harbor." in capsys.readouterr().out
    assert client.chat.completions.create.call_args.kwargs["messages"][-1]["content"] == "Any sea manga?"


def test_chat_requires_api_key(workdir, capsys):
    assert main(["--config", str(workdir / "none.json"), "chat", "-m", "hi"]) == 1


def test_generate_saves_image(workdir, monkeypatch, capsys):
    monkeypatch.setenv("MANGATL_API_KEY", "test-key")
    encoded = base64.b64encode(b"\x89PNG image bytes").decode("ascii")
    client = MagicMock()
    client.images.generate = AsyncMock(return_value=SimpleNamespace(data=[SimpleNamespace(b64_json=encoded)]))
    output = workdir / "out" / "cat.png"

    with patch("src.translation.assistant.create_async_client", return_value=client):
        code = main(
            ["--config", str(workdir / "none.json"), "generate", "A samurai cat", "--size", "4K", "--output", str(output)]
        )

    assert code == 0
    assert output.read_bytes() == b"\x89PNG image bytes"
    assert client.images.generate.call_args.kwargs["size"] == "4096x4096"
    assert "Saved image/png image" in capsys.readouterr().out


def test_generate_reports_failure(workdir, monkeypatch, capsys):
    monkeypatch.setenv("MANGATL_API_KEY", "test-key")
    client = MagicMock()
    client.images.generate = AsyncMock(side_effect=RuntimeError("Requested entity was not found."))

    with patch("src.translation.assistant.create_async_client", return_value=client):
        code = main(["--config", str(workdir / "none.json"), "generate", "A samurai cat"])

    assert code == 1
    assert "select your key again" in capsys.readouterr().out
