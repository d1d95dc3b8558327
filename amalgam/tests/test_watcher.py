"""Tests for the clipboard watcher and the system clipboard reader."""

import base64
from io import BytesIO

import pytest
import pytest_asyncio
import pyperclip
from PIL import Image, ImageGrab

from amalgam.daemon.bus import EventBus
from amalgam.daemon.history import HistoryStore
from amalgam.daemon.models import ClipboardKind
from amalgam.daemon.providers import (
    SystemClipboardReader,
    classify_paths,
    encode_image,
    interpret_clipboard,
)
from amalgam.daemon.watcher import ClipboardWatcher


class ScriptedReader:
    """Returns queued clipboard states, repeating the last one."""

    def __init__(self, *states):
        self.states = list(states)

    def read(self):
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0] if self.states else None


class BrokenReader:
    def read(self):
        raise RuntimeError("clipboard unavailable")


@pytest_asyncio.fixture
async def bus():
    bus = EventBus()
    await bus.start()
    yield bus
    await bus.stop()


@pytest.mark.asyncio
async def test_baseline_is_not_reported(bus):
    events = []
    bus.subscribe("clipboard.update", events.append)
    reader = ScriptedReader((ClipboardKind.TEXT, "already there"))
    watcher = ClipboardWatcher(reader, bus, poll_interval=0.01)

    await watcher.start()
    assert await watcher.poll_once() is False
    await watcher.stop()
    await bus.drain()

    assert events == []


@pytest.mark.asyncio
async def test_changes_are_emitted_once(bus):
    events = []
    bus.subscribe("clipboard.update", events.append)
    reader = ScriptedReader(
        (ClipboardKind.TEXT, "a"),
        (ClipboardKind.TEXT, "a"),
        (ClipboardKind.TEXT, "b"),
        (ClipboardKind.FILE_REFERENCE, "/tmp/x"),
    )
    watcher = ClipboardWatcher(reader, bus, emit_initial=True)

    results = [await watcher.poll_once() for _ in range(5)]
    await bus.drain()

    assert results == [True, False, True, True, False]
    assert [(e.data["kind"], e.data["content"]) for e in events] == [
        ("text", "a"), ("text", "b"), ("file-link", "/tmp/x")
    ]
    assert watcher.events_emitted == 3


@pytest.mark.asyncio
async def test_reader_errors_are_survived(bus):
    watcher = ClipboardWatcher(BrokenReader(), bus, emit_initial=True)
    assert await watcher.poll_once() is False


@pytest.mark.asyncio
async def test_start_and_stop(bus):
    watcher = ClipboardWatcher(ScriptedReader(None), bus, poll_interval=0.01)
    await watcher.start()
    assert watcher.running
    await watcher.stop()
    assert not watcher.running


def test_classify_paths(tmp_path):
    folder = tmp_path / "photos"
    folder.mkdir()
    file = tmp_path / "notes.txt"
    file.write_text("hi")

    assert classify_paths([str(folder)]) is ClipboardKind.FOLDER
    assert classify_paths([str(file)]) is ClipboardKind.FILE_REFERENCE
    assert classify_paths([str(folder), str(file)]) is ClipboardKind.FILE_REFERENCE
    assert classify_paths([str(tmp_path / "gone")]) is ClipboardKind.FILE_REFERENCE


def test_file_drop_wins_over_text(tmp_path):
    folder = tmp_path / "music"
    folder.mkdir()

    assert interpret_clipboard([str(folder)], "music") == (ClipboardKind.FOLDER, str(folder))
    assert interpret_clipboard(["/a.txt", "/b.txt"], "ignored") == (
        ClipboardKind.FILE_REFERENCE, "/a.txt\n/b.txt"
    )


def test_text_wins_over_image():
    image = Image.new("RGB", (2, 2), "red")
    assert interpret_clipboard(image, "caption") == (ClipboardKind.TEXT, "caption")


def test_image_becomes_png_data_uri():
    image = Image.new("RGBA", (3, 2), (0, 128, 255, 255))

    kind, content = interpret_clipboard(image, "")

    assert kind is ClipboardKind.IMAGE
    assert content.startswith("data:image/png;base64,")
    decoded = Image.open(BytesIO(base64.b64decode(content.split(",", 1)[1])))
    assert decoded.format == "PNG"
    assert decoded.size == (3, 2)
    assert content == encode_image(image)


def test_nothing_on_clipboard():
    assert interpret_clipboard(None, "") is None
    assert interpret_clipboard([], None) is None


def test_system_reader_combines_pillow_and_pyperclip(monkeypatch, tmp_path):
    file = tmp_path / "report.pdf"
    file.write_text("x")
    grabbed = [[str(file)], None, Image.new("L", (1, 1))]
    monkeypatch.setattr(ImageGrab, "grabclipboard", lambda: grabbed.pop(0))
    monkeypatch.setattr(pyperclip, "paste", lambda: "")

    reader = SystemClipboardReader()

    assert reader.read() == (ClipboardKind.FILE_REFERENCE, str(file))
    assert reader.read() is None
    assert reader.read()[0] is ClipboardKind.IMAGE


def test_system_reader_falls_back_to_text_without_image_support(monkeypatch):
    def unsupported():
        raise NotImplementedError("no clipboard image support")

    monkeypatch.setattr(ImageGrab, "grabclipboard", unsupported)
    monkeypatch.setattr(pyperclip, "paste", lambda: "plain text")

    assert SystemClipboardReader().read() == (ClipboardKind.TEXT, "plain text")


@pytest.mark.asyncio
async def test_images_and_file_drops_reach_history(bus, tmp_path):
    folder = tmp_path / "shared"
    folder.mkdir()
    image = Image.new("RGB", (4, 4), "green")
    reader = ScriptedReader(
        interpret_clipboard(image, None),
        interpret_clipboard([str(folder)], None),
        interpret_clipboard(["/x.txt", "/y.txt"], None),
    )
    store = HistoryStore()
    bus.subscribe("clipboard.update", store.on_clipboard_event)
    watcher = ClipboardWatcher(reader, bus, emit_initial=True)

    for _ in range(3):
        await watcher.poll_once()
    await bus.drain()

    kinds = [e.kind for e in store.snapshot()]
    assert kinds == [ClipboardKind.FILE_REFERENCE, ClipboardKind.FOLDER, ClipboardKind.IMAGE]
    assert store.snapshot()[0].paths == ("/x.txt", "/y.txt")
    assert store.snapshot()[1].paths == (str(folder),)
