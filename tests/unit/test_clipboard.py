"""Unit tests for the clipboard bridge, watcher and pyperclip backend"""

from __future__ import annotations

from typing import Optional

import pyperclip
import pytest

from barrier2x.client.clipboard import ClipboardBridge, ClipboardWatcher, PyperclipClipboard
from barrier2x.common.types import ClipboardFormat
from barrier2x.input.backend import ClipboardError


class _FakeClipboard:
    """In-memory clipboard."""

    def __init__(self, text: Optional[str] = None) -> None:
        """Initialize fake clipboard."""
        self.text: Optional[str] = text
        self.writes: list[str] = []
        self.fail_read: bool = False
        self.fail_write: bool = False

    def text_read(self) -> Optional[str]:
        """Return stored text."""
        if self.fail_read:
            raise ClipboardError("no clipboard")
        return self.text

    def text_write(self, text: str) -> None:
        """Store text."""
        if self.fail_write:
            raise ClipboardError("no clipboard")
        self.writes.append(text)
        self.text = text


class _FakeEngine:
    """Records clipboard text sent to the server."""

    def __init__(self) -> None:
        """Initialize fake engine."""
        self.sent: list[str] = []

    def update(self) -> None:
        """Unused."""

    def clipboard_send(self, text: str) -> None:
        """Record published text."""
        self.sent.append(text)


class TestClipboardBridgeLocal:
    """Test publishing local clipboard changes"""

    def test_local_text_is_sent(self):
        """Local text goes to the attached engine"""
        engine = _FakeEngine()
        bridge = ClipboardBridge(_FakeClipboard("hello"))
        bridge.engine_attach(engine)

        assert bridge.localChange_handle() is True
        assert engine.sent == ["hello"]

    def test_empty_clipboard_is_noop(self):
        """Nothing is sent for an empty or absent clipboard"""
        engine = _FakeEngine()
        clipboard = _FakeClipboard(None)
        bridge = ClipboardBridge(clipboard)
        bridge.engine_attach(engine)

        assert bridge.localChange_handle() is False
        clipboard.text = ""
        assert bridge.localChange_handle() is False
        assert engine.sent == []

    def test_no_engine_is_noop(self):
        """Without an engine nothing is sent"""
        bridge = ClipboardBridge(_FakeClipboard("hello"))
        assert bridge.localChange_handle() is False

    def test_read_failure_is_logged(self, caplog):
        """Clipboard read errors are logged, not raised"""
        clipboard = _FakeClipboard("x")
        clipboard.fail_read = True
        bridge = ClipboardBridge(clipboard)
        bridge.engine_attach(_FakeEngine())

        assert bridge.localChange_handle() is False
        assert "Cannot read local clipboard" in caplog.text


class TestClipboardBridgeRemote:
    """Test applying server clipboard content"""

    def test_text_replaces_local_clipboard(self):
        """TEXT payloads are decoded and written once"""
        clipboard = _FakeClipboard()
        bridge = ClipboardBridge(clipboard)

        assert bridge.remoteClipboard_handle(ClipboardFormat.TEXT, "grüße".encode("utf-8"))
        assert clipboard.writes == ["grüße"]

    def test_invalid_utf8_is_replaced(self):
        """Undecodable bytes become replacement characters"""
        clipboard = _FakeClipboard()
        bridge = ClipboardBridge(clipboard)

        bridge.remoteClipboard_handle(ClipboardFormat.TEXT, b"ok\xff")
        assert clipboard.writes == ["ok�"]

    @pytest.mark.parametrize("fmt", [ClipboardFormat.BITMAP, ClipboardFormat.HTML])
    def test_other_formats_ignored(self, fmt):
        """Only TEXT is actionable"""
        clipboard = _FakeClipboard("keep")
        bridge = ClipboardBridge(clipboard)

        assert bridge.remoteClipboard_handle(fmt, b"<b>x</b>") is False
        assert clipboard.writes == []
        assert clipboard.text == "keep"

    def test_write_failure_is_logged(self, caplog):
        """A failed write is logged at error and does not raise"""
        clipboard = _FakeClipboard()
        clipboard.fail_write = True
        bridge = ClipboardBridge(clipboard)

        assert bridge.remoteClipboard_handle(ClipboardFormat.TEXT, b"x") is False
        assert "Failed to set local clipboard" in caplog.text


class TestClipboardEchoGuard:
    """Test that server-originated text is not sent back"""

    def test_remote_text_not_echoed(self):
        """The change caused by a remote write is not published"""
        engine = _FakeEngine()
        bridge = ClipboardBridge(_FakeClipboard())
        bridge.engine_attach(engine)

        bridge.remoteClipboard_handle(ClipboardFormat.TEXT, b"from server")
        assert bridge.localChange_handle() is False
        assert engine.sent == []

    def test_new_local_text_clears_marker(self):
        """After a genuine local change the same text can be sent again"""
        engine = _FakeEngine()
        clipboard = _FakeClipboard()
        bridge = ClipboardBridge(clipboard)
        bridge.engine_attach(engine)

        bridge.remoteClipboard_handle(ClipboardFormat.TEXT, b"shared")
        clipboard.text = "local edit"
        assert bridge.localChange_handle() is True
        clipboard.text = "shared"
        assert bridge.localChange_handle() is True
        assert engine.sent == ["local edit", "shared"]


class TestClipboardWatcher:
    """Test change polling"""

    def test_change_check_reports_changes_only(self):
        """The baseline text is not reported; new text is reported once"""
        clipboard = _FakeClipboard("before")
        watcher = ClipboardWatcher(clipboard, interval=60.0)
        calls: list[int] = []

        watcher.subscribe(lambda: calls.append(1))
        try:
            assert watcher.change_check() is False
            clipboard.text = "after"
            assert watcher.change_check() is True
            assert watcher.change_check() is False
        finally:
            watcher.unsubscribe()

        assert calls == [1]

    def test_unsubscribe_stops_notifications(self):
        """No callback fires after unsubscribe"""
        clipboard = _FakeClipboard("a")
        watcher = ClipboardWatcher(clipboard, interval=60.0)
        calls: list[int] = []
        watcher.subscribe(lambda: calls.append(1))
        watcher.unsubscribe()

        clipboard.text = "b"
        watcher.change_check()

        assert calls == []

    def test_read_errors_are_not_changes(self):
        """A failing poll is skipped"""
        clipboard = _FakeClipboard("a")
        watcher = ClipboardWatcher(clipboard, interval=60.0)
        watcher.subscribe(lambda: None)
        try:
            clipboard.fail_read = True
            assert watcher.change_check() is False
        finally:
            watcher.unsubscribe()


class TestPyperclipClipboard:
    """Test pyperclip error translation"""

    def test_read_and_write(self, monkeypatch):
        """Reads and writes go through pyperclip"""
        store: dict[str, str] = {"text": ""}
        monkeypatch.setattr(pyperclip, "paste", lambda: store["text"])
        monkeypatch.setattr(pyperclip, "copy", lambda text: store.update(text=text))
        clipboard = PyperclipClipboard()

        assert clipboard.text_read() is None
        clipboard.text_write("abc")
        assert clipboard.text_read() == "abc"

    def test_pyperclip_errors_become_clipboard_errors(self, monkeypatch):
        """PyperclipException is translated to ClipboardError"""

        def _fail(*_args):
            raise pyperclip.PyperclipException("no mechanism")

        monkeypatch.setattr(pyperclip, "paste", _fail)
        monkeypatch.setattr(pyperclip, "copy", _fail)
        clipboard = PyperclipClipboard()

        with pytest.raises(ClipboardError):
            clipboard.text_read()
        with pytest.raises(ClipboardError):
            clipboard.text_write("x")
