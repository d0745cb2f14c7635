"""
Clipboard bridge between the local desktop and the server.

Only plain text crosses the bridge. Local changes are detected by polling the
clipboard; text written on behalf of the server is remembered so that the
watcher's next change notification does not echo it back.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import pyperclip

from barrier2x.common.settings import settings
from barrier2x.common.types import ClipboardFormat, ClipboardPayload
from barrier2x.engine.host import ProtocolEngine
from barrier2x.input.backend import Clipboard, ClipboardError

logger = logging.getLogger(__name__)


class PyperclipClipboard:
    """Plain-text clipboard access through pyperclip."""

    def text_read(self) -> Optional[str]:
        """
        Read the clipboard text.

        Returns:
            Clipboard text, or None when the clipboard holds no text.

        Raises:
            ClipboardError: No clipboard mechanism is available.
        """
        try:
            text = pyperclip.paste()
        except pyperclip.PyperclipException as exc:
            raise ClipboardError(f"Clipboard read failed: {exc}") from exc
        return text or None

    def text_write(self, text: str) -> None:
        """
        Replace the clipboard text.

        Raises:
            ClipboardError: No clipboard mechanism is available.
        """
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            raise ClipboardError(f"Clipboard write failed: {exc}") from exc


class ClipboardWatcher:
    """Polls the local clipboard and notifies one subscriber on change."""

    def __init__(
        self,
        clipboard: Clipboard,
        interval: float = settings.CLIPBOARD_POLL_INTERVAL_SEC,
    ) -> None:
        self._clipboard: Clipboard = clipboard
        self._interval: float = interval
        self._callback: Optional[Callable[[], None]] = None
        self._last_text: Optional[str] = None
        self._stop_event: threading.Event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def subscribe(self, callback: Callable[[], None]) -> None:
        """
        Start notifying `callback` of clipboard changes.

        The text present at subscription time is taken as the baseline and is
        not reported.
        """
        self.unsubscribe()
        self._callback = callback
        self._last_text = self._text_read()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop_run, name="barrier2x-clipboard-watcher", daemon=True
        )
        self._thread.start()
        logger.debug("Clipboard watcher subscribed")

    def unsubscribe(self) -> None:
        """Stop notifications and wait for the polling thread."""
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._callback = None

    def change_check(self) -> bool:
        """
        Read the clipboard once and notify the subscriber if the text changed.

        Returns:
            `True` when a change was reported.
        """
        text: Optional[str] = self._text_read()
        if text is None or text == self._last_text:
            return False
        self._last_text = text
        callback = self._callback
        if callback is not None:
            callback()
        return True

    def _text_read(self) -> Optional[str]:
        try:
            return self._clipboard.text_read()
        except ClipboardError as exc:
            logger.debug("Clipboard poll failed: %s", exc)
            return None

    def _loop_run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.change_check()
            except Exception:
                logger.exception("Clipboard change handler failed")


class ClipboardBridge:
    """Moves clipboard text between the local clipboard and the engine."""

    def __init__(self, clipboard: Clipboard) -> None:
        """
        Initialize bridge.

        Args:
            clipboard: Local clipboard backend.
        """
        self._clipboard: Clipboard = clipboard
        self._lock: threading.Lock = threading.Lock()
        self._engine: Optional[ProtocolEngine] = None
        self._remote_text: Optional[str] = None

    def engine_attach(self, engine: Optional[ProtocolEngine]) -> None:
        """Set the engine local changes are published to; None detaches."""
        with self._lock:
            self._engine = engine

    def localChange_handle(self) -> bool:
        """
        Publish the local clipboard text to the server.

        Text identical to the last text received from the server is not sent
        back.

        Returns:
            `True` when text was sent.
        """
        try:
            text: Optional[str] = self._clipboard.text_read()
        except ClipboardError as exc:
            logger.warning("Cannot read local clipboard: %s", exc)
            return False
        if not text:
            return False

        with self._lock:
            engine = self._engine
            if self._remote_text is not None and text == self._remote_text:
                logger.debug("Clipboard change originated from server; not echoing")
                return False
            self._remote_text = None
        if engine is None:
            return False

        logger.debug("Sending %d characters of clipboard text", len(text))
        engine.clipboard_send(text)
        return True

    def remoteClipboard_handle(self, format: ClipboardFormat, data: bytes) -> bool:
        """
        Apply clipboard content received from the server.

        Args:
            format: Clipboard format identifier.
            data: Raw clipboard bytes.

        Returns:
            `True` when the local clipboard was replaced.
        """
        payload = ClipboardPayload(format=format, data=data)
        if not payload.isText():
            logger.debug("Ignoring clipboard format %s", format)
            return False

        text: str = payload.data.decode("utf-8", errors="replace")
        with self._lock:
            self._remote_text = text
        try:
            self._clipboard.text_write(text)
        except ClipboardError as exc:
            logger.error("Failed to set local clipboard: %s", exc)
            with self._lock:
                self._remote_text = None
            return False

        logger.debug("Local clipboard set from server (%d characters)", len(text))
        return True
