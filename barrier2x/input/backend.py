"""Backend protocols for event delivery, key layout, and clipboard access."""

from __future__ import annotations

from typing import Optional, Protocol

from barrier2x.common.types import LocalEvent, LocalModifier


class ClipboardError(Exception):
    """Raised when the local clipboard cannot be read or written."""


class EventSink(Protocol):
    """Receiver of translated local input events."""

    def event_deliver(self, event: LocalEvent) -> None:
        """
        Deliver one local input event.

        Args:
            event: Mouse, wheel, key or modifiers event.
        """


class KeyLayout(Protocol):
    """Resolver from local keycode and modifiers to typed text."""

    def layout_refresh(self) -> None:
        """Reload the keyboard layout from the host."""

    def text_get(self, keycode: int, modifiers: LocalModifier) -> bytes:
        """
        Resolve the text a key produces.

        Args:
            keycode: Local keycode.
            modifiers: Active local modifiers.

        Returns:
            UTF-8 bytes, empty when the key produces no text.
        """

    def lockModifiers_get(self) -> LocalModifier:
        """
        Return the lock modifiers currently active on the host.

        Returns:
            Combination of CAPS_LOCK, NUM_LOCK and SCROLL_LOCK.
        """


class Clipboard(Protocol):
    """Plain-text access to the local clipboard."""

    def text_read(self) -> Optional[str]:
        """
        Read the clipboard's plain-text payload.

        Returns:
            Text, or None when the clipboard holds no text.

        Raises:
            ClipboardError: If the clipboard cannot be read.
        """

    def text_write(self, text: str) -> None:
        """
        Replace the clipboard's plain-text payload in one write.

        Args:
            text: New clipboard text.

        Raises:
            ClipboardError: If the clipboard cannot be written.
        """
