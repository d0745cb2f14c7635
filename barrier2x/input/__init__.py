"""Backend abstraction layer for event delivery, key layout, and clipboard."""

from barrier2x.input.backend import Clipboard, ClipboardError, EventSink, KeyLayout

__all__ = [
    "Clipboard",
    "ClipboardError",
    "EventSink",
    "KeyLayout",
]
