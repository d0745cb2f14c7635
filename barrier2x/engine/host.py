"""
Capability interface between the adapter and the protocol engine.

The protocol engine implements the Barrier wire protocol (framing, handshake,
sequence numbers). It holds a reference to an `EngineHost` and calls its
transport hooks for I/O and its event callbacks for decoded input.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from barrier2x.common.types import ClipboardFormat


class EngineHost(Protocol):
    """Operations the adapter provides to the protocol engine."""

    # Transport hooks -----------------------------------------------------

    def connection_establish(self) -> bool:
        """Open the connection to the server; return success."""

    def data_send(self, data: bytes) -> bool:
        """Send all of `data`, blocking; return success."""

    def data_receive(self, max_length: int) -> Optional[bytes]:
        """
        Receive up to `max_length` bytes, blocking.

        Returns None on failure. Empty bytes means the connection is alive but
        still settling, which is not an error.
        """

    def thread_sleep(self, milliseconds: int) -> None:
        """Suspend the calling worker for `milliseconds`."""

    def time_get(self) -> int:
        """Return a cyclic 32-bit millisecond clock."""

    def trace_write(self, text: str) -> None:
        """Record a connection status message."""

    # Event callbacks -----------------------------------------------------

    def screenActive_changed(self, active: bool) -> None:
        """Screen gained or lost focus on the server."""

    def mouse_changed(
        self,
        x: int,
        y: int,
        wheel_x: int,
        wheel_y: int,
        left: bool,
        right: bool,
        middle: bool,
    ) -> None:
        """Mouse position, wheel position and button state."""

    def keyboard_changed(
        self, scan_code: int, modifiers: int, is_down: bool, is_repeat: bool
    ) -> None:
        """Key press, release or repeat."""

    def joystick_changed(
        self,
        joy_num: int,
        buttons: int,
        left_x: int,
        left_y: int,
        right_x: int,
        right_y: int,
    ) -> None:
        """Joystick stick and button state."""

    def clipboard_received(self, format: ClipboardFormat, data: bytes) -> None:
        """Clipboard content announced by the server."""


class ProtocolEngine(Protocol):
    """Operations the adapter calls on the protocol engine."""

    def update(self) -> None:
        """Run one iteration: connect if needed, receive, dispatch callbacks."""

    def clipboard_send(self, text: str) -> None:
        """Publish local clipboard text to the server."""


EngineFactory = Callable[[EngineHost, str, int, int], ProtocolEngine]
"""(host, client_name, screen_width, screen_height) -> ProtocolEngine"""
