"""
Translate protocol engine callbacks into local input events.

The engine reports absolute mouse state (position, wheel position, button
flags) and raw key transitions. `EventTranslator` keeps the previous state per
instance and emits only the transitions: button down/up with click counting,
moves, wheel deltas, modifier changes and key events with decoded text.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from barrier2x.client.config_store import ConfigStore
from barrier2x.common.config import Configuration
from barrier2x.common.settings import settings
from barrier2x.common.types import (
    EventType,
    KeyEvent,
    LocalEvent,
    LocalModifier,
    ModifiersEvent,
    MouseButton,
    MouseEvent,
    NormalizedPoint,
    RemoteModifier,
    Screen,
    WheelEvent,
)
from barrier2x.input.backend import EventSink, KeyLayout
from barrier2x.keymap.mapper import KeycodeMapper

logger = logging.getLogger(__name__)

MODIFIER_TABLE: tuple[tuple[RemoteModifier, LocalModifier], ...] = (
    (RemoteModifier.SHIFT, LocalModifier.SHIFT | LocalModifier.LEFT_SHIFT),
    (RemoteModifier.CTRL, LocalModifier.CONTROL | LocalModifier.LEFT_CONTROL),
    (RemoteModifier.ALT, LocalModifier.COMMAND | LocalModifier.LEFT_COMMAND),
    (RemoteModifier.META, LocalModifier.MENU),
    (RemoteModifier.WIN, LocalModifier.OPTION | LocalModifier.LEFT_OPTION),
    (RemoteModifier.ALT_GR, LocalModifier.RIGHT_OPTION | LocalModifier.OPTION),
    (RemoteModifier.CAPS_LOCK, LocalModifier.CAPS_LOCK),
    (RemoteModifier.NUM_LOCK, LocalModifier.NUM_LOCK),
    (RemoteModifier.SCROLL_LOCK, LocalModifier.SCROLL_LOCK),
)


def modifiers_translate(remote: int) -> LocalModifier:
    """
    Translate remote modifier flags into local modifier flags.

    Args:
        remote: Server modifier bitmask.

    Returns:
        Local modifier mask.
    """
    local: LocalModifier = LocalModifier.NONE
    for remote_flag, local_flags in MODIFIER_TABLE:
        if remote & remote_flag:
            local |= local_flags
    return local


@dataclass
class MouseState:
    """Last mouse state reported by the server."""

    x: int = 0
    y: int = 0
    buttons: int = 0
    wheel_x: int = 0
    wheel_y: int = 0
    last_pressed_buttons: int = 0
    last_press_time: float = 0.0
    clicks: int = 0


@dataclass
class KeyState:
    """Modifier mask, key-down bitmap and repeat counter."""

    modifiers: LocalModifier = LocalModifier.NONE
    states: bytearray = field(default_factory=lambda: bytearray(settings.KEY_STATE_BYTES))
    repeat_count: int = 1

    def key_set(self, keycode: int, is_down: bool) -> None:
        """Record the down/up status of a keycode in the bitmap."""
        if not 0 < keycode < settings.KEY_STATE_BYTES * 8:
            return
        bit: int = 1 << (7 - (keycode & 0x7))
        if is_down:
            self.states[keycode >> 3] |= bit
        else:
            self.states[keycode >> 3] &= ~bit & 0xFF

    def key_isDown(self, keycode: int) -> bool:
        """Check the bitmap for a keycode."""
        if not 0 < keycode < settings.KEY_STATE_BYTES * 8:
            return False
        return bool(self.states[keycode >> 3] & (1 << (7 - (keycode & 0x7))))

    def snapshot(self) -> bytes:
        """Immutable copy of the bitmap."""
        return bytes(self.states)


class EventTranslator:
    """Turn raw mouse and keyboard callbacks into local events."""

    def __init__(
        self,
        config_store: ConfigStore,
        sink: EventSink,
        layout: KeyLayout,
        mapper: Optional[KeycodeMapper] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize translator.

        Args:
            config_store:
                Source of screen size and remote keymap variant.
            sink:
                Receiver of emitted local events.
            layout:
                Keycode-to-text resolver.
            mapper:
                Scan code mapper; defaults to the built-in tables.
            clock:
                Monotonic time source in seconds.
        """
        self._config_store: ConfigStore = config_store
        self._sink: EventSink = sink
        self._layout: KeyLayout = layout
        self._mapper: KeycodeMapper = mapper or KeycodeMapper()
        self._clock: Callable[[], float] = clock
        self._keymap_lock: threading.Lock = threading.Lock()
        self.mouse: MouseState = MouseState()
        self.keys: KeyState = KeyState()

    # ------------------------------------------------------------------
    # Mouse
    # ------------------------------------------------------------------

    def mouse_handle(
        self,
        x: int,
        y: int,
        wheel_x: int,
        wheel_y: int,
        left: bool,
        right: bool,
        middle: bool,
    ) -> list[LocalEvent]:
        """
        Translate one mouse callback.

        Args:
            x: Absolute X position in pixels.
            y: Absolute Y position in pixels.
            wheel_x: Horizontal wheel position.
            wheel_y: Vertical wheel position.
            left: Left button pressed.
            right: Right button pressed.
            middle: Middle button pressed.

        Returns:
            Events emitted, in delivery order.
        """
        config: Configuration = self._config_store.snapshot
        now: float = self._clock()
        point: NormalizedPoint = Screen(config.screen_width, config.screen_height).normalize(x, y)
        buttons: int = self.buttonMask_build(left, right, middle)
        state: MouseState = self.mouse
        events: list[LocalEvent] = []

        if buttons != state.buttons:
            events.append(self.buttonEvent_build(buttons, point, now))
            state.buttons = buttons

        if x != state.x or y != state.y:
            events.append(
                MouseEvent(
                    event_type=EventType.MOUSE_MOVED,
                    when=now,
                    buttons=buttons,
                    point=point,
                )
            )
            state.x = x
            state.y = y

        if wheel_x != 0 or wheel_y != 0:
            events.append(
                WheelEvent(
                    when=now,
                    delta_x=(state.wheel_x - wheel_x) / settings.WHEEL_NOTCH,
                    delta_y=(state.wheel_y - wheel_y) / settings.WHEEL_NOTCH,
                )
            )
            state.wheel_x = wheel_x
            state.wheel_y = wheel_y

        self.events_deliver(events)
        return events

    @staticmethod
    def buttonMask_build(left: bool, right: bool, middle: bool) -> int:
        """
        Pack button flags into a mask.

        Returns:
            Mask with LEFT=1, RIGHT=2, MIDDLE=4.
        """
        mask: int = 0
        if left:
            mask |= MouseButton.LEFT
        if right:
            mask |= MouseButton.RIGHT
        if middle:
            mask |= MouseButton.MIDDLE
        return mask

    def buttonEvent_build(self, buttons: int, point: NormalizedPoint, now: float) -> MouseEvent:
        """
        Build the press/release event for a button mask change.

        Updates the click counter: a press of the same mask inside the
        double-click window increments it, any other press resets it to 1, and
        a release resets it to 1.

        Args:
            buttons: New button mask.
            point: Normalized pointer position.
            now: Event time in seconds.

        Returns:
            MOUSE_DOWN when any button is held, MOUSE_UP otherwise.
        """
        state: MouseState = self.mouse
        if buttons == 0:
            state.clicks = 1
            return MouseEvent(event_type=EventType.MOUSE_UP, when=now, buttons=buttons, point=point)

        within_window: bool = (now - state.last_press_time) < settings.DOUBLE_CLICK_WINDOW_SEC
        if buttons == state.last_pressed_buttons and within_window:
            state.clicks += 1
        else:
            state.clicks = 1
        state.last_press_time = now
        state.last_pressed_buttons = buttons
        return MouseEvent(
            event_type=EventType.MOUSE_DOWN,
            when=now,
            buttons=buttons,
            point=point,
            clicks=state.clicks,
        )

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def keyboard_handle(
        self, scan_code: int, remote_modifiers: int, is_down: bool, is_repeat: bool
    ) -> list[LocalEvent]:
        """
        Translate one keyboard callback.

        Args:
            scan_code: Remote scan code; 0 reports modifiers only.
            remote_modifiers: Server modifier bitmask.
            is_down: Key pressed (True) or released (False).
            is_repeat: Auto-repeat of a held key.

        Returns:
            Events emitted, in delivery order.
        """
        with self._keymap_lock:
            events: list[LocalEvent] = self._keyboard_translate(
                scan_code, remote_modifiers, is_down, is_repeat
            )
        self.events_deliver(events)
        return events

    def _keyboard_translate(
        self, scan_code: int, remote_modifiers: int, is_down: bool, is_repeat: bool
    ) -> list[LocalEvent]:
        config: Configuration = self._config_store.snapshot
        now: float = self._clock()
        keys: KeyState = self.keys
        events: list[LocalEvent] = []

        keycode: int = self._mapper.keycode_map(scan_code, config.server_keymap) if scan_code else 0
        keys.key_set(keycode, is_down)

        modifiers: LocalModifier = modifiers_translate(remote_modifiers)
        if not is_repeat and modifiers != keys.modifiers:
            if is_down:
                modifiers |= keys.modifiers
            else:
                modifiers &= ~keys.modifiers
            logger.debug("modifiers changed: 0x%04x => 0x%04x", keys.modifiers, modifiers)
            events.append(
                ModifiersEvent(
                    when=now,
                    old_modifiers=keys.modifiers,
                    modifiers=modifiers,
                    states=keys.snapshot(),
                )
            )
            keys.modifiers = modifiers

        if scan_code == 0:
            return events

        text: bytes = self._layout.text_get(keycode, keys.modifiers) if keycode else b""
        raw_text: bytes = self._layout.text_get(keycode, LocalModifier.NONE) if keycode else b""

        if text:
            event_type = EventType.KEY_DOWN if is_down else EventType.KEY_UP
            if not raw_text:
                raw_text = text
            if is_down and is_repeat:
                keys.repeat_count += 1
            else:
                keys.repeat_count = 1
            repeat: Optional[int] = keys.repeat_count
        else:
            event_type = EventType.UNMAPPED_KEY_DOWN if is_down else EventType.UNMAPPED_KEY_UP
            repeat = None

        events.append(
            KeyEvent(
                event_type=event_type,
                when=now,
                keycode=keycode,
                scan_code=scan_code,
                modifiers=keys.modifiers,
                states=keys.snapshot(),
                text=text,
                raw_char=raw_text[0] & 0x7F if raw_text else None,
                repeat=repeat,
            )
        )
        return events

    def keymap_reload(self) -> None:
        """
        Refresh the key layout and reset modifiers to the host's lock state.

        Runs under the keymap lock so no keyboard callback observes a half
        refreshed layout.
        """
        with self._keymap_lock:
            self._layout.layout_refresh()
            self.keys.modifiers = self._layout.lockModifiers_get()
        logger.info("Keymap reloaded, lock modifiers 0x%04x", self.keys.modifiers)

    # ------------------------------------------------------------------
    # Other callbacks
    # ------------------------------------------------------------------

    def screenActive_handle(self, active: bool) -> None:
        """Record screen activation changes."""
        logger.info("Screen %s", "active" if active else "inactive")

    def joystick_handle(
        self,
        joy_num: int,
        buttons: int,
        left_x: int,
        left_y: int,
        right_x: int,
        right_y: int,
    ) -> None:
        """Joystick input has no local target."""

    def events_deliver(self, events: list[LocalEvent]) -> None:
        """
        Forward events to the sink.

        Sink failures are logged per event so one rejected event does not
        drop the rest of the batch.
        """
        for event in events:
            try:
                self._sink.event_deliver(event)
            except Exception as exc:
                logger.warning("Failed to deliver %s: %s", event.event_type.value, exc)
