"""Unit tests for mouse and keyboard event translation"""

from __future__ import annotations

from typing import Optional

import pytest

from barrier2x.client.config_store import ConfigStore
from barrier2x.client.translator import EventTranslator, KeyState, modifiers_translate
from barrier2x.common.types import (
    EventType,
    KeyEvent,
    LocalEvent,
    LocalModifier,
    ModifiersEvent,
    MouseEvent,
    NormalizedPoint,
    RemoteModifier,
    WheelEvent,
)

SCAN_A = 0x1E          # keycode 38
SCAN_LEFT_SHIFT = 0x2A  # keycode 50
SCAN_F1 = 0x3B          # keycode 67
KEYCODE_A = 38
KEYCODE_LEFT_SHIFT = 50


class _FakeSink:
    """Collects delivered events."""

    def __init__(self, fail_on: Optional[EventType] = None) -> None:
        """Initialize fake sink."""
        self.events: list[LocalEvent] = []
        self._fail_on = fail_on

    def event_deliver(self, event: LocalEvent) -> None:
        """Record event, optionally rejecting one event type."""
        if event.event_type == self._fail_on:
            raise RuntimeError("sink rejected event")
        self.events.append(event)


class _FakeLayout:
    """Keycode-to-text layout with a shift level."""

    def __init__(self) -> None:
        """Initialize fake layout."""
        self.keys: dict[int, tuple[bytes, bytes]] = {KEYCODE_A: (b"a", b"A")}
        self.locks: LocalModifier = LocalModifier.NONE
        self.refresh_calls: int = 0
        self.lookups: list[int] = []

    def layout_refresh(self) -> None:
        """Count refreshes."""
        self.refresh_calls += 1

    def text_get(self, keycode: int, modifiers: LocalModifier) -> bytes:
        """Return plain or shifted text."""
        self.lookups.append(keycode)
        plain, shifted = self.keys.get(keycode, (b"", b""))
        return shifted if modifiers & LocalModifier.SHIFT else plain

    def lockModifiers_get(self) -> LocalModifier:
        """Return configured lock state."""
        return self.locks


class _FakeClock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        """Start at t=100s."""
        self.now: float = 100.0

    def __call__(self) -> float:
        """Return current time."""
        return self.now


@pytest.fixture
def sink() -> _FakeSink:
    return _FakeSink()


@pytest.fixture
def layout() -> _FakeLayout:
    return _FakeLayout()


@pytest.fixture
def clock() -> _FakeClock:
    return _FakeClock()


@pytest.fixture
def translator(config_store, sink, layout, clock) -> EventTranslator:
    return EventTranslator(config_store, sink, layout, clock=clock)


def _mouse(translator: EventTranslator, x: int = 0, y: int = 0, wheel_x: int = 0,
           wheel_y: int = 0, left: bool = False, right: bool = False,
           middle: bool = False) -> list[LocalEvent]:
    return translator.mouse_handle(x, y, wheel_x, wheel_y, left, right, middle)


class TestMouseTranslation:
    """Test mouse callback translation"""

    def test_move_is_normalized_to_screen(self, translator, sink):
        """A move on a 1920x1080 screen to its center yields one move at 0.5/0.5"""
        events = _mouse(translator, x=960, y=540)

        assert len(events) == 1
        event = events[0]
        assert isinstance(event, MouseEvent)
        assert event.event_type == EventType.MOUSE_MOVED
        assert event.point == NormalizedPoint(x=0.5, y=0.5)
        assert event.buttons == 0
        assert sink.events == events

    def test_unchanged_state_emits_nothing(self, translator):
        """Repeating the same state produces no events"""
        _mouse(translator, x=10, y=10)
        assert _mouse(translator, x=10, y=10) == []

    def test_button_change_without_move_emits_only_button(self, translator):
        """A press at the current position does not emit a spurious move"""
        _mouse(translator, x=10, y=20)

        events = _mouse(translator, x=10, y=20, left=True)

        assert [e.event_type for e in events] == [EventType.MOUSE_DOWN]
        assert events[0].buttons == 1
        assert events[0].clicks == 1

    def test_button_and_move_in_one_callback(self, translator):
        """Button change and move are independent events, button first"""
        events = _mouse(translator, x=5, y=5, right=True)

        assert [e.event_type for e in events] == [EventType.MOUSE_DOWN, EventType.MOUSE_MOVED]
        assert events[1].buttons == 2

    def test_button_mask_bits(self, translator):
        """Left, right and middle map to bits 1, 2 and 4"""
        events = _mouse(translator, left=True, right=True, middle=True)
        assert events[0].buttons == 7

    def test_release_emits_mouse_up(self, translator):
        """All buttons released emits MOUSE_UP"""
        _mouse(translator, left=True)
        events = _mouse(translator)

        assert [e.event_type for e in events] == [EventType.MOUSE_UP]
        assert events[0].buttons == 0
        assert translator.mouse.clicks == 1

    def test_double_click_inside_window(self, translator, clock):
        """Second press 200ms later counts 2, a press 800ms after that counts 1"""
        first = _mouse(translator, left=True)[0]
        clock.now += 0.1
        _mouse(translator)
        clock.now += 0.1
        second = _mouse(translator, left=True)[0]
        clock.now += 0.1
        _mouse(translator)
        clock.now += 0.7
        third = _mouse(translator, left=True)[0]

        assert first.clicks == 1
        assert second.clicks == 2
        assert third.clicks == 1

    def test_different_button_resets_clicks(self, translator, clock):
        """Pressing a different mask inside the window starts a new count"""
        _mouse(translator, left=True)
        clock.now += 0.1
        _mouse(translator)
        clock.now += 0.1
        event = _mouse(translator, right=True)[0]

        assert event.clicks == 1

    def test_wheel_delta_in_notches(self, translator):
        """Wheel deltas are the old position minus the new one, per 120 units"""
        events = _mouse(translator, wheel_y=120)

        assert len(events) == 1
        wheel = events[0]
        assert isinstance(wheel, WheelEvent)
        assert wheel.delta_y == -1.0
        assert wheel.delta_x == 0.0

        events = _mouse(translator, wheel_x=60, wheel_y=-120)
        assert events[0].delta_y == 2.0
        assert events[0].delta_x == -0.5

    def test_zero_wheel_emits_nothing(self, translator):
        """Zero wheel arguments leave the stored wheel position alone"""
        _mouse(translator, wheel_y=240)
        assert _mouse(translator) == []
        assert translator.mouse.wheel_y == 240


class TestModifierTranslation:
    """Test remote-to-local modifier mapping"""

    @pytest.mark.parametrize(
        "remote,local",
        [
            (RemoteModifier.SHIFT, LocalModifier.SHIFT | LocalModifier.LEFT_SHIFT),
            (RemoteModifier.CTRL, LocalModifier.CONTROL | LocalModifier.LEFT_CONTROL),
            (RemoteModifier.ALT, LocalModifier.COMMAND | LocalModifier.LEFT_COMMAND),
            (RemoteModifier.META, LocalModifier.MENU),
            (RemoteModifier.WIN, LocalModifier.OPTION | LocalModifier.LEFT_OPTION),
            (RemoteModifier.ALT_GR, LocalModifier.RIGHT_OPTION | LocalModifier.OPTION),
            (RemoteModifier.CAPS_LOCK, LocalModifier.CAPS_LOCK),
            (RemoteModifier.NUM_LOCK, LocalModifier.NUM_LOCK),
            (RemoteModifier.SCROLL_LOCK, LocalModifier.SCROLL_LOCK),
        ],
    )
    def test_single_modifier(self, remote, local):
        """Each remote flag maps to its local flags"""
        assert modifiers_translate(remote) == local

    def test_combined_and_unknown_flags(self):
        """Flags combine; unmapped remote flags are dropped"""
        result = modifiers_translate(RemoteModifier.SHIFT | RemoteModifier.LEVEL5_LOCK)
        assert result == LocalModifier.SHIFT | LocalModifier.LEFT_SHIFT


class TestKeyState:
    """Test the key-down bitmap"""

    def test_bit_layout(self):
        """Keycode k lives in byte k >> 3 at bit 7 - (k & 7)"""
        keys = KeyState()
        keys.key_set(KEYCODE_A, True)

        assert keys.states[4] == 0b00000010
        assert keys.key_isDown(KEYCODE_A)

    def test_release_clears_only_its_bit(self):
        """Releasing one key leaves neighbours set"""
        keys = KeyState()
        keys.key_set(32, True)
        keys.key_set(33, True)
        keys.key_set(32, False)

        assert not keys.key_isDown(32)
        assert keys.key_isDown(33)
        assert keys.states[4] == 0b01000000

    def test_out_of_range_keycodes_ignored(self):
        """Keycode 0 and 256+ never touch the bitmap"""
        keys = KeyState()
        keys.key_set(0, True)
        keys.key_set(256, True)
        assert keys.snapshot() == bytes(32)


class TestKeyboardTranslation:
    """Test keyboard callback translation"""

    def test_mapped_key_down_and_up(self, translator, sink):
        """A key with text emits KEY_DOWN then KEY_UP"""
        down = translator.keyboard_handle(SCAN_A, 0, True, False)
        up = translator.keyboard_handle(SCAN_A, 0, False, False)

        assert len(down) == 1
        event = down[0]
        assert isinstance(event, KeyEvent)
        assert event.event_type == EventType.KEY_DOWN
        assert event.keycode == KEYCODE_A
        assert event.scan_code == SCAN_A
        assert event.text == b"a"
        assert event.raw_char == ord("a")
        assert event.repeat == 1
        assert event.states[4] == 0b00000010

        assert up[0].event_type == EventType.KEY_UP
        assert up[0].states == bytes(32)
        assert sink.events == down + up

    def test_shift_then_letter(self, translator):
        """Shift emits a modifiers change and the letter carries shifted text"""
        shift_events = translator.keyboard_handle(
            SCAN_LEFT_SHIFT, RemoteModifier.SHIFT, True, False
        )

        assert [e.event_type for e in shift_events] == [
            EventType.MODIFIERS_CHANGED,
            EventType.UNMAPPED_KEY_DOWN,
        ]
        change = shift_events[0]
        assert isinstance(change, ModifiersEvent)
        assert change.old_modifiers == LocalModifier.NONE
        assert change.modifiers == LocalModifier.SHIFT | LocalModifier.LEFT_SHIFT
        assert change.states[KEYCODE_LEFT_SHIFT >> 3] & (1 << (7 - (KEYCODE_LEFT_SHIFT & 7)))

        letter = translator.keyboard_handle(SCAN_A, RemoteModifier.SHIFT, True, False)
        assert [e.event_type for e in letter] == [EventType.KEY_DOWN]
        assert letter[0].text == b"A"
        assert letter[0].raw_char == ord("a")
        assert letter[0].modifiers == LocalModifier.SHIFT | LocalModifier.LEFT_SHIFT

    def test_modifier_release_clears_mask(self, translator):
        """Releasing the only modifier returns the mask to zero"""
        translator.keyboard_handle(SCAN_LEFT_SHIFT, RemoteModifier.SHIFT, True, False)

        events = translator.keyboard_handle(SCAN_LEFT_SHIFT, 0, False, False)

        change = events[0]
        assert change.event_type == EventType.MODIFIERS_CHANGED
        assert change.old_modifiers == LocalModifier.SHIFT | LocalModifier.LEFT_SHIFT
        assert change.modifiers == LocalModifier.NONE

    def test_key_down_accumulates_modifiers(self, translator):
        """On key down the new mask is the union of computed and stored"""
        translator.keyboard_handle(0, RemoteModifier.SHIFT, True, False)
        events = translator.keyboard_handle(0, RemoteModifier.CTRL, True, False)

        assert events[0].modifiers == (
            LocalModifier.SHIFT
            | LocalModifier.LEFT_SHIFT
            | LocalModifier.CONTROL
            | LocalModifier.LEFT_CONTROL
        )

    def test_key_up_masks_out_stored_modifiers(self, translator):
        """On key up the new mask is computed AND NOT stored"""
        translator.keyboard_handle(0, RemoteModifier.SHIFT | RemoteModifier.CTRL, True, False)
        events = translator.keyboard_handle(0, RemoteModifier.SHIFT, False, False)

        assert events[0].modifiers == LocalModifier.NONE

    def test_scan_code_zero_reports_modifiers_only(self, translator, layout):
        """Scan code 0 never produces a key event"""
        events = translator.keyboard_handle(0, RemoteModifier.ALT, True, False)

        assert [e.event_type for e in events] == [EventType.MODIFIERS_CHANGED]
        assert layout.lookups == []
        assert translator.keyboard_handle(0, RemoteModifier.ALT, True, False) == []

    def test_repeat_counts_and_suppresses_modifier_change(self, translator):
        """Repeats count up and never emit a modifiers change"""
        first = translator.keyboard_handle(SCAN_A, 0, True, False)[0]
        second = translator.keyboard_handle(SCAN_A, RemoteModifier.SHIFT, True, True)
        third = translator.keyboard_handle(SCAN_A, RemoteModifier.SHIFT, True, True)
        release = translator.keyboard_handle(SCAN_A, 0, False, False)[0]

        assert first.repeat == 1
        assert [e.event_type for e in second] == [EventType.KEY_DOWN]
        assert second[0].repeat == 2
        assert third[0].repeat == 3
        assert release.repeat == 1

    def test_unmapped_scan_code(self, translator, layout):
        """Scan codes without a keycode emit UNMAPPED events with the raw code"""
        events = translator.keyboard_handle(0x54, 0, True, False)

        assert len(events) == 1
        assert events[0].event_type == EventType.UNMAPPED_KEY_DOWN
        assert events[0].keycode == 0
        assert events[0].scan_code == 0x54
        assert events[0].text == b""
        assert events[0].raw_char is None
        assert layout.lookups == []

    def test_mapped_keycode_without_text(self, translator):
        """F1 has a keycode but no text"""
        events = translator.keyboard_handle(SCAN_F1, 0, False, False)

        assert events[0].event_type == EventType.UNMAPPED_KEY_UP
        assert events[0].keycode == 67

    def test_x11_keymap_variant(self, config_file_write, screen, sink, layout, clock):
        """An X11 server's scan codes are used as keycodes directly"""
        path = config_file_write("enable: true\nserver: host\nserver_keymap: x11\n")
        translator = EventTranslator(ConfigStore(path, screen), sink, layout, clock=clock)

        events = translator.keyboard_handle(59, 0, True, False)

        assert events[0].keycode == 59

    def test_keymap_reload_resets_modifiers_to_locks(self, translator, layout):
        """Reload refreshes the layout and adopts the host lock state"""
        translator.keyboard_handle(0, RemoteModifier.SHIFT, True, False)
        layout.locks = LocalModifier.CAPS_LOCK

        translator.keymap_reload()

        assert layout.refresh_calls == 1
        assert translator.keys.modifiers == LocalModifier.CAPS_LOCK

    def test_sink_failure_does_not_drop_batch(self, config_store, layout, clock, caplog):
        """A rejected event is logged and later events are still delivered"""
        sink = _FakeSink(fail_on=EventType.MODIFIERS_CHANGED)
        translator = EventTranslator(config_store, sink, layout, clock=clock)

        events = translator.keyboard_handle(SCAN_A, RemoteModifier.SHIFT, True, False)

        assert len(events) == 2
        assert [e.event_type for e in sink.events] == [EventType.KEY_DOWN]
        assert "Failed to deliver" in caplog.text


class TestOtherCallbacks:
    """Test callbacks without local effect"""

    def test_screen_active_logs(self, translator, sink, caplog):
        """Screen activation is logged only"""
        translator.screenActive_handle(True)
        assert "Screen active" in caplog.text
        assert sink.events == []

    def test_joystick_is_ignored(self, translator, sink):
        """Joystick input produces nothing"""
        translator.joystick_handle(0, 1, 2, 3, 4, 5)
        assert sink.events == []
