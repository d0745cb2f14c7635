"""Common types and data structures for barrier2x"""

from dataclasses import dataclass
from enum import Enum, IntEnum, IntFlag
from typing import Optional, Union


class KeymapVariant(Enum):
    """Scan code dialect spoken by the remote server"""
    GENERIC = "generic"  # PC/AT set-1 scan codes (Windows/macOS servers)
    X11 = "x11"          # X server keycodes (Linux servers)

    @staticmethod
    def fromSetting_parse(value: Optional[str]) -> "KeymapVariant":
        """
        Select keymap variant from the `server_keymap` setting

        Args:
            value: Raw setting value, may be None

        Returns:
            X11 when the value names X11, GENERIC otherwise
        """
        if value is not None and value.strip().lower() == "x11":
            return KeymapVariant.X11
        return KeymapVariant.GENERIC


class ClipboardFormat(IntEnum):
    """Clipboard payload formats announced by the server"""
    TEXT = 0    # UTF-8, LF newlines
    BITMAP = 1  # BMP 24/32bpp
    HTML = 2    # HTML fragment, UTF-8


class ConnectionState(Enum):
    """Lifecycle of the connection worker"""
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class ControlCommand(Enum):
    """Control requests sent to the supervisor by the host"""
    KEYMAP_CHANGED = "keymap_changed"


class RemoteModifier(IntFlag):
    """Modifier flags as reported by the server"""
    NONE = 0
    SHIFT = 0x0001
    CTRL = 0x0002
    ALT = 0x0004
    META = 0x0008
    WIN = 0x0010
    ALT_GR = 0x0020
    LEVEL5_LOCK = 0x0040
    CAPS_LOCK = 0x1000
    NUM_LOCK = 0x2000
    SCROLL_LOCK = 0x4000


class LocalModifier(IntFlag):
    """Modifier flags delivered to the local event sink"""
    NONE = 0
    SHIFT = 0x00000001
    COMMAND = 0x00000002
    CONTROL = 0x00000004
    CAPS_LOCK = 0x00000010
    SCROLL_LOCK = 0x00000020
    NUM_LOCK = 0x00000040
    OPTION = 0x00000080
    MENU = 0x00000100
    LEFT_SHIFT = 0x00000200
    RIGHT_SHIFT = 0x00000400
    LEFT_COMMAND = 0x00000800
    RIGHT_COMMAND = 0x00001000
    LEFT_CONTROL = 0x00002000
    RIGHT_CONTROL = 0x00004000
    LEFT_OPTION = 0x00008000
    RIGHT_OPTION = 0x00010000

    LOCKS = CAPS_LOCK | SCROLL_LOCK | NUM_LOCK


class EventType(Enum):
    """Types of local input events"""
    MOUSE_DOWN = "mouse_down"
    MOUSE_UP = "mouse_up"
    MOUSE_MOVED = "mouse_moved"
    MOUSE_WHEEL_CHANGED = "mouse_wheel_changed"
    KEY_DOWN = "key_down"
    KEY_UP = "key_up"
    UNMAPPED_KEY_DOWN = "unmapped_key_down"
    UNMAPPED_KEY_UP = "unmapped_key_up"
    MODIFIERS_CHANGED = "modifiers_changed"


class MouseButton(IntFlag):
    """Button bits of the mouse button mask"""
    NONE = 0
    LEFT = 1 << 0
    RIGHT = 1 << 1
    MIDDLE = 1 << 2


@dataclass(frozen=True)
class NormalizedPoint:
    """Position as a fraction of the screen size"""
    x: float
    y: float


@dataclass(frozen=True)
class Position:
    """2D pixel position"""
    x: int
    y: int


@dataclass(frozen=True)
class Screen:
    """Screen dimensions"""
    width: int
    height: int

    def normalize(self, x: int, y: int) -> NormalizedPoint:
        """Convert pixel coordinates to a normalized point"""
        return NormalizedPoint(x=x / self.width, y=y / self.height)

    def denormalize(self, point: NormalizedPoint) -> Position:
        """Convert a normalized point to pixel coordinates clamped to the screen"""
        x = min(max(int(round(point.x * self.width)), 0), self.width - 1)
        y = min(max(int(round(point.y * self.height)), 0), self.height - 1)
        return Position(x=x, y=y)


@dataclass(frozen=True)
class ClipboardPayload:
    """Clipboard data received from the server"""
    format: ClipboardFormat
    data: bytes

    def isText(self) -> bool:
        """Check if this payload is actionable plain text"""
        return self.format == ClipboardFormat.TEXT


@dataclass(frozen=True)
class MouseEvent:
    """Mouse button or motion event"""
    event_type: EventType
    when: float
    buttons: int
    point: NormalizedPoint
    clicks: Optional[int] = None  # only on MOUSE_DOWN

    def isButtonEvent(self) -> bool:
        """Check if this is a button press/release event"""
        return self.event_type in (EventType.MOUSE_DOWN, EventType.MOUSE_UP)


@dataclass(frozen=True)
class WheelEvent:
    """Mouse wheel event, deltas in notches"""
    when: float
    delta_x: float
    delta_y: float
    event_type: EventType = EventType.MOUSE_WHEEL_CHANGED


@dataclass(frozen=True)
class KeyEvent:
    """Keyboard event, mapped or unmapped"""
    event_type: EventType
    when: float
    keycode: int
    scan_code: int
    modifiers: LocalModifier
    states: bytes
    text: bytes = b""
    raw_char: Optional[int] = None
    repeat: Optional[int] = None

    def isPressEvent(self) -> bool:
        """Check if this is a key press (vs release)"""
        return self.event_type in (EventType.KEY_DOWN, EventType.UNMAPPED_KEY_DOWN)

    def isMapped(self) -> bool:
        """Check if the key resolved to text"""
        return self.event_type in (EventType.KEY_DOWN, EventType.KEY_UP)


@dataclass(frozen=True)
class ModifiersEvent:
    """Modifier mask change"""
    when: float
    old_modifiers: LocalModifier
    modifiers: LocalModifier
    states: bytes
    event_type: EventType = EventType.MODIFIERS_CHANGED


LocalEvent = Union[MouseEvent, WheelEvent, KeyEvent, ModifiersEvent]
