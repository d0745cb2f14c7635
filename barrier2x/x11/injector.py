"""X11 event injection using XTest extension"""

import logging
import threading

from Xlib import X
from Xlib.ext import xtest

from barrier2x.common.types import (
    EventType,
    KeyEvent,
    LocalEvent,
    ModifiersEvent,
    MouseButton,
    MouseEvent,
    Position,
    Screen,
    WheelEvent,
)
from barrier2x.x11.display import DisplayManager

logger = logging.getLogger(__name__)

# Button mask bit -> X11 button number
BUTTON_MAP: dict[MouseButton, int] = {
    MouseButton.LEFT: 1,
    MouseButton.MIDDLE: 2,
    MouseButton.RIGHT: 3,
}

WHEEL_UP = 4
WHEEL_DOWN = 5
WHEEL_LEFT = 6
WHEEL_RIGHT = 7


class X11EventInjector:
    """Delivers local events to the X server through XTest"""

    def __init__(self, display_manager: DisplayManager, screen: Screen) -> None:
        """
        Initialize event injector

        Args:
            display_manager: X11 display manager
            screen: Local screen size used to denormalize positions
        """
        self._display_manager: DisplayManager = display_manager
        self._screen: Screen = screen
        self._buttons: int = 0
        self._wheel_x: float = 0.0
        self._wheel_y: float = 0.0
        self._lock: threading.Lock = threading.Lock()

    def event_deliver(self, event: LocalEvent) -> None:
        """
        Inject one local event

        Args:
            event: Event produced by the translator
        """
        with self._lock:
            if isinstance(event, MouseEvent):
                self.mouseEvent_inject(event)
            elif isinstance(event, WheelEvent):
                self.wheelEvent_inject(event)
            elif isinstance(event, KeyEvent):
                self.keyEvent_inject(event)
            elif isinstance(event, ModifiersEvent):
                logger.debug(
                    "Modifiers 0x%04x -> 0x%04x", event.old_modifiers, event.modifiers
                )

    def mousePointer_move(self, position: Position) -> None:
        """
        Move mouse pointer to absolute position

        Args:
            position: Target position
        """
        display = self._display_manager.display_get()
        xtest.fake_input(display, X.MotionNotify, detail=0, x=position.x, y=position.y)
        display.sync()

    def mouseButton_press(self, button: int) -> None:
        """
        Press mouse button

        Args:
            button: Button number (1=left, 2=middle, 3=right)
        """
        display = self._display_manager.display_get()
        xtest.fake_input(display, X.ButtonPress, detail=button)
        display.sync()

    def mouseButton_release(self, button: int) -> None:
        """
        Release mouse button

        Args:
            button: Button number (1=left, 2=middle, 3=right)
        """
        display = self._display_manager.display_get()
        xtest.fake_input(display, X.ButtonRelease, detail=button)
        display.sync()

    def mouseEvent_inject(self, event: MouseEvent) -> None:
        """
        Inject mouse move or button mask change

        Every button whose bit differs from the previously injected mask is
        pressed or released.

        Args:
            event: Mouse event to inject
        """
        if event.event_type == EventType.MOUSE_MOVED:
            self.mousePointer_move(self._screen.denormalize(event.point))
            return
        if not event.isButtonEvent():
            return

        changed: int = event.buttons ^ self._buttons
        for bit, button in BUTTON_MAP.items():
            if not changed & bit:
                continue
            if event.buttons & bit:
                self.mouseButton_press(button)
            else:
                self.mouseButton_release(button)
        self._buttons = event.buttons

    def wheelEvent_inject(self, event: WheelEvent) -> None:
        """
        Inject wheel movement as button 4-7 clicks

        Fractional notches accumulate until a whole notch is reached.

        Args:
            event: Wheel event with deltas in notches
        """
        self._wheel_y += event.delta_y
        self._wheel_x += event.delta_x
        notches_y = int(self._wheel_y)
        notches_x = int(self._wheel_x)
        self._wheel_y -= notches_y
        self._wheel_x -= notches_x

        self.wheelClicks_inject(WHEEL_UP if notches_y < 0 else WHEEL_DOWN, abs(notches_y))
        self.wheelClicks_inject(WHEEL_LEFT if notches_x < 0 else WHEEL_RIGHT, abs(notches_x))

    def wheelClicks_inject(self, button: int, count: int) -> None:
        """Click a wheel button `count` times"""
        for _ in range(count):
            self.mouseButton_press(button)
            self.mouseButton_release(button)

    def key_press(self, keycode: int) -> None:
        """
        Press keyboard key

        Args:
            keycode: X11 keycode
        """
        display = self._display_manager.display_get()
        xtest.fake_input(display, X.KeyPress, detail=keycode)
        display.sync()

    def key_release(self, keycode: int) -> None:
        """
        Release keyboard key

        Args:
            keycode: X11 keycode
        """
        display = self._display_manager.display_get()
        xtest.fake_input(display, X.KeyRelease, detail=keycode)
        display.sync()

    def keyEvent_inject(self, event: KeyEvent) -> None:
        """
        Inject keyboard event, mapped or unmapped

        Args:
            event: Key event to inject
        """
        if event.keycode == 0:
            logger.debug("Skipping key event without local keycode (scan 0x%02x)", event.scan_code)
            return
        if event.isPressEvent():
            self.key_press(event.keycode)
        else:
            self.key_release(event.keycode)
