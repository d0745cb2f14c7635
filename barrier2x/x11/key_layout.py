"""
Keyboard layout lookups against the X server.

`X11KeyLayout` answers "what text does this keycode produce under these
modifiers" from the server's core keyboard mapping, and reports which lock
LEDs are lit.
"""

from __future__ import annotations

import logging
from typing import Optional

from Xlib import XK

from barrier2x.common.types import LocalModifier
from barrier2x.x11.display import DisplayManager
from barrier2x.x11.keysym_unicode import legacyKeysym_decode

logger = logging.getLogger(__name__)

NO_SYMBOL = 0
UNICODE_KEYSYM_BASE = 0x01000000
ISO_LEFT_TAB = 0xFE20

# Keysyms producing control characters rather than printable text.
CONTROL_KEYSYM_TEXT: dict[int, bytes] = {
    XK.XK_BackSpace: b"\x08",
    XK.XK_Tab: b"\x09",
    ISO_LEFT_TAB: b"\x09",
    XK.XK_Return: b"\x0a",
    XK.XK_KP_Enter: b"\x0a",
    XK.XK_Escape: b"\x1b",
    XK.XK_Delete: b"\x7f",
    XK.XK_KP_Delete: b"\x7f",
    XK.XK_Home: b"\x01",
    XK.XK_KP_Home: b"\x01",
    XK.XK_End: b"\x04",
    XK.XK_KP_End: b"\x04",
    XK.XK_Insert: b"\x05",
    XK.XK_KP_Insert: b"\x05",
    XK.XK_Prior: b"\x0b",
    XK.XK_KP_Prior: b"\x0b",
    XK.XK_Next: b"\x0c",
    XK.XK_KP_Next: b"\x0c",
    XK.XK_Left: b"\x1c",
    XK.XK_KP_Left: b"\x1c",
    XK.XK_Right: b"\x1d",
    XK.XK_KP_Right: b"\x1d",
    XK.XK_Up: b"\x1e",
    XK.XK_KP_Up: b"\x1e",
    XK.XK_Down: b"\x1f",
    XK.XK_KP_Down: b"\x1f",
}

# Function keys that type nothing even though Xlib maps them to a byte.
NO_TEXT_KEYSYMS: frozenset[int] = frozenset(
    {XK.XK_Pause, XK.XK_Scroll_Lock, XK.XK_Sys_Req, XK.XK_Clear}
)

KEYPAD_KEYSYM_TEXT: dict[int, str] = {
    XK.XK_KP_Space: " ",
    XK.XK_KP_Equal: "=",
    XK.XK_KP_Multiply: "*",
    XK.XK_KP_Add: "+",
    XK.XK_KP_Separator: ",",
    XK.XK_KP_Subtract: "-",
    XK.XK_KP_Decimal: ".",
    XK.XK_KP_Divide: "/",
    **{XK.XK_KP_0 + digit: str(digit) for digit in range(10)},
}

# LED indicator bits in the core keyboard control led_mask.
LED_LOCKS: tuple[tuple[int, LocalModifier], ...] = (
    (1 << 0, LocalModifier.CAPS_LOCK),
    (1 << 1, LocalModifier.NUM_LOCK),
    (1 << 2, LocalModifier.SCROLL_LOCK),
)


def keysymText_get(keysym: int) -> str:
    """
    Convert a keysym into the text it types.

    Args:
        keysym: X11 keysym value

    Returns:
        Text, empty when the keysym types nothing
    """
    if keysym == NO_SYMBOL or keysym in NO_TEXT_KEYSYMS:
        return ""
    if keysym in CONTROL_KEYSYM_TEXT:
        return CONTROL_KEYSYM_TEXT[keysym].decode("ascii")
    if keysym in KEYPAD_KEYSYM_TEXT:
        return KEYPAD_KEYSYM_TEXT[keysym]
    if keysym & 0xFF000000 == UNICODE_KEYSYM_BASE:
        return chr(keysym & 0x00FFFFFF)
    if 0x20 <= keysym <= 0x7E or 0xA0 <= keysym <= 0xFF:
        return chr(keysym)
    legacy: str = legacyKeysym_decode(keysym)
    if legacy:
        return legacy
    text: Optional[str] = XK.keysym_to_string(keysym)
    return text or ""


def keysymIsKeypad_check(keysym: int) -> bool:
    """Check for keypad keysyms affected by Num Lock"""
    return XK.XK_KP_Space <= keysym <= XK.XK_KP_9


class X11KeyLayout:
    """Resolves keycodes to text from the X server keyboard mapping"""

    def __init__(self, display_manager: DisplayManager) -> None:
        """
        Initialize layout

        Args:
            display_manager: Connected X11 display manager
        """
        self._display_manager: DisplayManager = display_manager
        self._mapping: Optional[dict[int, tuple[int, ...]]] = None

    def layout_refresh(self) -> None:
        """Reload the keyboard mapping from the X server"""
        display = self._display_manager.display_get()
        min_keycode: int = display.display.info.min_keycode
        max_keycode: int = display.display.info.max_keycode
        rows = display.get_keyboard_mapping(min_keycode, max_keycode - min_keycode + 1)
        self._mapping = {
            min_keycode + index: tuple(row) for index, row in enumerate(rows)
        }
        logger.debug("Loaded keyboard mapping for keycodes %d-%d", min_keycode, max_keycode)

    def keysym_get(self, keycode: int, modifiers: LocalModifier) -> int:
        """
        Select the keysym a keycode produces under the given modifiers

        Args:
            keycode: X11 keycode
            modifiers: Active local modifier mask

        Returns:
            Keysym, NO_SYMBOL when the keycode has none
        """
        if self._mapping is None:
            self.layout_refresh()
        keysyms: tuple[int, ...] = (self._mapping or {}).get(keycode, ())
        if not keysyms:
            return NO_SYMBOL

        # Columns 4/5 hold the AltGr level in the core mapping.
        base: int = 0
        if modifiers & LocalModifier.RIGHT_OPTION and len(keysyms) > 4 and keysyms[4]:
            base = 4
        lower: int = keysyms[base]
        upper: int = keysyms[base + 1] if len(keysyms) > base + 1 else NO_SYMBOL

        shifted: bool = bool(modifiers & LocalModifier.SHIFT)
        if keysymIsKeypad_check(upper) and modifiers & LocalModifier.NUM_LOCK:
            shifted = not shifted
        elif modifiers & LocalModifier.CAPS_LOCK and keysymText_get(lower).isalpha():
            shifted = not shifted

        if not shifted:
            return lower
        if upper == NO_SYMBOL:
            text: str = keysymText_get(lower)
            upper_text: str = text.upper()
            if len(text) == 1 and len(upper_text) == 1 and upper_text != text:
                codepoint: int = ord(upper_text)
                return codepoint if codepoint <= 0xFF else UNICODE_KEYSYM_BASE | codepoint
            return lower
        return upper

    def text_get(self, keycode: int, modifiers: LocalModifier) -> bytes:
        """
        Resolve the UTF-8 text a keycode types

        Control combined with a letter yields the matching control character.

        Args:
            keycode: X11 keycode
            modifiers: Active local modifier mask

        Returns:
            UTF-8 bytes, empty when the key types nothing
        """
        text: str = keysymText_get(self.keysym_get(keycode, modifiers))
        if modifiers & LocalModifier.CONTROL and len(text) == 1 and "@" <= text.upper() <= "_":
            text = chr(ord(text.upper()) & 0x1F)
        return text.encode("utf-8")

    def lockModifiers_get(self) -> LocalModifier:
        """
        Read lock state from the keyboard LEDs

        Returns:
            Mask of CAPS_LOCK, NUM_LOCK and SCROLL_LOCK
        """
        display = self._display_manager.display_get()
        led_mask: int = display.get_keyboard_control().led_mask
        locks: LocalModifier = LocalModifier.NONE
        for bit, flag in LED_LOCKS:
            if led_mask & bit:
                locks |= flag
        return locks
