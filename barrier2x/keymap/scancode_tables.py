"""Remote scan code to local X11 keycode tables.

Both tables are tuples indexed by ``scan_code - 1`` and cover scan codes
1..255. A zero entry means the scan code has no local key.
"""

from __future__ import annotations

TABLE_SIZE = 255

# X11 keycodes are evdev codes offset by 8.
_EVDEV_OFFSET = 8

# PC/AT set-1 make codes. Codes 0x01..0x58 line up with evdev key codes.
# Extended keys (E0 prefix) are sent by the server with bit 0x100 set and
# arrive here folded onto 0x80|code by the mapper's high-bit retry.
_AT_EXTENDED_KEYCODES: dict[int, int] = {
    0x9C: 104,  # KP_Enter
    0x9D: 105,  # Control_R
    0xB5: 106,  # KP_Divide
    0xB7: 107,  # Print
    0xB8: 108,  # Alt_R
    0xC5: 127,  # Pause
    0xC6: 127,  # Break
    0xC7: 110,  # Home
    0xC8: 111,  # Up
    0xC9: 112,  # Prior
    0xCB: 113,  # Left
    0xCD: 114,  # Right
    0xCF: 115,  # End
    0xD0: 116,  # Down
    0xD1: 117,  # Next
    0xD2: 118,  # Insert
    0xD3: 119,  # Delete
    0xDB: 133,  # Super_L
    0xDC: 134,  # Super_R
    0xDD: 135,  # Menu
}

# Set-1 codes without an evdev counterpart at the same value.
_AT_UNASSIGNED: frozenset[int] = frozenset({0x54, 0x55})

_AT_BASE_LAST = 0x58  # F12


def table_build(entries: dict[int, int]) -> tuple[int, ...]:
    """
    Materialize a sparse scan-code mapping into a lookup tuple.

    Args:
        entries: Mapping of scan code (1..255) to local keycode.

    Returns:
        Tuple indexed by ``scan_code - 1``.

    Raises:
        ValueError: If a scan code lies outside the table range.
    """
    table: list[int] = [0] * TABLE_SIZE
    for scan_code, keycode in entries.items():
        if not 1 <= scan_code <= TABLE_SIZE:
            raise ValueError(f"Scan code {scan_code:#x} outside table range")
        table[scan_code - 1] = keycode
    return tuple(table)


def atEntries_build() -> dict[int, int]:
    """
    Build the PC/AT set-1 mapping.

    Returns:
        Scan-code-to-keycode map for the generic layout.
    """
    entries: dict[int, int] = {
        code: code + _EVDEV_OFFSET
        for code in range(0x01, _AT_BASE_LAST + 1)
        if code not in _AT_UNASSIGNED
    }
    entries.update(_AT_EXTENDED_KEYCODES)
    return entries


def x11Entries_build() -> dict[int, int]:
    """
    Build the X server keycode mapping.

    X servers report their own keycodes, which are valid from 8 upward and
    map onto the same local keycode.

    Returns:
        Scan-code-to-keycode map for the X11 layout.
    """
    return {code: code for code in range(_EVDEV_OFFSET, TABLE_SIZE + 1)}


AT_KEYCODE_TABLE: tuple[int, ...] = table_build(atEntries_build())
X11_KEYCODE_TABLE: tuple[int, ...] = table_build(x11Entries_build())
