"""Scan code to local keycode translation."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from barrier2x.common.types import KeymapVariant
from barrier2x.keymap.scancode_tables import AT_KEYCODE_TABLE, X11_KEYCODE_TABLE

logger = logging.getLogger(__name__)

EXTENDED_BIT = 0x80

DEFAULT_TABLES: dict[KeymapVariant, tuple[int, ...]] = {
    KeymapVariant.GENERIC: AT_KEYCODE_TABLE,
    KeymapVariant.X11: X11_KEYCODE_TABLE,
}


class KeycodeMapper:
    """
    Translate remote scan codes into local X11 keycodes.

    The table is chosen by keymap variant. Codes outside the table are folded
    onto their extended companion (``code | 0x80``, truncated to a byte) and
    looked up once more before being reported as unmapped (0).
    """

    def __init__(self, tables: Optional[Mapping[KeymapVariant, tuple[int, ...]]] = None) -> None:
        """
        Initialize mapper.

        Args:
            tables:
                Optional variant-to-table mapping; defaults to the built-in
                AT and X11 tables.
        """
        self._tables: Mapping[KeymapVariant, tuple[int, ...]] = tables or DEFAULT_TABLES

    def table_get(self, variant: KeymapVariant) -> tuple[int, ...]:
        """
        Return the lookup table for a variant.

        Args:
            variant:
                Remote keymap dialect.

        Returns:
            Table indexed by ``scan_code - 1``.
        """
        return self._tables[variant]

    def scanCode_resolve(self, scan_code: int, variant: KeymapVariant) -> Optional[int]:
        """
        Resolve the scan code actually used for the table lookup.

        Args:
            scan_code:
                Raw scan code from the server.
            variant:
                Remote keymap dialect.

        Returns:
            The in-bounds scan code (original or extended companion), or
            `None` when neither lies inside the table.
        """
        table: tuple[int, ...] = self.table_get(variant)
        if self.bounds_check(scan_code, table):
            return scan_code
        extended: int = (scan_code | EXTENDED_BIT) & 0xFF
        if self.bounds_check(extended, table):
            return extended
        return None

    def keycode_map(self, scan_code: int, variant: KeymapVariant) -> int:
        """
        Map a remote scan code to a local keycode.

        Args:
            scan_code:
                Raw scan code from the server.
            variant:
                Remote keymap dialect.

        Returns:
            Local keycode, or 0 when unmapped.
        """
        resolved: Optional[int] = self.scanCode_resolve(scan_code, variant)
        if resolved is None:
            return 0
        keycode: int = self.table_get(variant)[resolved - 1]
        logger.debug(
            "scan code 0x%02x (resolved 0x%02x, %s) -> keycode %s",
            scan_code,
            resolved,
            variant.value,
            keycode,
        )
        return keycode

    @staticmethod
    def bounds_check(scan_code: int, table: tuple[int, ...]) -> bool:
        """
        Check whether a scan code indexes into a table.

        Args:
            scan_code:
                Scan code to check.
            table:
                Lookup table indexed by ``scan_code - 1``.

        Returns:
            `True` when ``1 <= scan_code <= len(table)``.
        """
        return 0 < scan_code <= len(table)
