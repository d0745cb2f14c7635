"""
Legacy X11 keysym to Unicode conversion.

Keysyms below 0x1000000 predate the Unicode keysym range. Most legacy blocks
are a byte of an 8-bit character set offset by the block number, so they are
decoded with that character set; the blocks that follow no character set are
spelled out.
"""

from __future__ import annotations

import unicodedata

# (first keysym, last keysym, codec for keysym & 0xFF)
LEGACY_CODEC_RANGES: tuple[tuple[int, int, str], ...] = (
    (0x01A1, 0x01FF, "iso8859_2"),   # Latin-2
    (0x02A1, 0x02FE, "iso8859_3"),   # Latin-3
    (0x03A2, 0x03FE, "iso8859_4"),   # Latin-4
    (0x04A1, 0x04DF, "shift_jis"),   # Katakana, half width
    (0x05AC, 0x05F2, "iso8859_6"),   # Arabic
    (0x06C0, 0x06FF, "koi8_r"),      # Cyrillic
    (0x07C1, 0x07F9, "iso8859_7"),   # Greek
    (0x0CDF, 0x0CFA, "iso8859_8"),   # Hebrew
    (0x0DA1, 0x0DF9, "tis_620"),     # Thai
)

# (first keysym, characters for consecutive keysyms)
LEGACY_SPELLED_RANGES: tuple[tuple[int, str], ...] = (
    (0x06A1, "ђѓёєѕіїјљњћќґўџ№ЂЃЁЄЅІЇЈЉЊЋЌҐЎЏ"),
    (0x13BC, "ŒœŸ"),
)

GREEK_ACCENTED: dict[int, str] = {
    0x07A1: "Ά",
    0x07A2: "Έ",
    0x07A3: "Ή",
    0x07A4: "Ί",
    0x07A5: "Ϊ",
    0x07A7: "Ό",
    0x07A8: "Ύ",
    0x07A9: "Ϋ",
    0x07AB: "Ώ",
    0x07AE: "΅",
    0x07AF: "―",
    0x07B1: "ά",
    0x07B2: "έ",
    0x07B3: "ή",
    0x07B4: "ί",
    0x07B5: "ϊ",
    0x07B6: "ΐ",
    0x07B7: "ό",
    0x07B8: "ύ",
    0x07B9: "ϋ",
    0x07BA: "ΰ",
    0x07BB: "ώ",
}

# Currency keysyms share their Unicode code points.
CURRENCY_RANGE: tuple[int, int] = (0x20A0, 0x20AC)


def legacyKeysym_decode(keysym: int) -> str:
    """
    Convert a legacy keysym into its character.

    Args:
        keysym: X11 keysym below the Unicode keysym range

    Returns:
        One character, empty when the keysym is not a legacy character
    """
    if keysym in GREEK_ACCENTED:
        return GREEK_ACCENTED[keysym]
    if CURRENCY_RANGE[0] <= keysym <= CURRENCY_RANGE[1]:
        return chr(keysym)
    for first, characters in LEGACY_SPELLED_RANGES:
        if first <= keysym < first + len(characters):
            return characters[keysym - first]
    for first, last, codec in LEGACY_CODEC_RANGES:
        if first <= keysym <= last:
            try:
                text = bytes([keysym & 0xFF]).decode(codec)
            except UnicodeDecodeError:
                return ""
            # Kana keysyms name the full-width forms.
            return unicodedata.normalize("NFKC", text) if codec == "shift_jis" else text
    return ""
