"""Application settings singleton - protocol and timing constants

This module provides a singleton Settings class that consolidates:
1. Protocol-level constants (must match the Barrier server)
2. Adapter constants (timing, buffer sizes, polling intervals)

Usage:
    from barrier2x.common.settings import settings

    if elapsed < settings.DOUBLE_CLICK_WINDOW_SEC:
        clicks += 1
"""

from typing import Optional


class Settings:
    """Singleton settings manager holding protocol and adapter constants

    The singleton pattern ensures all parts of the application use the same
    protocol constants. Runtime configuration lives in ConfigStore, which
    swaps whole snapshots on reload.
    """

    _instance: Optional["Settings"] = None

    def __new__(cls) -> "Settings":
        """Ensure only one Settings instance exists"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    # =========================================================================
    # Protocol Constants
    # =========================================================================

    PROTOCOL_PORT: int = 24800
    """Well-known Barrier/Synergy server port"""

    WHEEL_NOTCH: int = 120
    """Wheel units per notch, as sent by the server"""

    # =========================================================================
    # Translation Constants
    # =========================================================================

    DOUBLE_CLICK_WINDOW_SEC: float = 0.5
    """Maximum gap between presses of the same buttons to count as multi-click"""

    KEY_STATE_BYTES: int = 32
    """Size of the key-down bitmap (one bit per local keycode 0..255)"""

    # =========================================================================
    # Connection Constants
    # =========================================================================

    CONNECT_BACKOFF_SEC: float = 1.0
    """Pause after a failed or unconfigured connect

    Keeps the engine's retry cadence bounded without busy-looping.
    """

    # =========================================================================
    # Watcher Constants
    # =========================================================================

    CLIPBOARD_POLL_INTERVAL_SEC: float = 0.5
    """Interval between local clipboard polls"""

    CONFIG_POLL_INTERVAL_SEC: float = 1.0
    """Interval between configuration file mtime checks"""


# Global singleton instance
settings = Settings()
"""Global settings singleton instance

Import this anywhere in the application:
    from barrier2x.common.settings import settings
"""
