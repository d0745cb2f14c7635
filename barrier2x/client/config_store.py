"""
Configuration snapshot store and file-change watcher.

The store always hands out a complete `Configuration`; a reload builds a new
snapshot and swaps the reference under a lock, so readers never observe a mix
of two loads.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from barrier2x.common.config import ConfigLoader, Configuration
from barrier2x.common.settings import settings
from barrier2x.common.types import Screen

logger = logging.getLogger(__name__)


class ConfigStore:
    """Holds the active configuration snapshot and reloads it on request."""

    def __init__(self, path: Path, screen: Screen, **overrides: Any) -> None:
        """
        Initialize store and perform the initial load.

        Args:
            path:
                Configuration file path.
            screen:
                Local screen geometry used when the file does not set one.
            **overrides:
                Command-line overrides re-applied on every reload.
        """
        self._path: Path = path
        self._screen: Screen = screen
        self._overrides: dict[str, Any] = overrides
        self._lock: threading.Lock = threading.Lock()
        self._snapshot: Configuration = ConfigLoader.overrides_apply(
            Configuration.disabled_create(screen), **overrides
        )
        self.reload()

    @property
    def path(self) -> Path:
        """Watched configuration file path."""
        return self._path

    @property
    def snapshot(self) -> Configuration:
        """Current complete configuration snapshot."""
        with self._lock:
            return self._snapshot

    def reload(self) -> Configuration:
        """
        Re-read the configuration file and replace the snapshot wholesale.

        A missing or invalid file keeps the previous snapshot.

        Returns:
            The active snapshot after the reload attempt.
        """
        try:
            config: Configuration = ConfigLoader.configWithOverrides_load(
                self._path, self._screen, **self._overrides
            )
        except FileNotFoundError:
            logger.warning("Config file %s not found; keeping current settings", self._path)
            return self.snapshot
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logger.error("Failed to load config file %s: %s", self._path, exc)
            return self.snapshot

        with self._lock:
            self._snapshot = config
        logger.info(
            "Configuration loaded: enabled=%s server=%s keymap=%s name=%s",
            config.enabled,
            config.server_address or "-",
            config.server_keymap.value,
            config.client_name,
        )
        return config


class ConfigFileWatcher:
    """Polls a file's modification time and reports changes."""

    def __init__(
        self,
        path: Path,
        callback: Callable[[Path], None],
        interval: float = settings.CONFIG_POLL_INTERVAL_SEC,
    ) -> None:
        """
        Initialize watcher.

        Args:
            path:
                File to watch.
            callback:
                Invoked with `path` whenever the file changes, appears or
                disappears.
            interval:
                Seconds between checks.
        """
        self._path: Path = path
        self._callback: Callable[[Path], None] = callback
        self._interval: float = interval
        self._stop_event: threading.Event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._mtime: Optional[float] = self.mtime_get()

    def mtime_get(self) -> Optional[float]:
        """
        Read the watched file's modification time.

        Returns:
            mtime, or None when the file does not exist.
        """
        try:
            return self._path.stat().st_mtime
        except FileNotFoundError:
            return None

    def change_check(self) -> bool:
        """
        Compare the file's mtime with the last seen value and notify on change.

        Returns:
            `True` when a change was reported.
        """
        mtime: Optional[float] = self.mtime_get()
        if mtime == self._mtime:
            return False
        self._mtime = mtime
        logger.info("Config file %s changed", self._path)
        self._callback(self._path)
        return True

    def start(self) -> None:
        """Start the polling thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop_run, name="barrier2x-config-watcher", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the polling thread and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _loop_run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.change_check()
            except Exception:
                logger.exception("Config change handler failed")
