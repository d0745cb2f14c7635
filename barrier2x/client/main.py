"""barrier2x client runtime wiring"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from types import FrameType
from typing import Any, Optional

from barrier2x import __version__
from barrier2x.client import bootstrap
from barrier2x.client.client_logging import logging_setup
from barrier2x.client.clipboard import ClipboardBridge, ClipboardWatcher, PyperclipClipboard
from barrier2x.client.config_store import ConfigFileWatcher, ConfigStore
from barrier2x.client.supervisor import ConnectionSupervisor
from barrier2x.client.translator import EventTranslator
from barrier2x.common.types import ControlCommand, Screen
from barrier2x.engine.host import EngineFactory
from barrier2x.x11.display import DisplayManager
from barrier2x.x11.injector import X11EventInjector
from barrier2x.x11.key_layout import X11KeyLayout

logger = logging.getLogger(__name__)


def signalHandlers_install(supervisor: ConnectionSupervisor, shutdown: threading.Event) -> None:
    """
    Route process signals to the supervisor.

    SIGINT and SIGTERM end the client; SIGHUP requests a keymap reload.

    Args:
        supervisor: Connection supervisor.
        shutdown: Event set when the client should exit.
    """

    def _shutdown_request(signum: int, frame: Optional[FrameType]) -> None:
        logger.info("Received signal %s, shutting down", signal.Signals(signum).name)
        shutdown.set()

    def _keymap_reload_request(signum: int, frame: Optional[FrameType]) -> None:
        logger.info("Received SIGHUP, reloading keymap")
        supervisor.control_handle(ControlCommand.KEYMAP_CHANGED)

    signal.signal(signal.SIGINT, _shutdown_request)
    signal.signal(signal.SIGTERM, _shutdown_request)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, _keymap_reload_request)


def supervisor_create(
    config_store: ConfigStore,
    display_manager: DisplayManager,
    screen: Screen,
    engine_factory: EngineFactory,
) -> ConnectionSupervisor:
    """
    Build the translator, clipboard bridge and supervisor for one display.

    Args:
        config_store: Active configuration store.
        display_manager: Connected X11 display manager.
        screen: Local screen geometry.
        engine_factory: Protocol engine factory.

    Returns:
        Supervisor ready to start.
    """
    injector = X11EventInjector(display_manager, screen)
    layout = X11KeyLayout(display_manager)
    translator = EventTranslator(config_store, injector, layout)
    translator.keymap_reload()

    clipboard = PyperclipClipboard()
    return ConnectionSupervisor(
        config_store=config_store,
        translator=translator,
        clipboard_bridge=ClipboardBridge(clipboard),
        clipboard_watcher=ClipboardWatcher(clipboard),
        engine_factory=engine_factory,
    )


def client_run(args: argparse.Namespace) -> None:
    """
    Run barrier2x client until a termination signal arrives

    Args:
        args: Parsed command line arguments
    """
    config_path: Path = bootstrap.configPath_resolve(args)
    data: dict[str, Any] = bootstrap.configData_load(config_path)
    bootstrap.loggingWithConfig_setup(args, data, logging_setup)

    logger.info("barrier2x client v%s", __version__)
    logger.info("Config: %s", config_path)
    logger.info("Display: %s", args.display or "$DISPLAY")

    display_manager = DisplayManager(display_name=args.display)
    screen: Screen = bootstrap.displayConnection_establish(display_manager)
    config_store: ConfigStore = bootstrap.configStore_create(args, config_path, data, screen)
    engine_factory: EngineFactory = bootstrap.engineFactory_resolve(config_store.snapshot)

    supervisor = supervisor_create(config_store, display_manager, screen, engine_factory)
    config_watcher = ConfigFileWatcher(config_path, supervisor.configChange_handle)
    shutdown = threading.Event()
    signalHandlers_install(supervisor, shutdown)

    try:
        if not supervisor.start():
            logger.error("Failed to start connection worker")
            sys.exit(1)
        config_watcher.start()
        logger.info("Client running. Press Ctrl+C to stop.")
        shutdown.wait()
    finally:
        config_watcher.stop()
        supervisor.close()
        display_manager.connection_close()
        logger.info("Client stopped")
