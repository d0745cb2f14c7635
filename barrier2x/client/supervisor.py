"""
Connection supervisor for the barrier2x client.

`ConnectionSupervisor` owns the worker thread that drives the protocol engine
and the TCP socket the engine talks through. It implements the engine's
`EngineHost` interface: the transport hooks run on the worker thread and
block, and a wake channel lets `stop()` interrupt a worker that is blocked in
connect or receive.
"""

from __future__ import annotations

import errno
import logging
import os
import select
import socket
import threading
import time
from pathlib import Path
from typing import Callable, Optional, Union

from barrier2x.client.clipboard import ClipboardBridge, ClipboardWatcher
from barrier2x.client.config_store import ConfigStore
from barrier2x.client.translator import EventTranslator
from barrier2x.common.config import Configuration
from barrier2x.common.settings import settings
from barrier2x.common.types import ClipboardFormat, ConnectionState, ControlCommand
from barrier2x.engine.host import EngineFactory, ProtocolEngine

logger = logging.getLogger(__name__)

_CONNECT_PENDING = {0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY}


def serverAddress_parse(address: str) -> tuple[str, int]:
    """
    Split a server address into host and port.

    Args:
        address:
            ``host``, ``host:port``, ``[v6-host]`` or ``[v6-host]:port``.

    Returns:
        Tuple of host and port; the port defaults to the protocol port.

    Raises:
        ValueError: Port is not a number.
    """
    address = address.strip()
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port_text = rest[1:] if rest.startswith(":") else ""
    elif address.count(":") == 1:
        host, _, port_text = address.partition(":")
    else:
        host, port_text = address, ""

    if not port_text:
        return host, settings.PROTOCOL_PORT
    if not port_text.isdigit():
        raise ValueError(f"Invalid port in server address {address!r}")
    return host, int(port_text)


class ConnectionSupervisor:
    """Runs the protocol engine on a worker thread and serves its I/O hooks."""

    def __init__(
        self,
        config_store: ConfigStore,
        translator: EventTranslator,
        clipboard_bridge: ClipboardBridge,
        clipboard_watcher: ClipboardWatcher,
        engine_factory: EngineFactory,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize supervisor.

        Args:
            config_store:
                Active configuration snapshot source.
            translator:
                Receiver of mouse, keyboard and screen callbacks.
            clipboard_bridge:
                Receiver of clipboard callbacks and local clipboard changes.
            clipboard_watcher:
                Local clipboard change notifier, subscribed while running.
            engine_factory:
                Creates the protocol engine on each start.
            clock:
                Monotonic time source in seconds.
        """
        self._config_store: ConfigStore = config_store
        self._translator: EventTranslator = translator
        self._clipboard_bridge: ClipboardBridge = clipboard_bridge
        self._clipboard_watcher: ClipboardWatcher = clipboard_watcher
        self._engine_factory: EngineFactory = engine_factory
        self._clock: Callable[[], float] = clock

        # Stop token of the current worker, set while stopped. Each worker
        # gets a fresh token so a new start never revives an abandoned one.
        self._stop_event: threading.Event = threading.Event()
        self._stop_event.set()
        self._worker_local: threading.local = threading.local()
        self._reload_event: threading.Event = threading.Event()
        self._state_lock: threading.Lock = threading.Lock()
        self._send_lock: threading.Lock = threading.Lock()
        self._state: ConnectionState = ConnectionState.STOPPED
        self._thread: Optional[threading.Thread] = None
        self._engine: Optional[ProtocolEngine] = None
        self._socket: Optional[socket.socket] = None

        self._wake_reader, self._wake_writer = socket.socketpair()
        self._wake_reader.setblocking(False)
        self._wake_writer.setblocking(False)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Current lifecycle state."""
        with self._state_lock:
            return self._state

    def isRunning(self) -> bool:
        """Check whether a worker is active."""
        return not self._stop_event.is_set()

    def start(self) -> bool:
        """
        Start the connection worker.

        Does nothing when the configuration is disabled or has no server
        address, and nothing when a worker is already running. A worker
        abandoned by `systemShutdown_handle` is joined before a new one is
        spawned, so at most one worker exists at a time.

        Returns:
            `False` when the engine or the worker thread could not be created.
        """
        config: Configuration = self._config_store.snapshot
        if not config.enabled or not config.isAddressed():
            logger.info("Client disabled or no server configured; not starting")
            return True

        with self._state_lock:
            if not self._stop_event.is_set():
                return True
            previous: Optional[threading.Thread] = self._thread
        if previous is not None and not self._previousWorker_join(previous):
            return False

        with self._state_lock:
            if not self._stop_event.is_set():
                return True
            if self._thread is not None and self._thread.is_alive():
                logger.error("Previous connection worker still running; not starting")
                return False
            self._thread = None
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._state = ConnectionState.STARTING
            self._wake_drain()

            try:
                engine: ProtocolEngine = self._engine_factory(
                    self, config.client_name, config.screen_width, config.screen_height
                )
            except Exception:
                logger.exception("Failed to create protocol engine")
                stop_event.set()
                self._state = ConnectionState.STOPPED
                return False

            thread = threading.Thread(
                target=self._worker_run,
                args=(engine, stop_event),
                name="barrier2x-connection",
                daemon=True,
            )
            try:
                thread.start()
            except RuntimeError as exc:
                logger.error("Failed to start connection worker: %s", exc)
                stop_event.set()
                self._state = ConnectionState.STOPPED
                return False

            self._engine = engine
            self._thread = thread
            self._state = ConnectionState.RUNNING

        self._clipboard_bridge.engine_attach(engine)
        self._clipboard_watcher.subscribe(self._clipboard_bridge.localChange_handle)
        logger.info(
            "Connection worker started for %s as %r", config.server_address, config.client_name
        )
        return True

    def _previousWorker_join(self, previous: threading.Thread) -> bool:
        if previous is threading.current_thread():
            logger.error("Cannot restart from the connection worker itself")
            return False
        if previous.is_alive():
            logger.info("Waiting for previous connection worker to exit")
            self._wake_signal()
            previous.join()
        return True

    def stop(self) -> None:
        """
        Stop the connection worker and wait for it to exit.

        A worker blocked in connect or receive is woken through the wake
        channel. A worker abandoned by a system shutdown is joined too.
        """
        with self._state_lock:
            if self._stop_event.is_set() and self._thread is None:
                return
            self._stop_event.set()
            self._state = ConnectionState.STOPPING
            thread, self._thread = self._thread, None

        self._clipboard_watcher.unsubscribe()
        self._clipboard_bridge.engine_attach(None)
        self._wake_signal()
        if thread is not None and thread is not threading.current_thread():
            thread.join()

        with self._state_lock:
            self._engine = None
            self._state = ConnectionState.STOPPED
        logger.info("Connection worker stopped")

    def systemShutdown_handle(self) -> None:
        """
        Request the worker to exit without waiting for it.

        The worker thread stays referenced so a later `start` or `stop` can
        join it.
        """
        logger.info("System shutdown: abandoning connection worker")
        self._stop_event.set()
        self._wake_signal()
        self._clipboard_watcher.unsubscribe()
        self._clipboard_bridge.engine_attach(None)
        with self._state_lock:
            self._engine = None
            self._state = ConnectionState.STOPPED

    def close(self) -> None:
        """Stop the worker and release the wake channel."""
        self.stop()
        self._wake_reader.close()
        self._wake_writer.close()

    # ------------------------------------------------------------------
    # Control and configuration
    # ------------------------------------------------------------------

    def control_handle(self, command: ControlCommand) -> bool:
        """
        Handle a control request from the host.

        Args:
            command: Requested action.

        Returns:
            `True` when the command was recognized.
        """
        if command is not ControlCommand.KEYMAP_CHANGED:
            logger.debug("Ignoring control command %r", command)
            return False

        if self.isRunning():
            # Applied by the worker between engine iterations.
            self._reload_event.set()
        else:
            self.reload_perform()
        return True

    def configChange_handle(self, path: Union[str, Path]) -> None:
        """
        React to a change of the configuration file.

        Reloads the configuration and keymap and restarts the connection.

        Args:
            path: Changed file; other paths than the watched one are ignored.
        """
        if Path(path).resolve() != self._config_store.path.resolve():
            logger.debug("Ignoring change to unrelated file %s", path)
            return

        self.reload_perform()
        self.stop()
        self.start()

    def reload_perform(self) -> None:
        """Reload configuration and keyboard layout."""
        self._config_store.reload()
        try:
            self._translator.keymap_reload()
        except Exception:
            logger.exception("Keymap reload failed")

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _worker_run(self, engine: ProtocolEngine, stop_event: threading.Event) -> None:
        self._worker_local.stop_event = stop_event
        logger.debug("Connection worker running")
        try:
            while not stop_event.is_set():
                try:
                    engine.update()
                except Exception:
                    logger.exception("Protocol engine update failed")
                    self._backoff_wait()

                if self._reload_event.is_set() and not stop_event.is_set():
                    self._reload_event.clear()
                    self.reload_perform()
        finally:
            self.socket_close()
            logger.debug("Connection worker exiting")

    def _stopToken_get(self) -> threading.Event:
        # Workers wait on their own token; other threads on the current one.
        return getattr(self._worker_local, "stop_event", None) or self._stop_event

    def _backoff_wait(self) -> None:
        self._stopToken_get().wait(settings.CONNECT_BACKOFF_SEC)

    def _wake_signal(self) -> None:
        try:
            self._wake_writer.send(b"\x00")
        except (BlockingIOError, OSError) as exc:
            # A full buffer already holds a pending wake-up.
            logger.debug("Wake channel write skipped: %s", exc)

    def _wake_drain(self) -> None:
        while True:
            try:
                if not self._wake_reader.recv(4096):
                    return
            except (BlockingIOError, OSError):
                return

    def socket_close(self) -> None:
        """Close and reset the server socket."""
        sock, self._socket = self._socket, None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as exc:
            logger.debug("Error closing socket: %s", exc)

    # ------------------------------------------------------------------
    # Transport hooks
    # ------------------------------------------------------------------

    def connection_establish(self) -> bool:
        """
        Connect to the configured server.

        Waits one second before reporting failure, including when the client
        is disabled or unaddressed.

        Returns:
            `True` when connected.
        """
        config: Configuration = self._config_store.snapshot
        if not config.enabled or not config.isAddressed():
            self._backoff_wait()
            return False

        self.socket_close()
        try:
            host, port = serverAddress_parse(config.server_address)
            sock: Optional[socket.socket] = self._socket_connect(host, port)
        except (OSError, ValueError) as exc:
            logger.warning("Connection to %s failed: %s", config.server_address, exc)
            self._backoff_wait()
            return False

        if sock is None:
            logger.debug("Connect to %s:%s interrupted by stop", host, port)
            return False

        self._socket = sock
        logger.info("Connected to server %s:%s", host, port)
        return True

    def _socket_connect(self, host: str, port: int) -> Optional[socket.socket]:
        """
        Open a TCP connection that a stop request can interrupt.

        Returns:
            Connected blocking socket, or None when stop was requested.

        Raises:
            OSError: Resolution or connection failed.
        """
        family, sock_type, proto, _, sockaddr = socket.getaddrinfo(
            host, port, type=socket.SOCK_STREAM
        )[0]
        sock = socket.socket(family, sock_type, proto)
        try:
            sock.setblocking(False)
            result: int = sock.connect_ex(sockaddr)
            if result not in _CONNECT_PENDING:
                raise OSError(result, os.strerror(result))
            if result != 0:
                readable, writable, _ = select.select([self._wake_reader], [sock], [])
                if self._wake_reader in readable:
                    sock.close()
                    return None
                result = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
                if result != 0:
                    raise OSError(result, os.strerror(result))
            sock.setblocking(True)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            return sock
        except BaseException:
            sock.close()
            raise

    def data_send(self, data: bytes) -> bool:
        """
        Send all bytes to the server.

        Returns:
            `True` when every byte was written.
        """
        sock: Optional[socket.socket] = self._socket
        if sock is None:
            logger.debug("Send without connection")
            return False
        try:
            with self._send_lock:
                sock.sendall(data)
        except OSError as exc:
            logger.warning("Send failed: %s", exc)
            return False
        return True

    def data_receive(self, max_length: int) -> Optional[bytes]:
        """
        Block until server data or a stop request arrives.

        Returns:
            Received bytes, `b""` when nothing was read, or None on error or
            stop.
        """
        sock: Optional[socket.socket] = self._socket
        if sock is None:
            return None
        try:
            readable, _, _ = select.select([sock, self._wake_reader], [], [])
            if self._wake_reader in readable:
                return None
            return sock.recv(max_length)
        except (OSError, ValueError) as exc:
            logger.warning("Receive failed: %s", exc)
            return None

    def thread_sleep(self, milliseconds: int) -> None:
        """Sleep on the worker; returns early when stop is requested."""
        self._stopToken_get().wait(milliseconds / 1000.0)

    def time_get(self) -> int:
        """Millisecond clock wrapping at 32 bits."""
        return int(self._clock() * 1000) & 0xFFFFFFFF

    def trace_write(self, text: str) -> None:
        """Log engine status text."""
        logger.info("%s", text)

    # ------------------------------------------------------------------
    # Event callbacks
    # ------------------------------------------------------------------

    def screenActive_changed(self, active: bool) -> None:
        self._translator.screenActive_handle(active)

    def mouse_changed(
        self,
        x: int,
        y: int,
        wheel_x: int,
        wheel_y: int,
        left: bool,
        right: bool,
        middle: bool,
    ) -> None:
        self._translator.mouse_handle(x, y, wheel_x, wheel_y, left, right, middle)

    def keyboard_changed(
        self, scan_code: int, modifiers: int, is_down: bool, is_repeat: bool
    ) -> None:
        self._translator.keyboard_handle(scan_code, modifiers, is_down, is_repeat)

    def joystick_changed(
        self,
        joy_num: int,
        buttons: int,
        left_x: int,
        left_y: int,
        right_x: int,
        right_y: int,
    ) -> None:
        self._translator.joystick_handle(joy_num, buttons, left_x, left_y, right_x, right_y)

    def clipboard_received(self, format: ClipboardFormat, data: bytes) -> None:
        self._clipboard_bridge.remoteClipboard_handle(format, data)
