"""Shared Socket.IO channel carrying job progress events.

One ``ProgressChannel`` multiplexes ``import:progress`` and
``export:progress`` events for every job onto any number of listeners.
Connection failures never propagate to callers: they are recorded as
``last_error`` and retried forever with a fixed delay.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

import socketio
from loguru import logger
from socketio.exceptions import ConnectionError as ChannelConnectionError
from socketio.exceptions import SocketIOError

from outreach_crm.lib.progress import JobKind, extract_job_id

PROGRESS_EVENTS: tuple[str, ...] = tuple(kind.progress_event for kind in JobKind)

ProgressHandler = Callable[[Mapping[str, Any]], None]
ErrorListener = Callable[[str], None]


@runtime_checkable
class ChannelHandle(Protocol):
    """Subscription surface of a progress channel."""

    @property
    def connected(self) -> bool:
        """Whether the channel currently has a live connection."""
        ...

    @property
    def last_error(self) -> str | None:
        """Latest connection error message, cleared on successful connect."""
        ...

    def on(self, event: str, handler: ProgressHandler) -> None:
        """Attach a handler for a progress event."""
        ...

    def off(self, event: str, handler: ProgressHandler) -> None:
        """Detach one previously attached handler."""
        ...

    def add_error_listener(self, listener: ErrorListener) -> Callable[[], None]:
        """Register a connection-error listener; returns its remover."""
        ...


def _error_text(error: object) -> str:
    if isinstance(error, Mapping):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    if isinstance(error, BaseException) and error.args:
        return str(error.args[0]) or type(error).__name__
    return str(error) or "Connection error"


class ProgressChannel:
    """Persistent, lazily connected Socket.IO progress channel.

    Args:
        url: Channel base URL (without the ``/socket.io`` path).
        path: Socket.IO endpoint path.
        manager_id: Owner id whose room is joined on every connect.
        reconnection_delay: Fixed seconds between connection attempts.
        connect_timeout: Seconds to wait for the handshake.
        client: Preconfigured ``socketio.AsyncClient`` (for tests).
    """

    def __init__(
        self,
        url: str,
        *,
        path: str = "/socket.io",
        manager_id: str | None = None,
        reconnection_delay: float = 1.5,
        connect_timeout: float = 20.0,
        client: socketio.AsyncClient | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.path = path
        self.manager_id = manager_id
        self.reconnection_delay = reconnection_delay
        self.connect_timeout = connect_timeout
        self._sio = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=0,
            reconnection_delay=reconnection_delay,
            reconnection_delay_max=reconnection_delay,
            randomization_factor=0,
            request_timeout=connect_timeout,
            logger=False,
        )
        self._listeners: dict[str, list[ProgressHandler]] = {event: [] for event in PROGRESS_EVENTS}
        self._error_listeners: list[ErrorListener] = []
        self._last_error: str | None = None
        self._error_count = 0
        self._connect_task: asyncio.Task[None] | None = None
        self._connected_event = asyncio.Event()
        self._closed = False

        self._sio.on("connect", self._handle_connect)
        self._sio.on("connect_error", self._handle_connect_error)
        self._sio.on("disconnect", self._handle_disconnect)
        for event in PROGRESS_EVENTS:
            self._sio.on(event, self._make_dispatcher(event))

    @property
    def connected(self) -> bool:
        return bool(self._sio.connected)

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def connect(self, auth_token: str | None = None) -> ProgressChannel:
        """Start connecting in the background; idempotent.

        Must be called from a running event loop.  A second call returns
        this same channel without opening another connection.

        Args:
            auth_token: Optional bearer token for the handshake.

        Returns:
            This channel.
        """
        if self._closed:
            msg = "Progress channel has been closed"
            raise RuntimeError(msg)
        if self._connect_task is None:
            self._connect_task = asyncio.get_running_loop().create_task(self._connect_loop(auth_token))
        return self

    async def _connect_loop(self, auth_token: str | None) -> None:
        attempt = 0
        while not self._closed:
            attempt += 1
            errors_before = self._error_count
            try:
                await self._sio.connect(
                    self.url,
                    auth={"token": auth_token} if auth_token else None,
                    transports=["polling", "websocket"],
                    socketio_path=self.path,
                    wait_timeout=self.connect_timeout,
                )
                return
            except ChannelConnectionError as exc:
                # connect_error usually fired first with the server's own message.
                if self._error_count == errors_before:
                    self._record_error(exc)
                logger.warning(
                    "Progress channel connect attempt {} failed: {}; retrying in {}s",
                    attempt,
                    exc,
                    self.reconnection_delay,
                )
            except Exception as exc:
                self._record_error(exc)
                logger.warning(
                    "Progress channel connect attempt {} raised {}: {}; retrying in {}s",
                    attempt,
                    type(exc).__name__,
                    exc,
                    self.reconnection_delay,
                )
            await asyncio.sleep(self.reconnection_delay)

    async def wait_connected(self, timeout: float | None = None) -> bool:
        """Wait until the channel is connected.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely.

        Returns:
            True if connected, False if the timeout expired first.
        """
        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout)
        except TimeoutError:
            return False
        return True

    def on(self, event: str, handler: ProgressHandler) -> None:
        if event not in self._listeners:
            msg = f"Unsupported progress event: {event}"
            raise ValueError(msg)
        self._listeners[event].append(handler)

    def off(self, event: str, handler: ProgressHandler) -> None:
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def add_error_listener(self, listener: ErrorListener) -> Callable[[], None]:
        self._error_listeners.append(listener)

        def remove() -> None:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

        return remove

    async def close(self) -> None:
        """Stop reconnecting and disconnect."""
        self._closed = True
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._connect_task
        # Also aborts the client's own reconnect loop after a dropped connection.
        await self._sio.shutdown()
        self._connected_event.clear()
        logger.info("Progress channel closed")

    def _make_dispatcher(self, event: str) -> Callable[[Any], None]:
        def dispatch(payload: Any) -> None:
            self.dispatch(event, payload)

        return dispatch

    def dispatch(self, event: str, payload: Any) -> None:
        """Deliver one payload to every listener of ``event``.

        Payloads without a ``jobId`` are dropped.  A failing listener is
        logged and does not prevent delivery to the others.
        """
        if extract_job_id(payload) is None:
            return
        for handler in list(self._listeners.get(event, [])):
            try:
                handler(payload)
            except Exception:
                logger.exception("Progress listener failed for {}", event)

    async def _handle_connect(self) -> None:
        self._last_error = None
        self._connected_event.set()
        logger.info("Progress channel connected: {}", self._sio.sid)
        if self.manager_id:
            try:
                await self._sio.emit("join", self.manager_id)
            except SocketIOError as exc:
                logger.warning("Failed to join room {}: {}", self.manager_id, exc)

    def _handle_connect_error(self, data: Any = None) -> None:
        self._record_error(data)
        logger.warning("Progress channel connect_error: {}", self._last_error)

    def _handle_disconnect(self, *args: Any) -> None:
        self._connected_event.clear()
        logger.info("Progress channel disconnected")

    def _record_error(self, error: object) -> None:
        self._last_error = _error_text(error)
        self._error_count += 1
        for listener in list(self._error_listeners):
            try:
                listener(self._last_error)
            except Exception:
                logger.exception("Channel error listener failed")
