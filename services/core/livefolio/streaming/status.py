"""Connection status derived from the streaming channel and upstream health."""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from typing import Callable


logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class StreamState(Enum):
    """Internal streaming channel states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    CLOSED = "closed"  # explicit close(); terminal


_PUBLIC_STATUS = {
    StreamState.DISCONNECTED: ConnectionStatus.DISCONNECTED,
    StreamState.CONNECTING: ConnectionStatus.CONNECTING,
    StreamState.CONNECTED: ConnectionStatus.CONNECTED,
    StreamState.ERROR: ConnectionStatus.ERROR,
    StreamState.CLOSED: ConnectionStatus.DISCONNECTED,
}

StatusListener = Callable[[ConnectionStatus], None]


class ConnectionStatusPublisher:
    """
    Observer hub for the public connection status.

    The status is ``error`` whenever upstream polling is down, otherwise it
    mirrors the stream state. Subscribers are notified synchronously on every
    change; notifications raised from inside a callback are queued and
    delivered after the current one, so every subscriber sees transitions in
    the same order.
    """

    def __init__(self) -> None:
        self._stream_state = StreamState.DISCONNECTED
        self._upstream_available = True
        self._status = ConnectionStatus.DISCONNECTED
        self._listeners: list[StatusListener] = []
        self._pending: deque[ConnectionStatus] = deque()
        self._publishing = False

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def stream_state(self) -> StreamState:
        return self._stream_state

    @property
    def upstream_available(self) -> bool:
        return self._upstream_available

    def set_stream_state(self, state: StreamState) -> None:
        self._stream_state = state
        self._refresh()

    def set_upstream_available(self, available: bool) -> None:
        self._upstream_available = available
        self._refresh()

    def _derive(self) -> ConnectionStatus:
        if not self._upstream_available:
            return ConnectionStatus.ERROR
        return _PUBLIC_STATUS[self._stream_state]

    def _refresh(self) -> None:
        status = self._derive()
        if status == self._status:
            return
        self._status = status
        self._pending.append(status)
        if self._publishing:
            return

        self._publishing = True
        try:
            while self._pending:
                current = self._pending.popleft()
                logger.info(f"Connection status -> {current.value}")
                for listener in list(self._listeners):
                    try:
                        listener(current)
                    except Exception as e:
                        logger.error(f"Status listener failed: {e}", exc_info=True)
        finally:
            self._publishing = False

    def subscribe(self, listener: StatusListener, replay: bool = False) -> Callable[[], None]:
        """
        Register a status listener. Returns an unsubscribe function.

        With ``replay`` the listener immediately receives the current status.
        """
        self._listeners.append(listener)
        if replay:
            listener(self._status)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
