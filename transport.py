"""
The persistent Socket.IO connection between the app and the remote debugger.

The transport is created once at startup and shared by every request. It is
deliberately forgiving: connection problems and failed sends are logged and
never raised, so a broken debugger connection can't take the app down. The
only fatal part is resolving the webhook id the connection is tagged with.
"""
import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Callable, Optional
from urllib.parse import urlencode

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError, SocketIOError

from config import CLIENT_TYPE, HOME_CONFIG_PATH
from errors import DebuggerSetupError


class TransportState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


def get_user_home_path() -> str:
    """Returns the user's home directory from the environment."""
    path = os.environ.get("USERPROFILE" if sys.platform == "win32" else "HOME")
    if not path:
        raise DebuggerSetupError("Could not resolve the user's home directory.")
    return path


def retrieve_webhook_id(home: Optional[str] = None) -> str:
    """
    Reads the webhook id from the per-user Jovo config file.

    Args:
        home: The home directory to look in. Defaults to the current user's.

    Returns:
        The webhook uuid the connection is tagged with.

    Raises:
        DebuggerSetupError: If the file is missing, unreadable, malformed or
            has no webhook id.
    """
    home_config_path = os.path.join(home or get_user_home_path(), HOME_CONFIG_PATH)
    try:
        with open(home_config_path, "r", encoding="utf-8") as f:
            home_config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DebuggerSetupError(f"Could not find webhook-id in '{home_config_path}'.") from e

    webhook = home_config.get("webhook") if isinstance(home_config, dict) else None
    webhook_id = webhook.get("uuid") if isinstance(webhook, dict) else None
    if not webhook_id:
        raise DebuggerSetupError(f"Could not find webhook-id in '{home_config_path}'.")
    return webhook_id


def _event_name(event: Any) -> str:
    return event.value if isinstance(event, Enum) else str(event)


class DebuggerTransport:
    """
    Owns the Socket.IO client and the connection state.

    Outbound messages are fire-and-forget. Inbound events are dispatched to
    handlers registered with `on`. There is a single connection attempt and
    no reconnection.
    """

    def __init__(self, url: str, client: Optional[socketio.Client] = None):
        self.url = url
        self.sio = client if client is not None else socketio.Client(reconnection=False)
        self.state = TransportState.DISCONNECTED
        self.sio.on("connect", self._on_connect)
        self.sio.on("disconnect", self._on_disconnect)
        self.sio.on("connect_error", self._on_connect_error)

    @property
    def connected(self) -> bool:
        return self.state is TransportState.CONNECTED

    def connect(self, webhook_id: str) -> bool:
        """
        Opens the connection, tagged with the webhook id and the app role.

        Returns:
            True if the connection was established.
        """
        query = urlencode({"id": webhook_id, "type": CLIENT_TYPE})
        self.state = TransportState.CONNECTING
        logging.info(f"Connecting to the debugger at {self.url}...")
        try:
            self.sio.connect(f"{self.url}?{query}")
        except SocketConnectionError as e:
            self.state = TransportState.ERROR
            logging.error(f"Could not connect to the debugger at {self.url}: {e}")
            return False
        self.state = TransportState.CONNECTED
        return True

    def on(self, event: Any, handler: Optional[Callable[..., Any]] = None):
        """
        Registers a handler for an inbound event.

        Can be used as a plain call or as a decorator, like `socketio.Client.on`.
        """
        name = _event_name(event)
        if handler is None:
            def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
                self.sio.on(name, func)
                return func

            return decorator
        self.sio.on(name, handler)
        return handler

    def emit(self, event: Any, data: Any = None) -> bool:
        """
        Sends a message without waiting for an acknowledgment.

        Returns:
            True if the message was handed to the client, False if it was
            skipped or the send failed.
        """
        name = _event_name(event)
        if not self.connected:
            logging.debug(f"Skipping '{name}': the debugger is not connected.")
            return False
        try:
            self.sio.emit(name, data)
        except SocketIOError as e:
            logging.error(f"Could not send '{name}' to the debugger: {e}")
            return False
        return True

    def disconnect(self) -> None:
        if self.state in (TransportState.CONNECTED, TransportState.CONNECTING):
            self.sio.disconnect()
        self.state = TransportState.DISCONNECTED

    def _on_connect(self) -> None:
        self.state = TransportState.CONNECTED
        logging.info("Connected to the debugger.")

    def _on_disconnect(self, *args: Any) -> None:
        self.state = TransportState.DISCONNECTED
        logging.info("Disconnected from the debugger.")

    def _on_connect_error(self, data: Any = None) -> None:
        self.state = TransportState.ERROR
        logging.error(f"Debugger connection error: {data}")
