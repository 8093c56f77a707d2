"""
Handles the Socket.IO commands the remote debugger sends to the app.

This module centralizes the inbound side of the debugger connection: turning
console forwarding on and off, answering language model requests and
replaying requests typed into the debugger. It is registered by the debugger
plugin once the transport exists.
"""
import logging
from typing import Any

from data_models import DebuggerEvent
from log_interceptor import console_interceptor
from pipeline import App
from replayer import replay
from transport import DebuggerTransport


def register_events(transport: DebuggerTransport, debugger: Any, app: App, interceptor: Any = None) -> None:
    """
    Registers all inbound event handlers on the transport.

    Args:
        transport: The debugger connection.
        debugger: The JovoDebugger plugin, which answers language model requests.
        app: The application replayed requests are submitted to.
        interceptor: The console interceptor to arm. Defaults to the process-wide one.
    """
    interceptor = interceptor or console_interceptor

    @transport.on(DebuggerEvent.DEBUGGING_AVAILABLE)
    def handle_debugging_available(*args: Any) -> None:
        """Starts forwarding console output to the debugger."""
        logging.info("Debugger is listening.")
        interceptor.arm(transport)

    @transport.on(DebuggerEvent.DEBUGGING_UNAVAILABLE)
    def handle_debugging_unavailable(*args: Any) -> None:
        """Stops forwarding console output until the debugger is back."""
        interceptor.pause()
        logging.info("Debugger stopped listening.")

    @transport.on(DebuggerEvent.DEBUGGER_LANGUAGE_MODEL_REQUEST)
    def handle_language_model_request(*args: Any) -> None:
        debugger.send_language_model()

    @transport.on(DebuggerEvent.DEBUGGER_REQUEST)
    def handle_debugger_request(request: dict) -> None:
        """Runs a request from the debugger through the app like a live one."""
        replay(app, request)
