"""
Replays requests pushed by the remote debugger into the app.
"""
import logging
from typing import Any

from pipeline import App, MockServer


def replay(app: App, payload: dict[str, Any]) -> MockServer:
    """
    Handles a debugger-supplied payload exactly like a live request.

    The payload goes through the full pipeline, so it is correlated and
    observed like organic traffic. Errors propagate unchanged.

    Args:
        app: The application to submit the request to.
        payload: The raw request object sent by the debugger.

    Returns:
        The MockServer the request came from, holding the response.
    """
    logging.info(f"Replaying debugger request of type '{payload.get('type')}'.")
    server = MockServer(payload)
    app.handle(server)
    return server
