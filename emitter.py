"""
Turns observed mutations into `app.jovo-update` messages.
"""
from typing import Any, Optional

from data_models import DebuggerEvent, DebuggerPayload, UpdateData


def emit_update(transport: Optional[Any], request_id: str, key: str, value: Any, path: str) -> None:
    """
    Sends one update to the remote debugger.

    Each mutation is its own message, sent in the order it was observed.
    Without a transport the update is dropped silently.

    Args:
        transport: The DebuggerTransport, or None if the debugger is not connected.
        request_id: Correlation id of the request whose graph changed.
        key: The name of the changed field.
        value: The new value, already materialized.
        path: Dotted path of the field from the conversation root.
    """
    if transport is None:
        return
    update = UpdateData(key=key, value=value, path=path)
    payload = DebuggerPayload(request_id=request_id, data=update.model_dump())
    transport.emit(DebuggerEvent.APP_JOVO_UPDATE, payload.to_wire())
