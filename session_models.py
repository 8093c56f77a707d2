"""
Defines the per-request session object of the assistant application.

A Conversation is created by a platform for every inbound request and is the
object graph the dialog handler reads and mutates while producing a response.
It is also the root the debugger observes.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Conversation(BaseModel):
    """
    Represents the live state of one request/response cycle.

    This model acts as a "context object" that is passed to the dialog
    handler, bundling the raw request, the interpreted input, the output
    under construction and the session and user state.
    """

    # Allows the back-references to hold the non-pydantic pipeline objects.
    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Back-references into the pipeline. These are wiring, not state.
    app: Any = None
    handle_request: Any = None
    platform: Any = None

    # The raw request payload as received.
    request: dict[str, Any] = Field(default_factory=dict)
    # The interpreted request, e.g. {"type": "INTENT", "intent": "YesIntent"}.
    input: dict[str, Any] = Field(default_factory=dict)
    # Output messages collected by the handler, in order.
    output: list[Any] = Field(default_factory=list)
    # Session-scoped state, echoed back to the client in the response.
    session: dict[str, Any] = Field(default_factory=dict)
    # Persistent user state.
    user: dict[str, Any] = Field(default_factory=dict)
    # Request-scoped scratch data for the handler.
    data: dict[str, Any] = Field(default_factory=dict)
    # The response returned to the server once handling is complete.
    response: Optional[dict[str, Any]] = None

    def say(self, message: str) -> None:
        """Appends a spoken/displayed message to the output."""
        self.output.append({"message": message})

    def end_session(self) -> None:
        """Marks the session as finished once this response is sent."""
        self.session["end"] = True
