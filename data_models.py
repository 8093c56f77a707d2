"""
Defines the core data structures for the debugger bridge using Pydantic.

This module provides the validated models that travel between the app and the
remote debugger: the configuration of the debugger itself, the envelope every
outbound message is wrapped in, and the shape of a single observed update.
Keeping these in one place makes the wire format explicit.
"""
from enum import Enum
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from config import (
    DEBUGGER_JSON_PATH,
    IGNORED_PROPERTIES,
    LANGUAGE_MODEL_ENABLED,
    LANGUAGE_MODEL_PATH,
    WEBHOOK_URL,
    is_debugger_enabled,
)


class DebuggerEvent(str, Enum):
    """Names of the Socket.IO events exchanged with the remote debugger."""

    DEBUGGING_AVAILABLE = "debugging.available"
    DEBUGGING_UNAVAILABLE = "debugging.unavailable"

    DEBUGGER_REQUEST = "debugger.request"
    DEBUGGER_LANGUAGE_MODEL_REQUEST = "debugger.language-model-request"

    APP_LANGUAGE_MODEL_RESPONSE = "app.language-model-response"
    APP_DEBUGGER_CONFIG_RESPONSE = "app.debugger-config-response"
    APP_CONSOLE_LOG = "app.console-log"
    APP_REQUEST = "app.request"
    APP_RESPONSE = "app.response"

    APP_JOVO_UPDATE = "app.jovo-update"


class DebuggerConfig(BaseModel):
    """
    Settings for the debugger plugin.

    Defaults come from config.py; only `enabled` depends on how the process
    was launched.
    """

    # Whether the debugger connects at all.
    enabled: bool = False
    # The Socket.IO endpoint of the remote debugger.
    webhook_url: str = WEBHOOK_URL
    # Feature flag for answering language model requests.
    language_model_enabled: bool = LANGUAGE_MODEL_ENABLED
    # Directory holding the per-locale model files, relative to the working directory.
    language_model_path: Optional[str] = LANGUAGE_MODEL_PATH
    # Location of the debugger.json file, relative to the working directory.
    debugger_json_path: Optional[str] = DEBUGGER_JSON_PATH
    # Conversation fields that are never wrapped and never reported.
    ignored_properties: list[str] = Field(default_factory=lambda: list(IGNORED_PROPERTIES))

    @classmethod
    def from_argv(cls, argv: Optional[Sequence[str]] = None, **overrides: Any) -> "DebuggerConfig":
        """Builds a config whose `enabled` flag is derived from the launch arguments."""
        overrides.setdefault("enabled", is_debugger_enabled(argv))
        return cls(**overrides)


class UpdateData(BaseModel):
    """
    A single observed field-level change.

    `path` is the dot-joined chain of field names from the conversation root,
    `key` the last segment of it, `value` the already materialized new value.
    """

    key: str
    value: Any = None
    path: str


class DebuggerPayload(BaseModel):
    """
    The envelope for request, response and update messages.

    Serialized with `by_alias=True` so the wire carries `requestId`.
    """

    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(..., alias="requestId", description="Correlation id of the originating request.")
    data: Any = Field(default=None, description="The request, response or update being reported.")

    def to_wire(self) -> dict[str, Any]:
        """Returns the JSON-ready dictionary sent over the socket."""
        return self.model_dump(by_alias=True)
