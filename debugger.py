"""
The debugger plugin: wires correlation, observation and the transport into the app.

Installed like any other plugin:

    app.use(JovoDebugger(DebuggerConfig.from_argv()))
    app.initialize()

When enabled it connects to the remote debugger, stamps every request with a
correlation id, observes the Conversation of every request and streams the
request, the response and every change in between.
"""
import atexit
import logging
from typing import Any, Optional

import socketio

from correlator import RequestCorrelator
from data_models import DebuggerConfig, DebuggerEvent, DebuggerPayload
from emitter import emit_update
from errors import DebuggerSetupError, LanguageModelError
from events import register_events
from language_model import load_debugger_config, load_language_model
from log_interceptor import ConsoleLogInterceptor, console_interceptor
from pipeline import App, CorePlatform, HandleRequest
from proxies import materialize, observe
from session_models import Conversation
from transport import DebuggerTransport, retrieve_webhook_id

DEBUGGER_PLATFORM = "debugger"
# Handles that are reported by reference, never observed.
OPAQUE_TYPES = (App, HandleRequest, CorePlatform, Conversation)


class JovoDebugger:
    """
    Streams the live state of every request to the remote debugger.

    The app code is not aware of it: the Conversation it gets is an observed
    view that behaves like the real one.
    """

    def __init__(self, config: Optional[DebuggerConfig] = None, interceptor: Optional[ConsoleLogInterceptor] = None):
        self.config = config or DebuggerConfig.from_argv()
        self.interceptor = interceptor or console_interceptor
        self.transport: Optional[DebuggerTransport] = None
        self.correlator = RequestCorrelator(self.config.ignored_properties)

    def install(self, app: App) -> None:
        """Adds the platform that understands requests typed into the debugger."""
        if not any(platform.name == DEBUGGER_PLATFORM for platform in app.platforms):
            app.use_platform(CorePlatform(DEBUGGER_PLATFORM))

    def initialize(self, app: App, client: Optional[socketio.Client] = None) -> None:
        """
        Connects to the debugger and hooks into the pipeline.

        Raises:
            DebuggerSetupError: If the webhook id can't be resolved. Nothing is
                connected in that case.
        """
        if not self.config.enabled:
            logging.debug("Debugger is disabled.")
            return

        webhook_id = retrieve_webhook_id()
        self.transport = DebuggerTransport(self.config.webhook_url, client)
        register_events(self.transport, self, app, self.interceptor)
        self.transport.connect(webhook_id)
        atexit.register(self.transport.disconnect)

        app.mount_hooks.append(self.correlator.stamp)
        app.conversation_hooks.append(self.observe_conversation)
        app.middlewares.use("request.start", self.on_request)
        app.middlewares.use("response.end", self.on_response)

    def emit_update(self, request_id: str, key: str, value: Any, path: str) -> None:
        emit_update(self.transport, request_id, key, value, path)

    def observe_conversation(self, conversation: Conversation, handle_request: HandleRequest) -> Any:
        """
        Reports the starting state of a fresh Conversation and returns the
        observed view the rest of the pipeline works with.
        """
        request_id = handle_request.debugger_request_id
        for key, value in self.correlator.initial_state(conversation):
            snapshot = materialize(value, OPAQUE_TYPES, self.config.ignored_properties)
            self.emit_update(request_id, key, snapshot, key)
        return observe(
            conversation,
            request_id,
            self.emit_update,
            ignored_properties=self.config.ignored_properties,
            opaque_types=OPAQUE_TYPES,
        )

    def on_request(self, conversation: Any) -> None:
        self._emit_lifecycle(DebuggerEvent.APP_REQUEST, conversation, conversation.request)

    def on_response(self, conversation: Any) -> None:
        self._emit_lifecycle(DebuggerEvent.APP_RESPONSE, conversation, conversation.response)

    def _emit_lifecycle(self, event: DebuggerEvent, conversation: Any, data: Any) -> None:
        if self.transport is None:
            raise DebuggerSetupError(f"Can not emit '{event.value}': the debugger transport was never created.")
        payload = DebuggerPayload(
            request_id=conversation.handle_request.debugger_request_id,
            data=materialize(data, OPAQUE_TYPES, self.config.ignored_properties),
        )
        self.transport.emit(event, payload.to_wire())

    def send_language_model(self) -> None:
        """
        Answers a language model request.

        Does nothing if the feature is off or unconfigured. Problems reading the
        models are logged and the request is dropped.
        """
        if not self.config.language_model_enabled:
            return
        if not self.config.language_model_path or not self.config.debugger_json_path:
            return
        if self.transport is None:
            logging.warning("Can not emit language-model: Transport is not available.")
            return
        try:
            language_model = load_language_model(self.config.language_model_path)
        except LanguageModelError as e:
            logging.warning(f"Can not emit language-model: {e}")
            return
        self.transport.emit(DebuggerEvent.APP_LANGUAGE_MODEL_RESPONSE, language_model)

        debugger_config = load_debugger_config(self.config.debugger_json_path)
        if debugger_config is not None:
            self.transport.emit(DebuggerEvent.APP_DEBUGGER_CONFIG_RESPONSE, debugger_config)
