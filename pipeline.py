"""
A minimal request-handling pipeline for a conversational assistant.

The pipeline turns a raw request into a Conversation, runs the dialog handler
on it and hands the response back to the server that produced the request.
Plugins hook into it at three points:

- mount hooks run on the fresh HandleRequest before anything else exists,
- conversation hooks run right after a platform created the Conversation and
  may replace it (e.g. with an observed view of it),
- named middlewares ("request.start", "response.end") run around the handler.
"""
import logging
from collections import defaultdict
from typing import Any, Callable, Optional

from errors import PipelineError
from session_models import Conversation

Middleware = Callable[[Any], None]
MountHook = Callable[["HandleRequest"], None]
ConversationHook = Callable[[Any, "HandleRequest"], Any]
DialogHandler = Callable[[Any], None]


class Server:
    """The source of a single request and the sink for its response."""

    def __init__(self) -> None:
        self.response: Any = None

    def get_request_object(self) -> dict[str, Any]:
        raise NotImplementedError

    def set_response(self, response: Any) -> None:
        self.response = response


class MockServer(Server):
    """A server for requests that did not arrive over the network."""

    def __init__(self, request: dict[str, Any]):
        super().__init__()
        self.request = request

    def get_request_object(self) -> dict[str, Any]:
        return self.request


class HandleRequest:
    """
    The processing context of one request.

    Created before the Conversation, so anything stamped on it by a mount
    hook is already available when the Conversation is built.
    """

    def __init__(self, app: "App", server: Server):
        self.app = app
        self.server = server
        self.platform: Optional["CorePlatform"] = None
        self.conversation: Any = None
        # Set by the debugger's correlator.
        self.debugger_request_id: Optional[str] = None


class MiddlewareCollection:
    """Named lists of middlewares, run in registration order."""

    def __init__(self) -> None:
        self._middlewares: dict[str, list[Middleware]] = defaultdict(list)

    def use(self, name: str, middleware: Middleware) -> None:
        self._middlewares[name].append(middleware)

    def run(self, name: str, conversation: Any) -> None:
        for middleware in self._middlewares.get(name, []):
            middleware(conversation)

    def has(self, name: str) -> bool:
        return bool(self._middlewares.get(name))


class CorePlatform:
    """
    A platform that understands the generic request format:

        {"type": "LAUNCH" | "INTENT" | "TEXT" | "END", "intent": ..., "text": ...,
         "locale": ..., "session": {...}, "user": {...}, "platform": <name>}
    """

    def __init__(self, name: str = "core"):
        self.name = name

    def is_relevant(self, payload: dict[str, Any]) -> bool:
        return isinstance(payload, dict) and "type" in payload and payload.get("platform", self.name) == self.name

    def create_conversation(self, app: "App", handle_request: HandleRequest, payload: dict[str, Any]) -> Conversation:
        session = payload.get("session") or {}
        return Conversation(
            app=app,
            handle_request=handle_request,
            platform=self,
            request=dict(payload),
            input={key: payload[key] for key in ("type", "intent", "text", "entities") if key in payload},
            session=dict(session.get("data") or {}),
            user=dict(payload.get("user") or {}),
        )

    def build_response(self, conversation: Any) -> dict[str, Any]:
        session = conversation.session
        return {
            "version": "4.0.0",
            "platform": self.name,
            "output": list(conversation.output),
            "context": {
                "session": {"end": bool(session.get("end", False)), "data": dict(session)},
                "user": {"data": dict(conversation.user)},
            },
        }

    def __repr__(self) -> str:
        return f"CorePlatform(name={self.name!r})"


class App:
    """
    The assistant application: a set of platforms, plugins and one dialog handler.
    """

    def __init__(self, handler: DialogHandler, platforms: Optional[list[CorePlatform]] = None):
        self.handler = handler
        self.platforms: list[CorePlatform] = list(platforms or [])
        self.plugins: list[Any] = []
        self.middlewares = MiddlewareCollection()
        self.mount_hooks: list[MountHook] = []
        self.conversation_hooks: list[ConversationHook] = []

    def use(self, plugin: Any) -> "App":
        """Registers a plugin and lets it install itself."""
        self.plugins.append(plugin)
        plugin.install(self)
        return self

    def use_platform(self, platform: CorePlatform) -> "App":
        self.platforms.append(platform)
        return self

    def initialize(self) -> None:
        """Initializes every plugin. Failures abort startup."""
        for plugin in self.plugins:
            plugin.initialize(self)

    def find_platform(self, payload: dict[str, Any]) -> CorePlatform:
        for platform in self.platforms:
            if platform.is_relevant(payload):
                return platform
        raise PipelineError(f"No platform can handle the request: {payload!r}")

    def handle(self, server: Server) -> Any:
        """
        Runs one request through the pipeline.

        Errors raised by hooks, middlewares or the dialog handler propagate
        to the caller.

        Returns:
            The response that was handed to the server.
        """
        handle_request = HandleRequest(self, server)
        for hook in self.mount_hooks:
            hook(handle_request)

        payload = server.get_request_object()
        platform = self.find_platform(payload)
        handle_request.platform = platform

        conversation = platform.create_conversation(self, handle_request, payload)
        for conversation_hook in self.conversation_hooks:
            conversation = conversation_hook(conversation, handle_request)
        handle_request.conversation = conversation

        self.middlewares.run("request.start", conversation)
        self.handler(conversation)
        response = platform.build_response(conversation)
        conversation.response = response
        self.middlewares.run("response.end", conversation)

        server.set_response(response)
        logging.debug(f"Handled {payload.get('type')} request on platform '{platform.name}'.")
        return response
