"""
Forwards the app's console output to the remote debugger.

Once the debugger signals that it is listening, everything written to
stdout/stderr and every record handled by the root logger is additionally
sent as an `app.console-log` message together with the stack it was written
from. The original destinations keep receiving the output unchanged.
"""
import logging
import sys
import threading
import traceback
from typing import Any, Callable, Optional

from data_models import DebuggerEvent

Sink = Callable[[str], None]


class ForwardingStream:
    """
    A text stream that hands every write to a sink before passing it on.

    Everything except `write` is delegated to the wrapped stream, and the
    return value of `write` is the wrapped stream's.
    """

    def __init__(self, stream: Any, sink: Sink):
        self.stream = stream
        self.sink = sink

    def write(self, text: str) -> Any:
        self.sink(text)
        return self.stream.write(text)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.stream, name)


class DebuggerLogHandler(logging.Handler):
    """A logging handler that formats records and hands them to a sink."""

    def __init__(self, sink: Sink, level: int = logging.NOTSET):
        super().__init__(level)
        self.sink = sink
        self.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.sink(self.format(record) + "\n")
        except Exception:
            self.handleError(record)


class ConsoleLogInterceptor:
    """
    Installs the forwarding streams and log handler, once per process.

    Args:
        namespace: The object whose `stdout`/`stderr` are replaced. Defaults to sys.
        logger: The logger the handler is attached to. Defaults to the root logger.
    """

    def __init__(self, namespace: Any = sys, logger: Optional[logging.Logger] = None):
        self.namespace = namespace
        self.logger = logger or logging.getLogger()
        self.armed = False
        self.paused = False
        self.transport: Any = None
        self._originals: dict[str, Any] = {}
        self._handler: Optional[DebuggerLogHandler] = None
        self._local = threading.local()

    def arm(self, transport: Any) -> None:
        """
        Starts forwarding to `transport`. Arming again only resumes a paused
        interceptor; the streams are never wrapped twice.
        """
        self.paused = False
        if self.armed:
            return
        self.transport = transport
        for name in ("stdout", "stderr"):
            original = getattr(self.namespace, name)
            self._originals[name] = original
            setattr(self.namespace, name, ForwardingStream(original, self.forward))
        self._handler = DebuggerLogHandler(self.forward)
        self.logger.addHandler(self._handler)
        self.armed = True
        logging.info("Console output is now forwarded to the debugger.")

    def pause(self) -> None:
        self.paused = True

    def disarm(self) -> None:
        """Restores the original streams and removes the log handler."""
        if not self.armed:
            return
        for name, original in self._originals.items():
            setattr(self.namespace, name, original)
        self._originals.clear()
        if self._handler is not None:
            self.logger.removeHandler(self._handler)
            self._handler = None
        self.transport = None
        self.armed = False

    def forward(self, text: str) -> None:
        """
        Sends one write to the debugger.

        Writes made while a forward is in progress on the same thread (e.g. the
        transport logging a send failure) are not forwarded again.
        """
        if self.paused or self.transport is None or getattr(self._local, "forwarding", False):
            return
        self._local.forwarding = True
        try:
            stack = "".join(traceback.format_stack()[:-1])
            self.transport.emit(DebuggerEvent.APP_CONSOLE_LOG, (text, stack))
        finally:
            self._local.forwarding = False


# Create a single, global instance to be used by the entire application
console_interceptor = ConsoleLogInterceptor()
