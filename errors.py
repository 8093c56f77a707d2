"""
Exception types raised by the debugger bridge and its host pipeline.
"""


class DebuggerError(RuntimeError):
    """Base error for everything raised by the debugger bridge."""


class DebuggerSetupError(DebuggerError):
    """A setup invariant is broken and debugging cannot proceed."""


class LanguageModelError(DebuggerError):
    """The language model assets could not be read."""


class PipelineError(RuntimeError):
    """The host pipeline could not handle a request."""
