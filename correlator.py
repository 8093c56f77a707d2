"""
Correlates everything observed during a request with that request.

The id has to exist before the Conversation does, because the Conversation
is wrapped the moment it is created and its first updates already carry the
id. The correlator therefore runs as a mount hook on the HandleRequest.
"""
import logging
import uuid
from typing import Any, Iterable, Iterator

from proxies import unwrap


def is_empty_value(value: Any) -> bool:
    """True for values that carry no information for the starting snapshot."""
    return not unwrap(value)


class RequestCorrelator:
    """Stamps request ids and produces the starting snapshot of a Conversation."""

    def __init__(self, ignored_properties: Iterable[str] = ()):
        self.ignored_properties = frozenset(ignored_properties)

    def stamp(self, handle_request: Any) -> str:
        """Gives the request a fresh, never reused id."""
        request_id = str(uuid.uuid4())
        handle_request.debugger_request_id = request_id
        logging.debug(f"Assigned debugger request id {request_id}.")
        return request_id

    def initial_state(self, conversation: Any) -> Iterator[tuple[str, Any]]:
        """
        Yields every populated top-level field of a freshly created Conversation.

        Ignored fields, falsy values and empty containers are skipped.
        """
        target = unwrap(conversation)
        fields = type(target).model_fields if hasattr(type(target), "model_fields") else vars(target)
        for key in fields:
            if key in self.ignored_properties:
                continue
            value = getattr(target, key, None)
            if is_empty_value(value):
                continue
            yield key, value
