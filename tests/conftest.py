import pytest

from data_models import DebuggerConfig


class FakeSocketClient:
    """Stands in for socketio.Client: records handlers and emitted messages."""

    def __init__(self):
        self.handlers = {}
        self.emitted = []
        self.connected_url = None
        self.disconnected = False

    def on(self, event, handler=None):
        self.handlers[event] = handler
        return handler

    def connect(self, url, **kwargs):
        self.connected_url = url

    def emit(self, event, data=None):
        self.emitted.append((event, data))

    def disconnect(self):
        self.disconnected = True

    def trigger(self, event, *args):
        return self.handlers[event](*args)

    def events(self, name):
        return [data for event, data in self.emitted if event == name]


@pytest.fixture
def fake_client():
    return FakeSocketClient()


@pytest.fixture
def enabled_config():
    return DebuggerConfig(enabled=True)
