import pytest

from serve import create_app
from webhook import create_webhook


@pytest.fixture
def client():
    webhook = create_webhook(create_app(argv=[]))
    webhook.config["TESTING"] = True
    return webhook.test_client()


def test_launch_request_returns_the_greeting(client):
    response = client.post("/webhook", json={"type": "LAUNCH"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["platform"] == "core"
    assert body["output"] == [{"message": "Hello World! What's your name?"}]
    assert body["context"]["session"] == {"end": False, "data": {"turns": 1}}


def test_name_intent_stores_the_name_and_ends_the_session(client):
    response = client.post(
        "/webhook",
        json={
            "type": "INTENT",
            "intent": "MyNameIsIntent",
            "entities": {"name": "Sam"},
            "session": {"data": {"turns": 1}},
        },
    )

    body = response.get_json()
    assert body["output"] == [{"message": "Hey Sam, nice to meet you!"}]
    assert body["context"]["session"]["end"] is True
    assert body["context"]["session"]["data"]["turns"] == 2
    assert body["context"]["user"] == {"data": {"name": "Sam"}}


def test_requests_typed_into_the_debugger_are_answered_by_its_platform(client):
    response = client.post("/webhook", json={"type": "END", "platform": "debugger"})

    body = response.get_json()
    assert body["platform"] == "debugger"
    assert body["output"] == []


def test_non_object_body_is_rejected(client):
    response = client.post("/webhook", data="not json", content_type="text/plain")

    assert response.status_code == 400


def test_unknown_platform_is_rejected(client):
    response = client.post("/webhook", json={"type": "LAUNCH", "platform": "alexa"})

    assert response.status_code == 400
    assert "No platform can handle the request" in response.get_json()["error"]


def test_health(client):
    response = client.get("/health")

    assert response.get_json() == {"status": "ok"}
