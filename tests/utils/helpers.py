from typing import Any

import httpx

from chat_engine.messaging.events import ChatEvent, InMemoryEventSink


def event_names(sink: InMemoryEventSink) -> list[str]:
    return [event.name for event in sink.events]


def last_event(sink: InMemoryEventSink, event_type: type[ChatEvent]) -> Any:
    matching = sink.of_type(event_type)
    assert matching, f"no {event_type.__name__} was emitted"
    return matching[-1]


def assert_error_response(
    response: httpx.Response, status_code: int, code: str
) -> dict[str, Any]:
    assert response.status_code == status_code
    data = response.json()
    assert data["success"] is False
    assert data["error"]["code"] == code
    assert "message" in data["error"]
    error: dict[str, Any] = data["error"]
    return error
