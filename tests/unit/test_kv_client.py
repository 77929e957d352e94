"""Unit tests for the Redis REST durable-tier client."""

from __future__ import annotations

from typing import Any

import pytest

from transguard.errors import StorageUnavailableError
from transguard.storage import kv_client as kv_http
from transguard.storage.kv_client import RestKVClient, create_kv_client


class _MockJSONResponse:
    """Minimal requests response returning a JSON payload."""

    def __init__(self, payload: Any, status_code: int = 200) -> None:
        """Initialize response with decoded payload and HTTP status."""

        self._payload = payload
        self.status_code = status_code

    def json(self) -> Any:
        """Return the payload, raising like requests for non-JSON bodies."""

        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        """Raise HTTPError for failure statuses."""

        if self.status_code >= 400:
            raise kv_http.requests.HTTPError(f"HTTP {self.status_code}", response=self)


def _install(monkeypatch: pytest.MonkeyPatch, *responses: Any) -> list[dict[str, Any]]:
    """Patch `requests.post` to return responses in order and record calls."""

    calls: list[dict[str, Any]] = []
    queue = list(responses)

    def _fake_post(url: str, **kwargs: Any) -> Any:
        calls.append({"url": url, **kwargs})
        response = queue.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    monkeypatch.setattr(kv_http.requests, "post", _fake_post)
    return calls


def test_set_and_get_round_trip_json_text(monkeypatch: pytest.MonkeyPatch) -> None:
    """Values are stored as JSON text with EX and decoded on read."""

    calls = _install(
        monkeypatch,
        _MockJSONResponse({"result": "OK"}),
        _MockJSONResponse({"result": '"你好"'}),
    )
    client = RestKVClient(url="https://kv.example/", token="tok")

    client.set("translation:abc", "你好", ex_seconds=86400)
    value = client.get("translation:abc")

    assert value == "你好"
    assert calls[0]["url"] == "https://kv.example"
    assert calls[0]["json"] == ["SET", "translation:abc", '"你好"', "EX", "86400"]
    assert calls[0]["headers"]["Authorization"] == "Bearer tok"
    assert calls[1]["json"] == ["GET", "translation:abc"]


def test_counter_commands_return_integers(monkeypatch: pytest.MonkeyPatch) -> None:
    """INCR, EXPIRE, and TTL results are coerced to Python types."""

    _install(
        monkeypatch,
        _MockJSONResponse({"result": 3}),
        _MockJSONResponse({"result": 1}),
        _MockJSONResponse({"result": 42}),
        _MockJSONResponse({"result": None}),
    )
    client = RestKVClient(url="https://kv.example", token="tok")

    assert client.incr("rate_limit:1.2.3.4") == 3
    assert client.expire("rate_limit:1.2.3.4", 60) is True
    assert client.ttl("rate_limit:1.2.3.4") == 42
    assert client.get("missing") is None


@pytest.mark.parametrize(
    "response",
    [
        _MockJSONResponse({"error": "WRONGTYPE"}),
        _MockJSONResponse({}, status_code=401),
        _MockJSONResponse(ValueError("not json")),
        _MockJSONResponse(["unexpected"]),
        kv_http.requests.ConnectionError("refused"),
    ],
)
def test_command_failures_raise_storage_unavailable(
    monkeypatch: pytest.MonkeyPatch,
    response: Any,
) -> None:
    """Every transport, HTTP, or payload failure maps to one error type."""

    _install(monkeypatch, response)

    with pytest.raises(StorageUnavailableError):
        RestKVClient(url="https://kv.example", token="tok").get("k")


def test_create_kv_client_requires_url_and_token() -> None:
    """The durable tier is disabled unless both URL and token are set."""

    assert create_kv_client(None, "tok") is None
    assert create_kv_client("https://kv.example", "") is None
    assert isinstance(create_kv_client("https://kv.example", "tok"), RestKVClient)
