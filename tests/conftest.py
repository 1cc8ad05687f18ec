"""
Pytest configuration and fixtures.
"""
import io
import json
import urllib.error
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from sestra import transport

BASE_URL = "https://api.test.com"
API_KEY = "sk_test_api_key_12345"


def iso_in(seconds: int) -> str:
    moment = datetime.now(timezone.utc) + timedelta(seconds=seconds)
    return moment.isoformat().replace("+00:00", "Z")


class RecordedRequest:
    def __init__(self, req, timeout) -> None:
        self.url = req.full_url
        self.method = req.get_method()
        self.headers = {key.lower(): value for key, value in req.header_items()}
        self.body = json.loads(req.data.decode("utf-8")) if req.data else None
        self.timeout = timeout


class FakeResponse:
    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self._body = body.encode("utf-8")

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info) -> None:
        return None


class FakeUrlopen:
    """
    Stands in for ``urllib.request.urlopen`` and replays queued responses.
    """

    def __init__(self) -> None:
        self.requests: List[RecordedRequest] = []
        self._queue: List[Any] = []

    def respond(self, payload: Any = None, status: int = 200, raw: Optional[str] = None) -> None:
        body = raw if raw is not None else json.dumps(payload)
        self._queue.append((status, body))

    def fail(self, exc: BaseException) -> None:
        self._queue.append(exc)

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]

    def __call__(self, req, timeout=None):
        self.requests.append(RecordedRequest(req, timeout))
        if not self._queue:
            raise AssertionError(f"Unexpected request to {req.full_url}")
        item = self._queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        status, body = item
        if status >= 400:
            raise urllib.error.HTTPError(
                req.full_url, status, "error", None, io.BytesIO(body.encode("utf-8"))
            )
        return FakeResponse(status, body)


@pytest.fixture
def fake_http(monkeypatch) -> FakeUrlopen:
    fake = FakeUrlopen()
    monkeypatch.setattr(transport.urllib.request, "urlopen", fake)
    return fake


@pytest.fixture
def future_session_payload() -> Dict[str, Any]:
    return {
        "token": "test-token-123",
        "reference_id": "ref-123",
        "expires_at": iso_in(3600),
        "calls_remaining": 100,
    }
