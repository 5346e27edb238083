"""Shared test fixtures for the rtzr_stt test suite.

WHY: Client tests need an RTZR server that answers authentication,
submission, and status requests deterministically, and that records
every request so tests can inspect bodies and call counts.

HOW: StubServer is a request handler for httpx.MockTransport. Tests
configure the submission response and a queue of status responses, then
build an RTZRClient around the stub via the make_client fixture.

RULES:
- The real RTZR API is never called
- Every request (including token requests) is recorded in order
- Status responses are consumed in order; the last one repeats
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from rtzr_stt.api.client import RTZRClient

BASE_URL = "https://stt.test"
RESULT_ID = "job-123"


def completed_body(result_id: str = RESULT_ID) -> Dict[str, Any]:
    return {
        "id": result_id,
        "status": "completed",
        "results": {
            "utterances": [
                {"start_at": 0, "duration": 1200, "msg": "안녕하세요", "spk": 0, "lang": "ko"},
                {"start_at": 1300, "duration": 900, "msg": "반갑습니다", "spk": 1, "lang": "ko"},
            ]
        },
    }


class StubServer:
    """Configurable fake of the RTZR auth + transcribe endpoints."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.submit_response: Tuple[int, Any] = (200, {"id": RESULT_ID})
        self.status_responses: List[Tuple[int, Any]] = [(200, completed_body())]
        self.token_response: Tuple[int, Any] = (
            200,
            {"access_token": "token-abc", "expire_at": 4102444800},
        )
        self.error: Optional[Exception] = None

    def queue_statuses(self, *statuses: str) -> None:
        responses = []
        for status in statuses:
            if status == "completed":
                responses.append((200, completed_body()))
            else:
                responses.append((200, {"id": RESULT_ID, "status": status}))
        self.status_responses = responses

    @property
    def transcribe_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith("/v1/transcribe")]

    @staticmethod
    def _respond(reply: Tuple[int, Any]) -> httpx.Response:
        status, body = reply
        if isinstance(body, (dict, list)):
            return httpx.Response(status, content=json.dumps(body).encode("utf-8"))
        return httpx.Response(status, content=body if isinstance(body, bytes) else str(body).encode("utf-8"))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error

        path = request.url.path
        if path == "/v1/authenticate":
            return self._respond(self.token_response)
        if request.method == "POST" and path == "/v1/transcribe":
            return self._respond(self.submit_response)
        if request.method == "GET" and path.startswith("/v1/transcribe/"):
            reply = self.status_responses[0]
            if len(self.status_responses) > 1:
                self.status_responses.pop(0)
            return self._respond(reply)
        return httpx.Response(404, content=b"not found")


@pytest.fixture
def stub_server() -> StubServer:
    return StubServer()


@pytest.fixture
def make_client(stub_server):
    """Factory building an RTZRClient wired to the stub server."""

    def _make(**kwargs: Any) -> RTZRClient:
        kwargs.setdefault("client_id", "test-id")
        kwargs.setdefault("client_secret", "test-secret")
        kwargs.setdefault("base_url", BASE_URL)
        kwargs.setdefault("poll_interval", 0.0)
        kwargs.setdefault("transport", httpx.MockTransport(stub_server))
        return RTZRClient(**kwargs)

    return _make
