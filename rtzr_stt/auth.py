"""Access-token authentication for the RTZR API.

WHY: Every RTZR endpoint requires a short-lived Bearer token obtained by
exchanging the client id and secret at /v1/authenticate. Callers should
not have to fetch or refresh that token themselves.

HOW: RTZRAuth is an httpx.Auth flow. Before each request it checks the
cached token; if the token is missing or about to expire it first yields
a token request (httpx sends it through the same transport), stores the
new token, then yields the original request with the Authorization
header attached.

RULES:
- Token is refreshed when it expires within _TOKEN_REFRESH_MARGIN_S
- A rejected or malformed token response (missing access_token or
  expire_at) raises AuthenticationError
- The flow never retries the original request
"""

from __future__ import annotations

import json
import logging
import time
from typing import Generator

import httpx

from rtzr_stt.api.errors import AuthenticationError

logger = logging.getLogger(__name__)

_TOKEN_REFRESH_MARGIN_S = 5 * 60


class RTZRAuth(httpx.Auth):
    """httpx auth flow that attaches (and refreshes) an RTZR access token."""

    requires_response_body = True

    def __init__(self, client_id: str, client_secret: str, token_url: str) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._access_token: str | None = None
        self._expire_at = 0.0

    def _token_expired(self) -> bool:
        if self._access_token is None:
            return True
        return time.time() + _TOKEN_REFRESH_MARGIN_S >= self._expire_at

    def _build_token_request(self) -> httpx.Request:
        return httpx.Request(
            "POST",
            self._token_url,
            data={"client_id": self._client_id, "client_secret": self._client_secret},
        )

    def _update_token(self, response: httpx.Response) -> None:
        if response.status_code != 200:
            raise AuthenticationError(
                f"Token request rejected ({response.status_code}): {response.text}"
            )
        try:
            data = response.json()
            access_token = data["access_token"]
            expire_at = float(data["expire_at"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise AuthenticationError(
                f"Malformed token response: {response.text}"
            ) from exc
        self._access_token = access_token
        self._expire_at = expire_at
        logger.info("Acquired RTZR access token (expires at %.0f)", self._expire_at)

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        if self._token_expired():
            token_response = yield self._build_token_request()
            self._update_token(token_response)
        request.headers["Authorization"] = f"Bearer {self._access_token}"
        yield request
