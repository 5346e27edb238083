"""Configuration constants, endpoint paths, and .env loading.

WHY: Centralizes every configurable value (API host, endpoint paths,
polling interval, credentials) so they are easy to find and override
without touching the client code.

HOW: python-dotenv loads the .env file on import. Constants are plain
module-level values read from the environment with defaults. The
load_credentials() function gives a clear error when the client id or
secret is missing.

RULES:
- Credentials are loaded from .env / environment, never hardcoded
- All defaults can be overridden via environment variables
- Endpoint paths are relative to RTZR_API_BASE_URL
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the working directory
load_dotenv()

# ---------------------------------------------------------------------------
# API configuration defaults
# ---------------------------------------------------------------------------

RTZR_API_BASE_URL = os.getenv("RTZR_API_BASE_URL", "https://openapi.vito.ai")

TRANSCRIBE_PATH = "/v1/transcribe"
"""Batch transcription endpoint: POST to submit, GET /{id} to fetch."""

AUTHENTICATE_PATH = "/v1/authenticate"
"""Token endpoint: POST client_id + client_secret, returns access_token."""

POLL_INTERVAL_S = float(os.getenv("RTZR_POLL_INTERVAL_S", "4.0"))


def load_credentials() -> tuple[str, str]:
    """Load the RTZR client id and secret from the environment.

    WHY: Every API call needs an access token, and tokens are issued
    only in exchange for the client credentials.

    HOW: Reads RTZR_CLIENT_ID and RTZR_CLIENT_SECRET from os.environ
    (populated by python-dotenv).

    RULES:
    - Raises ValueError if either value is missing or empty
    - Never returns a default/placeholder value
    """
    client_id = os.getenv("RTZR_CLIENT_ID", "").strip()
    client_secret = os.getenv("RTZR_CLIENT_SECRET", "").strip()
    if not client_id or not client_secret:
        raise ValueError(
            "RTZR credentials not configured. "
            "Add RTZR_CLIENT_ID and RTZR_CLIENT_SECRET to the .env file."
        )
    return client_id, client_secret
