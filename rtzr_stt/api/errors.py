"""Exception hierarchy for the RTZR transcription client.

WHY: Callers must branch on *what kind* of failure happened (bad input,
local file problem, network, server rejection, remote job failure,
cancellation) without matching on message strings. The polling loop in
particular needs to tell "not finished yet" apart from every real error.

HOW: Every exception derives from RTZRError. Each failure kind is its own
class, carrying the attributes needed for diagnostics (status code, raw
body, result id, cancellation reason).

RULES:
- NotFinishedError is a control signal, not a failure; only the polling
  loop swallows it
- ServerError always carries the HTTP status code and raw response body
- ValidationError is raised before any network I/O
"""

from __future__ import annotations


class RTZRError(Exception):
    """Base class for every error raised by the client."""


class ValidationError(RTZRError, ValueError):
    """Raised when the audio source is missing, ambiguous, or unreadable.

    RULES:
    - Raised before any request is sent
    """


class AudioReadError(RTZRError, OSError):
    """Raised when the audio file cannot be opened or read while streaming."""


class EncodeError(RTZRError):
    """Raised when the recognition config cannot be serialized to JSON."""


class AuthenticationError(RTZRError):
    """Raised when the access token request is rejected or malformed."""


class TransportError(RTZRError):
    """Raised when the HTTP request fails at the network level.

    The underlying httpx exception is chained as __cause__.
    """


class ServerError(RTZRError):
    """Raised when the RTZR API answers with a non-200 status.

    WHY: The response body usually explains the rejection (bad config,
    quota, auth), so it is kept verbatim for diagnostics.

    RULES:
    - Always include status_code and body
    """

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"RTZR server error {status_code}: {body}")


class DecodeError(RTZRError):
    """Raised when a response body is not the JSON document expected."""


class ProtocolError(RTZRError):
    """Raised when a result carries a status outside the known set."""

    def __init__(self, message: str, body: str = "") -> None:
        self.body = body
        super().__init__(message)


class NotFinishedError(RTZRError):
    """Signal that the job is still transcribing; poll again later."""

    def __init__(self, result_id: str) -> None:
        self.result_id = result_id
        super().__init__(f"Transcription {result_id} is not complete yet")


class JobFailedError(RTZRError):
    """Raised when the remote job itself reports status "failed"."""

    def __init__(self, result_id: str, body: str = "") -> None:
        self.result_id = result_id
        self.body = body
        super().__init__(f"Transcription {result_id} failed")


class CancellationError(RTZRError):
    """Raised when the caller's cancellation signal or timeout fires.

    RULES:
    - reason is "cancelled" for an explicit signal, "timeout" when the
      timeout armed by the client expired
    """

    def __init__(self, reason: str = "cancelled") -> None:
        self.reason = reason
        super().__init__(f"Recognition {reason}")
