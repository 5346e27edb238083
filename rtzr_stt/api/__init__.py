"""RTZR API client package: async HTTP interface to the RTZR batch STT service.

WHY: Submitting audio, fetching job status, and polling until completion
all share auth, endpoint, and error conventions. This package keeps that
communication behind one client class.

HOW: RTZRClient (client.py) performs the HTTP calls, request/response
shapes live in models.py, and every failure kind is a class in errors.py.

RULES:
- All HTTP calls go through RTZRClient (no direct httpx usage elsewhere)
- Authentication is via the RTZRAuth token flow
"""

from rtzr_stt.api.client import RTZRClient
from rtzr_stt.api.errors import (
    AudioReadError,
    AuthenticationError,
    CancellationError,
    DecodeError,
    EncodeError,
    JobFailedError,
    NotFinishedError,
    ProtocolError,
    RTZRError,
    ServerError,
    TransportError,
    ValidationError,
)
from rtzr_stt.api.models import (
    AudioSource,
    DiarizationConfig,
    ParagraphSplitterConfig,
    RecognitionConfig,
    RecognitionStatus,
    RecognizeRequest,
    RecognizeResponse,
    ResultId,
    Utterance,
)

__all__ = [
    "AudioReadError",
    "AudioSource",
    "AuthenticationError",
    "CancellationError",
    "DecodeError",
    "DiarizationConfig",
    "EncodeError",
    "JobFailedError",
    "NotFinishedError",
    "ParagraphSplitterConfig",
    "ProtocolError",
    "RTZRClient",
    "RTZRError",
    "RecognitionConfig",
    "RecognitionStatus",
    "RecognizeRequest",
    "RecognizeResponse",
    "ResultId",
    "ServerError",
    "TransportError",
    "Utterance",
    "ValidationError",
]
