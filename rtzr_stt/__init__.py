"""RTZR STT client: async Python SDK for the RTZR batch speech-to-text API.

WHY: Transcribing a recording with RTZR means authenticating, uploading
audio with a JSON config as multipart form data, and polling a job until
it finishes. This package wraps that workflow behind one async client.

HOW: Three layers: config (.env-driven defaults), auth (httpx token
flow), api (client, models, errors). Each layer is independently testable.

RULES:
- All HTTP goes through RTZRClient
- Audio is streamed, never fully buffered by the client
- Errors are typed (see rtzr_stt.api.errors)
"""

from rtzr_stt.api import (
    AudioSource,
    RecognitionConfig,
    RecognizeRequest,
    RecognizeResponse,
    RTZRClient,
)

__version__ = "0.1.0"

__all__ = [
    "AudioSource",
    "RecognitionConfig",
    "RecognizeRequest",
    "RecognizeResponse",
    "RTZRClient",
]
