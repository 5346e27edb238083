"""RTZR transcription request and response dataclasses.

WHY: The RTZR batch API takes a JSON config plus an audio file and
returns flat JSON objects for the job id and the transcription status.
Typed dataclasses make these structures explicit and keep parsing in one
place.

HOW: Request-side dataclasses (AudioSource, RecognitionConfig,
RecognizeRequest) know how to validate and serialize themselves.
Response-side dataclasses (Utterance, RecognizeResponse) provide
from_dict factories over the raw API JSON.

RULES:
- AudioSource has exactly one of file_path / content set
- RecognitionConfig.to_dict() omits unset (None) fields
- RecognizeResponse keeps the full decoded JSON in `raw`
- Each RecognizeResponse is an independent snapshot of one fetch
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from rtzr_stt.api.errors import ValidationError

ResultId = str
"""Opaque job handle returned by POST /v1/transcribe."""


class RecognitionStatus(str, enum.Enum):
    """Job states reported by GET /v1/transcribe/{id}.

    RULES:
    - transcribing: non-terminal, poll again
    - completed: terminal success, results are present
    - failed: terminal failure
    """

    TRANSCRIBING = "transcribing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AudioSource:
    """Audio to transcribe: either a file on disk or bytes in memory.

    WHY: Large recordings should be streamed from disk, while audio that
    is already in memory (e.g. downloaded) should not be written to a temp
    file first. Exactly one of the two must be given.

    RULES:
    - file_path set, content None: stream the file
    - content set (b"" included), file_path None: send the buffer
    - anything else fails validate()
    """

    file_path: Optional[Union[str, Path]] = None
    content: Optional[bytes] = None

    def validate(self) -> None:
        """Check that exactly one variant is populated and usable.

        Raises:
            ValidationError: neither or both variants are set, or the
                path does not point to a regular file.
        """
        has_path = self.file_path is not None and str(self.file_path) != ""
        has_content = self.content is not None

        if has_path and has_content:
            raise ValidationError(
                "AudioSource must set exactly one of file_path or content, not both"
            )
        if not has_path and not has_content:
            raise ValidationError("AudioSource must set one of file_path or content")

        if has_path and not Path(self.file_path).is_file():
            raise ValidationError(f"Audio file not found: {self.file_path}")

    @property
    def filename(self) -> str:
        """Informational filename sent with the file form field."""
        if self.file_path:
            return Path(self.file_path).name
        return "rtzr-default-audiofile"


@dataclass
class DiarizationConfig:
    """Speaker diarization options (spk_count=0 lets the server decide)."""

    spk_count: int = 0


@dataclass
class ParagraphSplitterConfig:
    """Maximum paragraph length used when use_paragraph_splitter is on."""

    max: int = 50


@dataclass
class RecognitionConfig:
    """Options forwarded verbatim as the `config` form field.

    WHY: The service accepts a JSON object of recognition switches.
    Typing the known switches helps callers, but the client never
    interprets them; any mapping can be sent instead of this class.

    HOW: to_dict() walks the fields and drops the ones left as None, so
    the server applies its own defaults for anything not chosen.
    """

    model_name: Optional[str] = None
    language: Optional[str] = None
    use_diarization: Optional[bool] = None
    diarization: Optional[DiarizationConfig] = None
    use_itn: Optional[bool] = None
    use_disfluency_filter: Optional[bool] = None
    use_profanity_filter: Optional[bool] = None
    use_paragraph_splitter: Optional[bool] = None
    paragraph_splitter: Optional[ParagraphSplitterConfig] = None
    domain: Optional[str] = None
    use_word_timestamp: Optional[bool] = None
    keywords: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name, value in vars(self).items():
            if value is None:
                continue
            if isinstance(value, (DiarizationConfig, ParagraphSplitterConfig)):
                value = dict(vars(value))
            elif isinstance(value, list):
                value = list(value)
            out[name] = value
        return out


ConfigLike = Union[RecognitionConfig, Mapping[str, Any]]


@dataclass
class RecognizeRequest:
    """One transcription job: the audio plus its recognition config."""

    audio_source: AudioSource
    config: ConfigLike = field(default_factory=RecognitionConfig)

    def config_dict(self) -> Any:
        """Return the config as a JSON-serializable value."""
        if isinstance(self.config, RecognitionConfig):
            return self.config.to_dict()
        return self.config


@dataclass
class Utterance:
    """One recognized utterance from a completed transcription.

    RULES:
    - start_at and duration are integer milliseconds
    - spk is the speaker index (0 when diarization is off)
    - lang is absent on older models
    """

    start_at: int
    duration: int
    msg: str
    spk: int = 0
    lang: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Utterance:
        return cls(
            start_at=data.get("start_at", 0),
            duration=data.get("duration", 0),
            msg=data.get("msg", ""),
            spk=data.get("spk", 0),
            lang=data.get("lang"),
        )


@dataclass
class RecognizeResponse:
    """Response of GET /v1/transcribe/{id}.

    WHY: Callers want typed utterances but must not lose fields this
    client does not model, so the decoded JSON is kept alongside.

    HOW: from_dict pulls id/status and parses results.utterances when
    present (only on completed jobs).
    """

    id: str
    status: str
    utterances: List[Utterance] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RecognizeResponse:
        results = data.get("results") or {}
        return cls(
            id=data.get("id", ""),
            status=data.get("status", ""),
            utterances=[Utterance.from_dict(u) for u in results.get("utterances") or []],
            raw=data,
        )

    @property
    def text(self) -> str:
        """All utterance texts joined with spaces."""
        return " ".join(u.msg for u in self.utterances)
