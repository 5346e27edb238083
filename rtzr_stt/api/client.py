"""Async HTTP client for the RTZR batch speech-to-text API.

WHY: Transcription is a two-step job: submit audio plus config, get a job
id back, then fetch the result until it is done. Callers (scripts,
services, tests) should not need to know the multipart framing, the
status protocol, or how to keep a large upload out of memory.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. RTZRClient is an async
context manager; enter it to get an authenticated connection pool, exit to
close it. The API steps are separate methods:
recognize_async (submit) -> receive_result (single fetch) ->
poll_result (fetch on a fixed interval), with recognize() chaining them.

The upload body is produced by a background task that writes the
multipart framing, the config JSON and the audio chunks into a bounded
queue, while the request task drains that queue as the streamed request
body. The queue bound gives backpressure: the producer waits whenever
the transport has not caught up.

RULES:
- Always use the async context manager (async with RTZRClient(...) as client:)
- The config field is always sent before the file field
- Submission returns only after both the producer and the request have
  settled; a producer error wins over whatever the request reported
- Polling waits poll_interval before every fetch, fixed (no backoff)
- Only NotFinishedError is swallowed by the polling loop
- The optional cancel event is observed before submission, while the
  upload is in flight, and at every wait and fetch
- No retries anywhere
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import httpx

from rtzr_stt.api.errors import (
    AudioReadError,
    CancellationError,
    DecodeError,
    EncodeError,
    JobFailedError,
    NotFinishedError,
    ProtocolError,
    ServerError,
    TransportError,
)
from rtzr_stt.api.models import (
    RecognitionStatus,
    RecognizeRequest,
    RecognizeResponse,
    ResultId,
)
from rtzr_stt.api.multipart import MultipartWriter
from rtzr_stt.auth import RTZRAuth
from rtzr_stt.config import (
    AUTHENTICATE_PATH,
    POLL_INTERVAL_S,
    RTZR_API_BASE_URL,
    TRANSCRIBE_PATH,
    load_credentials,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CHUNK_SIZE = 64 * 1024
_PIPE_DEPTH = 4  # chunks buffered between producer and transport
_END_OF_BODY = None


class RTZRClient:
    """Async client for the RTZR batch transcription API.

    WHY: Provides a typed interface for the submit -> fetch/poll workflow
    and owns the shared connection pool, so many jobs can be submitted
    and polled concurrently through one instance.

    HOW: Wraps httpx.AsyncClient with the RTZRAuth token flow. The client
    keeps no per-job state: the ResultId returned by recognize_async() is
    all that is needed to fetch or poll later, even from a new process.

    RULES:
    - Use as: async with RTZRClient() as client: ...
    - Credentials default to load_credentials() from .env
    - base_url defaults to RTZR_API_BASE_URL from config
    - poll_interval defaults to POLL_INTERVAL_S from config
    - auth/transport can be injected (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        poll_interval: float | None = None,
        auth: httpx.Auth | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or RTZR_API_BASE_URL).rstrip("/")
        self._poll_interval = POLL_INTERVAL_S if poll_interval is None else poll_interval
        if auth is None:
            if not client_id or not client_secret:
                client_id, client_secret = load_credentials()
            auth = RTZRAuth(client_id, client_secret, self._base_url + AUTHENTICATE_PATH)
        self._auth = auth
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> RTZRClient:
        self._client = httpx.AsyncClient(
            auth=self._auth,
            transport=self._transport,
            timeout=httpx.Timeout(300.0, connect=30.0),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        """Close the connection pool. Safe to call more than once."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "RTZRClient must be used as an async context manager: "
                "async with RTZRClient() as client: ..."
            )
        return self._client

    @property
    def endpoint(self) -> str:
        return self._base_url + TRANSCRIBE_PATH

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = self._ensure_client()
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Blocking recognition: submit + poll
    # ------------------------------------------------------------------

    async def recognize(
        self,
        request: RecognizeRequest,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
        on_status: Callable[[str], None] | None = None,
    ) -> RecognizeResponse:
        """Submit audio and wait until the transcription is complete.

        WHY: Most callers just want the transcript. This chains
        recognize_async() and the polling loop into one call.

        HOW: Submits, then polls every poll_interval seconds. The whole
        call is bounded only by `cancel` and `timeout`; the client itself
        imposes no attempt limit.

        Args:
            request: Audio source and recognition config.
            cancel: Optional event; setting it aborts the call promptly.
            timeout: Optional limit in seconds for submission plus polling.
            on_status: Optional callback for status updates.

        Returns:
            RecognizeResponse with status "completed".

        Raises:
            CancellationError: cancel was set or timeout expired.
            JobFailedError: the service reported the job as failed.
            RTZRError: any other classified submission or fetch error.
        """

        async def _run() -> RecognizeResponse:
            result_id = await self.recognize_async(request, cancel=cancel, on_status=on_status)
            return await self._poll(result_id, cancel, on_status)

        return await _with_timeout(_run(), timeout)

    # ------------------------------------------------------------------
    # Step 1: Submit
    # ------------------------------------------------------------------

    async def recognize_async(
        self,
        request: RecognizeRequest,
        cancel: asyncio.Event | None = None,
        on_status: Callable[[str], None] | None = None,
    ) -> ResultId:
        """Submit a transcription job and return its result id.

        WHY: Submission is a first-class step so a caller can persist the
        id and fetch the result later, possibly from another process.

        HOW: Validates the audio source, then runs two tasks: a producer
        that writes the multipart body into a bounded queue, and the POST
        whose streamed body drains that queue. Both are awaited together
        with the cancel event before the response is interpreted.

        RULES:
        - ValidationError is raised before any request is sent
        - Producer errors (AudioReadError, EncodeError) take precedence
        - Non-200 raises ServerError; bad JSON or missing id raises DecodeError

        Args:
            request: Audio source and recognition config.
            cancel: Optional event; setting it aborts the upload.
            on_status: Optional callback for status updates.

        Returns:
            The ResultId assigned by the service.
        """
        self._ensure_client()
        request.audio_source.validate()
        if cancel is not None and cancel.is_set():
            raise CancellationError()

        if on_status:
            on_status("Uploading audio...")

        writer = MultipartWriter()
        pipe: asyncio.Queue = asyncio.Queue(maxsize=_PIPE_DEPTH)
        producer = asyncio.ensure_future(_write_body(pipe, writer, request))
        sender = asyncio.ensure_future(
            self._send(
                "POST",
                self.endpoint,
                content=_read_body(pipe),
                headers={"Content-Type": writer.content_type},
            )
        )
        response = await _settle(producer, sender, cancel)

        result_id = _parse_result_id(response)
        logger.info("Submitted transcription %s (%s)", result_id, request.audio_source.filename)
        if on_status:
            on_status(f"Submitted transcription {result_id}")
        return result_id

    # ------------------------------------------------------------------
    # Step 2: Single fetch
    # ------------------------------------------------------------------

    async def receive_result(
        self,
        result_id: ResultId,
        cancel: asyncio.Event | None = None,
    ) -> RecognizeResponse:
        """Fetch the current state of a job once.

        WHY: Lets callers drive their own scheduling (cron, queue worker)
        instead of blocking in the polling loop.

        HOW: One GET {endpoint}/{id}; the status field decides whether a
        result is returned or which signal/error is raised.

        RULES:
        - completed -> RecognizeResponse
        - transcribing -> NotFinishedError (poll again later)
        - failed -> JobFailedError
        - any other status -> ProtocolError
        - transport failure -> TransportError, non-200 -> ServerError,
          invalid JSON -> DecodeError
        """
        self._ensure_client()
        response = await _race(self._send("GET", f"{self.endpoint}/{result_id}"), cancel)
        if response.status_code != 200:
            raise ServerError(response.status_code, response.text)

        data = _decode_json(response)
        status = data.get("status")
        if status == RecognitionStatus.COMPLETED:
            return RecognizeResponse.from_dict(data)
        if status == RecognitionStatus.TRANSCRIBING:
            raise NotFinishedError(result_id)
        if status == RecognitionStatus.FAILED:
            raise JobFailedError(result_id, response.text)
        raise ProtocolError(
            f"Unexpected transcription status {status!r} for {result_id}", response.text
        )

    # ------------------------------------------------------------------
    # Step 3: Poll until terminal
    # ------------------------------------------------------------------

    async def poll_result(
        self,
        result_id: ResultId,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
        on_status: Callable[[str], None] | None = None,
    ) -> RecognizeResponse:
        """Poll a previously submitted job until it completes or fails.

        Use this to resume waiting on a ResultId saved from an earlier
        recognize_async() call.
        """
        self._ensure_client()
        return await _with_timeout(self._poll(result_id, cancel, on_status), timeout)

    async def _poll(
        self,
        result_id: ResultId,
        cancel: asyncio.Event | None,
        on_status: Callable[[str], None] | None,
    ) -> RecognizeResponse:
        start_time = time.monotonic()
        attempt = 0

        while True:
            await _race(_sleep(self._poll_interval), cancel)
            attempt += 1
            try:
                result = await self.receive_result(result_id, cancel=cancel)
            except NotFinishedError:
                elapsed = time.monotonic() - start_time
                logger.debug(
                    "Transcription %s still running (attempt %d, %.1fs)",
                    result_id, attempt, elapsed,
                )
                if on_status:
                    on_status(
                        f"Transcribing... (elapsed: {int(elapsed) // 60}m {int(elapsed) % 60:02d}s)"
                    )
                continue

            logger.info("Transcription %s completed after %d polls", result_id, attempt)
            if on_status:
                on_status("Transcription complete.")
            return result


# ---------------------------------------------------------------------------
# Request body producer / consumer (module-private)
# ---------------------------------------------------------------------------


async def _write_body(
    pipe: asyncio.Queue,
    writer: MultipartWriter,
    request: RecognizeRequest,
) -> None:
    """Write the multipart body into the pipe: config, file, closing boundary."""
    try:
        config_json = json.dumps(request.config_dict())
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"Recognition config is not JSON-serializable: {exc}") from exc

    await pipe.put(writer.field_header("config") + config_json.encode("utf-8"))

    source = request.audio_source
    await pipe.put(writer.file_header("file", source.filename))
    if source.content is not None:
        view = memoryview(source.content)
        for offset in range(0, len(view), _CHUNK_SIZE):
            await pipe.put(bytes(view[offset:offset + _CHUNK_SIZE]))
    else:
        await _stream_file(pipe, Path(source.file_path))

    await pipe.put(writer.closing())
    await pipe.put(_END_OF_BODY)


async def _stream_file(pipe: asyncio.Queue, file_path: Path) -> None:
    loop = asyncio.get_running_loop()
    try:
        audio_file = open(file_path, "rb")
    except OSError as exc:
        raise AudioReadError(f"Cannot open audio file {file_path}: {exc}") from exc

    with audio_file:
        while True:
            try:
                chunk = await loop.run_in_executor(None, audio_file.read, _CHUNK_SIZE)
            except OSError as exc:
                raise AudioReadError(f"Cannot read audio file {file_path}: {exc}") from exc
            if not chunk:
                return
            await pipe.put(chunk)


async def _read_body(pipe: asyncio.Queue) -> AsyncIterator[bytes]:
    while True:
        chunk = await pipe.get()
        if chunk is _END_OF_BODY:
            return
        yield chunk


async def _settle(
    producer: asyncio.Future,
    sender: asyncio.Future,
    cancel: asyncio.Event | None,
) -> httpx.Response:
    """Wait for the producer and the request to both finish.

    RULES:
    - Producer failure cancels the request and is raised
    - Request failure while the producer is still writing cancels the
      producer and is raised
    - A response that arrives before the body was fully written is only
      accepted when it is an error status (ServerError path); otherwise
      the upload is reported as a TransportError
    - Cancel event: everything is cancelled, CancellationError is raised
    - All tasks are finished when this returns or raises
    """
    waiter = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
    pending = {producer, sender}
    if waiter is not None:
        pending.add(waiter)

    try:
        while not (producer.done() and sender.done()):
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

            if waiter is not None and waiter in done:
                logger.warning("Transcription upload cancelled")
                raise CancellationError()

            if producer.done() and producer.exception() is not None:
                raise producer.exception()

            if sender.done() and not producer.done():
                response = sender.result()
                if response.status_code != 200:
                    return response
                raise TransportError(
                    "Server responded before the request body was fully sent"
                )

        return sender.result()
    finally:
        leftovers = [t for t in (producer, sender, waiter) if t is not None and not t.done()]
        for task in leftovers:
            task.cancel()
        if leftovers:
            await asyncio.gather(*leftovers, return_exceptions=True)


# ---------------------------------------------------------------------------
# Cancellation and response helpers (module-private)
# ---------------------------------------------------------------------------


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


async def _race(awaitable: Awaitable[T], cancel: asyncio.Event | None) -> T:
    """Await `awaitable`, abandoning it with CancellationError if cancel fires."""
    if cancel is None:
        return await awaitable
    if cancel.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise CancellationError()

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel.wait())
    abandoned = False
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            abandoned = True
            task.cancel()
        await asyncio.gather(task, waiter, return_exceptions=True)

    if abandoned:
        logger.warning("Transcription request cancelled")
        raise CancellationError()
    return task.result()


async def _with_timeout(coro: Awaitable[T], timeout: float | None) -> T:
    if timeout is None:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("Transcription timed out after %.1fs", timeout)
        raise CancellationError("timeout") from exc


def _decode_json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError as exc:
        raise DecodeError(f"Response is not valid JSON: {response.text!r}") from exc
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got: {response.text!r}")
    return data


def _parse_result_id(response: httpx.Response) -> ResultId:
    if response.status_code != 200:
        raise ServerError(response.status_code, response.text)
    data = _decode_json(response)
    result_id = data.get("id")
    if not isinstance(result_id, str) or not result_id:
        raise DecodeError(f"Response has no job id: {response.text!r}")
    return result_id
