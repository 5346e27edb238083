"""Incremental multipart/form-data framing for streamed request bodies.

WHY: The audio file can be far larger than we want to hold in memory,
so the request body is produced chunk by chunk instead of being built
up front. That needs the multipart framing (boundaries and part
headers) as separate byte strings the producer can emit between chunks.

HOW: MultipartWriter tracks how many parts have been opened and returns
the exact bytes to emit before each part and at the end. Part payloads
are written by the caller in between.

RULES:
- Part order is the order of the *_header() calls
- closing() must be emitted exactly once, after the last part payload
- Quotes and backslashes in names/filenames are escaped
"""

from __future__ import annotations

import secrets


def _escape_quotes(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class MultipartWriter:
    """Produce multipart/form-data framing one part at a time."""

    def __init__(self, boundary: str | None = None) -> None:
        self.boundary = boundary or secrets.token_hex(16)
        self._parts = 0

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def _delimiter(self) -> bytes:
        prefix = "\r\n" if self._parts else ""
        self._parts += 1
        return f"{prefix}--{self.boundary}\r\n".encode("ascii")

    def field_header(self, name: str) -> bytes:
        """Bytes opening a plain form field."""
        return self._delimiter() + (
            f'Content-Disposition: form-data; name="{_escape_quotes(name)}"\r\n\r\n'
        ).encode("utf-8")

    def file_header(
        self,
        name: str,
        filename: str,
        content_type: str = "application/octet-stream",
    ) -> bytes:
        """Bytes opening a file form field."""
        return self._delimiter() + (
            f'Content-Disposition: form-data; name="{_escape_quotes(name)}"; '
            f'filename="{_escape_quotes(filename)}"\r\n'
            f"Content-Type: {content_type}\r\n\r\n"
        ).encode("utf-8")

    def closing(self) -> bytes:
        prefix = "\r\n" if self._parts else ""
        return f"{prefix}--{self.boundary}--\r\n".encode("ascii")
