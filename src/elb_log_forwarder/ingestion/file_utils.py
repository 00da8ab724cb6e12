"""
Shared stream utilities for the ingestion module.

Provides decompression and text decoding for log object byte streams.
"""

import gzip
import io
from typing import IO

GZIP_MAGIC = b"\x1f\x8b"


class _PrefixedStream(io.RawIOBase):
    """Raw stream that replays already-read bytes before the rest of a stream."""

    def __init__(self, prefix: bytes, stream: IO[bytes]):
        self._prefix = prefix
        self._stream = stream

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        size = len(buffer)
        if self._prefix:
            data = self._prefix[:size]
            self._prefix = self._prefix[size:]
        else:
            data = self._stream.read(size)
        buffer[: len(data)] = data
        return len(data)

    def close(self) -> None:
        try:
            self._stream.close()
        finally:
            super().close()


def open_stream_auto_decompress(
    stream: IO[bytes],
    key: str,
    encoding: str = "utf-8",
    errors: str = "replace",
) -> IO[str]:
    """
    Wrap a binary object stream as text, decompressing gzip transparently.

    Gzip detection is performed by:
    1. Checking for a .gz suffix on the object key
    2. Checking for gzip magic bytes (0x1f 0x8b) even without .gz suffix

    The stream is consumed sequentially; it does not need to be seekable.
    Lines read from the returned handle use universal newlines.

    Args:
        stream: Binary stream (file object or S3 StreamingBody)
        key: Object key or file name, used for suffix detection
        encoding: Text encoding (default: utf-8)
        errors: Decoding error handler (default: replace)

    Returns:
        Text-mode handle over the (decompressed) content
    """
    magic = stream.read(len(GZIP_MAGIC))
    raw = io.BufferedReader(_PrefixedStream(magic, stream))

    if key.lower().endswith(".gz") or magic == GZIP_MAGIC:
        binary: IO[bytes] = gzip.GzipFile(fileobj=raw, mode="rb")
    else:
        binary = raw

    return io.TextIOWrapper(binary, encoding=encoding, errors=errors, newline=None)
