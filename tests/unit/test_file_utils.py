"""
Unit tests for file_utils.open_stream_auto_decompress function.

Tests cover:
- Plain text streams
- Gzip streams with .gz suffix
- Gzip streams detected by magic bytes (no .gz suffix)
- Non-seekable streams
- BadGzipFile for corrupt gzip
- Invalid UTF-8 replacement
"""

import gzip
import io

import pytest

from elb_log_forwarder.ingestion.file_utils import open_stream_auto_decompress


class NonSeekableStream(io.RawIOBase):
    """Forward-only byte stream, like an S3 StreamingBody."""

    def __init__(self, data: bytes):
        self._data = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def readinto(self, buffer) -> int:
        chunk = self._data.read(len(buffer))
        buffer[: len(chunk)] = chunk
        return len(chunk)


class TestOpenStreamAutoDecompress:
    """Tests for open_stream_auto_decompress function."""

    def test_plain_text_stream(self) -> None:
        """Test reading a plain text stream."""
        stream = io.BytesIO(b"Hello, World!\nLine 2")

        with open_stream_auto_decompress(stream, "test.log") as f:
            content = f.read()

        assert content == "Hello, World!\nLine 2"

    def test_gzip_stream_with_suffix(self) -> None:
        """Test reading a gzip stream with .gz suffix."""
        stream = io.BytesIO(gzip.compress(b"Compressed content\nLine 2"))

        with open_stream_auto_decompress(stream, "test.log.gz") as f:
            content = f.read()

        assert content == "Compressed content\nLine 2"

    def test_gzip_stream_magic_bytes_no_suffix(self) -> None:
        """Test reading a gzip stream detected by magic bytes (no .gz suffix)."""
        stream = io.BytesIO(gzip.compress(b"Magic bytes detection"))

        with open_stream_auto_decompress(stream, "test.log") as f:
            content = f.read()

        assert content == "Magic bytes detection"

    def test_uppercase_suffix(self) -> None:
        """Test that the suffix check ignores case."""
        stream = io.BytesIO(gzip.compress(b"upper"))

        with open_stream_auto_decompress(stream, "TEST.LOG.GZ") as f:
            assert f.read() == "upper"

    def test_non_seekable_gzip_stream(self) -> None:
        """Test that a forward-only stream is decompressed without seeking."""
        lines = [f"line {i}" for i in range(1000)]
        stream = NonSeekableStream(gzip.compress("\n".join(lines).encode()))

        with open_stream_auto_decompress(stream, "object") as f:
            result = [line.rstrip("\n") for line in f]

        assert result == lines

    def test_stream_shorter_than_magic(self) -> None:
        """Test that a one-byte stream is read as plain text."""
        with open_stream_auto_decompress(io.BytesIO(b"x"), "tiny.log") as f:
            assert f.read() == "x"

    def test_empty_stream(self) -> None:
        """Test that an empty stream yields no text."""
        with open_stream_auto_decompress(io.BytesIO(b""), "empty.log") as f:
            assert f.read() == ""

    def test_universal_newlines(self) -> None:
        """Test that CRLF line endings are normalized."""
        stream = io.BytesIO(b"a\r\nb\r\n")

        with open_stream_auto_decompress(stream, "crlf.log") as f:
            assert list(f) == ["a\n", "b\n"]

    def test_invalid_utf8_replaced(self) -> None:
        """Test that undecodable bytes are replaced instead of raising."""
        stream = io.BytesIO(b"ok \xff\xfe end")

        with open_stream_auto_decompress(stream, "bad.log") as f:
            content = f.read()

        assert content.startswith("ok ")
        assert "�" in content

    def test_multibyte_utf8(self) -> None:
        """Test that multi-byte characters decode intact."""
        stream = io.BytesIO(gzip.compress("ユーザー\n".encode("utf-8")))

        with open_stream_auto_decompress(stream, "mb.log.gz") as f:
            assert f.read() == "ユーザー\n"

    def test_corrupt_gzip_with_suffix(self) -> None:
        """Test that a .gz stream that is not gzip raises BadGzipFile."""
        stream = io.BytesIO(b"This is not gzip content")

        with pytest.raises(gzip.BadGzipFile):
            with open_stream_auto_decompress(stream, "corrupt.log.gz") as f:
                f.read()

    def test_close_closes_underlying_stream(self) -> None:
        """Test that closing the text handle closes the source stream."""
        stream = io.BytesIO(b"data")

        handle = open_stream_auto_decompress(stream, "x.log")
        handle.close()

        assert stream.closed
