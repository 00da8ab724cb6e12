"""
Streaming reader for ELB access-log objects.

Reads a (possibly gzip-compressed) byte stream line by line and yields
ParsedRecord objects lazily. A reader is single-pass: the underlying
stream is consumed as records are produced.
"""

import asyncio
import logging
from enum import Enum
from typing import IO, AsyncIterator, Iterator, Optional

from .base import ParsedRecord
from .exceptions import MalformedRecordError
from .file_utils import open_stream_auto_decompress
from .parsers import parse_line

logger = logging.getLogger(__name__)

# Records pulled per worker-thread hop in iter_chunks()
DEFAULT_CHUNK_SIZE = 500


class ParseErrorPolicy(Enum):
    """What to do with a line that does not fit any schema."""

    ABORT = "abort"  # Raise on the first malformed line, failing the object
    SKIP = "skip"  # Log a warning and continue with the next line


class LogReader:
    """
    Lazy, single-pass reader over one access-log object.

    Example:
        reader = LogReader(body, "AWSLogs/.../app.my-lb.123_20180702.log.gz")
        for record in reader:
            print(record.timestamp, record.fields["elb"])
    """

    def __init__(
        self,
        stream: IO[bytes],
        key: str,
        parse_error_policy: ParseErrorPolicy = ParseErrorPolicy.ABORT,
        encoding: str = "utf-8",
    ):
        """
        Initialize reader.

        Args:
            stream: Binary object stream
            key: Object key (a .gz suffix forces gzip decompression)
            parse_error_policy: Handling of malformed lines
            encoding: Text encoding of the log lines
        """
        self.stream = stream
        self.key = key
        self.parse_error_policy = parse_error_policy
        self.encoding = encoding
        self.lines_read = 0
        self.skipped_lines = 0
        self._started = False

    def __iter__(self) -> Iterator[ParsedRecord]:
        if self._started:
            raise RuntimeError(f"LogReader for {self.key} is single-pass")
        self._started = True
        return self._read_records()

    def _read_records(self) -> Iterator[ParsedRecord]:
        with open_stream_auto_decompress(
            self.stream, self.key, encoding=self.encoding
        ) as text:
            for line_num, line in enumerate(text, 1):
                self.lines_read = line_num
                line = line.rstrip("\n")
                if not line.strip():
                    continue

                try:
                    yield parse_line(line)
                except MalformedRecordError as e:
                    if self.parse_error_policy is ParseErrorPolicy.ABORT:
                        raise MalformedRecordError(
                            f"Malformed record in {self.key}: {e.message}",
                            line_number=line_num,
                            line_content=line,
                        ) from e
                    self.skipped_lines += 1
                    logger.warning(
                        f"Skipping malformed line {line_num} in {self.key}: {e}"
                    )

        if self.skipped_lines:
            logger.info(
                f"Skipped {self.skipped_lines} of {self.lines_read} lines in {self.key}"
            )

    async def iter_chunks(
        self, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[list[ParsedRecord]]:
        """
        Yield records in chunks, reading the stream in a worker thread.

        Stream reads and decompression block, so each chunk is produced via
        asyncio.to_thread to keep the event loop free for other objects.

        Args:
            chunk_size: Maximum records per chunk

        Yields:
            Non-empty lists of ParsedRecord, in line order
        """
        records = iter(self)

        def next_chunk() -> list[ParsedRecord]:
            chunk = []
            for record in records:
                chunk.append(record)
                if len(chunk) >= chunk_size:
                    break
            return chunk

        while True:
            chunk = await asyncio.to_thread(next_chunk)
            if not chunk:
                return
            yield chunk


def read_records(
    stream: IO[bytes],
    key: str,
    parse_error_policy: Optional[ParseErrorPolicy] = None,
) -> Iterator[ParsedRecord]:
    """
    Convenience wrapper: iterate the records of one object.

    Args:
        stream: Binary object stream
        key: Object key
        parse_error_policy: Handling of malformed lines (default: abort)

    Returns:
        Iterator of ParsedRecord
    """
    return iter(
        LogReader(stream, key, parse_error_policy or ParseErrorPolicy.ABORT)
    )
