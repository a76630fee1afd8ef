import csv
import logging
import queue
import threading
from collections.abc import Callable
from typing import BinaryIO

from csvjson.config import ConvertConfig
from csvjson.errors import (
    ConversionCancelledError,
    ErrorCollector,
    RecordArityError,
    RecordError,
    RecordParseError,
)
from csvjson.records.contracts import ByteRange, ParsedRecord, ReaderState, Record
from csvjson.sources.contracts import ByteSource

# Marks the end of a reader's record stream.
END_OF_CHUNK = None

RecordQueue = queue.Queue[ParsedRecord | None]


class LineReader:
    """Splits a byte stream into ``\\n``-terminated lines.

    Reads ``buffer_size`` bytes at a time; a line longer than the buffer is
    assembled across reads. The final line may lack a terminator.
    """

    def __init__(self, stream: BinaryIO, buffer_size: int) -> None:
        self._stream = stream
        self._buffer_size = buffer_size
        self._buf = bytearray()
        self._eof = False

    def readline(self) -> bytes:
        scan_from = 0
        while True:
            idx = self._buf.find(b"\n", scan_from)
            if idx != -1:
                line = bytes(self._buf[: idx + 1])
                del self._buf[: idx + 1]
                return line
            if self._eof:
                line = bytes(self._buf)
                self._buf.clear()
                return line
            scan_from = len(self._buf)
            chunk = self._stream.read(self._buffer_size)
            if not chunk:
                self._eof = True
            else:
                self._buf += chunk


class ChunkReader:
    """Reads the records of one byte range into a bounded queue.

    Every reader opens its own read session on the source; sessions are never
    shared between ranges.
    """

    def __init__(  # noqa: PLR0913
        self,
        source: ByteSource,
        byte_range: ByteRange,
        n_columns: int,
        config: ConvertConfig,
        errors: ErrorCollector,
        logger: logging.Logger | logging.LoggerAdapter,
        on_progress: Callable[[int], None] | None = None,
    ) -> None:
        self.source = source
        self.byte_range = byte_range
        self.n_columns = n_columns
        self.config = config
        self.errors = errors
        self.logger = logger
        self.on_progress = on_progress

        self.state = ReaderState.SEEKING
        self.n_read = 0
        self.n_parsed = 0
        self.aligned_start = byte_range.start
        self.offset = byte_range.start

    @property
    def worker(self) -> int:
        return self.byte_range.worker

    def parse_line(self, raw: bytes) -> Record:
        try:
            text = raw.decode(self.config.encoding)
        except UnicodeDecodeError as exc:
            msg = f"could not decode line as {self.config.encoding}: {exc}"
            raise RecordParseError(msg) from exc

        text = text.removesuffix("\n").removesuffix("\r")
        reader = csv.reader(
            [text],
            delimiter=self.config.delimiter,
            quotechar='"',
            strict=not self.config.lazy_quotes,
        )
        try:
            fields = next(reader, [])
        except csv.Error as exc:
            msg = f"could not parse row: {exc}"
            raise RecordParseError(msg) from exc

        if len(fields) != self.n_columns:
            raise RecordArityError(self.n_columns, len(fields))
        return fields

    def _advance(self, n_bytes: int) -> None:
        # Progress only counts bytes inside the range; the tail of the last
        # line past ``end`` belongs to the next range's total.
        stop = min(self.offset + n_bytes, self.byte_range.end + 1)
        in_range = max(0, stop - self.offset)
        self.offset += n_bytes
        if self.on_progress is not None and in_range:
            self.on_progress(in_range)

    def _readline(self, lines: LineReader) -> bytes | None:
        try:
            return lines.readline()
        except OSError as exc:
            self.errors.report(self.worker, self.offset, exc)
            return None

    def read_into(
        self,
        out: RecordQueue,
        cancel: threading.Event | None = None,
    ) -> None:
        """Stream the range into ``out``; always ends with ``END_OF_CHUNK``."""
        try:
            self._read_into(out, cancel)
        finally:
            self.state = ReaderState.DRAINING
            out.put(END_OF_CHUNK)
            self.state = ReaderState.DONE
            self.logger.debug(
                "Reader #%d done: range=[%d..%d] aligned_start=%d "
                "stopped_at=%d read=%d parsed=%d",
                self.worker,
                self.byte_range.start,
                self.byte_range.end,
                self.aligned_start,
                self.offset,
                self.n_read,
                self.n_parsed,
            )

    def _read_into(
        self,
        out: RecordQueue,
        cancel: threading.Event | None,
    ) -> None:
        end = self.byte_range.end
        try:
            stream = self.source.open_range(self.byte_range.start)
        except OSError as exc:
            self.errors.report(self.worker, self.offset, exc)
            return

        with stream:
            lines = LineReader(stream, self.config.buffer_size)

            # A range start generally lands mid-line; the previous range reads
            # through the end of that line, so discard it here. The first range
            # only discards when the first line is a header.
            if not self.byte_range.is_first or self.config.has_header:
                self.state = ReaderState.ALIGNING
                skipped = self._readline(lines)
                if not skipped:
                    return
                self._advance(len(skipped))
            self.aligned_start = self.offset

            self.state = ReaderState.STREAMING
            while True:
                if cancel is not None and cancel.is_set():
                    msg = f"reader #{self.worker} cancelled before offset {end}"
                    self.errors.report(
                        self.worker,
                        self.offset,
                        ConversionCancelledError(msg),
                    )
                    return

                # Lines starting at end + 1 still belong here: the next range
                # discards the line found at its start.
                if self.offset - 1 > end:
                    return

                line = self._readline(lines)
                if not line:
                    return

                self.n_read += 1
                line_offset = self.offset
                try:
                    record = self.parse_line(line)
                except RecordError as exc:
                    self.errors.report(self.worker, line_offset, exc)
                else:
                    self.n_parsed += 1
                    out.put(ParsedRecord(line_offset, record))

                self._advance(len(line))
