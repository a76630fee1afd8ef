"""Error taxonomy and the side channel that collects recoverable errors.

Fatal errors are raised out of ``Converter.convert``. Everything that only
affects a single record, or a single range, is reported to an
``ErrorCollector`` instead and the job carries on.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass


class ConvertError(Exception):
    """Base class for every error raised by csvjson."""


class SourceSizeError(ConvertError):
    """The size of the source object could not be determined."""


class EmptySourceError(ConvertError):
    """The source object holds no bytes."""


class ScratchAllocationError(ConvertError):
    """Scratch or destination storage could not be allocated."""


class ScratchIOError(ConvertError):
    """Reading or writing scratch or destination storage failed mid-job."""


class SinkWriteError(ConvertError):
    """The finalized buffer could not be written to the sink."""


class SchemaError(ConvertError):
    """The schema definition is invalid."""


class SourceReadError(ConvertError, OSError):
    """A read session failed mid-stream."""


class ConversionCancelledError(ConvertError):
    """A reader observed the cancellation signal before finishing its range."""


class RecordError(ConvertError):
    """Base class for errors that only drop a single record."""


class RecordParseError(RecordError):
    """A line could not be decoded or split into fields."""


class RecordArityError(RecordError):
    """A record does not have one field per schema column."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"wrong number of fields: expected {expected}, got {actual}")


class RecordValidationError(RecordError):
    def __init__(self, column: str, rule: str, value: str) -> None:
        self.column = column
        self.rule = rule
        self.value = value
        super().__init__(
            f"field {column!r} failed rule {rule!r} with value {value!r}",
        )


@dataclass(frozen=True, slots=True)
class ErrorEntry:
    worker: int  # 1-based range number
    offset: int  # byte offset of the offending line
    cause: BaseException

    def __str__(self) -> str:
        return f"worker #{self.worker} at offset {self.offset}: {self.cause}"


class ErrorCollector:
    """Thread-safe sink for recoverable errors.

    Every entry is logged at warning level and forwarded to the optional
    subscriber; entries stay available through ``entries`` for the report.
    """

    def __init__(
        self,
        logger: logging.Logger | logging.LoggerAdapter,
        on_error: Callable[[ErrorEntry], None] | None = None,
    ) -> None:
        self._logger = logger
        self._on_error = on_error
        self._lock = threading.Lock()
        self._entries: list[ErrorEntry] = []

    def report(self, worker: int, offset: int, cause: BaseException) -> ErrorEntry:
        entry = ErrorEntry(worker=worker, offset=offset, cause=cause)
        with self._lock:
            self._entries.append(entry)
        self._logger.warning(
            "worker #%d: %s at offset %d: %s",
            worker,
            type(cause).__name__,
            offset,
            cause,
        )
        if self._on_error is not None:
            self._on_error(entry)
        return entry

    @property
    def entries(self) -> list[ErrorEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
