import logging
import threading
from typing import BinaryIO

from csvjson.errors import ScratchIOError
from csvjson.io_utils import copy_stream


class DestinationBuffer:
    """The shared output document, assembled chunk by chunk.

    Opened with ``[`` before any worker starts. Each chunk is appended exactly
    once under a single lock; ``]`` is appended by ``close`` after every chunk
    has merged.
    """

    def __init__(
        self,
        buffer: BinaryIO,
        logger: logging.Logger | logging.LoggerAdapter,
    ) -> None:
        self._buffer = buffer
        self._logger = logger
        self._lock = threading.Lock()
        # Explicit flag rather than peeking after "[": an empty first chunk
        # must not cause a leading comma later.
        self._has_elements = False
        self._merged: set[int] = set()
        self._closed = False
        self._buffer.write(b"[")

    @property
    def has_elements(self) -> bool:
        return self._has_elements

    @property
    def buffer(self) -> BinaryIO:
        return self._buffer

    def merge(self, chunk: BinaryIO, worker: int) -> int:
        """Append one chunk (already rewound); returns bytes appended.

        A storage failure part way through truncates the destination back to
        where this chunk started and raises ``ScratchIOError``, so the
        document never keeps a partial chunk.
        """
        with self._lock:
            if self._closed:
                msg = f"Cannot merge chunk #{worker} into a closed destination"
                raise RuntimeError(msg)
            if worker in self._merged:
                msg = f"Chunk #{worker} was already merged"
                raise RuntimeError(msg)
            self._merged.add(worker)

            pos = self._buffer.tell()
            try:
                first = chunk.read(1)
                if not first:
                    self._logger.debug("Chunk #%d is empty, nothing to merge", worker)
                    return 0

                if self._has_elements:
                    self._buffer.write(b",")
                self._buffer.write(first)
                n_bytes = 1 + copy_stream(chunk, self._buffer)
            except OSError as exc:
                self._buffer.seek(pos)
                self._buffer.truncate()
                msg = f"Merging chunk #{worker} failed: {exc}"
                raise ScratchIOError(msg) from exc
            self._has_elements = True

        self._logger.debug("Merged chunk #%d (%d bytes)", worker, n_bytes)
        return n_bytes

    def close(self) -> int:
        """Append ``]`` and rewind; returns the document length."""
        with self._lock:
            if not self._closed:
                self._buffer.write(b"]")
                self._closed = True
            length = self._buffer.tell()
            self._buffer.seek(0)
        return length
