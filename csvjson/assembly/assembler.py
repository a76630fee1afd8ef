import logging
from typing import BinaryIO

from csvjson.assembly.merger import DestinationBuffer
from csvjson.errors import ErrorCollector, RecordError, ScratchIOError
from csvjson.records.contracts import ByteRange
from csvjson.records.reader import END_OF_CHUNK, RecordQueue
from csvjson.records.schema import Schema


class ChunkAssembler:
    """Drains one reader's records into a private scratch buffer.

    Records are validated and rendered here; failures are reported and
    skipped. Once the reader's stream ends the scratch buffer is merged into
    the destination exactly once.
    """

    def __init__(  # noqa: PLR0913
        self,
        byte_range: ByteRange,
        schema: Schema,
        scratch: BinaryIO,
        destination: DestinationBuffer,
        errors: ErrorCollector,
        logger: logging.Logger | logging.LoggerAdapter,
    ) -> None:
        self.byte_range = byte_range
        self.schema = schema
        self.scratch = scratch
        self.destination = destination
        self.errors = errors
        self.logger = logger

        self.n_written = 0
        self.n_rejected = 0

    @property
    def worker(self) -> int:
        return self.byte_range.worker

    def _write(self, fragment: bytes) -> None:
        # n_written counts fragments actually written, so rejected records
        # never leave a dangling comma.
        try:
            if self.n_written:
                self.scratch.write(b",")
            self.scratch.write(fragment)
        except OSError as exc:
            msg = f"Writing scratch buffer #{self.worker} failed: {exc}"
            raise ScratchIOError(msg) from exc
        self.n_written += 1

    def drain(self, records: RecordQueue) -> int:
        """Consume ``records`` until the end marker, then merge; returns count.

        Storage failures raise ``ScratchIOError``; the destination is left
        without this chunk.
        """
        ended = False
        try:
            while (item := records.get()) is not END_OF_CHUNK:
                try:
                    fragment = self.schema.render(item.fields)
                except RecordError as exc:
                    self.n_rejected += 1
                    self.errors.report(self.worker, item.offset, exc)
                    continue
                self._write(fragment)
            ended = True

            try:
                self.scratch.seek(0)
            except OSError as exc:
                msg = f"Rewinding scratch buffer #{self.worker} failed: {exc}"
                raise ScratchIOError(msg) from exc
            self.destination.merge(self.scratch, self.worker)
        finally:
            self.scratch.close()
            if not ended:
                # Keep the reader from blocking on a full queue forever.
                while records.get() is not END_OF_CHUNK:
                    pass

        self.logger.debug(
            "Assembler #%d done: written=%d rejected=%d",
            self.worker,
            self.n_written,
            self.n_rejected,
        )
        return self.n_written
