import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import BinaryIO

from rich.progress import Progress

from csvjson.assembly import ChunkAssembler, DestinationBuffer, scratch_factory
from csvjson.config import ConvertConfig
from csvjson.errors import (
    EmptySourceError,
    ErrorCollector,
    ErrorEntry,
    ScratchIOError,
    SinkWriteError,
)
from csvjson.io_utils import make_bounded_progress
from csvjson.logs import resolve_logger
from csvjson.records.contracts import ByteRange, ParsedRecord
from csvjson.records.planner import plan_byte_ranges
from csvjson.records.reader import ChunkReader
from csvjson.records.schema import Schema
from csvjson.sinks import JSON_CONTENT_TYPE, Sink
from csvjson.sources import ByteSource


@dataclass(frozen=True, slots=True)
class ConvertReport:
    source: str
    destination: str
    size: int
    n_ranges: int
    n_read: int
    n_parsed: int
    n_written: int
    errors: tuple[ErrorEntry, ...]


class Converter:
    """Converts one delimited source object into a single JSON array.

    ``convert`` blocks until every range has been read, validated and merged,
    then hands the finalized document to the sink. Only fatal conditions raise
    (see csvjson.errors); record and range level problems end up in the
    report's ``errors`` and in the logs.
    """

    def __init__(  # noqa: PLR0913
        self,
        source: ByteSource,
        sink: Sink,
        schema: Schema,
        config: ConvertConfig | None = None,
        *,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        on_error: Callable[[ErrorEntry], None] | None = None,
        progress_factory: Callable[[], Progress] = make_bounded_progress,
    ) -> None:
        self.source = source
        self.sink = sink
        self.schema = schema
        self.config = config or ConvertConfig()
        self.logger = logger
        self.on_error = on_error
        self.progress_factory = progress_factory

    def plan(self) -> tuple[int, list[ByteRange]]:
        size = self.source.size()
        if size < 1:
            msg = f"Source {self.source.describe()} is empty"
            raise EmptySourceError(msg)
        ranges = plan_byte_ranges(
            size,
            self.config.max_parallelism,
            self.config.min_bytes_per_unit,
        )
        return size, ranges

    def convert(self, cancel: threading.Event | None = None) -> ConvertReport:
        logger = self.logger or resolve_logger()
        size, ranges = self.plan()
        logger.info(
            "Converting %s: size=%d bytes ranges=%d columns=%d",
            self.source.describe(),
            size,
            len(ranges),
            len(self.schema),
        )

        # All storage is allocated up front so allocation failures are fatal
        # before any worker starts.
        allocate = scratch_factory(self.config)
        scratches: list[BinaryIO] = []
        output = allocate()
        try:
            scratches.extend(allocate() for _ in ranges)
            destination = DestinationBuffer(output, logger)
            errors = ErrorCollector(logger, self.on_error)

            try:
                readers, assemblers = self._run_chunks(
                    ranges,
                    scratches,
                    destination,
                    errors,
                    logger,
                    cancel,
                )
            except ScratchIOError:
                logger.exception("Scratch storage failed, nothing was written")
                raise

            length = destination.close()
            try:
                location = self.sink.write(output, length, JSON_CONTENT_TYPE)
            except SinkWriteError:
                logger.exception("Failed to write converted document")
                raise
        finally:
            output.close()
            for scratch in scratches:
                scratch.close()

        report = ConvertReport(
            source=self.source.describe(),
            destination=location,
            size=size,
            n_ranges=len(ranges),
            n_read=sum(r.n_read for r in readers),
            n_parsed=sum(r.n_parsed for r in readers),
            n_written=sum(a.n_written for a in assemblers),
            errors=tuple(errors.entries),
        )
        logger.info(
            "Done: %s -> %s read=%d written=%d errors=%d (%d bytes)",
            report.source,
            report.destination,
            report.n_read,
            report.n_written,
            len(report.errors),
            length,
        )
        return report

    def _run_chunks(  # noqa: PLR0913
        self,
        ranges: list[ByteRange],
        scratches: list[BinaryIO],
        destination: DestinationBuffer,
        errors: ErrorCollector,
        logger: logging.Logger | logging.LoggerAdapter,
        cancel: threading.Event | None,
    ) -> tuple[list[ChunkReader], list[ChunkAssembler]]:
        readers: list[ChunkReader] = []
        assemblers: list[ChunkAssembler] = []

        with self.progress_factory() as progress:
            task = progress.add_task(
                f"Converting {self.source.describe()}",
                total=sum(len(r) for r in ranges),
            )

            def on_progress(n_bytes: int) -> None:
                progress.update(task, advance=n_bytes)

            futures: dict[Future[object], ByteRange] = {}
            fatal: list[ScratchIOError] = []
            # One reader and one assembler thread per range.
            with ThreadPoolExecutor(
                max_workers=2 * len(ranges),
                thread_name_prefix="csvjson",
            ) as pool:
                for byte_range, scratch in zip(ranges, scratches, strict=True):
                    records: queue.Queue[ParsedRecord | None] = queue.Queue(
                        maxsize=self.config.channel_size,
                    )
                    reader = ChunkReader(
                        self.source,
                        byte_range,
                        len(self.schema),
                        self.config,
                        errors,
                        logger,
                        on_progress,
                    )
                    assembler = ChunkAssembler(
                        byte_range,
                        self.schema,
                        scratch,
                        destination,
                        errors,
                        logger,
                    )
                    readers.append(reader)
                    assemblers.append(assembler)
                    futures[pool.submit(assembler.drain, records)] = byte_range
                    futures[pool.submit(reader.read_into, records, cancel)] = byte_range

                # Join barrier: "]" is only written once every chunk is done.
                for future in as_completed(futures):
                    exc = future.exception()
                    if isinstance(exc, ScratchIOError):
                        fatal.append(exc)
                    elif exc is not None:
                        byte_range = futures[future]
                        errors.report(byte_range.worker, byte_range.start, exc)

        if fatal:
            raise fatal[0]
        return readers, assemblers
