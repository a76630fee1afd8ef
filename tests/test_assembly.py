import io
import json
import logging
import queue
import tempfile
import threading
from pathlib import Path

import pytest

from conftest import UnreadableScratch
from csvjson.assembly import ChunkAssembler, DestinationBuffer, scratch_factory
from csvjson.config import ConvertConfig
from csvjson.errors import ErrorCollector, RecordValidationError, ScratchIOError
from csvjson.records.contracts import ByteRange, ParsedRecord
from csvjson.records.reader import END_OF_CHUNK
from csvjson.records.schema import Schema


def _chunk(data: bytes) -> io.BytesIO:
    return io.BytesIO(data)


def _document(destination: DestinationBuffer) -> bytes:
    destination.close()
    return destination.buffer.read()


def test_empty_first_chunk_does_not_cause_leading_comma(
    logger: logging.Logger,
) -> None:
    destination = DestinationBuffer(io.BytesIO(), logger)
    assert destination.merge(_chunk(b""), worker=2) == 0
    assert not destination.has_elements
    destination.merge(_chunk(b'{"a":1}'), worker=1)
    destination.merge(_chunk(b""), worker=3)
    destination.merge(_chunk(b'{"a":2},{"a":3}'), worker=4)

    doc = _document(destination)
    assert doc == b'[{"a":1},{"a":2},{"a":3}]'
    assert json.loads(doc) == [{"a": 1}, {"a": 2}, {"a": 3}]


def test_all_empty_chunks_give_an_empty_array(logger: logging.Logger) -> None:
    destination = DestinationBuffer(io.BytesIO(), logger)
    for worker in range(1, 4):
        destination.merge(_chunk(b""), worker)
    assert _document(destination) == b"[]"


def test_chunk_merges_only_once(logger: logging.Logger) -> None:
    destination = DestinationBuffer(io.BytesIO(), logger)
    destination.merge(_chunk(b"{}"), worker=1)
    with pytest.raises(RuntimeError):
        destination.merge(_chunk(b"{}"), worker=1)
    destination.close()
    with pytest.raises(RuntimeError):
        destination.merge(_chunk(b"{}"), worker=2)


def test_failed_merge_leaves_no_partial_chunk(logger: logging.Logger) -> None:
    destination = DestinationBuffer(io.BytesIO(), logger)
    destination.merge(_chunk(b'{"a":1}'), worker=1)
    with pytest.raises(ScratchIOError):
        destination.merge(UnreadableScratch(b'{"a":2}'), worker=2)
    assert destination.has_elements
    destination.merge(_chunk(b'{"a":3}'), worker=3)

    assert json.loads(_document(destination)) == [{"a": 1}, {"a": 3}]


def test_failed_first_merge_keeps_the_array_empty(logger: logging.Logger) -> None:
    destination = DestinationBuffer(io.BytesIO(), logger)
    with pytest.raises(ScratchIOError):
        destination.merge(UnreadableScratch(b'{"a":1}'), worker=1)
    assert not destination.has_elements
    assert _document(destination) == b"[]"


def test_concurrent_merges_keep_chunks_intact(logger: logging.Logger) -> None:
    destination = DestinationBuffer(io.BytesIO(), logger)
    chunks = {w: ",".join(f'{{"w":{w},"i":{i}}}' for i in range(200)) for w in range(1, 9)}

    threads = [
        threading.Thread(target=destination.merge, args=(_chunk(c.encode()), w))
        for w, c in chunks.items()
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    items = json.loads(_document(destination))
    assert len(items) == 8 * 200
    # Within a chunk the order is preserved.
    for w in chunks:
        assert [x["i"] for x in items if x["w"] == w] == list(range(200))


def test_assembler_skips_invalid_records(
    logger: logging.Logger,
    simple_schema: Schema,
) -> None:
    errors = ErrorCollector(logger)
    destination = DestinationBuffer(io.BytesIO(), logger)
    records: queue.Queue[ParsedRecord | None] = queue.Queue()
    for item in (
        ParsedRecord(100, ["x", "bad id"]),
        ParsedRecord(110, ["1", "Alice"]),
        ParsedRecord(120, ["2", ""]),
        ParsedRecord(130, ["3", "Carol"]),
        END_OF_CHUNK,
    ):
        records.put(item)

    scratch = io.BytesIO()
    assembler = ChunkAssembler(
        ByteRange(4, 100, 199),
        simple_schema,
        scratch,
        destination,
        errors,
        logger,
    )
    assert assembler.drain(records) == 2
    assert assembler.n_rejected == 2
    assert scratch.closed

    assert _document(destination) == b'[{"id":1,"name":"Alice"},{"id":3,"name":"Carol"}]'
    assert [(e.worker, e.offset) for e in errors.entries] == [(5, 100), (5, 120)]
    assert all(isinstance(e.cause, RecordValidationError) for e in errors.entries)


class _FullScratch(io.BytesIO):
    def write(self, data: bytes) -> int:  # noqa: ARG002
        msg = "no space left on device"
        raise OSError(msg)


def test_scratch_write_failure_is_raised_and_queue_drained(
    logger: logging.Logger,
    simple_schema: Schema,
) -> None:
    destination = DestinationBuffer(io.BytesIO(), logger)
    records: queue.Queue[ParsedRecord | None] = queue.Queue()
    for item in (
        ParsedRecord(0, ["1", "Alice"]),
        ParsedRecord(8, ["2", "Bob"]),
        END_OF_CHUNK,
    ):
        records.put(item)

    assembler = ChunkAssembler(
        ByteRange(0, 0, 99),
        simple_schema,
        _FullScratch(),
        destination,
        ErrorCollector(logger),
        logger,
    )
    with pytest.raises(ScratchIOError):
        assembler.drain(records)
    assert records.empty()
    assert _document(destination) == b"[]"


def test_scratch_strategies(tmp_path: Path) -> None:
    memory = scratch_factory(ConvertConfig(scratch="memory"))()
    assert isinstance(memory, io.BytesIO)

    spill = scratch_factory(ConvertConfig(scratch="spill", scratch_dir=tmp_path / "s"))()
    spill.write(b"abc")
    spill.seek(0)
    assert spill.read() == b"abc"
    spill.close()
    assert (tmp_path / "s").is_dir()

    auto = scratch_factory(
        ConvertConfig(scratch="auto", spill_threshold=4, scratch_dir=tmp_path),
    )()
    assert isinstance(auto, tempfile.SpooledTemporaryFile)
    auto.write(b"0123456789")
    assert auto._rolled  # noqa: SLF001
    auto.close()
