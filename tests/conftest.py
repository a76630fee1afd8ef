import io
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import BinaryIO

import pytest
from rich.progress import Progress

from csvjson.records.schema import Schema


@dataclass
class MemorySource:
    data: bytes
    opened: list[int] = field(default_factory=list)

    def size(self) -> int:
        return len(self.data)

    def open_range(self, start: int) -> BinaryIO:
        self.opened.append(start)
        return io.BytesIO(self.data[start:])

    def describe(self) -> str:
        return "memory://source.csv"


@dataclass
class MemorySink:
    written: bytes | None = None
    content_type: str | None = None

    def write(self, stream: BinaryIO, length: int, content_type: str) -> str:
        self.written = stream.read()
        assert len(self.written) == length
        self.content_type = content_type
        return "memory://out.json"


class StubBody(io.BytesIO):
    """Stands in for botocore's StreamingBody."""


class StubS3Client:
    def __init__(self, objects: dict[tuple[str, str], bytes] | None = None) -> None:
        self.objects = dict(objects or {})
        self.get_calls: list[dict] = []
        self.put_calls: list[dict] = []

    def head_object(self, Bucket: str, Key: str) -> dict:  # noqa: N803
        return {"ContentLength": len(self.objects[(Bucket, Key)])}

    def get_object(self, Bucket: str, Key: str, Range: str) -> dict:  # noqa: N803
        self.get_calls.append({"Bucket": Bucket, "Key": Key, "Range": Range})
        start = int(Range.removeprefix("bytes=").removesuffix("-"))
        return {"Body": StubBody(self.objects[(Bucket, Key)][start:])}

    def put_object(self, **kwargs) -> dict:
        kwargs["Body"] = kwargs["Body"].read()
        self.put_calls.append(kwargs)
        self.objects[(kwargs["Bucket"], kwargs["Key"])] = kwargs["Body"]
        return {}


CUSTOMER_HEADER = (
    "Index,Customer Id,First Name,Last Name,Company,City,Country,"
    "Phone 1,Phone 2,Email,Subscription Date,Website"
)


def customer_row(i: int) -> str:
    return (
        f'{i},DD37Cf93aecA{i:04d},Name{i},"Surname, {i}",Company {i % 7},'
        f"City{i % 13},Country{i % 5},+1-{i:03d}-555,({i:03d})555-0100,"
        f"user{i}@example.com,2021-{(i % 12) + 1:02d}-{(i % 28) + 1:02d},"
        f"https://www.site{i}.com/"
    )


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("csvjson.tests")


@pytest.fixture
def quiet_progress() -> Callable[[], Progress]:
    return lambda: Progress(disable=True)


@pytest.fixture
def customers_csv() -> Callable[[int], bytes]:
    def _build(n_rows: int, *, header: bool = True) -> bytes:
        lines = [CUSTOMER_HEADER] if header else []
        lines.extend(customer_row(i) for i in range(1, n_rows + 1))
        return ("\n".join(lines) + "\n").encode("utf-8")

    return _build


@pytest.fixture
def simple_schema() -> Schema:
    return Schema.from_dicts(
        [
            {"name": "id", "rules": "required,numeric"},
            {"name": "name", "rules": "required"},
        ],
    )


class FailingStream(io.BytesIO):
    """Raises once the read position reaches ``fail_after``."""

    def __init__(self, data: bytes, fail_after: int) -> None:
        super().__init__(data)
        self.fail_after = fail_after

    def read(self, size: int | None = -1) -> bytes:
        if self.tell() >= self.fail_after:
            msg = "connection reset"
            raise OSError(msg)
        return super().read(size)


class FlakySource(MemorySource):
    def open_range(self, start: int) -> BinaryIO:
        self.opened.append(start)
        return FailingStream(self.data[start:], fail_after=8)


class UnreadableScratch(io.BytesIO):
    """Accepts writes but fails on any read larger than one byte."""

    def read(self, size: int | None = -1) -> bytes:
        if size == 1:
            return super().read(size)
        msg = "scratch read failed"
        raise OSError(msg)
