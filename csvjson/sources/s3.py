from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from csvjson.errors import SourceReadError, SourceSizeError
from csvjson.sources.contracts import ByteSource


def s3_client(
    endpoint: str | None = None,
    region: str | None = None,
    *,
    path_style: bool | None = None,
) -> Any:  # noqa: ANN401 - boto3 clients are generated at runtime
    """S3 client; pass ``endpoint`` and ``path_style=True`` for MinIO."""
    config = None
    if path_style:
        config = Config(s3={"addressing_style": "path"})
    return boto3.client("s3", endpoint_url=endpoint, region_name=region, config=config)


class S3RangeStream:
    """File-like view over one ranged ``GetObject`` response body."""

    def __init__(self, body: Any, uri: str, start: int) -> None:  # noqa: ANN401
        self._body = body
        self._uri = uri
        self._pos = start

    def read(self, size: int = -1) -> bytes:
        try:
            data = self._body.read(None if size < 0 else size)
        except (BotoCoreError, ClientError, OSError) as exc:
            msg = f"Read from {self._uri} failed at offset {self._pos}: {exc}"
            raise SourceReadError(msg) from exc
        self._pos += len(data)
        return data

    def close(self) -> None:
        self._body.close()

    def __enter__(self) -> "S3RangeStream":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass(frozen=True)
class S3ObjectSource(ByteSource):
    client: Any
    bucket: str
    key: str

    def describe(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    def size(self) -> int:
        try:
            head = self.client.head_object(Bucket=self.bucket, Key=self.key)
        except (BotoCoreError, ClientError) as exc:
            msg = f"Cannot determine size of {self.describe()}: {exc}"
            raise SourceSizeError(msg) from exc
        return int(head["ContentLength"])

    def open_range(self, start: int) -> S3RangeStream:
        # Open-ended range: the last line of a range may run past its end.
        try:
            response = self.client.get_object(
                Bucket=self.bucket,
                Key=self.key,
                Range=f"bytes={start}-",
            )
        except (BotoCoreError, ClientError) as exc:
            msg = f"Cannot open {self.describe()} at offset {start}: {exc}"
            raise SourceReadError(msg) from exc
        return S3RangeStream(response["Body"], self.describe(), start)
