from dataclasses import dataclass
from typing import Any, BinaryIO

from botocore.exceptions import BotoCoreError, ClientError

from csvjson.errors import SinkWriteError
from csvjson.sinks.contracts import Sink


@dataclass(frozen=True)
class S3ObjectSink(Sink):
    client: Any
    bucket: str
    key: str

    def write(self, stream: BinaryIO, length: int, content_type: str) -> str:
        uri = f"s3://{self.bucket}/{self.key}"
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=self.key,
                Body=stream,
                ContentLength=length,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            msg = f"Cannot write {uri}: {exc}"
            raise SinkWriteError(msg) from exc
        return uri
