import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from csvjson.errors import SinkWriteError
from csvjson.io_utils import copy_stream
from csvjson.sinks.contracts import Sink


@dataclass(frozen=True)
class LocalFileSink(Sink):
    path: Path

    def write(
        self,
        stream: BinaryIO,
        length: int,
        content_type: str,  # noqa: ARG002 - files carry no content type
    ) -> str:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as f:
                written = copy_stream(stream, f)
            if written == length:
                os.replace(tmp_path, self.path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            msg = f"Cannot write {self.path}: {exc}"
            raise SinkWriteError(msg) from exc

        if written != length:
            tmp_path.unlink(missing_ok=True)
            msg = f"Wrote {written} bytes for {self.path}, expected {length}"
            raise SinkWriteError(msg)
        return str(self.path)
