from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from csvjson.errors import SourceSizeError
from csvjson.sources.contracts import ByteSource


@dataclass(frozen=True)
class LocalFileSource(ByteSource):
    path: Path

    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError as exc:
            msg = f"Cannot stat {self.path}: {exc}"
            raise SourceSizeError(msg) from exc

    def open_range(self, start: int) -> BinaryIO:
        # Fresh handle per call: concurrent seeks on a shared handle race.
        f = self.path.open("rb")
        f.seek(start)
        return f

    def describe(self) -> str:
        return str(self.path)
