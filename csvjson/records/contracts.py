from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

Record: TypeAlias = list[str]
Fragment: TypeAlias = bytes


@dataclass(frozen=True, slots=True)
class ByteRange:
    index: int  # 0-based position in the plan
    start: int
    end: int  # inclusive

    @property
    def worker(self) -> int:
        # 1-based, as reported in logs and error entries
        return self.index + 1

    @property
    def is_first(self) -> bool:
        return self.index == 0

    def __len__(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True, slots=True)
class ParsedRecord:
    offset: int  # byte offset of the line the record came from
    fields: Record


class ReaderState(Enum):
    SEEKING = "seeking"
    ALIGNING = "aligning"
    STREAMING = "streaming"
    DRAINING = "draining"
    DONE = "done"
