import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Literal

from beartype.door import is_bearable

from csvjson.cache import CachePathsConfig
from csvjson.type_hints import Delimiter, Encoding, PositiveInt

ScratchStrategy = Literal["memory", "spill", "auto"]

MIN_BYTES_PER_UNIT = 4 * 128
CHANNEL_SIZE = 256


@dataclass(frozen=True, slots=True)
class ConvertConfig:
    """Options for one conversion job.

    max_parallelism and min_bytes_per_unit are not validated here: the planner
    clamps non-positive values to 1.
    """

    _SCRATCH_STRATEGIES: ClassVar[frozenset[str]] = frozenset(
        {"memory", "spill", "auto"},
    )

    has_header: bool = False
    buffer_size: int = 4 * 1024
    lazy_quotes: bool = False
    delimiter: str = ","
    max_parallelism: int = field(default_factory=lambda: os.cpu_count() or 1)
    min_bytes_per_unit: int = MIN_BYTES_PER_UNIT
    channel_size: int = CHANNEL_SIZE
    encoding: str = "utf-8"
    scratch: ScratchStrategy = "auto"
    spill_threshold: int = 8 * 1024 * 1024  # 8MB
    scratch_dir: Path = field(
        default_factory=lambda: CachePathsConfig().scratch_root,
    )

    def __post_init__(self) -> None:
        if not is_bearable(self.delimiter, Delimiter):
            msg = (
                f"delimiter must be a single character other than a quote or "
                f"newline, got {self.delimiter!r}"
            )
            raise ValueError(msg)
        for name in ("buffer_size", "channel_size", "spill_threshold"):
            value = getattr(self, name)
            if not is_bearable(value, PositiveInt):
                msg = f"{name} must be a positive integer, got {value!r}"
                raise ValueError(msg)
        if not is_bearable(self.encoding, Encoding):
            msg = f"Unknown encoding: {self.encoding!r}"
            raise ValueError(msg)
        if self.scratch not in self._SCRATCH_STRATEGIES:
            msg = f"Unsupported scratch strategy: {self.scratch!r}"
            raise ValueError(msg)
