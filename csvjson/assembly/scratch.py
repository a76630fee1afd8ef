import io
import tempfile
from collections.abc import Callable
from typing import BinaryIO

from csvjson.config import ConvertConfig
from csvjson.errors import ScratchAllocationError

ScratchFactory = Callable[[], BinaryIO]


def scratch_factory(config: ConvertConfig) -> ScratchFactory:
    """Build the allocator for chunk and destination buffers.

    - memory: everything stays in RAM (small jobs)
    - spill: anonymous temp files under ``scratch_dir``
    - auto: in RAM until ``spill_threshold`` bytes, then rolled to disk
    """
    if config.scratch == "memory":
        return io.BytesIO

    def _allocate() -> BinaryIO:
        try:
            config.scratch_dir.mkdir(parents=True, exist_ok=True)
            if config.scratch == "spill":
                return tempfile.TemporaryFile(dir=config.scratch_dir)  # noqa: SIM115 - owned by the caller
            return tempfile.SpooledTemporaryFile(  # noqa: SIM115 - owned by the caller
                max_size=config.spill_threshold,
                dir=config.scratch_dir,
            )
        except OSError as exc:
            msg = f"Cannot allocate scratch storage in {config.scratch_dir}: {exc}"
            raise ScratchAllocationError(msg) from exc

    return _allocate
