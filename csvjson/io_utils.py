import shutil
from typing import BinaryIO

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

COPY_CHUNK_SIZE = 1024 * 1024


def make_bounded_progress() -> Progress:
    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        "[progress.percentage]{task.percentage:>3.1f}%",
        "•",
        DownloadColumn(),
        "•",
        TransferSpeedColumn(),
        "•",
        TimeRemainingColumn(),
        transient=True,
    )


def copy_stream(src: BinaryIO, dst: BinaryIO) -> int:
    """Copy ``src`` from its current position to ``dst``; returns bytes copied."""
    start = dst.tell()
    shutil.copyfileobj(src, dst, COPY_CHUNK_SIZE)
    return dst.tell() - start
