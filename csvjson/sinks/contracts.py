from typing import BinaryIO, Protocol, runtime_checkable

JSON_CONTENT_TYPE = "application/json"


@runtime_checkable
class Sink(Protocol):
    """Destination for the finalized JSON buffer."""

    # ``stream`` is positioned at the start of the document and holds exactly
    # ``length`` bytes. Failures raise SinkWriteError.
    def write(self, stream: BinaryIO, length: int, content_type: str) -> str: ...
