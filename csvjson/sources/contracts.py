from typing import BinaryIO, Protocol, runtime_checkable


@runtime_checkable
class ByteSource(Protocol):
    """A byte object of known length that can be read from any offset."""

    def size(self) -> int: ...

    # Opens a new, independent read session positioned at ``start`` that reads
    # through the end of the object. Callers close it when done.
    def open_range(self, start: int) -> BinaryIO: ...

    def describe(self) -> str: ...
