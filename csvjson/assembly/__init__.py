from .assembler import ChunkAssembler
from .merger import DestinationBuffer
from .scratch import scratch_factory

__all__ = ["ChunkAssembler", "DestinationBuffer", "scratch_factory"]
