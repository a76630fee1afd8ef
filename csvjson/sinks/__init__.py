from .contracts import JSON_CONTENT_TYPE, Sink
from .local import LocalFileSink
from .s3 import S3ObjectSink

__all__ = ["JSON_CONTENT_TYPE", "LocalFileSink", "S3ObjectSink", "Sink"]
