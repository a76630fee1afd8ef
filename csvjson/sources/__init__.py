from .contracts import ByteSource
from .local import LocalFileSource
from .s3 import S3ObjectSource, s3_client

__all__ = ["ByteSource", "LocalFileSource", "S3ObjectSource", "s3_client"]
