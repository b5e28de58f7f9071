"""Service layer utilities for the mosaic worker."""

from .decoder import decode_buffers, decode_image
from .encoder import decode_data_uri, encode_canvas
from .mosaic_runner import MosaicPipeline
from .reporter import ProgressReporter
from .session import ChunkedTransfer, Session, SessionManager

__all__ = [
    "ChunkedTransfer",
    "MosaicPipeline",
    "ProgressReporter",
    "Session",
    "SessionManager",
    "decode_buffers",
    "decode_data_uri",
    "decode_image",
    "encode_canvas",
]
