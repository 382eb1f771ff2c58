"""Core package for packet trace decoding functionality."""

from .capture import FrameCapture, ObjectFramer
from .config import TraceConfig, TraceFlags
from .export import CaptureFileError, TraceWriter
from .filters import FrameFilter, TraceContext
from .parser import TraceDecoder

__all__ = [
    'FrameCapture', 'ObjectFramer', 'TraceConfig', 'TraceFlags',
    'CaptureFileError', 'TraceWriter', 'FrameFilter', 'TraceContext',
    'TraceDecoder',
]
