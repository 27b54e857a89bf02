"""Character processing layer for the REAPER project parser.

This module provides decoding and line splitting for raw project input.
"""

from .stream import (
    CharacterStreamResult,
    DetectionMethod,
    DocumentTextProcessor,
    EncodingResult,
    normalize_lines,
    split_lines,
)

__all__ = [
    "CharacterStreamResult",
    "DetectionMethod",
    "DocumentTextProcessor",
    "EncodingResult",
    "normalize_lines",
    "split_lines",
]
