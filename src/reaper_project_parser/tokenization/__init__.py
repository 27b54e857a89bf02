"""Tokenization layer for REAPER project parsing.

Key Components:
    tokenize_line: Splits one line into tokens, honoring quoted spans
    classify_line: Decides whether a line opens, closes, or fills a block
    is_number: The numeric test that separates untyped value lines
    LineTokenizer: Classification and tokenization under one configuration
"""

from .tokenizer import (
    DEFAULT_STRIP_CHARS,
    LineKind,
    LineTokenizer,
    classify_line,
    is_number,
    tokenize_line,
)

__all__ = [
    "DEFAULT_STRIP_CHARS",
    "LineKind",
    "LineTokenizer",
    "classify_line",
    "is_number",
    "tokenize_line",
]
