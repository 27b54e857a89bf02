"""Tree layer for REAPER project parsing.

This module builds node trees from document lines, answers queries over them,
and writes them back out as ``.rpp`` text.

Key Components:
    ReaperTreeBuilder: Single-pass tree construction from document lines
    ReaperDocument: Root node with provenance and project accessors
    ReaperNode: Typed tree vertex with the query methods
    ParseResult: Result object with document, diagnostics, and metrics
"""

from .builder import ParseResult, ReaperDocument, ReaperTreeBuilder
from .node import NAME_TYPE, ReaperNode
from .writer import dump, dumps, format_line, format_value

__all__ = [
    "NAME_TYPE",
    "ParseResult",
    "ReaperDocument",
    "ReaperNode",
    "ReaperTreeBuilder",
    "dump",
    "dumps",
    "format_line",
    "format_value",
]
