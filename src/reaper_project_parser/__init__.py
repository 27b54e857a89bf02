"""REAPER Project Parser.

A parser for the line-oriented, bracket-delimited ``.rpp`` project format used
by the REAPER digital audio workstation. Documents become trees of typed nodes
that can be queried by type and by ``NAME``.

Progressive API Disclosure:
- Level 1: Simple functions - parse(), parse_string(), parse_file()
- Level 2: Configured parser - ReaperProjectParser class
- Level 3: Adapters - pandas DataFrames and plain dictionaries
"""

__version__ = "0.1.0"
__author__ = "REAPER Project Parser Team"

# Levels 1 and 2: simple functions and the configured parser
from .api import (
    DocumentAccessError,
    ReaperProjectParser,
    parse,
    parse_file,
    parse_lines,
    parse_string,
)

# Configuration classes for advanced usage
from .shared.config import ParserConfig

# Core result objects for all API levels
from .tree import ParseResult, ReaperDocument, ReaperNode

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple parsing functions (progressive disclosure entry point)
    "parse",
    "parse_string",
    "parse_lines",
    "parse_file",

    # Level 2: Advanced parser class
    "ReaperProjectParser",
    "DocumentAccessError",

    # Result objects and data structures
    "ParseResult",
    "ReaperDocument",
    "ReaperNode",

    # Configuration classes for advanced usage
    "ParserConfig",
]
