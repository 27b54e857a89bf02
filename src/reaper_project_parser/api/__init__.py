"""Public API for REAPER project parsing.

Key Components:
    parse, parse_string, parse_lines, parse_file: Module-level entry points
    ReaperProjectParser: Configured, reusable parser with usage statistics
    get_adapter: Conversion of results to pandas and plain dictionaries
"""

from .adapters import (
    AdapterMetadata,
    AdapterType,
    ConversionResult,
    DictAdapter,
    IntegrationAdapter,
    PandasAdapter,
    get_adapter,
    list_available_adapters,
    node_records,
    register_adapter,
)
from .parser import (
    DocumentAccessError,
    ReaperProjectParser,
    parse,
    parse_file,
    parse_lines,
    parse_string,
)

__all__ = [
    "AdapterMetadata",
    "AdapterType",
    "ConversionResult",
    "DictAdapter",
    "DocumentAccessError",
    "IntegrationAdapter",
    "PandasAdapter",
    "ReaperProjectParser",
    "get_adapter",
    "list_available_adapters",
    "node_records",
    "parse",
    "parse_file",
    "parse_lines",
    "parse_string",
    "register_adapter",
]
