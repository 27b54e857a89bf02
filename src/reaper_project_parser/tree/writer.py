"""Serialization of ``ReaperNode`` trees back into ``.rpp`` text.

Blocks are written as an opening line ``<TYPE values...``, their children
indented one level, and a closing ``>`` line. Values that are empty or contain
whitespace are double-quoted. Values containing a double quote or a bracket
marker cannot be represented in the format and are written unchanged. A type
that needs quoting can be written on a content line but not on an opening
line, where it raises ``ValueError``.
"""

import re
from typing import List, Optional, TextIO

from .node import ReaperNode

_NEEDS_QUOTES = re.compile(r"\s")


def format_value(value: str) -> str:
    """Format one value as a token.

    Examples:
        >>> format_value("My Track")
        '"My Track"'
        >>> format_value("")
        '""'
        >>> format_value("120")
        '120'
    """
    if not value or _NEEDS_QUOTES.search(value):
        return f'"{value}"'
    return value


def format_line(node: ReaperNode) -> str:
    """Format the tokens of a single node without indentation or markers."""
    tokens = [format_value(node.type)] if node.type else []
    tokens.extend(format_value(value) for value in node.values)
    return " ".join(tokens)


def _write_lines(node: ReaperNode, indent: str, out: List[str]) -> None:
    # Explicit stack of (node, depth, closing) entries
    stack = [(node, 0, False)]
    while stack:
        current, depth, closing = stack.pop()
        prefix = indent * depth
        if closing:
            out.append(f"{prefix}>")
            continue
        if current.is_block or current.children:
            if current.type and current.type != format_value(current.type):
                # A quote after the open marker is not read as a quoted span
                raise ValueError(f"Block type cannot be written: {current.type!r}")
            out.append(f"{prefix}<{format_line(current)}")
            stack.append((current, depth, True))
            stack.extend(
                (child, depth + 1, False) for child in reversed(current.children)
            )
        else:
            out.append(f"{prefix}{format_line(current)}".rstrip())


def dumps(node: ReaperNode, indent: str = "  ") -> str:
    """Serialize ``node`` and its subtree to ``.rpp`` text.

    Nodes that were opened by a bracket line, or that have children, are
    written as blocks; all other nodes are written as plain content lines.
    """
    lines: List[str] = []
    _write_lines(node, indent, lines)
    return "\n".join(lines) + "\n"


def dump(node: ReaperNode, fp: TextIO, indent: Optional[str] = None) -> None:
    """Serialize ``node`` to a writable text stream."""
    fp.write(dumps(node, indent if indent is not None else "  "))
