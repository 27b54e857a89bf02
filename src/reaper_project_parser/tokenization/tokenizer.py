"""Line tokenization for the REAPER project format.

A ``.rpp`` document is line oriented: a line containing ``<`` opens a block,
a line containing ``>`` closes one, and every other line is content. Within a
line, tokens are whitespace separated except for double-quoted spans, which
form a single token. There is no escape syntax for a quote inside a quoted
span.
"""

import re
from enum import Enum, auto
from typing import List, Optional

from reaper_project_parser.shared import TokenizationConfig, TreeConfig

DEFAULT_STRIP_CHARS = ' "<>'

# A quoted span (quotes included) or a run of non-whitespace
_TOKEN_PATTERN = re.compile(r'"[^"]*"|\S+')


class LineKind(Enum):
    """Structural role of a document line."""

    OPENING = auto()    # Contains the open marker; starts a block
    CLOSING = auto()    # Contains the close marker only; ends a block
    CONTENT = auto()    # Neither marker; a leaf node of the current block


def tokenize_line(line: str, strip_chars: str = DEFAULT_STRIP_CHARS) -> List[str]:
    """Split one line into tokens.

    Each token is the contents of a double-quoted span or a maximal run of
    non-whitespace; afterwards, characters in ``strip_chars`` are removed from
    both ends of every token.

    Examples:
        >>> tokenize_line('NAME "My Track One"')
        ['NAME', 'My Track One']
        >>> tokenize_line('<REAPER_PROJECT 0.1 "6.80/linux64" 1700000000')
        ['REAPER_PROJECT', '0.1', '6.80/linux64', '1700000000']
    """
    return [token.strip(strip_chars) for token in _TOKEN_PATTERN.findall(line)]


def is_number(token: str) -> bool:
    """Check whether ``token`` parses as a floating point number.

    Anything ``float()`` accepts counts, including exponent forms and the
    ``inf``/``nan`` spellings. A failed parse means "not a number".
    """
    try:
        float(token)
    except ValueError:
        return False
    return True


def classify_line(
    line: str, open_marker: str = "<", close_marker: str = ">"
) -> LineKind:
    """Classify a line by the bracket markers it contains.

    The open marker wins when a line contains both markers.
    """
    if open_marker in line:
        return LineKind.OPENING
    if close_marker in line:
        return LineKind.CLOSING
    return LineKind.CONTENT


class LineTokenizer:
    """Classifies and tokenizes document lines under one configuration."""

    def __init__(
        self,
        config: Optional[TokenizationConfig] = None,
        tree_config: Optional[TreeConfig] = None,
    ) -> None:
        self.config = config or TokenizationConfig()
        self.tree_config = tree_config or TreeConfig()

    def tokenize(self, line: str) -> List[str]:
        """Tokenize a line after trimming surrounding whitespace."""
        return tokenize_line(line.strip(), self.config.strip_chars)

    def classify(self, line: str) -> LineKind:
        return classify_line(
            line, self.tree_config.open_marker, self.tree_config.close_marker
        )

