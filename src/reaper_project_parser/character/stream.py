"""Character stream processing for REAPER project documents.

This module turns raw input (text, bytes, or file-like objects) into decoded
text and the ordered line sequence consumed by the tree builder. Encoding
detection follows a BOM, then UTF-8, then Latin-1 order; line endings are
normalized according to the tokenization configuration.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import BinaryIO, ClassVar, Dict, List, Optional, TextIO, Tuple, Union

from reaper_project_parser.shared import (
    ApiConfig,
    DiagnosticEntry,
    DiagnosticSeverity,
    TokenizationConfig,
    get_logger,
)

# Type definitions for input data
InputType = Union[bytes, str, BinaryIO, TextIO]

_BYTE_ORDER_MARK = "\ufeff"
_FALLBACK_ENCODING = "latin-1"


class DetectionMethod(Enum):
    """How the document encoding was determined."""

    NATIVE_STRING = auto()   # Input was already text
    DECLARED = auto()        # Encoding supplied by the caller
    BOM = auto()             # Byte order mark
    UTF8_VALIDATION = auto() # Bytes decoded cleanly as UTF-8
    FALLBACK = auto()        # Latin-1 fallback after UTF-8 failed


@dataclass
class EncodingResult:
    """Encoding used to decode a document."""

    encoding: str
    method: DetectionMethod
    confidence: float = 1.0


@dataclass
class CharacterStreamResult:
    """Decoded document text split into lines.

    Attributes:
        text: Decoded document text, line endings normalized if configured
        lines: Document lines in order, without terminators
        encoding: Encoding detection result
        diagnostics: Diagnostics raised while decoding
    """

    text: str
    lines: List[str]
    encoding: EncodingResult
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)

    @property
    def line_count(self) -> int:
        return len(self.lines)


def split_lines(text: str, normalize_line_endings: bool = True) -> List[str]:
    """Split document text into lines on ``\\n``.

    With normalization, ``\\r\\n`` and lone ``\\r`` terminators are treated as
    ``\\n`` first, so files saved with any convention yield the same lines. A
    final line terminator ends the last line rather than starting an empty one.
    """
    if normalize_line_endings:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def normalize_lines(lines: List[str], normalize_line_endings: bool = True) -> List[str]:
    """Strip a trailing carriage return from already-split lines."""
    if not normalize_line_endings:
        return list(lines)
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class DocumentTextProcessor:
    """Decodes raw input and produces the line sequence of a document."""

    BOM_PATTERNS: ClassVar[Dict[bytes, str]] = {
        b"\xef\xbb\xbf": "utf-8",
        b"\xff\xfe": "utf-16-le",
        b"\xfe\xff": "utf-16-be",
    }

    def __init__(
        self,
        tokenization: Optional[TokenizationConfig] = None,
        api: Optional[ApiConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.tokenization = tokenization or TokenizationConfig()
        self.api = api or ApiConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "text_processor")

    def process(
        self, input_data: InputType, encoding: Optional[str] = None
    ) -> CharacterStreamResult:
        """Decode ``input_data`` and split it into lines.

        Args:
            input_data: Document as text, bytes, or a readable file object
            encoding: Encoding override for byte input

        Returns:
            CharacterStreamResult with text, lines and encoding information

        Raises:
            UnicodeDecodeError: If decoding fails with ``encoding_errors="strict"``
            LookupError: If ``encoding`` names an unknown codec
        """
        if hasattr(input_data, "read"):
            input_data = input_data.read()

        diagnostics: List[DiagnosticEntry] = []
        if isinstance(input_data, bytes):
            text, encoding_result = self._decode_bytes(
                input_data, encoding or self.api.default_encoding, diagnostics
            )
        else:
            text = str(input_data)
            encoding_result = EncodingResult("str", DetectionMethod.NATIVE_STRING)

        if text.startswith(_BYTE_ORDER_MARK):
            text = text[len(_BYTE_ORDER_MARK):]

        if self.tokenization.normalize_line_endings:
            text = text.replace("\r\n", "\n").replace("\r", "\n")
        lines = split_lines(text, normalize_line_endings=False)

        self.logger.debug(
            "Document text decoded",
            extra={
                "encoding": encoding_result.encoding,
                "method": encoding_result.method.name,
                "line_count": len(lines),
            },
        )
        return CharacterStreamResult(text, lines, encoding_result, diagnostics)

    def _decode_bytes(
        self,
        data: bytes,
        encoding: Optional[str],
        diagnostics: List[DiagnosticEntry],
    ) -> Tuple[str, EncodingResult]:
        if encoding:
            text = data.decode(encoding, errors=self.api.encoding_errors)
            return text, EncodingResult(encoding, DetectionMethod.DECLARED)

        # Longer patterns first
        for bom, bom_encoding in sorted(
            self.BOM_PATTERNS.items(), key=lambda item: len(item[0]), reverse=True
        ):
            if data.startswith(bom):
                text = data[len(bom):].decode(
                    bom_encoding, errors=self.api.encoding_errors
                )
                return text, EncodingResult(bom_encoding, DetectionMethod.BOM)

        try:
            text = data.decode("utf-8")
            return text, EncodingResult("utf-8", DetectionMethod.UTF8_VALIDATION)
        except UnicodeDecodeError as e:
            if self.api.encoding_errors == "strict":
                raise
            diagnostics.append(
                DiagnosticEntry(
                    severity=DiagnosticSeverity.WARNING,
                    message="Document is not valid UTF-8, decoded as Latin-1",
                    component="text_processor",
                    details={"offset": e.start, "reason": e.reason},
                    correlation_id=self.correlation_id,
                )
            )
            self.logger.warning(
                "UTF-8 decoding failed, falling back to Latin-1",
                extra={"offset": e.start},
            )
            text = data.decode(_FALLBACK_ENCODING)
            return text, EncodingResult(
                _FALLBACK_ENCODING, DetectionMethod.FALLBACK, confidence=0.5
            )
