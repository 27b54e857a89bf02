"""Core parser API with progressive disclosure for REAPER project parsing.

This module provides the main parsing API, from simple module-level functions
to a configurable, reusable parser class. Every entry point returns a
``ParseResult``; failures to read the input are reported on the result unless
the configuration asks for ``DocumentAccessError`` to be raised instead.
"""

import time
import uuid
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, TextIO, Union

from reaper_project_parser.character import (
    DetectionMethod,
    DocumentTextProcessor,
    normalize_lines,
)
from reaper_project_parser.shared import (
    DiagnosticSeverity,
    ParserConfig,
    get_logger,
)
from reaper_project_parser.tree import ParseResult, ReaperTreeBuilder

# Type definitions for input data
InputType = Union[str, bytes, BinaryIO, TextIO, Path]

MS_PER_SECOND = 1000  # Milliseconds per second conversion


class DocumentAccessError(Exception):
    """Raised when a document cannot be read or decoded.

    Only raised when ``ApiConfig.raise_on_access_error`` is set; otherwise the
    failure is reported as a CRITICAL diagnostic on an unsuccessful result.
    """

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


def parse(
    input_data: InputType,
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None
) -> ParseResult:
    """Parse a REAPER project from various input sources.

    Strings are treated as document text, never as file names; pass a
    ``Path`` to read a file.

    Args:
        input_data: Document as string, bytes, file-like object, or Path
        config: Parser configuration (defaults to ``ParserConfig()``)
        correlation_id: Optional correlation ID for request tracking

    Returns:
        ParseResult containing the document tree and diagnostics

    Examples:
        >>> result = parse('<REAPER_PROJECT 0.1\\n  TEMPO 120 4 4\\n>')
        >>> result.root.first_child_of_type("TEMPO").values
        ['120', '4', '4']
    """
    config = config or ParserConfig()
    correlation_id = _resolve_correlation_id(config, correlation_id)

    if isinstance(input_data, Path):
        return parse_file(input_data, config=config, correlation_id=correlation_id)

    logger = get_logger(__name__, correlation_id, "parse")
    logger.info(
        "Starting parse operation",
        extra={"input_type": type(input_data).__name__}
    )
    return _parse_content(input_data, config, correlation_id)


def parse_string(
    text: str,
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None
) -> ParseResult:
    """Parse a REAPER project held in a string.

    Examples:
        >>> result = parse_string('<REAPER_PROJECT\\n  <TRACK\\n    NAME "Drums"\\n  >\\n>')
        >>> result.root.find_by_type_and_name("TRACK", "Drums") is not None
        True
    """
    config = config or ParserConfig()
    correlation_id = _resolve_correlation_id(config, correlation_id)
    return _parse_content(text, config, correlation_id)


def parse_lines(
    lines: List[str],
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None,
    path: Optional[Union[str, Path]] = None
) -> ParseResult:
    """Parse a document that has already been split into lines.

    A trailing carriage return on each line is removed when line ending
    normalization is enabled.
    """
    config = config or ParserConfig()
    correlation_id = _resolve_correlation_id(config, correlation_id)
    lines = normalize_lines(lines, config.tokenization.normalize_line_endings)
    builder = ReaperTreeBuilder(config, correlation_id)
    return builder.build(lines, path=path)


def parse_file(
    file_path: Union[str, Path],
    encoding: Optional[str] = None,
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None
) -> ParseResult:
    """Parse a REAPER project file.

    The file is read in binary mode and decoded with ``encoding``, the
    configured default encoding, or auto-detection. The resulting document
    records the file path and its directory.

    Args:
        file_path: Path to the ``.rpp`` file
        encoding: Optional encoding override
        config: Parser configuration (defaults to ``ParserConfig()``)
        correlation_id: Optional correlation ID for request tracking

    Returns:
        ParseResult; ``success`` is False when the file could not be read

    Raises:
        DocumentAccessError: If the file cannot be read and
            ``config.api.raise_on_access_error`` is set
    """
    start_time = time.time()
    config = config or ParserConfig()
    correlation_id = _resolve_correlation_id(config, correlation_id)
    logger = get_logger(__name__, correlation_id, "parse_file")

    path_obj = Path(file_path)
    logger.info(
        "Starting file parse operation",
        extra={"file_path": str(path_obj), "encoding_override": encoding}
    )

    try:
        with path_obj.open("rb") as file:
            raw_data = file.read()
    except FileNotFoundError as e:
        return _access_failure(
            f"File not found: {path_obj}", e, config, correlation_id,
            start_time, path_obj
        )
    except IsADirectoryError as e:
        return _access_failure(
            f"Path is not a file: {path_obj}", e, config, correlation_id,
            start_time, path_obj
        )
    except PermissionError as e:
        return _access_failure(
            f"Permission denied accessing file: {path_obj}", e, config,
            correlation_id, start_time, path_obj
        )
    except OSError as e:
        return _access_failure(
            f"Unable to read file {path_obj}: {e}", e, config, correlation_id,
            start_time, path_obj
        )

    return _parse_content(raw_data, config, correlation_id, path_obj, encoding)


def _parse_content(
    content: Union[str, bytes, BinaryIO, TextIO],
    config: ParserConfig,
    correlation_id: Optional[str],
    path: Optional[Path] = None,
    encoding: Optional[str] = None
) -> ParseResult:
    """Decode content, split it into lines and build the tree."""
    start_time = time.time()
    logger = get_logger(__name__, correlation_id, "parse_direct")

    processor = DocumentTextProcessor(config.tokenization, config.api, correlation_id)
    try:
        char_result = processor.process(content, encoding)
    except (UnicodeDecodeError, LookupError, OSError) as e:
        return _access_failure(
            f"Unable to decode document: {e}", e, config, correlation_id,
            start_time, path
        )

    detected = char_result.encoding
    builder = ReaperTreeBuilder(config, correlation_id)
    result = builder.build(
        char_result.lines,
        path=path,
        encoding=(
            None if detected.method is DetectionMethod.NATIVE_STRING
            else detected.encoding
        ),
    )
    result.diagnostics[:0] = char_result.diagnostics

    processing_time = (time.time() - start_time) * MS_PER_SECOND
    result.performance.processing_time_ms = processing_time
    result.performance.characters_processed = len(char_result.text)

    logger.info(
        "Document parsing completed",
        extra={
            "success": result.success,
            "node_count": result.node_count,
            "encoding": char_result.encoding.encoding,
            "processing_time_ms": processing_time,
        }
    )
    return result


def _access_failure(
    message: str,
    error: Exception,
    config: ParserConfig,
    correlation_id: Optional[str],
    start_time: float,
    path: Optional[Path] = None
) -> ParseResult:
    """Raise or report a failure to read the input, depending on configuration."""
    logger = get_logger(__name__, correlation_id, "api_parser")
    logger.exception(
        "Document access failed",
        extra={"file_path": str(path) if path else None, "reason": message}
    )
    if config.api.raise_on_access_error:
        raise DocumentAccessError(message, path) from error

    processing_time = (time.time() - start_time) * MS_PER_SECOND
    result = _create_error_result(
        message,
        correlation_id,
        processing_time,
        details={"exception_type": type(error).__name__},
    )
    result.document.path = path
    result.document.directory = path.parent if path is not None else None
    return result


def _create_error_result(
    error_message: str,
    correlation_id: Optional[str],
    processing_time: float,
    details: Optional[Dict[str, Any]] = None
) -> ParseResult:
    """Create an unsuccessful result carrying one CRITICAL diagnostic.

    Args:
        error_message: Error description
        correlation_id: Optional correlation ID
        processing_time: Processing time in milliseconds
        details: Optional diagnostic details

    Returns:
        ParseResult with error information
    """
    result = ParseResult(correlation_id=correlation_id)
    result.success = False
    result.performance.processing_time_ms = processing_time

    result.add_diagnostic(
        DiagnosticSeverity.CRITICAL,
        error_message,
        "api_parser",
        details=details
    )

    return result


def _resolve_correlation_id(
    config: ParserConfig, correlation_id: Optional[str]
) -> Optional[str]:
    if correlation_id is None and config.global_.enable_correlation_tracking:
        return str(uuid.uuid4())[:8]
    return correlation_id


class ReaperProjectParser:
    """Configured REAPER project parser for reuse across many documents.

    Attributes:
        config: Current parser configuration
        correlation_id: Correlation ID applied to every parse, if set

    Examples:
        >>> parser = ReaperProjectParser(ParserConfig.faithful())
        >>> results = [parser.parse(text) for text in ("<A\\n>", "<B\\n>")]
        >>> parser.statistics["total_parses"]
        2
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize parser.

        Args:
            config: Parser configuration (defaults to ``ParserConfig()``)
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or ParserConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "reaper_project_parser")

        # Parser state for multi-parse scenarios
        self._parse_count = 0
        self._total_processing_time = 0.0
        self._successful_parses = 0

        self.logger.info(
            "ReaperProjectParser initialized",
            extra={"config_name": self.config.name}
        )

    def parse(
        self,
        input_data: InputType,
        correlation_id_override: Optional[str] = None
    ) -> ParseResult:
        """Parse a document with this parser's configuration.

        Args:
            input_data: Document as string, bytes, file-like object, or Path
            correlation_id_override: Optional correlation ID for this parse

        Returns:
            ParseResult containing the document tree and diagnostics
        """
        result = parse(
            input_data,
            config=self.config,
            correlation_id=correlation_id_override or self.correlation_id,
        )
        self._record(result)
        return result

    def parse_file(
        self,
        file_path: Union[str, Path],
        encoding: Optional[str] = None
    ) -> ParseResult:
        """Parse a project file with this parser's configuration."""
        result = parse_file(
            file_path,
            encoding=encoding,
            config=self.config,
            correlation_id=self.correlation_id,
        )
        self._record(result)
        return result

    def _record(self, result: ParseResult) -> None:
        self._parse_count += 1
        self._total_processing_time += result.performance.processing_time_ms
        if result.success:
            self._successful_parses += 1

        self.logger.debug(
            "Configured parse completed",
            extra={
                "success": result.success,
                "total_parses": self._parse_count,
                "success_rate": self._successful_parses / self._parse_count,
            }
        )

    def reconfigure(self, config: ParserConfig) -> None:
        """Replace the parser configuration for subsequent parses."""
        self.config = config
        self.logger.info(
            "Parser reconfigured",
            extra={"config_name": config.name}
        )

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get parser usage statistics.

        Returns:
            Dictionary with parse counts, success rate and timing
        """
        return {
            "total_parses": self._parse_count,
            "successful_parses": self._successful_parses,
            "success_rate": (
                self._successful_parses / self._parse_count
                if self._parse_count > 0 else 0.0
            ),
            "total_processing_time_ms": self._total_processing_time,
            "average_processing_time_ms": (
                self._total_processing_time / self._parse_count
                if self._parse_count > 0 else 0.0
            ),
            "correlation_id": self.correlation_id,
        }

    def reset_statistics(self) -> None:
        """Reset parser usage statistics."""
        self._parse_count = 0
        self._total_processing_time = 0.0
        self._successful_parses = 0

        self.logger.info("Parser statistics reset")
