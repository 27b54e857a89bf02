"""Core tree building implementation for REAPER project parsing.

This module converts the ordered line sequence of a ``.rpp`` document into a
tree of ``ReaperNode`` objects. The builder makes one pass over the lines with
a cursor on the innermost open block: opening lines descend, closing lines
climb back to the parent, and content lines become children of the cursor.
Malformed structure is never fatal; recoveries are reported as diagnostics.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from reaper_project_parser.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ParserConfig,
    PerformanceMetrics,
    get_logger,
)
from reaper_project_parser.tokenization import LineKind, LineTokenizer

from .node import ReaperNode


@dataclass(eq=False)
class ReaperDocument:
    """Parsed REAPER project with its provenance.

    ``path`` and ``directory`` record where the project was read from so that
    relative media references found in node values can be resolved.
    """

    root: Optional[ReaperNode] = None
    path: Optional[Path] = None
    directory: Optional[Path] = None
    encoding: Optional[str] = None
    correlation_id: Optional[str] = None
    # First block opened; differs from root only when the document ends inside
    # a nested block. Parsed nodes reach their ancestors through it.
    outermost: Optional[ReaperNode] = field(default=None, repr=False)

    # Document statistics
    line_count: int = 0
    total_nodes: int = 0
    max_depth: int = 0

    def __post_init__(self) -> None:
        """Derive the directory from the path and calculate statistics."""
        if self.path is not None:
            self.path = Path(self.path)
            if self.directory is None:
                self.directory = self.path.parent
        if self.directory is not None:
            self.directory = Path(self.directory)
        if self.root is not None:
            self.calculate_statistics()

    def calculate_statistics(self) -> None:
        """Calculate node count and depth of the tree."""
        if self.root is None:
            self.total_nodes = 0
            self.max_depth = 0
            return

        total = 1
        max_depth = 0
        stack = [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            max_depth = max(max_depth, depth)
            for child in node:
                total += 1
                stack.append((child, depth + 1))
        self.total_nodes = total
        self.max_depth = max_depth

    def iter_nodes(self) -> Iterator[ReaperNode]:
        """Iterate over all nodes in document order, root first."""
        if self.root is None:
            return
        yield self.root
        yield from self.root.iter_descendants()

    def find_all(self, node_type: str) -> List[ReaperNode]:
        """Find all nodes with matching type, the root included."""
        return [node for node in self.iter_nodes() if node.type == node_type]

    def find_by_type_and_name(
        self, node_type: str, name: str
    ) -> Optional[ReaperNode]:
        """Find the first node below the root with matching type and name."""
        if self.root is None:
            return None
        return self.root.find_by_type_and_name(node_type, name)

    # Project accessors

    @property
    def cursor(self) -> Optional[str]:
        """Edit cursor position as written in the project, if present."""
        node = self.root.first_child_of_type("CURSOR") if self.root else None
        return node.value if node is not None else None

    @property
    def tempo(self) -> List[str]:
        """Values of the project ``TEMPO`` line (bpm, numerator, denominator)."""
        node = self.root.first_child_of_type("TEMPO") if self.root else None
        return node.values if node is not None else []

    @property
    def tracks(self) -> List[ReaperNode]:
        """Top-level ``TRACK`` blocks in document order."""
        return self.root.all_children_of_type("TRACK") if self.root else []

    # Media references

    def resolve_path(self, value: Union[str, Path]) -> Path:
        """Resolve a file reference against the project directory.

        Absolute references are returned unchanged, as are relative ones when
        the document has no directory.
        """
        candidate = Path(value)
        if candidate.is_absolute() or self.directory is None:
            return candidate
        return self.directory / candidate

    def item_source_path(self, item: ReaperNode) -> Optional[Path]:
        """Resolve the media file of an ``ITEM`` through ``SOURCE`` and ``FILE``.

        Returns None when ``item`` is not an item or the chain is incomplete.
        """
        if item.type != "ITEM":
            return None
        source = item.first_child_of_type("SOURCE")
        if source is None:
            return None
        file_node = source.first_child_of_type("FILE")
        if file_node is None or not file_node.value:
            return None
        return self.resolve_path(file_node.value)

    def to_rpp(self) -> str:
        """Serialize the document back into ``.rpp`` text."""
        from .writer import dumps

        return dumps(self.root) if self.root is not None else ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert document to dictionary representation."""
        result: Dict[str, Any] = {
            "path": str(self.path) if self.path else None,
            "directory": str(self.directory) if self.directory else None,
            "encoding": self.encoding,
            "line_count": self.line_count,
            "total_nodes": self.total_nodes,
            "max_depth": self.max_depth,
        }
        if self.root is not None:
            result["root"] = self.root.to_dict()
        return result


@dataclass
class ParseResult:
    """Result object for tree building operations.

    Contains the document tree, diagnostics, and performance information. A
    result is returned for every input; ``success`` is False only when no
    usable tree could be produced.
    """

    document: ReaperDocument = field(default_factory=ReaperDocument)
    success: bool = True
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    correlation_id: Optional[str] = None

    @property
    def tree(self) -> ReaperDocument:
        """Direct access to the parsed document."""
        return self.document

    @property
    def root(self) -> Optional[ReaperNode]:
        return self.document.root if self.document else None

    @property
    def node_count(self) -> int:
        return self.document.total_nodes if self.document else 0

    @property
    def processing_time_ms(self) -> float:
        return self.performance.processing_time_ms

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        position: Optional[Dict[str, int]] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add diagnostic entry to result."""
        self.diagnostics.append(
            DiagnosticEntry(
                severity=severity,
                message=message,
                component=component,
                position=position,
                details=details,
                correlation_id=self.correlation_id
            )
        )

    def get_diagnostics_by_severity(
        self,
        severity: DiagnosticSeverity
    ) -> List[DiagnosticEntry]:
        """Get diagnostics of specific severity level."""
        return [diag for diag in self.diagnostics if diag.severity == severity]

    def has_errors(self) -> bool:
        """Check if result contains any error diagnostics."""
        return any(
            diag.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)
            for diag in self.diagnostics
        )

    def has_warnings(self) -> bool:
        return any(
            diag.severity == DiagnosticSeverity.WARNING for diag in self.diagnostics
        )

    def summary(self) -> Dict[str, Any]:
        """Get summary statistics for the parse result."""
        by_severity: Dict[str, int] = {}
        for diagnostic in self.diagnostics:
            key = diagnostic.severity.name
            by_severity[key] = by_severity.get(key, 0) + 1

        root = self.root
        return {
            "success": self.success,
            "root_type": root.type if root is not None else None,
            "node_count": self.node_count,
            "max_depth": self.document.max_depth if self.document else 0,
            "line_count": self.document.line_count if self.document else 0,
            "track_count": len(self.document.tracks) if self.document else 0,
            "item_count": len(self.document.find_all("ITEM")) if self.document else 0,
            "processing_time_ms": self.performance.processing_time_ms,
            "lines_per_second": self.performance.lines_per_second,
            "lines_discarded": self.performance.lines_discarded,
            "diagnostics_by_severity": by_severity,
        }


class ReaperTreeBuilder:
    """Builds ``ReaperNode`` trees from document lines.

    Construction is iterative, so deeply nested projects are not limited by
    the interpreter recursion limit. Each call to ``build`` produces an
    independent tree; a builder instance can be reused.
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize tree builder.

        Args:
            config: Parser configuration (defaults to ``ParserConfig()``)
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or ParserConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "rpp_tree_builder")
        self._tokenizer = LineTokenizer(self.config.tokenization, self.config.tree)

    def build(
        self,
        lines: List[str],
        path: Optional[Union[str, Path]] = None,
        encoding: Optional[str] = None,
    ) -> ParseResult:
        """Build a document tree from document lines.

        Args:
            lines: Document lines in order, without line terminators
            path: Originating file, recorded as document provenance
            encoding: Encoding the lines were decoded with

        Returns:
            ParseResult containing the document tree and diagnostics
        """
        start_time = time.time()
        self.logger.info(
            "Starting tree building",
            extra={"line_count": len(lines), "source": str(path) if path else None}
        )

        result = ParseResult(correlation_id=self.correlation_id)
        document = ReaperDocument(
            path=Path(path) if path is not None else None,
            encoding=encoding,
            correlation_id=self.correlation_id,
            line_count=len(lines),
        )
        result.document = document

        try:
            document.root = self._build_tree(lines, document, result)
            document.calculate_statistics()
        except Exception as e:
            self.logger.exception("Tree building failed")
            result.success = False
            result.add_diagnostic(
                DiagnosticSeverity.CRITICAL,
                f"Tree building failed: {e}",
                "rpp_tree_builder",
                details={"exception_type": type(e).__name__}
            )

        if result.success and document.root is None:
            result.add_diagnostic(
                DiagnosticSeverity.INFO,
                "No opening line found - empty document created",
                "rpp_tree_builder",
                details={"line_count": len(lines)}
            )

        result.performance.processing_time_ms = (time.time() - start_time) * 1000
        result.performance.lines_processed = len(lines)
        result.performance.characters_processed = sum(len(line) for line in lines)
        result.performance.nodes_created = document.total_nodes

        self.logger.info(
            "Tree building completed",
            extra={
                "node_count": document.total_nodes,
                "max_depth": document.max_depth,
                "diagnostic_count": len(result.diagnostics),
                "processing_time_ms": result.performance.processing_time_ms,
            }
        )
        return result

    def _build_tree(
        self, lines: List[str], document: ReaperDocument, result: ParseResult
    ) -> Optional[ReaperNode]:
        """Run the single pass over ``lines`` and return the final cursor."""
        skip_blank = self.config.tokenization.skip_blank_lines
        current: Optional[ReaperNode] = None
        root_closed = False

        for line_number, line in enumerate(lines, start=1):
            kind = self._tokenizer.classify(line)

            if kind is LineKind.OPENING:
                node = ReaperNode.from_tokens(
                    self._tokenizer.tokenize(line),
                    parent=current,
                    document=document,
                    is_block=True,
                    line_number=line_number,
                )
                if current is not None:
                    current.add_child(node)
                else:
                    document.outermost = node
                current = node

            elif kind is LineKind.CLOSING:
                if current is None:
                    self._report(
                        result, "Closing line before any block ignored", line_number
                    )
                elif current.parent is not None:
                    current = current.parent
                elif not root_closed:
                    root_closed = True
                else:
                    self._report(
                        result, "Extra closing line at document root ignored", line_number
                    )

            elif skip_blank and not line.strip():
                result.performance.lines_discarded += 1

            elif current is not None:
                current.add_child(
                    ReaperNode.from_tokens(
                        self._tokenizer.tokenize(line),
                        parent=current,
                        document=document,
                        line_number=line_number,
                    )
                )

            else:
                result.performance.lines_discarded += 1
                if line.strip():
                    self._report(
                        result,
                        "Content line before first block discarded",
                        line_number,
                    )

        if current is not None and (current.parent is not None or not root_closed):
            self._report(
                result,
                "Document ended inside an open block",
                len(lines),
                details={
                    "unclosed_blocks": current.get_depth() + (0 if root_closed else 1),
                    "open_block_type": current.type,
                },
            )
        return current

    def _report(
        self,
        result: ParseResult,
        message: str,
        line_number: int,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.logger.debug(message, extra={"line_number": line_number})
        if self.config.tree.report_structure_warnings:
            result.add_diagnostic(
                DiagnosticSeverity.WARNING,
                message,
                "rpp_tree_builder",
                position={"line": line_number},
                details=details,
            )
