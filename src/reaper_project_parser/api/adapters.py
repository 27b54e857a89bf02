"""Integration adapters for handing parsed projects to other libraries.

This module provides bidirectional conversion between ``ParseResult`` objects
and external representations: a pandas DataFrame with one row per node, and
JSON-ready nested dictionaries. Conversions never raise; failures are reported
on the returned ``ConversionResult``.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Type

from reaper_project_parser.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    get_logger,
)
from reaper_project_parser.tokenization import tokenize_line
from reaper_project_parser.tree import ParseResult, ReaperNode, dumps, format_line

# Columns produced by PandasAdapter.to_target, in order
NODE_COLUMNS = [
    "index",
    "parent_index",
    "depth",
    "path",
    "type",
    "name",
    "value",
    "values",
    "is_block",
    "child_count",
    "line_number",
    "text",
]


class AdapterType(Enum):
    """Types of integration adapters."""

    DATA_FRAME = auto()      # DataFrame libraries (pandas)
    SERIALIZATION = auto()   # Plain data structures for JSON and similar formats


class ConversionDirection(Enum):
    """Direction of data conversion."""

    TO_TARGET = auto()      # Convert from ParseResult to target format
    FROM_TARGET = auto()    # Convert from target format to ParseResult


@dataclass
class AdapterMetadata:
    """Metadata about an integration adapter."""

    name: str
    version: str
    adapter_type: AdapterType
    target_library: str
    description: str
    author: str = "reaper-project-parser"


@dataclass
class ConversionResult:
    """Result of a conversion operation."""

    success: bool
    converted_data: Any
    original_data: Any
    conversion_time_ms: float
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)


class AdapterPerformanceProfiler:
    """Records conversion timings per adapter."""

    MAX_SAMPLES = 1000

    def __init__(self) -> None:
        self._metrics: Dict[str, List[float]] = {}
        self._lock = threading.RLock()

    def record_conversion(self, adapter_name: str, conversion_time_ms: float) -> None:
        """Record conversion performance."""
        with self._lock:
            samples = self._metrics.setdefault(adapter_name, [])
            samples.append(conversion_time_ms)
            if len(samples) > self.MAX_SAMPLES:
                del samples[:-self.MAX_SAMPLES]

    def get_statistics(self, adapter_name: str) -> Dict[str, float]:
        """Get performance statistics for an adapter."""
        with self._lock:
            times = self._metrics.get(adapter_name)
            if not times:
                return {}
            return {
                "count": len(times),
                "average_ms": sum(times) / len(times),
                "min_ms": min(times),
                "max_ms": max(times),
                "total_ms": sum(times),
            }

    def get_all_statistics(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {name: self.get_statistics(name) for name in self._metrics}


class IntegrationAdapter(ABC):
    """Abstract base class for all integration adapters.

    Subclasses convert a ``ParseResult`` into a target representation and
    back. ``from_target`` always produces its ``ParseResult`` by serializing
    the rebuilt tree and parsing the text, so the result is indistinguishable
    from one produced from a file.
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        """Initialize the integration adapter.

        Args:
            correlation_id: Optional correlation ID for request tracking
        """
        self.correlation_id = correlation_id
        self._logger = get_logger(__name__, correlation_id, self.__class__.__name__)
        self._profiler = AdapterPerformanceProfiler()

    @property
    @abstractmethod
    def metadata(self) -> AdapterMetadata:
        """Get adapter metadata."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the target library is available."""

    @abstractmethod
    def to_target(self, parse_result: ParseResult) -> ConversionResult:
        """Convert ParseResult to target format.

        Args:
            parse_result: Parsed project result

        Returns:
            ConversionResult containing the converted data and metadata
        """

    @abstractmethod
    def from_target(self, target_data: Any) -> ConversionResult:
        """Convert target format to ParseResult.

        Args:
            target_data: Data in target format

        Returns:
            ConversionResult containing a ParseResult
        """

    def get_performance_stats(self) -> Dict[str, Dict[str, float]]:
        """Get performance statistics for this adapter."""
        return self._profiler.get_all_statistics()

    def _record_performance(self, operation_time_ms: float) -> None:
        self._profiler.record_conversion(self.metadata.name, operation_time_ms)

    def _reparse(self, root: ReaperNode) -> ParseResult:
        """Serialize a rebuilt tree and parse it into a fresh result."""
        from reaper_project_parser.api.parser import parse_string

        return parse_string(dumps(root), correlation_id=self.correlation_id)

    def _create_error_result(
        self,
        error_message: str,
        original_data: Any,
        conversion_time_ms: float = 0.0
    ) -> ConversionResult:
        """Create a ConversionResult for error conditions."""
        self._logger.warning(
            "Conversion failed",
            extra={"adapter": self.metadata.name, "reason": error_message}
        )
        return ConversionResult(
            success=False,
            converted_data=None,
            original_data=original_data,
            conversion_time_ms=conversion_time_ms,
            errors=[error_message],
            diagnostics=[
                DiagnosticEntry(
                    severity=DiagnosticSeverity.ERROR,
                    message=error_message,
                    component=self.__class__.__name__,
                    correlation_id=self.correlation_id
                )
            ]
        )


class AdapterRegistry:
    """Registry for managing integration adapters."""

    def __init__(self) -> None:
        self._adapters: Dict[str, Type[IntegrationAdapter]] = {}
        self._lock = threading.RLock()

    def register(self, adapter_class: Type[IntegrationAdapter]) -> None:
        """Register an adapter class under its metadata name."""
        with self._lock:
            metadata = adapter_class().metadata
            self._adapters[metadata.name] = adapter_class

    def get_adapter(
        self,
        adapter_name: str,
        correlation_id: Optional[str] = None
    ) -> Optional[IntegrationAdapter]:
        """Get an adapter instance by name.

        Returns:
            Adapter instance if registered and available, None otherwise
        """
        with self._lock:
            adapter_class = self._adapters.get(adapter_name)
        if adapter_class is None:
            return None
        instance = adapter_class(correlation_id)
        return instance if instance.is_available() else None

    def list_available_adapters(self) -> List[AdapterMetadata]:
        """List metadata of every registered adapter whose library is installed."""
        with self._lock:
            adapter_classes = list(self._adapters.values())
        available = []
        for adapter_class in adapter_classes:
            instance = adapter_class()
            if instance.is_available():
                available.append(instance.metadata)
        return available


# Global adapter registry instance
_adapter_registry = AdapterRegistry()


def register_adapter(adapter_class: Type[IntegrationAdapter]) -> None:
    """Register an integration adapter globally."""
    _adapter_registry.register(adapter_class)


def get_adapter(
    adapter_name: str,
    correlation_id: Optional[str] = None
) -> Optional[IntegrationAdapter]:
    """Get a registered adapter instance.

    Args:
        adapter_name: Name of the adapter (``"pandas"`` or ``"dict"``)
        correlation_id: Optional correlation ID

    Returns:
        Adapter instance if available, None otherwise
    """
    return _adapter_registry.get_adapter(adapter_name, correlation_id)


def list_available_adapters() -> List[AdapterMetadata]:
    """List all available integration adapters."""
    return _adapter_registry.list_available_adapters()


def node_records(parse_result: ParseResult) -> List[Dict[str, Any]]:
    """Flatten a parsed tree into one record per node in document order.

    ``parent_index`` is -1 for the root. Paths are built from the parent's
    path, so wide blocks are flattened in linear time.
    """
    root = parse_result.root
    if root is None:
        return []

    records: List[Dict[str, Any]] = []
    stack = [(root, 0, -1, root.get_path())]
    while stack:
        node, depth, parent_index, path = stack.pop()
        index = len(records)
        children = node.children
        records.append({
            "index": index,
            "parent_index": parent_index,
            "depth": depth,
            "path": path,
            "type": node.type,
            "name": node.name,
            "value": node.value,
            "values": node.values,
            "is_block": node.is_block,
            "child_count": len(children),
            "line_number": node.line_number,
            "text": format_line(node),
        })
        stack.extend(
            (child, depth + 1, index, f"{path}/{node.child_label(child)}")
            for child in reversed(children)
        )
    return records


def _coerce_values(values: Any) -> List[str]:
    # CSV round trips turn value lists into text
    if isinstance(values, str):
        return tokenize_line(values)
    # Missing cells arrive as None or NaN
    if not isinstance(values, (list, tuple)):
        return []
    return [str(value) for value in values]


class PandasAdapter(IntegrationAdapter):
    """Adapter for bidirectional conversion with pandas DataFrame.

    ``to_target`` produces one row per node with the columns in
    ``NODE_COLUMNS``; ``from_target`` rebuilds the tree from the ``index``,
    ``parent_index``, ``type`` and ``values`` columns.
    """

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="pandas",
            version="1.0.0",
            adapter_type=AdapterType.DATA_FRAME,
            target_library="pandas",
            description="One DataFrame row per project node"
        )

    def is_available(self) -> bool:
        """Check if pandas is available."""
        try:
            import pandas  # noqa: F401
        except ImportError:
            return False
        return True

    def to_target(self, parse_result: ParseResult) -> ConversionResult:
        """Convert ParseResult to a pandas DataFrame."""
        start_time = time.time()

        try:
            import pandas as pd

            if not parse_result.success or parse_result.root is None:
                return self._create_error_result(
                    "ParseResult is not successful or has no tree",
                    parse_result,
                    (time.time() - start_time) * 1000
                )

            df = pd.DataFrame(node_records(parse_result), columns=NODE_COLUMNS)

            processing_time = (time.time() - start_time) * 1000
            self._record_performance(processing_time)

            return ConversionResult(
                success=True,
                converted_data=df,
                original_data=parse_result,
                conversion_time_ms=processing_time,
                metadata={
                    "dataframe_shape": df.shape,
                    "row_count": len(df),
                    "columns": list(df.columns),
                }
            )

        except Exception as e:
            processing_time = (time.time() - start_time) * 1000
            return self._create_error_result(
                f"Failed to convert to pandas DataFrame: {e}",
                parse_result,
                processing_time
            )

    def from_target(self, target_data: Any) -> ConversionResult:
        """Convert a node DataFrame back into a ParseResult."""
        start_time = time.time()

        try:
            import pandas as pd

            if not isinstance(target_data, pd.DataFrame):
                return self._create_error_result(
                    "Target data is not a pandas DataFrame",
                    target_data,
                    (time.time() - start_time) * 1000
                )

            missing = {"index", "parent_index", "type", "values"} - set(target_data.columns)
            if missing:
                return self._create_error_result(
                    f"DataFrame is missing columns: {sorted(missing)}",
                    target_data,
                    (time.time() - start_time) * 1000
                )

            root = self._build_tree(target_data.to_dict("records"))
            parse_result = self._reparse(root)

            processing_time = (time.time() - start_time) * 1000
            self._record_performance(processing_time)

            return ConversionResult(
                success=True,
                converted_data=parse_result,
                original_data=target_data,
                conversion_time_ms=processing_time,
                metadata={
                    "dataframe_shape": target_data.shape,
                    "node_count": parse_result.node_count,
                }
            )

        except Exception as e:
            processing_time = (time.time() - start_time) * 1000
            return self._create_error_result(
                f"Failed to convert from pandas DataFrame: {e}",
                target_data,
                processing_time
            )

    def _build_tree(self, rows: List[Dict[str, Any]]) -> ReaperNode:
        """Rebuild nodes from rows ordered parents before children."""
        nodes: Dict[int, ReaperNode] = {}
        root: Optional[ReaperNode] = None
        for row in sorted(rows, key=lambda r: int(r["index"])):
            parent_index = int(row["parent_index"])
            parent = nodes.get(parent_index) if parent_index >= 0 else None
            if parent_index >= 0 and parent is None:
                raise ValueError(f"Row {row['index']} refers to unknown parent {parent_index}")
            if parent is None and root is not None:
                raise ValueError("DataFrame contains more than one root row")

            is_block = row.get("is_block")
            node = ReaperNode(
                str(row["type"]) if isinstance(row["type"], str) else "",
                _coerce_values(row["values"]),
                parent=parent,
                is_block=bool(is_block) if is_block is not None else False,
            )
            if parent is None:
                root = node
            else:
                parent.add_child(node)
            nodes[int(row["index"])] = node

        if root is None:
            raise ValueError("DataFrame contains no root row")
        return root


class DictAdapter(IntegrationAdapter):
    """Adapter for JSON-ready nested dictionaries.

    The dictionary carries the document provenance, statistics and
    diagnostics next to the tree produced by ``ReaperNode.to_dict``.
    """

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="dict",
            version="1.0.0",
            adapter_type=AdapterType.SERIALIZATION,
            target_library="builtins",
            description="Nested dictionaries suitable for json.dumps"
        )

    def is_available(self) -> bool:
        return True

    def to_target(self, parse_result: ParseResult) -> ConversionResult:
        start_time = time.time()

        try:
            data = parse_result.document.to_dict()
            data["success"] = parse_result.success
            data["diagnostics"] = [diag.to_dict() for diag in parse_result.diagnostics]

            processing_time = (time.time() - start_time) * 1000
            self._record_performance(processing_time)
            return ConversionResult(
                success=True,
                converted_data=data,
                original_data=parse_result,
                conversion_time_ms=processing_time,
                metadata={"node_count": parse_result.node_count}
            )

        except Exception as e:
            processing_time = (time.time() - start_time) * 1000
            return self._create_error_result(
                f"Failed to convert to dictionary: {e}",
                parse_result,
                processing_time
            )

    def from_target(self, target_data: Any) -> ConversionResult:
        """Rebuild a ParseResult from a dictionary with a ``root`` entry.

        A bare node dictionary (with ``type`` and ``values``) is accepted too.
        """
        start_time = time.time()

        try:
            if not isinstance(target_data, dict):
                return self._create_error_result(
                    "Target data is not a dictionary",
                    target_data,
                    (time.time() - start_time) * 1000
                )
            node_data = target_data.get("root", target_data)
            if "type" not in node_data:
                return self._create_error_result(
                    "Dictionary has no node data",
                    target_data,
                    (time.time() - start_time) * 1000
                )

            parse_result = self._reparse(self._build_tree(node_data))

            processing_time = (time.time() - start_time) * 1000
            self._record_performance(processing_time)
            return ConversionResult(
                success=True,
                converted_data=parse_result,
                original_data=target_data,
                conversion_time_ms=processing_time,
                metadata={"node_count": parse_result.node_count}
            )

        except Exception as e:
            processing_time = (time.time() - start_time) * 1000
            return self._create_error_result(
                f"Failed to convert from dictionary: {e}",
                target_data,
                processing_time
            )

    def _build_tree(self, node_data: Dict[str, Any]) -> ReaperNode:
        root = ReaperNode(
            node_data.get("type", ""),
            _coerce_values(node_data.get("values")),
            is_block=bool(node_data.get("block", False)),
        )
        stack = [(root, node_data)]
        while stack:
            node, data = stack.pop()
            for child_data in data.get("children", []):
                child = ReaperNode(
                    child_data.get("type", ""),
                    _coerce_values(child_data.get("values")),
                    parent=node,
                    is_block=bool(child_data.get("block", False)),
                )
                node.add_child(child)
                stack.append((child, child_data))
        return root


register_adapter(PandasAdapter)
register_adapter(DictAdapter)
