"""Result objects and diagnostic types for REAPER project parsing.

This module defines the diagnostic entries and performance metrics attached to
every parse result, so callers can see what was recovered and how long it took.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional


class DiagnosticSeverity(Enum):
    """How serious a reported problem is."""

    DEBUG = auto()
    INFO = auto()       # Nothing wrong, e.g. a document without blocks
    WARNING = auto()    # Malformed structure that was recovered
    ERROR = auto()      # Recovered, but part of the input was lost
    CRITICAL = auto()   # No usable tree was produced


@dataclass
class DiagnosticEntry:
    """One reported problem, tied to the component and line that raised it."""

    severity: DiagnosticSeverity
    message: str
    component: str
    position: Optional[Dict[str, int]] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.message:
            raise ValueError("A diagnostic needs a message")
        if not self.component:
            raise ValueError("A diagnostic needs a reporting component")

    @property
    def line_number(self) -> Optional[int]:
        """Source line the diagnostic refers to, if any."""
        if not self.position:
            return None
        return self.position.get("line")

    def to_dict(self) -> Dict[str, Any]:
        """Convert diagnostic to a JSON-ready dictionary."""
        data: Dict[str, Any] = {
            "severity": self.severity.name,
            "message": self.message,
            "component": self.component,
        }
        if self.position:
            data["position"] = dict(self.position)
        if self.details:
            data["details"] = dict(self.details)
        return data


@dataclass
class PerformanceMetrics:
    """Counters and timing collected while a document is parsed."""

    processing_time_ms: float = 0.0
    characters_processed: int = 0
    lines_processed: int = 0
    nodes_created: int = 0
    lines_discarded: int = 0

    @property
    def lines_per_second(self) -> float:
        if self.processing_time_ms <= 0:
            return 0.0
        return self.lines_processed / (self.processing_time_ms / 1000.0)
