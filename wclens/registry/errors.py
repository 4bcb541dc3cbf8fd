"""
Registry load report with source-level diagnostics.
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
import logging

from ..faults import Fault, Severity


_LOG_LEVELS = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass
class ErrorSpan:
    """Manifest location for fault context."""

    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    snippet: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.file]
        if self.line is not None:
            parts.append(f":{self.line}")
            if self.column is not None:
                parts.append(f":{self.column}")
        return "".join(parts)


@dataclass
class ReportEntry:
    fault: Fault
    source_id: Optional[str] = None
    span: Optional[ErrorSpan] = None


@dataclass
class LoadReport:
    """
    Aggregated report of one load cycle.

    Collects every fault caught at a per-source boundary so a built
    registry can explain what it skipped.
    """

    entries: List[ReportEntry] = field(default_factory=list)
    loaded_sources: List[str] = field(default_factory=list)

    def record(
        self,
        fault: Fault,
        *,
        source_id: Optional[str] = None,
        span: Optional[ErrorSpan] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Record a fault and log it at its severity.

        Args:
            fault: Fault caught at a source or component boundary
            source_id: Identifier of the source being read
            span: Optional manifest location
            logger: Logger to report through (skipped when None)
        """
        self.entries.append(ReportEntry(fault=fault, source_id=source_id, span=span))
        if logger is not None:
            where = f" at {span}" if span else ""
            logger.log(_LOG_LEVELS.get(fault.severity, logging.WARNING), f"{fault}{where}")

    def mark_loaded(self, source_id: str) -> None:
        self.loaded_sources.append(source_id)

    def faults(self, code: Optional[str] = None) -> List[Fault]:
        return [e.fault for e in self.entries if code is None or e.fault.code == code]

    def has_faults(self) -> bool:
        """Check for faults that were worth more than a debug line."""
        return any(e.fault.severity != Severity.DEBUG for e in self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loaded_sources": list(self.loaded_sources),
            "fault_count": len(self.entries),
            "faults": [
                {
                    **e.fault.to_dict(),
                    "source": e.source_id,
                    "span": str(e.span) if e.span else None,
                }
                for e in self.entries
            ],
        }

    def format_report(self) -> str:
        """Format report for display."""
        lines = [f"Loaded {len(self.loaded_sources)} source(s)"]
        for source in self.loaded_sources:
            lines.append(f"   ✓ {source}")
        if self.entries:
            lines.append(f"{len(self.entries)} fault(s):")
            for i, entry in enumerate(self.entries, 1):
                lines.append(f"   {i}. {entry.fault}")
                if entry.span:
                    lines.append(f"      at {entry.span}")
        return "\n".join(lines)
