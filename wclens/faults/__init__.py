"""
wclens faults - typed failure signals for the metadata pipeline.

Every failure is local and recoverable: a fault raised while reading one
manifest source is caught at that source's boundary, logged at the fault's
severity, and recorded in the load report. No fault crosses a public
entry point.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    SourceFault,
    SourceNotFoundFault,
    ManifestParseFault,
    NetworkFault,
    MalformedComponentFault,
    ConfigFault,
    ConfigInvalidFault,
    InvalidSeverityFault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Domain faults
    "SourceFault",
    "SourceNotFoundFault",
    "ManifestParseFault",
    "NetworkFault",
    "MalformedComponentFault",
    "ConfigFault",
    "ConfigInvalidFault",
    "InvalidSeverityFault",
]
