"""
wclens faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels

Every failure inside the metadata pipeline is a Fault. Faults are raised
where a source is read and caught at the per-source boundary, so one bad
source never prevents its siblings from loading.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the logging level a fault is reported with.
    """
    DEBUG = "debug"     # Expected absence, nothing to report
    INFO = "info"       # Informational, no action needed
    WARN = "warn"       # Source skipped, should be reviewed
    ERROR = "error"     # Unexpected failure


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.SOURCE = FaultDomain("source", "Manifest source discovery and reading")
FaultDomain.NETWORK = FaultDomain("network", "Remote manifest fetching")
FaultDomain.INDEX = FaultDomain("index", "Component metadata normalization")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: Severity.WARN,
    FaultDomain.SOURCE: Severity.WARN,
    FaultDomain.NETWORK: Severity.WARN,
    FaultDomain.INDEX: Severity.WARN,
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "MANIFEST_PARSE_ERROR")
        message: Human-readable summary
        severity: Fault severity
        domain: Fault domain (CONFIG, SOURCE, NETWORK, INDEX)
        metadata: Additional context data

    Example:
        ```python
        raise Fault(
            code="MANIFEST_PARSE_ERROR",
            message="custom-elements.json is not valid JSON",
            domain=FaultDomain.SOURCE,
        )
        ```
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        self.severity = severity or DOMAIN_DEFAULTS.get(self.domain, Severity.ERROR)
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging/serialization
        """
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "metadata": self.metadata,
        }
