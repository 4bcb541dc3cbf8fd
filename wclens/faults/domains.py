"""
wclens faults - Domain-specific fault types.

Provides concrete fault classes for each failure kind of the metadata
pipeline:
- SOURCE faults (missing or unparseable manifests)
- NETWORK faults (remote manifests)
- INDEX faults (unusable component records)
- CONFIG faults (invalid configuration values)
"""

from typing import Any, Optional
from .core import Fault, FaultDomain, Severity


# ============================================================================
# SOURCE Faults
# ============================================================================

class SourceFault(Fault):
    """Base class for manifest source faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.WARN,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.SOURCE,
            severity=severity,
            metadata=metadata,
        )


class SourceNotFoundFault(SourceFault):
    """Manifest or dependency file is absent. Skipped without noise."""

    def __init__(self, origin: str, **kwargs):
        super().__init__(
            code="SOURCE_NOT_FOUND",
            message=f"No manifest found at '{origin}'",
            severity=Severity.DEBUG,
            metadata={"origin": origin, **kwargs.get("metadata", {})},
        )


class ManifestParseFault(SourceFault):
    """Manifest content could not be decoded."""

    def __init__(self, origin: str, reason: str, **kwargs):
        super().__init__(
            code="MANIFEST_PARSE_ERROR",
            message=f"Manifest '{origin}' could not be parsed: {reason}",
            metadata={"origin": origin, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# NETWORK Faults
# ============================================================================

class NetworkFault(Fault):
    """Remote manifest fetch failed or timed out."""

    def __init__(self, url: str, reason: str, **kwargs):
        super().__init__(
            code="NETWORK_ERROR",
            message=f"Fetching manifest from '{url}' failed: {reason}",
            domain=FaultDomain.NETWORK,
            severity=Severity.WARN,
            metadata={"url": url, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# INDEX Faults
# ============================================================================

class MalformedComponentFault(Fault):
    """One component record has an unusable shape."""

    def __init__(self, origin: str, reason: str, *, tag: Optional[str] = None, **kwargs):
        label = f" <{tag}>" if tag else ""
        super().__init__(
            code="MALFORMED_COMPONENT",
            message=f"Skipping component{label} from '{origin}': {reason}",
            domain=FaultDomain.INDEX,
            severity=Severity.WARN,
            metadata={"origin": origin, "tag": tag, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.WARN,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            metadata=metadata,
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


class InvalidSeverityFault(ConfigInvalidFault):
    """A diagnostic severity value outside the accepted vocabulary."""

    def __init__(self, rule: str, value: Any, fallback: str = "error"):
        super().__init__(
            key=f"diagnosticSeverity.{rule}",
            reason=f"'{value}' is not a valid severity, using '{fallback}'",
            metadata={"rule": rule, "value": value, "fallback": fallback},
        )
